"""
Bell 103 block demodulator
==========================
samples -> ToneComparator -> bits -> BitStreamAssembler -> 10-bit frames
        -> FrameDecoder -> characters -> MessageBuilder -> message

Interface
---------
    cfg    = DemodConfig.from_preset("answering", sampling_rate=48000)
    result = Demodulator(cfg).decode(samples)
    print(result.message, result.stats)

    decode_samples(samples, cfg)        # message string only

Framing
-------
    bit  0     start, must be 0
    bits 1..7  data, least significant bit first
    bit  9     stop, must be 1
    (bit 8 is not inspected)

Blocks are assumed aligned to symbol boundaries and frames to the first
block; there is no clock recovery and no resynchronisation. Bad frames are
dropped one at a time and decoding carries on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .config import DemodConfig
from .errors import InvalidCharacterCode
from .goertzel import ToneFilter

log = logging.getLogger(__name__)

FRAME_BITS = 10
DATA_BITS  = 7
START_BIT  = 0
STOP_BIT   = 1


# ---------------------------------------------------------------------------
# Tone comparison
# ---------------------------------------------------------------------------

class ToneComparator:
    """
    Owns a mark and a space ToneFilter and turns each block into one bit.
    Both filters see the identical slice and are reset after every block.
    """

    def __init__(self, block_size: int, mark_frequency: float,
                 space_frequency: float, sampling_rate: float):
        self.block_size = block_size
        self._mark  = ToneFilter(block_size, mark_frequency, sampling_rate)
        self._space = ToneFilter(block_size, space_frequency, sampling_rate)

    @classmethod
    def from_config(cls, config: DemodConfig) -> "ToneComparator":
        config.validate()
        return cls(config.block_size, config.mark_frequency,
                   config.space_frequency, config.sampling_rate)

    def measure(self, block) -> Tuple[float, float]:
        """(mark, space) magnitude squared for one block. Leaves filters reset."""
        self._mark.process(block)
        self._space.process(block)
        mags = (self._mark.magnitude_squared(), self._space.magnitude_squared())
        self._mark.reset()
        self._space.reset()
        return mags

    @staticmethod
    def decide(mark: float, space: float) -> int:
        return 1 if mark >= space else 0

    def compare(self, block) -> int:
        return self.decide(*self.measure(block))

    def blocks(self, samples) -> Iterator[np.ndarray]:
        """
        Consecutive blocks of block_size samples. The last one may be short.
        Nothing at all if there is less than one full block.
        """
        data = np.asarray(samples)
        n = len(data)
        if n < self.block_size:
            return
        for start in range(0, n, self.block_size):
            yield data[start:start + self.block_size]

    def bits(self, samples) -> Iterator[int]:
        for block in self.blocks(samples):
            yield self.compare(block)

    def magnitudes(self, samples) -> List[Tuple[float, float]]:
        return [self.measure(block) for block in self.blocks(samples)]


# ---------------------------------------------------------------------------
# Framing
# ---------------------------------------------------------------------------

class BitStreamAssembler:
    """Collects bits into non-overlapping 10-bit frames."""

    def __init__(self, frame_bits: int = FRAME_BITS):
        self.frame_bits = frame_bits
        self._pending: List[int] = []

    def push(self, bit: int) -> Optional[Tuple[int, ...]]:
        """Add one bit. Returns a completed frame, or None."""
        self._pending.append(int(bit))
        if len(self._pending) < self.frame_bits:
            return None
        frame = tuple(self._pending)
        self._pending.clear()
        return frame

    def frames(self, bits: Iterable[int]) -> Iterator[Tuple[int, ...]]:
        for bit in bits:
            frame = self.push(bit)
            if frame is not None:
                yield frame

    @property
    def pending(self) -> int:
        """Bits held back waiting for a full frame."""
        return len(self._pending)


class FrameStatus(Enum):
    VALID     = auto()
    SHORT     = auto()
    BAD_START = auto()
    BAD_STOP  = auto()


class FrameDecoder:
    """Validates start/stop bits and unpacks the 7 data bits LSB first."""

    @staticmethod
    def check(frame: Sequence[int]) -> FrameStatus:
        if len(frame) < FRAME_BITS:
            return FrameStatus.SHORT
        if frame[0] != START_BIT:
            return FrameStatus.BAD_START
        if frame[FRAME_BITS - 1] != STOP_BIT:
            return FrameStatus.BAD_STOP
        return FrameStatus.VALID

    @staticmethod
    def code(frame: Sequence[int]) -> int:
        value = 0
        for i in range(DATA_BITS):
            value |= (int(frame[1 + i]) & 1) << i
        return value

    def decode(self, frame: Sequence[int]) -> Optional[str]:
        """
        Character carried by a frame, or None if the framing is bad.
        Raises InvalidCharacterCode if the data bits do not form a character.
        """
        if self.check(frame) is not FrameStatus.VALID:
            return None
        value = self.code(frame)
        try:
            return chr(value)
        except (ValueError, OverflowError) as e:
            raise InvalidCharacterCode(value) from e


# ---------------------------------------------------------------------------
# Message assembly
# ---------------------------------------------------------------------------

class MessageBuilder:
    """Append-only character buffer."""

    def __init__(self):
        self._chars: List[str] = []

    def append(self, char: str) -> None:
        self._chars.append(char)

    def __len__(self):
        return len(self._chars)

    def build(self) -> str:
        return "".join(self._chars)


@dataclass
class DecodeStats:
    blocks:       int = 0
    frames:       int = 0
    valid:        int = 0
    bad_start:    int = 0
    bad_stop:     int = 0
    bad_code:     int = 0
    partial_bits: int = 0     # trailing bits that never made a full frame

    @property
    def rejected(self) -> int:
        return self.bad_start + self.bad_stop + self.bad_code

    def __str__(self):
        return (f"blocks={self.blocks} frames={self.frames} valid={self.valid} "
                f"rejected={self.rejected} (start={self.bad_start} stop={self.bad_stop} "
                f"code={self.bad_code}) partial_bits={self.partial_bits}")


@dataclass
class DecodeResult:
    message:    str
    stats:      DecodeStats
    bits:       List[int] = field(default_factory=list)
    magnitudes: List[Tuple[float, float]] = field(default_factory=list)   # (mark, space) per block


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def frame_and_decode(bits: Sequence[int], decoder: Optional[FrameDecoder] = None) -> DecodeResult:
    """Framing and character decode for an already demodulated bit sequence."""
    decoder   = decoder or FrameDecoder()
    stats     = DecodeStats(blocks=len(bits))
    assembler = BitStreamAssembler()
    message   = MessageBuilder()

    for index, frame in enumerate(assembler.frames(bits)):
        stats.frames += 1
        status = decoder.check(frame)
        if status is FrameStatus.BAD_START:
            stats.bad_start += 1
            log.debug("frame %d: bad start bit %s", index, frame)
            continue
        if status is FrameStatus.BAD_STOP:
            stats.bad_stop += 1
            log.debug("frame %d: bad stop bit %s", index, frame)
            continue
        try:
            char = decoder.decode(frame)
        except InvalidCharacterCode as e:
            stats.bad_code += 1
            log.debug("frame %d: %s", index, e)
            continue
        stats.valid += 1
        message.append(char)

    stats.partial_bits = assembler.pending
    if stats.partial_bits:
        log.debug("%d trailing bits do not fill a frame, skipped", stats.partial_bits)

    return DecodeResult(message=message.build(), stats=stats, bits=list(bits))


class Demodulator:
    """One decode run: filters are built once here and reused for every block."""

    def __init__(self, config: DemodConfig):
        self.config     = config.validate()
        config.check_baud()
        self.comparator = ToneComparator(config.block_size, config.mark_frequency,
                                         config.space_frequency, config.sampling_rate)
        self.decoder    = FrameDecoder()

    def decode(self, samples) -> DecodeResult:
        samples = np.asarray(samples)
        mags    = self.comparator.magnitudes(samples)
        bits    = [self.comparator.decide(mark, space) for mark, space in mags]
        result  = frame_and_decode(bits, self.decoder)
        result.magnitudes = mags
        log.debug("decoded %d chars from %d samples: %s",
                  len(result.message), len(samples), result.stats)
        return result


def decode_samples(samples, config: DemodConfig) -> str:
    """Decode int16 samples to the message string."""
    return Demodulator(config).decode(samples).message


def decode_bits(bits: Sequence[int]) -> str:
    """Message carried by an already demodulated bit sequence."""
    return frame_and_decode(bits).message
