#!/usr/bin/env python3
"""
Generate Bell 103 AFSK test WAV files.

Each character becomes a 10-bit frame (start 0, 7 data bits LSB first, one
spare bit sent as mark, stop 1) and each bit becomes exactly one block of
mark or space tone, so the output lines up with the decoder's blocks.
Phase is continuous across bit boundaries.

Optional white Gaussian noise, bandlimited with a Butterworth lowpass, can be
mixed in at a given SNR (tone RMS relative to noise RMS over the whole file).

Usage:
    python -m bell103.generator "HELLO WORLD" hello.wav
    python -m bell103.generator "HELLO" hello.wav --preset originating --snr 6
    python -m bell103.generator "HELLO" hello.wav --idle-frames 3 --sample-rate 44100

Requirements: pip install numpy scipy
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np
from scipy.signal import butter, sosfilt

from .config import DemodConfig
from .demod import DATA_BITS, FRAME_BITS, START_BIT, STOP_BIT
from .wav import to_int16

AMPLITUDE       = 0.5      # tone peak, fraction of full scale
PEAK_LIMIT      = 0.98
DEFAULT_SEED    = 48
DEFAULT_MESSAGE = "HELLO BELL 103"


def encode_char(ch: str) -> List[int]:
    code = ord(ch)
    if code >= 1 << DATA_BITS:
        raise ValueError(f"{ch!r} (code {code}) does not fit in {DATA_BITS} bits")
    data = [(code >> i) & 1 for i in range(DATA_BITS)]
    # bit 8 is ignored by the decoder; send it as mark
    return [START_BIT] + data + [1, STOP_BIT]


def encode_bits(text: str) -> List[int]:
    bits: List[int] = []
    for ch in text:
        bits.extend(encode_char(ch))
    return bits


def modulate(bits: Sequence[int], config: DemodConfig, amplitude: float = AMPLITUDE) -> np.ndarray:
    """One block of tone per bit: mark for 1, space for 0. Float64 in -1..1."""
    config.validate()
    if len(bits) == 0:
        return np.zeros(0, dtype=np.float64)
    per_bit   = np.where(np.asarray(bits) != 0, config.mark_frequency, config.space_frequency)
    inst_freq = np.repeat(per_bit.astype(np.float64), config.block_size)
    # Integrate phase so bit boundaries don't click
    phase = 2.0 * np.pi * np.cumsum(inst_freq) / config.sampling_rate
    return amplitude * np.sin(phase)


def bandlimit_noise(noise: np.ndarray, sample_rate: float, bandwidth_hz: float) -> np.ndarray:
    """Lowpass white noise, rescaled back to its original RMS."""
    nyquist = sample_rate / 2.0
    if bandwidth_hz >= nyquist:
        return noise
    sos = butter(8, bandwidth_hz / nyquist, btype="low", output="sos")
    filtered = sosfilt(sos, noise)
    original_rms = np.sqrt(np.mean(noise ** 2))
    filtered_rms = np.sqrt(np.mean(filtered ** 2))
    if filtered_rms > 0:
        filtered *= original_rms / filtered_rms
    return filtered


def add_noise(signal: np.ndarray, snr_db: float, sample_rate: Optional[float] = None,
              bandwidth_hz: Optional[float] = None,
              rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Mix in Gaussian noise so that tone RMS / noise RMS equals snr_db."""
    if len(signal) == 0:
        return signal.copy()
    rng = rng if rng is not None else np.random.default_rng(DEFAULT_SEED)

    tone_rms = float(np.sqrt(np.mean(signal * signal)))
    if tone_rms <= 0:
        raise ValueError("signal RMS is zero; cannot set an SNR")

    noise = rng.normal(0.0, 1.0, len(signal))
    if bandwidth_hz is not None and sample_rate is not None:
        noise = bandlimit_noise(noise, sample_rate, bandwidth_hz)
    noise *= (tone_rms / (10.0 ** (snr_db / 20.0))) / float(np.sqrt(np.mean(noise * noise)))

    mix = signal + noise
    peak = float(np.max(np.abs(mix)))
    if peak > PEAK_LIMIT:
        mix *= PEAK_LIMIT / peak
    return mix


def generate(text: str, config: DemodConfig, snr_db: Optional[float] = None,
             idle_frames: int = 0, bandwidth_hz: Optional[float] = None,
             seed: int = DEFAULT_SEED, amplitude: float = AMPLITUDE) -> np.ndarray:
    """
    int16 samples carrying text. idle_frames whole frames of steady mark are
    sent first; the decoder drops them as bad start bits without losing
    frame alignment.
    """
    bits = [1] * (FRAME_BITS * idle_frames) + encode_bits(text)
    signal = modulate(bits, config, amplitude)
    if snr_db is not None:
        signal = add_noise(signal, snr_db, config.sampling_rate, bandwidth_hz,
                           rng=np.random.default_rng(seed))
    return to_int16(signal)


def main(argv=None) -> None:
    import argparse
    import sys

    from .config import DEFAULT_SAMPLING_RATE, Preset
    from .errors import Bell103Error
    from .wav import write_samples

    parser = argparse.ArgumentParser(
        description="Generate a Bell 103 AFSK WAV file.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("message", nargs="?", default=DEFAULT_MESSAGE, help="Text to encode (7-bit ASCII)")
    parser.add_argument("out", nargs="?", default="bell103_test.wav", help="Output WAV file")
    parser.add_argument("--preset", default="answering",
                        choices=[p.name.lower() for p in Preset], help="Mark/space frequency pair")
    parser.add_argument("--sample-rate", type=float, default=DEFAULT_SAMPLING_RATE, help="Sampling rate (Hz)")
    parser.add_argument("--block-size", type=int, default=None, help="Samples per bit (default: one 300 baud symbol)")
    parser.add_argument("--snr", type=float, default=None, help="Add noise at this SNR (dB)")
    parser.add_argument("--bandwidth", type=float, default=None, help="Noise bandwidth (Hz)")
    parser.add_argument("--idle-frames", type=int, default=0, help="Frames of idle mark before the message")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED, help="Noise RNG seed")
    args = parser.parse_args(argv)

    try:
        config = DemodConfig.from_preset(args.preset, sampling_rate=args.sample_rate,
                                         block_size=args.block_size)
        samples = generate(args.message, config, snr_db=args.snr, idle_frames=args.idle_frames,
                           bandwidth_hz=args.bandwidth, seed=args.seed)
    except (Bell103Error, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    write_samples(args.out, samples, config.sampling_rate)
    snr = f"SNR {args.snr:+.0f} dB" if args.snr is not None else "no noise"
    print(f"Written: {args.out}  ({len(samples)} samples, {len(samples) / config.sampling_rate:.2f}s, "
          f"mark {config.mark_frequency:.0f} Hz / space {config.space_frequency:.0f} Hz, {snr})")


if __name__ == "__main__":
    main()
