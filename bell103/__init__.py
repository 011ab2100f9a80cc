"""Bell 103 AFSK demodulator: Goertzel tone detection and start/stop framing."""

from .config import DemodConfig, Preset
from .demod import (
    BitStreamAssembler,
    DecodeResult,
    DecodeStats,
    Demodulator,
    FrameDecoder,
    MessageBuilder,
    ToneComparator,
    decode_bits,
    decode_samples,
)
from .errors import AudioLoadError, Bell103Error, ConfigError, InvalidCharacterCode
from .goertzel import ToneFilter

__version__ = "0.1.0"
