"""
WAV input/output for the decoder and the signal generator.

read_samples() always hands back one channel of int16 samples, whatever the
container held. Anything that stops the file being read is an AudioLoadError.

Requirements: pip install numpy scipy
"""

import logging
import os

import numpy as np
from scipy.io import wavfile

from .errors import AudioLoadError

log = logging.getLogger(__name__)

INT16_FULL_SCALE = 32768.0


def to_int16(data: np.ndarray) -> np.ndarray:
    """Rescale int32 / uint8 / float PCM onto the int16 range."""
    if data.dtype == np.int16:
        return data
    if data.dtype == np.int32:
        return (data >> 16).astype(np.int16)
    if data.dtype == np.uint8:
        return ((data.astype(np.int16) - 128) << 8).astype(np.int16)
    if np.issubdtype(data.dtype, np.floating):
        scaled = np.clip(data.astype(np.float64), -1.0, 1.0) * (INT16_FULL_SCALE - 1)
        return np.round(scaled).astype(np.int16)
    raise AudioLoadError(f"unsupported sample format {data.dtype}")


def read_samples(path, channel=0):
    """
    Returns (sample_rate, int16 samples) for one channel of a WAV file.
    """
    if not os.path.exists(path):
        raise AudioLoadError(f"{path} not found")
    try:
        sample_rate, data = wavfile.read(path)
    except (OSError, EOFError, ValueError) as e:
        raise AudioLoadError(f"could not read {path}: {e}") from e

    if data.ndim > 1:
        n_ch = data.shape[1]
        if not 0 <= channel < n_ch:
            raise AudioLoadError(f"{path} has {n_ch} channels, channel {channel} requested")
        log.debug("%s: %d channels, using channel %d", path, n_ch, channel)
        data = data[:, channel]
    elif channel != 0:
        raise AudioLoadError(f"{path} is mono, channel {channel} requested")

    samples = to_int16(data)
    log.debug("%s: %d samples at %d Hz (%s)", path, len(samples), sample_rate, data.dtype)
    return float(sample_rate), samples


def write_samples(path, samples, sample_rate):
    """Write mono int16 samples. Float input is treated as -1.0..1.0."""
    pcm = to_int16(np.asarray(samples))
    wavfile.write(path, int(round(sample_rate)), pcm)
