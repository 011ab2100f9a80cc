import numpy as np
import pytest
from scipy.io import wavfile

from bell103.errors import AudioLoadError
from bell103.wav import read_samples, to_int16, write_samples


def test_write_then_read_mono(tmp_path):
    path = tmp_path / "mono.wav"
    samples = np.array([0, 1000, -1000, 32767, -32768], dtype=np.int16)
    write_samples(str(path), samples, 48000.0)

    rate, data = read_samples(str(path))
    assert rate == 48000.0
    assert data.dtype == np.int16
    np.testing.assert_array_equal(data, samples)


def test_stereo_channel_selection(tmp_path):
    path = tmp_path / "stereo.wav"
    left  = np.full(64, 100, dtype=np.int16)
    right = np.full(64, -200, dtype=np.int16)
    wavfile.write(str(path), 44100, np.column_stack([left, right]))

    _, ch0 = read_samples(str(path))
    _, ch1 = read_samples(str(path), channel=1)
    np.testing.assert_array_equal(ch0, left)
    np.testing.assert_array_equal(ch1, right)

    with pytest.raises(AudioLoadError):
        read_samples(str(path), channel=2)


def test_mono_rejects_other_channels(tmp_path):
    path = tmp_path / "mono.wav"
    write_samples(str(path), np.zeros(16, dtype=np.int16), 8000)
    with pytest.raises(AudioLoadError):
        read_samples(str(path), channel=1)


def test_float_wav_is_rescaled(tmp_path):
    path = tmp_path / "float.wav"
    wavfile.write(str(path), 48000, np.array([0.0, 0.5, -0.5, 1.0, -1.0], dtype=np.float32))
    _, data = read_samples(str(path))
    assert data.dtype == np.int16
    assert data.tolist() == [0, 16384, -16384, 32767, -32767]


@pytest.mark.parametrize("data, expected", [
    (np.array([0, 65536, -65536], dtype=np.int32), [0, 1, -1]),
    (np.array([128, 255, 0], dtype=np.uint8), [0, 32512, -32768]),
    (np.array([2.0, -3.0], dtype=np.float64), [32767, -32767]),
])
def test_to_int16(data, expected):
    out = to_int16(data)
    assert out.dtype == np.int16
    assert out.tolist() == expected


def test_to_int16_rejects_unknown_format():
    with pytest.raises(AudioLoadError):
        to_int16(np.array([1, 2], dtype=np.int64))


def test_missing_and_garbage_files(tmp_path):
    with pytest.raises(AudioLoadError):
        read_samples(str(tmp_path / "nothing.wav"))

    garbage = tmp_path / "garbage.wav"
    garbage.write_bytes(b"this is not a RIFF file at all")
    with pytest.raises(AudioLoadError):
        read_samples(str(garbage))
