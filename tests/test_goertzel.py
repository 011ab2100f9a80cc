import math

import numpy as np
import pytest

from bell103.goertzel import ToneFilter, print_sweep, reference_block, sweep

SAMPLING_RATE    = 8000.0
BLOCK_SIZE       = 205
TARGET_FREQUENCY = 941.0


@pytest.fixture
def dtmf_filter():
    return ToneFilter(BLOCK_SIZE, TARGET_FREQUENCY, SAMPLING_RATE)


def run_block(filt, frequency):
    filt.reset()
    filt.process(reference_block(frequency, BLOCK_SIZE, SAMPLING_RATE))
    return filt


def test_construction_parameters(dtmf_filter):
    k = BLOCK_SIZE * TARGET_FREQUENCY / SAMPLING_RATE
    omega = 2.0 * math.pi * k / BLOCK_SIZE
    assert dtmf_filter.k == 24
    assert dtmf_filter.n == BLOCK_SIZE
    assert dtmf_filter.coeff == pytest.approx(2.0 * math.cos(omega))
    assert dtmf_filter.sin == pytest.approx(math.sin(omega))
    assert dtmf_filter.q1 == 0.0 and dtmf_filter.q2 == 0.0


@pytest.mark.parametrize("frequency, real, imag, mag_sq", [
    (TARGET_FREQUENCY - 250.0, -316.0,    -187.0,    134338.0),
    (TARGET_FREQUENCY,         -191.0,  -10196.0, 103981719.0),
    (TARGET_FREQUENCY + 250.0,  596.0,    -177.0,    387565.0),
])
def test_reference_values(dtmf_filter, frequency, real, imag, mag_sq):
    run_block(dtmf_filter, frequency)
    r, i = dtmf_filter.real_imag()
    assert math.floor(r) == real
    assert math.floor(i) == imag
    assert math.floor(dtmf_filter.magnitude_squared()) == mag_sq


def test_on_target_beats_offsets(dtmf_filter):
    on_target = run_block(dtmf_filter, TARGET_FREQUENCY).magnitude_squared()
    below     = run_block(dtmf_filter, TARGET_FREQUENCY - 250.0).magnitude_squared()
    above     = run_block(dtmf_filter, TARGET_FREQUENCY + 250.0).magnitude_squared()
    assert on_target > below
    assert on_target > above


def test_exact_bin_beats_more_than_one_bin_away():
    n, rate = 160, 48000.0
    bin_width = rate / n
    filt = ToneFilter(n, 7 * bin_width, rate)
    t = np.arange(n)
    on  = 1000.0 * np.sin(2 * np.pi * 7 * bin_width * t / rate)
    off = 1000.0 * np.sin(2 * np.pi * 8.5 * bin_width * t / rate)

    filt.process(on)
    on_mag = filt.magnitude_squared()
    filt.reset()
    filt.process(off)
    assert on_mag > filt.magnitude_squared()


def test_magnitude_matches_real_imag(dtmf_filter):
    run_block(dtmf_filter, 1000.0)
    r, i = dtmf_filter.real_imag()
    assert dtmf_filter.magnitude_squared() == pytest.approx(r * r + i * i, rel=1e-9)


def test_reset_matches_fresh_filter(dtmf_filter):
    rng = np.random.default_rng(1)
    first  = rng.integers(-32768, 32767, BLOCK_SIZE, dtype=np.int16)
    second = rng.integers(-32768, 32767, BLOCK_SIZE, dtype=np.int16)

    dtmf_filter.process(first)
    dtmf_filter.reset()
    dtmf_filter.process(second)

    fresh = ToneFilter(BLOCK_SIZE, TARGET_FREQUENCY, SAMPLING_RATE)
    fresh.process(second)
    assert dtmf_filter.magnitude_squared() == fresh.magnitude_squared()
    assert dtmf_filter.real_imag() == fresh.real_imag()


def test_process_accumulates_across_calls(dtmf_filter):
    block = reference_block(TARGET_FREQUENCY, BLOCK_SIZE, SAMPLING_RATE)
    dtmf_filter.process(block[:100])
    dtmf_filter.process(block[100:])

    whole = ToneFilter(BLOCK_SIZE, TARGET_FREQUENCY, SAMPLING_RATE)
    whole.process(block)
    assert dtmf_filter.magnitude_squared() == pytest.approx(whole.magnitude_squared())


def test_accepts_plain_lists(dtmf_filter):
    block = reference_block(TARGET_FREQUENCY, BLOCK_SIZE, SAMPLING_RATE)
    dtmf_filter.process(block.tolist())
    as_list = dtmf_filter.magnitude_squared()
    run_block(dtmf_filter, TARGET_FREQUENCY)
    assert as_list == dtmf_filter.magnitude_squared()


def test_empty_and_silent_input(dtmf_filter):
    dtmf_filter.process([])
    assert dtmf_filter.magnitude_squared() == 0.0
    dtmf_filter.process(np.zeros(BLOCK_SIZE, dtype=np.int16))
    assert dtmf_filter.magnitude_squared() == 0.0


def test_sweep_peaks_near_target(dtmf_filter):
    freqs  = np.arange(TARGET_FREQUENCY - 300.0, TARGET_FREQUENCY + 301.0, 15.0)
    points = sweep(dtmf_filter, freqs)
    assert len(points) == len(freqs)
    best_freq, _ = max(points, key=lambda p: p[1])
    assert abs(best_freq - TARGET_FREQUENCY) <= SAMPLING_RATE / BLOCK_SIZE
    # sweep leaves the filter ready for the next block
    assert dtmf_filter.q1 == 0.0 and dtmf_filter.q2 == 0.0


def test_print_sweep(capsys):
    print_sweep([(941.0, 4.0), (956.0, 0.25)])
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("Freq=  941.0")
    assert lines[1].rstrip().endswith("0.50000")


def test_reference_block_shape():
    block = reference_block(TARGET_FREQUENCY, BLOCK_SIZE, SAMPLING_RATE)
    assert block.dtype == np.int16
    assert len(block) == BLOCK_SIZE
    assert block[0] == 100
    assert 0 <= block.min() and block.max() <= 200


def test_accepts_tuples_and_ranges(dtmf_filter):
    dtmf_filter.process(tuple(range(50)))
    as_tuple = dtmf_filter.magnitude_squared()
    dtmf_filter.reset()
    dtmf_filter.process(range(50))
    assert dtmf_filter.magnitude_squared() == as_tuple
