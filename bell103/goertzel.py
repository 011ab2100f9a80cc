#!/usr/bin/env python3
"""
ToneFilter
==========
Single-bin Goertzel estimator: energy of one target frequency inside a block
of samples, without computing a full spectrum.

    f = ToneFilter(block_size=160, target_frequency=2225.0, sampling_rate=48000.0)
    f.process(block)
    energy = f.magnitude_squared()
    f.reset()                       # required before the next block

The magnitude is relative, not calibrated to signal power. It is only
meaningful next to another filter run over the same samples.

Running this module prints a frequency sweep around a target, e.g.

    python -m bell103.goertzel --rate 8000 --block-size 205 --freq 941

Requirements: pip install numpy
"""

from __future__ import annotations

import math
from typing import Iterable, List, Sequence, Tuple

import numpy as np


class ToneFilter:
    """
    Second-order Goertzel recursion for one target frequency.

    q1/q2 accumulate across process() calls until reset(). Callers must
    reset() between blocks; nothing checks this.
    """

    __slots__ = ("k", "n", "target_frequency", "sampling_rate",
                 "coeff", "sin", "cos", "q1", "q2")

    def __init__(self, block_size: int, target_frequency: float, sampling_rate: float):
        k     = block_size * target_frequency / sampling_rate
        omega = 2.0 * math.pi * k / block_size

        self.k                = int(k)      # diagnostic only, recursion uses omega
        self.n                = block_size
        self.target_frequency = float(target_frequency)
        self.sampling_rate    = float(sampling_rate)
        self.cos              = math.cos(omega)
        self.sin              = math.sin(omega)
        self.coeff            = 2.0 * self.cos
        self.q1               = 0.0
        self.q2               = 0.0

    def __repr__(self):
        return (f"ToneFilter(block_size={self.n}, target_frequency={self.target_frequency}, "
                f"sampling_rate={self.sampling_rate}, k={self.k}, coeff={self.coeff:.6f})")

    def process(self, samples: Sequence) -> None:
        coeff = self.coeff
        q1, q2 = self.q1, self.q2
        for s in np.asarray(samples, dtype=np.float64).tolist():
            q0 = coeff * q1 - q2 + s
            q2 = q1
            q1 = q0
        self.q1, self.q2 = q1, q2

    def magnitude_squared(self) -> float:
        return self.q1 * self.q1 + self.q2 * self.q2 - self.q1 * self.q2 * self.coeff

    def real_imag(self) -> Tuple[float, float]:
        return self.q1 - self.q2 * self.cos, self.q2 * self.sin

    def reset(self) -> None:
        self.q1 = 0.0
        self.q2 = 0.0


# ---------------------------------------------------------------------------
# Reference blocks and frequency sweep
# ---------------------------------------------------------------------------

def reference_block(frequency: float, block_size: int, sampling_rate: float,
                    amplitude: float = 100.0, offset: float = 100.0) -> np.ndarray:
    """
    One block of amplitude*sin + offset, truncated to integers.
    The defaults reproduce the classic 8-bit unsigned Goertzel test vector.
    """
    step = 2.0 * math.pi * frequency / sampling_rate
    t = np.arange(block_size, dtype=np.float64)
    return np.trunc(amplitude * np.sin(t * step) + offset).astype(np.int16)


def sweep(tone_filter: ToneFilter, frequencies: Iterable[float],
          amplitude: float = 100.0, offset: float = 100.0) -> List[Tuple[float, float]]:
    """(frequency, magnitude_squared) for a reference block at each frequency."""
    out = []
    for freq in frequencies:
        tone_filter.reset()
        tone_filter.process(reference_block(freq, tone_filter.n, tone_filter.sampling_rate,
                                            amplitude, offset))
        out.append((float(freq), tone_filter.magnitude_squared()))
    tone_filter.reset()
    return out


def print_sweep(points: Sequence[Tuple[float, float]]) -> None:
    for freq, mag_sq in points:
        print(f"Freq={freq:7.1f}   rel mag^2={mag_sq:16.5f}   rel mag={math.sqrt(mag_sq):12.5f}")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(
        description="Goertzel frequency response sweep",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--rate",       type=float, default=8000.0, help="Sampling rate (Hz)")
    parser.add_argument("--block-size", type=int,   default=205,    help="Samples per block")
    parser.add_argument("--freq",       type=float, default=941.0,  help="Target frequency (Hz)")
    parser.add_argument("--span",       type=float, default=300.0,  help="Sweep +/- this many Hz")
    parser.add_argument("--step",       type=float, default=15.0,   help="Sweep step (Hz)")
    args = parser.parse_args()

    filt = ToneFilter(args.block_size, args.freq, args.rate)
    print(f"For SAMPLING_RATE = {args.rate:.6f} N = {args.block_size} and FREQUENCY = {args.freq:.6f},")
    print(f"k = {filt.k} and coeff = {filt.coeff:.6f}\n")
    freqs = np.arange(args.freq - args.span, args.freq + args.span + 1e-9, args.step)
    print_sweep(sweep(filt, freqs))
