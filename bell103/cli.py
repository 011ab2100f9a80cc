#!/usr/bin/env python3
"""
Decode a Bell 103 AFSK WAV file to text.

Usage:
    bell103-decode message.wav
    bell103-decode message.wav --preset originating
    bell103-decode message.wav --output MESSAGE.txt --stats
    bell103-decode message.wav --config bell103.json --block-size 147
    bell103-decode message.wav --plot blocks.png -v

Settings are resolved in this order, first match wins:
    command line flag  >  --config JSON file  >  the WAV file / built-in defaults

The sampling rate defaults to the WAV file's own rate and the block size to
one 300 baud symbol at that rate.

Requirements: pip install numpy scipy   (matplotlib for --plot)
"""

import argparse
import logging
import sys

from .config import Preset, block_size_for, config_from_mapping, load_config
from .demod import Demodulator
from .errors import Bell103Error
from .wav import read_samples

log = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"


def build_parser():
    parser = argparse.ArgumentParser(
        prog="bell103-decode",
        description="Decode a Bell 103 AFSK WAV file to text",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("wav", help="Input WAV file")
    parser.add_argument("--preset", choices=[p.name.lower() for p in Preset], default=None,
                        help="Mark/space pair (default: answering)")
    parser.add_argument("--sample-rate", type=float, default=None,
                        help="Override sampling rate in Hz (default: from WAV)")
    parser.add_argument("--block-size", type=int, default=None,
                        help="Samples per bit (default: one 300 baud symbol)")
    parser.add_argument("--mark",       type=float, default=None, help="Mark frequency override (Hz)")
    parser.add_argument("--space",      type=float, default=None, help="Space frequency override (Hz)")
    parser.add_argument("--channel",    type=int,   default=0,    help="Channel of a multichannel WAV")
    parser.add_argument("--config",     default=None,             help="JSON config file")
    parser.add_argument("--output", "-o", default=None,           help="Also write the message to this file")
    parser.add_argument("--stats",      action="store_true",      help="Print frame counters")
    parser.add_argument("--plot",       default=None,             help="Save per-block mark/space chart (PNG)")
    parser.add_argument("--verbose", "-v", action="count", default=0, help="-v info, -vv debug")
    return parser


def setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def resolve_config(args, wav_rate: float):
    """Merge command line, config file and WAV rate into a validated DemodConfig."""
    cfg = load_config(args.config, fill_defaults=False) if args.config else {}
    # null in the file means "not set"
    cfg = {k: v for k, v in cfg.items() if v is not None}

    flags = {
        "preset":          args.preset,
        "sampling_rate":   args.sample_rate,
        "block_size":      args.block_size,
        "mark_frequency":  args.mark,
        "space_frequency": args.space,
    }
    cfg.update({k: v for k, v in flags.items() if v is not None})

    cfg.setdefault("sampling_rate", wav_rate)
    if cfg["sampling_rate"] != wav_rate:
        log.warning("decoding at %.0f Hz but %s is sampled at %.0f Hz",
                    cfg["sampling_rate"], args.wav, wav_rate)
    if cfg.get("block_size") is None:
        cfg["block_size"] = block_size_for(cfg["sampling_rate"])

    return config_from_mapping(cfg)


def plot_blocks(path, magnitudes, bits, config) -> None:
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    import numpy as np

    mags = np.asarray(magnitudes, dtype=np.float64).reshape(-1, 2)
    idx  = np.arange(len(mags))

    fig, axes = plt.subplots(2, 1, figsize=(14, 6), sharex=True)
    axes[0].plot(idx, mags[:, 0], label=f"mark {config.mark_frequency:.0f} Hz")
    axes[0].plot(idx, mags[:, 1], label=f"space {config.space_frequency:.0f} Hz")
    axes[0].set_ylabel("rel. magnitude²")
    axes[0].set_yscale("symlog")
    axes[0].legend(loc="upper right")
    axes[0].grid(True, alpha=0.3)

    axes[1].step(idx, bits, where="mid")
    axes[1].set_ylim(-0.2, 1.2)
    axes[1].set_xlabel(f"block ({config.block_size} samples)")
    axes[1].set_ylabel("bit")
    axes[1].grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close(fig)


def run(args):
    wav_rate, samples = read_samples(args.wav, channel=args.channel)
    config = resolve_config(args, wav_rate)
    log.info("%s: %d samples, %.0f Hz, block %d (%.1f baud), mark %.0f Hz, space %.0f Hz",
             args.wav, len(samples), config.sampling_rate, config.block_size, config.baud,
             config.mark_frequency, config.space_frequency)

    demod  = Demodulator(config)
    result = demod.decode(samples)

    print(result.message)

    if args.output:
        with open(args.output, "w") as f:
            f.write(result.message)
        log.info("message written to %s", args.output)

    if args.stats:
        print(f"Blocks       : {result.stats.blocks}")
        print(f"Frames       : {result.stats.frames}")
        print(f"Valid        : {result.stats.valid}")
        print(f"Bad start    : {result.stats.bad_start}")
        print(f"Bad stop     : {result.stats.bad_stop}")
        print(f"Bad code     : {result.stats.bad_code}")
        print(f"Partial bits : {result.stats.partial_bits}")

    if args.plot:
        plot_blocks(args.plot, result.magnitudes, result.bits, config)
        log.info("block chart written to %s", args.plot)

    return result


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    try:
        run(args)
    except (Bell103Error, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
