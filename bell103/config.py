"""
Demodulator configuration: named defaults, Bell 103 presets, JSON config file.

The decode core never reads these defaults directly. Everything it needs is
carried by a validated DemodConfig, built here before any filter exists.

Config file (JSON, every key optional):

    {
      "preset":          "answering",
      "sampling_rate":   48000,
      "block_size":      160,
      "mark_frequency":  null,
      "space_frequency": null
    }

mark_frequency / space_frequency override the preset pair when not null.
"""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from .errors import ConfigError

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_SAMPLING_RATE = 48_000.0
DEFAULT_BLOCK_SIZE    = 160      # 48 kHz / 300 baud
BAUD_RATE             = 300      # Bell 103 symbol rate
BAUD_TOLERANCE        = 0.05     # warn if block size is this far off one symbol

ANSWER_MARK           = 2225.0
ANSWER_SPACE          = 2025.0
ORIGINATE_MARK        = 1270.0
ORIGINATE_SPACE       = 1070.0


class Preset(Enum):
    """Bell 103 frequency pairs, value is (mark_hz, space_hz)."""
    ANSWERING   = (ANSWER_MARK, ANSWER_SPACE)
    ORIGINATING = (ORIGINATE_MARK, ORIGINATE_SPACE)

    @property
    def mark(self) -> float:
        return self.value[0]

    @property
    def space(self) -> float:
        return self.value[1]

    @classmethod
    def parse(cls, name) -> "Preset":
        if isinstance(name, cls):
            return name
        key = str(name).strip().upper()
        # "answer" / "originate" are common spellings too
        for preset in cls:
            if preset.name == key or (len(key) >= 6 and preset.name.startswith(key)):
                return preset
        choices = ", ".join(p.name.lower() for p in cls)
        raise ConfigError(f"unknown preset {name!r} (choose from {choices})")


DEFAULT_PRESET = Preset.ANSWERING

DEFAULT_CONFIG = {
    "preset":          DEFAULT_PRESET.name.lower(),
    "sampling_rate":   DEFAULT_SAMPLING_RATE,
    "block_size":      DEFAULT_BLOCK_SIZE,
    "mark_frequency":  None,
    "space_frequency": None,
}


def block_size_for(sampling_rate: float, baud: float = BAUD_RATE) -> int:
    """Samples per symbol at the given rate, rounded to the nearest sample."""
    try:
        ok = sampling_rate > 0 and baud > 0
    except TypeError:
        ok = False
    if not ok:
        raise ConfigError(f"cannot derive block size from rate={sampling_rate!r} baud={baud!r}")
    return max(1, int(round(sampling_rate / baud)))


# ---------------------------------------------------------------------------
# DemodConfig
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DemodConfig:
    sampling_rate:   float = DEFAULT_SAMPLING_RATE
    block_size:      int   = DEFAULT_BLOCK_SIZE
    mark_frequency:  float = ANSWER_MARK
    space_frequency: float = ANSWER_SPACE

    @classmethod
    def from_preset(
        cls,
        preset=DEFAULT_PRESET,
        sampling_rate: float = DEFAULT_SAMPLING_RATE,
        block_size: Optional[int] = None,
    ) -> "DemodConfig":
        preset = Preset.parse(preset)
        if block_size is None:
            block_size = block_size_for(sampling_rate)
        return cls(
            sampling_rate   = sampling_rate,
            block_size      = block_size,
            mark_frequency  = preset.mark,
            space_frequency = preset.space,
        ).validate()

    @property
    def baud(self) -> float:
        return self.sampling_rate / self.block_size

    def with_overrides(self, **changes) -> "DemodConfig":
        """Copy with the non-None keyword values replaced, then validated."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes).validate()

    def validate(self) -> "DemodConfig":
        """Raise ConfigError unless every parameter is usable. Returns self."""
        if isinstance(self.block_size, bool) or not isinstance(self.block_size, int):
            raise ConfigError(f"block size must be an integer, got {self.block_size!r}")
        if self.block_size <= 0:
            raise ConfigError(f"block size must be positive, got {self.block_size}")

        for name in ("sampling_rate", "mark_frequency", "space_frequency"):
            value = getattr(self, name)
            try:
                ok = math.isfinite(value) and value > 0
            except TypeError:
                ok = False
            if not ok:
                raise ConfigError(f"{name.replace('_', ' ')} must be a positive number, got {value!r}")

        nyquist = self.sampling_rate / 2.0
        for name in ("mark_frequency", "space_frequency"):
            if getattr(self, name) >= nyquist:
                raise ConfigError(
                    f"{name.replace('_', ' ')} {getattr(self, name):.1f} Hz is at or above "
                    f"Nyquist ({nyquist:.1f} Hz)")

        if self.mark_frequency == self.space_frequency:
            raise ConfigError("mark and space frequencies must differ")
        return self

    def check_baud(self) -> bool:
        """Warn if the block size is not close to one 300 baud symbol."""
        if abs(self.baud - BAUD_RATE) > BAUD_TOLERANCE * BAUD_RATE:
            log.warning("block size %d at %.0f Hz gives %.1f baud, Bell 103 is %d baud",
                        self.block_size, self.sampling_rate, self.baud, BAUD_RATE)
            return False
        return True


# ---------------------------------------------------------------------------
# Config file
# ---------------------------------------------------------------------------

def load_config(path: str, fill_defaults: bool = True) -> dict:
    """
    Read a JSON config file and fill in any missing keys from DEFAULT_CONFIG.
    With fill_defaults=False only the keys present in the file are returned.
    Unknown keys are kept but ignored by config_from_mapping().
    """
    if not os.path.exists(path):
        raise ConfigError(f"config file not found: {path}")
    try:
        with open(path) as f:
            cfg = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"could not read config {path}: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigError(f"config {path} must contain a JSON object")

    if fill_defaults:
        for k, v in DEFAULT_CONFIG.items():
            cfg.setdefault(k, v)
    log.debug("loaded config %s: %s", path, cfg)
    return cfg


def config_from_mapping(cfg: dict) -> DemodConfig:
    """Build a validated DemodConfig from a (possibly partial) config dict."""
    merged = dict(DEFAULT_CONFIG)
    merged.update({k: v for k, v in cfg.items() if v is not None})

    block_size = merged["block_size"]
    if isinstance(block_size, float) and block_size.is_integer():
        block_size = int(block_size)

    preset = Preset.parse(merged["preset"])
    mark   = merged["mark_frequency"]
    space  = merged["space_frequency"]
    return DemodConfig(
        sampling_rate   = merged["sampling_rate"],
        block_size      = block_size,
        mark_frequency  = preset.mark if mark is None else mark,
        space_frequency = preset.space if space is None else space,
    ).validate()
