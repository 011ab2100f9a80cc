"""Exception types raised by the bell103 decoder."""


class Bell103Error(Exception):
    """Base class for every error raised by this package."""


class ConfigError(Bell103Error, ValueError):
    """Sampling rate, block size, frequency or preset is unusable."""


class AudioLoadError(Bell103Error, IOError):
    """The audio container could not be read or holds no usable samples."""


class InvalidCharacterCode(Bell103Error, ValueError):
    """A frame's data bits do not form a character."""

    def __init__(self, value):
        super().__init__(f"invalid character code {value!r}")
        self.value = value
