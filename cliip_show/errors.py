"""Exception types shared by the HUD pipeline and its CLI."""
from __future__ import annotations


class CliipShowError(Exception):
    """Base class for errors reported by cliip-show."""


class InvalidConfiguration(CliipShowError, ValueError):
    """Layout or style values outside their declared ranges."""


class ConfigError(CliipShowError):
    """The config file could not be read, parsed or written."""


class RenderFailure(CliipShowError):
    """The rendering backend could not produce or encode an image."""


class DimensionMismatch(CliipShowError):
    """Two images handed to the diff engine have different sizes."""

    def __init__(self, baseline_size: tuple[int, int], current_size: tuple[int, int]) -> None:
        self.baseline_size = baseline_size
        self.current_size = current_size
        super().__init__(
            "image size mismatch: baseline=%dx%d, current=%dx%d"
            % (baseline_size[0], baseline_size[1], current_size[0], current_size[1])
        )


class DecodeFailure(CliipShowError):
    """An input file could not be parsed as an image."""
