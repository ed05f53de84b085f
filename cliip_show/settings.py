"""Display settings, option enums and their allowed ranges."""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from cliip_show.errors import InvalidConfiguration
from cliip_show.text_layout import (
    MAX_CHARS_PER_LINE,
    MAX_LINES,
    MIN_CHARS_PER_LINE,
    MIN_LINES,
    LayoutLimits,
)

DEFAULT_POLL_INTERVAL_SECS = 0.3
DEFAULT_HUD_DURATION_SECS = 1.0
DEFAULT_MAX_CHARS_PER_LINE = 100
DEFAULT_MAX_LINES = 5
DEFAULT_HUD_SCALE = 1.0

MIN_POLL_INTERVAL_SECS = 0.05
MAX_POLL_INTERVAL_SECS = 5.0
MIN_HUD_DURATION_SECS = 0.1
MAX_HUD_DURATION_SECS = 10.0
MIN_MAX_CHARS_PER_LINE = MIN_CHARS_PER_LINE
MAX_MAX_CHARS_PER_LINE = MAX_CHARS_PER_LINE
MIN_MAX_LINES = MIN_LINES
MAX_MAX_LINES = MAX_LINES
MIN_HUD_SCALE = 0.5
MAX_HUD_SCALE = 2.0


class _OptionEnum(str, Enum):
    @classmethod
    def parse(cls, raw: str) -> Optional["_OptionEnum"]:
        """Match a user-supplied name; `-` and `_` are interchangeable, case is ignored."""
        token = str(raw).strip().lower().replace("-", "_")
        for member in cls:
            if member.value == token:
                return member
        return None

    @classmethod
    def names(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)


class HudPosition(_OptionEnum):
    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"


class HudBackgroundColor(_OptionEnum):
    DEFAULT = "default"
    YELLOW = "yellow"
    BLUE = "blue"
    GREEN = "green"
    RED = "red"
    PURPLE = "purple"


@dataclass(frozen=True)
class StyleConfig:
    """Visual options for one render request."""

    hud_position: HudPosition = HudPosition.CENTER
    hud_scale: float = DEFAULT_HUD_SCALE
    hud_background_color: HudBackgroundColor = HudBackgroundColor.DEFAULT

    def __post_init__(self) -> None:
        if not isinstance(self.hud_position, HudPosition):
            raise InvalidConfiguration(f"invalid hud_position: {self.hud_position!r}")
        if not isinstance(self.hud_background_color, HudBackgroundColor):
            raise InvalidConfiguration(f"invalid hud_background_color: {self.hud_background_color!r}")
        scale = self.hud_scale
        if isinstance(scale, bool) or not isinstance(scale, (int, float)) or not math.isfinite(scale):
            raise InvalidConfiguration(f"invalid hud_scale: {scale!r}")
        if not MIN_HUD_SCALE <= scale <= MAX_HUD_SCALE:
            raise InvalidConfiguration(
                f"hud_scale {scale} outside allowed range {MIN_HUD_SCALE}..={MAX_HUD_SCALE}"
            )


@dataclass(frozen=True)
class DisplaySettings:
    """Resolved configuration snapshot consumed by the HUD pipeline."""

    poll_interval_secs: float = DEFAULT_POLL_INTERVAL_SECS
    hud_duration_secs: float = DEFAULT_HUD_DURATION_SECS
    max_chars_per_line: int = DEFAULT_MAX_CHARS_PER_LINE
    max_lines: int = DEFAULT_MAX_LINES
    hud_position: HudPosition = HudPosition.CENTER
    hud_scale: float = DEFAULT_HUD_SCALE
    hud_background_color: HudBackgroundColor = HudBackgroundColor.DEFAULT

    def layout_limits(self) -> LayoutLimits:
        return LayoutLimits(max_chars_per_line=self.max_chars_per_line, max_lines=self.max_lines)

    def style(self) -> StyleConfig:
        return StyleConfig(
            hud_position=self.hud_position,
            hud_scale=self.hud_scale,
            hud_background_color=self.hud_background_color,
        )

    def describe(self) -> list[str]:
        """Return `key = value` lines in config-key order."""
        return [
            f"poll_interval_secs = {format_number(self.poll_interval_secs)}",
            f"hud_duration_secs = {format_number(self.hud_duration_secs)}",
            f"max_chars_per_line = {self.max_chars_per_line}",
            f"max_lines = {self.max_lines}",
            f"hud_position = {self.hud_position.value}",
            f"hud_scale = {format_number(self.hud_scale)}",
            f"hud_background_color = {self.hud_background_color.value}",
        ]


def clamp_float(value: float, fallback: float, minimum: float, maximum: float) -> float:
    """Clamp a finite float into range; non-finite values yield `fallback`."""
    if not math.isfinite(value):
        return fallback
    return max(minimum, min(maximum, value))


def clamp_int(value: int, minimum: int, maximum: int) -> int:
    return max(minimum, min(maximum, value))


def format_number(value: float) -> str:
    return repr(float(value))
