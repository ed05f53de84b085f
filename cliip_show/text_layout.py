"""Width-aware wrapping and truncation of clipboard text into HUD lines.

Every character occupies either one or two columns: East Asian wide and
fullwidth characters take two, everything else (including control and combining
characters) takes one. Segments separated by ``\\n`` are packed greedily into
lines no wider than ``max_chars_per_line`` columns; lines past ``max_lines`` are
dropped and the last kept line receives the truncation marker.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from wcwidth import wcwidth

from cliip_show.errors import InvalidConfiguration

TRUNCATION_MARKER = "..."

MIN_CHARS_PER_LINE = 1
MAX_CHARS_PER_LINE = 500
MIN_LINES = 1
MAX_LINES = 20


def _check_int(name: str, value: object, minimum: int, maximum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfiguration(f"{name} must be an integer, got {value!r}")
    if not minimum <= value <= maximum:
        raise InvalidConfiguration(f"{name} {value} outside allowed range {minimum}..={maximum}")


@dataclass(frozen=True)
class LayoutLimits:
    max_chars_per_line: int = 100
    max_lines: int = 5

    def __post_init__(self) -> None:
        _check_int("max_chars_per_line", self.max_chars_per_line, MIN_CHARS_PER_LINE, MAX_CHARS_PER_LINE)
        _check_int("max_lines", self.max_lines, MIN_LINES, MAX_LINES)


@dataclass(frozen=True)
class DisplayLine:
    text: str
    width: int

    @classmethod
    def from_text(cls, text: str) -> "DisplayLine":
        return cls(text=text, width=display_width(text))


@dataclass(frozen=True)
class LayoutResult:
    lines: tuple[DisplayLine, ...] = ()
    truncated: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def max_width(self) -> int:
        return max((line.width for line in self.lines), default=0)

    @property
    def text(self) -> str:
        return "\n".join(line.text for line in self.lines)


def char_width(char: str) -> int:
    """Column width of a single character: 2 for wide/fullwidth, else 1."""
    return 2 if wcwidth(char) == 2 else 1


def display_width(text: str) -> int:
    return sum(char_width(char) for char in text)


def split_segments(text: str) -> list[str]:
    """Split on explicit line breaks, dropping trailing blank segments.

    Empty text has no segments. Non-empty text always keeps at least one, so
    whitespace-only text still lays out as a single empty line.
    """
    if not text:
        return []
    segments = [segment[:-1] if segment.endswith("\r") else segment for segment in text.split("\n")]
    while segments and not segments[-1].strip():
        segments.pop()
    return segments or [""]


def wrap_segment(segment: str, max_columns: int) -> list[DisplayLine]:
    """Greedily pack one segment into lines of at most `max_columns` columns.

    A character wider than the limit still gets a line of its own; characters
    are never split. An empty segment yields a single empty line.
    """
    if not segment:
        return [DisplayLine(text="", width=0)]
    lines: list[DisplayLine] = []
    current: list[str] = []
    current_width = 0
    for char in segment:
        width = char_width(char)
        if current and current_width + width > max_columns:
            lines.append(DisplayLine(text="".join(current), width=current_width))
            current = []
            current_width = 0
        current.append(char)
        current_width += width
    lines.append(DisplayLine(text="".join(current), width=current_width))
    return lines


def append_marker(line: DisplayLine, max_columns: int) -> DisplayLine:
    """Mark `line` as truncated, trimming trailing characters to make room."""
    marker_width = display_width(TRUNCATION_MARKER)
    if max_columns <= marker_width:
        return DisplayLine.from_text(TRUNCATION_MARKER[:max_columns])
    kept = list(line.text)
    width = line.width
    while kept and width + marker_width > max_columns:
        width -= char_width(kept.pop())
    return DisplayLine(text="".join(kept) + TRUNCATION_MARKER, width=width + marker_width)


def _wrap_all(segments: Iterable[str], limits: LayoutLimits) -> Iterable[DisplayLine]:
    for segment in segments:
        yield from wrap_segment(segment, limits.max_chars_per_line)


def layout(text: str, limits: LayoutLimits) -> LayoutResult:
    """Lay `text` out as at most `limits.max_lines` display lines."""
    kept: list[DisplayLine] = []
    truncated = False
    # Stop wrapping as soon as the budget is exceeded; huge clipboards stay cheap.
    for line in _wrap_all(split_segments(text), limits):
        if len(kept) == limits.max_lines:
            truncated = True
            break
        kept.append(line)
    if truncated:
        kept[-1] = append_marker(kept[-1], limits.max_chars_per_line)
    return LayoutResult(lines=tuple(kept), truncated=truncated)


def fit_layout(result: LayoutResult, max_columns: int, max_lines: int) -> LayoutResult:
    """Re-wrap and cut an existing layout so it fits a `max_columns` x `max_lines` block.

    Lines wider than the block are wrapped again; rows past `max_lines` are
    dropped and the last kept row receives the truncation marker. A layout that
    already fits is returned unchanged.
    """
    if max_columns < 1 or max_lines < 1:
        raise InvalidConfiguration(f"cannot fit layout into {max_columns}x{max_lines} block")
    if result.max_width <= max_columns and len(result.lines) <= max_lines:
        return result
    kept: list[DisplayLine] = []
    dropped = False
    for source in result.lines:
        rows = [source] if source.width <= max_columns else wrap_segment(source.text, max_columns)
        for row in rows:
            if len(kept) == max_lines:
                dropped = True
                break
            kept.append(row)
        if dropped:
            break
    if dropped:
        kept[-1] = append_marker(kept[-1], max_columns)
    return LayoutResult(lines=tuple(kept), truncated=result.truncated or dropped)
