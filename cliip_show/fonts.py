"""Font resolution helpers for the HUD rasterizer."""
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional, Sequence, Tuple

from PyQt6.QtGui import QFont, QFontDatabase, QGuiApplication
from PyQt6.QtWidgets import QApplication

_LOGGER = logging.getLogger("CliipShow.Fonts")

MONOSPACE_CANDIDATES: Tuple[str, ...] = (
    "Menlo",
    "DejaVu Sans Mono",
    "Noto Sans Mono",
    "Liberation Mono",
    "Consolas",
    "Courier New",
)

WIDE_FALLBACK_CANDIDATES: Tuple[str, ...] = (
    "Hiragino Sans",
    "Hiragino Kaku Gothic ProN",
    "Noto Sans CJK JP",
    "Noto Sans Mono CJK JP",
    "Source Han Sans",
    "Yu Gothic",
    "MS Gothic",
    "WenQuanYi Zen Hei",
    "Droid Sans Fallback",
)


def ensure_gui_application() -> QGuiApplication:
    """Return the running Qt application, creating one when absent.

    Font lookup and QPainter text drawing need an application object. A widget
    application is created so the overlay window can share it.
    """
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app  # type: ignore[return-value]


def _fonts_dir() -> Path:
    return Path(__file__).resolve().parent / "fonts"


def _find_font_case_insensitive(filename: str) -> Optional[Path]:
    fonts_dir = _fonts_dir()
    if not filename or not fonts_dir.exists():
        return None
    target = filename.lower()
    for child in fonts_dir.iterdir():
        if child.is_file() and child.name.lower() == target:
            return child
    return None


def _register_font_file(path: Path, label: str) -> Optional[str]:
    font_id = QFontDatabase.addApplicationFont(str(path))
    if font_id == -1:
        _LOGGER.warning("%s font file at %s could not be registered; falling back", label, path)
        return None
    families = QFontDatabase.applicationFontFamilies(font_id)
    if not families:
        _LOGGER.warning("%s font registered but no families reported; falling back", label)
        return None
    _LOGGER.debug("Using %s font family '%s' from %s", label, families[0], path)
    return families[0]


def _read_marker(marker: Path) -> list[str]:
    if not marker.exists():
        return []
    try:
        lines = marker.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        _LOGGER.warning("Failed to read font list at %s: %s", marker, exc)
        return []
    entries = []
    for raw_line in lines:
        candidate = raw_line.strip()
        if candidate and not candidate.startswith(("#", ";")):
            entries.append(candidate)
    return entries


def _installed_families() -> dict[str, str]:
    return {name.casefold(): name for name in QFontDatabase.families()}


def resolve_font_family() -> str:
    """Pick the monospace family used for HUD text.

    Entries of ``fonts/preferred_fonts.txt`` come first: a bundled font file is
    registered with Qt, any other entry must name an installed family. Then the
    fixed candidate list is tried, and finally Qt's system fixed-pitch font.
    """
    available = _installed_families()
    marker = _fonts_dir() / "preferred_fonts.txt"
    for entry in _read_marker(marker):
        font_path = _find_font_case_insensitive(entry)
        if font_path is not None:
            family = _register_font_file(font_path, f"Preferred font '{font_path.name}'")
            if family:
                return family
            continue
        installed = available.get(entry.casefold())
        if installed:
            _LOGGER.debug("Using preferred installed font family '%s'", installed)
            return installed
        _LOGGER.warning("Preferred font '%s' listed in %s but not found", entry, marker)

    for candidate in MONOSPACE_CANDIDATES:
        installed = available.get(candidate.casefold())
        if installed:
            _LOGGER.debug("Using installed font family '%s'", installed)
            return installed

    family = QFontDatabase.systemFont(QFontDatabase.SystemFont.FixedFont).family()
    _LOGGER.info("Monospace candidates unavailable; falling back to system fixed font %s", family)
    return family


def resolve_wide_fallback_families(base_family: str) -> Tuple[str, ...]:
    """Installed CJK-capable families used when the base font lacks wide glyphs."""
    available = _installed_families()
    seen = {base_family.casefold()}
    fallbacks: list[str] = []
    for candidate in WIDE_FALLBACK_CANDIDATES:
        installed = available.get(candidate.casefold())
        if installed and installed.casefold() not in seen:
            seen.add(installed.casefold())
            fallbacks.append(installed)
    if fallbacks:
        _LOGGER.debug("Wide glyph fallbacks enabled: %s", ", ".join(fallbacks))
    else:
        _LOGGER.debug("No wide glyph fallback fonts discovered; %s will be used alone", base_family)
    return tuple(fallbacks)


def apply_font_fallbacks(font: QFont, fallback_families: Sequence[str] | None) -> None:
    """Attach fallback families to a QFont so wide glyphs can be resolved."""
    if not fallback_families:
        return
    families: list[str] = []
    seen: set[str] = set()
    primary = font.family()
    if primary:
        families.append(primary)
        seen.add(primary.casefold())
    for fallback in fallback_families:
        name = (fallback or "").strip()
        if not name or name.casefold() in seen:
            continue
        seen.add(name.casefold())
        families.append(name)
    if len(families) > 1:
        font.setFamilies(families)


@lru_cache(maxsize=1)
def _resolved_families() -> Tuple[str, Tuple[str, ...]]:
    family = resolve_font_family()
    return family, resolve_wide_fallback_families(family)


def build_hud_font(pixel_size: int) -> QFont:
    """QFont for HUD text at ``pixel_size``, with wide-glyph fallbacks attached."""
    ensure_gui_application()
    family, fallbacks = _resolved_families()
    font = QFont(family)
    font.setStyleHint(QFont.StyleHint.Monospace)
    font.setPixelSize(max(1, pixel_size))
    font.setWeight(QFont.Weight.Normal)
    apply_font_fallbacks(font, fallbacks)
    return font
