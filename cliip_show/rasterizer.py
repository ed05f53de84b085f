"""Rasterize a LayoutResult into the HUD image.

Geometry is derived from a fixed set of base metrics multiplied by the style's
``hud_scale``. Text is placed on a column grid (one column per narrow
character, two per wide one) so the pixels agree with the widths computed by
``text_layout``. The font is shrunk when needed so a narrow glyph never
advances past its column, and layouts larger than the maximum box are wrapped
again or cut to fit it.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional, Tuple

from PyQt6.QtCore import QPointF, QRectF, Qt
from PyQt6.QtGui import QBrush, QColor, QFont, QFontMetricsF, QImage, QPainter, QPen

from cliip_show.errors import RenderFailure
from cliip_show.fonts import build_hud_font, ensure_gui_application
from cliip_show.pixel_image import RGBA, PixelImage
from cliip_show.png_codec import from_qimage
from cliip_show.settings import HudBackgroundColor, HudPosition, StyleConfig
from cliip_show.text_layout import LayoutResult, char_width, fit_layout

_LOGGER = logging.getLogger("CliipShow.Rasterizer")

BASE_MIN_WIDTH = 200.0
BASE_MIN_HEIGHT = 52.0
BASE_MAX_WIDTH = 820.0
BASE_MAX_HEIGHT = 280.0
BASE_H_PADDING = 16.0
BASE_V_PADDING = 10.0
BASE_ICON_SIZE = 22.0
BASE_ICON_GAP = 8.0
BASE_COLUMN_WIDTH = 9.6
BASE_LINE_HEIGHT = 22.0
BASE_CORNER_RADIUS = 14.0
BASE_BORDER_WIDTH = 1.0
BASE_TEXT_PIXEL_SIZE = 18.0
BASE_SCREEN_MARGIN = 24.0
MIN_SCREEN_MARGIN = 12
MAX_SCREEN_MARGIN = 80

BACKGROUND_RGBA: Mapping[HudBackgroundColor, RGBA] = {
    HudBackgroundColor.DEFAULT: (0, 0, 0, 199),
    HudBackgroundColor.YELLOW: (110, 87, 10, 230),
    HudBackgroundColor.BLUE: (20, 56, 135, 230),
    HudBackgroundColor.GREEN: (20, 89, 56, 230),
    HudBackgroundColor.RED: (120, 36, 36, 230),
    HudBackgroundColor.PURPLE: (92, 41, 120, 230),
}
DEFAULT_BORDER_ALPHA = 36
NAMED_BORDER_ALPHA = 51
TEXT_RGBA: RGBA = (255, 255, 255, 255)
ICON_RGBA: RGBA = (255, 255, 255, 230)


@dataclass(frozen=True)
class HudMetrics:
    """Base metrics after scaling; all values in device pixels."""

    min_width: float
    min_height: float
    max_width: float
    max_height: float
    h_padding: float
    v_padding: float
    icon_size: float
    icon_gap: float
    column_width: float
    line_height: float
    corner_radius: float
    border_width: float
    text_pixel_size: int
    screen_margin: int

    @classmethod
    def for_scale(cls, scale: float) -> "HudMetrics":
        return cls(
            min_width=BASE_MIN_WIDTH * scale,
            min_height=BASE_MIN_HEIGHT * scale,
            max_width=BASE_MAX_WIDTH * scale,
            max_height=BASE_MAX_HEIGHT * scale,
            h_padding=BASE_H_PADDING * scale,
            v_padding=BASE_V_PADDING * scale,
            icon_size=BASE_ICON_SIZE * scale,
            icon_gap=BASE_ICON_GAP * scale,
            column_width=BASE_COLUMN_WIDTH * scale,
            line_height=BASE_LINE_HEIGHT * scale,
            corner_radius=BASE_CORNER_RADIUS * scale,
            border_width=BASE_BORDER_WIDTH * scale,
            text_pixel_size=max(1, int(round(BASE_TEXT_PIXEL_SIZE * scale))),
            screen_margin=screen_margin(scale),
        )

    def text_capacity(self) -> Tuple[int, int]:
        """Columns and rows that fit inside the largest allowed box."""
        text_width = self.max_width - 2 * self.h_padding - self.icon_size - self.icon_gap
        text_height = self.max_height - 2 * self.v_padding
        columns = int(math.floor(text_width / self.column_width + 1e-9))
        rows = int(math.floor(text_height / self.line_height + 1e-9))
        return max(1, columns), max(1, rows)


def screen_margin(scale: float) -> int:
    margin = int(round(BASE_SCREEN_MARGIN * scale))
    return max(MIN_SCREEN_MARGIN, min(MAX_SCREEN_MARGIN, margin))


def box_size(layout: LayoutResult, metrics: HudMetrics) -> Tuple[int, int]:
    """Whole-pixel HUD box size for ``layout``, clamped between the minimum and maximum box."""
    columns = max(1, layout.max_width)
    lines = max(1, len(layout.lines))
    width = max(
        metrics.min_width,
        columns * metrics.column_width + 2 * metrics.h_padding + metrics.icon_size + metrics.icon_gap,
    )
    height = max(metrics.min_height, lines * metrics.line_height + 2 * metrics.v_padding)
    width = min(width, metrics.max_width)
    height = min(height, metrics.max_height)
    return int(math.ceil(width - 1e-9)), int(math.ceil(height - 1e-9))


def anchor_box(
    container_width: int,
    container_height: int,
    box_width: int,
    box_height: int,
    position: HudPosition,
    margin: int,
) -> Tuple[int, int]:
    """Top-left corner of a box anchored inside a container.

    Horizontally centered; vertically at ``margin`` from the top, centered, or at
    ``margin`` from the bottom. The result is clamped so the box starts inside
    the container.
    """
    x = (container_width - box_width) // 2
    if position is HudPosition.TOP:
        y = margin
    elif position is HudPosition.BOTTOM:
        y = container_height - box_height - margin
    else:
        y = (container_height - box_height) // 2
    x = max(0, min(x, container_width - box_width))
    y = max(0, min(y, container_height - box_height))
    return x, y


def background_rgba(color: HudBackgroundColor) -> RGBA:
    return BACKGROUND_RGBA[color]


def border_rgba(color: HudBackgroundColor) -> RGBA:
    alpha = DEFAULT_BORDER_ALPHA if color is HudBackgroundColor.DEFAULT else NAMED_BORDER_ALPHA
    return (255, 255, 255, alpha)


def _qcolor(rgba: RGBA) -> QColor:
    return QColor(rgba[0], rgba[1], rgba[2], rgba[3])


def _paint_box(painter: QPainter, rect: QRectF, metrics: HudMetrics, color: HudBackgroundColor) -> None:
    inset = metrics.border_width / 2.0
    outline = rect.adjusted(inset, inset, -inset, -inset)
    pen = QPen(_qcolor(border_rgba(color)))
    pen.setWidthF(metrics.border_width)
    painter.setPen(pen)
    painter.setBrush(QBrush(_qcolor(background_rgba(color))))
    painter.drawRoundedRect(outline, metrics.corner_radius, metrics.corner_radius)


def _paint_icon(painter: QPainter, left: float, top: float, scale: float, size: float) -> None:
    """Clipboard glyph: a board outline, the clip on top and two text strokes."""
    color = _qcolor(ICON_RGBA)
    pen = QPen(color)
    pen.setWidthF(max(1.0, 1.5 * scale))
    painter.setPen(pen)
    painter.setBrush(Qt.BrushStyle.NoBrush)
    board = QRectF(left + 3 * scale, top + 3 * scale, size - 6 * scale, size - 4 * scale)
    painter.drawRoundedRect(board, 2 * scale, 2 * scale)

    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QBrush(color))
    clip = QRectF(left + 7 * scale, top + 1 * scale, size - 14 * scale, 4 * scale)
    painter.drawRoundedRect(clip, 1.5 * scale, 1.5 * scale)

    painter.setPen(pen)
    painter.setBrush(Qt.BrushStyle.NoBrush)
    for offset in (10.0, 14.0):
        y = top + offset * scale
        painter.drawLine(QPointF(left + 7 * scale, y), QPointF(left + size - 7 * scale, y))


@lru_cache(maxsize=16)
def _fitted_pixel_size(pixel_size: int, column_width: float) -> int:
    size = pixel_size
    advance = QFontMetricsF(build_hud_font(size)).horizontalAdvance("M")
    if advance > column_width:
        size = max(1, int(size * column_width / advance))
    while size > 1 and QFontMetricsF(build_hud_font(size)).horizontalAdvance("M") > column_width:
        size -= 1
    if size != pixel_size:
        _LOGGER.debug("HUD font shrunk from %dpx to %dpx to fit %.2fpx columns", pixel_size, size, column_width)
    return size


def hud_font(metrics: HudMetrics) -> QFont:
    """HUD font whose narrow glyph advance fits one grid column."""
    ensure_gui_application()
    return build_hud_font(_fitted_pixel_size(metrics.text_pixel_size, metrics.column_width))


def _paint_text(painter: QPainter, layout: LayoutResult, left: float, top: float, metrics: HudMetrics) -> None:
    font = hud_font(metrics)
    painter.setFont(font)
    painter.setPen(_qcolor(TEXT_RGBA))
    font_metrics = QFontMetricsF(font)
    glyph_height = font_metrics.ascent() + font_metrics.descent()
    baseline_offset = (metrics.line_height - glyph_height) / 2.0 + font_metrics.ascent()
    for row, line in enumerate(layout.lines):
        baseline = top + row * metrics.line_height + baseline_offset
        column = 0
        for char in line.text:
            if not char.isspace():
                painter.drawText(QPointF(left + column * metrics.column_width, baseline), char)
            column += char_width(char)


def render(
    layout: LayoutResult,
    style: StyleConfig,
    *,
    canvas: Optional[Tuple[int, int]] = None,
) -> PixelImage:
    """Draw the HUD for ``layout``.

    Without ``canvas`` the image is exactly the HUD box. With ``canvas=(w, h)``
    the box is anchored inside a transparent image of that size.
    Lines that do not fit the largest allowed box are wrapped again or cut
    with the truncation marker.
    """
    metrics = HudMetrics.for_scale(style.hud_scale)
    visible = fit_layout(layout, *metrics.text_capacity())
    box_width, box_height = box_size(visible, metrics)
    if canvas is None:
        image_width, image_height = box_width, box_height
        origin_x, origin_y = 0, 0
    else:
        image_width, image_height = canvas
        if image_width <= 0 or image_height <= 0:
            raise RenderFailure(f"invalid canvas size {image_width}x{image_height}")
        origin_x, origin_y = anchor_box(
            image_width, image_height, box_width, box_height, style.hud_position, metrics.screen_margin
        )

    ensure_gui_application()
    image = QImage(image_width, image_height, QImage.Format.Format_ARGB32_Premultiplied)
    if image.isNull():
        raise RenderFailure(f"could not allocate {image_width}x{image_height} image")
    image.fill(QColor(0, 0, 0, 0))

    painter = QPainter(image)
    try:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
        box = QRectF(origin_x, origin_y, box_width, box_height)
        _paint_box(painter, box, metrics, style.hud_background_color)

        lines = max(1, len(visible.lines))
        block_top = origin_y + (box_height - lines * metrics.line_height) / 2.0
        icon_left = origin_x + metrics.h_padding
        icon_top = block_top + (metrics.line_height - metrics.icon_size) / 2.0
        _paint_icon(painter, icon_left, icon_top, style.hud_scale, metrics.icon_size)

        text_left = icon_left + metrics.icon_size + metrics.icon_gap
        _paint_text(painter, visible, text_left, block_top, metrics)
    finally:
        painter.end()

    _LOGGER.debug(
        "Rendered HUD box %dx%d (lines=%d columns=%d truncated=%s) into %dx%d image",
        box_width,
        box_height,
        len(visible.lines),
        visible.max_width,
        visible.truncated,
        image_width,
        image_height,
    )
    return from_qimage(image)
