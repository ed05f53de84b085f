"""Frameless always-on-top surface that shows the rendered HUD image."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from PyQt6.QtCore import QRect, Qt
from PyQt6.QtGui import QGuiApplication, QPainter, QPixmap
from PyQt6.QtWidgets import QWidget

from cliip_show.pixel_image import PixelImage
from cliip_show.png_codec import to_qimage
from cliip_show.rasterizer import anchor_box, screen_margin
from cliip_show.settings import StyleConfig

_LOGGER = logging.getLogger("CliipShow.Overlay")


def primary_available_geometry() -> QRect:
    screen = QGuiApplication.primaryScreen()
    if screen is None:
        return QRect()
    return screen.availableGeometry()


class HudOverlayWindow(QWidget):
    """Click-through translucent window; never takes focus."""

    def __init__(self, screen_geometry_fn: Optional[Callable[[], QRect]] = None) -> None:
        super().__init__(None)
        self._screen_geometry_fn = screen_geometry_fn or primary_available_geometry
        self._pixmap: Optional[QPixmap] = None
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint
            | Qt.WindowType.WindowStaysOnTopHint
            | Qt.WindowType.Tool
            | Qt.WindowType.WindowTransparentForInput
            | Qt.WindowType.WindowDoesNotAcceptFocus
        )
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground, True)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        self.setAttribute(Qt.WidgetAttribute.WA_ShowWithoutActivating, True)
        self.setWindowTitle("cliip-show")

    @property
    def has_image(self) -> bool:
        return self._pixmap is not None

    def present(self, image: PixelImage, style: StyleConfig) -> None:
        self._pixmap = QPixmap.fromImage(to_qimage(image))
        self.setFixedSize(image.width, image.height)
        geometry = self._screen_geometry_fn()
        if geometry.isEmpty():
            _LOGGER.debug("No screen geometry available; placing HUD at origin")
            x, y = 0, 0
        else:
            x, y = anchor_box(
                geometry.width(),
                geometry.height(),
                image.width,
                image.height,
                style.hud_position,
                screen_margin(style.hud_scale),
            )
            x += geometry.x()
            y += geometry.y()
        self.move(x, y)
        self.show()
        self.raise_()
        self.update()

    def dismiss(self) -> None:
        self.hide()
        self._pixmap = None

    def paintEvent(self, event) -> None:  # type: ignore[override]
        pixmap = self._pixmap
        if pixmap is None:
            return
        painter = QPainter(self)
        try:
            painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_Source)
            painter.drawPixmap(0, 0, pixmap)
        finally:
            painter.end()
