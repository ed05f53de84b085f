import pytest
from PyQt6.QtCore import QRect, Qt

from cliip_show.overlay_window import HudOverlayWindow
from cliip_show.pixel_image import PixelImage
from cliip_show.settings import HudPosition, StyleConfig

pytestmark = pytest.mark.pyqt_required


@pytest.fixture
def window(qt_app):
    widget = HudOverlayWindow(screen_geometry_fn=lambda: QRect(0, 0, 1000, 800))
    yield widget
    widget.dismiss()
    widget.deleteLater()


def test_window_is_click_through_and_frameless(window):
    flags = window.windowFlags()
    assert flags & Qt.WindowType.FramelessWindowHint
    assert flags & Qt.WindowType.WindowStaysOnTopHint
    assert window.testAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
    assert window.testAttribute(Qt.WidgetAttribute.WA_TranslucentBackground)


@pytest.mark.parametrize(
    ("position", "expected_y"),
    [(HudPosition.TOP, 24), (HudPosition.CENTER, 350), (HudPosition.BOTTOM, 676)],
)
def test_present_anchors_on_screen(window, position, expected_y):
    image = PixelImage.solid(600, 100, (0, 0, 0, 199))
    window.present(image, StyleConfig(hud_position=position))
    assert window.isVisible()
    assert window.has_image
    assert (window.width(), window.height()) == (600, 100)
    assert (window.x(), window.y()) == (200, expected_y)


def test_present_offsets_by_available_geometry(qt_app):
    widget = HudOverlayWindow(screen_geometry_fn=lambda: QRect(50, 30, 1000, 800))
    try:
        widget.present(PixelImage.solid(600, 100), StyleConfig(hud_position=HudPosition.TOP))
        assert (widget.x(), widget.y()) == (250, 54)
    finally:
        widget.dismiss()
        widget.deleteLater()


def test_dismiss_hides_and_drops_image(window):
    window.present(PixelImage.solid(200, 52), StyleConfig())
    window.dismiss()
    assert not window.isVisible()
    assert not window.has_image
