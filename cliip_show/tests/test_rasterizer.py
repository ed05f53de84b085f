import pytest
from PyQt6.QtGui import QFontMetricsF

from cliip_show.png_codec import encode_png, from_qimage, read_png, to_qimage, write_png
from cliip_show.errors import DecodeFailure
from cliip_show.rasterizer import (
    BACKGROUND_RGBA,
    HudMetrics,
    anchor_box,
    border_rgba,
    box_size,
    hud_font,
    render,
    screen_margin,
)
from cliip_show.settings import HudBackgroundColor, HudPosition, StyleConfig
from cliip_show.text_layout import TRUNCATION_MARKER, LayoutLimits, LayoutResult, fit_layout, layout

pytestmark = pytest.mark.pyqt_required


def _close(actual, expected, tolerance=2):
    return all(abs(a - e) <= tolerance for a, e in zip(actual, expected))


def _layout(text: str) -> LayoutResult:
    return layout(text, LayoutLimits(max_chars_per_line=100, max_lines=5))


def test_box_size_single_line():
    metrics = HudMetrics.for_scale(1.0)
    # 15 columns * 9.6 + 2 * 16 + 22 + 8
    assert box_size(_layout("hello clipboard"), metrics) == (206, 52)


def test_box_size_has_minimum():
    metrics = HudMetrics.for_scale(1.0)
    assert box_size(LayoutResult(), metrics) == (200, 52)
    assert box_size(_layout("hi"), metrics) == (200, 52)


def test_box_size_grows_with_lines_and_scale():
    assert box_size(_layout("line1\nline2\nline3"), HudMetrics.for_scale(1.0)) == (200, 86)
    assert box_size(LayoutResult(), HudMetrics.for_scale(2.0)) == (400, 104)


def test_screen_margin_scales_within_bounds():
    assert screen_margin(0.5) == 12
    assert screen_margin(1.0) == 24
    assert screen_margin(2.0) == 48


@pytest.mark.parametrize(
    ("position", "expected"),
    [
        (HudPosition.TOP, (200, 24)),
        (HudPosition.CENTER, (200, 350)),
        (HudPosition.BOTTOM, (200, 676)),
    ],
)
def test_anchor_box_positions(position, expected):
    assert anchor_box(1000, 800, 600, 100, position, 24) == expected


def test_anchor_box_clamps_oversized_box():
    assert anchor_box(100, 50, 300, 80, HudPosition.BOTTOM, 24) == (0, 0)


def test_render_matches_box_size_and_is_deterministic(qt_app):
    result = _layout("hello clipboard")
    style = StyleConfig()
    first = render(result, style)
    second = render(result, style)
    assert first.size == box_size(result, HudMetrics.for_scale(1.0))
    assert first.data == second.data


def test_render_corners_are_transparent(qt_app):
    image = render(_layout("hello"), StyleConfig())
    for x, y in [(0, 0), (image.width - 1, 0), (0, image.height - 1), (image.width - 1, image.height - 1)]:
        assert image.pixel(x, y)[3] == 0


@pytest.mark.parametrize("color", list(HudBackgroundColor))
def test_render_background_color(qt_app, color):
    image = render(_layout("hello"), StyleConfig(hud_background_color=color))
    sample = image.pixel(8, image.height // 2)
    assert _close(sample, BACKGROUND_RGBA[color])


def test_border_alpha_depends_on_color():
    assert border_rgba(HudBackgroundColor.DEFAULT) == (255, 255, 255, 36)
    assert border_rgba(HudBackgroundColor.BLUE) == (255, 255, 255, 51)


def test_render_draws_clipboard_icon(qt_app):
    image = render(_layout("hello"), StyleConfig())
    icon_pixels = [image.pixel(x, y) for x in range(16, 38) for y in range(15, 37)]
    assert max(pixel[0] for pixel in icon_pixels) > 150


def test_render_scaled_box(qt_app):
    image = render(LayoutResult(), StyleConfig(hud_scale=2.0))
    assert image.size == (400, 104)


def test_render_on_canvas_anchors_box(qt_app):
    result = _layout("hello")
    style = StyleConfig(hud_position=HudPosition.TOP)
    image = render(result, style, canvas=(400, 300))
    assert image.size == (400, 300)
    # Box is 200x52, centered horizontally, 24px from the top.
    assert image.pixel(200, 10)[3] == 0
    assert image.pixel(50, 50)[3] == 0
    assert _close(image.pixel(100 + 8, 24 + 26), BACKGROUND_RGBA[HudBackgroundColor.DEFAULT])
    assert image.pixel(200, 24 + 52 + 5)[3] == 0


def test_png_roundtrip_preserves_pixels(qt_app, tmp_path):
    image = render(_layout("hello"), StyleConfig(hud_background_color=HudBackgroundColor.GREEN))
    path = write_png(image, tmp_path / "nested" / "hud.png")
    assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"
    assert read_png(path) == image
    assert from_qimage(to_qimage(image)) == image
    assert encode_png(image) == encode_png(image)


def test_read_png_rejects_garbage(qt_app, tmp_path):
    bogus = tmp_path / "bogus.png"
    bogus.write_bytes(b"not an image")
    with pytest.raises(DecodeFailure):
        read_png(bogus)
    with pytest.raises(DecodeFailure):
        read_png(tmp_path / "missing.png")


@pytest.mark.parametrize("scale", [0.5, 1.0, 1.5, 2.0])
def test_hud_font_advance_fits_column(qt_app, scale):
    metrics = HudMetrics.for_scale(scale)
    font = hud_font(metrics)
    font_metrics = QFontMetricsF(font)
    assert font_metrics.horizontalAdvance("M") <= metrics.column_width
    assert font_metrics.horizontalAdvance("a" * 10) <= 10 * metrics.column_width + 1e-6


@pytest.mark.parametrize("scale", [0.5, 1.0, 2.0])
def test_text_capacity_is_scale_invariant(scale):
    assert HudMetrics.for_scale(scale).text_capacity() == (78, 11)


def test_box_size_is_clamped_to_maximum():
    widest = layout("\n".join(["a" * 500] * 20), LayoutLimits(max_chars_per_line=500, max_lines=20))
    assert box_size(widest, HudMetrics.for_scale(1.0)) == (820, 280)
    assert box_size(widest, HudMetrics.for_scale(2.0)) == (1640, 560)


def test_render_fits_oversized_layout_into_maximum_box(qt_app):
    source = layout("\n".join(["b" * 500] * 3), LayoutLimits(max_chars_per_line=500, max_lines=20))
    metrics = HudMetrics.for_scale(1.0)
    visible = fit_layout(source, *metrics.text_capacity())
    assert visible.max_width <= 78
    assert len(visible.lines) == 11
    assert visible.lines[-1].text.endswith(TRUNCATION_MARKER)
    assert visible.truncated is True

    image = render(source, StyleConfig())
    assert image.size == box_size(visible, metrics)
    assert image.width <= 820
    assert image.height <= 280


def test_render_default_limits_stay_on_screen(qt_app):
    source = layout("c" * 100, LayoutLimits())
    image = render(source, StyleConfig())
    # 100 columns are wrapped to 78 + 22 inside the 820px box.
    assert image.size == (811, 64)
