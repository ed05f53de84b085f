"""Pixel-exact comparison of two rendered images."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from cliip_show.errors import DimensionMismatch
from cliip_show.pixel_image import BYTES_PER_PIXEL, RGBA, PixelImage

HIGHLIGHT_RGBA: RGBA = (255, 0, 0, 255)


@dataclass(frozen=True)
class DiffReport:
    diff_pixel_count: int
    total_pixel_count: int
    highlight: Optional[PixelImage] = None

    @property
    def identical(self) -> bool:
        return self.diff_pixel_count == 0

    def within_tolerance(self, max_diff_permille: int) -> bool:
        """Acceptance check applied by callers on top of the raw counts."""
        return self.diff_pixel_count * 1000 <= self.total_pixel_count * max_diff_permille

    def summary(self) -> str:
        return f"diff_pixels={self.diff_pixel_count} total_pixels={self.total_pixel_count}"


def diff(baseline: PixelImage, current: PixelImage, *, highlight: bool = False) -> DiffReport:
    """Count pixels whose RGBA channels are not all equal.

    Raises DimensionMismatch when the images differ in size. With
    ``highlight=True`` the report carries a copy of ``current`` in which every
    differing pixel is painted HIGHLIGHT_RGBA.
    """
    if baseline.size != current.size:
        raise DimensionMismatch(baseline.size, current.size)

    diff_pixels = 0
    marked = bytearray(current.data) if highlight else None
    marker = bytes(HIGHLIGHT_RGBA)
    stride = current.stride
    for y in range(current.height):
        row_start = y * stride
        base_row = baseline.data[row_start : row_start + stride]
        cur_row = current.data[row_start : row_start + stride]
        if base_row == cur_row:
            continue
        for offset in range(0, stride, BYTES_PER_PIXEL):
            if base_row[offset : offset + BYTES_PER_PIXEL] == cur_row[offset : offset + BYTES_PER_PIXEL]:
                continue
            diff_pixels += 1
            if marked is not None:
                start = row_start + offset
                marked[start : start + BYTES_PER_PIXEL] = marker

    highlight_image = None
    if marked is not None:
        highlight_image = PixelImage(width=current.width, height=current.height, data=bytes(marked))
    return DiffReport(
        diff_pixel_count=diff_pixels,
        total_pixel_count=current.pixel_count,
        highlight=highlight_image,
    )
