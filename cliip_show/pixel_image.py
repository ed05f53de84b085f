"""Immutable RGBA pixel buffer passed between render, diff and file stages."""
from __future__ import annotations

from dataclasses import dataclass

RGBA = tuple[int, int, int, int]

BYTES_PER_PIXEL = 4


@dataclass(frozen=True)
class PixelImage:
    """Row-major, non-premultiplied RGBA8888 image."""

    width: int
    height: int
    data: bytes

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"negative image size {self.width}x{self.height}")
        expected = self.width * self.height * BYTES_PER_PIXEL
        if len(self.data) != expected:
            raise ValueError(
                f"pixel buffer holds {len(self.data)} bytes, expected {expected} for {self.width}x{self.height}"
            )

    @classmethod
    def solid(cls, width: int, height: int, rgba: RGBA = (0, 0, 0, 0)) -> "PixelImage":
        return cls(width=width, height=height, data=bytes(rgba) * (width * height))

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def stride(self) -> int:
        return self.width * BYTES_PER_PIXEL

    def _offset(self, x: int, y: int) -> int:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"pixel ({x}, {y}) outside {self.width}x{self.height} image")
        return (y * self.width + x) * BYTES_PER_PIXEL

    def pixel(self, x: int, y: int) -> RGBA:
        offset = self._offset(x, y)
        r, g, b, a = self.data[offset : offset + BYTES_PER_PIXEL]
        return (r, g, b, a)

    def row(self, y: int) -> bytes:
        start = y * self.stride
        return self.data[start : start + self.stride]

    def with_pixel(self, x: int, y: int, rgba: RGBA) -> "PixelImage":
        """Return a copy with one pixel replaced."""
        offset = self._offset(x, y)
        buffer = bytearray(self.data)
        buffer[offset : offset + BYTES_PER_PIXEL] = bytes(rgba)
        return PixelImage(width=self.width, height=self.height, data=bytes(buffer))
