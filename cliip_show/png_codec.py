"""Conversion between PixelImage and Qt images, plus PNG file I/O."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from PyQt6.QtCore import QBuffer, QByteArray, QIODevice
from PyQt6.QtGui import QImage

from cliip_show.errors import DecodeFailure, RenderFailure
from cliip_show.pixel_image import BYTES_PER_PIXEL, PixelImage

_LOGGER = logging.getLogger("CliipShow.PngCodec")

PathLike = Union[str, Path]


def from_qimage(image: QImage) -> PixelImage:
    """Copy a QImage of any format into a non-premultiplied RGBA PixelImage."""
    if image.isNull():
        raise RenderFailure("cannot convert a null image")
    rgba = image.convertToFormat(QImage.Format.Format_RGBA8888)
    width = rgba.width()
    height = rgba.height()
    bytes_per_line = rgba.bytesPerLine()
    pointer = rgba.constBits()
    raw = pointer.asstring(rgba.sizeInBytes())
    row_bytes = width * BYTES_PER_PIXEL
    if bytes_per_line == row_bytes:
        data = bytes(raw[: row_bytes * height])
    else:
        data = b"".join(
            raw[y * bytes_per_line : y * bytes_per_line + row_bytes] for y in range(height)
        )
    return PixelImage(width=width, height=height, data=data)


def to_qimage(image: PixelImage) -> QImage:
    """Build a QImage that owns its own copy of the pixel data."""
    view = QImage(
        image.data,
        image.width,
        image.height,
        image.stride,
        QImage.Format.Format_RGBA8888,
    )
    # The constructor above borrows `image.data`; detach before it goes away.
    return view.copy()


def encode_png(image: PixelImage) -> bytes:
    buffer_data = QByteArray()
    buffer = QBuffer(buffer_data)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    try:
        if not to_qimage(image).save(buffer, "PNG"):
            raise RenderFailure("failed to encode PNG data")
    finally:
        buffer.close()
    return bytes(buffer_data.data())


def write_png(image: PixelImage, path: PathLike) -> Path:
    """Encode `image` and write it to `path`, creating parent directories."""
    target = Path(path)
    payload = encode_png(image)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(payload)
    except OSError as exc:
        raise RenderFailure(f"failed to write PNG: {target}: {exc}") from exc
    _LOGGER.debug("Wrote %dx%d PNG to %s (%d bytes)", image.width, image.height, target, len(payload))
    return target


def read_png(path: PathLike, *, label: str = "image") -> PixelImage:
    """Decode an image file; raises DecodeFailure if it cannot be read or parsed."""
    source = Path(path)
    try:
        payload = source.read_bytes()
    except OSError as exc:
        raise DecodeFailure(f"failed to load {label} PNG: {source}: {exc}") from exc
    image = QImage()
    if not image.loadFromData(payload):
        raise DecodeFailure(f"failed to load {label} PNG: {source}: not a readable image")
    return from_qimage(image)
