"""
PIL IO module.

Adapters between Pillow images and pixstack rasters, plus the PNG codec used
for layer blobs and thumbnails in storage records.
"""
import io
import logging
from typing import Any, Optional

import numpy as np
from attrs import define, field
from PIL import Image

from pixstack.api.numpy_io import ArraySource
from pixstack.api.protocols import RasterSource

logger = logging.getLogger(__name__)


@define(frozen=True)
class PILSource:
    """
    Raster source backed by a decoded PIL image.

    Images of any mode are converted to RGBA on read; palette and grayscale
    transparency are preserved by Pillow's conversion.
    """

    image: Image.Image = field(eq=False)

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def to_rgba(self) -> np.ndarray:
        image = self.image
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return np.array(image, dtype=np.uint8)


def as_source(value: Any) -> RasterSource:
    """
    Wrap a decoded image into a :py:class:`RasterSource`.

    :param value: PIL image, NumPy array, or an object already implementing
        the protocol.
    :raises TypeError: for anything else.
    """
    if isinstance(value, Image.Image):
        return PILSource(value)
    if isinstance(value, np.ndarray):
        return ArraySource(value)
    if isinstance(value, RasterSource):
        return value
    raise TypeError(
        "Expected PIL.Image, ndarray or RasterSource, got %s" % type(value).__name__
    )


def topil(array: np.ndarray) -> Image.Image:
    """Convert an ``(height, width, 4)`` uint8 array to an RGBA image."""
    return Image.fromarray(np.ascontiguousarray(array, dtype=np.uint8))


def encode_png(source: RasterSource) -> bytes:
    """Encode a raster source as PNG bytes."""
    with io.BytesIO() as f:
        topil(source.to_rgba()).save(f, format="PNG")
        return f.getvalue()


def decode_png(blob: bytes) -> PILSource:
    """Decode image bytes (PNG or any format Pillow reads)."""
    image = Image.open(io.BytesIO(blob))
    image.load()
    logger.debug("Decoded %s image %dx%d" % (image.mode, image.width, image.height))
    return PILSource(image)


def make_thumbnail(image: Image.Image, size: int) -> Optional[bytes]:
    """
    Encode a PNG thumbnail whose longest edge is at most ``size``.

    Returns None when ``size`` is not positive.
    """
    if size <= 0:
        return None
    thumbnail = image.copy()
    thumbnail.thumbnail((size, size))
    with io.BytesIO() as f:
        thumbnail.save(f, format="PNG")
        return f.getvalue()
