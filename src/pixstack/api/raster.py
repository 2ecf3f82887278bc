"""
Raster buffer module.

:py:class:`RasterBuffer` owns the RGBA samples of one layer. Samples are
stored as ``(height, width, 4)`` uint8; the alpha channel is exposed in
[0, 1] through :py:class:`~pixstack.api.color.RGBA`.

Example usage::

    from pixstack.api.raster import RasterBuffer

    buffer = RasterBuffer(64, 32)
    buffer.write_pixel(0, 0, (255, 0, 0, 1.0))
    snapshot = buffer.clone()

    pixels = buffer.numpy()         # float32 RGBA in [0, 1]
    image = buffer.topil()          # PIL Image in RGBA mode
    buffer.copy_from(snapshot)      # restore
"""

import logging
from typing import Any, Optional, Union

import numpy as np
from PIL import Image

from pixstack.api import pil_io
from pixstack.api.color import RGB, RGBA
from pixstack.exceptions import DimensionMismatchError, OutOfBoundsError

logger = logging.getLogger(__name__)


class RasterBuffer:
    """
    Owned 2D pixel buffer.

    Dimensions are fixed at creation. Pixel data changes only through
    :py:meth:`write_pixel`, :py:meth:`write`, :py:meth:`load` and
    :py:meth:`copy_from`.

    :param width: Width in pixels, greater than 0.
    :param height: Height in pixels, greater than 0.
    """

    __slots__ = ("_width", "_height", "_data")

    def __init__(self, width: int, height: int):
        width, height = int(width), int(height)
        if width <= 0 or height <= 0:
            raise ValueError("Invalid buffer size: %dx%d" % (width, height))
        self._width = width
        self._height = height
        self._data = np.zeros((height, width, 4), dtype=np.uint8)

    @classmethod
    def from_source(cls, source: Any) -> "RasterBuffer":
        """
        Create a buffer from a decoded image.

        :param source: :py:class:`~pixstack.api.protocols.RasterSource`,
            PIL image or NumPy array.
        """
        source = pil_io.as_source(source)
        buffer = cls(source.width, source.height)
        buffer.load(source)
        return buffer

    @property
    def width(self) -> int:
        """Width in pixels."""
        return self._width

    @property
    def height(self) -> int:
        """Height in pixels."""
        return self._height

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) tuple."""
        return self._width, self._height

    def _check_bounds(self, x: int, y: int) -> None:
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise OutOfBoundsError(
                "Pixel (%d, %d) is outside of %dx%d buffer"
                % (x, y, self._width, self._height)
            )

    def _check_shape(self, shape: tuple[int, ...]) -> None:
        if tuple(shape[:2]) != (self._height, self._width):
            raise DimensionMismatchError(
                "Expected %dx%d pixels, got %dx%d"
                % (self._width, self._height, shape[1], shape[0])
            )

    def read_pixel(self, x: int, y: int) -> RGBA:
        """
        Read one pixel.

        :raises OutOfBoundsError: if (x, y) is outside of the buffer.
        """
        self._check_bounds(x, y)
        r, g, b, a = (int(v) for v in self._data[y, x])
        return RGBA(r, g, b, a / 255.0)

    def write_pixel(self, x: int, y: int, value: Union[RGBA, RGB, tuple]) -> None:
        """
        Write one pixel.

        :raises OutOfBoundsError: if (x, y) is outside of the buffer.
        """
        self._check_bounds(x, y)
        color = RGBA.coerce(value)
        self._data[y, x] = (color.r, color.g, color.b, int(round(color.a * 255)))

    def write(self, array: np.ndarray) -> None:
        """
        Replace every sample with the given ``(height, width, 4)`` array.

        Floating point arrays are taken to be in [0, 1].

        :raises DimensionMismatchError: if the array size differs.
        """
        array = np.asarray(array)
        if array.ndim != 3 or array.shape[2] != 4:
            raise ValueError("Expected RGBA array, got shape %r" % (array.shape,))
        self._check_shape(array.shape)
        if np.issubdtype(array.dtype, np.floating):
            array = np.rint(np.clip(array, 0.0, 1.0) * 255.0)
        self._data[...] = array.astype(np.uint8, copy=False)

    def load(self, source: Any) -> None:
        """
        Bulk copy from an external decoded image of identical size.

        :raises DimensionMismatchError: if the image size differs.
        """
        source = pil_io.as_source(source)
        if (source.width, source.height) != self.size:
            raise DimensionMismatchError(
                "Cannot load %dx%d image into %dx%d buffer"
                % (source.width, source.height, self._width, self._height)
            )
        self._data[...] = source.to_rgba()

    def copy_from(self, other: "RasterBuffer") -> None:
        """
        Overwrite this buffer with the samples of ``other``.

        :raises DimensionMismatchError: if the sizes differ.
        """
        if other.size != self.size:
            raise DimensionMismatchError(
                "Cannot copy %dx%d buffer into %dx%d buffer"
                % (other.width, other.height, self._width, self._height)
            )
        np.copyto(self._data, other._data)

    def clone(self) -> "RasterBuffer":
        """Deep copy."""
        buffer = RasterBuffer.__new__(RasterBuffer)
        buffer._width = self._width
        buffer._height = self._height
        buffer._data = self._data.copy()
        return buffer

    def clear(self) -> None:
        """Reset to fully transparent black."""
        self._data[...] = 0

    def to_rgba(self) -> np.ndarray:
        """Return a uint8 ``(height, width, 4)`` copy of the samples."""
        return self._data.copy()

    def numpy(self, channel: Optional[str] = None) -> np.ndarray:
        """
        Get samples as a float32 array in [0, 1].

        :param channel: ``'color'`` for RGB, ``'shape'`` for alpha, or None
            for RGBA.
        :return: ``(height, width, channels)`` array, always a copy.
        """
        data = self._data.astype(np.float32) / 255.0
        if channel == "color":
            return data[:, :, :3]
        elif channel == "shape":
            return data[:, :, 3:]
        elif channel is None:
            return data
        raise ValueError("Unknown channel: %r" % channel)

    def topil(self) -> Image.Image:
        """Get an RGBA PIL image."""
        return pil_io.topil(self._data)

    def tobytes(self) -> bytes:
        """Raw RGBA bytes in row-major order."""
        return self._data.tobytes()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RasterBuffer):
            return NotImplemented
        return self.size == other.size and np.array_equal(self._data, other._data)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return "%s(width=%d, height=%d)" % (
            self.__class__.__name__,
            self._width,
            self._height,
        )
