"""
Protocol definitions for type hints to avoid circular imports.

:py:class:`RasterSource` is the single decoded-raster capability consumed by
layer construction and project import. Any decoding backend can provide one;
:py:mod:`pixstack.api.pil_io` and :py:mod:`pixstack.api.numpy_io` ship the
Pillow and NumPy adapters, and :py:class:`~pixstack.api.raster.RasterBuffer`
implements it directly.
"""

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class RasterSource(Protocol):
    """
    Protocol defining a decoded image that can be copied into a buffer.
    """

    @property
    def width(self) -> int:
        """Width in pixels."""
        ...

    @property
    def height(self) -> int:
        """Height in pixels."""
        ...

    def to_rgba(self) -> np.ndarray:
        """
        Return pixels as an ``(height, width, 4)`` uint8 array.

        The returned array must not alias internal storage of the source.
        """
        ...
