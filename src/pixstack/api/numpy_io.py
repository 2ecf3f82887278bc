import logging

import numpy as np
from attrs import define, field

logger = logging.getLogger(__name__)


def as_rgba_array(array: np.ndarray) -> np.ndarray:
    """
    Normalize an array to ``(height, width, 4)`` uint8.

    Accepts gray ``(h, w)`` or ``(h, w, 1)``, gray+alpha, RGB and RGBA
    layouts. Floating point input is taken to be in [0, 1].
    """
    array = np.asarray(array)
    if array.ndim == 2:
        array = np.expand_dims(array, 2)
    if array.ndim != 3:
        raise ValueError("Expected a 2 or 3 dimensional array: %r" % (array.shape,))

    if np.issubdtype(array.dtype, np.floating):
        array = np.rint(np.clip(array, 0.0, 1.0) * 255.0)
    array = array.astype(np.uint8, copy=False)

    height, width, channels = array.shape
    if channels == 1:
        color = np.repeat(array, 3, axis=2)
        alpha = np.full((height, width, 1), 255, dtype=np.uint8)
    elif channels == 2:
        color = np.repeat(array[:, :, :1], 3, axis=2)
        alpha = array[:, :, 1:2]
    elif channels == 3:
        color = array
        alpha = np.full((height, width, 1), 255, dtype=np.uint8)
    elif channels == 4:
        return array.copy()
    else:
        raise ValueError("Unsupported number of channels: %d" % channels)
    logger.debug("Expanded %d channel array to RGBA" % channels)
    return np.concatenate((color, alpha), axis=2)


@define(frozen=True)
class ArraySource:
    """
    Raster source backed by a NumPy array.

    Example::

        source = ArraySource(np.zeros((32, 64, 3), dtype=np.uint8))
        layer = stack.new_layer("Background", source=source)
    """

    array: np.ndarray = field(converter=as_rgba_array, eq=False)

    @property
    def width(self) -> int:
        return self.array.shape[1]

    @property
    def height(self) -> int:
        return self.array.shape[0]

    def to_rgba(self) -> np.ndarray:
        return self.array.copy()
