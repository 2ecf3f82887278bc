"""Composite implementation for layer rendering and blending."""

import logging
from typing import Callable, Optional, Protocol, Union, cast

import numpy as np
from PIL import Image

from pixstack.api.layers import LayerStack, StackState
from pixstack.api.raster import RasterBuffer
from pixstack.composite import utils
from pixstack.composite.blend import BLEND_FUNC, normal
from pixstack.constants import BlendMode

logger = logging.getLogger(__name__)


class _Paintable(Protocol):
    """Anything carrying a buffer, an opacity and a blend mode."""

    buffer: RasterBuffer
    opacity: float
    blend_mode: BlendMode


def composite_pil(
    stack: Union[LayerStack, StackState],
    layer_filter: Optional[Callable] = None,
) -> Image.Image:
    """
    Composite layers and return an RGBA PIL Image.

    Args:
        stack: Layer stack or stack snapshot to composite
        layer_filter: Optional callable(layer) -> bool to filter which layers to composite

    Returns:
        PIL Image in RGBA mode with the stack dimensions
    """
    return render(stack, layer_filter).topil()


def render(
    stack: Union[LayerStack, StackState],
    layer_filter: Optional[Callable] = None,
) -> RasterBuffer:
    """
    Composite layers into a new :py:class:`~pixstack.api.raster.RasterBuffer`.

    Rendering is pure: the stack is only read, and repeated calls on an
    unmodified stack produce identical buffers.
    """
    color, _, alpha = composite(stack, layer_filter=layer_filter)
    buffer = RasterBuffer(color.shape[1], color.shape[0])
    buffer.write(np.concatenate((utils.to_uint8(color), utils.to_uint8(alpha)), 2))
    return buffer


def composite(
    stack: Union[LayerStack, StackState],
    color: Union[float, tuple[float, ...], np.ndarray] = 0.0,
    alpha: Union[float, np.ndarray] = 0.0,
    layer_filter: Optional[Callable] = None,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Composite layers and return NumPy arrays.

    Layers are painted bottom to top. Each layer is blended onto the
    accumulator with its blend mode, scaled by its opacity, and merged with
    source-over alpha compositing.

    Args:
        stack: Layer stack or stack snapshot to composite
        color: Initial backdrop color (0.0-1.0, default: 0.0). Can be:
            - Scalar (float): Applied to all channels
            - Tuple: Per-channel values (R,G,B)
            - ndarray: Full backdrop image
        alpha: Initial backdrop alpha (0.0-1.0, default: 0.0, fully
            transparent). Can be scalar or ndarray
        layer_filter: Optional callable(layer) -> bool to filter which layers to composite

    Returns:
        Tuple of (color, shape, alpha) as float32 ndarrays with shape (height, width, channels):
            - color: RGB values in range [0.0, 1.0]
            - shape: Layer coverage in range [0.0, 1.0]
            - alpha: Composite alpha channel in range [0.0, 1.0]

    Examples:
        >>> color, shape, alpha = composite(stack)
        >>> # Composite onto an opaque white backdrop
        >>> color, shape, alpha = composite(stack, color=1.0, alpha=1.0)
    """
    compositor = Compositor(stack.width, stack.height, color, alpha, layer_filter)
    for layer in stack.layers:
        compositor.apply(layer)
    return compositor.finish()


class Compositor(object):
    """Composite context.

    Example::

        compositor = Compositor(stack.width, stack.height)
        for layer in stack:
            compositor.apply(layer)
        color, shape, alpha = compositor.finish()
    """

    def __init__(
        self,
        width: int,
        height: int,
        color: Union[float, tuple[float, ...], np.ndarray] = 0.0,
        alpha: Union[float, np.ndarray] = 0.0,
        layer_filter: Optional[Callable] = None,
    ):
        self._width = width
        self._height = height
        self._layer_filter = layer_filter

        if isinstance(alpha, np.ndarray):
            self._alpha_0 = alpha.astype(np.float32)
        else:
            self._alpha_0 = np.full((height, width, 1), alpha, dtype=np.float32)

        if isinstance(color, np.ndarray):
            self._color_0 = color.astype(np.float32)
        else:
            self._color_0 = np.full((height, width, 3), color, dtype=np.float32)

        self._shape_g = np.zeros((height, width, 1), dtype=np.float32)
        self._alpha_g = np.zeros((height, width, 1), dtype=np.float32)
        self._color = self._color_0
        self._alpha = self._alpha_0

    def apply(self, layer: _Paintable) -> None:
        logger.debug("Compositing %s" % (layer,))

        if self._layer_filter is not None and not self._layer_filter(layer):
            logger.debug("Ignore %s" % (layer,))
            return
        if layer.opacity <= 0.0:
            logger.debug("Transparent %s" % (layer,))
            return
        if layer.buffer.size != (self._width, self._height):
            raise ValueError(
                "Layer is %dx%d, canvas is %dx%d"
                % (layer.buffer.width, layer.buffer.height, self._width, self._height)
            )

        pixels = layer.buffer.numpy()
        color, shape = pixels[:, :, :3], pixels[:, :, 3:]
        alpha = shape * float(layer.opacity)
        self._apply_source(color, shape, alpha, layer.blend_mode)

    def _apply_source(
        self,
        color: np.ndarray,
        shape: np.ndarray,
        alpha: np.ndarray,
        blend_mode: BlendMode,
    ) -> None:
        self._shape_g = cast(np.ndarray, utils.union(self._shape_g, shape))
        self._alpha_g = cast(np.ndarray, utils.union(self._alpha_g, alpha))
        alpha_previous = self._alpha
        self._alpha = cast(np.ndarray, utils.union(self._alpha_0, self._alpha_g))

        alpha_b = alpha_previous
        color_b = self._color

        blend_fn = BLEND_FUNC.get(blend_mode, normal)
        color_t = (shape - alpha) * alpha_b * color_b + alpha * (
            (1.0 - alpha_b) * color + alpha_b * blend_fn(color_b, color)
        )
        self._color = utils.clip(
            utils.divide(
                (1.0 - shape) * alpha_previous * self._color + color_t, self._alpha
            )
        )

    def finish(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        return self.color, self.shape, self.alpha

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def color(self) -> np.ndarray:
        # Fully transparent pixels carry no color.
        return np.where(self._alpha > 0.0, self._color, 0.0).astype(np.float32)

    @property
    def shape(self) -> np.ndarray:
        return self._shape_g

    @property
    def alpha(self) -> np.ndarray:
        return self._alpha
