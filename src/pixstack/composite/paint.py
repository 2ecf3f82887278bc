"""Paint operations: gradient rendering and painting into layer buffers."""

import logging
import math
from typing import Union

import numpy as np
from attrs import define, field

from pixstack.api.color import RGB
from pixstack.api.raster import RasterBuffer
from pixstack.composite import utils
from pixstack.composite._compat import require_scipy
from pixstack.constants import GradientType
from pixstack.validators import range_

logger = logging.getLogger(__name__)

SNAP_STEP = math.pi / 4


def snap_angle(angle: float, step: float = SNAP_STEP) -> float:
    """
    Round an angle in radians to the nearest multiple of ``step`` (45°).

    Example::

        >>> round(math.degrees(snap_angle(math.radians(40))))
        45
    """
    return round(angle / step) * step


def snap_vector(
    x1: float, y1: float, x2: float, y2: float, angle_rad: float = 0.0
) -> tuple[float, float]:
    """
    Snap the direction from (x1, y1) to (x2, y2) to 45° steps.

    Snapping happens in view space, i.e. relative to the canvas rotation
    ``angle_rad``. The vector length is kept. Returns the new (x2, y2).
    """
    dx, dy = x2 - x1, y2 - y1
    length = math.hypot(dx, dy)
    if length == 0:
        return x2, y2
    angle = snap_angle(math.atan2(dy, dx) + angle_rad) - angle_rad
    return x1 + length * math.cos(angle), y1 + length * math.sin(angle)


@define(frozen=True)
class GradientParams:
    """
    Gradient tool parameters.

    The gradient runs from ``color1`` at full alpha at (x1, y1) to ``color1``
    fully transparent at (x2, y2); ``is_reversed`` swaps the two ends.

    .. py:attribute:: type

        :py:class:`~pixstack.constants.GradientType`.

    .. py:attribute:: angle_rad

        Rotation of the canvas view, used by angle snapping.
    """

    type: GradientType = field(converter=GradientType)
    color1: RGB = field(converter=RGB.coerce)
    x1: float = field(converter=float)
    y1: float = field(converter=float)
    x2: float = field(converter=float)
    y2: float = field(converter=float)
    is_reversed: bool = field(default=False, converter=bool)
    opacity: float = field(default=1.0, converter=float, validator=range_(0.0, 1.0))
    lock_alpha: bool = field(default=False, converter=bool)
    snap: bool = field(default=False, converter=bool)
    angle_rad: float = field(default=0.0, converter=float)
    is_eraser: bool = field(default=False, converter=bool)

    def endpoints(self) -> tuple[float, float, float, float]:
        """(x1, y1, x2, y2) after angle snapping."""
        x2, y2 = self.x2, self.y2
        if self.snap:
            x2, y2 = snap_vector(self.x1, self.y1, x2, y2, self.angle_rad)
        return self.x1, self.y1, x2, y2


def draw_source(
    buffer: RasterBuffer,
    color: Union[tuple[float, ...], np.ndarray],
    coverage: np.ndarray,
    lock_alpha: bool = False,
    is_eraser: bool = False,
) -> None:
    """
    Paint a source onto a buffer in place.

    :param color: Source color in [0, 1], a 3-tuple or ``(h, w, 3)`` array.
    :param coverage: Source alpha, ``(h, w, 1)`` in [0, 1], already scaled
        by the tool opacity.
    :param lock_alpha: Source-atop: only pixels with alpha change, and their
        alpha is preserved.
    :param is_eraser: Destination-out: coverage removes alpha. Takes
        precedence over ``lock_alpha``.
    """
    pixels = buffer.numpy()
    color_d, alpha_d = pixels[:, :, :3], pixels[:, :, 3:]
    color_s = np.broadcast_to(np.asarray(color, dtype=np.float32), color_d.shape)
    alpha_s = utils.clip(coverage.astype(np.float32))

    if is_eraser:
        alpha = alpha_d * (1.0 - alpha_s)
        color_r = color_d
    elif lock_alpha:
        alpha = alpha_d
        color_r = np.where(
            alpha_d > 0.0, alpha_s * color_s + (1.0 - alpha_s) * color_d, color_d
        )
    else:
        alpha = utils.union(alpha_d, alpha_s)
        color_r = utils.divide(
            alpha_s * color_s + alpha_d * (1.0 - alpha_s) * color_d, alpha
        )
        color_r = np.where(alpha > 0.0, color_r, color_d)

    buffer.write(np.concatenate((utils.clip(color_r), alpha), axis=2))


@require_scipy
def render_gradient(buffer: RasterBuffer, params: GradientParams) -> None:
    """
    Render a gradient into the buffer in place.

    Requires scipy for gradient color interpolation.
    """
    x1, y1, x2, y2 = params.endpoints()
    dx, dy = x2 - x1, y2 - y1
    length2 = dx * dx + dy * dy
    if length2 == 0:
        logger.debug("Zero length gradient, nothing to draw")
        return

    # Sample at pixel centers.
    X, Y = np.meshgrid(
        np.arange(buffer.width, dtype=np.float32) + 0.5,
        np.arange(buffer.height, dtype=np.float32) + 0.5,
    )
    if params.type == GradientType.LINEAR:
        Z = _make_linear_gradient(X - x1, Y - y1, dx, dy, length2)
    elif params.type == GradientType.LINEAR_MIRROR:
        Z = _make_mirror_gradient(X - x1, Y - y1, dx, dy, length2)
    elif params.type == GradientType.RADIAL:
        Z = _make_radial_gradient(X - x1, Y - y1, length2)
    else:
        logger.warning("Unknown gradient style: %s." % (params.type,))
        return

    Z = np.maximum(0.0, np.minimum(1.0, Z))
    if params.is_reversed:
        Z = 1.0 - Z

    G = _make_gradient_color(_fade_stops(params.color1))
    rgba = G(Z).astype(np.float32)
    color, coverage = rgba[:, :, :3], rgba[:, :, 3:] * params.opacity
    logger.debug(
        "Gradient %s from (%g, %g) to (%g, %g)" % (params.type.value, x1, y1, x2, y2)
    )
    draw_source(buffer, color, coverage, params.lock_alpha, params.is_eraser)


def _make_linear_gradient(X, Y, dx, dy, length2):
    """Generates index map for linear gradients."""
    return (X * dx + Y * dy) / length2


def _make_mirror_gradient(X, Y, dx, dy, length2):
    """Generates index map for gradients mirrored at the start point."""
    return np.abs(_make_linear_gradient(X, Y, dx, dy, length2))


def _make_radial_gradient(X, Y, length2):
    """Generates index map for radial gradients."""
    return np.sqrt((np.power(X, 2) + np.power(Y, 2)) / length2)


def _fade_stops(color: RGB) -> list[tuple[float, tuple[float, ...]]]:
    """Stops fading ``color`` from opaque to transparent."""
    r, g, b = color.normalized()
    return [(0.0, (r, g, b, 1.0)), (1.0, (r, g, b, 0.0))]


def _make_gradient_color(stops):
    """
    Build an RGBA interpolator over [0, 1].

    :param stops: (location, (r, g, b, a)) pairs in [0, 1], sorted by
        location. A later stop at the same location replaces the earlier one.
    """
    from scipy import interpolate  # type: ignore[import-untyped]

    X, Y = [], []
    for location, rgba in stops:
        if len(X) and X[-1] == location:
            logger.debug("Duplicate stop at %g" % location)
            X.pop(), Y.pop()
        X.append(location), Y.append(np.array(rgba, dtype=np.float32))
    assert len(X) > 0
    if len(X) == 1:
        X = [0.0, 1.0]
        Y = [Y[0], Y[0]]
    return interpolate.interp1d(
        X, Y, axis=0, bounds_error=False, fill_value=(Y[0], Y[-1])
    )
