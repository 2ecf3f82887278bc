"""Shape rasterization: rectangles, ellipses and lines."""

import logging
import math
from typing import Any, Iterator, Optional

import numpy as np
from attrs import define, field
from attrs.validators import instance_of, optional
from PIL import Image

from pixstack.api.color import RGB
from pixstack.api.raster import RasterBuffer
from pixstack.composite._compat import require_aggdraw
from pixstack.composite.paint import draw_source, snap_angle, snap_vector
from pixstack.constants import ShapeType
from pixstack.validators import range_

logger = logging.getLogger(__name__)

# Control point distance for a quarter circle made of one cubic bezier.
KAPPA = 4.0 * (math.sqrt(2.0) - 1.0) / 3.0


def _optional_rgb(value: Any) -> Optional[RGB]:
    return None if value is None else RGB.coerce(value)


@define(frozen=True)
class ShapeParams:
    """
    Shape tool parameters.

    Rectangles and ellipses are aligned to the canvas view, which is rotated
    by ``angle_rad``. (x1, y1) and (x2, y2) are opposite corners, or the center
    and an outward corner when ``is_outwards`` is set.

    Rectangles and ellipses are filled with ``fill_rgb`` and outlined with
    ``stroke_rgb`` when ``line_width`` is given. Lines need both
    ``stroke_rgb`` and ``line_width``.
    """

    type: ShapeType = field(converter=ShapeType)
    x1: float = field(converter=float)
    y1: float = field(converter=float)
    x2: float = field(converter=float)
    y2: float = field(converter=float)
    angle_rad: float = field(default=0.0, converter=float)
    is_outwards: bool = field(default=False, converter=bool)
    opacity: float = field(default=1.0, converter=float, validator=range_(0.0, 1.0))
    is_eraser: bool = field(default=False, converter=bool)
    fill_rgb: Optional[RGB] = field(default=None, converter=_optional_rgb)
    stroke_rgb: Optional[RGB] = field(default=None, converter=_optional_rgb)
    line_width: Optional[float] = field(
        default=None, validator=optional(instance_of((int, float)))
    )
    is_angle_snap: bool = field(default=False, converter=bool)
    is_fixed_ratio: bool = field(default=False, converter=bool)
    lock_alpha: bool = field(default=False, converter=bool)

    @line_width.validator
    def _validate_line_width(self, attribute: Any, value: Optional[float]) -> None:
        if value is not None and value <= 0:
            raise ValueError("line_width must be positive, got %r" % value)

    def __attrs_post_init__(self) -> None:
        if self.type == ShapeType.LINE:
            if self.line_width is None or (self.stroke_rgb is None and not self.is_eraser):
                raise ValueError("A line needs stroke_rgb and line_width")
        elif self.fill_rgb is None and not self.has_outline and not self.is_eraser:
            raise ValueError("A %s needs fill_rgb or stroke_rgb" % self.type.value)

    @property
    def has_outline(self) -> bool:
        return self.stroke_rgb is not None and self.line_width is not None


@define(frozen=True)
class ShapeGeometry:
    """
    Resolved shape geometry in canvas coordinates.

    .. py:attribute:: angle

        Orientation of a rectangle or ellipse, or direction of a line, in
        radians.

    .. py:attribute:: width
    .. py:attribute:: height

        Extents of a rectangle or ellipse along its own axes. For lines,
        width is the length and height is 0.

    .. py:attribute:: points

        Corner points (rectangle, ellipse bounding box) or end points (line).
    """

    type: ShapeType
    center: tuple[float, float]
    angle: float
    width: float
    height: float
    points: tuple[tuple[float, float], ...]


def _rotate(x: float, y: float, angle: float) -> tuple[float, float]:
    c, s = math.cos(angle), math.sin(angle)
    return x * c - y * s, x * s + y * c


def resolve_geometry(params: ShapeParams) -> ShapeGeometry:
    """
    Apply angle snapping, fixed ratio and outward mode to the raw corners.
    """
    if params.type == ShapeType.LINE:
        x2, y2 = params.x2, params.y2
        if params.is_angle_snap:
            x2, y2 = snap_vector(params.x1, params.y1, x2, y2, params.angle_rad)
        angle = math.atan2(y2 - params.y1, x2 - params.x1)
        return ShapeGeometry(
            type=params.type,
            center=((params.x1 + x2) / 2.0, (params.y1 + y2) / 2.0),
            angle=angle,
            width=math.hypot(x2 - params.x1, y2 - params.y1),
            height=0.0,
            points=((params.x1, params.y1), (x2, y2)),
        )

    angle = params.angle_rad
    if params.is_angle_snap:
        angle = snap_angle(angle)

    # Work in the shape's own frame, where it is axis aligned.
    u1, v1 = _rotate(params.x1, params.y1, -angle)
    u2, v2 = _rotate(params.x2, params.y2, -angle)
    du, dv = u2 - u1, v2 - v1
    if params.is_fixed_ratio:
        extent = max(abs(du), abs(dv))
        du = math.copysign(extent, du)
        dv = math.copysign(extent, dv)
    if params.is_outwards:
        cu, cv = u1, v1
        half_w, half_h = abs(du), abs(dv)
    else:
        cu, cv = u1 + du / 2.0, v1 + dv / 2.0
        half_w, half_h = abs(du) / 2.0, abs(dv) / 2.0

    corners = tuple(
        _rotate(cu + su * half_w, cv + sv * half_h, angle)
        for su, sv in ((-1, -1), (1, -1), (1, 1), (-1, 1))
    )
    return ShapeGeometry(
        type=params.type,
        center=_rotate(cu, cv, angle),
        angle=angle,
        width=2.0 * half_w,
        height=2.0 * half_h,
        points=corners,
    )


@require_aggdraw
def rasterize_shape(buffer: RasterBuffer, params: ShapeParams) -> None:
    """
    Rasterize a shape into the buffer in place.

    Requires aggdraw for anti-aliased rasterization.
    """
    geometry = resolve_geometry(params)
    logger.debug("Rasterizing %s" % (geometry,))
    if geometry.type == ShapeType.LINE:
        if geometry.width == 0:
            logger.debug("Zero length line, nothing to draw")
            return
        path = list(_generate_line(geometry))
        shape = _draw_symbol(
            path, buffer, pen={"color": 255, "width": float(params.line_width)}
        )
        _paint(buffer, params, params.stroke_rgb, shape)
        return

    if geometry.width == 0 or geometry.height == 0:
        logger.debug("Degenerate %s, nothing to draw" % geometry.type.value)
        return
    if geometry.type == ShapeType.RECT:
        path = list(_generate_polygon(geometry.points))
    else:
        path = list(_generate_ellipse(geometry))

    if params.fill_rgb is not None or not params.has_outline:
        shape = _draw_symbol(path, buffer, brush={"color": 255})
        _paint(buffer, params, params.fill_rgb, shape)
    if params.has_outline:
        shape = _draw_symbol(
            path, buffer, pen={"color": 255, "width": float(params.line_width)}
        )
        _paint(buffer, params, params.stroke_rgb, shape)


def _paint(
    buffer: RasterBuffer,
    params: ShapeParams,
    color: Optional[RGB],
    shape: np.ndarray,
) -> None:
    rgb = color.normalized() if color is not None else (0.0, 0.0, 0.0)
    draw_source(
        buffer, rgb, shape * params.opacity, params.lock_alpha, params.is_eraser
    )


def _draw_symbol(path, buffer, brush=None, pen=None):
    """
    Rasterize an SVG path using aggdraw.

    Note: Callers must be decorated with @require_aggdraw before calling.
    """
    import aggdraw  # type: ignore[import-not-found]

    mask = Image.new("L", (buffer.width, buffer.height), 0)
    draw = aggdraw.Draw(mask)
    pen = aggdraw.Pen(**pen) if pen else None
    brush = aggdraw.Brush(**brush) if brush else None
    symbol = aggdraw.Symbol(" ".join(map(str, path)))
    draw.symbol((0, 0), symbol, pen, brush)
    draw.flush()
    del draw
    return np.expand_dims(np.array(mask).astype(np.float32) / 255.0, 2)


def _generate_polygon(points) -> Iterator[Any]:
    """Sequence generator for a closed SVG polygon."""
    yield "M"
    yield points[0][0]
    yield points[0][1]
    for x, y in points[1:]:
        yield "L"
        yield x
        yield y
    yield "Z"


def _generate_line(geometry: ShapeGeometry) -> Iterator[Any]:
    """Sequence generator for an open SVG segment."""
    (x1, y1), (x2, y2) = geometry.points
    yield "M"
    yield x1
    yield y1
    yield "L"
    yield x2
    yield y2


def _generate_ellipse(geometry: ShapeGeometry) -> Iterator[Any]:
    """Sequence generator for an ellipse made of four cubic beziers."""
    cx, cy = geometry.center
    rx, ry = geometry.width / 2.0, geometry.height / 2.0

    def point(u, v):
        du, dv = _rotate(u, v, geometry.angle)
        return cx + du, cy + dv

    # Anchors at 0, 90, 180 and 270 degrees in the ellipse frame.
    anchors = [(rx, 0.0), (0.0, ry), (-rx, 0.0), (0.0, -ry)]
    yield "M"
    yield from point(*anchors[0])
    yield "C"
    for i in range(4):
        (u1, v1), (u2, v2) = anchors[i], anchors[(i + 1) % 4]
        # Control points lie on the tangents at both anchors.
        yield from point(u1 - KAPPA * v1 * rx / ry, v1 + KAPPA * u1 * ry / rx)
        yield from point(u2 + KAPPA * v2 * rx / ry, v2 - KAPPA * u2 * ry / rx)
        yield from point(u2, v2)
    yield "Z"
