import logging
import math

import numpy as np
import pytest

from pixstack.api.raster import RasterBuffer
from pixstack.composite.vector import (
    KAPPA,
    ShapeParams,
    _generate_ellipse,
    rasterize_shape,
    resolve_geometry,
)
from pixstack.constants import ShapeType

from ..utils import random_rgba, skip_without_composite

logger = logging.getLogger(__name__)

RED = (255, 0, 0)


def test_shape_params_validation() -> None:
    with pytest.raises(ValueError):
        ShapeParams("line", 0, 0, 1, 1, line_width=2)
    with pytest.raises(ValueError):
        ShapeParams("line", 0, 0, 1, 1, stroke_rgb=RED)
    with pytest.raises(ValueError):
        ShapeParams("rect", 0, 0, 1, 1)
    with pytest.raises(ValueError):
        ShapeParams("rect", 0, 0, 1, 1, stroke_rgb=RED, line_width=0)
    with pytest.raises(ValueError):
        ShapeParams("rect", 0, 0, 1, 1, fill_rgb=RED, opacity=1.5)
    with pytest.raises(ValueError):
        ShapeParams("polygon", 0, 0, 1, 1, fill_rgb=RED)


def test_shape_params_eraser() -> None:
    params = ShapeParams("line", 0, 0, 1, 1, line_width=3, is_eraser=True)
    assert params.stroke_rgb is None
    params = ShapeParams("ellipse", 0, 0, 1, 1, is_eraser=True)
    assert not params.has_outline


def test_rect_geometry() -> None:
    geometry = resolve_geometry(ShapeParams("rect", 12, 6, 2, 2, fill_rgb=RED))
    assert geometry.type == ShapeType.RECT
    assert geometry.center == pytest.approx((7, 4))
    assert (geometry.width, geometry.height) == pytest.approx((10, 4))
    assert geometry.angle == 0


def test_fixed_ratio_geometry() -> None:
    geometry = resolve_geometry(
        ShapeParams("rect", 2, 2, 12, 6, fill_rgb=RED, is_fixed_ratio=True)
    )
    assert (geometry.width, geometry.height) == pytest.approx((10, 10))
    np.testing.assert_allclose(geometry.points, [(2, 2), (12, 2), (12, 12), (2, 12)])


def test_fixed_ratio_keeps_direction() -> None:
    geometry = resolve_geometry(
        ShapeParams("rect", 12, 12, 2, 8, fill_rgb=RED, is_fixed_ratio=True)
    )
    np.testing.assert_allclose(geometry.points, [(2, 2), (12, 2), (12, 12), (2, 12)])


def test_outwards_geometry() -> None:
    geometry = resolve_geometry(
        ShapeParams("ellipse", 5, 5, 8, 7, fill_rgb=RED, is_outwards=True)
    )
    assert geometry.center == pytest.approx((5, 5))
    assert (geometry.width, geometry.height) == pytest.approx((6, 4))
    np.testing.assert_allclose(geometry.points, [(2, 3), (8, 3), (8, 7), (2, 7)])


def test_rotated_geometry() -> None:
    angle = math.radians(90)
    geometry = resolve_geometry(
        ShapeParams("rect", 0, 0, 4, 2, fill_rgb=RED, angle_rad=angle)
    )
    assert geometry.center == pytest.approx((2, 1))
    # The canvas extents (4, 2) become (2, 4) along the rotated axes.
    assert (geometry.width, geometry.height) == pytest.approx((2, 4))


@pytest.mark.parametrize("kind", ["rect", "ellipse"])
def test_angle_snap_geometry(kind: str) -> None:
    params = ShapeParams(
        kind, 0, 0, 4, 4, fill_rgb=RED, angle_rad=math.radians(40), is_angle_snap=True
    )
    assert math.degrees(resolve_geometry(params).angle) == pytest.approx(45)


def test_line_geometry() -> None:
    params = ShapeParams("line", 0, 0, 10, 1, stroke_rgb=RED, line_width=1)
    geometry = resolve_geometry(params)
    assert geometry.width == pytest.approx(math.hypot(10, 1))
    assert geometry.points[1] == (10, 1)

    params = ShapeParams(
        "line", 0, 0, 10, 1, stroke_rgb=RED, line_width=1, is_angle_snap=True
    )
    geometry = resolve_geometry(params)
    assert geometry.angle == pytest.approx(0)
    assert geometry.points[1] == pytest.approx((math.hypot(10, 1), 0))


def test_ellipse_path_is_point_symmetric() -> None:
    geometry = resolve_geometry(ShapeParams("ellipse", 4, 4, 16, 12, fill_rgb=RED))
    tokens = list(_generate_ellipse(geometry))
    assert tokens[0] == "M" and tokens[3] == "C" and tokens[-1] == "Z"
    points = np.array(tokens[1:3] + tokens[4:-1], dtype=float).reshape(-1, 2)
    # Start anchor plus three points per quarter.
    assert len(points) == 13
    np.testing.assert_allclose(points[0], points[-1])
    # Rotating by 180 degrees maps each quarter onto the opposite one.
    np.testing.assert_allclose(2 * np.array([10, 8]) - points[:7], points[6:], atol=1e-9)
    # The first control point lies on the tangent at the start anchor.
    np.testing.assert_allclose(points[1], [16, 8 + KAPPA * 4])


def alpha(buffer: RasterBuffer) -> np.ndarray:
    return buffer.to_rgba()[:, :, 3].astype(int)


@skip_without_composite
def test_rasterize_fixed_ratio_rect() -> None:
    buffer = RasterBuffer(20, 20)
    rasterize_shape(
        buffer, ShapeParams("rect", 2, 2, 12, 6, fill_rgb=RED, is_fixed_ratio=True)
    )
    result = alpha(buffer)
    assert (result[3:11, 3:11] == 255).all()
    assert not result[14:].any()
    assert not result[:, 14:].any()
    np.testing.assert_allclose(result, result.T, atol=1)
    assert (buffer.to_rgba()[5, 5, :3] == RED).all()


@skip_without_composite
def test_rasterize_ellipse() -> None:
    buffer = RasterBuffer(20, 20)
    rasterize_shape(buffer, ShapeParams("ellipse", 4, 4, 16, 16, fill_rgb=RED))
    result = alpha(buffer)
    assert result[10, 10] == 255
    assert result[4, 4] < 128
    assert not result[:3].any()
    # Area of a circle with radius 6.
    assert result.sum() / 255.0 == pytest.approx(math.pi * 36, rel=0.03)
    # Curve flattening subdivides mirrored quadrants slightly differently,
    # so edge coverage is only symmetric up to a few levels.
    np.testing.assert_allclose(result, result.T, atol=8)
    np.testing.assert_allclose(result, result[::-1, ::-1], atol=8)


@skip_without_composite
def test_rasterize_outline() -> None:
    buffer = RasterBuffer(20, 20)
    rasterize_shape(
        buffer, ShapeParams("rect", 2, 2, 18, 18, stroke_rgb=RED, line_width=2)
    )
    result = alpha(buffer)
    assert result[10, 2] > 0
    assert result[10, 10] == 0


@skip_without_composite
def test_rasterize_line() -> None:
    buffer = RasterBuffer(20, 20)
    rasterize_shape(
        buffer, ShapeParams("line", 2, 10, 18, 10, stroke_rgb=RED, line_width=2)
    )
    result = alpha(buffer)
    assert result[9:11, 10].min() > 127
    assert not result[:5].any()
    assert not result[15:].any()


@skip_without_composite
def test_rasterize_zero_length_line() -> None:
    buffer = RasterBuffer(8, 8)
    rasterize_shape(
        buffer, ShapeParams("line", 4, 4, 4, 4, stroke_rgb=RED, line_width=2)
    )
    assert not buffer.to_rgba().any()


@skip_without_composite
def test_rasterize_degenerate_rect() -> None:
    buffer = RasterBuffer(8, 8)
    rasterize_shape(buffer, ShapeParams("rect", 2, 2, 6, 2, fill_rgb=RED))
    assert not buffer.to_rgba().any()


@skip_without_composite
def test_rasterize_opacity() -> None:
    buffer = RasterBuffer(20, 20)
    rasterize_shape(
        buffer, ShapeParams("rect", 2, 2, 18, 18, fill_rgb=RED, opacity=0.5)
    )
    assert abs(alpha(buffer)[10, 10] - 128) <= 1


@skip_without_composite
def test_rasterize_eraser() -> None:
    data = random_rgba(20, 20, opaque=True)
    buffer = RasterBuffer(20, 20)
    buffer.write(data)
    rasterize_shape(buffer, ShapeParams("rect", 2, 2, 12, 12, is_eraser=True))
    result = alpha(buffer)
    assert not result[3:11, 3:11].any()
    assert (result[14:] == 255).all()
    assert (buffer.to_rgba()[14:] == data[14:]).all()


@skip_without_composite
def test_rasterize_lock_alpha() -> None:
    buffer = RasterBuffer(20, 20)
    rasterize_shape(
        buffer, ShapeParams("rect", 2, 2, 12, 12, fill_rgb=RED, lock_alpha=True)
    )
    assert not buffer.to_rgba().any()
