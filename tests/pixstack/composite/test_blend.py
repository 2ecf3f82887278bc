import logging

import numpy as np
import pytest

from pixstack.composite import blend
from pixstack.constants import BlendMode

logger = logging.getLogger(__name__)


def rgb(*values: float) -> np.ndarray:
    return np.array(values, dtype=np.float32).reshape((1, 1, 3))


def gray(value: float) -> np.ndarray:
    return rgb(value, value, value)


def test_blend_table_complete() -> None:
    assert set(blend.BLEND_FUNC) == set(BlendMode)


@pytest.mark.parametrize(
    "func, backdrop, source, expected",
    [
        (blend.normal, 0.8, 0.2, 0.2),
        (blend.multiply, 0.8, 0.5, 0.4),
        (blend.screen, 0.5, 0.5, 0.75),
        (blend.darken, 0.8, 0.2, 0.2),
        (blend.lighten, 0.8, 0.2, 0.8),
        (blend.difference, 0.2, 0.8, 0.6),
        (blend.exclusion, 0.5, 0.5, 0.5),
        (blend.overlay, 0.25, 0.5, 0.25),
        (blend.hard_light, 0.5, 0.25, 0.25),
        (blend.hard_light, 0.5, 0.75, 0.75),
        (blend.soft_light, 0.3, 0.5, 0.3),
        (blend.color_dodge, 0.0, 0.7, 0.0),
        (blend.color_dodge, 0.3, 1.0, 1.0),
        (blend.color_dodge, 0.25, 0.5, 0.5),
        (blend.color_burn, 1.0, 0.3, 1.0),
        (blend.color_burn, 0.7, 0.0, 0.0),
        (blend.color_burn, 0.75, 0.5, 0.5),
    ],
)
def test_separable(func, backdrop: float, source: float, expected: float) -> None:
    result = func(gray(backdrop), gray(source))
    np.testing.assert_allclose(result, gray(expected), atol=1e-6)


def test_overlay_is_commuted_hard_light() -> None:
    rng = np.random.default_rng(0)
    Cb = rng.random((4, 4, 3), dtype=np.float32)
    Cs = rng.random((4, 4, 3), dtype=np.float32)
    np.testing.assert_allclose(blend.overlay(Cb, Cs), blend.hard_light(Cs, Cb))


@pytest.mark.parametrize("mode", list(BlendMode))
def test_range_and_shape(mode: BlendMode) -> None:
    rng = np.random.default_rng(1)
    Cb = rng.random((5, 7, 3), dtype=np.float32)
    Cs = rng.random((5, 7, 3), dtype=np.float32)
    Cb[0, 0] = 0.0
    Cs[0, 1] = 1.0
    result = blend.BLEND_FUNC[mode](Cb, Cs)
    assert result.shape == (5, 7, 3)
    assert np.all(np.isfinite(result))
    assert np.all((result >= 0.0) & (result <= 1.0))


def test_luminosity_takes_source_luminance() -> None:
    Cb = rgb(0.6, 0.4, 0.5)
    Cs = rgb(0.3, 0.5, 0.4)
    result = blend.luminosity(Cb, Cs)
    np.testing.assert_allclose(blend._lum(result), blend._lum(Cs), atol=1e-6)


def test_color_with_gray_source() -> None:
    Cb = rgb(0.9, 0.1, 0.3)
    result = blend.color(Cb, gray(0.5))
    np.testing.assert_allclose(result, np.full((1, 1, 3), blend._lum(Cb)[0, 0, 0]), atol=1e-6)


def test_saturation_with_gray_source() -> None:
    Cb = rgb(0.9, 0.1, 0.3)
    result = blend.saturation(Cb, gray(0.2))
    assert np.ptp(result) == pytest.approx(0.0, abs=1e-6)


def test_hue_with_gray_backdrop() -> None:
    result = blend.hue(gray(0.4), rgb(1.0, 0.0, 0.0))
    np.testing.assert_allclose(result, gray(0.4), atol=1e-6)


def test_hue_keeps_backdrop_saturation() -> None:
    Cb = rgb(0.6, 0.3, 0.5)
    Cs = rgb(0.2, 0.8, 0.4)
    result = blend.hue(Cb, Cs)
    assert blend._sat(result)[0, 0, 0] == pytest.approx(blend._sat(Cb)[0, 0, 0], abs=1e-5)
    np.testing.assert_allclose(blend._lum(result), blend._lum(Cb), atol=1e-5)
    # Channel order follows the source.
    assert result[0, 0, 1] > result[0, 0, 2] > result[0, 0, 0]
