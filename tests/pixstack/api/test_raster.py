import logging

import numpy as np
import pytest
from PIL import Image

from pixstack.api.color import RGBA
from pixstack.api.protocols import RasterSource
from pixstack.api.raster import RasterBuffer
from pixstack.exceptions import DimensionMismatchError, OutOfBoundsError

from ..utils import make_buffer, random_rgba

logger = logging.getLogger(__name__)


def test_allocate_zero_initialized() -> None:
    buffer = RasterBuffer(4, 3)
    assert buffer.size == (4, 3)
    assert buffer.to_rgba().shape == (3, 4, 4)
    assert not buffer.to_rgba().any()
    assert buffer.read_pixel(3, 2) == RGBA(0, 0, 0, 0.0)


@pytest.mark.parametrize("width, height", [(0, 1), (1, 0), (-1, 5)])
def test_allocate_invalid(width: int, height: int) -> None:
    with pytest.raises(ValueError):
        RasterBuffer(width, height)


def test_read_write_pixel() -> None:
    buffer = RasterBuffer(2, 2)
    buffer.write_pixel(1, 0, (10, 20, 30, 1.0))
    buffer.write_pixel(0, 1, RGBA(255, 0, 0, 0.5))
    assert buffer.read_pixel(1, 0) == RGBA(10, 20, 30, 1.0)
    pixel = buffer.read_pixel(0, 1)
    assert (pixel.r, pixel.g, pixel.b) == (255, 0, 0)
    assert pixel.a == pytest.approx(128 / 255.0)
    assert buffer.to_rgba()[0, 1].tolist() == [10, 20, 30, 255]


@pytest.mark.parametrize("x, y", [(-1, 0), (0, -1), (4, 0), (0, 3), (100, 100)])
def test_out_of_bounds(x: int, y: int) -> None:
    buffer = RasterBuffer(4, 3)
    with pytest.raises(OutOfBoundsError):
        buffer.read_pixel(x, y)
    with pytest.raises(OutOfBoundsError):
        buffer.write_pixel(x, y, (0, 0, 0, 1.0))
    with pytest.raises(IndexError):
        buffer.read_pixel(x, y)


def test_write_dimension_mismatch() -> None:
    buffer = RasterBuffer(4, 3)
    with pytest.raises(DimensionMismatchError):
        buffer.write(random_rgba(3, 4))
    with pytest.raises(ValueError):
        buffer.write(np.zeros((3, 4, 3), dtype=np.uint8))


def test_write_float() -> None:
    buffer = RasterBuffer(1, 1)
    buffer.write(np.array([[[1.0, 0.5, 0.0, 2.0]]], dtype=np.float32))
    assert buffer.to_rgba()[0, 0].tolist() == [255, 128, 0, 255]


def test_clone_is_deep() -> None:
    buffer = make_buffer(5, 5)
    clone = buffer.clone()
    assert clone == buffer
    assert clone is not buffer
    buffer.write_pixel(0, 0, (1, 2, 3, 1.0))
    assert clone != buffer


def test_copy_from() -> None:
    buffer = make_buffer(5, 4, seed=1)
    snapshot = buffer.clone()
    buffer.clear()
    buffer.copy_from(snapshot)
    assert buffer.tobytes() == snapshot.tobytes()
    with pytest.raises(DimensionMismatchError):
        buffer.copy_from(RasterBuffer(4, 5))


def test_numpy_channels() -> None:
    buffer = make_buffer(3, 2)
    data = buffer.numpy()
    assert data.dtype == np.float32
    assert data.shape == (2, 3, 4)
    assert buffer.numpy("color").shape == (2, 3, 3)
    assert buffer.numpy("shape").shape == (2, 3, 1)
    np.testing.assert_allclose(data * 255.0, buffer.to_rgba(), atol=1e-3)
    with pytest.raises(ValueError):
        buffer.numpy("mask")


def test_numpy_returns_copy() -> None:
    buffer = make_buffer(3, 2)
    data = buffer.numpy()
    data[:] = 0
    assert buffer.to_rgba().any()


@pytest.mark.parametrize("mode", ["L", "LA", "RGB", "RGBA", "P"])
def test_from_pil(mode: str) -> None:
    image = Image.new(mode, (7, 5))
    buffer = RasterBuffer.from_source(image)
    assert buffer.size == (7, 5)


@pytest.mark.parametrize(
    "shape", [(5, 7), (5, 7, 1), (5, 7, 2), (5, 7, 3), (5, 7, 4)]
)
def test_from_numpy(shape: tuple) -> None:
    buffer = RasterBuffer.from_source(np.zeros(shape, dtype=np.uint8))
    assert buffer.size == (7, 5)


def test_load_mismatch() -> None:
    buffer = RasterBuffer(4, 4)
    with pytest.raises(DimensionMismatchError):
        buffer.load(Image.new("RGBA", (3, 4)))


def test_topil_roundtrip() -> None:
    buffer = make_buffer(6, 3)
    image = buffer.topil()
    assert image.mode == "RGBA"
    assert image.size == (6, 3)
    assert RasterBuffer.from_source(image) == buffer


def test_is_raster_source() -> None:
    assert isinstance(RasterBuffer(1, 1), RasterSource)
