import logging
from typing import Optional

import numpy as np
import pytest

from pixstack.api.layers import LayerStack
from pixstack.api.raster import RasterBuffer
from pixstack.api.session import EditSession
from pixstack.composite._compat import HAS_AGGDRAW, HAS_SCIPY
from pixstack.config import SessionConfig

logging.basicConfig(level=logging.DEBUG)

HAS_COMPOSITE = HAS_AGGDRAW and HAS_SCIPY

_requires_composite = pytest.mark.skipif(
    not HAS_COMPOSITE,
    reason="Requires composite dependencies: pip install 'pixstack[composite]'",
)


def skip_without_composite(func):
    """Mark a test as composite and skip it when aggdraw or scipy is missing."""
    return pytest.mark.composite(_requires_composite(func))


def random_rgba(width: int, height: int, seed: int = 0, opaque: bool = False) -> np.ndarray:
    """Deterministic random uint8 RGBA pixels."""
    rng = np.random.default_rng(seed)
    data = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    if opaque:
        data[:, :, 3] = 255
    return data


def solid_rgba(width: int, height: int, color: tuple) -> np.ndarray:
    data = np.zeros((height, width, 4), dtype=np.uint8)
    data[:, :] = color
    return data


def make_buffer(width: int, height: int, seed: Optional[int] = 0, opaque: bool = False) -> RasterBuffer:
    buffer = RasterBuffer(width, height)
    if seed is not None:
        buffer.write(random_rgba(width, height, seed, opaque))
    return buffer


def make_stack(width: int = 8, height: int = 6, count: int = 2) -> LayerStack:
    """Stack of ``count`` random layers, focused on the top one."""
    stack = LayerStack(width, height)
    for i in range(count):
        stack.new_layer("Layer %d" % i, source=random_rgba(width, height, seed=i))
    if count:
        stack.focus = count - 1
    return stack


def make_session(width: int = 8, height: int = 6, count: int = 2, **kwargs) -> EditSession:
    return EditSession(make_stack(width, height, count), SessionConfig(**kwargs))
