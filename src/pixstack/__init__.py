"""
pixstack: layered raster editing core.

This package provides the in-memory model of a multi-layer image, a
compositor implementing the 16 canvas blend modes, an undo/redo history and
a filter pipeline that applies pixel mutations atomically.

Basic usage::

    from pixstack import EditSession

    session = EditSession.new(640, 480)
    session.apply_filter('invert')
    session.render().topil().save('output.png')

Architecture:

- :py:mod:`pixstack.api`: Document model, history, pipeline and session
- :py:mod:`pixstack.composite`: Compositing, blend modes, gradients and shapes
- :py:mod:`pixstack.filters`: Built-in filters
"""

from pixstack.api.layers import Layer, LayerStack
from pixstack.api.raster import RasterBuffer
from pixstack.api.session import EditSession
from pixstack.config import SessionConfig
from pixstack.version import __version__

__all__ = [
    "EditSession",
    "Layer",
    "LayerStack",
    "RasterBuffer",
    "SessionConfig",
    "__version__",
]
