"""
Composite module for layer rendering, blending and painting.

This subpackage provides the rendering engine: the compositor that flattens a
layer stack, the 16 blend modes, and the paint routines (gradients and
shapes) that filters use to mutate layer buffers.

**Note**: Gradients and shapes require optional dependencies. Install with::

    pip install 'pixstack[composite]'

The composite extra includes:

- ``aggdraw``: For anti-aliased shape rasterization
- ``scipy``: For gradient color interpolation

Key modules:

- :py:mod:`pixstack.composite.composite`: Main compositing functions
- :py:mod:`pixstack.composite.blend`: Blend mode implementations
- :py:mod:`pixstack.composite.paint`: Gradient rendering and paint operations
- :py:mod:`pixstack.composite.vector`: Shape rasterization

Example usage::

    from pixstack.composite import render

    buffer = render(stack)
    buffer.topil().save('output.png')
"""

from pixstack.composite.composite import Compositor, composite, composite_pil, render
from pixstack.composite.paint import GradientParams, render_gradient, snap_angle
from pixstack.composite.vector import ShapeParams, rasterize_shape, resolve_geometry

__all__ = [
    "Compositor",
    "GradientParams",
    "ShapeParams",
    "composite",
    "composite_pil",
    "rasterize_shape",
    "render",
    "render_gradient",
    "resolve_geometry",
    "snap_angle",
]
