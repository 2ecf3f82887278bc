"""
Gradient and shape filters.

The gradient and shape tools paint through the same pipeline as the other
filters; their dialogs start from defaults derived from the canvas size and
the primary color.
"""

import logging

from pixstack.api.pipeline import ApplyParams, DialogParams, FilterInfo, make_filter
from pixstack.composite.paint import GradientParams, render_gradient
from pixstack.composite.vector import ShapeParams, rasterize_shape
from pixstack.constants import GradientType, ShapeType
from pixstack.filters.base import edit_focused, form_dialog, register

logger = logging.getLogger(__name__)


def default_gradient(params: DialogParams) -> GradientParams:
    """Left to right across the middle of the canvas."""
    width, height = params.context.size
    return GradientParams(
        type=GradientType.LINEAR,
        color1=params.primary_color,
        x1=0,
        y1=height / 2.0,
        x2=width,
        y2=height / 2.0,
    )


def default_shape(params: DialogParams) -> ShapeParams:
    """Filled rectangle covering the central quarter of the canvas."""
    width, height = params.context.size
    return ShapeParams(
        type=ShapeType.RECT,
        x1=width / 4.0,
        y1=height / 4.0,
        x2=width * 3 / 4.0,
        y2=height * 3 / 4.0,
        fill_rgb=params.primary_color,
    )


def _apply_gradient(params: ApplyParams) -> bool:
    value = params.input
    if not isinstance(value, GradientParams):
        raise TypeError("Expected GradientParams, got %s" % type(value).__name__)
    return edit_focused(params, "Gradient", lambda b: render_gradient(b, value))


def _apply_shape(params: ApplyParams) -> bool:
    value = params.input
    if not isinstance(value, ShapeParams):
        raise TypeError("Expected ShapeParams, got %s" % type(value).__name__)
    return edit_focused(params, "Shape", lambda b: rasterize_shape(b, value))


@register("gradient")
def make_gradient():
    return make_filter(
        FilterInfo("Gradient", "Gradient", icon="gradient"),
        get_dialog=form_dialog(default_gradient),
        apply=_apply_gradient,
    )


@register("shape")
def make_shape():
    return make_filter(
        FilterInfo("Shape", "Shape", icon="shape"),
        get_dialog=form_dialog(default_shape),
        apply=_apply_shape,
    )
