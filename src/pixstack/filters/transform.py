"""
Geometric filters.
"""

import logging

import numpy as np
from attrs import define, field

from pixstack.api.pipeline import ApplyParams, FilterInfo, make_filter
from pixstack.api.raster import RasterBuffer
from pixstack.filters.base import edit_focused, edit_layers, form_dialog, register

logger = logging.getLogger(__name__)


@define(frozen=True)
class FlipInput:
    """
    .. py:attribute:: all_layers

        Flip every layer, i.e. the whole canvas, instead of the focused one.
    """

    horizontal: bool = field(default=True, converter=bool)
    vertical: bool = field(default=False, converter=bool)
    all_layers: bool = field(default=True, converter=bool)

    def __attrs_post_init__(self) -> None:
        if not (self.horizontal or self.vertical):
            raise ValueError("Select a horizontal or vertical flip")


def flip(buffer: RasterBuffer, horizontal: bool = True, vertical: bool = False) -> None:
    data = buffer.to_rgba()
    if horizontal:
        data = np.flip(data, axis=1)
    if vertical:
        data = np.flip(data, axis=0)
    buffer.write(data)


def _apply_flip(params: ApplyParams) -> bool:
    value = params.input

    def edit(buffer: RasterBuffer) -> None:
        flip(buffer, value.horizontal, value.vertical)

    if value.all_layers:
        return edit_layers(params, "Flip", edit)
    return edit_focused(params, "Flip layer", edit)


@register("flip")
def make_flip():
    return make_filter(
        FilterInfo("Flip", "Flip", changes_geometry=True, icon="flip"),
        get_dialog=form_dialog(lambda params: FlipInput()),
        apply=_apply_flip,
    )
