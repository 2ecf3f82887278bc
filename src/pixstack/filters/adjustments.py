"""
Color adjustment filters.
"""

import logging
from typing import Any

import numpy as np
from attrs import define, field

from pixstack.api.pipeline import ApplyParams, FilterInfo, make_filter
from pixstack.api.raster import RasterBuffer
from pixstack.composite.utils import clip
from pixstack.filters.base import edit_focused, form_dialog, register
from pixstack.validators import range_

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma weights.
LUMA = np.array([0.299, 0.587, 0.114], dtype=np.float32)


def invert(buffer: RasterBuffer) -> None:
    """Replace every color channel with 255 minus its value. Alpha is kept."""
    data = buffer.to_rgba()
    data[:, :, :3] = 255 - data[:, :, :3]
    buffer.write(data)


@register("invert")
def make_invert():
    return make_filter(
        FilterInfo("Invert", "Invert", icon="invert"),
        is_instant=True,
        apply=lambda params: edit_focused(params, "Invert", invert),
    )


@define(frozen=True)
class GrayscaleInput:
    """
    .. py:attribute:: amount

        Mix between the original (0, excluded) and the fully desaturated
        color (1).
    """

    amount: float = field(default=1.0, converter=float, validator=range_(0.0, 1.0))

    @amount.validator
    def _validate_amount(self, attribute: Any, value: float) -> None:
        if value == 0:
            raise ValueError("'amount' must be greater than 0")


def grayscale(buffer: RasterBuffer, amount: float = 1.0) -> None:
    data = buffer.numpy()
    color = data[:, :, :3]
    luma = np.sum(color * LUMA, axis=2, keepdims=True)
    data[:, :, :3] = color + amount * (luma - color)
    buffer.write(data)


def _apply_grayscale(params: ApplyParams) -> bool:
    amount = params.input.amount
    return edit_focused(params, "Grayscale", lambda b: grayscale(b, amount))


@register("grayscale")
def make_grayscale():
    return make_filter(
        FilterInfo("Grayscale", "Grayscale", icon="grayscale"),
        get_dialog=form_dialog(lambda params: GrayscaleInput()),
        apply=_apply_grayscale,
    )


@define(frozen=True)
class BrightnessContrastInput:
    """
    .. py:attribute:: brightness
    .. py:attribute:: contrast

        Both in [-1, 1]; 0 leaves the image unchanged.
    """

    brightness: float = field(default=0.0, converter=float, validator=range_(-1.0, 1.0))
    contrast: float = field(default=0.0, converter=float, validator=range_(-1.0, 1.0))


def brightness_contrast(
    buffer: RasterBuffer, brightness: float = 0.0, contrast: float = 0.0
) -> None:
    data = buffer.numpy()
    color = data[:, :, :3] + brightness
    if contrast > 0:
        color = (color - 0.5) / max(1.0 - contrast, 1e-3) + 0.5
    else:
        color = (color - 0.5) * (1.0 + contrast) + 0.5
    data[:, :, :3] = clip(color)
    buffer.write(data)


def _apply_brightness_contrast(params: ApplyParams) -> bool:
    value = params.input
    return edit_focused(
        params,
        "Brightness / Contrast",
        lambda b: brightness_contrast(b, value.brightness, value.contrast),
    )


@register("brightness_contrast")
def make_brightness_contrast():
    return make_filter(
        FilterInfo("Brightness / Contrast", "Bright/Contrast", icon="brightness"),
        get_dialog=form_dialog(lambda params: BrightnessContrastInput()),
        apply=_apply_brightness_contrast,
    )
