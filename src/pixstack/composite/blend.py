"""
Blend mode implementations.

Every function takes the backdrop ``Cb`` and the source ``Cs`` as float
arrays of shape ``(height, width, 3)`` in [0, 1] and returns the blended
color. Formulas follow the W3C Compositing and Blending specification, which
is what the canvas composite operations of the same names implement.
"""
import logging

import numpy as np

from pixstack.composite.utils import clip
from pixstack.constants import BlendMode

logger = logging.getLogger(__name__)


# Separable blend functions
def normal(Cb, Cs):
    return Cs


def multiply(Cb, Cs):
    return Cb * Cs


def screen(Cb, Cs):
    return Cb + Cs - (Cb * Cs)


def overlay(Cb, Cs):
    return hard_light(Cs, Cb)


def darken(Cb, Cs):
    return np.minimum(Cb, Cs)


def lighten(Cb, Cs):
    return np.maximum(Cb, Cs)


def color_dodge(Cb, Cs):
    B = np.zeros_like(Cb, dtype=np.float32)
    B[Cs == 1] = 1
    B[Cb == 0] = 0
    index = (Cs != 1) & (Cb != 0)
    B[index] = np.minimum(1, Cb[index] / (1 - Cs[index]))
    return B


def color_burn(Cb, Cs):
    B = np.zeros_like(Cb, dtype=np.float32)
    B[Cb == 1] = 1
    index = (Cb != 1) & (Cs != 0)
    B[index] = 1 - np.minimum(1, (1 - Cb[index]) / Cs[index])
    return B


def hard_light(Cb, Cs):
    index = Cs > 0.5
    B = multiply(Cb, 2 * Cs)
    B[index] = screen(Cb, 2 * Cs - 1)[index]
    return B


def soft_light(Cb, Cs):
    index = Cb <= 0.25
    index_not = ~index
    D = np.zeros_like(Cb, dtype=np.float32)
    D[index] = ((16 * Cb[index] - 12) * Cb[index] + 4) * Cb[index]
    D[index_not] = np.sqrt(Cb[index_not])

    index = Cs <= 0.5
    index_not = ~index
    B = np.zeros_like(Cb, dtype=np.float32)
    B[index] = Cb[index] - (1 - 2 * Cs[index]) * Cb[index] * (1 - Cb[index])
    B[index_not] = Cb[index_not] + \
        (2 * Cs[index_not] - 1) * (D[index_not] - Cb[index_not])
    return B


def difference(Cb, Cs):
    return np.abs(Cb - Cs)


def exclusion(Cb, Cs):
    return Cb + Cs - 2 * Cb * Cs


# Non-separable blend functions operate on the RGB triple as a whole.
def hue(Cb, Cs):
    return _set_lum(_set_sat(Cs, _sat(Cb)), _lum(Cb))


def saturation(Cb, Cs):
    return _set_lum(_set_sat(Cb, _sat(Cs)), _lum(Cb))


def color(Cb, Cs):
    return _set_lum(Cs, _lum(Cb))


def luminosity(Cb, Cs):
    return _set_lum(Cb, _lum(Cs))


# Helper functions from the W3C reference.
def _lum(C):
    return 0.3 * C[:, :, 0:1] + 0.59 * C[:, :, 1:2] + 0.11 * C[:, :, 2:3]


def _set_lum(C, l):
    d = l - _lum(C)
    return _clip_color(C + d)


def _clip_color(C):
    L = _lum(C)
    C_min = np.min(C, axis=2, keepdims=True)
    C_max = np.max(C, axis=2, keepdims=True)

    # Both branches of np.where are evaluated; masked lanes may divide by 0.
    with np.errstate(divide="ignore", invalid="ignore"):
        C = np.where(C_min < 0.0, L + (C - L) * L / (L - C_min), C)
        C = np.where(C_max > 1.0, L + (C - L) * (1 - L) / (C_max - L), C)

    # For numerical stability.
    return clip(C)


def _sat(C):
    return np.max(C, axis=2, keepdims=True) - np.min(C, axis=2, keepdims=True)


def _set_sat(C, s):
    C_max = np.max(C, axis=2, keepdims=True)
    C_min = np.min(C, axis=2, keepdims=True)
    diff = C_max - C_min

    # Scaling the distance to the minimum maps max -> s, min -> 0 and the
    # middle channel proportionally.
    with np.errstate(divide="ignore", invalid="ignore"):
        B = (C - C_min) * s / diff
    B = np.where(diff > 0, B, 0.0)
    return B.astype(np.float32)


"""Blend function table."""
BLEND_FUNC = {
    BlendMode.NORMAL: normal,
    BlendMode.DARKEN: darken,
    BlendMode.MULTIPLY: multiply,
    BlendMode.COLOR_BURN: color_burn,
    BlendMode.LIGHTEN: lighten,
    BlendMode.SCREEN: screen,
    BlendMode.COLOR_DODGE: color_dodge,
    BlendMode.OVERLAY: overlay,
    BlendMode.SOFT_LIGHT: soft_light,
    BlendMode.HARD_LIGHT: hard_light,
    BlendMode.DIFFERENCE: difference,
    BlendMode.EXCLUSION: exclusion,
    BlendMode.HUE: hue,
    BlendMode.SATURATION: saturation,
    BlendMode.COLOR: color,
    BlendMode.LUMINOSITY: luminosity,
}
