"""
Various constants for pixstack
"""
from enum import Enum


class BlendMode(str, Enum):
    """
    Blend modes.

    Values are the names of the corresponding canvas composite operations,
    which is also how layer records store them.
    """
    NORMAL = 'source-over'
    DARKEN = 'darken'
    MULTIPLY = 'multiply'
    COLOR_BURN = 'color-burn'
    LIGHTEN = 'lighten'
    SCREEN = 'screen'
    COLOR_DODGE = 'color-dodge'
    OVERLAY = 'overlay'
    SOFT_LIGHT = 'soft-light'
    HARD_LIGHT = 'hard-light'
    DIFFERENCE = 'difference'
    EXCLUSION = 'exclusion'
    HUE = 'hue'
    SATURATION = 'saturation'
    COLOR = 'color'
    LUMINOSITY = 'luminosity'

    @classmethod
    def _missing_(cls, value):
        # Accept the enum name and "normal" as aliases.
        if isinstance(value, str):
            name = value.strip().upper().replace('-', '_')
            if name in cls.__members__:
                return cls.__members__[name]
        return None


class GradientType(str, Enum):
    """
    Gradient tool styles.
    """
    LINEAR = 'linear'
    LINEAR_MIRROR = 'linear-mirror'
    RADIAL = 'radial'


class ShapeType(str, Enum):
    """
    Shape tool primitives.
    """
    RECT = 'rect'
    ELLIPSE = 'ellipse'
    LINE = 'line'


class UnsupportedFeature(str, Enum):
    """
    Document features that cannot be represented in a layer stack.

    Importers report these so the user can be told what was lost; they are
    never raised.
    """
    MASK = 'mask'
    CLIPPING = 'clipping'
    GROUP = 'group'
    ADJUSTMENT = 'adjustment'
    LAYER_EFFECT = 'layer-effect'
    SMART_OBJECT = 'smart-object'
    BLEND_MODE = 'blend-mode'
    BITS_PER_CHANNEL = 'bits-per-channel'


class PipelineState(Enum):
    """
    States of a single filter invocation.
    """
    IDLE = 'idle'
    AWAITING_PARAMETERS = 'awaiting-parameters'
    APPLYING = 'applying'
    COMMITTED = 'committed'
    ABORTED = 'aborted'
