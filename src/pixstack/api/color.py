"""
Color value types.

RGB channels are in [0, 255]; RGBA adds an alpha in [0, 1]. Blend, gradient
and shape math all work in this space.
"""

from typing import Any, Union

from attrs import define, field

from pixstack.validators import range_


@define(frozen=True)
class RGB:
    """
    Opaque color.

    .. py:attribute:: r
    .. py:attribute:: g
    .. py:attribute:: b

        Channel values in [0, 255].
    """

    r: int = field(default=0, converter=int, validator=range_(0, 255))
    g: int = field(default=0, converter=int, validator=range_(0, 255))
    b: int = field(default=0, converter=int, validator=range_(0, 255))

    @classmethod
    def coerce(cls, value: Union["RGB", tuple, list, dict]) -> "RGB":
        """Build from an RGB, a 3-sequence or a ``{r, g, b}`` mapping."""
        if isinstance(value, RGB):
            return value
        if isinstance(value, dict):
            return cls(value["r"], value["g"], value["b"])
        r, g, b = value[:3]
        return cls(r, g, b)

    def astuple(self) -> tuple[int, int, int]:
        return (self.r, self.g, self.b)

    def normalized(self) -> tuple[float, float, float]:
        """Channels scaled to [0, 1]."""
        return (self.r / 255.0, self.g / 255.0, self.b / 255.0)

    def to_dict(self) -> dict[str, int]:
        return {"r": self.r, "g": self.g, "b": self.b}


@define(frozen=True)
class RGBA:
    """
    Color with alpha. ``a`` is in [0, 1].
    """

    r: int = field(default=0, converter=int, validator=range_(0, 255))
    g: int = field(default=0, converter=int, validator=range_(0, 255))
    b: int = field(default=0, converter=int, validator=range_(0, 255))
    a: float = field(default=1.0, converter=float, validator=range_(0.0, 1.0))

    @classmethod
    def coerce(cls, value: Any) -> "RGBA":
        """Build from an RGBA, RGB, a 3- or 4-sequence or a mapping."""
        if isinstance(value, RGBA):
            return value
        if isinstance(value, RGB):
            return cls(value.r, value.g, value.b, 1.0)
        if isinstance(value, dict):
            return cls(value["r"], value["g"], value["b"], value.get("a", 1.0))
        if len(value) == 3:
            return cls(*value)
        r, g, b, a = value
        return cls(r, g, b, a)

    @property
    def rgb(self) -> RGB:
        return RGB(self.r, self.g, self.b)

    def astuple(self) -> tuple[int, int, int, float]:
        return (self.r, self.g, self.b, self.a)

    def to_dict(self) -> dict[str, Union[int, float]]:
        return {"r": self.r, "g": self.g, "b": self.b, "a": self.a}
