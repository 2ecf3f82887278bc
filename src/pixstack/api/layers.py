"""
Layer module.

This module implements the layer model of pixstack: a :py:class:`Layer` holds
a name, an opacity, a blend mode and one owned
:py:class:`~pixstack.api.raster.RasterBuffer`; a :py:class:`LayerStack` is the
ordered collection of layers sharing the canvas dimensions, together with the
focused layer index.

Layer order is paint order: index 0 is the bottom layer.

Example usage::

    from pixstack.api.layers import LayerStack
    from pixstack.constants import BlendMode

    stack = LayerStack(640, 480)
    background = stack.new_layer("Background")
    shade = stack.new_layer("Shade", blend_mode=BlendMode.MULTIPLY, opacity=0.5)

    stack.focus = 1
    stack.move(1, 0)        # focus follows the moved layer
    assert stack.focus == 0

    state = stack.state()   # structural snapshot
    stack.remove(0)
    stack.restore(state)

Every layer buffer has the stack dimensions. Layers are created at the stack
size by :py:meth:`LayerStack.new_layer`, and :py:meth:`LayerStack.insert`
rejects foreign sizes with :py:exc:`~pixstack.exceptions.DimensionMismatchError`.
"""

import logging
import operator
from typing import TYPE_CHECKING, Any, Iterator, Optional, Union

from attrs import define, field

from pixstack.api.raster import RasterBuffer
from pixstack.constants import BlendMode
from pixstack.exceptions import DimensionMismatchError
from pixstack.validators import range_

if TYPE_CHECKING:
    from pixstack.api.project import Project

logger = logging.getLogger(__name__)


def _check_opacity(value: float) -> float:
    value = float(value)
    if not (0.0 <= value <= 1.0):
        raise ValueError("Opacity must be in range [0, 1], got %r" % value)
    return value


class Layer:
    """
    Raster layer.

    :param name: Layer name.
    :param buffer: Pixel buffer owned by this layer.
    :param opacity: Opacity in [0, 1].
    :param blend_mode: :py:class:`~pixstack.constants.BlendMode` or its
        canvas name such as ``'multiply'``.
    """

    def __init__(
        self,
        name: str,
        buffer: RasterBuffer,
        opacity: float = 1.0,
        blend_mode: Union[str, BlendMode] = BlendMode.NORMAL,
    ):
        if not isinstance(buffer, RasterBuffer):
            raise TypeError("Expected RasterBuffer, got %s" % type(buffer).__name__)
        self._name = str(name)
        self._buffer = buffer
        self._opacity = _check_opacity(opacity)
        self._blend_mode = BlendMode(blend_mode)

    @property
    def name(self) -> str:
        """
        Layer name. Writable.

        :return: `str`
        """
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = str(value)

    @property
    def opacity(self) -> float:
        """
        Opacity of this layer in [0, 1] range. Writable.

        :return: float
        """
        return self._opacity

    @opacity.setter
    def opacity(self, value: float) -> None:
        self._opacity = _check_opacity(value)

    @property
    def blend_mode(self) -> BlendMode:
        """
        Blend mode of this layer. Writable.

        Example::

            from pixstack.constants import BlendMode
            if layer.blend_mode == BlendMode.NORMAL:
                layer.blend_mode = BlendMode.SCREEN

        :return: :py:class:`~pixstack.constants.BlendMode`.
        """
        return self._blend_mode

    @blend_mode.setter
    def blend_mode(self, value: Union[str, BlendMode]) -> None:
        self._blend_mode = BlendMode(value)

    @property
    def buffer(self) -> RasterBuffer:
        """Pixel buffer owned by this layer."""
        return self._buffer

    @property
    def width(self) -> int:
        return self._buffer.width

    @property
    def height(self) -> int:
        return self._buffer.height

    @property
    def size(self) -> tuple[int, int]:
        return self._buffer.size

    def numpy(self, channel: Optional[str] = None):
        """Get float32 pixel data. See :py:meth:`RasterBuffer.numpy`."""
        return self._buffer.numpy(channel)

    def topil(self):
        """Get the layer pixels as an RGBA PIL image."""
        return self._buffer.topil()

    def state(self) -> "LayerState":
        """Snapshot of this layer, independent of later edits."""
        return LayerState(self._name, self._opacity, self._blend_mode, self._buffer.clone())

    def __repr__(self) -> str:
        return "%s(%r size=%dx%d opacity=%g mode=%s)" % (
            self.__class__.__name__,
            self._name,
            self.width,
            self.height,
            self._opacity,
            self._blend_mode.value,
        )


@define(frozen=True)
class LayerState:
    """Immutable snapshot of one layer."""

    name: str
    opacity: float = field(validator=range_(0.0, 1.0))
    blend_mode: BlendMode = field(converter=BlendMode)
    buffer: RasterBuffer

    def to_layer(self) -> Layer:
        return Layer(self.name, self.buffer.clone(), self.opacity, self.blend_mode)


@define(frozen=True)
class StackState:
    """
    Immutable snapshot of a whole layer stack.

    Used by history entries for structural edits (adding, removing and
    reordering layers) and for filters that change the canvas geometry.
    """

    width: int
    height: int
    layers: tuple[LayerState, ...] = field(converter=tuple)
    focus: Optional[int] = field(default=None)

    @focus.validator
    def _validate_focus(self, attribute: Any, value: Optional[int]) -> None:
        if not self.layers:
            if value is not None:
                raise ValueError("Empty stack state cannot have focus %r" % value)
        elif value is None or not (0 <= value < len(self.layers)):
            raise ValueError("Invalid focus %r for %d layers" % (value, len(self.layers)))


class LayerStack:
    """
    Ordered collection of layers sharing the canvas dimensions.

    Supports the sequence protocol; iteration goes bottom to top.

    :param width: Canvas width.
    :param height: Canvas height.
    """

    def __init__(self, width: int, height: int):
        width, height = int(width), int(height)
        if width <= 0 or height <= 0:
            raise ValueError("Invalid canvas size: %dx%d" % (width, height))
        self._width = width
        self._height = height
        self._layers: list[Layer] = []
        self._focus: Optional[int] = None

    @classmethod
    def from_project(cls, project: "Project") -> "LayerStack":
        """
        Build a stack from a :py:class:`~pixstack.api.project.Project`.

        The focus is placed on the top layer.
        """
        stack = cls(project.width, project.height)
        for record in project.layers:
            stack.new_layer(
                record.name,
                source=record.image,
                opacity=record.opacity,
                blend_mode=record.blend_mode,
            )
        if len(stack):
            stack.focus = len(stack) - 1
        return stack

    @property
    def width(self) -> int:
        """Canvas width."""
        return self._width

    @property
    def height(self) -> int:
        """Canvas height."""
        return self._height

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) tuple."""
        return self._width, self._height

    @property
    def layers(self) -> tuple[Layer, ...]:
        """Layers from bottom to top."""
        return tuple(self._layers)

    def __len__(self) -> int:
        return self._layers.__len__()

    def __iter__(self) -> Iterator[Layer]:
        return self._layers.__iter__()

    def __reversed__(self) -> Iterator[Layer]:
        return self._layers.__reversed__()

    def __contains__(self, item: object) -> bool:
        return item in self._layers

    def __getitem__(self, key: int) -> Layer:
        return self._layers.__getitem__(key)

    def index(self, layer: Layer) -> int:
        """
        Returns the index of the specified layer in the stack.

        :param layer: The layer to find.
        """
        return self._layers.index(layer)

    @property
    def focus(self) -> Optional[int]:
        """
        Index of the focused layer, or None when the stack is empty. Writable.
        """
        return self._focus

    @focus.setter
    def focus(self, index: int) -> None:
        self._focus = self._check_index(index)

    @property
    def focused_layer(self) -> Optional[Layer]:
        """The focused layer, or None when the stack is empty."""
        if self._focus is None:
            return None
        return self._layers[self._focus]

    def new_layer(
        self,
        name: Optional[str] = None,
        index: Optional[int] = None,
        source: Any = None,
        opacity: float = 1.0,
        blend_mode: Union[str, BlendMode] = BlendMode.NORMAL,
    ) -> Layer:
        """
        Create a transparent layer at the stack dimensions and insert it.

        :param name: Layer name, defaults to ``'Layer N'``.
        :param index: Insert position, defaults to the top.
        :param source: Optional decoded image to copy into the new buffer.
        :return: The new layer.
        """
        buffer = RasterBuffer(self._width, self._height)
        if source is not None:
            buffer.load(source)
        if name is None:
            name = "Layer %d" % (len(self._layers) + 1)
        layer = Layer(name, buffer, opacity, blend_mode)
        self.insert(len(self._layers) if index is None else index, layer)
        return layer

    def insert(self, index: int, layer: Layer) -> None:
        """
        Insert the given layer at the specified index.

        The focused layer stays focused. The first layer of an empty stack
        becomes focused.

        :raises DimensionMismatchError: if the layer size differs from the
            stack size.
        :raises ValueError: if the layer or its buffer is already in the stack.
        """
        self._check_insertion(layer)
        if not (0 <= index <= len(self._layers)):
            raise IndexError(
                "Insert index %d out of range for %d layers" % (index, len(self._layers))
            )
        self._layers.insert(index, layer)
        if self._focus is None:
            self._focus = 0
        elif index <= self._focus:
            self._focus += 1
        logger.debug("Inserted %r at %d" % (layer, index))

    def remove(self, index: int) -> Layer:
        """
        Remove and return the layer at the specified index.

        When the focused layer is removed, the layer below it gets the focus.
        """
        index = self._check_index(index)
        layer = self._layers.pop(index)
        assert self._focus is not None
        if not self._layers:
            self._focus = None
        elif index < self._focus or (index == self._focus and index > 0):
            self._focus -= 1
        logger.debug("Removed %r from %d" % (layer, index))
        return layer

    def move(self, source: int, destination: int) -> None:
        """
        Move the layer at ``source`` so that it ends up at ``destination``.

        The focus follows the focused layer.
        """
        source = self._check_index(source)
        destination = self._check_index(destination)
        if source == destination:
            return
        focused = self.focused_layer
        layer = self._layers.pop(source)
        self._layers.insert(destination, layer)
        self._focus = self._layers.index(focused)
        logger.debug("Moved %r from %d to %d" % (layer, source, destination))

    def get_opacity(self, index: int) -> float:
        return self[index].opacity

    def set_opacity(self, index: int, value: float) -> None:
        self[index].opacity = value

    def get_blend_mode(self, index: int) -> BlendMode:
        return self[index].blend_mode

    def set_blend_mode(self, index: int, value: Union[str, BlendMode]) -> None:
        self[index].blend_mode = value

    def state(self) -> StackState:
        """Take a structural snapshot with copies of all buffers."""
        return StackState(
            self._width,
            self._height,
            tuple(layer.state() for layer in self._layers),
            self._focus,
        )

    def restore(self, state: StackState) -> None:
        """
        Replace all layers with the snapshot contents.

        The canvas size is taken from the snapshot; this is the only way the
        stack dimensions change.
        """
        for layer_state in state.layers:
            if layer_state.buffer.size != (state.width, state.height):
                raise DimensionMismatchError(
                    "Layer %r is %dx%d in a %dx%d state"
                    % (
                        layer_state.name,
                        layer_state.buffer.width,
                        layer_state.buffer.height,
                        state.width,
                        state.height,
                    )
                )
        self._width = state.width
        self._height = state.height
        self._layers = [layer_state.to_layer() for layer_state in state.layers]
        self._focus = state.focus

    def _check_index(self, index: int) -> int:
        """Return the index as a plain int, accepting any integral type."""
        try:
            value = operator.index(index)
        except TypeError:
            raise IndexError("Layer index must be an integer, got %r" % (index,))
        if not (0 <= value < len(self._layers)):
            raise IndexError(
                "Layer index %r out of range for %d layers" % (index, len(self._layers))
            )
        return value

    def _check_insertion(self, layer: Layer) -> None:
        if not isinstance(layer, Layer):
            raise TypeError("Expected Layer instance, got %s" % type(layer).__name__)
        if layer.size != self.size:
            raise DimensionMismatchError(
                "Layer %r is %dx%d, stack is %dx%d"
                % (layer.name, layer.width, layer.height, self._width, self._height)
            )
        for other in self._layers:
            if other is layer:
                raise ValueError("Layer %r is already in the stack" % layer.name)
            if other.buffer is layer.buffer:
                raise ValueError(
                    "Layer %r shares its buffer with %r" % (layer.name, other.name)
                )

    def __repr__(self) -> str:
        return "%s(size=%dx%d layers=%d focus=%r)" % (
            self.__class__.__name__,
            self._width,
            self._height,
            len(self._layers),
            self._focus,
        )
