"""
Undo/redo history.

A :py:class:`HistoryLog` is an append-only list of :py:class:`HistoryEntry`
objects plus a pointer. Entries before the pointer are applied; entries at
or after it are redoable. Committing prunes the redoable branch.

Each entry carries its own forward and backward mutation data, copied out of
the stack when captured, so entries stay valid no matter what happens to the
live layers afterwards. Two kinds of mutation data exist:

- :py:class:`PixelMutation`: buffer snapshots for a few layers, for edits that
  only change pixels.
- :py:class:`StackMutation`: a full :py:class:`~pixstack.api.layers.StackState`,
  for structural edits and geometry changes.
- :py:class:`LayerMutation`: name, opacity and blend mode of one layer.

Example::

    before = PixelMutation.capture(stack, [stack.focus])
    invert(stack.focused_layer.buffer)
    history.commit(
        HistoryEntry.create(
            "Invert",
            forward=PixelMutation.capture(stack, [stack.focus]),
            backward=before,
        )
    )
    history.undo()
"""

import logging
import time
from typing import Callable, Iterable, Optional, Union

from attrs import define, field

from pixstack.api.layers import LayerStack, StackState
from pixstack.api.raster import RasterBuffer
from pixstack.constants import BlendMode
from pixstack.exceptions import DimensionMismatchError

logger = logging.getLogger(__name__)


@define(frozen=True)
class PixelMutation:
    """
    Pixel contents of some layers, keyed by layer index.
    """

    buffers: tuple[tuple[int, RasterBuffer], ...] = field(converter=tuple)

    @classmethod
    def capture(
        cls, stack: LayerStack, indices: Optional[Iterable[int]] = None
    ) -> "PixelMutation":
        """
        Copy the buffers of the given layers, or of all layers when
        ``indices`` is None.
        """
        if indices is None:
            indices = range(len(stack))
        return cls(tuple((index, stack[index].buffer.clone()) for index in indices))

    @property
    def indices(self) -> tuple[int, ...]:
        return tuple(index for index, _ in self.buffers)

    def apply_to(self, stack: LayerStack) -> None:
        for index, buffer in self.buffers:
            target = stack[index].buffer
            if target.size != buffer.size:
                raise DimensionMismatchError(
                    "History data for layer %d does not match the stack" % index
                )
            target.copy_from(buffer)


@define(frozen=True)
class StackMutation:
    """
    Full structural snapshot of the stack.
    """

    state: StackState

    @classmethod
    def capture(cls, stack: LayerStack) -> "StackMutation":
        return cls(stack.state())

    def apply_to(self, stack: LayerStack) -> None:
        stack.restore(self.state)


@define(frozen=True)
class LayerMutation:
    """
    Name, opacity and blend mode of one layer.
    """

    index: int
    name: str
    opacity: float
    blend_mode: BlendMode

    @classmethod
    def capture(cls, stack: LayerStack, index: int) -> "LayerMutation":
        layer = stack[index]
        return cls(index, layer.name, layer.opacity, layer.blend_mode)

    def apply_to(self, stack: LayerStack) -> None:
        layer = stack[self.index]
        layer.name = self.name
        layer.opacity = self.opacity
        layer.blend_mode = self.blend_mode


Mutation = Union[PixelMutation, StackMutation, LayerMutation]


@define(frozen=True)
class HistoryEntry:
    """
    One committed, undoable mutation.

    .. py:attribute:: label

        Human readable description, such as the filter name.

    .. py:attribute:: forward

        Mutation data that re-applies the edit.

    .. py:attribute:: backward

        Mutation data that reverts the edit.

    .. py:attribute:: timestamp

        Commit time in seconds since the epoch.
    """

    label: str
    forward: Mutation
    backward: Mutation
    timestamp: float = field(factory=time.time)

    @classmethod
    def create(
        cls, label: str, forward: Mutation, backward: Mutation
    ) -> "HistoryEntry":
        return cls(label, forward, backward)


@define(frozen=True, eq=False)
class HistoryMark:
    """Opaque position returned by :py:meth:`HistoryLog.mark`."""

    entries: tuple[HistoryEntry, ...]
    pointer: int


class HistoryLog:
    """
    Undo/redo timeline bound to one layer stack.

    :param stack: Stack that undo and redo operate on.
    :param limit: Maximum number of retained entries. Oldest entries are
        dropped beyond it. None keeps everything.
    """

    def __init__(self, stack: LayerStack, limit: Optional[int] = None):
        if limit is not None and limit < 1:
            raise ValueError("History limit must be positive, got %r" % limit)
        self._stack = stack
        self._limit = limit
        self._entries: list[HistoryEntry] = []
        self._pointer = 0
        self._listeners: list[Callable[["HistoryLog"], None]] = []

    @property
    def stack(self) -> LayerStack:
        return self._stack

    @property
    def limit(self) -> Optional[int]:
        return self._limit

    @property
    def pointer(self) -> int:
        """Number of currently applied entries."""
        return self._pointer

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def can_undo(self) -> bool:
        return self._pointer > 0

    @property
    def can_redo(self) -> bool:
        return self._pointer < len(self._entries)

    def commit(self, entry: HistoryEntry) -> None:
        """
        Append an entry at the pointer, discarding every redoable entry.
        """
        if not isinstance(entry, HistoryEntry):
            raise TypeError("Expected HistoryEntry, got %s" % type(entry).__name__)
        pruned = len(self._entries) - self._pointer
        if pruned:
            logger.debug("Pruning %d redoable entries" % pruned)
        del self._entries[self._pointer :]
        self._entries.append(entry)
        if self._limit is not None and len(self._entries) > self._limit:
            del self._entries[: len(self._entries) - self._limit]
        self._pointer = len(self._entries)
        logger.debug("Committed %r (%d entries)" % (entry.label, len(self._entries)))
        self._notify()

    def undo(self) -> bool:
        """
        Revert the entry before the pointer.

        :return: False when there is nothing to undo.
        """
        if not self.can_undo:
            return False
        entry = self._entries[self._pointer - 1]
        entry.backward.apply_to(self._stack)
        self._pointer -= 1
        logger.debug("Undo %r" % entry.label)
        self._notify()
        return True

    def redo(self) -> bool:
        """
        Re-apply the entry at the pointer.

        :return: False when there is nothing to redo.
        """
        if not self.can_redo:
            return False
        entry = self._entries[self._pointer]
        entry.forward.apply_to(self._stack)
        self._pointer += 1
        logger.debug("Redo %r" % entry.label)
        self._notify()
        return True

    def clear(self) -> None:
        """Drop all entries without touching the stack."""
        self._entries.clear()
        self._pointer = 0
        self._notify()

    def mark(self) -> HistoryMark:
        """Remember the current timeline so it can be brought back by :py:meth:`reset`."""
        return HistoryMark(tuple(self._entries), self._pointer)

    def is_at(self, mark: HistoryMark) -> bool:
        """True if the timeline is unchanged since ``mark`` was taken."""
        return (
            mark.pointer == self._pointer
            and len(mark.entries) == len(self._entries)
            and all(a is b for a, b in zip(mark.entries, self._entries))
        )

    def reset(self, mark: HistoryMark) -> None:
        """
        Restore the timeline to a previous :py:meth:`mark`.

        Only the log is restored; the stack is left alone.
        """
        if self.is_at(mark):
            return
        logger.debug("Resetting history to %d entries" % len(mark.entries))
        self._entries = list(mark.entries)
        self._pointer = mark.pointer
        self._notify()

    def add_listener(self, callback: Callable[["HistoryLog"], None]) -> None:
        """Register a callable invoked after every timeline change."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[["HistoryLog"], None]) -> None:
        self._listeners.remove(callback)

    def _notify(self) -> None:
        for callback in self._listeners:
            callback(self)

    def __repr__(self) -> str:
        return "%s(pointer=%d entries=%d)" % (
            self.__class__.__name__,
            self._pointer,
            len(self._entries),
        )
