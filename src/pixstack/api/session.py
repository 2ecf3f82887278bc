"""
Editing session.

An :py:class:`EditSession` bundles everything one open document needs: the
layer stack, its history, the filter pipeline, the configuration and the
write lock that serializes mutations. Nothing is global, so independent
sessions can coexist.

Example usage::

    from pixstack import EditSession

    session = EditSession.new(640, 480)
    session.apply_filter('invert')
    session.undo()
    image = session.render().topil()
"""

import contextlib
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Iterator, Optional, Union

from pixstack.api.history import (
    HistoryEntry,
    HistoryLog,
    LayerMutation,
    StackMutation,
)
from pixstack.api.layers import Layer, LayerStack
from pixstack.api.pipeline import ApplyResult, Filter, FilterInvocation, FilterPipeline
from pixstack.api.project import Project, StorageProject
from pixstack.api.raster import RasterBuffer
from pixstack.composite import render
from pixstack.config import SessionConfig
from pixstack.constants import BlendMode, PipelineState
from pixstack.exceptions import BusyError

logger = logging.getLogger(__name__)


class EditSession:
    """
    Editing session context.

    :param stack: Layer stack to edit.
    :param config: :py:class:`~pixstack.config.SessionConfig`, defaults
        apply when omitted.
    """

    def __init__(self, stack: LayerStack, config: Optional[SessionConfig] = None):
        self._config = config or SessionConfig()
        self._stack = stack
        self._history = HistoryLog(stack, self._config.history_limit)
        self._pipeline = FilterPipeline(self)
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

    @classmethod
    def new(
        cls,
        width: int,
        height: int,
        config: Optional[SessionConfig] = None,
        background: Optional[Any] = None,
    ) -> "EditSession":
        """
        Create a session with a single layer.

        :param background: Optional decoded image for the first layer.
        """
        stack = LayerStack(width, height)
        stack.new_layer("Background", source=background)
        return cls(stack, config)

    @classmethod
    def from_project(
        cls, project: Project, config: Optional[SessionConfig] = None
    ) -> "EditSession":
        return cls(LayerStack.from_project(project), config)

    @classmethod
    def from_storage(
        cls, record: StorageProject, config: Optional[SessionConfig] = None
    ) -> "EditSession":
        return cls.from_project(record.to_project(), config)

    @property
    def stack(self) -> LayerStack:
        return self._stack

    @property
    def history(self) -> HistoryLog:
        return self._history

    @property
    def pipeline(self) -> FilterPipeline:
        return self._pipeline

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def lock(self) -> threading.Lock:
        """Write lock held by every mutation."""
        return self._lock

    @contextlib.contextmanager
    def exclusive(self) -> Iterator[LayerStack]:
        """
        Hold the write lock without waiting.

        :raises BusyError: if a pipeline invocation or another edit holds it.
        """
        if not self._lock.acquire(blocking=False):
            raise BusyError("Another operation is modifying the stack")
        try:
            yield self._stack
        finally:
            self._lock.release()

    def render(self) -> RasterBuffer:
        """
        Composite the stack into a new buffer.

        Layers are snapshotted under the write lock, compositing runs outside
        it. Waits for an applying filter to finish.
        """
        with self._lock:
            state = self._stack.state()
        return render(state)

    def render_async(self) -> "Future[RasterBuffer]":
        """Run :py:meth:`render` on a background thread."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="pixstack-render"
            )
        return self._executor.submit(self.render)

    def close(self) -> None:
        """Shut down the background renderer."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "EditSession":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def undo(self) -> bool:
        """:raises BusyError: while a filter is applying."""
        with self.exclusive():
            return self._history.undo()

    def redo(self) -> bool:
        """:raises BusyError: while a filter is applying."""
        with self.exclusive():
            return self._history.redo()

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    def add_layer(
        self,
        name: Optional[str] = None,
        index: Optional[int] = None,
        source: Any = None,
        opacity: float = 1.0,
        blend_mode: Union[str, BlendMode] = BlendMode.NORMAL,
    ) -> Layer:
        """Create a layer, focus it and record the change."""
        with self.exclusive() as stack:
            before = StackMutation.capture(stack)
            layer = stack.new_layer(name, index, source, opacity, blend_mode)
            stack.focus = stack.index(layer)
            self._commit("Add layer", StackMutation.capture(stack), before)
            return layer

    def remove_layer(self, index: int) -> None:
        with self.exclusive() as stack:
            before = StackMutation.capture(stack)
            stack.remove(index)
            self._commit("Remove layer", StackMutation.capture(stack), before)

    def move_layer(self, source: int, destination: int) -> None:
        with self.exclusive() as stack:
            if source == destination:
                return
            before = StackMutation.capture(stack)
            stack.move(source, destination)
            self._commit("Move layer", StackMutation.capture(stack), before)

    def set_focus(self, index: int) -> None:
        """Focus a layer. Not recorded in history."""
        with self.exclusive() as stack:
            stack.focus = index

    def set_layer_opacity(self, index: int, value: float) -> None:
        with self.exclusive() as stack:
            before = LayerMutation.capture(stack, index)
            stack.set_opacity(index, value)
            self._commit("Layer opacity", LayerMutation.capture(stack, index), before)

    def set_layer_blend_mode(self, index: int, value: Union[str, BlendMode]) -> None:
        with self.exclusive() as stack:
            before = LayerMutation.capture(stack, index)
            stack.set_blend_mode(index, value)
            self._commit(
                "Layer blend mode", LayerMutation.capture(stack, index), before
            )

    def rename_layer(self, index: int, name: str) -> None:
        with self.exclusive() as stack:
            before = LayerMutation.capture(stack, index)
            stack[index].name = name
            self._commit("Rename layer", LayerMutation.capture(stack, index), before)

    def invoke(self, filter: Union[str, Filter]) -> FilterInvocation:
        """
        Invoke a filter object or a built-in filter by name.
        """
        if isinstance(filter, str):
            from pixstack.filters import get_filter

            filter = get_filter(filter)
        return self._pipeline.invoke(filter)

    def apply_filter(self, filter: Union[str, Filter], input: Any = None) -> ApplyResult:
        """
        Invoke and, for modal filters, confirm right away with ``input``.

        When ``input`` is None the dialog defaults are used.
        """
        invocation = self.invoke(filter)
        if invocation.state == PipelineState.AWAITING_PARAMETERS:
            return invocation.confirm(input)
        assert invocation.result is not None
        return invocation.result

    def to_storage(self, id: int = 1, timestamp: Optional[float] = None) -> StorageProject:
        """Encode the current stack as a storage record."""
        with self._lock:
            state = self._stack.state()
        return StorageProject.from_stack(
            state, id=id, timestamp=timestamp, thumbnail_size=self._config.thumbnail_size
        )

    def _commit(self, label: str, forward: Any, backward: Any) -> None:
        self._history.commit(HistoryEntry.create(label, forward, backward))

    def __repr__(self) -> str:
        return "%s(%r, %r)" % (self.__class__.__name__, self._stack, self._history)
