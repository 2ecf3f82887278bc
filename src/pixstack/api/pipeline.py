"""
Filter pipeline.

Every pixel mutation driven by a filter goes through a
:py:class:`FilterPipeline`. One :py:meth:`FilterPipeline.invoke` call creates
a :py:class:`FilterInvocation`, a small state machine::

    IDLE --(modal)--> AWAITING_PARAMETERS --confirm--> APPLYING --> COMMITTED
      |                      |                            |
      +--(instant)-----------)--------------------------->+-------> ABORTED
                             +--cancel / dialog error------------> ABORTED

Filters come in three variants built by :py:func:`make_filter`:

- :py:class:`InstantFilter`: ``apply`` only, applied on invocation.
- :py:class:`ModalFilter`: ``get_dialog`` and ``apply``; parameters are
  collected by an external dialog before applying.
- :py:class:`InertFilter`: neither; can be listed but not invoked.

While applying, the invocation holds the session write lock. A second
invocation trying to apply at the same time is rejected with
:py:exc:`~pixstack.exceptions.BusyError`. The pipeline snapshots the focused
buffer (the whole stack for filters that change the geometry) and the history
timeline before calling ``apply``; when ``apply`` returns False or raises,
both are restored and the failure is reported as an :py:class:`ApplyResult`.

Example::

    invocation = session.pipeline.invoke(filter)
    if invocation.state == PipelineState.AWAITING_PARAMETERS:
        invocation.handle.element.update(amount=0.5)
        result = invocation.confirm()
    else:
        result = invocation.result
"""

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from attrs import Factory, define, field
from attrs.validators import instance_of, is_callable, optional

from pixstack.api.color import RGB
from pixstack.api.history import HistoryLog
from pixstack.api.layers import LayerStack
from pixstack.api.raster import RasterBuffer
from pixstack.constants import PipelineState
from pixstack.exceptions import (
    ApplyFailure,
    BusyError,
    DialogError,
    InvalidFilterError,
    PixstackError,
)

if TYPE_CHECKING:
    from pixstack.api.session import EditSession

logger = logging.getLogger(__name__)


@define(frozen=True)
class FilterInfo:
    """
    Identity and display metadata of a filter.

    .. py:attribute:: changes_geometry

        The filter may change the canvas size or orientation, or touch every
        layer. Such filters get a whole stack snapshot for rollback.

    .. py:attribute:: available_in_embed

        Whether the filter may run in embedded mode.
    """

    name: str = field(converter=str)
    button_label: str = field(
        default=Factory(lambda self: self.name, takes_self=True), converter=str
    )
    changes_geometry: bool = field(default=False, converter=bool)
    icon: Optional[str] = None
    available_in_embed: bool = field(default=True, converter=bool)


@define(frozen=True)
class DialogParams:
    """Arguments of a dialog factory."""

    context: RasterBuffer
    stack: LayerStack
    max_width: int
    max_height: int
    primary_color: RGB
    secondary_color: RGB


@define
class DialogHandle:
    """
    Transient dialog returned by a dialog factory.

    .. py:attribute:: element

        Dialog contents, owned by the UI collaborator.

    .. py:attribute:: get_input

        Called on confirmation to read the filter input.

    .. py:attribute:: destroy

        Called exactly once when the dialog closes.

    .. py:attribute:: error_callback

        Installed by the pipeline. The dialog calls it with an exception to
        abort the invocation.
    """

    element: Any
    get_input: Callable[[], Any] = field(validator=is_callable())
    destroy: Optional[Callable[[], None]] = field(
        default=None, validator=optional(is_callable())
    )
    width: Optional[int] = None
    error_callback: Optional[Callable[[BaseException], None]] = None


@define(frozen=True)
class ApplyParams:
    """Arguments of a filter apply function."""

    context: RasterBuffer
    stack: LayerStack
    input: Any
    history: HistoryLog


@define(frozen=True)
class ApplyResult:
    """
    Outcome of an invocation.

    Evaluates to ``ok`` in a boolean context.
    """

    ok: bool
    error: Optional[BaseException] = None
    message: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok


@define(frozen=True)
class InstantFilter:
    """Filter applied without collecting parameters."""

    info: FilterInfo = field(validator=instance_of(FilterInfo))
    apply: Callable[[ApplyParams], bool] = field(validator=is_callable())

    @property
    def name(self) -> str:
        return self.info.name


@define(frozen=True)
class ModalFilter:
    """Filter whose parameters come from a dialog."""

    info: FilterInfo = field(validator=instance_of(FilterInfo))
    get_dialog: Callable[[DialogParams], DialogHandle] = field(validator=is_callable())
    apply: Callable[[ApplyParams], bool] = field(validator=is_callable())

    @property
    def name(self) -> str:
        return self.info.name


@define(frozen=True)
class InertFilter:
    """Filter without behavior."""

    info: FilterInfo = field(validator=instance_of(FilterInfo))

    @property
    def name(self) -> str:
        return self.info.name


Filter = Union[InstantFilter, ModalFilter, InertFilter]


def make_filter(
    info: FilterInfo,
    is_instant: bool = False,
    get_dialog: Optional[Callable[[DialogParams], DialogHandle]] = None,
    apply: Optional[Callable[[ApplyParams], bool]] = None,
) -> Filter:
    """
    Build the filter variant matching a loose filter description.

    :raises InvalidFilterError: when instant filters have a dialog, or modal
        filters lack a dialog or an apply function.
    """
    if get_dialog is None and apply is None:
        return InertFilter(info)
    if is_instant:
        if get_dialog is not None:
            raise InvalidFilterError("Instant filter %r has a dialog" % info.name)
        return InstantFilter(info, apply)
    if get_dialog is None or apply is None:
        raise InvalidFilterError(
            "Filter %r needs both get_dialog and apply, or is_instant" % info.name
        )
    return ModalFilter(info, get_dialog, apply)


class FilterPipeline:
    """
    Invokes filters against the stack of an editing session.

    :param session: :py:class:`~pixstack.api.session.EditSession` providing
        the stack, the history, the configuration and the write lock.
    """

    def __init__(self, session: "EditSession"):
        self._session = session

    @property
    def session(self) -> "EditSession":
        return self._session

    @property
    def busy(self) -> bool:
        """True while some invocation or history operation holds the stack."""
        return self._session.lock.locked()

    def invoke(self, filter: Filter) -> "FilterInvocation":
        """
        Start an invocation.

        Modal filters open their dialog and wait for
        :py:meth:`FilterInvocation.confirm`. Instant filters are applied
        right away; check :py:attr:`FilterInvocation.result`. A dialog that
        fails to open aborts the invocation with a
        :py:class:`~pixstack.exceptions.DialogError` result.

        :raises InvalidFilterError: for inert filters, filters unavailable in
            embedded mode, empty stacks and dialogs returning something other
            than a :py:class:`DialogHandle`.
        :raises BusyError: when an instant filter cannot get write access.
        """
        if isinstance(filter, InertFilter):
            raise InvalidFilterError("Filter %r cannot be applied" % filter.name)
        if not isinstance(filter, (InstantFilter, ModalFilter)):
            raise TypeError("Expected filter, got %s" % type(filter).__name__)
        config = self._session.config
        if config.embed_mode and not filter.info.available_in_embed:
            raise InvalidFilterError(
                "Filter %r is not available in embedded mode" % filter.name
            )
        if self._session.stack.focused_layer is None:
            raise InvalidFilterError("Cannot apply %r to an empty stack" % filter.name)

        invocation = FilterInvocation(self, filter)
        if isinstance(filter, InstantFilter):
            invocation._run(None)
        else:
            invocation._open_dialog()
        return invocation


class FilterInvocation:
    """
    One pass of a filter through the pipeline.

    Created by :py:meth:`FilterPipeline.invoke`.
    """

    def __init__(self, pipeline: FilterPipeline, filter: Filter):
        self._pipeline = pipeline
        self._filter = filter
        self._state = PipelineState.IDLE
        self._handle: Optional[DialogHandle] = None
        self._result: Optional[ApplyResult] = None

    @property
    def filter(self) -> Filter:
        return self._filter

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def handle(self) -> Optional[DialogHandle]:
        """Dialog of a modal filter, None once closed."""
        return self._handle

    @property
    def result(self) -> Optional[ApplyResult]:
        """Outcome once committed or aborted, else None."""
        return self._result

    @property
    def done(self) -> bool:
        return self._state in (PipelineState.COMMITTED, PipelineState.ABORTED)

    def confirm(self, input: Any = None) -> ApplyResult:
        """
        Apply with the dialog input.

        :param input: Overrides the dialog input when not None.
        :raises BusyError: if another invocation is applying. The dialog stays
            open so confirmation can be retried.
        """
        if self._state != PipelineState.AWAITING_PARAMETERS:
            raise PixstackError(
                "Cannot confirm %r in state %s" % (self._filter.name, self._state.value)
            )
        assert self._handle is not None
        lock = self._pipeline.session.lock
        if not lock.acquire(blocking=False):
            raise BusyError("Another operation is modifying the stack")
        try:
            if input is None:
                try:
                    input = self._handle.get_input()
                except Exception as e:
                    if self._state != PipelineState.AWAITING_PARAMETERS:
                        assert self._result is not None
                        return self._result
                    logger.warning("Dialog of %r failed: %s" % (self._filter.name, e))
                    self._close_dialog()
                    return self._abort(DialogError(str(e)), e)
                if self._state != PipelineState.AWAITING_PARAMETERS:
                    # The dialog reported an error while producing its input.
                    assert self._result is not None
                    return self._result
            self._close_dialog()
            return self._apply(input)
        finally:
            lock.release()

    def cancel(self) -> ApplyResult:
        """
        Abort without applying. Calling it again is a no-op.
        """
        if self._state == PipelineState.APPLYING:
            raise PixstackError("Cannot cancel %r while applying" % self._filter.name)
        if self._result is not None:
            return self._result
        logger.debug("Cancelled %r" % self._filter.name)
        self._close_dialog()
        return self._abort(None, None, "Cancelled")

    def _open_dialog(self) -> None:
        assert isinstance(self._filter, ModalFilter)
        session = self._pipeline.session
        stack = session.stack
        params = DialogParams(
            context=stack.focused_layer.buffer,
            stack=stack,
            max_width=session.config.max_width,
            max_height=session.config.max_height,
            primary_color=session.config.primary_color,
            secondary_color=session.config.secondary_color,
        )
        try:
            handle = self._filter.get_dialog(params)
        except Exception as e:
            logger.warning("Dialog of %r failed to open: %s" % (self._filter.name, e))
            self._abort(DialogError(str(e)), e)
            return
        if not isinstance(handle, DialogHandle):
            destroy = getattr(handle, "destroy", None)
            if callable(destroy):
                destroy()
            raise InvalidFilterError(
                "Dialog of %r returned %s" % (self._filter.name, type(handle).__name__)
            )
        handle.error_callback = self._on_dialog_error
        self._handle = handle
        self._transition(PipelineState.AWAITING_PARAMETERS)

    def _on_dialog_error(self, error: BaseException) -> None:
        if self._state != PipelineState.AWAITING_PARAMETERS:
            logger.debug(
                "Ignoring dialog error of %r in state %s"
                % (self._filter.name, self._state.value)
            )
            return
        logger.warning("Dialog of %r reported: %s" % (self._filter.name, error))
        self._close_dialog()
        self._abort(DialogError(str(error)), error)

    def _close_dialog(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None and handle.destroy is not None:
            handle.destroy()

    def _run(self, input: Any) -> ApplyResult:
        lock = self._pipeline.session.lock
        if not lock.acquire(blocking=False):
            raise BusyError("Another operation is modifying the stack")
        try:
            return self._apply(input)
        finally:
            lock.release()

    def _apply(self, input: Any) -> ApplyResult:
        """Apply with the write lock held."""
        session = self._pipeline.session
        stack = session.stack
        history = session.history
        layer = stack.focused_layer
        if layer is None:
            return self._abort(ApplyFailure("The stack is empty"), None)
        self._transition(PipelineState.APPLYING)

        target = layer.buffer
        if self._filter.info.changes_geometry:
            snapshot: Any = stack.state()
        else:
            snapshot = target.clone()
        mark = history.mark()
        params = ApplyParams(context=target, stack=stack, input=input, history=history)

        cause: Optional[BaseException] = None
        try:
            ok = self._filter.apply(params)
        except Exception as e:
            logger.warning("Filter %r raised: %s" % (self._filter.name, e))
            ok, cause = False, e

        if not ok:
            if self._filter.info.changes_geometry:
                stack.restore(snapshot)
            else:
                target.copy_from(snapshot)
            history.reset(mark)
            message = str(cause) if cause is not None else None
            return self._abort(
                ApplyFailure("Filter %r failed" % self._filter.name), cause, message
            )

        if history.is_at(mark):
            logger.warning(
                "Filter %r succeeded without a history entry" % self._filter.name
            )
        self._transition(PipelineState.COMMITTED)
        self._result = ApplyResult(True)
        return self._result

    def _abort(
        self,
        error: Optional[PixstackError],
        cause: Optional[BaseException],
        message: Optional[str] = None,
    ) -> ApplyResult:
        if error is not None and cause is not None:
            error.__cause__ = cause
        if message is None and error is not None:
            message = str(error)
        self._transition(PipelineState.ABORTED)
        self._result = ApplyResult(False, error, message)
        return self._result

    def _transition(self, state: PipelineState) -> None:
        if self.done:
            raise PixstackError(
                "Invocation of %r already ended in state %s"
                % (self._filter.name, self._state.value)
            )
        logger.debug(
            "%r: %s -> %s" % (self._filter.name, self._state.value, state.value)
        )
        self._state = state

    def __repr__(self) -> str:
        return "%s(%r state=%s)" % (
            self.__class__.__name__,
            self._filter.name,
            self._state.value,
        )
