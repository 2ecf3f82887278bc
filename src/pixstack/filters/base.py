"""
Shared pieces of the built-in filters.

Modal filters describe their input as a frozen attrs record. The dialog
element is a headless :py:class:`ParameterForm` that holds one such record;
a UI collaborator renders it and feeds changes through
:py:meth:`ParameterForm.update`, which re-runs the record validators.
"""

import logging
from typing import Any, Callable, Iterable, Optional

import attrs

from pixstack.api.history import HistoryEntry, PixelMutation, StackMutation
from pixstack.api.pipeline import ApplyParams, DialogHandle, DialogParams
from pixstack.api.raster import RasterBuffer
from pixstack.registry import new_registry

logger = logging.getLogger(__name__)

FILTERS, register = new_registry(attribute="filter_name")


class ParameterForm:
    """
    Headless dialog element editing a filter input record.

    :param value: Initial attrs record.
    """

    def __init__(self, value: Any):
        if not attrs.has(type(value)):
            raise TypeError("Expected attrs record, got %s" % type(value).__name__)
        self._value = value
        self._closed = False

    @property
    def value(self) -> Any:
        """Current input record."""
        return self._value

    @property
    def fields(self) -> tuple[str, ...]:
        """Names of the editable fields."""
        return tuple(a.name for a in attrs.fields(type(self._value)))

    @property
    def closed(self) -> bool:
        return self._closed

    def update(self, **changes: Any) -> Any:
        """
        Change some fields and return the new record.

        :raises ValueError: if a validator rejects a value; the previous
            value is kept.
        """
        if self._closed:
            raise RuntimeError("Form is closed")
        self._value = attrs.evolve(self._value, **changes)
        return self._value

    def close(self) -> None:
        self._closed = True

    def __repr__(self) -> str:
        return "%s(%r)" % (self.__class__.__name__, self._value)


def form_dialog(
    make_input: Callable[[DialogParams], Any], width: Optional[int] = None
) -> Callable[[DialogParams], DialogHandle]:
    """
    Build a dialog factory showing a :py:class:`ParameterForm` initialized
    with ``make_input(params)``.
    """

    def get_dialog(params: DialogParams) -> DialogHandle:
        form = ParameterForm(make_input(params))
        return DialogHandle(
            element=form,
            get_input=lambda: form.value,
            destroy=form.close,
            width=width,
        )

    return get_dialog


def edit_focused(
    params: ApplyParams, label: str, edit: Callable[[RasterBuffer], None]
) -> bool:
    """
    Run ``edit`` on the focused buffer and record it as one history entry.
    """
    stack = params.stack
    index = stack.focus
    before = PixelMutation.capture(stack, [index])
    edit(params.context)
    after = PixelMutation.capture(stack, [index])
    params.history.commit(HistoryEntry.create(label, after, before))
    return True


def edit_layers(
    params: ApplyParams,
    label: str,
    edit: Callable[[RasterBuffer], None],
    indices: Optional[Iterable[int]] = None,
) -> bool:
    """
    Run ``edit`` on several buffers, all layers by default, and record one
    whole stack history entry. Earlier edits are reverted if one fails.
    """
    stack = params.stack
    before = StackMutation.capture(stack)
    if indices is None:
        indices = range(len(stack))
    try:
        for index in indices:
            edit(stack[index].buffer)
    except Exception:
        before.apply_to(stack)
        raise
    params.history.commit(
        HistoryEntry.create(label, StackMutation.capture(stack), before)
    )
    return True
