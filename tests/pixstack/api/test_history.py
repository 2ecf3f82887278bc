import logging

import pytest

from pixstack.api.history import (
    HistoryEntry,
    HistoryLog,
    LayerMutation,
    PixelMutation,
    StackMutation,
)
from pixstack.api.layers import LayerStack
from pixstack.exceptions import DimensionMismatchError

from ..utils import make_stack, random_rgba

logger = logging.getLogger(__name__)


def paint(stack: LayerStack, history: HistoryLog, seed: int, index: int = 0) -> bytes:
    """Overwrite one layer and commit the change."""
    before = PixelMutation.capture(stack, [index])
    stack[index].buffer.write(random_rgba(stack.width, stack.height, seed=seed))
    history.commit(
        HistoryEntry.create(
            "Paint %d" % seed, PixelMutation.capture(stack, [index]), before
        )
    )
    return stack[index].buffer.tobytes()


@pytest.fixture
def stack() -> LayerStack:
    return make_stack(4, 4, 2)


def test_empty(stack: LayerStack) -> None:
    history = HistoryLog(stack)
    assert not history.can_undo
    assert not history.can_redo
    assert history.undo() is False
    assert history.redo() is False
    assert len(history) == 0


def test_undo_restores_snapshot(stack: LayerStack) -> None:
    history = HistoryLog(stack)
    original = stack[0].buffer.tobytes()
    painted = paint(stack, history, seed=10)
    assert history.undo()
    assert stack[0].buffer.tobytes() == original
    assert history.redo()
    assert stack[0].buffer.tobytes() == painted


@pytest.mark.parametrize("count", [1, 2, 5])
def test_round_trip(stack: LayerStack, count: int) -> None:
    history = HistoryLog(stack)
    original = [layer.buffer.tobytes() for layer in stack]
    for i in range(count):
        paint(stack, history, seed=100 + i, index=i % 2)
    final = [layer.buffer.tobytes() for layer in stack]

    for _ in range(count):
        assert history.undo()
    assert [layer.buffer.tobytes() for layer in stack] == original
    assert not history.can_undo

    for _ in range(count):
        assert history.redo()
    assert [layer.buffer.tobytes() for layer in stack] == final
    assert not history.can_redo


def test_branch_pruning(stack: LayerStack) -> None:
    history = HistoryLog(stack)
    paint(stack, history, seed=1)
    paint(stack, history, seed=2)
    history.undo()
    assert history.can_redo
    latest = paint(stack, history, seed=3)
    assert not history.can_redo
    assert history.redo() is False
    assert len(history) == 2
    assert stack[0].buffer.tobytes() == latest


def test_entries_survive_later_edits(stack: LayerStack) -> None:
    history = HistoryLog(stack)
    painted = paint(stack, history, seed=1)
    history.undo()
    stack[0].buffer.clear()
    history.redo()
    assert stack[0].buffer.tobytes() == painted


def test_limit_drops_oldest(stack: LayerStack) -> None:
    history = HistoryLog(stack, limit=2)
    for seed in range(4):
        paint(stack, history, seed=seed)
    assert len(history) == 2
    assert [entry.label for entry in history.entries] == ["Paint 2", "Paint 3"]
    assert history.undo() and history.undo()
    assert history.undo() is False


def test_invalid_limit(stack: LayerStack) -> None:
    with pytest.raises(ValueError):
        HistoryLog(stack, limit=0)


def test_commit_type(stack: LayerStack) -> None:
    with pytest.raises(TypeError):
        HistoryLog(stack).commit("entry")  # type: ignore[arg-type]


def test_mark_reset(stack: LayerStack) -> None:
    history = HistoryLog(stack)
    paint(stack, history, seed=1)
    mark = history.mark()
    assert history.is_at(mark)
    paint(stack, history, seed=2)
    assert not history.is_at(mark)
    history.reset(mark)
    assert history.is_at(mark)
    assert len(history) == 1
    assert history.pointer == 1


def test_stack_mutation(stack: LayerStack) -> None:
    history = HistoryLog(stack)
    before = StackMutation.capture(stack)
    stack.new_layer("New")
    history.commit(HistoryEntry.create("Add", StackMutation.capture(stack), before))
    history.undo()
    assert len(stack) == 2
    history.redo()
    assert len(stack) == 3
    assert stack[2].name == "New"


def test_layer_mutation(stack: LayerStack) -> None:
    history = HistoryLog(stack)
    before = LayerMutation.capture(stack, 1)
    stack[1].name = "Renamed"
    stack.set_opacity(1, 0.5)
    stack.set_blend_mode(1, "screen")
    history.commit(HistoryEntry.create("Edit", LayerMutation.capture(stack, 1), before))
    history.undo()
    assert (stack[1].name, stack[1].opacity, stack[1].blend_mode.value) == (
        "Layer 1",
        1.0,
        "source-over",
    )
    history.redo()
    assert (stack[1].name, stack[1].opacity, stack[1].blend_mode.value) == (
        "Renamed",
        0.5,
        "screen",
    )


def test_pixel_mutation_mismatch(stack: LayerStack) -> None:
    mutation = PixelMutation.capture(stack, [0])
    stack.restore(make_stack(3, 3, 1).state())
    with pytest.raises(DimensionMismatchError):
        mutation.apply_to(stack)


def test_listeners(stack: LayerStack) -> None:
    history = HistoryLog(stack)
    calls = []
    history.add_listener(calls.append)
    paint(stack, history, seed=1)
    history.undo()
    history.redo()
    history.remove_listener(calls.append)
    history.clear()
    assert len(calls) == 3
    assert all(log is history for log in calls)
