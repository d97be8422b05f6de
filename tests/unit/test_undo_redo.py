"""
Unit tests for UndoRedoContext.

Tests:
- Stack transitions on undo/redo
- Redo stack cleared by a new action
- Nested handler entries dropped
- History limit
- Non-invertible and unknown action types
- Field snapshot inverter
"""

import pytest
from shape_capabilities import snapshot_field
from undo_redo import (
    FieldChanges,
    Inverter,
    UndoEntry,
    UndoRedoContext,
    declare_non_invertible,
    field_change_entry,
    register_inverter,
)

COUNTER_ACTION = "test_counter"
FAILING_ACTION = "test_failing"
NON_INVERTIBLE_ACTION = "test_publish"

counter = {"value": 0}


@register_inverter(COUNTER_ACTION)
class CounterInverter(Inverter):
    def undo(self, host, entry):
        counter["value"] -= entry.undo_data["step"]
        return {"value": counter["value"]}

    def redo(self, host, entry):
        counter["value"] += entry.undo_data["step"]
        return {"value": counter["value"]}


@register_inverter(FAILING_ACTION)
class FailingInverter(Inverter):
    def undo(self, host, entry):
        raise RuntimeError("host rejected the write")

    def redo(self, host, entry):
        raise RuntimeError("host rejected the write")


declare_non_invertible(NON_INVERTIBLE_ACTION, "publishing")


def step(amount: int = 1, description: str = "") -> UndoEntry:
    return UndoEntry(action_type=COUNTER_ACTION, undo_data={"step": amount}, description=description)


@pytest.fixture(autouse=True)
def reset_counter():
    counter["value"] = 0


@pytest.fixture
def undo() -> UndoRedoContext:
    return UndoRedoContext()


class TestStacks:
    """Tests for undo/redo stack transitions."""

    def test_empty_stacks(self, undo):
        assert not undo.undo(None).success
        assert undo.undo(None).message == "Nothing to undo"
        assert undo.redo(None).message == "Nothing to redo"
        assert not undo.can_undo()
        assert not undo.can_redo()

    def test_undo_moves_entry_to_redo(self, undo):
        undo.record(step(3, "Add 3"))
        counter["value"] = 3

        response = undo.undo(None)

        assert response.success
        assert response.payload["value"] == 0
        assert response.message == "Undid: Add 3"
        assert undo.undo_depth == 0
        assert undo.redo_depth == 1
        assert undo.redo_description() == "Add 3"

    def test_redo_moves_entry_back(self, undo):
        undo.record(step(3))
        counter["value"] = 3
        undo.undo(None)

        response = undo.redo(None)

        assert response.success
        assert counter["value"] == 3
        assert undo.undo_depth == 1
        assert undo.redo_depth == 0

    def test_new_action_clears_redo(self, undo):
        undo.record(step(1))
        undo.undo(None)
        assert undo.can_redo()

        undo.record(step(2))

        assert not undo.can_redo()
        assert undo.redo(None).message == "Nothing to redo"

    def test_reset(self, undo):
        undo.record(step(1))
        undo.record(step(1))
        undo.undo(None)
        undo.reset()
        assert undo.undo_depth == 0
        assert undo.redo_depth == 0

    def test_reset_inside_handler_keeps_nesting(self, undo):
        with undo.nested():
            undo.reset()
        with undo.nested():
            with undo.nested():
                assert not undo.record(step(1))
        assert undo.undo_depth == 0


class TestNesting:
    """Tests for dropping entries recorded by nested handlers."""

    def test_outermost_handler_records(self, undo):
        with undo.nested() as depth:
            assert depth == 1
            assert undo.record(step(1))
        assert undo.undo_depth == 1

    def test_nested_handler_entry_dropped(self, undo):
        with undo.nested():
            with undo.nested() as depth:
                assert depth == 2
                assert not undo.record(step(1))
            undo.record(step(5))
        assert undo.undo_depth == 1
        assert undo.undo_description() == ""

    def test_depth_restored_after_error(self, undo):
        with pytest.raises(ValueError):
            with undo.nested():
                raise ValueError("boom")
        assert undo.record(step(1))


class TestHistoryLimit:
    def test_oldest_entries_dropped(self):
        undo = UndoRedoContext(max_depth=2)
        undo.record(step(1, "first"))
        undo.record(step(1, "second"))
        undo.record(step(1, "third"))
        assert undo.undo_depth == 2
        undo.undo(None)
        undo.undo(None)
        assert undo.undo(None).message == "Nothing to undo"

    @pytest.mark.parametrize("max_depth", [None, 0, -1])
    def test_unbounded(self, max_depth):
        undo = UndoRedoContext(max_depth=max_depth)
        for _ in range(50):
            undo.record(step(1))
        assert undo.undo_depth == 50


class TestInvertibility:
    """Tests for action types without a working inverter."""

    def test_non_invertible_is_noop_success(self, undo):
        undo.record(UndoEntry(action_type=NON_INVERTIBLE_ACTION, undo_data={}))

        response = undo.undo(None)

        assert response.success
        assert response.message == "Cannot undo publishing"
        assert response.payload["not_undoable"] is True
        assert undo.redo_depth == 1
        assert undo.redo(None).message == "Cannot redo publishing"

    def test_unknown_action_type_stays_on_stack(self, undo):
        undo.record(UndoEntry(action_type="never_registered", undo_data={}))

        response = undo.undo(None)

        assert not response.success
        assert response.message == "Unknown action type: never_registered"
        assert undo.undo_depth == 1

    def test_failing_inverter_stays_on_stack(self, undo):
        undo.record(UndoEntry(action_type=FAILING_ACTION, undo_data={}))

        response = undo.undo(None)

        assert not response.success
        assert "host rejected the write" in response.message
        assert undo.undo_depth == 1
        assert undo.redo_depth == 0


class TestFieldSnapshots:
    """Tests for the generic snapshot inverter used by property handlers."""

    def test_restores_previous_and_next_state(self, host, undo, make_shape):
        shape = make_shape("a", opacity=0.2)
        changes = FieldChanges()
        before = snapshot_field(shape, ("opacity",))
        shape.opacity = 0.9
        changes.add("a", before, snapshot_field(shape, ("opacity",)))
        undo.record(field_change_entry("set_opacity", changes, "Set opacity"))

        assert undo.undo(host).success
        assert shape.opacity == 0.2
        assert undo.redo(host).success
        assert shape.opacity == 0.9

    def test_field_that_did_not_exist_is_removed(self, host, undo, make_shape):
        shape = make_shape("a")
        changes = FieldChanges()
        before = snapshot_field(shape, ("shadows",))
        shape.shadows = [{"color": "#000000"}]
        changes.add("a", before, snapshot_field(shape, ("shadows",)))
        undo.record(field_change_entry("apply_shadow", changes, "Shadow"))

        undo.undo(host)

        assert not hasattr(shape, "shadows")

    def test_vanished_shape_is_skipped(self, host, page, undo, make_shape):
        shape = make_shape("a", opacity=0.2)
        changes = FieldChanges()
        changes.add("a", snapshot_field(shape, ("opacity",)), snapshot_field(shape, ("opacity",)))
        undo.record(field_change_entry("set_opacity", changes, "Set opacity"))
        page.discard(shape)

        response = undo.undo(host)

        assert response.success
        assert response.payload["restored_shape_ids"] == []

    def test_entry_extra_data(self):
        changes = FieldChanges()
        changes.add("a", {"path": ["x"], "existed": True, "value": 1}, {"path": ["x"], "existed": True, "value": 2})
        entry = field_change_entry("set_opacity", changes, "desc", applied=2)
        assert entry.undo_data["shape_ids"] == ["a"]
        assert entry.undo_data["applied"] == 2
        assert entry.undo_info() == {"action_type": "set_opacity", "undo_data": entry.undo_data}
