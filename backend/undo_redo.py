"""
Undo/Redo - two-stack command history for editing handlers

Handlers record an `UndoEntry` after a successful mutation. Undo and redo
dispatch on the entry's `action_type` to a registered inverter, which
re-reads the affected shapes by id from the host and replays the stored
values. Action types that cannot be inverted degrade to a logged warning
and a successful no-op.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Type

from host_context import lookup_shape
from shape_capabilities import restore_field
from tool_errors import ToolResponse

logger = logging.getLogger(__name__)


@dataclass
class UndoEntry:
    action_type: str
    undo_data: Dict[str, Any]
    redo_data: Optional[Dict[str, Any]] = None
    description: str = ""

    def undo_info(self) -> Dict[str, Any]:
        """The `{action_type, undo_data}` pair echoed back in handler payloads."""
        return {"action_type": self.action_type, "undo_data": self.undo_data}


class Inverter(ABC):
    """Replays one action type backwards (`undo`) and forwards (`redo`)."""

    @abstractmethod
    def undo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def redo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        pass


_INVERTERS: Dict[str, Inverter] = {}

# action_type -> human label used in the warning
NON_INVERTIBLE: Dict[str, str] = {}


def register_inverter(*action_types: str) -> Callable[[Type[Inverter]], Type[Inverter]]:
    """Class decorator registering an inverter for one or more action types."""

    def decorator(cls: Type[Inverter]) -> Type[Inverter]:
        instance = cls()
        for action_type in action_types:
            _INVERTERS[action_type] = instance
        return cls

    return decorator


def declare_non_invertible(action_type: str, label: str) -> None:
    NON_INVERTIBLE[action_type] = label


def get_inverter(action_type: str) -> Optional[Inverter]:
    return _INVERTERS.get(action_type)


class UndoRedoContext:
    """Undo and redo stacks for one editing session.

    Entries recorded while a handler runs inside another handler are dropped;
    only the outermost handler's entry reaches the stack.
    """

    def __init__(self, max_depth: Optional[int] = None) -> None:
        self._undo_stack: List[UndoEntry] = []
        self._redo_stack: List[UndoEntry] = []
        self._max_depth = max_depth if max_depth and max_depth > 0 else None
        self._handler_depth = 0

    # -------- recording --------

    @contextmanager
    def nested(self) -> Iterator[int]:
        """Mark a handler invocation; yields the current nesting depth."""
        self._handler_depth += 1
        try:
            yield self._handler_depth
        finally:
            self._handler_depth -= 1

    def record(self, entry: UndoEntry) -> bool:
        if self._handler_depth > 1:
            logger.debug(f"↪️ Dropping nested undo entry '{entry.action_type}'")
            return False
        self._undo_stack.append(entry)
        self._redo_stack.clear()
        self._trim_history()
        logger.info(f"📝 Recorded undo entry: {entry.action_type} ({len(self._undo_stack)} on stack)")
        return True

    def _trim_history(self) -> None:
        if self._max_depth is None:
            return
        while len(self._undo_stack) > self._max_depth:
            dropped = self._undo_stack.pop(0)
            logger.debug(f"🗑️ Undo history limit reached; dropped '{dropped.action_type}'")

    # -------- replay --------

    def undo(self, host: Any) -> ToolResponse:
        if not self._undo_stack:
            return ToolResponse.failure("Nothing to undo")
        entry = self._undo_stack[-1]
        result = self._replay(host, entry, forward=False)
        if result.success:
            self._undo_stack.pop()
            self._redo_stack.append(entry)
        return result

    def redo(self, host: Any) -> ToolResponse:
        if not self._redo_stack:
            return ToolResponse.failure("Nothing to redo")
        entry = self._redo_stack[-1]
        result = self._replay(host, entry, forward=True)
        if result.success:
            self._redo_stack.pop()
            self._undo_stack.append(entry)
        return result

    def _replay(self, host: Any, entry: UndoEntry, forward: bool) -> ToolResponse:
        verb = "redo" if forward else "undo"
        payload: Dict[str, Any] = {"action_type": entry.action_type, "description": entry.description}

        if entry.action_type in NON_INVERTIBLE:
            logger.warning(f"⚠️ Cannot {verb} {NON_INVERTIBLE[entry.action_type]}")
            payload["not_undoable"] = True
            return ToolResponse.ok(f"Cannot {verb} {NON_INVERTIBLE[entry.action_type]}", payload=payload)

        inverter = get_inverter(entry.action_type)
        if inverter is None:
            logger.error(f"❌ No inverter registered for '{entry.action_type}'")
            return ToolResponse.failure(f"Unknown action type: {entry.action_type}", payload=payload)

        try:
            details = inverter.redo(host, entry) if forward else inverter.undo(host, entry)
        except Exception as e:
            logger.error(f"❌ Failed to {verb} '{entry.action_type}': {e}")
            return ToolResponse.failure(f"Failed to {verb} {entry.action_type}: {e}", payload=payload)

        if details:
            payload.update(details)
        label = entry.description or entry.action_type
        logger.info(f"{'↪️' if forward else '↩️'} {verb.capitalize()}: {label}")
        return ToolResponse.ok(f"{'Redid' if forward else 'Undid'}: {label}", payload=payload)

    # -------- state --------

    def reset(self) -> None:
        self._undo_stack.clear()
        self._redo_stack.clear()

    def can_undo(self) -> bool:
        return len(self._undo_stack) > 0

    def can_redo(self) -> bool:
        return len(self._redo_stack) > 0

    def undo_description(self) -> str:
        return self._undo_stack[-1].description if self._undo_stack else ""

    def redo_description(self) -> str:
        return self._redo_stack[-1].description if self._redo_stack else ""

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)


# ============================================
# ===== GENERIC FIELD-SNAPSHOT INVERTER ======
# ============================================

@dataclass
class FieldChanges:
    """Per-shape field snapshots taken before and after a property mutation."""

    before: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    after: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)

    def add(self, shape_id: str, before: Dict[str, Any], after: Dict[str, Any]) -> None:
        self.before.setdefault(shape_id, []).append(before)
        self.after.setdefault(shape_id, []).append(after)

    @property
    def shape_ids(self) -> List[str]:
        return list(self.before.keys())


def restore_snapshots(host: Any, snapshots: Dict[str, List[Dict[str, Any]]]) -> List[str]:
    """Write stored field snapshots back onto shapes looked up by id."""
    restored = []
    for shape_id, fields in snapshots.items():
        shape = lookup_shape(host, shape_id)
        if shape is None:
            logger.warning(f"⚠️ Shape {shape_id} no longer exists; skipping restore")
            continue
        # Reverse order so the earliest snapshot of a repeated field wins
        for snapshot in reversed(fields):
            restore_field(shape, snapshot)
        restored.append(shape_id)
    return restored


class FieldSnapshotInverter(Inverter):
    """Property actions store `previous_state` / `next_state` snapshot maps."""

    def undo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        restored = restore_snapshots(host, entry.undo_data.get("previous_state", {}))
        return {"restored_shape_ids": restored}

    def redo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        restored = restore_snapshots(host, (entry.redo_data or {}).get("next_state", {}))
        return {"restored_shape_ids": restored}


def field_change_entry(
    action_type: str,
    changes: FieldChanges,
    description: str,
    **extra: Any,
) -> UndoEntry:
    """Build an entry replayed by `FieldSnapshotInverter`."""
    undo_data = {"shape_ids": changes.shape_ids, "previous_state": changes.before}
    undo_data.update(extra)
    return UndoEntry(
        action_type=action_type,
        undo_data=undo_data,
        redo_data={"next_state": changes.after},
        description=description,
    )


PROPERTY_ACTION_TYPES = (
    "toggle_lock",
    "toggle_proportion_lock",
    "toggle_visibility",
    "set_opacity",
    "set_blend_mode",
    "set_border_radius",
    "set_constraints_horizontal",
    "set_constraints_vertical",
    "apply_fill",
    "apply_shadow",
    "apply_stroke",
    "apply_blur",
    "align_horizontal",
    "align_vertical",
    "center_alignment",
    "distribute_horizontal",
    "distribute_vertical",
)

register_inverter(*PROPERTY_ACTION_TYPES)(FieldSnapshotInverter)
