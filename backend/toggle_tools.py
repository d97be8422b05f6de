"""
Toggle Tools - editor lock, proportion lock and visibility

Boolean toggles share one rule: called without an explicit target state on
a selection whose shapes disagree, they do not guess. They return a prompt
listing both groups so the caller can re-invoke with a state or with
explicit `shape_ids`.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from shape_capabilities import (
    EDITOR_LOCK,
    PROPORTION_LOCK,
    VISIBILITY,
    is_hidden,
    is_locked,
    is_proportion_locked,
    read_field,
)
from tool_errors import MISSING_PROPORTION_LOCK, ToolResponse, missing_capability_error
from tool_payloads import LockPayload, ProportionLockPayload, VisibilityPayload
from tool_support import (
    committed,
    parse_payload,
    partition,
    plural,
    refs,
    resolve_targets,
    shape_names,
    tool_handler,
    with_failures,
    write_fields,
)
from undo_redo import FieldChanges, field_change_entry

logger = logging.getLogger(__name__)

TOGGLE_LOCK = "toggle_lock"
TOGGLE_PROPORTION_LOCK = "toggle_proportion_lock"
TOGGLE_VISIBILITY = "toggle_visibility"


def _target_state(
    shapes: Sequence[Any],
    explicit: Optional[bool],
    is_on: Callable[[Any], bool],
) -> Tuple[Optional[bool], List[Any], List[Any]]:
    """Decide the state to apply: explicit, or the flip of a uniform selection.

    Returns (state, on_shapes, off_shapes); state is None for a mixed
    selection without an explicit target.
    """
    on, off = partition(shapes, is_on)
    if explicit is not None:
        return explicit, on, off
    if on and off:
        return None, on, off
    return (not bool(on)), on, off


# ============================================
# ================ EDITOR LOCK ===============
# ============================================

def selection_snapshot(shapes: Sequence[Any]) -> List[Dict[str, Any]]:
    return [
        {
            "id": str(shape.id),
            "name": getattr(shape, "name", None),
            "editor_locked": bool(read_field(shape, "locked")),
            "editor_blocked": bool(read_field(shape, "blocked")),
            "proportion_locked": is_proportion_locked(shape),
        }
        for shape in shapes
    ]


@tool_handler(TOGGLE_LOCK)
async def toggle_selection_lock_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Lock or unlock the selection in the editor.

    Input parameters
    ----------------
    - lock: True to lock, False to unlock; omit to flip a uniform selection
    - shape_ids: optional explicit targets

    Writes `locked` on every target and `blocked` as well where the shape
    exposes it. A mixed selection without `lock` returns `locked_shapes` and
    `unlocked_shapes` and changes nothing.
    """
    params = parse_payload(LockPayload, payload)
    shapes = resolve_targets(session, params.shape_ids)
    state, locked, unlocked = _target_state(shapes, params.lock, is_locked)

    if state is None:
        return ToolResponse.failure(
            f"Your selection mixes locked ({shape_names(locked)}) and unlocked ({shape_names(unlocked)}) shapes. "
            "Do you want to lock or unlock all of them?",
            payload={"locked_shapes": refs(locked), "unlocked_shapes": refs(unlocked)},
        )

    targets = unlocked if state else locked
    verb = "Locked" if state else "Unlocked"

    if not targets:
        proportion_only = [s for s in shapes if not state and is_proportion_locked(s)]
        if proportion_only:
            # Nothing is editor-locked; report what is
            return ToolResponse.failure(
                f"{shape_names(proportion_only)} not editor-locked; only proportions are locked. "
                "Use the proportion lock toggle to release them.",
                payload={"selection_snapshot": selection_snapshot(shapes)},
            )
        return ToolResponse.ok(
            f"All selected shapes are already {'locked' if state else 'unlocked'}",
            payload={"changed_shape_ids": [], "locked": state},
        )

    def plan(shape: Any) -> List[Tuple[Sequence[str], Any]]:
        writes: List[Tuple[Sequence[str], Any]] = [(("locked",), state)]
        blocked = EDITOR_LOCK.lenses[1]
        if blocked.is_defined(shape):
            writes.append((blocked.path, state))
        return writes

    changes = FieldChanges()
    changed, _, failed = write_fields(TOGGLE_LOCK, targets, plan, changes)

    message = f"{verb} {plural(len(changed), 'shape')}: {shape_names(changed)}"
    entry = field_change_entry(TOGGLE_LOCK, changes, message, locked=state)
    result = {
        "changed_shape_ids": [str(s.id) for s in changed],
        "locked": state,
        "locked_shapes" if state else "unlocked_shapes": refs(changed),
    }
    return committed(session, entry, message, with_failures(result, failed))


# ============================================
# ============ PROPORTION LOCK ===============
# ============================================

def _debug_dump(shape: Any) -> None:
    logger.info(
        f"🔍 DEBUG DUMP ({shape.id}): proportion={PROPORTION_LOCK.flags(shape)} "
        f"editor={EDITOR_LOCK.flags(shape)}"
    )


@tool_handler(TOGGLE_PROPORTION_LOCK)
async def toggle_selection_proportion_lock_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Lock or unlock the aspect ratio of the selection.

    The field written is the first of `keep_aspect_ratio`,
    `constrain_proportions`, `lock_proportions`, `proportion_lock`,
    `constraints.lock_ratio`, `constraints.proportion_lock` that the shape
    defines. Shapes that define none of them are skipped.
    """
    params = parse_payload(ProportionLockPayload, payload)
    shapes = resolve_targets(session, params.shape_ids)

    if params.debug_dump:
        for shape in shapes:
            _debug_dump(shape)

    supported, unsupported = partition(shapes, PROPORTION_LOCK.supported_by)
    for shape in unsupported:
        logger.info(f"⏭️ skipping shape {shape.id}: no proportion lock field")
    if not supported:
        raise missing_capability_error(MISSING_PROPORTION_LOCK, shapes_without_proportion_lock=refs(unsupported))

    state, locked, unlocked = _target_state(supported, params.target_state, is_proportion_locked)
    if state is None:
        return ToolResponse.failure(
            f"Your selection mixes shapes with locked ({shape_names(locked)}) and unlocked ({shape_names(unlocked)}) proportions. "
            "Do you want to lock or unlock all of them?",
            payload={"locked_shapes": refs(locked), "unlocked_shapes": refs(unlocked)},
        )

    def plan(shape: Any) -> List[Tuple[Sequence[str], Any]]:
        if is_proportion_locked(shape) == state:
            logger.info(f"⏭️ skipping shape {shape.id}: proportion lock already {'ON' if state else 'OFF'}")
            return []
        lens = PROPORTION_LOCK.match(shape)
        logger.info(f"🔗 toggling {'ON' if state else 'OFF'} proportion lock for shape {shape.id} via {lens.label}")
        return [(lens.path, state)]

    changes = FieldChanges()
    changed, already, failed = write_fields(TOGGLE_PROPORTION_LOCK, supported, plan, changes)
    label = "Locked" if state else "Unlocked"

    if not changed:
        return ToolResponse.ok(
            f"Proportions already {'locked' if state else 'unlocked'} on {plural(len(already), 'shape')}",
            payload={"changed_shape_ids": [], "proportion_locked": state, "skipped_shapes": refs(unsupported)},
        )

    message = f"{label} proportions on {plural(len(changed), 'shape')}: {shape_names(changed)}"
    entry = field_change_entry(TOGGLE_PROPORTION_LOCK, changes, message, proportion_locked=state)
    result = {
        "changed_shape_ids": [str(s.id) for s in changed],
        "proportion_locked": state,
        "skipped_shapes": refs(unsupported),
    }
    return committed(session, entry, message, with_failures(result, failed))


# ============================================
# ================ VISIBILITY ================
# ============================================

@tool_handler(TOGGLE_VISIBILITY)
async def toggle_selection_visibility_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Hide or show the selection; `hide` omitted flips a uniform selection."""
    params = parse_payload(VisibilityPayload, payload)
    shapes = resolve_targets(session, params.shape_ids)
    hide, hidden, shown = _target_state(shapes, params.hide, is_hidden)

    if hide is None:
        return ToolResponse.failure(
            f"Your selection mixes hidden ({shape_names(hidden)}) and visible ({shape_names(shown)}) shapes. "
            "Do you want to hide or show all of them?",
            payload={"hidden_shapes": refs(hidden), "unhidden_shapes": refs(shown)},
        )

    targets = shown if hide else hidden
    if not targets:
        return ToolResponse.ok(
            f"All selected shapes are already {'hidden' if hide else 'visible'}",
            payload={"changed_shape_ids": [], "hidden": hide},
        )

    changes = FieldChanges()
    changed, _, failed = write_fields(
        TOGGLE_VISIBILITY,
        targets,
        lambda shape: [(VISIBILITY.lenses[0].path, not hide)],
        changes,
    )

    message = f"{'Hid' if hide else 'Showed'} {plural(len(changed), 'shape')}: {shape_names(changed)}"
    entry = field_change_entry(TOGGLE_VISIBILITY, changes, message, hidden=hide)
    result = {
        "changed_shape_ids": [str(s.id) for s in changed],
        "hidden": hide,
        "hidden_shapes" if hide else "unhidden_shapes": refs(changed),
    }
    return committed(session, entry, message, with_failures(result, failed))
