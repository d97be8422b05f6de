"""
Layer Tools - stacking order within a shape's parent container

`set_layer_order_tool` reorders the parent's child array through
`append_child` / `insert_child`. `set_layout_z_index_tool` does the same for
children of layout containers by writing `layout_child.z_index`, and falls
back to array order everywhere else.
"""

import logging
from typing import Any, Dict, List, Optional

from host_context import lookup_shape, shape_ref
from shape_capabilities import LAYOUT_Z_INDEX, MISSING, read_field
from tool_errors import ToolResponse, api_error
from tool_payloads import LayerOrderPayload
from tool_support import (
    committed,
    failure_record,
    parse_payload,
    plural,
    resolve_targets,
    tool_handler,
    with_failures,
)
from undo_redo import Inverter, UndoEntry, register_inverter

logger = logging.getLogger(__name__)

SET_LAYER_ORDER = "set_layer_order"
SET_LAYOUT_Z_INDEX = "set_layout_z_index"

_LAYOUT_FLAGS = ("layout", "flex", "grid")


def _present(value: Any) -> bool:
    return value is not MISSING and value is not None and value is not False


def _index_of(children: List[Any], shape: Any) -> Optional[int]:
    for index, child in enumerate(children):
        if child is shape:
            return index
    shape_id = getattr(shape, "id", None)
    for index, child in enumerate(children):
        if shape_id is not None and getattr(child, "id", None) == shape_id:
            return index
    return None


def _siblings(shape: Any) -> tuple:
    parent = read_field(shape, "parent")
    if not _present(parent):
        return None, []
    children = read_field(parent, "children")
    if not _present(children):
        return parent, []
    return parent, list(children)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def _array_target(action: str, current: int, last: int, index: Optional[int]) -> int:
    if action == "bring-to-front":
        return last
    if action == "send-to-back":
        return 0
    if action == "bring-forward":
        return min(current + 1, last)
    if action == "send-backward":
        return max(current - 1, 0)
    return _clamp(int(index or 0), 0, last)


def reorder_in_array(shape: Any, action: str, index: Optional[int]) -> Optional[Dict[str, Any]]:
    """Move `shape` within its parent's children; None when it has no parent."""
    parent, children = _siblings(shape)
    if parent is None or not children:
        return None
    current = _index_of(children, shape)
    if current is None:
        return None

    last = len(children) - 1
    target = _array_target(action, current, last, index)
    if action == "bring-to-front":
        parent.append_child(shape)
    elif action == "send-to-back":
        parent.insert_child(0, shape)
    elif target != current:
        parent.insert_child(target, shape)
    else:
        logger.info(f"⏸️ Shape {shape.id} already at index {current}; nothing to do for {action}")

    return {"id": str(shape.id), "mode": "array", "previous_index": current, "target_index": target}


def is_layout_child(shape: Any) -> bool:
    parent = read_field(shape, "parent")
    if not _present(parent):
        return False
    if not any(_present(read_field(parent, flag)) for flag in _LAYOUT_FLAGS):
        return False
    return _present(read_field(shape, "layout_child"))


def _z(shape: Any) -> int:
    value = LAYOUT_Z_INDEX.read(shape, default=0)
    return int(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else 0


def reorder_by_z_index(shape: Any, action: str, index: Optional[int]) -> Dict[str, Any]:
    """Move `shape` by rewriting its `layout_child.z_index` among its layout siblings.

    Every target is clamped into `[floor, top]`: `floor` is 0 and `top` is
    one above the highest sibling, each widened to include the current value
    so clamping never moves a shape against the requested direction.
    """
    _, children = _siblings(shape)
    others = [_z(child) for child in children if child is not shape and getattr(child, "id", None) != shape.id]
    current = _z(shape)
    floor = min(0, current)
    top = max(max(others) + 1 if others else 0, current)

    if action == "bring-to-front":
        target = top
    elif action == "send-to-back":
        target = min(others) - 1 if others else current
    elif action == "bring-forward":
        target = current + 1
    elif action == "send-backward":
        target = current - 1
    else:
        target = int(index or 0)
    target = _clamp(target, floor, top)

    if target != current:
        LAYOUT_Z_INDEX.lenses[0].set(shape, target)
    return {"id": str(shape.id), "mode": "z_index", "previous_index": current, "target_index": target}


@register_inverter(SET_LAYER_ORDER, SET_LAYOUT_Z_INDEX)
class LayerOrderInverter(Inverter):
    def undo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        restored = []
        # Reverse order so earlier moves are unwound last
        for move in reversed(entry.undo_data["moves"]):
            shape = lookup_shape(host, move["id"])
            if shape is None:
                logger.warning(f"⚠️ Shape {move['id']} no longer exists; skipping restore")
                continue
            if move["mode"] == "z_index":
                LAYOUT_Z_INDEX.lenses[0].set(shape, move["previous_index"])
            else:
                parent = read_field(shape, "parent")
                parent.insert_child(move["previous_index"], shape)
            restored.append(move["id"])
        return {"restored_shape_ids": restored}

    def redo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        data = entry.redo_data or {}
        restored = []
        for move in entry.undo_data["moves"]:
            shape = lookup_shape(host, move["id"])
            if shape is None:
                logger.warning(f"⚠️ Shape {move['id']} no longer exists; skipping redo")
                continue
            if move["mode"] == "z_index":
                LAYOUT_Z_INDEX.lenses[0].set(shape, move["target_index"])
            else:
                reorder_in_array(shape, data["action"], data.get("index"))
            restored.append(move["id"])
        return {"restored_shape_ids": restored}


async def _reorder(session: Any, action_type: str, payload: Any, layout_aware: bool) -> ToolResponse:
    params = parse_payload(LayerOrderPayload, payload)
    shapes = resolve_targets(session, params.shape_ids)

    moves: List[Dict[str, Any]] = []
    moved: List[Any] = []
    orphans: List[Any] = []
    failed: List[Dict[str, Any]] = []
    for shape in shapes:
        try:
            if layout_aware and is_layout_child(shape):
                move = reorder_by_z_index(shape, params.action, params.index)
            else:
                move = reorder_in_array(shape, params.action, params.index)
        except Exception as e:
            logger.warning(f"❌ {action_type} failed on shape {getattr(shape, 'id', '?')}: {e}")
            failed.append(failure_record(shape, e))
            continue
        if move is None:
            logger.warning(f"⚠️ Shape {getattr(shape, 'id', '?')} has no parent container; cannot reorder")
            orphans.append(shape)
            continue
        moves.append(move)
        moved.append(shape)

    if failed and not moved:
        raise api_error(action_type, failed)
    if not moved:
        return ToolResponse.failure(
            "No shapes could be reordered (selected shapes have no parent container)",
            payload={"action": params.action, "shapes_without_parent": [shape_ref(s) for s in orphans]},
        )

    message = f"Applied {params.action} to {plural(len(moved), 'shape')}"
    entry = UndoEntry(
        action_type=action_type,
        undo_data={"moves": moves},
        redo_data={"action": params.action, "index": params.index},
        description=message,
    )
    result: Dict[str, Any] = {
        "moved_shapes": [shape_ref(s) for s in moved],
        "action": params.action,
        "target_index": moves[-1]["target_index"],
    }
    if orphans:
        result["shapes_without_parent"] = [shape_ref(s) for s in orphans]
    return committed(session, entry, message, with_failures(result, failed))


@tool_handler(SET_LAYER_ORDER)
async def set_layer_order_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Change the stacking order of the selection within its parent.

    Input parameters
    ----------------
    - action: bring-to-front | send-to-back | bring-forward | send-backward | set-index
    - index: required for set-index; clamped to the parent's child range
    - shape_ids: optional explicit targets

    Returns `moved_shapes`, `action` and the `target_index` of the last
    moved shape.
    """
    return await _reorder(session, SET_LAYER_ORDER, payload, layout_aware=False)


@tool_handler(SET_LAYOUT_Z_INDEX)
async def set_layout_z_index_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Same actions as `set_layer_order_tool`, using `layout_child.z_index` inside layout containers."""
    return await _reorder(session, SET_LAYOUT_Z_INDEX, payload, layout_aware=True)
