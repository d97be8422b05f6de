"""
Group Tools - group and ungroup the selection

Grouping goes through the host's `group(shapes)` / `ungroup(group)` calls.
Re-grouping on undo or redo creates a new group shape, so the inverters
write the new group id back into the entry for the next replay.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from host_context import lookup_shape
from shape_capabilities import is_group, read_field
from tool_errors import NEED_MORE_SHAPES, NO_GROUPS_SELECTED, ToolExecutionError, ToolResponse
from tool_payloads import ShapeTargetPayload
from tool_support import (
    apply_to_each,
    committed,
    parse_payload,
    plural,
    refs,
    resolve_targets,
    shape_names,
    tool_handler,
    with_failures,
)
from undo_redo import Inverter, UndoEntry, register_inverter

logger = logging.getLogger(__name__)

GROUP_SELECTION = "group_selection"
UNGROUP_SELECTION = "ungroup_selection"


def _host_call(host: Any, name: str) -> Callable[..., Any]:
    call = getattr(host, name, None)
    if not callable(call):
        raise ToolExecutionError(f"Host does not support {name}")
    return call


def _find_all(host: Any, shape_ids: List[str]) -> List[Any]:
    shapes = [lookup_shape(host, shape_id) for shape_id in shape_ids]
    missing = [shape_id for shape_id, shape in zip(shape_ids, shapes) if shape is None]
    if missing:
        raise RuntimeError(f"Shapes no longer exist: {', '.join(missing)}")
    return shapes


def _regroup(host: Any, shape_ids: List[str], name: Optional[str]) -> str:
    group = _host_call(host, "group")(_find_all(host, shape_ids))
    if group is None:
        raise RuntimeError("Host returned no group")
    if name:
        group.name = name
    return str(group.id)


def _release(host: Any, group_id: str) -> None:
    group = lookup_shape(host, group_id)
    if group is None:
        raise RuntimeError(f"Group {group_id} not found")
    _host_call(host, "ungroup")(group)


# ============================================
# ================ GROUP =====================
# ============================================

@register_inverter(GROUP_SELECTION)
class GroupInverter(Inverter):
    def undo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        data = entry.undo_data
        _release(host, data["group_id"])
        for position in data["shape_positions"]:
            shape = lookup_shape(host, position["id"])
            if shape is None:
                logger.warning(f"⚠️ Shape {position['id']} no longer exists; skipping restore")
                continue
            shape.x = position["x"]
            shape.y = position["y"]
        return {"restored_shape_ids": list(data["shape_ids"])}

    def redo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        data = entry.undo_data
        data["group_id"] = _regroup(host, data["shape_ids"], data.get("group_name"))
        return {"group_id": data["group_id"]}


@tool_handler(GROUP_SELECTION)
async def group_selection_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Group two or more selected shapes into a new group."""
    params = parse_payload(ShapeTargetPayload, payload)
    shapes = resolve_targets(session, params.shape_ids)
    if len(shapes) < 2:
        raise ToolExecutionError({"code": NEED_MORE_SHAPES, "details": {"selection_count": len(shapes), "required": 2}})

    positions = [{"id": str(s.id), "x": read_field(s, "x") or 0, "y": read_field(s, "y") or 0} for s in shapes]
    group = _host_call(session.host, "group")(shapes)
    if group is None:
        raise ToolExecutionError("Host returned no group")

    group_id = str(group.id)
    group_name = getattr(group, "name", None) or group_id
    message = f"Grouped {plural(len(shapes), 'shape')} into '{group_name}': {shape_names(shapes)}"
    entry = UndoEntry(
        action_type=GROUP_SELECTION,
        undo_data={
            "group_id": group_id,
            "group_name": group_name,
            "shape_ids": [str(s.id) for s in shapes],
            "shape_positions": positions,
        },
        description=message,
    )
    return committed(session, entry, message, {"group_id": group_id, "grouped_shapes": refs(shapes)})


# ============================================
# ================ UNGROUP ===================
# ============================================

@register_inverter(UNGROUP_SELECTION)
class UngroupInverter(Inverter):
    def undo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        regrouped = []
        for record in entry.undo_data["ungrouped_groups"]:
            record["group_id"] = _regroup(host, record["shape_ids"], record["group_name"])
            regrouped.append(record["group_id"])
        return {"group_ids": regrouped}

    def redo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        released = []
        for record in entry.undo_data["ungrouped_groups"]:
            _release(host, record["group_id"])
            released.append(record["group_id"])
        return {"group_ids": released}


@tool_handler(UNGROUP_SELECTION)
async def ungroup_selection_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Release the children of every selected group; non-group shapes are ignored."""
    params = parse_payload(ShapeTargetPayload, payload)
    shapes = resolve_targets(session, params.shape_ids)
    groups = [s for s in shapes if is_group(s)]
    if not groups:
        raise ToolExecutionError({"code": NO_GROUPS_SELECTED, "details": {"selection_count": len(shapes)}})

    ungroup = _host_call(session.host, "ungroup")
    records: List[Dict[str, Any]] = []

    def release(group: Any) -> None:
        children = list(read_field(group, "children") or [])
        ungroup(group)
        records.append({
            "group_id": str(group.id),
            "group_name": getattr(group, "name", None) or str(group.id),
            "shape_ids": [str(child.id) for child in children],
        })

    released, failed = apply_to_each(UNGROUP_SELECTION, groups, release)

    message = f"Ungrouped {plural(len(released), 'group')}: {shape_names(released)}"
    entry = UndoEntry(
        action_type=UNGROUP_SELECTION,
        undo_data={"ungrouped_groups": records},
        description=message,
    )
    result = {
        "ungrouped_groups": [{"id": r["group_id"], "name": r["group_name"]} for r in records],
        "released_shape_ids": [shape_id for r in records for shape_id in r["shape_ids"]],
    }
    return committed(session, entry, message, with_failures(result, failed))
