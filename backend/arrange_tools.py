"""
Arrange Tools - align and distribute the selection

These handlers only move shapes. Each computes a target position per shape
and writes `x` / `y` through `write_fields`, so a shape whose setter throws
is rolled back and the others are recorded as field snapshots for the
generic snapshot inverter.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from host_context import page_size
from shape_capabilities import is_positionable, read_field
from shape_geometry import Rect, selection_bounds
from tool_errors import (
    MISSING_POSITION,
    NEED_MORE_SHAPES,
    ToolExecutionError,
    ToolResponse,
    missing_capability_error,
)
from tool_payloads import AlignHorizontalPayload, AlignVerticalPayload, ShapeTargetPayload
from tool_support import (
    committed,
    parse_payload,
    partition,
    plural,
    refs,
    resolve_targets,
    shape_names,
    split_locked,
    tool_handler,
    with_failures,
    write_fields,
)
from undo_redo import FieldChanges, field_change_entry

logger = logging.getLogger(__name__)

ALIGN_HORIZONTAL = "align_horizontal"
ALIGN_VERTICAL = "align_vertical"
CENTER_ALIGNMENT = "center_alignment"
DISTRIBUTE_HORIZONTAL = "distribute_horizontal"
DISTRIBUTE_VERTICAL = "distribute_vertical"

Plan = List[Tuple[Sequence[str], Any]]


def _movable(session: Any, shape_ids: Optional[Sequence[str]]) -> Tuple[List[Any], List[Any]]:
    """(movable, locked) for the resolved selection; raises when nothing can move."""
    shapes = resolve_targets(session, shape_ids)
    unlocked, locked = split_locked(shapes)
    movable, unmovable = partition(unlocked, is_positionable)
    if not movable:
        if locked and not unmovable:
            raise ToolExecutionError({
                "code": MISSING_POSITION,
                "message": "All selected shapes are locked",
                "details": {"skipped_locked_shapes": refs(locked)},
            })
        raise missing_capability_error(MISSING_POSITION, shapes_without_position=refs(unmovable))
    return movable, locked


def _parent_frame(shape: Any) -> Optional[Rect]:
    parent = read_field(shape, "parent")
    if not parent:
        return None
    frame = Rect.from_shape(parent)
    return frame if frame.width > 0 and frame.height > 0 else None


def alignment_frame(session: Any, shapes: Sequence[Any]) -> Rect:
    """The rect shapes are aligned within.

    Several shapes align to their combined bounds. A single shape aligns to
    its parent container, or to the page when it has none.
    """
    if len(shapes) > 1:
        return selection_bounds(shapes)
    frame = _parent_frame(shapes[0])
    if frame is not None:
        return frame
    size = page_size(session.host)
    if size is None:
        raise ToolExecutionError({
            "code": MISSING_POSITION,
            "message": "Cannot align a single shape without a parent container or page size",
            "details": {"shape": refs(shapes)[0]},
        })
    return Rect(0.0, 0.0, size[0], size[1])


def _aligned(origin: float, extent: float, size: float, alignment: str) -> float:
    if alignment in ("left", "top"):
        return origin
    if alignment in ("right", "bottom"):
        return origin + extent - size
    return origin + (extent - size) / 2


def _align(
    session: Any,
    action_type: str,
    shapes: Sequence[Any],
    locked: Sequence[Any],
    plan_for: Any,
    describe: str,
    extra: Dict[str, Any],
) -> ToolResponse:
    changes = FieldChanges()
    changed, _, failed = write_fields(action_type, shapes, plan_for, changes)

    message = f"{describe} {plural(len(changed), 'shape')}: {shape_names(changed)}"
    entry = field_change_entry(action_type, changes, message, **extra)
    result: Dict[str, Any] = {
        "aligned_shapes": refs(changed),
        "changed_shape_ids": [str(s.id) for s in changed],
        "skipped_locked_shapes": refs(locked),
    }
    result.update(extra)
    return committed(session, entry, message, with_failures(result, failed))


@tool_handler(ALIGN_HORIZONTAL)
async def align_horizontal_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Align the selection's left edges, centers or right edges.

    Input parameters
    ----------------
    - alignment: left | center | right
    - shape_ids: optional explicit targets
    """
    params = parse_payload(AlignHorizontalPayload, payload)
    shapes, locked = _movable(session, params.shape_ids)
    frame = alignment_frame(session, shapes)

    def plan(shape: Any) -> Plan:
        rect = Rect.from_shape(shape)
        return [(("x",), _aligned(frame.x, frame.width, rect.width, params.alignment))]

    return _align(
        session, ALIGN_HORIZONTAL, shapes, locked, plan,
        f"Aligned ({params.alignment})", {"alignment": params.alignment},
    )


@tool_handler(ALIGN_VERTICAL)
async def align_vertical_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Align the selection's top edges, middles or bottom edges."""
    params = parse_payload(AlignVerticalPayload, payload)
    shapes, locked = _movable(session, params.shape_ids)
    frame = alignment_frame(session, shapes)

    def plan(shape: Any) -> Plan:
        rect = Rect.from_shape(shape)
        return [(("y",), _aligned(frame.y, frame.height, rect.height, params.alignment))]

    return _align(
        session, ALIGN_VERTICAL, shapes, locked, plan,
        f"Aligned ({params.alignment})", {"alignment": params.alignment},
    )


@tool_handler(CENTER_ALIGNMENT)
async def center_alignment_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Center the selection on both axes in one undoable step."""
    params = parse_payload(ShapeTargetPayload, payload)
    shapes, locked = _movable(session, params.shape_ids)
    frame = alignment_frame(session, shapes)

    def plan(shape: Any) -> Plan:
        rect = Rect.from_shape(shape)
        return [
            (("x",), _aligned(frame.x, frame.width, rect.width, "center")),
            (("y",), _aligned(frame.y, frame.height, rect.height, "center")),
        ]

    return _align(session, CENTER_ALIGNMENT, shapes, locked, plan, "Centered", {"alignment": "center"})


# ============================================
# ============ DISTRIBUTE ====================
# ============================================

def distributed_positions(rects: Dict[str, Rect], axis: str) -> Tuple[Dict[str, float], float]:
    """Positions spacing the rects evenly along `axis` ("x" or "y").

    The first and last rect keep their place; the gaps between neighbours
    become equal. Returns ({id: position} for the inner rects, gap).
    """
    def origin(rect: Rect) -> float:
        return rect.x if axis == "x" else rect.y

    def extent(rect: Rect) -> float:
        return rect.width if axis == "x" else rect.height

    ordered = sorted(rects.items(), key=lambda item: (origin(item[1]), item[0]))
    first, last = ordered[0][1], ordered[-1][1]
    span = origin(last) + extent(last) - origin(first)
    gap = (span - sum(extent(rect) for _, rect in ordered)) / (len(ordered) - 1)

    positions: Dict[str, float] = {}
    cursor = origin(first) + extent(first) + gap
    for shape_id, rect in ordered[1:-1]:
        positions[shape_id] = cursor
        cursor += extent(rect) + gap
    return positions, gap


async def _distribute(session: Any, action_type: str, payload: Any, axis: str) -> ToolResponse:
    params = parse_payload(ShapeTargetPayload, payload)
    shapes, locked = _movable(session, params.shape_ids)
    if len(shapes) < 3:
        raise ToolExecutionError({
            "code": NEED_MORE_SHAPES,
            "details": {"selection_count": len(shapes), "required": 3, "skipped_locked_shapes": refs(locked)},
        })

    positions, gap = distributed_positions({str(s.id): Rect.from_shape(s) for s in shapes}, axis)

    def plan(shape: Any) -> Plan:
        target = positions.get(str(shape.id))
        return [((axis,), target)] if target is not None else []

    changes = FieldChanges()
    changed, _, failed = write_fields(action_type, shapes, plan, changes)

    direction = "horizontally" if axis == "x" else "vertically"
    message = f"Distributed {plural(len(shapes), 'shape')} {direction}"
    entry = field_change_entry(action_type, changes, message)
    result: Dict[str, Any] = {
        "distributed_shapes": refs(shapes),
        "changed_shape_ids": [str(s.id) for s in changed],
        "gap": gap,
        "skipped_locked_shapes": refs(locked),
    }
    return committed(session, entry, message, with_failures(result, failed))


@tool_handler(DISTRIBUTE_HORIZONTAL)
async def distribute_horizontal_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Space three or more shapes evenly between the leftmost and rightmost one."""
    return await _distribute(session, DISTRIBUTE_HORIZONTAL, payload, "x")


@tool_handler(DISTRIBUTE_VERTICAL)
async def distribute_vertical_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Space three or more shapes evenly between the topmost and bottommost one."""
    return await _distribute(session, DISTRIBUTE_VERTICAL, payload, "y")
