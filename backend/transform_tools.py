"""
Transform Tools - move, resize, rotate and set-bounds handlers

Geometry handlers store explicit before/after values per shape id and
replay them through the same write path the handler used, so resize-capable
shapes are always resized through `resize()`.
"""

import logging
from typing import Any, Dict, List, Optional

from host_context import lookup_shape
from shape_capabilities import (
    has_bounds,
    is_positionable,
    is_proportion_locked,
    is_resizable,
    is_rotatable,
    read_field,
)
from tool_errors import (
    MISSING_BOUNDS,
    MISSING_POSITION,
    MISSING_RESIZE,
    MISSING_ROTATION,
    ToolResponse,
    missing_capability_error,
    no_selection_error,
)
from tool_payloads import BoundsPayload, MovePayload, ResizePayload, RotatePayload
from tool_support import (
    apply_to_each,
    committed,
    parse_payload,
    partition,
    plural,
    refs,
    resolve_targets,
    split_locked,
    tool_handler,
    with_failures,
)
from undo_redo import Inverter, UndoEntry, register_inverter

logger = logging.getLogger(__name__)

MOVE_SELECTION = "move_selection"
RESIZE_SELECTION = "resize_selection"
ROTATE_SELECTION = "rotate_selection"
SET_SELECTION_BOUNDS = "set_selection_bounds"


def _number(value: Any) -> float:
    return float(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else 0.0


def _shape_or_warn(host: Any, shape_id: str) -> Any:
    shape = lookup_shape(host, shape_id)
    if shape is None:
        logger.warning(f"⚠️ Shape {shape_id} no longer exists; skipping")
    return shape


# ============================================
# ================ MOVE ======================
# ============================================

def _set_position(shape: Any, x: float, y: float) -> None:
    shape.x = x
    shape.y = y


@register_inverter(MOVE_SELECTION)
class MoveInverter(Inverter):
    def undo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        return self._apply(host, entry.undo_data["previous_positions"])

    def redo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        return self._apply(host, (entry.redo_data or {})["new_positions"])

    def _apply(self, host: Any, positions: List[Dict[str, Any]]) -> Dict[str, Any]:
        restored = []
        for position in positions:
            shape = _shape_or_warn(host, position["id"])
            if shape is None:
                continue
            _set_position(shape, position["x"], position["y"])
            restored.append(position["id"])
        return {"restored_shape_ids": restored}


@tool_handler(MOVE_SELECTION)
async def move_selection_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Move the selection by a relative offset or to an absolute position.

    Input parameters
    ----------------
    - dx, dy: relative offsets (either may be omitted, defaults to 0)
    - x, y: absolute position; when given, overrides the offset on that axis
    - shape_ids: optional explicit targets

    Locked shapes are skipped and listed in `skipped_locked` /
    `skipped_locked_shapes`. Undo data carries `previous_positions`.
    """
    params = parse_payload(MovePayload, payload)
    shapes = resolve_targets(session, params.shape_ids)
    unlocked, locked = split_locked(shapes)
    movable, unmovable = partition(unlocked, is_positionable)

    if not movable:
        if locked and not unmovable:
            return ToolResponse.failure(
                "All selected shapes are locked",
                payload={"skipped_locked": [s.id for s in locked], "skipped_locked_shapes": refs(locked)},
            )
        raise missing_capability_error(MISSING_POSITION, shapes_without_position=refs(unmovable))

    previous: Dict[str, Dict[str, Any]] = {}

    def move(shape: Any) -> None:
        x0, y0 = _number(shape.x), _number(shape.y)
        x1 = params.x if params.x is not None else x0 + (params.dx or 0.0)
        y1 = params.y if params.y is not None else y0 + (params.dy or 0.0)
        before = {"id": str(shape.id), "x": shape.x, "y": shape.y}
        previous[before["id"]] = before
        try:
            _set_position(shape, x1, y1)
        except Exception:
            _restore_quietly(shape, before)
            raise

    moved, failed = apply_to_each(MOVE_SELECTION, movable, move)

    previous_positions = [previous[str(s.id)] for s in moved]
    new_positions = [{"id": str(s.id), "x": s.x, "y": s.y} for s in moved]
    entry = UndoEntry(
        action_type=MOVE_SELECTION,
        undo_data={"previous_positions": previous_positions},
        redo_data={"new_positions": new_positions},
        description=f"Moved {plural(len(moved), 'shape')}",
    )
    result = {
        "moved_shapes": refs(moved),
        "changed_shape_ids": [str(s.id) for s in moved],
        "skipped_locked": [str(s.id) for s in locked],
        "skipped_locked_shapes": refs(locked),
    }
    if unmovable:
        result["shapes_without_position"] = refs(unmovable)
    return committed(session, entry, f"Moved {plural(len(moved), 'shape')}", with_failures(result, failed))


# ============================================
# ================ RESIZE ====================
# ============================================

@register_inverter(RESIZE_SELECTION)
class ResizeInverter(Inverter):
    def undo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        return self._apply(host, entry.undo_data["previous_sizes"])

    def redo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        return self._apply(host, (entry.redo_data or {})["new_sizes"])

    def _apply(self, host: Any, sizes: List[Dict[str, Any]]) -> Dict[str, Any]:
        restored = []
        for size in sizes:
            shape = _shape_or_warn(host, size["id"])
            if shape is None:
                continue
            shape.resize(size["width"], size["height"])
            restored.append(size["id"])
        return {"restored_shape_ids": restored}


def _target_size(shape: Any, params: ResizePayload) -> tuple:
    width, height = _number(shape.width), _number(shape.height)
    scale_x = params.scale_x
    scale_y = params.scale_y
    if params.width is not None and width:
        scale_x = params.width / width
    if params.height is not None and height:
        scale_y = params.height / height

    uniform = params.maintain_aspect_ratio or is_proportion_locked(shape)
    if uniform:
        if scale_x is None:
            scale_x = scale_y
        if scale_y is None:
            scale_y = scale_x

    new_width = width * scale_x if scale_x is not None else width
    new_height = height * scale_y if scale_y is not None else height
    return new_width, new_height


@tool_handler(RESIZE_SELECTION)
async def resize_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Resize the selection by scale factors or to absolute dimensions.

    A proportion-locked shape (under any of its lock representations) or an
    explicit `maintain_aspect_ratio` scales both axes when only one is given.
    Failures carry `current_selection_info` describing what was resolved.
    """
    params = parse_payload(ResizePayload, payload)
    resolver = session.resolver
    shapes = resolver.resolve(params.shape_ids)
    if not shapes:
        raise no_selection_error(current_selection_info=[])

    unlocked, locked = split_locked(shapes)
    resizable, unsupported = partition(unlocked, is_resizable)
    if not resizable:
        raise missing_capability_error(
            MISSING_RESIZE,
            shapes_without_resize=refs(unsupported),
            skipped_locked_shapes=refs(locked),
            current_selection_info=resolver.read_selection_info(params.shape_ids),
        )

    previous: Dict[str, Dict[str, Any]] = {}

    def resize(shape: Any) -> None:
        new_width, new_height = _target_size(shape, params)
        previous[str(shape.id)] = {"id": str(shape.id), "width": shape.width, "height": shape.height}
        shape.resize(new_width, new_height)

    resized, failed = apply_to_each(RESIZE_SELECTION, resizable, resize)

    entry = UndoEntry(
        action_type=RESIZE_SELECTION,
        undo_data={"previous_sizes": [previous[str(s.id)] for s in resized]},
        redo_data={"new_sizes": [{"id": str(s.id), "width": s.width, "height": s.height} for s in resized]},
        description=f"Resized {plural(len(resized), 'shape')}",
    )
    result = {
        "resized_shapes": [
            {"id": str(s.id), "name": getattr(s, "name", None), "width": s.width, "height": s.height} for s in resized
        ],
        "changed_shape_ids": [str(s.id) for s in resized],
        "skipped_locked_shapes": refs(locked),
    }
    if unsupported:
        result["shapes_without_resize"] = refs(unsupported)
    return committed(session, entry, f"Resized {plural(len(resized), 'shape')}", with_failures(result, failed))


# ============================================
# ================ ROTATE ====================
# ============================================

def _rotate(shape: Any, angle: float, center: Optional[Dict[str, float]]) -> None:
    rotate = read_field(shape, "rotate")
    if callable(rotate):
        if center is not None:
            rotate(angle, center)
        else:
            rotate(angle)
    else:
        shape.rotation = _number(read_field(shape, "rotation")) + angle


@register_inverter(ROTATE_SELECTION)
class RotateInverter(Inverter):
    """Shapes with `rotate()` replay the angle; plain shapes get their stored rotation back."""

    def undo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        data = entry.undo_data
        return self._apply(host, data["shape_ids"], -data["angle"], data.get("center"), data["previous_rotations"])

    def redo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        data = entry.undo_data
        return self._apply(host, data["shape_ids"], data["angle"], data.get("center"), (entry.redo_data or {})["new_rotations"])

    def _apply(
        self,
        host: Any,
        shape_ids: List[str],
        angle: float,
        center: Optional[Dict[str, float]],
        rotations: Dict[str, Any],
    ) -> Dict[str, Any]:
        restored = []
        for shape_id in shape_ids:
            shape = _shape_or_warn(host, shape_id)
            if shape is None:
                continue
            if callable(read_field(shape, "rotate")):
                _rotate(shape, angle, center)
            else:
                shape.rotation = rotations[shape_id]
            restored.append(shape_id)
        return {"restored_shape_ids": restored}


@tool_handler(ROTATE_SELECTION)
async def rotate_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    params = parse_payload(RotatePayload, payload)
    resolver = session.resolver

    if params.angle is None:
        return ToolResponse.failure(
            "Rotation angle is required",
            payload={"current_selection_info": resolver.read_selection_info(params.shape_ids)},
        )

    shapes = resolve_targets(session, params.shape_ids)
    unlocked, locked = split_locked(shapes)
    rotatable, unsupported = partition(unlocked, is_rotatable)
    if not rotatable:
        raise missing_capability_error(
            MISSING_ROTATION,
            shapes_without_rotation=refs(unsupported),
            skipped_locked_shapes=refs(locked),
            current_selection_info=resolver.read_selection_info(params.shape_ids),
        )

    center = params.center.model_dump() if params.center is not None else None
    previous_rotations: Dict[str, Any] = {}

    def rotate(shape: Any) -> None:
        previous_rotations[str(shape.id)] = read_field(shape, "rotation") or 0
        _rotate(shape, params.angle, center)

    rotated, failed = apply_to_each(ROTATE_SELECTION, rotatable, rotate)

    entry = UndoEntry(
        action_type=ROTATE_SELECTION,
        undo_data={
            "shape_ids": [str(s.id) for s in rotated],
            "angle": params.angle,
            "center": center,
            "previous_rotations": {str(s.id): previous_rotations[str(s.id)] for s in rotated},
        },
        redo_data={"new_rotations": {str(s.id): read_field(s, "rotation") or 0 for s in rotated}},
        description=f"Rotated {plural(len(rotated), 'shape')} by {params.angle:g}°",
    )
    result = {
        "rotated_shapes": refs(rotated),
        "changed_shape_ids": [str(s.id) for s in rotated],
        "angle": params.angle,
        "skipped_locked_shapes": refs(locked),
    }
    return committed(session, entry, f"Rotated {plural(len(rotated), 'shape')} by {params.angle:g}°", with_failures(result, failed))


# ============================================
# ================ BOUNDS ====================
# ============================================

def _apply_bounds(shape: Any, x: Any, y: Any, width: Any, height: Any) -> None:
    if x is not None:
        shape.x = x
    if y is not None:
        shape.y = y
    if width is None and height is None:
        return
    new_width = width if width is not None else shape.width
    new_height = height if height is not None else shape.height
    resize = read_field(shape, "resize")
    if callable(resize):
        resize(new_width, new_height)
    else:
        shape.width = new_width
        shape.height = new_height


def _bounds_of(shape: Any) -> Dict[str, Any]:
    return {
        "id": str(shape.id),
        "x": read_field(shape, "x") or 0,
        "y": read_field(shape, "y") or 0,
        "width": shape.width,
        "height": shape.height,
    }


@register_inverter(SET_SELECTION_BOUNDS)
class BoundsInverter(Inverter):
    def undo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        return self._apply(host, entry.undo_data["previous_bounds"])

    def redo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        return self._apply(host, (entry.redo_data or {})["new_bounds"])

    def _apply(self, host: Any, bounds: List[Dict[str, Any]]) -> Dict[str, Any]:
        restored = []
        for item in bounds:
            shape = _shape_or_warn(host, item["id"])
            if shape is None:
                continue
            _apply_bounds(shape, item["x"], item["y"], item["width"], item["height"])
            restored.append(item["id"])
        return {"restored_shape_ids": restored}


@tool_handler(SET_SELECTION_BOUNDS)
async def set_selection_bounds_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Set x, y, width and height on the selection; omitted fields keep their value."""
    params = parse_payload(BoundsPayload, payload)
    shapes = resolve_targets(session, params.shape_ids)
    unlocked, locked = split_locked(shapes)
    bounded, unbounded = partition(unlocked, has_bounds)

    if not bounded:
        if locked and not unbounded:
            return ToolResponse.failure(
                "All selected shapes are locked",
                payload={"skipped_locked_shapes": refs(locked)},
            )
        raise missing_capability_error(MISSING_BOUNDS, shapes_without_bounds=refs(unbounded))

    previous: Dict[str, Dict[str, Any]] = {}

    def set_bounds(shape: Any) -> None:
        before = _bounds_of(shape)
        previous[before["id"]] = before
        try:
            _apply_bounds(shape, params.x, params.y, params.width, params.height)
        except Exception:
            _restore_quietly(shape, before)
            raise

    changed, failed = apply_to_each(SET_SELECTION_BOUNDS, bounded, set_bounds)

    entry = UndoEntry(
        action_type=SET_SELECTION_BOUNDS,
        undo_data={"previous_bounds": [previous[str(s.id)] for s in changed]},
        redo_data={"new_bounds": [_bounds_of(s) for s in changed]},
        description=f"Updated bounds of {plural(len(changed), 'shape')}",
    )
    result = {
        "changed_shape_ids": [str(s.id) for s in changed],
        "skipped_locked_shapes": refs(locked),
    }
    if unbounded:
        result["shapes_without_bounds"] = refs(unbounded)
    return committed(session, entry, f"Updated bounds of {plural(len(changed), 'shape')}", with_failures(result, failed))


def _restore_quietly(shape: Any, before: Dict[str, Any]) -> None:
    try:
        shape.x = before["x"]
        shape.y = before["y"]
    except Exception as e:
        logger.warning(f"⚠️ Could not roll back position of {before['id']}: {e}")
