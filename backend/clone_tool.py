"""
Clone Tool - duplicate the selection next to itself

Each duplicate is placed by `ClonePlacementEngine` against every other shape
on the page and against duplicates already placed in the same call. Undo
removes the duplicates; redo clones the sources again at the positions the
first call computed.
"""

import logging
from typing import Any, Dict, List, Optional

from clone_placement import PlacementOptions
from host_context import lookup_shape, page_shapes, shape_ref
from shape_capabilities import is_clonable
from shape_geometry import Rect
from tool_errors import MISSING_CLONE, ToolResponse, missing_capability_error
from tool_payloads import ClonePayload
from tool_support import (
    apply_to_each,
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
)
from undo_redo import Inverter, UndoEntry, register_inverter

logger = logging.getLogger(__name__)

CLONE_SELECTION = "clone_selection"


def _clone_at(source: Any, x: float, y: float) -> Any:
    duplicate = source.clone()
    if duplicate is None:
        raise RuntimeError(f"clone() returned nothing for {source.id}")
    try:
        duplicate.x = x
        duplicate.y = y
    except Exception:
        logger.warning(f"⚠️ Could not position clone of {source.id}; removing it")
        duplicate.remove()
        raise
    return duplicate


@register_inverter(CLONE_SELECTION)
class CloneInverter(Inverter):
    def undo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        removed = []
        for clone in entry.undo_data["clones"]:
            shape = lookup_shape(host, clone["clone_id"])
            if shape is None:
                logger.warning(f"⚠️ Clone {clone['clone_id']} already gone; nothing to remove")
                continue
            shape.remove()
            removed.append(clone["clone_id"])
        return {"removed_ids": removed}

    def redo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        created = []
        for clone in entry.undo_data["clones"]:
            source = lookup_shape(host, clone["source_id"])
            if source is None:
                logger.warning(f"⚠️ Source {clone['source_id']} no longer exists; cannot re-clone")
                continue
            duplicate = _clone_at(source, clone["x"], clone["y"])
            clone["clone_id"] = str(duplicate.id)
            created.append(clone["clone_id"])
        # Later undo must remove the re-created shapes, not the first duplicates
        entry.undo_data["created_ids"] = created
        return {"created_ids": created}


@tool_handler(CLONE_SELECTION)
async def clone_selection_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Duplicate the selection into free space on the page.

    Input parameters
    ----------------
    - offset: {x, y} gap between source and duplicate; default is 6% of the
      source size per axis, never less than the configured minimum
    - skip_locked: clone only unlocked shapes; without it a selection that
      contains locked shapes returns `locked_shapes` and `selection_count`
    - keep_position: place the duplicate exactly over its source
    - fallback: preferred first direction (auto, right, below, left, top)
    - shape_ids: optional explicit targets

    Returns `created_ids` and `cloned_shapes` with their final positions.
    """
    params = parse_payload(ClonePayload, payload)
    shapes = resolve_targets(session, params.shape_ids)
    unlocked, locked = split_locked(shapes)

    if locked and not params.skip_locked:
        return ToolResponse.failure(
            f"{plural(len(locked), 'selected shape')} {'is' if len(locked) == 1 else 'are'} locked: {shape_names(locked)}. "
            "Clone only the unlocked shapes?",
            payload={
                "locked_shapes": refs(locked),
                "unlocked_shapes": refs(unlocked),
                "selection_count": len(shapes),
            },
        )
    if not unlocked:
        return ToolResponse.failure("All selected shapes are locked", payload={"skipped_locked_shapes": refs(locked)})

    sources, unsupported = partition(unlocked, is_clonable)
    if not sources:
        raise missing_capability_error(MISSING_CLONE, shapes_without_clone=refs(unsupported))

    engine = session.placement_engine()
    options = PlacementOptions(
        max_attempts=params.max_attempts or session.config.clone_max_attempts,
        offset_x=params.offset.x if params.offset is not None else None,
        offset_y=params.offset.y if params.offset is not None else None,
        fallback=params.fallback,
    )
    page_rects = {str(s.id): Rect.from_shape(s) for s in page_shapes(session.host)}
    placed: List[Rect] = []
    clones: List[Dict[str, Any]] = []

    def duplicate(source: Any) -> None:
        rect = Rect.from_shape(source)
        existing = [r for shape_id, r in page_rects.items() if shape_id != str(source.id)] + placed
        target = rect if params.keep_position else engine.place(rect, existing, options)
        clone = _clone_at(source, target.x, target.y)
        placed.append(target)
        clones.append({
            "source_id": str(source.id),
            "clone_id": str(clone.id),
            "name": getattr(clone, "name", None),
            "x": target.x,
            "y": target.y,
        })

    cloned, failed = apply_to_each(CLONE_SELECTION, sources, duplicate)

    created_ids = [clone["clone_id"] for clone in clones]
    message = f"Cloned {plural(len(cloned), 'shape')}: {shape_names(cloned)}"
    entry = UndoEntry(
        action_type=CLONE_SELECTION,
        undo_data={"created_ids": created_ids, "clones": clones},
        description=message,
    )
    result: Dict[str, Any] = {
        "created_ids": list(created_ids),
        "cloned_shapes": [dict(clone) for clone in clones],
        "source_shapes": [shape_ref(s) for s in cloned],
        "skipped_locked_shapes": refs(locked),
    }
    if unsupported:
        result["shapes_without_clone"] = refs(unsupported)
    return committed(session, entry, message, with_failures(result, failed))
