"""
Style Tools - opacity, blend mode, border radius, constraints, fills, shadows, strokes, blur

All handlers here are single-property writes: they skip editor-locked
shapes, report shapes lacking the property under a MISSING_<PROPERTY> code
and record field snapshots replayed by the generic snapshot inverter.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from shape_capabilities import (
    BLEND_MODE,
    BLUR,
    BORDER_RADIUS,
    CONSTRAINTS_HORIZONTAL,
    CONSTRAINTS_VERTICAL,
    FILLS,
    OPACITY,
    SHADOWS,
    STROKES,
    Capability,
)
from tool_errors import (
    MISSING_BORDER_RADIUS,
    MISSING_CONSTRAINTS,
    MISSING_FILLS,
    ToolResponse,
    missing_capability_error,
)
from tool_payloads import (
    BlendModePayload,
    BlurPayload,
    BorderRadiusPayload,
    FillPayload,
    HorizontalConstraintPayload,
    OpacityPayload,
    ShadowPayload,
    StrokePayload,
    VerticalConstraintPayload,
)
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

SET_OPACITY = "set_opacity"
SET_BLEND_MODE = "set_blend_mode"
SET_BORDER_RADIUS = "set_border_radius"
SET_CONSTRAINTS_HORIZONTAL = "set_constraints_horizontal"
SET_CONSTRAINTS_VERTICAL = "set_constraints_vertical"
APPLY_FILL = "apply_fill"
APPLY_SHADOW = "apply_shadow"
APPLY_STROKE = "apply_stroke"
APPLY_BLUR = "apply_blur"


def _apply_property(
    session: Any,
    action_type: str,
    shapes: Sequence[Any],
    capability: Capability,
    value_for: Callable[[Any], Any],
    describe: str,
    require_field: Optional[Tuple[str, str]] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> ToolResponse:
    """Write one capability on every unlocked shape and record the change.

    `require_field` is `(error_code, payload_key)`; when given, shapes that
    do not define the capability are excluded and, if none remain, the call
    fails with that code.
    """
    unlocked, locked = split_locked(shapes)
    unsupported: List[Any] = []
    eligible = unlocked
    if require_field is not None:
        code, key = require_field
        eligible, unsupported = partition(unlocked, capability.supported_by)
        if not eligible and unsupported:
            raise missing_capability_error(code, **{key: refs(unsupported), "skipped_locked_shapes": refs(locked)})

    if not eligible:
        return ToolResponse.failure(
            "All selected shapes are locked",
            payload={"changed_shape_ids": [], "skipped_locked_shapes": refs(locked)},
        )

    lens = capability.lenses[0]
    changes = FieldChanges()
    changed, _, failed = write_fields(
        action_type,
        eligible,
        lambda shape: [((capability.match(shape) or lens).path, value_for(shape))],
        changes,
    )

    message = f"{describe} on {plural(len(changed), 'shape')}: {shape_names(changed)}"
    entry = field_change_entry(action_type, changes, message, **(extra or {}))
    result: Dict[str, Any] = {
        "changed_shape_ids": [str(s.id) for s in changed],
        "skipped_locked_shapes": refs(locked),
    }
    if require_field is not None and unsupported:
        result[require_field[1]] = refs(unsupported)
    if extra:
        result.update(extra)
    return committed(session, entry, message, with_failures(result, failed))


@tool_handler(SET_OPACITY)
async def set_selection_opacity_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Set opacity (0.0 to 1.0) on the selection."""
    params = parse_payload(OpacityPayload, payload)
    shapes = resolve_targets(session, params.shape_ids)
    return _apply_property(
        session,
        SET_OPACITY,
        shapes,
        OPACITY,
        lambda shape: params.opacity,
        f"Set opacity to {params.opacity:g}",
        extra={"applied_opacity": params.opacity},
    )


@tool_handler(SET_BLEND_MODE)
async def set_selection_blend_mode_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    params = parse_payload(BlendModePayload, payload)
    shapes = resolve_targets(session, params.shape_ids)
    return _apply_property(
        session,
        SET_BLEND_MODE,
        shapes,
        BLEND_MODE,
        lambda shape: params.blend_mode,
        f"Set blend mode to {params.blend_mode}",
        extra={"blend_mode": params.blend_mode},
    )


@tool_handler(SET_BORDER_RADIUS)
async def set_selection_border_radius_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Set the corner radius of every selected shape that has one.

    Shapes without a `border_radius` field are listed under
    `shapes_without_border_radius`; if no selected shape has one the call
    fails with MISSING_BORDER_RADIUS.
    """
    params = parse_payload(BorderRadiusPayload, payload)
    shapes = resolve_targets(session, params.shape_ids)
    return _apply_property(
        session,
        SET_BORDER_RADIUS,
        shapes,
        BORDER_RADIUS,
        lambda shape: params.border_radius,
        f"Set border radius to {params.border_radius:g}",
        require_field=(MISSING_BORDER_RADIUS, "shapes_without_border_radius"),
        extra={"border_radius": params.border_radius},
    )


async def _set_constraint(session: Any, action_type: str, capability: Capability, params: Any, axis: str) -> ToolResponse:
    shapes = resolve_targets(session, params.shape_ids)
    response = _apply_property(
        session,
        action_type,
        shapes,
        capability,
        lambda shape: params.constraint,
        f"Set {axis} constraint to {params.constraint}",
        require_field=(MISSING_CONSTRAINTS, "shapes_without_constraints"),
        extra={f"constraints_{axis}": params.constraint},
    )
    if response.success and response.payload is not None:
        response.payload["updated_shape_ids"] = list(response.payload["changed_shape_ids"])
    return response


@tool_handler(SET_CONSTRAINTS_HORIZONTAL)
async def set_constraints_horizontal_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Pin the selection horizontally: left, right, leftright, center or scale."""
    params = parse_payload(HorizontalConstraintPayload, payload)
    return await _set_constraint(session, SET_CONSTRAINTS_HORIZONTAL, CONSTRAINTS_HORIZONTAL, params, "horizontal")


@tool_handler(SET_CONSTRAINTS_VERTICAL)
async def set_constraints_vertical_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Pin the selection vertically: top, bottom, topbottom, center or scale."""
    params = parse_payload(VerticalConstraintPayload, payload)
    return await _set_constraint(session, SET_CONSTRAINTS_VERTICAL, CONSTRAINTS_VERTICAL, params, "vertical")


@tool_handler(APPLY_FILL)
async def apply_fill_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Replace the fills of the selection with one solid fill; undo restores the prior list."""
    params = parse_payload(FillPayload, payload)
    shapes = resolve_targets(session, params.shape_ids)
    fill = {"fill_color": params.fill_color, "fill_opacity": params.fill_opacity}
    return _apply_property(
        session,
        APPLY_FILL,
        shapes,
        FILLS,
        lambda shape: [dict(fill)],
        f"Applied fill {params.fill_color} ({params.fill_opacity:g})",
        require_field=(MISSING_FILLS, "shapes_without_fills"),
        extra={"fill": fill},
    )


@tool_handler(APPLY_SHADOW)
async def apply_shadow_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Apply one shadow to the selection, replacing the shadows list.

    Shapes that already carry shadows are not overwritten unless
    `override_existing` is set; instead the call returns
    `shapes_with_existing_shadows` and the `requested_shadow`.
    """
    params = parse_payload(ShadowPayload, payload)
    shapes = resolve_targets(session, params.shape_ids)
    shadow = {
        "style": params.shadow_style,
        "color": params.shadow_color,
        "offset_x": params.shadow_offset_x,
        "offset_y": params.shadow_offset_y,
        "blur": params.shadow_blur,
        "spread": params.shadow_spread,
    }

    if not params.override_existing:
        with_shadows = [s for s in shapes if SHADOWS.read(s)]
        if with_shadows:
            count = len(with_shadows)
            return ToolResponse.failure(
                f"{plural(count, 'selected shape')} already {'has' if count == 1 else 'have'} shadows: "
                f"{shape_names(with_shadows)}. Override them with the new {params.describe()}?",
                payload={
                    "shapes_with_existing_shadows": refs(with_shadows),
                    "requested_shadow": params.model_dump(exclude={"shape_ids", "override_existing"}),
                },
            )

    response = _apply_property(
        session,
        APPLY_SHADOW,
        shapes,
        SHADOWS,
        lambda shape: [dict(shadow)],
        f"Applied {params.describe()}",
        extra={"shadow": shadow},
    )
    if response.success and response.payload is not None:
        response.payload["shadowed_shapes"] = [
            ref for ref in refs(shapes) if ref["id"] in response.payload["changed_shape_ids"]
        ]
    return response


@tool_handler(APPLY_STROKE)
async def apply_stroke_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Apply one stroke to the selection, replacing the strokes list.

    Input parameters
    ----------------
    - stroke_color: hex or named color (default #000000)
    - stroke_width: greater than 0 (default 1)
    - stroke_opacity: 0.0 to 1.0 (default 1.0)
    - stroke_style: solid | dashed | dotted | mixed
    - override_existing: replace strokes already on the shape

    Like shadows, existing strokes are only replaced with `override_existing`.
    """
    params = parse_payload(StrokePayload, payload)
    shapes = resolve_targets(session, params.shape_ids)
    stroke = {
        "stroke_color": params.stroke_color,
        "stroke_width": params.stroke_width,
        "stroke_opacity": params.stroke_opacity,
        "stroke_style": params.stroke_style,
    }

    if not params.override_existing:
        with_strokes = [s for s in shapes if STROKES.read(s)]
        if with_strokes:
            count = len(with_strokes)
            return ToolResponse.failure(
                f"{plural(count, 'selected shape')} already {'has' if count == 1 else 'have'} strokes: "
                f"{shape_names(with_strokes)}. Override them with the new {params.describe()}?",
                payload={"shapes_with_existing_strokes": refs(with_strokes), "requested_stroke": dict(stroke)},
            )

    return _apply_property(
        session,
        APPLY_STROKE,
        shapes,
        STROKES,
        lambda shape: [dict(stroke)],
        f"Applied {params.describe()}",
        extra={"stroke": stroke},
    )


@tool_handler(APPLY_BLUR)
async def apply_blur_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Set a layer blur of `blur_value` px (0 to 100, default 5) on the selection."""
    params = parse_payload(BlurPayload, payload)
    shapes = resolve_targets(session, params.shape_ids)
    blur = {"value": params.blur_value, "type": "layer-blur"}
    return _apply_property(
        session,
        APPLY_BLUR,
        shapes,
        BLUR,
        lambda shape: dict(blur),
        f"Applied {params.blur_value:g}px blur",
        extra={"blur": blur},
    )
