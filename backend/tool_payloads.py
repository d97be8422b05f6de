"""
Tool Payloads - validated inputs for every editing handler

Hosts send camelCase keys; Python callers use snake_case. Both are accepted.
Validation messages are user-facing and surface verbatim in the failure
envelope.
"""

import re
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

BLEND_MODES = (
    "normal",
    "darken",
    "multiply",
    "color-burn",
    "lighten",
    "screen",
    "color-dodge",
    "overlay",
    "soft-light",
    "hard-light",
    "difference",
    "exclusion",
    "hue",
    "saturation",
    "color",
    "luminosity",
)

HORIZONTAL_CONSTRAINTS = ("left", "right", "leftright", "center", "scale")
VERTICAL_CONSTRAINTS = ("top", "bottom", "topbottom", "center", "scale")

LAYER_ACTIONS = ("bring-to-front", "send-to-back", "bring-forward", "send-backward", "set-index")

HORIZONTAL_ALIGNMENTS = ("left", "center", "right")
VERTICAL_ALIGNMENTS = ("top", "center", "bottom")

NAMED_COLORS = {
    "red": "#FF0000",
    "green": "#00FF00",
    "blue": "#0000FF",
    "yellow": "#FFFF00",
    "cyan": "#00FFFF",
    "magenta": "#FF00FF",
    "black": "#000000",
    "white": "#FFFFFF",
    "gray": "#808080",
    "grey": "#808080",
}

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


def normalize_color(value: str) -> str:
    """Map named colors to hex and add a missing leading '#'."""
    text = value.strip()
    named = NAMED_COLORS.get(text.lower())
    if named:
        return named
    return text if text.startswith("#") else f"#{text}"


def _normalize_token(value: str) -> str:
    return value.strip().lower().replace("_", "-").replace(" ", "-")


class ToolPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')


class ShapeTargetPayload(ToolPayload):
    shape_ids: Optional[List[str]] = None


class Point(ToolPayload):
    model_config = ConfigDict(extra='forbid')
    x: float = 0.0
    y: float = 0.0


# ============================================
# ============ TRANSFORM =====================
# ============================================

class MovePayload(ShapeTargetPayload):
    dx: Optional[float] = None
    dy: Optional[float] = None
    x: Optional[float] = None
    y: Optional[float] = None

    @model_validator(mode='after')
    def _require_motion(self) -> "MovePayload":
        if all(value is None for value in (self.dx, self.dy, self.x, self.y)):
            raise ValueError("Move requires dx/dy offsets or an absolute x/y position")
        return self


class ResizePayload(ShapeTargetPayload):
    scale_x: Optional[float] = None
    scale_y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    maintain_aspect_ratio: bool = False

    @field_validator("scale_x", "scale_y", "width", "height")
    @classmethod
    def _positive(cls, value: Optional[float], info) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError(f"{info.field_name} must be greater than 0")
        return value

    @model_validator(mode='after')
    def _require_dimension(self) -> "ResizePayload":
        if all(value is None for value in (self.scale_x, self.scale_y, self.width, self.height)):
            raise ValueError("Resize requires scale_x/scale_y or width/height")
        return self


class RotatePayload(ShapeTargetPayload):
    # Missing angle is reported with the current selection, not as a validation error
    angle: Optional[float] = None
    center: Optional[Point] = None


class BoundsPayload(ShapeTargetPayload):
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None

    @field_validator("width", "height")
    @classmethod
    def _non_negative(cls, value: Optional[float], info) -> Optional[float]:
        if value is not None and value < 0:
            raise ValueError(f"{info.field_name.capitalize()} must be non-negative")
        return value

    @model_validator(mode='after')
    def _require_field(self) -> "BoundsPayload":
        if all(value is None for value in (self.x, self.y, self.width, self.height)):
            raise ValueError("At least one of x, y, width or height is required")
        return self


# ============================================
# ============ TOGGLES =======================
# ============================================

class LockPayload(ShapeTargetPayload):
    lock: Optional[bool] = None


class ProportionLockPayload(ShapeTargetPayload):
    lock: Optional[bool] = None
    proportion_lock: Optional[bool] = None
    debug_dump: bool = False

    @property
    def target_state(self) -> Optional[bool]:
        return self.proportion_lock if self.proportion_lock is not None else self.lock


class VisibilityPayload(ShapeTargetPayload):
    hide: Optional[bool] = None


# ============================================
# ============ STYLE =========================
# ============================================

class OpacityPayload(ShapeTargetPayload):
    opacity: float

    @field_validator("opacity")
    @classmethod
    def _in_unit_range(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"Opacity must be between 0.0 and 1.0 (got {value})")
        return value


class BlendModePayload(ShapeTargetPayload):
    blend_mode: str

    @field_validator("blend_mode")
    @classmethod
    def _known_mode(cls, value: str) -> str:
        mode = _normalize_token(value)
        if mode not in BLEND_MODES:
            raise ValueError(f"Unsupported blend mode: {value}. Allowed: {', '.join(BLEND_MODES)}")
        return mode


class BorderRadiusPayload(ShapeTargetPayload):
    border_radius: float

    @field_validator("border_radius")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("Border radius must be non-negative")
        return value


class HorizontalConstraintPayload(ShapeTargetPayload):
    constraint: str

    @field_validator("constraint")
    @classmethod
    def _known(cls, value: str) -> str:
        constraint = value.strip().lower()
        if constraint not in HORIZONTAL_CONSTRAINTS:
            raise ValueError(f"Unsupported constraint: {value}. Allowed: {', '.join(HORIZONTAL_CONSTRAINTS)}")
        return constraint


class VerticalConstraintPayload(ShapeTargetPayload):
    constraint: str

    @field_validator("constraint")
    @classmethod
    def _known(cls, value: str) -> str:
        constraint = value.strip().lower()
        if constraint not in VERTICAL_CONSTRAINTS:
            raise ValueError(f"Unsupported constraint: {value}. Allowed: {', '.join(VERTICAL_CONSTRAINTS)}")
        return constraint


class FillPayload(ShapeTargetPayload):
    fill_color: str
    fill_opacity: float = 1.0

    @field_validator("fill_color")
    @classmethod
    def _hex(cls, value: str) -> str:
        color = normalize_color(value)
        if not _HEX_COLOR.match(color):
            raise ValueError(f"Fill color must be a hex color like #RRGGBB (got {value})")
        return color

    @field_validator("fill_opacity")
    @classmethod
    def _in_unit_range(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"Fill opacity must be between 0.0 and 1.0 (got {value})")
        return value


class ShadowPayload(ShapeTargetPayload):
    shadow_style: Literal["drop-shadow", "inner-shadow"] = "drop-shadow"
    shadow_color: str = "#000000"
    shadow_offset_x: float = 4
    shadow_offset_y: float = 4
    shadow_blur: float = 8
    shadow_spread: float = 0
    override_existing: bool = False

    @field_validator("shadow_color")
    @classmethod
    def _hex(cls, value: str) -> str:
        color = normalize_color(value)
        if not _HEX_COLOR.match(color):
            raise ValueError(f"Shadow color must be a hex color like #RRGGBB (got {value})")
        return color

    @field_validator("shadow_blur")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("Shadow blur must be non-negative")
        return value

    def describe(self) -> str:
        spread = f", {self.shadow_spread:g}px spread" if self.shadow_spread else ""
        return (
            f"{self.shadow_style} shadow ({self.shadow_color}, {self.shadow_offset_x:g}px "
            f"{self.shadow_offset_y:g}px offset, {self.shadow_blur:g}px blur{spread})"
        )


class StrokePayload(ShapeTargetPayload):
    stroke_color: str = "#000000"
    stroke_width: float = 1
    stroke_opacity: float = 1.0
    stroke_style: Literal["solid", "dashed", "dotted", "mixed"] = "solid"
    override_existing: bool = False

    @field_validator("stroke_color")
    @classmethod
    def _hex(cls, value: str) -> str:
        color = normalize_color(value)
        if not _HEX_COLOR.match(color):
            raise ValueError(f"Stroke color must be a hex color like #RRGGBB (got {value})")
        return color

    @field_validator("stroke_width")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Stroke width must be greater than 0")
        return value

    @field_validator("stroke_opacity")
    @classmethod
    def _in_unit_range(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"Stroke opacity must be between 0.0 and 1.0 (got {value})")
        return value

    def describe(self) -> str:
        opacity = f", {round(self.stroke_opacity * 100)}% opacity" if self.stroke_opacity < 1 else ""
        return f"{self.stroke_color} stroke ({self.stroke_width:g}px, {self.stroke_style}{opacity})"


class BlurPayload(ShapeTargetPayload):
    blur_value: float = 5

    @field_validator("blur_value")
    @classmethod
    def _in_range(cls, value: float) -> float:
        if not 0 <= value <= 100:
            raise ValueError(f"Blur value must be between 0 and 100 (got {value:g})")
        return value


# ============================================
# ============ ARRANGE =======================
# ============================================

class AlignHorizontalPayload(ShapeTargetPayload):
    alignment: str

    @field_validator("alignment")
    @classmethod
    def _known(cls, value: str) -> str:
        alignment = value.strip().lower()
        if alignment not in HORIZONTAL_ALIGNMENTS:
            raise ValueError(f"Unsupported alignment: {value}. Allowed: {', '.join(HORIZONTAL_ALIGNMENTS)}")
        return alignment


class AlignVerticalPayload(ShapeTargetPayload):
    alignment: str

    @field_validator("alignment")
    @classmethod
    def _known(cls, value: str) -> str:
        alignment = value.strip().lower()
        if alignment not in VERTICAL_ALIGNMENTS:
            raise ValueError(f"Unsupported alignment: {value}. Allowed: {', '.join(VERTICAL_ALIGNMENTS)}")
        return alignment


# ============================================
# ============ LAYERS & CLONE ================
# ============================================

class LayerOrderPayload(ShapeTargetPayload):
    action: str
    index: Optional[int] = None

    @field_validator("action")
    @classmethod
    def _known_action(cls, value: str) -> str:
        action = _normalize_token(value)
        if action not in LAYER_ACTIONS:
            raise ValueError(f"Unknown action: {value}. Allowed: {', '.join(LAYER_ACTIONS)}")
        return action

    @model_validator(mode='after')
    def _index_for_set_index(self) -> "LayerOrderPayload":
        if self.action == "set-index" and self.index is None:
            raise ValueError("set-index action requires an index parameter")
        return self


class ClonePayload(ShapeTargetPayload):
    offset: Optional[Point] = None
    skip_locked: bool = False
    keep_position: bool = False
    fallback: Literal["auto", "right", "below", "left", "top"] = "auto"
    max_attempts: Optional[int] = Field(default=None, ge=1)


# ============================================
# ============ PAGES =========================
# ============================================

class PageBackgroundPayload(ToolPayload):
    background_color: Optional[str] = None
    page_id: Optional[str] = None

    @model_validator(mode='after')
    def _require_color(self) -> "PageBackgroundPayload":
        if not self.background_color or not self.background_color.strip():
            raise ValueError("Background color is required")
        self.background_color = normalize_color(self.background_color)
        return self


class RenamePagePayload(ToolPayload):
    new_name: Optional[str] = None
    page_id: Optional[str] = None

    @model_validator(mode='after')
    def _require_name(self) -> "RenamePagePayload":
        if not self.new_name or not self.new_name.strip():
            raise ValueError("New page name is required")
        self.new_name = self.new_name.strip()
        return self


class CreatePagePayload(ToolPayload):
    name: Optional[str] = None
    open_after_create: bool = False


class OpenPagePayload(ToolPayload):
    page_id: Optional[str] = None
    page_name: Optional[str] = None

    @model_validator(mode='after')
    def _require_page(self) -> "OpenPagePayload":
        if not self.page_id and not (self.page_name and self.page_name.strip()):
            raise ValueError("Either page_id or page_name must be provided")
        return self
