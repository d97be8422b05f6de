"""Axis-aligned rectangle value type and the overlap/clamp math used by clone placement."""

from dataclasses import dataclass
from typing import Any, Iterable, Optional


def _number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    return default


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @classmethod
    def from_shape(cls, shape: Any) -> "Rect":
        """Read a rect from a shape proxy; missing or non-numeric fields count as 0."""
        return cls(
            x=_number(getattr(shape, "x", None)),
            y=_number(getattr(shape, "y", None)),
            width=_number(getattr(shape, "width", None)),
            height=_number(getattr(shape, "height", None)),
        )

    def normalized(self) -> "Rect":
        """Degenerate rects still occupy at least one unit on each axis."""
        return Rect(self.x, self.y, max(self.width, 1.0), max(self.height, 1.0))

    def overlaps(self, other: "Rect") -> bool:
        # Touching edges do not overlap
        return not (
            self.right <= other.x
            or self.x >= other.right
            or self.bottom <= other.y
            or self.y >= other.bottom
        )

    def union(self, other: "Rect") -> "Rect":
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        width = max(self.right, other.right) - x
        height = max(self.bottom, other.bottom) - y
        return Rect(x, y, max(width, 1.0), max(height, 1.0))

    def fits_within(self, frame_width: float, frame_height: float) -> bool:
        return self.x >= 0 and self.y >= 0 and self.right <= frame_width and self.bottom <= frame_height

    def clamped_into(self, frame_width: float, frame_height: float) -> "Rect":
        """Shift the rect inside `[0, frame_width] x [0, frame_height]` without resizing it.

        When the rect is larger than the frame on an axis it is pinned to 0 on that axis.
        """
        return Rect(
            _clamp_axis(self.x, self.width, frame_width),
            _clamp_axis(self.y, self.height, frame_height),
            self.width,
            self.height,
        )


def _clamp_axis(origin: float, size: float, limit: float) -> float:
    upper = limit - size
    if upper <= 0:
        return 0.0
    return min(max(origin, 0.0), upper)


def collides(candidate: Rect, existing: Iterable[Rect]) -> bool:
    return any(candidate.overlaps(rect) for rect in existing)


def selection_bounds(shapes: Iterable[Any]) -> Optional[Rect]:
    """Union of the bounds of `shapes`, or None when there is nothing to measure."""
    bounds: Optional[Rect] = None
    for shape in shapes:
        if shape is None:
            continue
        rect = Rect.from_shape(shape)
        if bounds is None:
            bounds = rect.normalized()
        else:
            bounds = bounds.union(rect)
    return bounds
