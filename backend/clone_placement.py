"""
Clone Placement - where to put a duplicate on the page

The engine is a pure function of its inputs: the source rect, the rects
already on the page, the page frame captured at construction and the
placement options. It never touches the host.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple

from host_context import page_size
from shape_geometry import Rect, collides

logger = logging.getLogger(__name__)

Direction = Literal["right", "below", "left", "top"]
Fallback = Literal["auto", "right", "below", "left", "top"]

MIN_OFFSET = 6.0
OFFSET_RATIO = 0.06
DEFAULT_MAX_ATTEMPTS = 6

DIRECTION_ORDERS: Dict[str, Tuple[Direction, ...]] = {
    "auto": ("right", "below", "left", "top"),
    "right": ("right", "below", "left", "top"),
    "below": ("below", "right", "left", "top"),
    "left": ("left", "below", "right", "top"),
    "top": ("top", "right", "below", "left"),
}


@dataclass(frozen=True)
class PlacementOptions:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    offset_x: Optional[float] = None
    offset_y: Optional[float] = None
    fallback: Fallback = "auto"


class ClonePlacementEngine:
    """Computes a non-overlapping, page-clamped rect for a duplicate of `source`.

    Candidates are generated around the source in the direction order of the
    `fallback` option, one ring per attempt. Every candidate is clamped into the
    page first and then tested against the existing rects and the source itself.
    If nothing fits, a last-resort rect to the right is returned, still clamped
    into the page.
    """

    def __init__(
        self,
        page_width: Optional[float] = None,
        page_height: Optional[float] = None,
        min_offset: float = MIN_OFFSET,
        offset_ratio: float = OFFSET_RATIO,
    ) -> None:
        self.page_width = page_width
        self.page_height = page_height
        self.min_offset = min_offset
        self.offset_ratio = offset_ratio

    @classmethod
    def for_host(cls, host: Any, min_offset: float = MIN_OFFSET, offset_ratio: float = OFFSET_RATIO) -> "ClonePlacementEngine":
        """Build an engine framed by the host's current page bounds."""
        size = page_size(host)
        width, height = size if size else (None, None)
        return cls(width, height, min_offset=min_offset, offset_ratio=offset_ratio)

    @property
    def has_frame(self) -> bool:
        return bool(self.page_width) and bool(self.page_height)

    def default_offsets(self, source: Rect) -> Tuple[float, float]:
        offset_x = max(self.min_offset, float(round(source.width * self.offset_ratio)))
        offset_y = max(self.min_offset, float(round(source.height * self.offset_ratio)))
        return offset_x, offset_y

    def clamp(self, rect: Rect) -> Rect:
        if not self.has_frame:
            return rect
        return rect.clamped_into(self.page_width, self.page_height)

    def in_frame(self, rect: Rect) -> bool:
        if not self.has_frame:
            return True
        return rect.fits_within(self.page_width, self.page_height)

    def place(self, source: Rect, existing: Iterable[Rect], options: Optional[PlacementOptions] = None) -> Rect:
        opts = options or PlacementOptions()
        normalized = source.normalized()
        default_x, default_y = self.default_offsets(normalized)
        offset_x = max(opts.offset_x, 0.0) if opts.offset_x is not None else default_x
        offset_y = max(opts.offset_y, 0.0) if opts.offset_y is not None else default_y
        order = DIRECTION_ORDERS.get(opts.fallback, DIRECTION_ORDERS["auto"])
        max_attempts = max(int(opts.max_attempts or 1), 1)

        # The duplicate must not land on its own source either
        blockers: List[Rect] = [normalized] + [rect.normalized() for rect in existing]

        for attempt in range(max_attempts):
            for direction in order:
                candidate = self.clamp(_candidate(normalized, direction, offset_x, offset_y, attempt))
                if not self.in_frame(candidate):
                    continue
                if not collides(candidate, blockers):
                    logger.debug(f"📐 Clone placement found: {direction} (attempt {attempt + 1}) at ({candidate.x}, {candidate.y})")
                    return candidate

        last_resort = Rect(
            normalized.right + offset_x + max_attempts * (normalized.width + offset_x),
            normalized.y + offset_y,
            normalized.width,
            normalized.height,
        )
        placed = self.clamp(last_resort)
        logger.warning(f"⚠️ No free slot after {max_attempts} attempts; using last-resort placement at ({placed.x}, {placed.y})")
        return placed


def _candidate(source: Rect, direction: Direction, offset_x: float, offset_y: float, attempt: int) -> Rect:
    horizontal_step = offset_x + source.width
    vertical_step = offset_y + source.height

    if direction == "right":
        return Rect(source.right + offset_x + attempt * horizontal_step, source.y + offset_y, source.width, source.height)
    if direction == "below":
        return Rect(source.x + offset_x, source.bottom + offset_y + attempt * vertical_step, source.width, source.height)
    if direction == "left":
        return Rect(source.x - source.width - offset_x - attempt * horizontal_step, source.y + offset_y, source.width, source.height)
    return Rect(source.x + offset_x, source.y - source.height - offset_y - attempt * vertical_step, source.width, source.height)
