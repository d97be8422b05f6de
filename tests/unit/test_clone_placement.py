"""
Unit tests for ClonePlacementEngine.

Tests:
- Default offsets and direction order
- Overlap avoidance against existing rects and the source
- Page clamping, including the last-resort placement
- Engines without a page frame
"""

from types import SimpleNamespace

import pytest
from clone_placement import ClonePlacementEngine, PlacementOptions
from shape_geometry import Rect

SOURCE = Rect(10, 10, 30, 30)
RIGHT_SLOT = Rect(46, 16, 30, 30)
BELOW_SLOT = Rect(16, 46, 30, 30)


@pytest.fixture
def engine() -> ClonePlacementEngine:
    return ClonePlacementEngine(200, 200)


class TestOffsets:
    """Tests for the default gap between source and duplicate."""

    def test_small_source_uses_minimum(self, engine):
        assert engine.default_offsets(SOURCE) == (6.0, 6.0)

    def test_large_source_uses_ratio(self, engine):
        assert engine.default_offsets(Rect(0, 0, 200, 100)) == (12.0, 6.0)

    def test_explicit_zero_offset_allows_touching_source(self, engine):
        placed = engine.place(SOURCE, [], PlacementOptions(offset_x=0, offset_y=0))
        assert placed == Rect(40, 10, 30, 30)


class TestDirections:
    """Tests for candidate order."""

    def test_prefers_right(self, engine):
        assert engine.place(SOURCE, []) == RIGHT_SLOT

    def test_falls_back_below(self, engine):
        assert engine.place(SOURCE, [RIGHT_SLOT]) == BELOW_SLOT

    def test_fallback_option_changes_first_direction(self, engine):
        assert engine.place(SOURCE, [], PlacementOptions(fallback="below")) == BELOW_SLOT

    def test_right_and_below_blocked_avoids_both(self, engine):
        placed = engine.place(SOURCE, [RIGHT_SLOT, BELOW_SLOT])
        assert not placed.overlaps(RIGHT_SLOT)
        assert not placed.overlaps(BELOW_SLOT)
        assert not placed.overlaps(SOURCE)
        assert placed.fits_within(200, 200)

    def test_next_ring_when_first_ring_blocked(self, engine):
        placed = engine.place(SOURCE, [RIGHT_SLOT, BELOW_SLOT])
        assert placed == Rect(82, 16, 30, 30)


class TestClamping:
    """Tests for keeping placements inside the page."""

    def test_candidate_clamped_before_overlap_test(self, engine):
        # Right of the source is off-page; clamped back it overlaps the source
        source = Rect(170, 10, 30, 30)
        assert engine.place(source, []) == Rect(170, 46, 30, 30)

    def test_last_resort_when_attempts_exhausted(self, engine):
        placed = engine.place(SOURCE, [RIGHT_SLOT, BELOW_SLOT], PlacementOptions(max_attempts=1))
        assert placed == Rect(82, 16, 30, 30)

    def test_ten_blockers_single_attempt_stays_on_page(self, engine):
        blockers = [Rect(x, y, 60, 60) for x in (0, 70, 140) for y in (0, 70, 140)] + [Rect(40, 40, 120, 120)]
        assert len(blockers) == 10
        placed = engine.place(Rect(100, 100, 40, 40), blockers, PlacementOptions(max_attempts=1))
        assert placed.fits_within(200, 200)

    @pytest.mark.parametrize("source", [
        Rect(0, 0, 30, 30),
        Rect(185, 185, 30, 30),
        Rect(-50, 90, 30, 30),
        Rect(150, 150, 50, 50),
    ])
    def test_always_inside_page(self, engine, source):
        blockers = [Rect(0, 0, 200, 100)]
        placed = engine.place(source, blockers, PlacementOptions(max_attempts=1))
        assert placed.fits_within(200, 200)

    def test_source_larger_than_page_is_pinned(self, engine):
        placed = engine.place(Rect(10, 10, 400, 30), [])
        assert placed.x == 0


class TestFrame:
    """Tests for engines built from the host page."""

    def test_without_frame_nothing_is_clamped(self):
        engine = ClonePlacementEngine()
        assert not engine.has_frame
        assert engine.place(Rect(1000, 10, 30, 30), []) == Rect(1036, 16, 30, 30)

    def test_for_host_reads_page_size(self):
        host = SimpleNamespace(current_page=SimpleNamespace(width=300, height=150))
        engine = ClonePlacementEngine.for_host(host)
        assert engine.has_frame
        assert (engine.page_width, engine.page_height) == (300.0, 150.0)

    def test_for_host_without_page_size(self):
        host = SimpleNamespace(current_page=SimpleNamespace())
        assert not ClonePlacementEngine.for_host(host).has_frame

    def test_deterministic(self, engine):
        existing = [RIGHT_SLOT]
        assert engine.place(SOURCE, existing) == engine.place(SOURCE, existing)
