"""
Unit tests for the Rect value type.

Tests:
- Overlap (touching edges do not overlap)
- Normalization of degenerate sizes
- Clamping into a frame
- Selection bounds
"""

from types import SimpleNamespace

import pytest
from shape_geometry import Rect, collides, selection_bounds


class TestRectBasics:
    """Tests for derived edges and reading from shapes."""

    def test_edges(self):
        rect = Rect(10, 20, 30, 40)
        assert rect.right == 40
        assert rect.bottom == 60

    def test_from_shape(self):
        shape = SimpleNamespace(x=5, y=6, width=7, height=8)
        assert Rect.from_shape(shape) == Rect(5.0, 6.0, 7.0, 8.0)

    def test_from_shape_missing_fields_are_zero(self):
        shape = SimpleNamespace(x="left", width=True)
        assert Rect.from_shape(shape) == Rect(0.0, 0.0, 0.0, 0.0)

    def test_normalized_gives_minimum_size(self):
        rect = Rect(1, 2, 0, -3).normalized()
        assert rect == Rect(1, 2, 1.0, 1.0)


class TestOverlap:
    """Tests for the AABB overlap test."""

    def test_overlapping(self):
        assert Rect(0, 0, 10, 10).overlaps(Rect(5, 5, 10, 10))

    def test_contained(self):
        assert Rect(0, 0, 100, 100).overlaps(Rect(10, 10, 5, 5))

    @pytest.mark.parametrize("other", [
        Rect(10, 0, 10, 10),   # touching right edge
        Rect(0, 10, 10, 10),   # touching bottom edge
        Rect(-10, 0, 10, 10),  # touching left edge
        Rect(0, -10, 10, 10),  # touching top edge
    ])
    def test_touching_edges_do_not_overlap(self, other):
        assert not Rect(0, 0, 10, 10).overlaps(other)

    def test_overlap_needs_both_axes(self):
        # Overlaps horizontally only
        assert not Rect(0, 0, 10, 10).overlaps(Rect(5, 20, 10, 10))

    def test_collides(self):
        existing = [Rect(100, 100, 10, 10), Rect(0, 0, 10, 10)]
        assert collides(Rect(5, 5, 10, 10), existing)
        assert not collides(Rect(50, 50, 10, 10), existing)
        assert not collides(Rect(50, 50, 10, 10), [])


class TestClamp:
    """Tests for clamping into a frame."""

    def test_inside_is_unchanged(self):
        rect = Rect(10, 10, 30, 30)
        assert rect.clamped_into(200, 200) == rect

    def test_shifted_back_inside(self):
        rect = Rect(190, -5, 30, 30).clamped_into(200, 200)
        assert rect == Rect(170, 0, 30, 30)
        assert rect.fits_within(200, 200)

    def test_larger_than_frame_is_pinned_to_origin(self):
        rect = Rect(50, 50, 300, 20).clamped_into(200, 200)
        assert rect.x == 0
        assert rect.y == 50
        assert rect.width == 300

    def test_fits_within(self):
        assert Rect(0, 0, 200, 200).fits_within(200, 200)
        assert not Rect(1, 0, 200, 200).fits_within(200, 200)
        assert not Rect(-1, 0, 10, 10).fits_within(200, 200)


class TestSelectionBounds:
    """Tests for the union of shape bounds."""

    def test_union_of_shapes(self):
        shapes = [
            SimpleNamespace(x=0, y=0, width=10, height=10),
            SimpleNamespace(x=20, y=5, width=10, height=10),
        ]
        assert selection_bounds(shapes) == Rect(0, 0, 30, 15)

    def test_single_degenerate_shape(self):
        bounds = selection_bounds([SimpleNamespace(x=4, y=4, width=0, height=0)])
        assert bounds == Rect(4, 4, 1.0, 1.0)

    def test_empty(self):
        assert selection_bounds([]) is None
        assert selection_bounds([None]) is None
