"""
Unit tests for SelectionResolver and the host read helpers.

Tests:
- Source priority: explicit ids, live selection, cache, get_selected_shapes
- Cache synchronization
- Tolerance of partial or failing hosts
"""

from types import SimpleNamespace

import pytest
from host_context import find_page, page_shapes, page_size
from selection_resolver import SelectionCache, SelectionResolver, summarize_shape


class ExplodingSelectionHost:
    """Host whose selection accessor raises."""

    def __init__(self, page):
        self.current_page = page

    @property
    def selection(self):
        raise RuntimeError("selection proxy detached")


class TestResolvePriority:
    """Tests for the order sources are consulted in."""

    def test_explicit_ids_win(self, host, make_shape):
        a = make_shape("a")
        b = make_shape("b", selected=False)
        resolver = SelectionResolver(host)
        assert resolver.resolve(["b"]) == [b]
        assert resolver.resolve() == [a]

    def test_unknown_explicit_ids_are_dropped(self, host, make_shape):
        b = make_shape("b", selected=False)
        assert SelectionResolver(host).resolve(["missing", "b"]) == [b]

    def test_live_selection_updates_cache(self, host, make_shape):
        make_shape("a")
        make_shape("b")
        cache = SelectionCache()
        SelectionResolver(host, cache).resolve()
        assert cache.ids() == ["a", "b"]

    def test_cache_used_when_live_selection_empty(self, host, make_shape):
        a = make_shape("a")
        cache = SelectionCache()
        resolver = SelectionResolver(host, cache)
        resolver.resolve()
        host.selection = []
        assert resolver.resolve() == [a]

    def test_stale_cache_falls_through(self, host, page, make_shape):
        b = make_shape("b", selected=False)
        page.selected = [b]
        cache = SelectionCache()
        cache.update(["gone"])
        assert SelectionResolver(host, cache).resolve() == [b]

    def test_get_selected_shapes_fallback(self, host, page, make_shape):
        b = make_shape("b", selected=False)
        page.selected = [b]
        assert SelectionResolver(host).resolve() == [b]

    def test_nothing_selected(self, host):
        resolver = SelectionResolver(host)
        assert resolver.resolve() == []
        assert not resolver.has_valid_selection()


class TestHostTolerance:
    """Tests for hosts that expose only part of the surface."""

    def test_selection_accessor_raising(self, page, make_shape):
        b = make_shape("b", selected=False)
        page.selected = [b]
        resolver = SelectionResolver(ExplodingSelectionHost(page))
        assert resolver.resolve() == [b]

    def test_host_without_page(self):
        host = SimpleNamespace(selection=None, current_page=None)
        assert SelectionResolver(host).resolve(["a"]) == []
        assert SelectionResolver(host).resolve() == []

    def test_selection_with_none_entries(self, host, make_shape):
        a = make_shape("a")
        host.selection.append(None)
        assert SelectionResolver(host).resolve() == [a]


class TestSelectionInfo:
    """Tests for read-only summaries."""

    def test_summary_fields(self, host, rect_shape):
        info = SelectionResolver(host).read_selection_info()
        assert info == [{
            "id": "rect",
            "name": "Rect",
            "type": None,
            "x": 10,
            "y": 10,
            "width": 30,
            "height": 30,
            "rotation": 0,
            "opacity": 1.0,
        }]

    def test_non_scalar_values_are_stringified(self):
        shape = SimpleNamespace(id="s", name=["odd"])
        assert summarize_shape(shape)["name"] == "['odd']"


class TestSelectionCache:
    def test_update_drops_empty_ids(self):
        cache = SelectionCache()
        cache.update(["a", None, "", 7])
        assert cache.ids() == ["a", "7"]

    def test_reset(self):
        cache = SelectionCache()
        cache.update(["a"])
        cache.reset()
        assert cache.ids() == []


class TestPageHelpers:
    def test_page_shapes_excludes_ids(self, host, make_shape):
        make_shape("a")
        b = make_shape("b")
        assert page_shapes(host, exclude_ids={"a"}) == [b]

    def test_page_size(self, host):
        assert page_size(host) == (200.0, 200.0)

    @pytest.mark.parametrize("width,height", [(None, 100), (0, 100), ("wide", 100)])
    def test_page_size_unavailable(self, host, width, height):
        host.current_page.width = width
        host.current_page.height = height
        assert page_size(host) is None

    def test_find_page(self, host, page):
        other = host.create_page()
        assert find_page(host) is page
        assert find_page(host, "page-1") is page
        assert find_page(host, other.id) is other
        assert find_page(host, "nope") is None
