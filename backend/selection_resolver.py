"""
Selection Resolver - the effective target set of a tool call

Sources are consulted in priority order and the first non-empty one wins:
explicit ids, the host's live selection, the last-known selection cache,
then the page's `get_selected_shapes` accessor.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from host_context import live_selection, lookup_shape, page_selected_shapes

logger = logging.getLogger(__name__)


class SelectionCache:
    """Last-synchronized selection ids, owned by an editing session."""

    def __init__(self) -> None:
        self._ids: List[str] = []

    def update(self, ids: Sequence[Any]) -> None:
        self._ids = [str(shape_id) for shape_id in ids if shape_id]
        logger.debug(f"🔄 Selection cache updated: {self._ids}")

    def ids(self) -> List[str]:
        return list(self._ids)

    def reset(self) -> None:
        self._ids = []


class SelectionResolver:
    def __init__(self, host: Any, cache: Optional[SelectionCache] = None) -> None:
        self.host = host
        self.cache = cache if cache is not None else SelectionCache()

    def resolve(self, explicit_ids: Optional[Sequence[str]] = None) -> List[Any]:
        if explicit_ids:
            return self._lookup_all(explicit_ids)

        live = live_selection(self.host)
        if live:
            self.cache.update([getattr(shape, "id", None) for shape in live])
            return live

        cached_ids = self.cache.ids()
        if cached_ids:
            cached = self._lookup_all(cached_ids)
            if cached:
                logger.info(f"🔁 Live selection empty; using {len(cached)} cached shape(s)")
                return cached

        fallback = page_selected_shapes(self.host)
        if fallback:
            logger.info(f"🔁 Using get_selected_shapes fallback ({len(fallback)} shape(s))")
        return fallback

    def has_valid_selection(self) -> bool:
        return len(self.resolve()) > 0

    def read_selection_info(self, explicit_ids: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
        """Read-only, serializable summaries of the resolved selection."""
        return [summarize_shape(shape) for shape in self.resolve(explicit_ids)]

    def _lookup_all(self, ids: Sequence[str]) -> List[Any]:
        shapes = []
        for shape_id in ids:
            shape = lookup_shape(self.host, shape_id)
            if shape is None:
                logger.debug(f"⚠️ Shape id {shape_id} did not resolve; dropped")
                continue
            shapes.append(shape)
        return shapes


_SUMMARY_FIELDS = ("id", "name", "type", "x", "y", "width", "height", "rotation", "opacity")


def summarize_shape(shape: Any) -> Dict[str, Any]:
    summary = {}
    for field in _SUMMARY_FIELDS:
        try:
            value = getattr(shape, field, None)
        except Exception:
            value = None
        summary[field] = value if isinstance(value, (str, int, float, bool)) or value is None else str(value)
    return summary
