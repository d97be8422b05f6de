"""
Host Context - the read surface of the host design document

The host (selection proxy, current page, page list) is owned elsewhere and
passed into every entry point. These helpers are the only place the core
reads it, and they tolerate hosts that expose only part of the surface.
"""

import logging
from typing import Any, Iterable, List, Optional, Protocol, Sequence, Tuple

logger = logging.getLogger(__name__)


class PageProxy(Protocol):
    id: str
    name: str
    width: float
    height: float

    def get_shape_by_id(self, shape_id: str) -> Any: ...

    def find_shapes(self) -> Sequence[Any]: ...


class HostContext(Protocol):
    """Structural type of the host object graph the core is driven by.

    Optional members (`get_selected_shapes` on the page, `pages`,
    `create_page`, `open_page`, `group`, `ungroup`) are looked up at call time.
    """

    selection: Optional[Sequence[Any]]
    current_page: Optional[PageProxy]


def _as_shape_list(value: Any) -> List[Any]:
    if value is None or isinstance(value, (str, bytes, dict)):
        return []
    try:
        return [shape for shape in value if shape is not None]
    except TypeError:
        return []


def current_page(host: Any) -> Any:
    try:
        return getattr(host, "current_page", None)
    except Exception as e:
        logger.warning(f"❌ Current page access failed: {e}")
        return None


def lookup_shape(host: Any, shape_id: str) -> Any:
    """Resolve a shape id on the current page; None when it does not resolve."""
    page = current_page(host)
    getter = getattr(page, "get_shape_by_id", None) if page is not None else None
    if not callable(getter):
        return None
    try:
        return getter(shape_id)
    except Exception as e:
        logger.warning(f"❌ Shape lookup failed for {shape_id}: {e}")
        return None


def live_selection(host: Any) -> List[Any]:
    try:
        return _as_shape_list(getattr(host, "selection", None))
    except Exception as e:
        logger.warning(f"❌ Selection access failed: {e}")
        return []


def page_selected_shapes(host: Any) -> List[Any]:
    page = current_page(host)
    getter = getattr(page, "get_selected_shapes", None) if page is not None else None
    if not callable(getter):
        return []
    try:
        return _as_shape_list(getter())
    except Exception as e:
        logger.warning(f"❌ get_selected_shapes failed: {e}")
        return []


def page_shapes(host: Any, exclude_ids: Iterable[str] = ()) -> List[Any]:
    """All shapes on the current page except `exclude_ids`."""
    excluded = set(exclude_ids)
    page = current_page(host)
    finder = getattr(page, "find_shapes", None) if page is not None else None
    if not callable(finder):
        return []
    try:
        shapes = _as_shape_list(finder())
    except Exception as e:
        logger.warning(f"❌ Failed to collect page shapes: {e}")
        return []
    return [shape for shape in shapes if getattr(shape, "id", None) and shape.id not in excluded]


def page_size(host: Any) -> Optional[Tuple[float, float]]:
    """(width, height) of the current page when the host exposes them."""
    page = current_page(host)
    if page is None:
        return None
    width = getattr(page, "width", None)
    height = getattr(page, "height", None)
    if isinstance(width, (int, float)) and isinstance(height, (int, float)) and width > 0 and height > 0:
        return float(width), float(height)
    return None


def find_page(host: Any, page_id: Optional[str] = None) -> Any:
    """The page with `page_id`, or the current page when no id is given."""
    if not page_id:
        return current_page(host)
    page = current_page(host)
    if page is not None and getattr(page, "id", None) == page_id:
        return page
    for candidate in _as_shape_list(getattr(host, "pages", None)):
        if getattr(candidate, "id", None) == page_id:
            return candidate
    return None


def shape_ref(shape: Any) -> dict:
    """The `{id, name}` reference used in response payloads."""
    return {"id": str(getattr(shape, "id", "")), "name": getattr(shape, "name", None)}


def find_page_by_name(host: Any, name: str) -> Any:
    """First page whose name matches `name`, ignoring case and surrounding spaces."""
    wanted = name.strip().lower()
    for candidate in [current_page(host)] + _as_shape_list(getattr(host, "pages", None)):
        page_name = getattr(candidate, "name", None)
        if isinstance(page_name, str) and page_name.strip().lower() == wanted:
            return candidate
    return None
