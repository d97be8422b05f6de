"""Page-level handlers: background color, rename, create and open."""

import copy
import logging
from typing import Any, Dict, Optional

from host_context import current_page, find_page, find_page_by_name
from shape_capabilities import read_field
from tool_errors import MISSING_PAGE, ToolExecutionError, ToolResponse
from tool_payloads import CreatePagePayload, OpenPagePayload, PageBackgroundPayload, RenamePagePayload
from tool_support import committed, parse_payload, tool_handler
from undo_redo import Inverter, UndoEntry, declare_non_invertible, register_inverter

logger = logging.getLogger(__name__)

CHANGE_PAGE_BACKGROUND = "change_page_background"
RENAME_PAGE = "rename_page"
CREATE_PAGE = "create_page"
OPEN_PAGE = "open_page"

declare_non_invertible(CREATE_PAGE, "page creation")


def _require_page(host: Any, page_id: Optional[str]) -> Any:
    page = find_page(host, page_id)
    if page is None:
        label = f"Page {page_id}" if page_id else "Current page"
        raise ToolExecutionError({"code": MISSING_PAGE, "message": f"{label} not found", "details": {"page_id": page_id}})
    return page


def _page_root(page: Any) -> Any:
    root = read_field(page, "root")
    return root if root else None


def _solid_fill(color: str) -> Dict[str, Any]:
    return {"fill_color": color, "fill_opacity": 1}


# ============================================
# ============ BACKGROUND ====================
# ============================================

@register_inverter(CHANGE_PAGE_BACKGROUND)
class PageBackgroundInverter(Inverter):
    def undo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        root = self._root(host, entry.undo_data["page_id"])
        root.fills = copy.deepcopy(entry.undo_data["previous_fills"])
        return {"page_id": entry.undo_data["page_id"]}

    def redo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        root = self._root(host, entry.undo_data["page_id"])
        root.fills = [_solid_fill(entry.undo_data["new_color"])]
        return {"page_id": entry.undo_data["page_id"]}

    def _root(self, host: Any, page_id: str) -> Any:
        root = _page_root(_require_page(host, page_id))
        if root is None:
            raise ToolExecutionError("Page root shape not found")
        return root


@tool_handler(CHANGE_PAGE_BACKGROUND)
async def change_page_background_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Set the background color of a page (the current page unless `page_id` is given).

    The background is the fill list of the page's root shape. Undo data is
    `{page_id, previous_fills, new_color}`.
    """
    params = parse_payload(PageBackgroundPayload, payload)
    page = _require_page(session.host, params.page_id)
    root = _page_root(page)
    if root is None:
        return ToolResponse.failure("Page root shape not found", payload={"page_id": read_field(page, "id") or params.page_id})

    previous_fills = copy.deepcopy(read_field(root, "fills") or [])
    root.fills = [_solid_fill(params.background_color)]

    page_id = str(read_field(page, "id"))
    page_name = read_field(page, "name") or page_id
    message = f"Changed background of '{page_name}' to {params.background_color}"
    entry = UndoEntry(
        action_type=CHANGE_PAGE_BACKGROUND,
        undo_data={"page_id": page_id, "previous_fills": previous_fills, "new_color": params.background_color},
        description=message,
    )
    return committed(session, entry, message, {"page_id": page_id, "background_color": params.background_color})


# ============================================
# ============ RENAME ========================
# ============================================

@register_inverter(RENAME_PAGE)
class RenamePageInverter(Inverter):
    def undo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        page = _require_page(host, entry.undo_data["page_id"])
        page.name = entry.undo_data["old_name"]
        return {"page_id": entry.undo_data["page_id"]}

    def redo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        page = _require_page(host, entry.undo_data["page_id"])
        page.name = entry.undo_data["new_name"]
        return {"page_id": entry.undo_data["page_id"]}


@tool_handler(RENAME_PAGE)
async def rename_page_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    params = parse_payload(RenamePagePayload, payload)
    page = _require_page(session.host, params.page_id)

    page_id = str(read_field(page, "id"))
    old_name = read_field(page, "name")
    page.name = params.new_name

    message = f"Renamed page '{old_name}' to '{params.new_name}'"
    entry = UndoEntry(
        action_type=RENAME_PAGE,
        undo_data={"page_id": page_id, "old_name": old_name, "new_name": params.new_name},
        description=message,
    )
    return committed(session, entry, message, {"page_id": page_id, "name": params.new_name})


# ============================================
# ============ CREATE ========================
# ============================================

@tool_handler(CREATE_PAGE)
async def create_page_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Create a page, optionally naming and opening it.

    Page creation cannot be undone from here: the entry is recorded so the
    history stays in step, but undo and redo only log a warning.
    """
    params = parse_payload(CreatePagePayload, payload)
    create = getattr(session.host, "create_page", None)
    if not callable(create):
        raise ToolExecutionError({"code": MISSING_PAGE, "message": "Host cannot create pages", "details": {}})

    page = create()
    if page is None:
        raise ToolExecutionError({"code": MISSING_PAGE, "message": "Page creation returned nothing", "details": {}})
    if params.name:
        page.name = params.name
    if params.open_after_create:
        session.host.open_page(page)

    page_id = str(read_field(page, "id"))
    page_name = read_field(page, "name")
    message = f"Created page '{page_name}'" + (" and opened it" if params.open_after_create else "")
    entry = UndoEntry(
        action_type=CREATE_PAGE,
        undo_data={"page_id": page_id, "name": page_name},
        description=message,
    )
    return committed(session, entry, message, {"page_id": page_id, "name": page_name, "opened": params.open_after_create})


# ============================================
# ============ OPEN ==========================
# ============================================

def _open(host: Any, page: Any) -> None:
    open_page = getattr(host, "open_page", None)
    if not callable(open_page):
        raise ToolExecutionError({"code": MISSING_PAGE, "message": "Host cannot open pages", "details": {}})
    open_page(page)


@register_inverter(OPEN_PAGE)
class OpenPageInverter(Inverter):
    def undo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        _open(host, _require_page(host, entry.undo_data["previous_page_id"]))
        return {"page_id": entry.undo_data["previous_page_id"]}

    def redo(self, host: Any, entry: UndoEntry) -> Optional[Dict[str, Any]]:
        _open(host, _require_page(host, entry.undo_data["target_page_id"]))
        return {"page_id": entry.undo_data["target_page_id"]}


@tool_handler(OPEN_PAGE)
async def open_page_tool(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Switch the editor to another page, found by `page_id` or else by `page_name`.

    Undo reopens the page that was current before the call.
    """
    params = parse_payload(OpenPagePayload, payload)
    if params.page_id:
        page = _require_page(session.host, params.page_id)
    else:
        page = find_page_by_name(session.host, params.page_name)
        if page is None:
            raise ToolExecutionError({
                "code": MISSING_PAGE,
                "message": f"Page '{params.page_name}' not found",
                "details": {"page_name": params.page_name},
            })

    previous = current_page(session.host)
    _open(session.host, page)

    target_name = read_field(page, "name")
    message = f'Opened page "{target_name}"'
    entry = UndoEntry(
        action_type=OPEN_PAGE,
        undo_data={
            "previous_page_id": str(read_field(previous, "id")),
            "previous_page_name": read_field(previous, "name"),
            "target_page_id": str(read_field(page, "id")),
            "target_page_name": target_name,
        },
        description=message,
    )
    return committed(session, entry, message, {"page_id": entry.undo_data["target_page_id"], "name": target_name})
