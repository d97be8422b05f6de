"""
Tool Router - dispatch host messages to editing handlers

Messages arrive as `{type, message_id, payload}`. Each is routed to the
handler registered for its `ClientQueryType` and the resulting envelope is
sent back through the injected `send_message` callable as
`{source, type, message_id, success, message, payload}`.
"""

import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from arrange_tools import (
    align_horizontal_tool,
    align_vertical_tool,
    center_alignment_tool,
    distribute_horizontal_tool,
    distribute_vertical_tool,
)
from clone_tool import clone_selection_tool
from editing_session import EditingSession
from group_tools import group_selection_tool, ungroup_selection_tool
from history_tools import redo_last_action, reset_undo_redo_stacks, undo_last_action
from layer_tools import set_layer_order_tool, set_layout_z_index_tool
from page_tools import change_page_background_tool, create_page_tool, open_page_tool, rename_page_tool
from style_tools import (
    apply_blur_tool,
    apply_fill_tool,
    apply_shadow_tool,
    apply_stroke_tool,
    set_constraints_horizontal_tool,
    set_constraints_vertical_tool,
    set_selection_blend_mode_tool,
    set_selection_border_radius_tool,
    set_selection_opacity_tool,
)
from toggle_tools import (
    toggle_selection_lock_tool,
    toggle_selection_proportion_lock_tool,
    toggle_selection_visibility_tool,
)
from tool_errors import ToolResponse
from transform_tools import move_selection_tool, resize_tool, rotate_tool, set_selection_bounds_tool

logger = logging.getLogger(__name__)

MESSAGE_SOURCE = "editcore"

SendMessage = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class ClientQueryType(str, Enum):
    MOVE_SELECTION = "move_selection"
    RESIZE_SELECTION = "resize_selection"
    ROTATE_SELECTION = "rotate_selection"
    TOGGLE_SELECTION_LOCK = "toggle_selection_lock"
    TOGGLE_SELECTION_PROPORTION_LOCK = "toggle_selection_proportion_lock"
    TOGGLE_SELECTION_VISIBILITY = "toggle_selection_visibility"
    SET_SELECTION_OPACITY = "set_selection_opacity"
    SET_SELECTION_BLEND_MODE = "set_selection_blend_mode"
    SET_SELECTION_BORDER_RADIUS = "set_selection_border_radius"
    SET_SELECTION_BOUNDS = "set_selection_bounds"
    SET_CONSTRAINTS_HORIZONTAL = "set_constraints_horizontal"
    SET_CONSTRAINTS_VERTICAL = "set_constraints_vertical"
    SET_LAYER_ORDER = "set_layer_order"
    SET_LAYOUT_Z_INDEX = "set_layout_z_index"
    CLONE_SELECTION = "clone_selection"
    APPLY_FILL = "apply_fill"
    APPLY_SHADOW = "apply_shadow"
    CHANGE_PAGE_BACKGROUND = "change_page_background"
    RENAME_PAGE = "rename_page"
    CREATE_PAGE = "create_page"
    OPEN_PAGE = "open_page"
    APPLY_STROKE = "apply_stroke"
    APPLY_BLUR = "apply_blur"
    ALIGN_HORIZONTAL = "align_horizontal"
    ALIGN_VERTICAL = "align_vertical"
    CENTER_ALIGNMENT = "center_alignment"
    DISTRIBUTE_HORIZONTAL = "distribute_horizontal"
    DISTRIBUTE_VERTICAL = "distribute_vertical"
    GROUP_SELECTION = "group_selection"
    UNGROUP_SELECTION = "ungroup_selection"
    UNDO_LAST_ACTION = "undo_last_action"
    REDO_LAST_ACTION = "redo_last_action"
    RESET_UNDO_REDO_STACKS = "reset_undo_redo_stacks"
    SELECTION_CHANGED = "selection_changed"


HANDLERS = {
    ClientQueryType.MOVE_SELECTION: move_selection_tool,
    ClientQueryType.RESIZE_SELECTION: resize_tool,
    ClientQueryType.ROTATE_SELECTION: rotate_tool,
    ClientQueryType.TOGGLE_SELECTION_LOCK: toggle_selection_lock_tool,
    ClientQueryType.TOGGLE_SELECTION_PROPORTION_LOCK: toggle_selection_proportion_lock_tool,
    ClientQueryType.TOGGLE_SELECTION_VISIBILITY: toggle_selection_visibility_tool,
    ClientQueryType.SET_SELECTION_OPACITY: set_selection_opacity_tool,
    ClientQueryType.SET_SELECTION_BLEND_MODE: set_selection_blend_mode_tool,
    ClientQueryType.SET_SELECTION_BORDER_RADIUS: set_selection_border_radius_tool,
    ClientQueryType.SET_SELECTION_BOUNDS: set_selection_bounds_tool,
    ClientQueryType.SET_CONSTRAINTS_HORIZONTAL: set_constraints_horizontal_tool,
    ClientQueryType.SET_CONSTRAINTS_VERTICAL: set_constraints_vertical_tool,
    ClientQueryType.SET_LAYER_ORDER: set_layer_order_tool,
    ClientQueryType.SET_LAYOUT_Z_INDEX: set_layout_z_index_tool,
    ClientQueryType.CLONE_SELECTION: clone_selection_tool,
    ClientQueryType.APPLY_FILL: apply_fill_tool,
    ClientQueryType.APPLY_SHADOW: apply_shadow_tool,
    ClientQueryType.CHANGE_PAGE_BACKGROUND: change_page_background_tool,
    ClientQueryType.RENAME_PAGE: rename_page_tool,
    ClientQueryType.CREATE_PAGE: create_page_tool,
    ClientQueryType.OPEN_PAGE: open_page_tool,
    ClientQueryType.APPLY_STROKE: apply_stroke_tool,
    ClientQueryType.APPLY_BLUR: apply_blur_tool,
    ClientQueryType.ALIGN_HORIZONTAL: align_horizontal_tool,
    ClientQueryType.ALIGN_VERTICAL: align_vertical_tool,
    ClientQueryType.CENTER_ALIGNMENT: center_alignment_tool,
    ClientQueryType.DISTRIBUTE_HORIZONTAL: distribute_horizontal_tool,
    ClientQueryType.DISTRIBUTE_VERTICAL: distribute_vertical_tool,
    ClientQueryType.GROUP_SELECTION: group_selection_tool,
    ClientQueryType.UNGROUP_SELECTION: ungroup_selection_tool,
    ClientQueryType.UNDO_LAST_ACTION: undo_last_action,
    ClientQueryType.REDO_LAST_ACTION: redo_last_action,
    ClientQueryType.RESET_UNDO_REDO_STACKS: reset_undo_redo_stacks,
}


class ToolRouter:
    def __init__(self, session: EditingSession, send_message: SendMessage):
        self.session = session
        self.send_message = send_message

    async def handle_message(self, message: Dict[str, Any]) -> Optional[ToolResponse]:
        """Dispatch one host message and send the reply; returns the envelope sent."""
        msg_type = message.get("type")
        logger.info(f"🔍 Message received - Type: '{msg_type}', Keys: {list(message.keys())}")

        try:
            query_type = ClientQueryType(msg_type)
        except ValueError:
            return await self._handle_unknown(message)

        if query_type is ClientQueryType.SELECTION_CHANGED:
            self._handle_selection_changed(message)
            return None

        handler = HANDLERS[query_type]
        response = await handler(self.session, message.get("payload") or {})
        await self._reply(query_type.value, message.get("message_id"), response)
        return response

    def _handle_selection_changed(self, message: Dict[str, Any]) -> None:
        payload = message.get("payload") or {}
        ids = payload.get("selection_ids") or payload.get("selectionIds") or payload.get("shape_ids") or []
        self.session.selection_cache.update(ids)
        logger.info(f"🎯 Selection changed: {len(ids)} shape(s)")

    async def _handle_unknown(self, message: Dict[str, Any]) -> ToolResponse:
        msg_type = message.get("type")
        logger.warning(f"⚠️ Unknown message type: {msg_type}")
        response = ToolResponse.failure(f"Unknown message type: {msg_type}")
        await self._reply(str(msg_type), message.get("message_id"), response)
        return response

    async def _reply(self, msg_type: str, message_id: Any, response: ToolResponse) -> None:
        reply = {
            "source": MESSAGE_SOURCE,
            "type": msg_type,
            "message_id": message_id,
            **response.model_dump(),
        }
        try:
            result = self.send_message(reply)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"❌ Failed to send reply for {msg_type}: {e}")
