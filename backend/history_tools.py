"""Undo/redo entry points exposed as handlers."""

import logging
from typing import Any, Dict, Optional

from tool_errors import ToolResponse
from tool_support import tool_handler

logger = logging.getLogger(__name__)


@tool_handler("undo_last_action")
async def undo_last_action(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Invert the newest recorded action and move it to the redo stack."""
    response = session.undo.undo(session.host)
    if not response.success:
        logger.info(f"↩️ Undo unavailable: {response.message}")
    return response


@tool_handler("redo_last_action")
async def redo_last_action(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Re-apply the newest undone action and move it back to the undo stack."""
    response = session.undo.redo(session.host)
    if not response.success:
        logger.info(f"↪️ Redo unavailable: {response.message}")
    return response


@tool_handler("reset_undo_redo_stacks")
async def reset_undo_redo_stacks(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
    session.undo.reset()
    logger.info("🧹 Undo/redo stacks cleared")
    return ToolResponse.ok("Undo/redo history cleared")
