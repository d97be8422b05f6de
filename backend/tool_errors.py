"""
Tool Errors - Structured failures for editing handlers

This module provides the error type raised inside tool handlers and the
uniform response envelope every handler returns to the host.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

# Error taxonomy surfaced in ToolResponse.message
NO_SELECTION = "NO_SELECTION"
API_ERROR = "API_ERROR"
INVALID_PARAMETER = "invalid_parameter"
MISSING_BORDER_RADIUS = "MISSING_BORDER_RADIUS"
MISSING_BOUNDS = "MISSING_BOUNDS"
MISSING_POSITION = "MISSING_POSITION"
MISSING_RESIZE = "MISSING_RESIZE"
MISSING_ROTATION = "MISSING_ROTATION"
MISSING_PROPORTION_LOCK = "MISSING_PROPORTION_LOCK"
MISSING_CONSTRAINTS = "MISSING_CONSTRAINTS"
MISSING_FILLS = "MISSING_FILLS"
MISSING_CLONE = "MISSING_CLONE"
MISSING_PAGE = "MISSING_PAGE"
NEED_MORE_SHAPES = "NEED_MORE_SHAPES"
NO_GROUPS_SELECTED = "NO_GROUPS_SELECTED"


class ToolResponse(BaseModel):
    """Uniform `{success, message, payload}` envelope returned by every handler."""

    success: bool
    message: str = ""
    payload: Optional[Dict[str, Any]] = None

    @classmethod
    def ok(cls, message: str = "", payload: Optional[Dict[str, Any]] = None) -> "ToolResponse":
        return cls(success=True, message=message, payload=payload)

    @classmethod
    def failure(cls, message: str, payload: Optional[Dict[str, Any]] = None) -> "ToolResponse":
        return cls(success=False, message=message, payload=payload)


class ToolExecutionError(Exception):
    """
    Specialized exception for tool execution failures.

    Carries a structured payload so the caller can explain the failure.
    Expected payload shape: { code: str, message: str, details?: dict }
    """

    def __init__(self, payload: Any, action_name: str | None = None):
        self.action_name = action_name

        # Normalize payload and capture canonical fields
        if isinstance(payload, dict):
            self.code: str = str(payload.get("code", API_ERROR))
            self.message: str = str(payload.get("message", ""))
            self.details: Dict[str, Any] = payload.get("details", {}) or {}
            normalized_payload = payload
        else:
            self.code = API_ERROR
            self.message = str(payload)
            self.details = {}
            normalized_payload = {"code": self.code, "message": self.message, "details": self.details}

        self.payload = normalized_payload

        # Exception text is simply the structured message (or the code when empty)
        text = self.message if self.message else self.code
        super().__init__(text)

    def to_response(self) -> ToolResponse:
        """Convert the error into a failure envelope for the host."""
        payload = dict(self.details)
        payload.setdefault("error_code", self.code)
        return ToolResponse.failure(str(self), payload=payload)


def no_selection_error(**details: Any) -> ToolExecutionError:
    return ToolExecutionError({"code": NO_SELECTION, "details": details})


def missing_capability_error(code: str, **details: Any) -> ToolExecutionError:
    return ToolExecutionError({"code": code, "details": details})


def api_error(action_name: str, failed_shapes: List[Dict[str, Any]], error: Optional[str] = None) -> ToolExecutionError:
    """Build the API_ERROR raised when every targeted shape rejected a write."""
    first_error = error or (failed_shapes[0].get("error") if failed_shapes else None)
    return ToolExecutionError(
        {
            "code": API_ERROR,
            "details": {
                "action_name": action_name,
                "failed_shapes": failed_shapes,
                "error": first_error,
            },
        },
        action_name=action_name,
    )


def format_validation_error(exc: ValidationError) -> str:
    """Return the first readable reason from a pydantic ValidationError."""
    try:
        errors = exc.errors()
        if not errors:
            return str(exc)
        first = errors[0]
        msg = str(first.get("msg", ""))
        if msg.startswith("Value error, "):
            return msg[len("Value error, "):]
        loc = ".".join(str(part) for part in first.get("loc", ()) if part != "__root__")
        return f"{loc}: {msg}" if loc else msg
    except Exception:
        return str(exc)
