"""
Unit tests for ToolExecutionError and the response envelope.
"""

from tool_errors import (
    API_ERROR,
    MISSING_FILLS,
    ToolExecutionError,
    ToolResponse,
    api_error,
    missing_capability_error,
    no_selection_error,
)


class TestToolExecutionError:
    def test_structured_payload(self):
        error = ToolExecutionError({"code": "X", "message": "Something broke", "details": {"a": 1}})
        assert (error.code, error.message, error.details) == ("X", "Something broke", {"a": 1})
        assert str(error) == "Something broke"

    def test_plain_message_is_api_error(self):
        error = ToolExecutionError("host went away")
        assert error.code == API_ERROR
        assert error.payload == {"code": API_ERROR, "message": "host went away", "details": {}}

    def test_code_used_when_message_empty(self):
        assert str(no_selection_error()) == "NO_SELECTION"

    def test_to_response(self):
        response = missing_capability_error(MISSING_FILLS, shapes_without_fills=[{"id": "a", "name": "A"}]).to_response()
        assert response == ToolResponse(
            success=False,
            message="MISSING_FILLS",
            payload={"shapes_without_fills": [{"id": "a", "name": "A"}], "error_code": "MISSING_FILLS"},
        )

    def test_api_error_uses_first_failure(self):
        failed = [{"id": "a", "name": "A", "error": "read-only"}, {"id": "b", "name": "B", "error": "gone"}]
        error = api_error("set_opacity", failed)
        assert error.action_name == "set_opacity"
        assert error.details["error"] == "read-only"
        assert error.to_response().payload["failed_shapes"] == failed


class TestToolResponse:
    def test_helpers(self):
        assert ToolResponse.ok("done").model_dump() == {"success": True, "message": "done", "payload": None}
        assert ToolResponse.failure("nope", payload={"k": 1}).success is False
