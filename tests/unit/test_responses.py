"""
Tests for response helper functions and the response-v2 envelope.
"""

import json

from toolgate_mcp.core.responses import (
    ErrorCode,
    ErrorType,
    ToolResponse,
    action_denied_error,
    correlation_id_var,
    error_response,
    internal_error,
    not_found_error,
    sanitize_error_message,
    success_response,
)


class TestToolResponse:
    """Tests for the ToolResponse dataclass."""

    def test_default_meta_has_version(self):
        response = ToolResponse(success=True)
        assert response.meta == {"version": "response-v2"}
        assert response.data == {}

    def test_to_json_is_minified(self):
        response = ToolResponse(success=True, data={"a": 1})
        text = response.to_json()
        assert " " not in text
        assert json.loads(text)["data"] == {"a": 1}


class TestSuccessResponse:
    """Tests for the success_response helper function."""

    def test_data_argument_merges_with_kwargs(self):
        response = success_response({"a": 1}, b=2)
        assert response.success is True
        assert response.error is None
        assert response.data == {"a": 1, "b": 2}

    def test_warnings_and_request_id(self):
        response = success_response(warnings=["careful"], request_id="req_1")
        assert response.meta["warnings"] == ["careful"]
        assert response.meta["request_id"] == "req_1"

    def test_request_id_from_context(self):
        token = correlation_id_var.set("req_ctx")
        try:
            response = success_response()
        finally:
            correlation_id_var.reset(token)
        assert response.meta["request_id"] == "req_ctx"

    def test_no_request_id_outside_context(self):
        assert "request_id" not in success_response().meta


class TestErrorResponses:
    """Tests for error_response and the specialized helpers."""

    def test_error_response_defaults_to_internal(self):
        response = error_response("boom")
        assert response.success is False
        assert response.error == "boom"
        assert response.data["error_code"] == "INTERNAL_ERROR"
        assert response.data["error_type"] == "internal"

    def test_not_found_error(self):
        response = not_found_error("Tool", "manage_milestone")
        assert response.error == "Tool 'manage_milestone' not found"
        assert response.data["error_code"] == ErrorCode.NOT_FOUND.value
        assert response.data["error_type"] == ErrorType.NOT_FOUND.value
        assert response.data["resource_id"] == "manage_milestone"

    def test_action_denied_error(self):
        response = action_denied_error("manage_milestone", "delete")
        assert response.data["error_code"] == "ACTION_DENIED"
        assert response.data["error_type"] == "authorization"
        assert response.data["action"] == "delete"
        assert "not allowed" in response.error

    def test_internal_error_mentions_reference(self):
        response = internal_error(request_id="req_abc")
        assert "req_abc" in response.data["remediation"]
        assert response.meta["request_id"] == "req_abc"


class TestSanitizeErrorMessage:
    """Handler exceptions never leak their message."""

    def test_known_types(self):
        assert sanitize_error_message(ValueError("secret")) == "Invalid value provided"
        assert sanitize_error_message(KeyError("secret")) == "Required argument or key not found"

    def test_unknown_type_names_class_only(self):
        message = sanitize_error_message(RuntimeError("/etc/secret"))
        assert message == "An internal error occurred (RuntimeError)"


class TestErrorTaxonomy:
    """Every error code and type is produced by a response helper."""

    def test_error_codes(self):
        assert {code.value for code in ErrorCode} == {
            "NOT_FOUND",
            "ACTION_DENIED",
            "INTERNAL_ERROR",
        }

    def test_error_types(self):
        assert {kind.value for kind in ErrorType} == {
            "authorization",
            "not_found",
            "internal",
        }
