"""
Unit Tests for custom exceptions and the error response body
"""
from prepx.core.exceptions import (
    PrepXError,
    AuthorizationError,
    UpgradeRequiredError,
    ResourceNotFoundError,
    ValidationError,
    ConflictError,
    LimitExceededError,
    AIServiceError,
    AIResponseParseError,
    ExternalServiceError,
    error_response,
)


class TestStatusCodes:
    """Each error class maps to one HTTP status"""

    def test_status_codes(self):
        assert PrepXError("boom").status_code == 500
        assert AuthorizationError().status_code == 403
        assert ResourceNotFoundError("Bookmark", "b1").status_code == 404
        assert ValidationError("bad").status_code == 400
        assert ConflictError("dup").status_code == 409
        assert LimitExceededError("slow down").status_code == 429
        assert AIServiceError("down").status_code == 502
        assert AIResponseParseError().status_code == 500
        assert ExternalServiceError("TTS", "timeout").status_code == 502

    def test_upgrade_required_is_authorization_error(self):
        exc = UpgradeRequiredError("Pro voices need Pro", voice_id="v1")

        assert isinstance(exc, AuthorizationError)
        assert exc.status_code == 403
        assert exc.code == "UPGRADE_REQUIRED"
        assert exc.details == {"upgrade_required": True, "required_tier": "pro", "voice_id": "v1"}


class TestResourceNotFound:

    def test_default_message_with_id(self):
        exc = ResourceNotFoundError("Ethics Session", "abc")

        assert exc.message == "Ethics Session with ID 'abc' not found"
        assert exc.code == "ETHICS_SESSION_NOT_FOUND"

    def test_default_message_without_id(self):
        assert ResourceNotFoundError("Subscription").message == "Subscription not found"

    def test_custom_message(self):
        exc = ResourceNotFoundError("Subscription", message="No subscription found")
        assert exc.message == "No subscription found"


class TestErrorResponse:
    """error_response() renders the API error body"""

    def test_basic_shape(self):
        body = error_response(ValidationError("Message is required", field="message"))

        assert body["success"] is False
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["error"]["message"] == "Message is required"
        assert body["error"]["details"] == {"field": "message"}
        # bookkeeping keys are not spread to the top level
        assert "field" not in body

    def test_details_spread_to_top_level(self):
        body = error_response(LimitExceededError("Daily limit reached", usage={"used": 5, "limit": 5}))
        assert body["usage"] == {"used": 5, "limit": 5}

    def test_upgrade_flags_spread(self):
        body = error_response(UpgradeRequiredError("Upgrade to Pro"))

        assert body["upgrade_required"] is True
        assert body["required_tier"] == "pro"

    def test_not_found_hides_resource_keys(self):
        body = error_response(ResourceNotFoundError("Bookmark", "b1"))

        assert "resource_type" not in body
        assert "resource_id" not in body
        assert body["error"]["details"]["resource_id"] == "b1"

    def test_external_service_name(self):
        body = error_response(ExternalServiceError("Manim", "connection refused"))

        assert body["service"] == "Manim"
        assert "Manim failed" in body["error"]["message"]
