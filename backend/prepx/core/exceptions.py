"""
Custom Exceptions for PrepX AI
==============================

Raise these from services instead of generic Exception so the API layer can
render a consistent error body and status code.

Usage:
    from prepx.core.exceptions import ResourceNotFoundError, ConflictError

    if not bookmark:
        raise ResourceNotFoundError("Bookmark", bookmark_id)

Every exception renders as:
    {"success": false, "error": {"code": ..., "message": ..., "details": {...}}}
"""

from typing import Optional, Any, Dict


class PrepXError(Exception):
    """Base exception for all PrepX errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(PrepXError):
    """Caller could not be authenticated"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(PrepXError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="NOT_AUTHORIZED", details=details)


class UpgradeRequiredError(AuthorizationError):
    """Feature needs a higher subscription tier"""

    def __init__(self, message: str, required_tier: str = "pro", **extra: Any):
        super().__init__(message, details={"upgrade_required": True, "required_tier": required_tier, **extra})
        self.code = "UPGRADE_REQUIRED"


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(PrepXError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: Optional[str] = None, message: Optional[str] = None):
        if message is None:
            message = (
                f"{resource_type} with ID '{resource_id}' not found"
                if resource_id else f"{resource_type} not found"
            )
        super().__init__(
            message,
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(PrepXError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class ConflictError(PrepXError):
    """Resource already exists"""

    status_code = 409

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFLICT", details=details)


class LimitExceededError(PrepXError):
    """Daily or monthly usage limit reached"""

    status_code = 429

    def __init__(self, message: str, usage: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="LIMIT_EXCEEDED", details={"usage": usage or {}})


# ============================================
# AI/Claude Errors
# ============================================

class AIServiceError(PrepXError):
    """AI service (Claude) error"""

    status_code = 502

    def __init__(self, message: str):
        super().__init__(message, code="AI_SERVICE_ERROR")


class AIResponseParseError(AIServiceError):
    """Failed to parse AI response"""

    status_code = 500

    def __init__(self, message: str = "Failed to parse AI response"):
        super().__init__(message)
        self.code = "AI_PARSE_ERROR"


# ============================================
# External HTTP services (TTS, render VPS, OAuth)
# ============================================

class ExternalServiceError(PrepXError):
    """Upstream HTTP service failed"""

    status_code = 502

    def __init__(self, service: str, message: str):
        super().__init__(f"{service} failed: {message}", code="EXTERNAL_SERVICE_ERROR")
        self.details["service"] = service


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: PrepXError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict(),
        **{k: v for k, v in error.details.items() if k not in ("resource_type", "resource_id", "field")}
    }
