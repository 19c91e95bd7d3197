"""
Rate Limiting for PrepX AI API
==============================
Implements rate limiting using slowapi (in-memory by default, Redis via
RATE_LIMIT_STORAGE_URI in production).

Rate limits are tiered:
- Default: RATE_LIMIT_PER_MINUTE per user / IP
- Auth endpoints: 5 req/min (brute force protection)
- AI operations: 10 req/min (question generation, assistant, prediction)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from prepx.core.config import settings
from prepx.core.logging_config import logger


def get_user_identifier(request: Request) -> str:
    """
    Get rate limit key based on user authentication.

    Priority:
    1. Authenticated user ID (set on request.state by the auth dependency)
    2. Service key callers
    3. IP address (for anonymous users)
    """
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"

    if request.headers.get("X-Service-Key"):
        return "service:internal"

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """JSON 429 with a Retry-After header"""
    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please slow down.",
            "detail": str(exc.detail),
            "retry_after_seconds": 60,
        },
        headers={
            "Retry-After": "60",
            "X-RateLimit-Limit": str(settings.RATE_LIMIT_PER_MINUTE),
        }
    )


def auth_rate_limit():
    """Rate limit for auth endpoints (5/min)"""
    return limiter.limit("5/minute", key_func=get_user_identifier)


def ai_operation_rate_limit():
    """Rate limit for expensive AI operations (10/min)"""
    return limiter.limit("10/minute", key_func=get_user_identifier)
