from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from prepx.core.config import settings
from prepx.core.database import init_db, close_db
from prepx.core.exceptions import PrepXError, LimitExceededError, UpgradeRequiredError, error_response
from prepx.core.logging_config import logger
from prepx.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
)
from prepx.core.rate_limiter import limiter, rate_limit_exceeded_handler
from prepx.api.v1.router import api_router
from slowapi.errors import RateLimitExceeded
import prepx.models  # noqa: F401  Import models so metadata knows about them

APP_VERSION = "1.0.0"


def validate_critical_config():
    """Validate critical configuration at startup - fail fast if missing"""
    errors = []
    warnings = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")

    if not settings.SECRET_KEY or settings.SECRET_KEY == "CHANGE_ME":
        errors.append("SECRET_KEY is not set or using default value")

    if not settings.JWT_SECRET_KEY or settings.JWT_SECRET_KEY == "CHANGE_ME":
        errors.append("JWT_SECRET_KEY is not set or using default value")

    # AI features degrade to canned fallbacks without a key
    if not settings.ANTHROPIC_API_KEY:
        warnings.append("ANTHROPIC_API_KEY not set - AI features will use fallbacks")

    if not settings.INTERNAL_SERVICE_KEY:
        warnings.append("INTERNAL_SERVICE_KEY not set - referral reward hook is disabled")

    if errors:
        for err in errors:
            logger.critical(f"[Startup] CRITICAL: {err}")
        raise RuntimeError(f"Missing critical configuration: {', '.join(errors)}")

    for warn in warnings:
        logger.warning(f"[Startup] WARNING: {warn}")

    logger.info("[Startup] Critical configuration validated")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info("=" * 60)
    logger.info("Starting PrepX AI backend...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"API Version: {settings.API_VERSION}")
    logger.info("=" * 60)

    validate_critical_config()

    try:
        await init_db()
        logger.info("[Startup] Database tables ready")
    except Exception as e:
        logger.error(f"[Startup] Failed to create database tables: {e}")

    yield

    logger.info("Shutting down PrepX AI backend...")
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="AI-assisted UPSC civil services preparation platform",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False  # Prevent 307 redirects that break CORS
)

# Rate limiter state and exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Middleware (order matters - last added runs first)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


@app.exception_handler(PrepXError)
async def prepx_exception_handler(request: Request, exc: PrepXError):
    if exc.status_code >= 500:
        logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    elif isinstance(exc, (LimitExceededError, UpgradeRequiredError)):
        logger.log_quota_event(exc.code, request.url.path, exc.details)
    else:
        logger.info(f"[{exc.code}] {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_response(exc))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "message": str(exc) if settings.DEBUG else "An error occurred"
        }
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to PrepX AI",
        "version": APP_VERSION,
        "docs": "/docs",
        "health": "/health"
    }


app.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")


def run():
    import uvicorn
    uvicorn.run(
        "prepx.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )


if __name__ == "__main__":
    run()
