"""
Deep Health Check Endpoints

Endpoints:
- /health/live  - Basic liveness (app is running)
- /health/ready - Readiness check (database reachable, env configured)
- /health/deep  - Detailed diagnostics including the AI key and render/RAG services
"""

from fastapi import APIRouter, HTTPException, status
from datetime import datetime
from typing import Dict, Any
import asyncio
import time

from prepx.core.config import settings
from prepx.core.database import ping
from prepx.core.exceptions import ExternalServiceError
from prepx.core.logging_config import logger
from prepx.utils.claude_client import claude_client
from prepx.utils.http_client import http_client


router = APIRouter(prefix="/health", tags=["Health Checks"])

APP_VERSION = "1.0.0"


async def check_database() -> Dict[str, Any]:
    """Check database connectivity and that the users table exists"""
    start = time.time()
    try:
        _, tables_ok = await ping()
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "connection": "ok",
            "tables_ready": tables_ok,
        }
    except Exception as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "connection": "failed",
            "tables_ready": False,
            "error": str(e),
        }


def check_ai() -> Dict[str, Any]:
    if claude_client.is_configured:
        return {"status": "healthy", "message": "Claude API key configured"}
    return {"status": "degraded", "message": "ANTHROPIC_API_KEY not set, AI features use fallbacks"}


async def check_external(name: str, base_url: str) -> Dict[str, Any]:
    start = time.time()
    try:
        await http_client.get_json(name, f"{base_url}/health", timeout=3.0)
        return {"status": "healthy", "latency_ms": round((time.time() - start) * 1000, 2)}
    except (ExternalServiceError, ValueError) as e:
        return {"status": "degraded", "error": str(e)}


def check_critical_env_vars() -> Dict[str, Any]:
    """Verify the settings the app cannot run without"""
    critical_vars = {
        "DATABASE_URL": settings.DATABASE_URL,
        "SECRET_KEY": settings.SECRET_KEY,
        "JWT_SECRET_KEY": settings.JWT_SECRET_KEY,
    }
    important_vars = {
        "ANTHROPIC_API_KEY": settings.ANTHROPIC_API_KEY,
        "INTERNAL_SERVICE_KEY": settings.INTERNAL_SERVICE_KEY,
        "TTS_API_KEY": settings.TTS_API_KEY,
    }

    missing = [name for name, value in critical_vars.items() if not value or value in ["CHANGE_ME", "your-secret-key"]]
    warnings = [name for name, value in important_vars.items() if not value]

    if missing:
        return {
            "status": "unhealthy",
            "missing_critical": missing,
            "warnings": warnings,
            "message": f"Missing critical env vars: {', '.join(missing)}"
        }
    if warnings:
        return {
            "status": "degraded",
            "missing_critical": [],
            "warnings": warnings,
            "message": f"Some env vars not configured: {', '.join(warnings)}"
        }
    return {
        "status": "healthy",
        "missing_critical": [],
        "warnings": [],
        "message": "All critical environment variables configured"
    }


@router.get("/live")
async def liveness_check():
    """Liveness probe - 200 while the process is alive"""
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
        "app": settings.APP_NAME,
        "version": APP_VERSION
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness probe - 200 only when the database answers and its tables exist.

    Load balancers should use this endpoint rather than /health.
    """
    db_check = await check_database()
    env_check = check_critical_env_vars()

    is_ready = db_check.get("status") == "healthy" and db_check.get("tables_ready", False)
    response = {
        "status": "ready" if is_ready else "not_ready",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {
            "database": db_check,
            "environment": env_check,
        }
    }

    if not is_ready:
        logger.warning(f"[HealthCheck] Readiness check failed: {response}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=response
        )
    return response


@router.get("/deep")
async def deep_health_check():
    """Full diagnostics for monitoring dashboards"""
    start_time = time.time()

    db_check, manim_check, revideo_check, rag_check = await asyncio.gather(
        check_database(),
        check_external("manim", settings.VPS_MANIM_URL),
        check_external("revideo", settings.VPS_REVIDEO_URL),
        check_external("rag", settings.VPS_RAG_URL),
    )
    checks = {
        "database": db_check,
        "ai": check_ai(),
        "manim": manim_check,
        "revideo": revideo_check,
        "rag": rag_check,
        "environment": check_critical_env_vars(),
    }

    statuses = [c.get("status", "unknown") for c in checks.values()]
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    response = {
        "status": overall,
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.ENVIRONMENT,
        "version": APP_VERSION,
        "total_check_time_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }

    if overall == "unhealthy":
        logger.error(f"[HealthCheck] Deep check unhealthy: {response}")
    return response
