# app/routes/health.py
"""
Health check endpoints with cache monitoring.
"""

import time

from fastapi import APIRouter

from app.config import settings
from app.services.infrastructure.redis_client import cache_store

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "meeting-planner"}


@router.get("/readyz")
async def readyz():
    """
    Readiness check for the cache and required configuration.
    """
    checks = {}
    overall_ok = True

    # 1) Redis health check
    t0 = time.time()
    try:
        redis_ok = await cache_store.ping()
        checks["redis"] = {
            "ok": bool(redis_ok),
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = overall_ok and bool(redis_ok)
    except Exception as e:
        checks["redis"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}
        overall_ok = False

    # 2) Configuration checks
    config_issues = []
    if not settings.JWT_SECRET:
        config_issues.append("JWT_SECRET not set")
    if not settings.GOOGLE_MAPS_API_KEY:
        config_issues.append("GOOGLE_MAPS_API_KEY not set")

    checks["configuration"] = {
        "ok": not config_issues,
        "issues": config_issues or None,
        "environment": settings.environment,
    }
    overall_ok = overall_ok and not config_issues

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
