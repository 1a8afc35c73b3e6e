"""
Health check endpoints with database pool monitoring.
"""

import time

from fastapi import APIRouter, Depends

from reengagement.config import Settings, get_settings
from reengagement.db.pool import db_health_check

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "reengagement-notifications"}


@router.get("/readyz")
async def readyz(settings: Settings = Depends(get_settings)):
    """
    Readiness check: database pool and configuration completeness.
    """
    checks = {}
    overall_ok = True

    # 1) Database pool
    t0 = time.time()
    try:
        db_health = await db_health_check()
        is_healthy = db_health.get("healthy", False)

        checks["database"] = {
            "ok": is_healthy,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }

        for key in ("pool_size", "pool_available", "connection_time_ms", "warnings"):
            if key in db_health:
                checks["database"][key] = db_health[key]

        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")

        overall_ok = overall_ok and is_healthy

    except Exception as e:
        checks["database"] = {
            "ok": False,
            "error": f"{type(e).__name__}: {e}",
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = False

    # 2) Configuration
    missing = settings.missing_required()
    checks["configuration"] = {
        "ok": not missing,
        "issues": [f"{name} not set" for name in missing] or None,
        "environment": settings.environment,
    }
    overall_ok = overall_ok and not missing

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
