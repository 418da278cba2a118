# calendar_alerts/routes/health.py
"""
Health check endpoints covering the alert store, Redis and the alert worker.
"""

import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from calendar_alerts.db.pool import db_health_check
from calendar_alerts.services.redis_client import redis_client

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "calendar-alerts"}


@router.get("/readyz")
async def readyz(request: Request):
    """Readiness check with all dependencies."""
    checks = {}
    overall_ok = True

    # 1) Redis
    t0 = time.time()
    try:
        redis_ok = await redis_client.ping()
        checks["redis"] = {"ok": bool(redis_ok), "latency_ms": round((time.time() - t0) * 1000, 1)}
        overall_ok = overall_ok and bool(redis_ok)
    except Exception as e:
        checks["redis"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}
        overall_ok = False

    # 2) Alert store
    t0 = time.time()
    db_health = await db_health_check()
    is_healthy = db_health.get("healthy", False)
    checks["database"] = {"ok": is_healthy, "latency_ms": round((time.time() - t0) * 1000, 1)}
    if "pool_stats" in db_health:
        checks["database"]["pool_stats"] = db_health["pool_stats"]
    if not is_healthy:
        checks["database"]["error"] = db_health.get("error", "Database unhealthy")
    overall_ok = overall_ok and is_healthy

    # 3) Alert worker
    worker = getattr(request.app.state, "alert_worker", None)
    worker_ok = worker is not None and worker.is_running
    checks["alert_worker"] = {
        "ok": worker_ok,
        "queue_depth": worker.queue_depth if worker is not None else 0,
        "processed": worker.processed_count if worker is not None else 0,
    }
    overall_ok = overall_ok and worker_ok

    return JSONResponse(
        status_code=200 if overall_ok else 503,
        content={"overall_ok": overall_ok, "checks": checks},
    )
