# calendar_alerts/main.py
"""
HTTP entrypoint: owns the lifecycle of the DB pool, Redis and the alert worker.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from calendar_alerts.config import settings
from calendar_alerts.db.pool import db_pool
from calendar_alerts.infrastructure.observability.logging import get_logger, setup_logging
from calendar_alerts.jobs.alert_worker import AlertWorker
from calendar_alerts.models.domain import Trigger, TriggerKind
from calendar_alerts.repositories.alert_repository import AlertRepository
from calendar_alerts.routes import health, triggers
from calendar_alerts.services.notification_sink import RedisNotificationSink
from calendar_alerts.services.preferences_service import RedisPreferenceStore
from calendar_alerts.services.redis_client import redis_client

setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    startup_tasks = []

    try:
        logger.info("Initializing database pool")
        await db_pool.initialize()
        startup_tasks.append("database_pool")

        logger.info("Initializing Redis connection")
        await redis_client.initialize()
        startup_tasks.append("redis")

        worker = AlertWorker(AlertRepository, RedisNotificationSink(), RedisPreferenceStore())
        worker.start()
        app.state.alert_worker = worker
        startup_tasks.append("alert_worker")

        # Process start is treated like a boot: recover missed alarms and redraw
        worker.submit(Trigger(kind=TriggerKind.BOOT_COMPLETED.value))

        logger.info("All services initialized successfully", services=startup_tasks)

    except Exception as e:
        logger.error("Failed to initialize services", error=str(e), completed_tasks=startup_tasks)

        if "redis" in startup_tasks:
            await redis_client.close()
        if "database_pool" in startup_tasks:
            await db_pool.close()

        raise

    yield

    logger.info("Application shutting down")

    # Drain the worker first, it still needs the store and Redis
    try:
        await app.state.alert_worker.stop()
    except Exception as e:
        logger.error("Error stopping alert worker", error=str(e))

    await redis_client.close()
    await db_pool.close()

    logger.info("All services closed")


app = FastAPI(
    title="Calendar Alerts",
    description="Calendar alert reconciliation and notification service",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(triggers.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )

    return response
