"""
Generic background worker runner.

Reads the desired job name from CLI args or the WORKER_JOB environment
variable and delegates to the matching job.

Each job starts its own AlertWorker, so only one of them (or the HTTP
service) may run against a given database at a time. The one-shot trigger
jobs are for use while the service is down; a running service takes the
same triggers through POST /triggers.
"""

import asyncio
import os
import signal
import sys
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

from calendar_alerts.config import settings
from calendar_alerts.db.pool import db_pool
from calendar_alerts.infrastructure.observability.logging import get_logger, setup_logging
from calendar_alerts.jobs.alert_worker import AlertWorker
from calendar_alerts.models.domain import Trigger, TriggerKind
from calendar_alerts.repositories.alert_repository import AlertRepository
from calendar_alerts.services.notification_sink import RedisNotificationSink
from calendar_alerts.services.preferences_service import RedisPreferenceStore
from calendar_alerts.services.redis_client import redis_client

logger = get_logger(__name__)

JobCoroutine = Callable[[], Awaitable[None]]


@asynccontextmanager
async def running_alert_worker():
    """Open the store and Redis, start a worker, and tear everything down afterwards."""
    await db_pool.initialize()
    try:
        await redis_client.initialize()
        try:
            worker = AlertWorker(
                AlertRepository, RedisNotificationSink(), RedisPreferenceStore()
            )
            worker.start()
            try:
                yield worker
            finally:
                await worker.stop()
        finally:
            await redis_client.close()
    finally:
        await db_pool.close()


async def run_alert_service() -> None:
    """Long-running alert service: recover on boot, then serve scheduled wake-ups."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            logger.debug("Signal handlers unsupported on this platform", signal=sig.name)

    async with running_alert_worker() as worker:
        worker.submit(Trigger(kind=TriggerKind.BOOT_COMPLETED.value))
        await stop_event.wait()
        logger.info("Alert service shutting down", pending=worker.queue_depth)


def _one_shot(kind: TriggerKind) -> JobCoroutine:
    async def _job() -> None:
        async with running_alert_worker() as worker:
            result = await worker.submit_and_wait(Trigger(kind=kind.value))
            logger.info("One-shot trigger finished", kind=kind.value, result=result)

    _job.__name__ = f"run_{kind.value}"
    return _job


JOB_REGISTRY: dict[str, JobCoroutine] = {
    "alert_service": run_alert_service,
    "dismiss_old_reminders": _one_shot(TriggerKind.DISMISS_OLD_REMINDERS),
    "time_changed": _one_shot(TriggerKind.TIME_CHANGED),
    "event_reminder": _one_shot(TriggerKind.EVENT_REMINDER),
}


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", "alert_service").strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    """Run the requested background job."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting background worker", job=name)
    await JOB_REGISTRY[name]()


def main() -> None:
    """CLI entrypoint."""
    setup_logging(log_level=settings.LOG_LEVEL)
    job_name = _resolve_job_name()
    asyncio.run(run_worker(job_name))


if __name__ == "__main__":
    main()
