"""
Alert worker.

A single asyncio task that owns every read-modify-write of alert state and
every notification change. Triggers are queued FIFO and each one runs to
completion before the next starts; the submitter gets a completion signal
once its trigger is done.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from calendar_alerts.config import settings
from calendar_alerts.infrastructure.observability.logging import get_logger, log_trigger_processed
from calendar_alerts.models.domain import Trigger, TriggerKind
from calendar_alerts.repositories.alert_repository import AlertStore
from calendar_alerts.services.alarm_scheduler import AlarmScheduler, AsyncioAlarmScheduler
from calendar_alerts.services.alert_notification_service import (
    dismiss_old_alerts,
    update_alert_notification,
)
from calendar_alerts.services.missed_alarm_service import reschedule_missed_alarms
from calendar_alerts.services.notification_sink import NotificationSink
from calendar_alerts.services.preferences_service import PreferenceStore

logger = get_logger(__name__)

CompletionCallback = Callable[[bool], Any]


class AlertWorkerError(Exception):
    """Custom exception for alert worker lifecycle problems."""

    def __init__(self, message: str, operation: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


@dataclass(slots=True)
class _QueuedTrigger:
    trigger: Trigger
    done: asyncio.Future
    on_complete: CompletionCallback | None = None


_STOP = object()


class AlertWorker:
    """Serial trigger processor for the alert pipeline."""

    def __init__(
        self,
        store: AlertStore,
        sink: NotificationSink,
        preferences: PreferenceStore,
        scheduler: AlarmScheduler | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
        queue_size: int | None = None,
    ):
        self.store = store
        self.sink = sink
        self.preferences = preferences
        self.clock = clock or (lambda: datetime.now(UTC))
        self.scheduler = scheduler or AsyncioAlarmScheduler(self.submit, clock=self.clock)
        self._queue_size = settings.ALERT_WORKER_QUEUE_SIZE if queue_size is None else queue_size
        self._queue: asyncio.Queue | None = None
        self._task: asyncio.Task | None = None
        self._stopping = False
        self.processed_count = 0

        self._handlers: dict[TriggerKind, Callable[[Trigger], Awaitable[bool]]] = {
            TriggerKind.BOOT_COMPLETED: self._handle_time_changed,
            TriggerKind.TIME_CHANGED: self._handle_time_changed,
            TriggerKind.DISMISS_OLD_REMINDERS: self._handle_dismiss_old_reminders,
            TriggerKind.EVENT_REMINDER: self._handle_event_reminder,
            TriggerKind.LOCALE_CHANGED: self._handle_locale_changed,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def queue_depth(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def start(self) -> None:
        """Start the consumer task on the running loop."""
        if self.is_running:
            raise AlertWorkerError("Alert worker already running", operation="start")
        if self._stopping:
            raise AlertWorkerError("Alert worker was stopped", operation="start", recoverable=False)

        self._queue = asyncio.Queue(maxsize=self._queue_size)
        self._task = asyncio.create_task(self._run(), name="alert-worker")
        logger.info("Alert worker started", queue_size=self._queue_size)

    async def stop(self) -> None:
        """Finish everything already queued, then stop."""
        if self._task is None or self._stopping:
            return

        self._stopping = True
        if isinstance(self.scheduler, AsyncioAlarmScheduler):
            self.scheduler.cancel_all()

        await self._queue.put(_STOP)
        await self._task
        logger.info("Alert worker stopped", processed=self.processed_count)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(
        self, trigger: Trigger, on_complete: CompletionCallback | None = None
    ) -> asyncio.Future:
        """
        Queue a trigger.

        Returns:
            Future resolved with the trigger's result once it has been processed
        """
        if self._queue is None or self._stopping:
            raise AlertWorkerError("Alert worker is not accepting triggers", operation="submit")

        done = asyncio.get_running_loop().create_future()
        try:
            self._queue.put_nowait(_QueuedTrigger(trigger, done, on_complete))
        except asyncio.QueueFull as e:
            raise AlertWorkerError(
                "Alert worker queue is full", operation="submit", recoverable=True
            ) from e

        logger.debug("Trigger queued", kind=trigger.kind, depth=self._queue.qsize())
        return done

    async def submit_and_wait(self, trigger: Trigger) -> bool:
        return await self.submit(trigger)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is _STOP:
                    return
                await self._process(item)
            finally:
                self._queue.task_done()

    async def _process(self, item: _QueuedTrigger) -> None:
        result = False
        start = time.perf_counter()
        try:
            result = await self.process_trigger(item.trigger)
        except Exception:
            logger.exception(
                "Trigger processing failed", kind=item.trigger.kind, quiet=item.trigger.quiet
            )
        finally:
            self.processed_count += 1
            log_trigger_processed(
                item.trigger.kind,
                result,
                round((time.perf_counter() - start) * 1000, 2),
                quiet=item.trigger.quiet,
            )
            self._complete(item, result)

    def _complete(self, item: _QueuedTrigger, result: bool) -> None:
        if not item.done.done():
            item.done.set_result(result)
        if item.on_complete is not None:
            try:
                item.on_complete(result)
            except Exception:
                logger.exception("Trigger completion callback failed", kind=item.trigger.kind)

    async def process_trigger(self, trigger: Trigger) -> bool:
        """Dispatch one trigger by kind. Unknown kinds are logged and dropped."""
        logger.debug(
            "Processing trigger",
            kind=trigger.kind,
            quiet=trigger.quiet,
            alarm_time=trigger.alarm_time.isoformat() if trigger.alarm_time else None,
        )

        kind = TriggerKind.parse(trigger.kind)
        if kind is None:
            logger.warning("Invalid trigger kind", kind=trigger.kind)
            return False

        return await self._handlers[kind](trigger)

    async def _alerts_enabled(self) -> bool:
        prefs = await self.preferences.load_preferences()
        if not prefs.alerts_enabled:
            logger.debug("Alert preference is off, clearing notifications")
            await self.sink.cancel_all()
        return prefs.alerts_enabled

    async def _update_notifications(self, quiet: bool) -> bool:
        return await update_alert_notification(
            self.store, self.sink, self.preferences, quiet=quiet, now=self.clock()
        )

    async def _handle_time_changed(self, trigger: Trigger) -> bool:
        if not await self._alerts_enabled():
            return True
        await reschedule_missed_alarms(self.store, self.scheduler, now=self.clock())
        return await self._update_notifications(quiet=False)

    async def _handle_dismiss_old_reminders(self, trigger: Trigger) -> bool:
        # Stale cleanup is a store write, not a render; it runs even with alerts off
        await dismiss_old_alerts(self.store, now=self.clock())
        return await self._update_notifications(quiet=False)

    async def _handle_event_reminder(self, trigger: Trigger) -> bool:
        return await self._update_notifications(quiet=trigger.quiet)

    async def _handle_locale_changed(self, trigger: Trigger) -> bool:
        return await self._update_notifications(quiet=False)
