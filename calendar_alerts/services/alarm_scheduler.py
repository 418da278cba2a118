# calendar_alerts/services/alarm_scheduler.py
"""
Wake-up scheduling on the running event loop.

Each wake-up submits an event_reminder trigger for its alarm time to the
alert worker once the instant has passed.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Protocol

from calendar_alerts.infrastructure.observability.logging import get_logger
from calendar_alerts.models.domain import Trigger, TriggerKind

logger = get_logger(__name__)


class AlarmScheduler(Protocol):
    async def schedule_wakeup(self, instant: datetime) -> None: ...


class AsyncioAlarmScheduler:
    """Timer-based scheduler; one pending timer per alarm instant."""

    def __init__(
        self,
        submit: Callable[[Trigger], Any],
        clock: Callable[[], datetime] | None = None,
    ):
        self._submit = submit
        self._clock = clock or (lambda: datetime.now(UTC))
        self._handles: dict[datetime, asyncio.TimerHandle] = {}

    @property
    def pending(self) -> list[datetime]:
        return sorted(self._handles)

    async def schedule_wakeup(self, instant: datetime) -> None:
        loop = asyncio.get_running_loop()
        delay = max(0.0, (instant - self._clock()).total_seconds())

        existing = self._handles.pop(instant, None)
        if existing is not None:
            existing.cancel()

        self._handles[instant] = loop.call_later(delay, self._fire, instant)
        logger.debug("Wake-up scheduled", alarm_time=instant.isoformat(), delay_s=round(delay, 3))

    def _fire(self, instant: datetime) -> None:
        self._handles.pop(instant, None)
        trigger = Trigger(kind=TriggerKind.EVENT_REMINDER.value, alarm_time=instant)
        try:
            self._submit(trigger)
        except Exception:
            logger.exception("Failed to submit reminder trigger", alarm_time=instant.isoformat())

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        count = len(self._handles)
        self._handles.clear()
        if count:
            logger.info("Pending wake-ups cancelled", count=count)
