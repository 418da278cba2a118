# calendar_alerts/services/missed_alarm_service.py
"""
Missed alarm recovery.

After a reboot or a clock jump the scheduler may have lost wake-ups for
alerts that are now overdue. Find them and ask for the wake-ups again.
"""

from datetime import UTC, datetime, timedelta

from calendar_alerts.config import settings
from calendar_alerts.infrastructure.observability.logging import get_logger
from calendar_alerts.repositories.alert_repository import AlertStore
from calendar_alerts.services.alarm_scheduler import AlarmScheduler

logger = get_logger(__name__)


async def reschedule_missed_alarms(
    store: AlertStore,
    scheduler: AlarmScheduler,
    now: datetime | None = None,
    lookback: timedelta | None = None,
) -> int:
    """
    Re-arm wake-ups for scheduled alerts that should already have fired.

    Only alerts newer than the lookback window whose event has not ended are
    considered. Alarm times come back sorted, so equal times are adjacent and
    only the first of each run is scheduled.

    Returns:
        Number of wake-ups requested
    """
    now = now or datetime.now(UTC)
    if lookback is None:
        lookback = timedelta(hours=settings.MISSED_ALARM_LOOKBACK_HOURS)

    alarm_times = await store.fetch_missed_alarm_times(now, now - lookback)
    logger.debug("Missed alarms found", count=len(alarm_times))

    scheduled = 0
    previous: datetime | None = None
    for alarm_time in alarm_times:
        if alarm_time == previous:
            continue
        logger.warning("Rescheduling missed alarm", alarm_time=alarm_time.isoformat())
        await scheduler.schedule_wakeup(alarm_time)
        previous = alarm_time
        scheduled += 1

    return scheduled
