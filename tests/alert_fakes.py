from dataclasses import replace
from datetime import UTC, datetime, timedelta

from calendar_alerts.models.domain import Alert, AlertState, AttendeeStatus
from calendar_alerts.repositories.alert_repository import AlertRepositoryError
from calendar_alerts.services.preferences_service import AlertPreferences

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


def make_alert(
    alert_id: int,
    *,
    event_id: int | None = None,
    state: AlertState = AlertState.SCHEDULED,
    begin: datetime | None = None,
    end: datetime | None = None,
    alarm: datetime | None = None,
    title: str | None = "Event",
    location: str | None = None,
    status: int = AttendeeStatus.ACCEPTED,
    all_day: bool = False,
) -> Alert:
    begin = begin or NOW + timedelta(minutes=10)
    end = end or begin + timedelta(hours=1)
    return Alert(
        alert_id=alert_id,
        event_id=event_id if event_id is not None else alert_id,
        state=state,
        alarm_time=alarm or begin - timedelta(minutes=10),
        begin_time=begin,
        end_time=end,
        minutes=10,
        title=title,
        location=location,
        description=None,
        self_attendee_status=status,
        all_day=all_day,
    )


class FakeAlertStore:
    """In-memory stand-in for the calendar_alerts table."""

    def __init__(self, alerts: list[Alert] | None = None):
        self.alerts: dict[int, Alert] = {alert.alert_id: alert for alert in alerts or []}
        self.queries: list[str] = []
        self.updates: list[tuple[int, dict]] = []
        self.fail_updates = False

    async def fetch_active_alerts(self, now: datetime) -> list[Alert]:
        self.queries.append("active")
        rows = [
            alert
            for alert in self.alerts.values()
            if alert.state in (AlertState.SCHEDULED, AlertState.FIRED) and alert.alarm_time <= now
        ]
        rows.sort(key=lambda a: (a.begin_time, a.end_time), reverse=True)
        return [replace(alert) for alert in rows]

    async def fetch_missed_alarm_times(self, now: datetime, since: datetime) -> list[datetime]:
        self.queries.append("missed")
        return sorted(
            alert.alarm_time
            for alert in self.alerts.values()
            if alert.state == AlertState.SCHEDULED
            and since < alert.alarm_time < now
            and alert.end_time >= now
        )

    async def update_alert(self, alert_id: int, **changes) -> int:
        self.updates.append((alert_id, changes))
        if self.fail_updates:
            raise AlertRepositoryError("update failed", operation="update_alert")
        alert = self.alerts[alert_id]
        for field_name, value in changes.items():
            setattr(alert, field_name, value)
        return 1

    async def dismiss_stale_alerts(self, now: datetime) -> int:
        self.queries.append("dismiss_stale")
        count = 0
        for alert in self.alerts.values():
            if alert.end_time < now and alert.state == AlertState.SCHEDULED:
                alert.state = AlertState.DISMISSED
                count += 1
        return count


class FakeNotificationSink:
    def __init__(self):
        self.posted: dict[int, object] = {}
        self.operations: list[tuple] = []

    async def notify(self, notification_id, payload):
        self.posted[notification_id] = payload
        self.operations.append(("notify", notification_id))

    async def cancel(self, notification_id):
        self.posted.pop(notification_id, None)
        self.operations.append(("cancel", notification_id))

    async def cancel_all(self):
        self.posted.clear()
        self.operations.append(("cancel_all",))


class FakePreferenceStore:
    def __init__(self, prefs: AlertPreferences | None = None, ringer_mode: str = "normal"):
        self.prefs = prefs or AlertPreferences()
        self.ringer_mode = ringer_mode
        self.loads = 0

    async def load_preferences(self) -> AlertPreferences:
        self.loads += 1
        return self.prefs

    async def get_ringer_mode(self) -> str:
        return self.ringer_mode


class FakeScheduler:
    def __init__(self):
        self.wakeups: list[datetime] = []

    async def schedule_wakeup(self, instant: datetime) -> None:
        self.wakeups.append(instant)


