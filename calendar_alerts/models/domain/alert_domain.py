# calendar_alerts/models/domain/alert_domain.py
"""
Alert Domain Models
Rows of the calendar_alerts table, the per-pass notification info derived
from them, and the trigger messages consumed by the alert worker.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum

# Reserved notification id for the expired-events digest.
EXPIRED_GROUP_NOTIFICATION_ID = 0
# Replacement id for an alert whose hash lands on the digest id.
COLLISION_NOTIFICATION_ID = 2**31 - 1


class AlertState(IntEnum):
    """Values of calendar_alerts.state."""

    SCHEDULED = 0
    FIRED = 1
    DISMISSED = 2


class AttendeeStatus(IntEnum):
    """Values of calendar_alerts.self_attendee_status."""

    NONE = 0
    ACCEPTED = 1
    DECLINED = 2
    INVITED = 3
    TENTATIVE = 4


class TriggerKind(str, Enum):
    """Trigger kinds the alert worker knows how to dispatch."""

    BOOT_COMPLETED = "boot_completed"
    TIME_CHANGED = "time_changed"
    EVENT_REMINDER = "event_reminder"
    LOCALE_CHANGED = "locale_changed"
    DISMISS_OLD_REMINDERS = "dismiss_old_reminders"

    @classmethod
    def parse(cls, value: str | None) -> "TriggerKind | None":
        """Return the matching kind, or None for unknown/missing values."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


def notification_id_for(alert_id: int) -> int:
    """
    Map an alert id onto a stable 32-bit notification id.

    Folds the high and low halves of the 64-bit id together, so the same
    alert always lands on the same id in every pass and every process.
    The reserved digest id is never returned.
    """
    value = alert_id & 0xFFFFFFFFFFFFFFFF
    folded = (value ^ (value >> 32)) & 0xFFFFFFFF
    if folded >= 2**31:
        folded -= 2**32

    if folded == EXPIRED_GROUP_NOTIFICATION_ID:
        return COLLISION_NOTIFICATION_ID
    return folded


@dataclass(slots=True)
class Alert:
    """Represents a calendar_alerts row."""

    alert_id: int
    event_id: int
    state: AlertState
    alarm_time: datetime
    begin_time: datetime
    end_time: datetime
    minutes: int = 0
    title: str | None = None
    location: str | None = None
    description: str | None = None
    self_attendee_status: int = AttendeeStatus.NONE
    all_day: bool = False
    received_time: datetime | None = None
    notify_time: datetime | None = None

    @property
    def declined(self) -> bool:
        return self.self_attendee_status == AttendeeStatus.DECLINED


@dataclass(slots=True)
class NotificationInfo:
    """Everything needed to render one alert, rebuilt on every pass."""

    event_name: str | None
    location: str | None
    description: str | None
    start: datetime
    end: datetime
    event_id: int
    all_day: bool
    notification_id: int

    @classmethod
    def from_alert(cls, alert: Alert) -> "NotificationInfo":
        return cls(
            event_name=alert.title,
            location=alert.location,
            description=alert.description,
            start=alert.begin_time,
            end=alert.end_time,
            event_id=alert.event_id,
            all_day=alert.all_day,
            notification_id=notification_id_for(alert.alert_id),
        )


@dataclass(slots=True)
class ClassificationResult:
    """Output of one classification pass over the active alerts."""

    future: list[NotificationInfo] = field(default_factory=list)
    current: list[NotificationInfo] = field(default_factory=list)
    expired: list[NotificationInfo] = field(default_factory=list)
    num_fired: int = 0
    expired_digest_title: str | None = None
    row_count: int = 0

    @property
    def total(self) -> int:
        return len(self.future) + len(self.current) + len(self.expired)


@dataclass(slots=True)
class Trigger:
    """A message for the alert worker."""

    kind: str
    quiet: bool = False
    alarm_time: datetime | None = None
