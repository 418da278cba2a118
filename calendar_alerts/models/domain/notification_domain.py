# calendar_alerts/models/domain/notification_domain.py
"""
Notification Domain Models
Payloads handed to the notification sink, plus the per-pass alert policy.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class NotificationStyle(str, Enum):
    EXPANDING = "expanding"
    BASIC = "basic"
    DIGEST = "digest"


class NotificationCategory(str, Enum):
    UPCOMING = "upcoming"
    CURRENT = "current"
    EXPIRED = "expired"


class NotificationPriority(str, Enum):
    HIGH = "high"
    DEFAULT = "default"
    LOW = "low"


@dataclass(slots=True)
class AlertPolicy:
    """Vibrate/sound/pop-up decision, evaluated once per pass."""

    default_vibrate: bool
    ringtone: str | None
    popup: bool


@dataclass(slots=True)
class NotificationPayload:
    """A concrete notification for the rendering surface."""

    notification_id: int
    title: str | None
    summary: str
    style: NotificationStyle
    category: NotificationCategory
    priority: NotificationPriority
    start: datetime | None = None
    end: datetime | None = None
    event_id: int | None = None
    description: str | None = None
    popup: bool = False
    default_lights: bool = True
    default_vibrate: bool = False
    sound: str | None = None
    ticker_text: str | None = None
    digest_events: list[int] = field(default_factory=list)
    event_count: int = 1

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation."""
        data = asdict(self)
        data["style"] = self.style.value
        data["category"] = self.category.value
        data["priority"] = self.priority.value
        data["start"] = self.start.isoformat() if self.start else None
        data["end"] = self.end.isoformat() if self.end else None
        return data
