"""
Domain models for calendar alerts and the notifications rendered from them.
"""

from .alert_domain import (
    COLLISION_NOTIFICATION_ID,
    EXPIRED_GROUP_NOTIFICATION_ID,
    Alert,
    AlertState,
    AttendeeStatus,
    ClassificationResult,
    NotificationInfo,
    Trigger,
    TriggerKind,
    notification_id_for,
)
from .notification_domain import (
    AlertPolicy,
    NotificationCategory,
    NotificationPayload,
    NotificationPriority,
    NotificationStyle,
)

__all__ = [
    "COLLISION_NOTIFICATION_ID",
    "EXPIRED_GROUP_NOTIFICATION_ID",
    "Alert",
    "AlertPolicy",
    "AlertState",
    "AttendeeStatus",
    "ClassificationResult",
    "NotificationCategory",
    "NotificationInfo",
    "NotificationPayload",
    "NotificationPriority",
    "NotificationStyle",
    "Trigger",
    "TriggerKind",
    "notification_id_for",
]
