# calendar_alerts/services/notification_builder.py
"""
Notification building and posting.

Turns a classification result into concrete payloads: one notification per
future and current event, and a single notification for everything that
already ended, posted under the reserved digest id.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from calendar_alerts.config import settings
from calendar_alerts.infrastructure.observability.logging import get_logger
from calendar_alerts.models.domain import (
    EXPIRED_GROUP_NOTIFICATION_ID,
    AlertPolicy,
    ClassificationResult,
    NotificationCategory,
    NotificationInfo,
    NotificationPayload,
    NotificationPriority,
    NotificationStyle,
)
from calendar_alerts.services.notification_sink import NotificationSink

logger = get_logger(__name__)


@dataclass(slots=True)
class NotificationPlan:
    """Everything one pass will post or cancel, in posting order."""

    individual: list[NotificationPayload] = field(default_factory=list)
    expired_ids: list[int] = field(default_factory=list)
    digest: NotificationPayload | None = None
    quiet: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.individual and self.digest is None


def get_ticker_text(event_name: str | None, location: str | None) -> str | None:
    if location:
        return f"{event_name} - {location}"
    return event_name


def format_time_location(
    start: datetime, all_day: bool, location: str | None, now: datetime, tz_name: str | None = None
) -> str:
    """Short "when, where" line shown under the notification title."""
    if all_day:
        # All-day events are stored at UTC midnight, keep them on their own date
        when = start.strftime("%a, %b %d")
    else:
        tz = ZoneInfo(tz_name or settings.DISPLAY_TIMEZONE)
        local_start = start.astimezone(tz)
        if local_start.date() == now.astimezone(tz).date():
            when = local_start.strftime("%H:%M")
        else:
            when = local_start.strftime("%a, %b %d, %H:%M")

    if location:
        return f"{when}, {location}"
    return when


def _apply_options(
    payload: NotificationPayload, policy: AlertPolicy, quiet: bool, ticker_text: str | None
) -> NotificationPayload:
    payload.default_lights = True

    # Quiet updates refresh the list without any sound, vibration or ticker
    if not quiet:
        if ticker_text:
            payload.ticker_text = ticker_text
        payload.default_vibrate = policy.default_vibrate
        payload.sound = policy.ringtone or None
    return payload


def _individual_payload(
    info: NotificationInfo,
    category: NotificationCategory,
    priority: NotificationPriority,
    popup: bool,
    policy: AlertPolicy,
    quiet: bool,
    now: datetime,
) -> NotificationPayload:
    payload = NotificationPayload(
        notification_id=info.notification_id,
        title=info.event_name,
        summary=format_time_location(info.start, info.all_day, info.location, now),
        style=NotificationStyle.EXPANDING,
        category=category,
        priority=priority,
        start=info.start,
        end=info.end,
        event_id=info.event_id,
        description=info.description,
        popup=popup,
    )
    return _apply_options(payload, policy, quiet, get_ticker_text(info.event_name, info.location))


def _expired_payload(
    result: ClassificationResult, policy: AlertPolicy, quiet: bool, now: datetime
) -> NotificationPayload:
    expired = result.expired
    if len(expired) == 1:
        info = expired[0]
        payload = NotificationPayload(
            notification_id=EXPIRED_GROUP_NOTIFICATION_ID,
            title=info.event_name,
            summary=format_time_location(info.start, info.all_day, info.location, now),
            style=NotificationStyle.BASIC,
            category=NotificationCategory.EXPIRED,
            priority=NotificationPriority.LOW,
            start=info.start,
            end=info.end,
            event_id=info.event_id,
            digest_events=[info.event_id],
        )
    else:
        payload = NotificationPayload(
            notification_id=EXPIRED_GROUP_NOTIFICATION_ID,
            title=f"{len(expired)} events",
            summary=result.expired_digest_title or "",
            style=NotificationStyle.DIGEST,
            category=NotificationCategory.EXPIRED,
            priority=NotificationPriority.LOW,
            digest_events=[info.event_id for info in expired],
            event_count=len(expired),
        )
    return _apply_options(payload, policy, quiet, None)


def build_notifications(
    result: ClassificationResult,
    policy: AlertPolicy,
    *,
    quiet: bool,
    now: datetime,
    high_priority_window: timedelta | None = None,
) -> NotificationPlan:
    """
    Decide what to post for one reconciliation pass.

    Args:
        result: Classified buckets from the pass
        policy: Vibrate/sound/pop-up decision
        quiet: Whether the trigger asked for a quiet update
        now: Pass timestamp
        high_priority_window: How long a started event stays high priority

    Returns:
        NotificationPlan in posting order
    """
    if high_priority_window is None:
        high_priority_window = timedelta(minutes=settings.CURRENT_EVENT_HIGH_PRIORITY_MINUTES)

    # Nothing newly fired: refresh without interrupting the user
    quiet = quiet or result.num_fired == 0
    plan = NotificationPlan(quiet=quiet)

    for info in result.future:
        plan.individual.append(
            _individual_payload(
                info,
                NotificationCategory.UPCOMING,
                NotificationPriority.DEFAULT,
                False,
                policy,
                quiet,
                now,
            )
        )

    for info in result.current:
        high_priority = now < info.start + high_priority_window
        plan.individual.append(
            _individual_payload(
                info,
                NotificationCategory.CURRENT,
                NotificationPriority.HIGH if high_priority else NotificationPriority.LOW,
                policy.popup and high_priority,
                policy,
                quiet,
                now,
            )
        )

    if result.expired:
        plan.expired_ids = [info.notification_id for info in result.expired]
        plan.digest = _expired_payload(result, policy, quiet, now)

    return plan


async def post_notifications(plan: NotificationPlan, sink: NotificationSink) -> None:
    """Send a plan to the notification sink."""
    if plan.is_empty:
        await sink.cancel_all()
        return

    for payload in plan.individual:
        await sink.notify(payload.notification_id, payload)
        logger.debug(
            "Posted individual alert notification",
            event_id=payload.event_id,
            notification_id=payload.notification_id,
            category=payload.category.value,
            priority=payload.priority.value,
            quiet=plan.quiet,
        )

    if plan.digest is not None:
        # Individual notifications for expired events are replaced by the group
        for notification_id in plan.expired_ids:
            await sink.cancel(notification_id)

        await sink.notify(EXPIRED_GROUP_NOTIFICATION_ID, plan.digest)
        logger.debug(
            "Posted expired alert digest",
            num_events=len(plan.expired_ids),
            notification_id=EXPIRED_GROUP_NOTIFICATION_ID,
            quiet=plan.quiet,
        )
