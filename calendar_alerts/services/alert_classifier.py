# calendar_alerts/services/alert_classifier.py
"""
Alert classification.

Walks the due alerts once, advancing their state in the store, and sorts
the survivors into current / future / expired buckets for rendering.
"""

from datetime import datetime

from calendar_alerts.db.helpers import DatabaseError
from calendar_alerts.infrastructure.observability.logging import get_logger
from calendar_alerts.models.domain import (
    Alert,
    AlertState,
    ClassificationResult,
    NotificationInfo,
)
from calendar_alerts.repositories.alert_repository import AlertStore

logger = get_logger(__name__)


async def _persist_alert_changes(store: AlertStore, alert: Alert, changes: dict) -> None:
    """Write bookkeeping fields; failures are logged and the pass carries on."""
    if not changes:
        return

    try:
        await store.update_alert(alert.alert_id, **changes)
    except DatabaseError as e:
        logger.warning(
            "Failed to persist alert update",
            alert_id=alert.alert_id,
            event_id=alert.event_id,
            fields=sorted(changes),
            error=str(e),
        )


async def classify_alerts(store: AlertStore, now: datetime) -> ClassificationResult:
    """
    Run one classification pass over the active alerts.

    Rows arrive ordered by begin time descending, so for repeating events the
    most recent occurrence is the one kept, and expired entries are prepended
    to end up in ascending begin order.

    Args:
        store: Alert store to query and update
        now: Pass timestamp, captured once by the caller

    Returns:
        ClassificationResult with the three buckets, newly fired count and
        expired digest title
    """
    alerts = await store.fetch_active_alerts(now)
    result = ClassificationResult(row_count=len(alerts))
    seen_event_ids: set[int] = set()

    for alert in alerts:
        state = alert.state
        changes: dict = {}

        logger.debug(
            "Active alert",
            alert_id=alert.alert_id,
            event_id=alert.event_id,
            state=int(state),
            alarm_time=alert.alarm_time.isoformat(),
            begin_time=alert.begin_time.isoformat(),
            end_time=alert.end_time.isoformat(),
            minutes=alert.minutes,
            declined=alert.declined,
        )

        if alert.declined:
            state = AlertState.DISMISSED
            changes["state"] = state
        elif state == AlertState.SCHEDULED:
            state = AlertState.FIRED
            changes["state"] = state
            # Received time helps track down missed or delayed alarms
            changes["received_time"] = now
            result.num_fired += 1

        if state == AlertState.FIRED:
            changes["notify_time"] = now

        await _persist_alert_changes(store, alert, changes)

        if state != AlertState.FIRED:
            continue

        # Only one notification per event
        if alert.event_id in seen_event_ids:
            continue
        seen_event_ids.add(alert.event_id)

        info = NotificationInfo.from_alert(alert)

        if alert.begin_time <= now <= alert.end_time:
            result.current.append(info)
        elif alert.begin_time > now:
            result.future.append(info)
        else:
            result.expired.insert(0, info)
            if alert.title:
                if result.expired_digest_title is None:
                    result.expired_digest_title = alert.title
                else:
                    result.expired_digest_title = f"{alert.title}, {result.expired_digest_title}"

    logger.info(
        "Alerts classified",
        rows=result.row_count,
        fired=result.num_fired,
        current=len(result.current),
        future=len(result.future),
        expired=len(result.expired),
    )
    return result
