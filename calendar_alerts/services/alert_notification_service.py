# calendar_alerts/services/alert_notification_service.py
"""
Reconciliation pass: preferences -> classification -> policy -> notifications.
"""

from datetime import UTC, datetime

from calendar_alerts.infrastructure.observability.logging import get_logger
from calendar_alerts.repositories.alert_repository import AlertStore
from calendar_alerts.services.alert_classifier import classify_alerts
from calendar_alerts.services.alert_policy import resolve_alert_policy
from calendar_alerts.services.notification_builder import build_notifications, post_notifications
from calendar_alerts.services.notification_sink import NotificationSink
from calendar_alerts.services.preferences_service import PreferenceStore

logger = get_logger(__name__)


async def update_alert_notification(
    store: AlertStore,
    sink: NotificationSink,
    preferences: PreferenceStore,
    *,
    quiet: bool = False,
    now: datetime | None = None,
) -> bool:
    """
    Bring the posted notifications in line with the alert store.

    Returns:
        False when there were no due alerts at all, True otherwise
    """
    now = now or datetime.now(UTC)
    prefs = await preferences.load_preferences()

    if not prefs.alerts_enabled:
        logger.debug("Alert preference is off, clearing notifications")
        await sink.cancel_all()
        return True

    result = await classify_alerts(store, now)

    if result.row_count == 0:
        logger.debug("No fired or scheduled alerts")
        await sink.cancel_all()
        return False

    if result.total == 0:
        await sink.cancel_all()
        return True

    effective_quiet = quiet or result.num_fired == 0
    ringer_mode = await preferences.get_ringer_mode()
    policy = resolve_alert_policy(
        prefs, ringer_mode, quiet=effective_quiet, num_fired=result.num_fired
    )

    plan = build_notifications(result, policy, quiet=quiet, now=now)
    await post_notifications(plan, sink)

    logger.info(
        "Alert notifications updated",
        posted=len(plan.individual),
        expired=len(plan.expired_ids),
        fired=result.num_fired,
        quiet=plan.quiet,
        popup=policy.popup,
    )
    return True


async def dismiss_old_alerts(store: AlertStore, now: datetime | None = None) -> int:
    """Dismiss scheduled alerts for events that have already ended."""
    now = now or datetime.now(UTC)
    return await store.dismiss_stale_alerts(now)
