# calendar_alerts/services/alert_policy.py
"""
Vibrate / ringtone / pop-up policy.

Pure functions over a preference snapshot and the device ringer mode.
"""

from calendar_alerts.config import settings
from calendar_alerts.models.domain import AlertPolicy
from calendar_alerts.services.preferences_service import RINGER_MODE_VIBRATE, AlertPreferences

VIBRATE_ALWAYS = "always"
VIBRATE_SILENT = "silent"
VIBRATE_NEVER = "never"


def resolve_vibrate_when(prefs: AlertPreferences, default: str | None = None) -> str:
    """
    Effective "vibrate when" value.

    The tri-state setting wins; an old boolean vibrate flag is translated
    when it is the only one present.
    """
    if prefs.vibrate_when is not None:
        return prefs.vibrate_when
    if prefs.legacy_vibrate is not None:
        return VIBRATE_ALWAYS if prefs.legacy_vibrate else VIBRATE_NEVER
    return default if default is not None else settings.DEFAULT_VIBRATE_WHEN


def should_vibrate(vibrate_when: str, ringer_mode: str) -> bool:
    if vibrate_when == VIBRATE_ALWAYS:
        return True
    if vibrate_when != VIBRATE_SILENT:
        return False
    # Vibrate only while the device itself is in vibrate mode
    return ringer_mode == RINGER_MODE_VIBRATE


def resolve_ringtone(prefs: AlertPreferences, quiet: bool) -> str | None:
    """Ringtone URI to play, or None for silence."""
    if quiet:
        return None
    return prefs.ringtone or None


def resolve_alert_policy(
    prefs: AlertPreferences, ringer_mode: str, *, quiet: bool, num_fired: int
) -> AlertPolicy:
    """Combine the preference snapshot into the decision for one pass."""
    return AlertPolicy(
        default_vibrate=should_vibrate(resolve_vibrate_when(prefs), ringer_mode),
        ringtone=resolve_ringtone(prefs, quiet),
        popup=num_fired > 0 and prefs.alerts_popup,
    )
