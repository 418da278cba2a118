# calendar_alerts/services/preferences_service.py
"""
Alert preferences (configuration store).

Preferences live in a Redis hash written by the settings UI; the ringer
mode is a separate key kept current by the device bridge. Both are read
once per reconciliation pass.
"""

from dataclasses import dataclass
from typing import Protocol

from calendar_alerts.config import settings
from calendar_alerts.infrastructure.observability.logging import get_logger
from calendar_alerts.services.redis_client import RedisClient, redis_client

logger = get_logger(__name__)

RINGER_MODE_NORMAL = "normal"
RINGER_MODE_VIBRATE = "vibrate"
RINGER_MODE_SILENT = "silent"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _parse_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.strip().lower() in _TRUE_VALUES


@dataclass(slots=True)
class AlertPreferences:
    """Snapshot of the alert preferences for one pass."""

    alerts_enabled: bool = True
    alerts_popup: bool = False
    vibrate_when: str | None = None
    legacy_vibrate: bool | None = None
    ringtone: str | None = None

    @classmethod
    def from_mapping(cls, values: dict[str, str]) -> "AlertPreferences":
        enabled = _parse_bool(values.get("alerts_enabled"))
        popup = _parse_bool(values.get("alerts_popup"))
        return cls(
            alerts_enabled=True if enabled is None else enabled,
            alerts_popup=False if popup is None else popup,
            vibrate_when=values.get("alerts_vibrate_when"),
            legacy_vibrate=_parse_bool(values.get("alerts_vibrate")),
            ringtone=values.get("alerts_ringtone"),
        )


class PreferenceStore(Protocol):
    async def load_preferences(self) -> AlertPreferences: ...

    async def get_ringer_mode(self) -> str: ...


class RedisPreferenceStore:
    """Reads alert preferences and ringer mode from Redis."""

    def __init__(
        self,
        client: RedisClient | None = None,
        preferences_key: str | None = None,
        ringer_mode_key: str | None = None,
    ):
        self.client = client or redis_client
        self.preferences_key = preferences_key or settings.PREFERENCES_KEY
        self.ringer_mode_key = ringer_mode_key or settings.RINGER_MODE_KEY

    async def load_preferences(self) -> AlertPreferences:
        """Load the preference hash; Redis trouble falls back to defaults."""
        try:
            redis = await self.client.ensure_client()
            values = await redis.hgetall(self.preferences_key)
        except Exception as e:
            logger.error("Failed to load alert preferences", key=self.preferences_key, error=str(e))
            values = {}

        return AlertPreferences.from_mapping(values or {})

    async def get_ringer_mode(self) -> str:
        try:
            redis = await self.client.ensure_client()
            mode = await redis.get(self.ringer_mode_key)
        except Exception as e:
            logger.error("Failed to read ringer mode", key=self.ringer_mode_key, error=str(e))
            mode = None

        return (mode or RINGER_MODE_NORMAL).strip().lower()
