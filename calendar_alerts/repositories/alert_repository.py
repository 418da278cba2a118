"""
Persistence layer for calendar alerts.

Thin wrapper around the calendar_alerts table: builds the filters the
reconciliation pass and the missed-alarm scan need, and writes state and
diagnostic timestamp changes back. No business rules live here.

Expected table shape::

    calendar_alerts (
        id bigint primary key,
        event_id bigint not null,
        state smallint not null,          -- 0 scheduled, 1 fired, 2 dismissed
        alarm_time timestamptz not null,
        begin_time timestamptz not null,
        end_time timestamptz not null,
        minutes integer not null default 0,
        title text,
        event_location text,
        description text,
        self_attendee_status smallint not null default 0,
        all_day boolean not null default false,
        received_time timestamptz,
        notify_time timestamptz
    )
"""

from datetime import datetime
from typing import Protocol

from psycopg import sql

from calendar_alerts.db.helpers import DatabaseError, execute_query, fetch_all
from calendar_alerts.infrastructure.observability.logging import get_logger
from calendar_alerts.models.domain import Alert, AlertState

logger = get_logger(__name__)


class AlertRepositoryError(DatabaseError):
    """More specific exception for repository failures."""


class AlertStore(Protocol):
    """What the alert pipeline needs from the alert store."""

    async def fetch_active_alerts(self, now: datetime) -> list[Alert]: ...

    async def fetch_missed_alarm_times(self, now: datetime, since: datetime) -> list[datetime]: ...

    async def update_alert(
        self,
        alert_id: int,
        *,
        state: AlertState | None = None,
        received_time: datetime | None = None,
        notify_time: datetime | None = None,
    ) -> int: ...

    async def dismiss_stale_alerts(self, now: datetime) -> int: ...


class AlertRepository:
    """PostgreSQL-backed alert store."""

    TABLE = "calendar_alerts"

    ALERT_SELECT_COLUMNS = """
        id, event_id, state, title, event_location, self_attendee_status,
        all_day, alarm_time, minutes, begin_time, end_time, description,
        received_time, notify_time
    """

    @classmethod
    def _row_to_alert(cls, row: dict) -> Alert:
        return Alert(
            alert_id=int(row["id"]),
            event_id=int(row["event_id"]),
            state=AlertState(row["state"]),
            alarm_time=row["alarm_time"],
            begin_time=row["begin_time"],
            end_time=row["end_time"],
            minutes=row.get("minutes") or 0,
            title=row.get("title"),
            location=row.get("event_location"),
            description=row.get("description"),
            self_attendee_status=row.get("self_attendee_status") or 0,
            all_day=bool(row.get("all_day")),
            received_time=row.get("received_time"),
            notify_time=row.get("notify_time"),
        )

    @classmethod
    async def fetch_active_alerts(cls, now: datetime) -> list[Alert]:
        """
        Scheduled or fired alerts that are due, newest event first.
        """

        query = f"""
            SELECT {cls.ALERT_SELECT_COLUMNS}
            FROM {cls.TABLE}
            WHERE state IN (%s, %s)
              AND alarm_time <= %s
            ORDER BY begin_time DESC, end_time DESC
        """

        rows = await fetch_all(
            query, (int(AlertState.FIRED), int(AlertState.SCHEDULED), now)
        )
        return [cls._row_to_alert(row) for row in rows]

    @classmethod
    async def fetch_missed_alarm_times(cls, now: datetime, since: datetime) -> list[datetime]:
        """
        Alarm times of scheduled alerts that are overdue, newer than `since`
        and whose event has not ended, oldest first.
        """

        query = f"""
            SELECT alarm_time
            FROM {cls.TABLE}
            WHERE state = %s
              AND alarm_time < %s
              AND alarm_time > %s
              AND end_time >= %s
            ORDER BY alarm_time ASC
        """

        rows = await fetch_all(query, (int(AlertState.SCHEDULED), now, since, now))
        return [row["alarm_time"] for row in rows]

    @classmethod
    async def update_alert(
        cls,
        alert_id: int,
        *,
        state: AlertState | None = None,
        received_time: datetime | None = None,
        notify_time: datetime | None = None,
    ) -> int:
        """Write the given fields for one alert. Returns affected row count."""

        values = {
            "state": int(state) if state is not None else None,
            "received_time": received_time,
            "notify_time": notify_time,
        }
        values = {column: value for column, value in values.items() if value is not None}
        if not values:
            return 0

        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in values
        )
        query = sql.SQL("UPDATE {} SET {} WHERE id = %s").format(
            sql.Identifier(cls.TABLE), assignments
        )

        try:
            return await execute_query(query, (*values.values(), alert_id))
        except DatabaseError as e:
            raise AlertRepositoryError(
                f"Failed to update alert {alert_id}: {e}", operation="update_alert"
            ) from e

    @classmethod
    async def dismiss_stale_alerts(cls, now: datetime) -> int:
        """Dismiss scheduled alerts whose event already ended."""

        query = f"""
            UPDATE {cls.TABLE}
            SET state = %s
            WHERE end_time < %s
              AND state = %s
        """

        affected = await execute_query(
            query, (int(AlertState.DISMISSED), now, int(AlertState.SCHEDULED))
        )
        logger.info("Stale alerts dismissed", count=affected)
        return affected
