from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from psycopg import sql

from calendar_alerts.db.helpers import DatabaseError
from calendar_alerts.models.domain import AlertState
from calendar_alerts.repositories import alert_repository
from calendar_alerts.repositories.alert_repository import AlertRepository, AlertRepositoryError
from tests.alert_fakes import NOW


def _row(**overrides) -> dict:
    row = {
        "id": 11,
        "event_id": 5,
        "state": 0,
        "title": "Planning",
        "event_location": "Room 2",
        "self_attendee_status": 1,
        "all_day": 0,
        "alarm_time": NOW - timedelta(minutes=10),
        "minutes": 10,
        "begin_time": NOW,
        "end_time": NOW + timedelta(hours=1),
        "description": None,
        "received_time": None,
        "notify_time": None,
    }
    row.update(overrides)
    return row


@pytest.mark.asyncio
async def test_fetch_active_alerts_maps_rows(monkeypatch):
    fetch_all_mock = AsyncMock(return_value=[_row()])
    monkeypatch.setattr(alert_repository, "fetch_all", fetch_all_mock)

    alerts = await AlertRepository.fetch_active_alerts(NOW)

    query, params = fetch_all_mock.await_args.args
    assert "ORDER BY begin_time DESC, end_time DESC" in query
    assert params == (1, 0, NOW)
    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.alert_id == 11
    assert alert.state == AlertState.SCHEDULED
    assert alert.location == "Room 2"
    assert alert.all_day is False


@pytest.mark.asyncio
async def test_fetch_active_alerts_empty(monkeypatch):
    monkeypatch.setattr(alert_repository, "fetch_all", AsyncMock(return_value=[]))

    assert await AlertRepository.fetch_active_alerts(NOW) == []


@pytest.mark.asyncio
async def test_fetch_missed_alarm_times_window(monkeypatch):
    alarm = NOW - timedelta(minutes=5)
    fetch_all_mock = AsyncMock(return_value=[{"alarm_time": alarm}])
    monkeypatch.setattr(alert_repository, "fetch_all", fetch_all_mock)
    since = NOW - timedelta(days=1)

    times = await AlertRepository.fetch_missed_alarm_times(NOW, since)

    query, params = fetch_all_mock.await_args.args
    assert "ORDER BY alarm_time ASC" in query
    assert params == (0, NOW, since, NOW)
    assert times == [alarm]


@pytest.mark.asyncio
async def test_update_alert_only_writes_given_fields(monkeypatch):
    execute_mock = AsyncMock(return_value=1)
    monkeypatch.setattr(alert_repository, "execute_query", execute_mock)

    affected = await AlertRepository.update_alert(11, state=AlertState.FIRED, received_time=NOW)

    query, params = execute_mock.await_args.args
    assert isinstance(query, sql.Composed)
    assert params == (1, NOW, 11)
    assert affected == 1


@pytest.mark.asyncio
async def test_update_alert_without_fields_is_a_noop(monkeypatch):
    execute_mock = AsyncMock()
    monkeypatch.setattr(alert_repository, "execute_query", execute_mock)

    assert await AlertRepository.update_alert(11) == 0
    execute_mock.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_alert_wraps_database_errors(monkeypatch):
    monkeypatch.setattr(
        alert_repository,
        "execute_query",
        AsyncMock(side_effect=DatabaseError("boom", operation="execute")),
    )

    with pytest.raises(AlertRepositoryError) as exc_info:
        await AlertRepository.update_alert(11, notify_time=NOW)

    assert exc_info.value.operation == "update_alert"


@pytest.mark.asyncio
async def test_dismiss_stale_alerts(monkeypatch):
    execute_mock = AsyncMock(return_value=3)
    monkeypatch.setattr(alert_repository, "execute_query", execute_mock)

    assert await AlertRepository.dismiss_stale_alerts(NOW) == 3
    query, params = execute_mock.await_args.args
    assert params == (2, NOW, 0)
