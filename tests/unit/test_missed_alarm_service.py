from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from calendar_alerts.models.domain import AlertState
from calendar_alerts.services.missed_alarm_service import reschedule_missed_alarms
from tests.alert_fakes import NOW, FakeAlertStore, FakeScheduler, make_alert


@pytest.mark.asyncio
async def test_equal_alarm_times_are_scheduled_once():
    t100 = NOW - timedelta(seconds=400)
    t200 = NOW - timedelta(seconds=300)
    store = AsyncMock()
    store.fetch_missed_alarm_times.return_value = [t100, t100, t100, t200]
    scheduler = FakeScheduler()

    count = await reschedule_missed_alarms(store, scheduler, now=NOW)

    assert count == 2
    assert scheduler.wakeups == [t100, t200]
    store.fetch_missed_alarm_times.assert_awaited_once_with(NOW, NOW - timedelta(hours=24))


@pytest.mark.asyncio
async def test_only_recent_overdue_unfinished_alerts_are_recovered():
    end = NOW + timedelta(hours=1)
    store = FakeAlertStore(
        [
            make_alert(1, alarm=NOW - timedelta(minutes=30), end=end),
            make_alert(2, alarm=NOW - timedelta(days=2), end=end),  # too old
            make_alert(3, alarm=NOW + timedelta(minutes=5), end=end),  # not due yet
            make_alert(4, alarm=NOW - timedelta(minutes=30), end=NOW - timedelta(minutes=1)),
            make_alert(5, alarm=NOW - timedelta(minutes=20), end=end, state=AlertState.FIRED),
            make_alert(6, alarm=NOW - timedelta(minutes=10), end=end),
        ]
    )
    scheduler = FakeScheduler()

    count = await reschedule_missed_alarms(store, scheduler, now=NOW)

    assert count == 2
    assert scheduler.wakeups == [NOW - timedelta(minutes=30), NOW - timedelta(minutes=10)]


@pytest.mark.asyncio
async def test_nothing_missed_schedules_nothing(fake_store, fake_scheduler):
    assert await reschedule_missed_alarms(fake_store, fake_scheduler, now=NOW) == 0
    assert fake_scheduler.wakeups == []
