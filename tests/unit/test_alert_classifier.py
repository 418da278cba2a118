from datetime import timedelta

import pytest

from calendar_alerts.models.domain import AlertState, AttendeeStatus, notification_id_for
from calendar_alerts.services.alert_classifier import classify_alerts
from tests.alert_fakes import NOW, FakeAlertStore, make_alert


@pytest.mark.asyncio
async def test_duplicate_alerts_keep_latest_occurrence():
    """Two alerts for the same event produce one notification with the later begin time."""
    later = make_alert(1, event_id=7, begin=NOW + timedelta(hours=2), title="Later")
    earlier = make_alert(2, event_id=7, begin=NOW + timedelta(hours=1), title="Earlier")
    store = FakeAlertStore([earlier, later])

    result = await classify_alerts(store, NOW + timedelta(hours=1, minutes=55))

    infos = result.future + result.current + result.expired
    assert len(infos) == 1
    assert infos[0].event_name == "Later"
    assert infos[0].notification_id == notification_id_for(1)
    # Both rows still fired
    assert store.alerts[1].state == AlertState.FIRED
    assert store.alerts[2].state == AlertState.FIRED
    assert result.num_fired == 2


@pytest.mark.asyncio
async def test_buckets_follow_begin_and_end():
    current = make_alert(1, begin=NOW - timedelta(minutes=5), end=NOW + timedelta(minutes=30))
    future = make_alert(2, begin=NOW + timedelta(minutes=5))
    expired = make_alert(3, begin=NOW - timedelta(hours=2), end=NOW - timedelta(hours=1))
    starts_now = make_alert(4, begin=NOW, end=NOW + timedelta(hours=1))
    ends_now = make_alert(5, begin=NOW - timedelta(hours=1), end=NOW)
    store = FakeAlertStore([current, future, expired, starts_now, ends_now])

    result = await classify_alerts(store, NOW)

    assert [i.event_id for i in result.future] == [2]
    assert sorted(i.event_id for i in result.current) == [1, 4, 5]
    assert [i.event_id for i in result.expired] == [3]
    assert result.total == 5


@pytest.mark.asyncio
async def test_declined_alert_is_dismissed_and_never_bucketed():
    declined = make_alert(1, status=AttendeeStatus.DECLINED, state=AlertState.FIRED)
    store = FakeAlertStore([declined])

    result = await classify_alerts(store, NOW)

    assert result.total == 0
    assert result.num_fired == 0
    assert store.alerts[1].state == AlertState.DISMISSED
    assert store.updates == [(1, {"state": AlertState.DISMISSED})]


@pytest.mark.asyncio
async def test_scheduled_alert_fires_once_and_records_timestamps():
    store = FakeAlertStore([make_alert(1)])

    first = await classify_alerts(store, NOW)
    assert first.num_fired == 1
    assert store.updates[0] == (
        1,
        {"state": AlertState.FIRED, "received_time": NOW, "notify_time": NOW},
    )

    later = NOW + timedelta(minutes=1)
    second = await classify_alerts(store, later)
    assert second.num_fired == 0
    # Notify time refreshed on every pass, nothing else
    assert store.updates[1] == (1, {"notify_time": later})
    assert store.alerts[1].received_time == NOW


@pytest.mark.asyncio
async def test_dismissed_and_undue_alerts_are_ignored():
    dismissed = make_alert(1, state=AlertState.DISMISSED)
    not_due = make_alert(2, alarm=NOW + timedelta(minutes=1), begin=NOW + timedelta(minutes=11))
    store = FakeAlertStore([dismissed, not_due])

    result = await classify_alerts(store, NOW)

    assert result.row_count == 0
    assert result.total == 0
    assert store.updates == []


@pytest.mark.asyncio
async def test_expired_digest_is_in_ascending_begin_order():
    alerts = [
        make_alert(1, title="A", begin=NOW - timedelta(hours=6), end=NOW - timedelta(hours=5)),
        make_alert(2, title="B", begin=NOW - timedelta(hours=4), end=NOW - timedelta(hours=3)),
        make_alert(3, title="C", begin=NOW - timedelta(hours=2), end=NOW - timedelta(hours=1)),
        make_alert(4, title="", begin=NOW - timedelta(hours=3), end=NOW - timedelta(hours=2)),
    ]
    store = FakeAlertStore(alerts)

    result = await classify_alerts(store, NOW)

    assert [i.event_id for i in result.expired] == [1, 2, 4, 3]
    assert result.expired_digest_title == "A, B, C"


@pytest.mark.asyncio
async def test_update_failures_do_not_stop_classification():
    store = FakeAlertStore([make_alert(1), make_alert(2, status=AttendeeStatus.DECLINED)])
    store.fail_updates = True

    result = await classify_alerts(store, NOW)

    assert [i.event_id for i in result.future] == [1]
    assert result.num_fired == 1
    assert len(store.updates) == 2
    # Nothing persisted
    assert store.alerts[1].state == AlertState.SCHEDULED
    assert store.alerts[2].state == AlertState.SCHEDULED
