import pytest

from tests.alert_fakes import (
    FakeAlertStore,
    FakeNotificationSink,
    FakePreferenceStore,
    FakeScheduler,
)


@pytest.fixture
def fake_store():
    return FakeAlertStore()


@pytest.fixture
def fake_sink():
    return FakeNotificationSink()


@pytest.fixture
def fake_preferences():
    return FakePreferenceStore()


@pytest.fixture
def fake_scheduler():
    return FakeScheduler()
