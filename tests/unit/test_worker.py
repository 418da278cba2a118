from contextlib import asynccontextmanager

import pytest

from calendar_alerts.jobs import worker


@pytest.mark.asyncio
async def test_run_worker_runs_job(monkeypatch):
    called = {"ok": False}

    async def dummy_job():
        called["ok"] = True

    monkeypatch.setitem(worker.JOB_REGISTRY, "dummy", dummy_job)

    await worker.run_worker("dummy")

    assert called["ok"] is True


@pytest.mark.asyncio
async def test_run_worker_unknown_job():
    with pytest.raises(ValueError):
        await worker.run_worker("missing")


def test_registry_exposes_alert_jobs():
    assert {"alert_service", "dismiss_old_reminders", "time_changed", "event_reminder"} <= set(
        worker.JOB_REGISTRY
    )
    assert worker.JOB_REGISTRY["dismiss_old_reminders"].__name__ == "run_dismiss_old_reminders"


@pytest.mark.asyncio
async def test_one_shot_job_submits_single_trigger(monkeypatch):
    submitted = []

    class RecordingWorker:
        async def submit_and_wait(self, trigger):
            submitted.append(trigger)
            return True

    @asynccontextmanager
    async def fake_running_worker():
        yield RecordingWorker()

    monkeypatch.setattr(worker, "running_alert_worker", fake_running_worker)

    await worker.run_worker("time_changed")

    assert [trigger.kind for trigger in submitted] == ["time_changed"]
