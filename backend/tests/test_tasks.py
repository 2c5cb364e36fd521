import pytest

from plantlog import tasks
from plantlog.config import settings
from plantlog.services.local_store import LocalDayStore
from plantlog.services.remote_store import RemoteDayStore


@pytest.fixture
def task_env(monkeypatch, redis_client, session_factory):
    monkeypatch.setattr(tasks, "redis_client", redis_client)
    monkeypatch.setattr(tasks, "SessionLocal", session_factory)
    return LocalDayStore(redis_client, settings.STORAGE_PREFIX)


def test_sync_task_mirrors_every_local_day(task_env, session_factory, make_day):
    task_env.save_day(make_day("2026-01-19", feeders={"F2": ("0", "100")}))
    task_env.save_day(make_day("2026-01-20", feeders={"F2": ("100", "250")}))

    assert tasks.sync_local_days_to_remote("user-1") == 2

    db = session_factory()
    try:
        assert RemoteDayStore(db).fetch_date_keys("user-1") == ["2026-01-19", "2026-01-20"]
    finally:
        db.close()


def test_sync_task_with_nothing_stored(task_env):
    assert tasks.sync_local_days_to_remote("user-1") == 0


def test_task_is_registered():
    assert "plantlog.tasks.sync_local_days_to_remote" in tasks.celery_app.tasks
