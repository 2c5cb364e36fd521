import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from plantlog.database import get_db, get_redis
from plantlog.dependencies import get_session_factory
from plantlog.init_db import init_db
from plantlog.records import DayRecord
from plantlog.services.local_store import LocalDayStore
from plantlog.services.remote_store import RemoteDayStore


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def local_store(redis_client):
    return LocalDayStore(redis_client, prefix="test:v2")


@pytest.fixture
def remote_store(db):
    return RemoteDayStore(db)


@pytest.fixture
def client(redis_client, session_factory):
    from plantlog.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: redis_client
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def build_day(date_key, feeders=None, turbines=None):
    """Build a DayRecord from compact {id: (start, end)} / {id: (previous, present, hours)} maps."""
    return DayRecord(
        date_key=date_key,
        feeders={k: {"start": s, "end": e} for k, (s, e) in (feeders or {}).items()},
        turbines={k: {"previous": p, "present": q, "hours": h} for k, (p, q, h) in (turbines or {}).items()},
    )


@pytest.fixture
def make_day():
    return build_day
