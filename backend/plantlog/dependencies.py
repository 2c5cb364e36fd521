from typing import Optional

import redis
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from plantlog.config import settings
from plantlog.database import SessionLocal, get_db, get_redis
from plantlog.services.auth import Identity, SessionProvider
from plantlog.services.local_store import LocalDayStore
from plantlog.services.remote_store import RemoteDayStore
from plantlog.services.sync import DaySync


def get_session_factory():
    return SessionLocal


def get_local_store(client: redis.Redis = Depends(get_redis)) -> LocalDayStore:
    return LocalDayStore(client, settings.STORAGE_PREFIX)


def get_remote_store(db: Session = Depends(get_db)) -> RemoteDayStore:
    return RemoteDayStore(db)


def get_day_sync(
    local: LocalDayStore = Depends(get_local_store),
    remote: RemoteDayStore = Depends(get_remote_store),
) -> DaySync:
    return DaySync(local, remote)


def get_session_provider(request: Request, client: redis.Redis = Depends(get_redis)) -> SessionProvider:
    return SessionProvider(client, listeners=request.app.state.identity_listeners, prefix=settings.STORAGE_PREFIX)


def get_identity(
    x_session_token: Optional[str] = Header(None),
    sessions: SessionProvider = Depends(get_session_provider),
) -> Optional[Identity]:
    return sessions.resolve(x_session_token)


def require_identity(identity: Optional[Identity] = Depends(get_identity)) -> Identity:
    if identity is None:
        raise HTTPException(status_code=401, detail="Sign in required")
    return identity
