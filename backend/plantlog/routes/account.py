import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException
from pydantic import BaseModel, ValidationError

from plantlog.dependencies import get_identity, get_local_store, get_remote_store, get_session_provider
from plantlog.exceptions import AuthError, RemoteStoreError, StorageError
from plantlog.services.auth import Identity, SessionProvider
from plantlog.services.local_store import LocalDayStore
from plantlog.services.remote_store import RemoteDayStore

logger = logging.getLogger(__name__)

router = APIRouter()


class Credentials(BaseModel):
    email: str
    password: str


@router.post("/auth/guest")
def sign_in_as_guest(sessions: SessionProvider = Depends(get_session_provider)):
    return sessions.sign_in_as_guest().model_dump()


@router.post("/auth/upgrade")
def upgrade_guest(
    credentials: Credentials,
    x_session_token: Optional[str] = Header(None),
    sessions: SessionProvider = Depends(get_session_provider),
):
    try:
        identity = sessions.upgrade(x_session_token, credentials.email, credentials.password)
    except AuthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return identity.model_dump()


@router.post("/auth/login")
def login(credentials: Credentials, sessions: SessionProvider = Depends(get_session_provider)):
    try:
        return sessions.sign_in(credentials.email, credentials.password).model_dump()
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))


@router.post("/auth/logout")
def logout(x_session_token: Optional[str] = Header(None), sessions: SessionProvider = Depends(get_session_provider)):
    if x_session_token:
        sessions.sign_out(x_session_token)
    return {"status": "signed_out"}


@router.get("/settings")
def get_settings(
    local: LocalDayStore = Depends(get_local_store),
    remote: RemoteDayStore = Depends(get_remote_store),
    identity: Optional[Identity] = Depends(get_identity),
):
    if identity:
        try:
            profile = remote.fetch_profile(identity.user_id)
            if profile is not None:
                return profile.to_dict()
        except RemoteStoreError as e:
            logger.warning("Profile fetch failed, using local settings: %s", e)
    return local.get_settings().to_dict()


@router.put("/settings")
def update_settings(
    changes: dict = Body(...),
    local: LocalDayStore = Depends(get_local_store),
    remote: RemoteDayStore = Depends(get_remote_store),
    identity: Optional[Identity] = Depends(get_identity),
):
    try:
        updated = local.save_settings(changes)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if identity:
        try:
            remote.update_profile(identity.user_id, updated)
        except RemoteStoreError as e:
            logger.error("Profile update failed for %s: %s", identity.user_id, e)
    return updated.to_dict()
