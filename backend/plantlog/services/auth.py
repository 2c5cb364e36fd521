import json
import logging
import secrets
import uuid
from typing import Callable, List, Optional

import redis
from pydantic import BaseModel
from werkzeug.security import check_password_hash, generate_password_hash

from plantlog.config import settings
from plantlog.exceptions import AuthError

logger = logging.getLogger(__name__)

GUEST_USER_ID_KEY = "pp-app:guest-user-id"


class Identity(BaseModel):
    user_id: str
    email: Optional[str] = None
    is_anonymous: bool = True


class SessionGrant(BaseModel):
    token: str
    identity: Identity


IdentityListener = Callable[[Optional[Identity]], None]


class SessionProvider:
    """
    Guest and credentialed identities kept in Redis.

    A guest can later attach an email and password; the identity (and so
    every row owned by it) stays the same. Listeners are called with the new
    identity, or None on sign-out.
    """

    def __init__(self, client: redis.Redis, listeners: Optional[List[IdentityListener]] = None,
                 prefix: str = settings.STORAGE_PREFIX):
        self.client = client
        self.listeners = listeners if listeners is not None else []
        self.prefix = prefix

    def subscribe(self, listener: IdentityListener):
        self.listeners.append(listener)

    def _notify(self, identity: Optional[Identity]):
        for listener in list(self.listeners):
            try:
                listener(identity)
            except Exception:
                logger.exception("Identity listener failed")

    def _user_key(self, user_id: str) -> str:
        return f"{self.prefix}:auth:user:{user_id}"

    def _email_key(self, email: str) -> str:
        return f"{self.prefix}:auth:email:{email.lower()}"

    def _session_key(self, token: str) -> str:
        return f"{self.prefix}:auth:session:{token}"

    def _load_user(self, user_id: str) -> Optional[dict]:
        raw = self.client.get(self._user_key(user_id))
        return json.loads(raw) if raw else None

    def _store_user(self, user: dict):
        self.client.set(self._user_key(user["user_id"]), json.dumps(user))

    def _open_session(self, user: dict) -> SessionGrant:
        token = secrets.token_urlsafe(32)
        self.client.set(self._session_key(token), user["user_id"])
        identity = self._identity(user)
        self._notify(identity)
        return SessionGrant(token=token, identity=identity)

    @staticmethod
    def _identity(user: dict) -> Identity:
        return Identity(user_id=user["user_id"], email=user.get("email"), is_anonymous=user.get("is_anonymous", True))

    def sign_in_as_guest(self) -> SessionGrant:
        user = {"user_id": str(uuid.uuid4()), "email": None, "password_hash": None, "is_anonymous": True}
        self._store_user(user)
        self.client.set(GUEST_USER_ID_KEY, user["user_id"])
        logger.info("Signed in anonymously as %s", user["user_id"])
        return self._open_session(user)

    def stored_guest_id(self) -> Optional[str]:
        return self.client.get(GUEST_USER_ID_KEY)

    def resolve(self, token: Optional[str]) -> Optional[Identity]:
        if not token:
            return None
        try:
            user_id = self.client.get(self._session_key(token))
            user = self._load_user(user_id) if user_id else None
        except redis.RedisError as e:
            logger.warning("Session lookup failed: %s", e)
            return None
        return self._identity(user) if user else None

    def upgrade(self, token: str, email: str, password: str) -> Identity:
        """Attach credentials to the guest behind `token`, keeping its user id."""
        identity = self.resolve(token)
        if identity is None:
            raise AuthError("Not signed in")
        if not identity.is_anonymous:
            raise AuthError("Account already has credentials")
        if not self.client.set(self._email_key(email), identity.user_id, nx=True):
            raise AuthError("Email already registered")

        user = self._load_user(identity.user_id)
        user.update(email=email, password_hash=generate_password_hash(password), is_anonymous=False)
        self._store_user(user)
        self.client.delete(GUEST_USER_ID_KEY)
        upgraded = self._identity(user)
        self._notify(upgraded)
        return upgraded

    def sign_in(self, email: str, password: str) -> SessionGrant:
        user_id = self.client.get(self._email_key(email))
        user = self._load_user(user_id) if user_id else None
        if not user or not user.get("password_hash") or not check_password_hash(user["password_hash"], password):
            raise AuthError("Invalid email or password")
        return self._open_session(user)

    def sign_out(self, token: str):
        self.client.delete(self._session_key(token))
        self._notify(None)
