"""Bearer-token authorization and channel password hashing.

Two kinds of principal can mutate state:
- Admin: holds the configured ``ADMIN_TOKEN`` and may manage every channel.
- Channel: holds a session token issued by a channel login, scoped to that
  channel and valid until its stored expiry.
"""
import base64
import hashlib
import logging
import secrets
import time
from abc import ABC, abstractmethod
from typing import Optional

import bcrypt

from scheduledesk.config import settings
from scheduledesk.errors import Unauthorized
from scheduledesk.store import keys
from scheduledesk.store.base import KeyValueStore

logger = logging.getLogger(__name__)

_PBKDF2_ROUNDS = 200_000


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ROUNDS)
    return base64.b64encode(salt + dk).decode("ascii")


def verify_password(password: str, stored: str) -> bool:
    """Check ``password`` against a PBKDF2 hash or a bcrypt (``$2a$``/``$2b$``) hash."""
    if stored.startswith("$2"):
        try:
            return bcrypt.checkpw(password.encode("utf-8"), stored.encode("utf-8"))
        except ValueError:
            return False
    try:
        raw = base64.b64decode(stored.encode("ascii"), validate=True)
    except (ValueError, UnicodeEncodeError):
        return False
    if len(raw) != 48:
        return False
    salt, stored_key = raw[:16], raw[16:]
    new_key = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ROUNDS)
    return secrets.compare_digest(new_key, stored_key)


def normalize_channel_name(channel_name: Optional[str]) -> str:
    """Lowercase and trim; empty string when nothing usable was given."""
    if not channel_name:
        return ""
    return channel_name.strip().lower()


class Authorizer(ABC):
    """Decides whether a bearer token may mutate a channel's state."""

    @abstractmethod
    def is_admin(self, token: Optional[str]) -> bool:
        ...

    @abstractmethod
    def can_manage(self, token: Optional[str], channel_name: str) -> bool:
        ...


class SessionAuthorizer(Authorizer):
    """Admin token from settings, channel sessions from the key-value store."""

    def __init__(self, store: KeyValueStore, admin_token: Optional[str] = None, now_ms=None):
        self._store = store
        self._admin_token = settings.ADMIN_TOKEN if admin_token is None else admin_token
        self._now_ms = now_ms or (lambda: int(time.time() * 1000))

    def is_admin(self, token: Optional[str]) -> bool:
        if not token or not self._admin_token:
            return False
        return secrets.compare_digest(token, self._admin_token)

    def can_manage(self, token: Optional[str], channel_name: str) -> bool:
        if not token or not channel_name:
            return False
        if not self._store.set_contains(keys.CHANNELS_KEY, channel_name):
            return False

        session_key = keys.channel_session_key(channel_name, token)
        expires_at = self._store.get(session_key)
        if not expires_at:
            return False
        try:
            expired = self._now_ms() > int(expires_at)
        except ValueError:
            expired = True
        if expired:
            with self._store.atomic():
                self._store.delete(session_key)
                self._store.set_remove(keys.channel_sessions_key(channel_name), token)
            return False
        return True


def check_can_manage(authorizer: Authorizer, token: Optional[str], channel_name: str) -> None:
    """Raise ``Unauthorized`` unless ``token`` is admin or scoped to ``channel_name``."""
    if authorizer.is_admin(token) or authorizer.can_manage(token, channel_name):
        return
    logger.warning("Rejected token for channel %s", channel_name)
    raise Unauthorized()


def check_admin(authorizer: Authorizer, token: Optional[str]) -> None:
    if not authorizer.is_admin(token):
        logger.warning("Rejected non-admin token for admin operation")
        raise Unauthorized("Unauthorized - admin token required")
