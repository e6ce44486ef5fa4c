"""FastAPI dependencies: key-value store, authorizer, bearer token."""
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from scheduledesk.config import settings
from scheduledesk.database import get_db
from scheduledesk.services.auth_service import Authorizer, SessionAuthorizer
from scheduledesk.store.base import KeyValueStore
from scheduledesk.store.redis_store import RedisKeyValueStore, create_redis_client
from scheduledesk.store.sql_store import SqlKeyValueStore

_bearer = HTTPBearer(auto_error=False)


@lru_cache(maxsize=1)
def _redis_client():
    return create_redis_client(settings.REDIS_URL, settings.STORE_TIMEOUT_SECONDS)


def get_store(db: Session = Depends(get_db)) -> KeyValueStore:
    """Redis when ``REDIS_URL`` is configured, otherwise the SQL tables."""
    if settings.REDIS_URL:
        return RedisKeyValueStore(_redis_client())
    return SqlKeyValueStore(db)


def get_authorizer(store: KeyValueStore = Depends(get_store)) -> Authorizer:
    return SessionAuthorizer(store)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Optional[str]:
    return credentials.credentials if credentials else None
