"""Pytest fixtures: fresh SQLite key-value tables for fast, isolated tests."""
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from scheduledesk.config import settings
from scheduledesk.database import Base, get_db
from scheduledesk.main import app
from scheduledesk.services.auth_service import Authorizer
from scheduledesk.store.sql_store import SqlKeyValueStore

# Import all models so they register with Base.metadata
from scheduledesk.models.key_value import KVEntry, KVListItem, KVSetMember  # noqa: F401

SQLITE_URL = "sqlite:///./test.db"
ADMIN_TOKEN = "test-admin-token"


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch):
    """Pin settings that would otherwise come from the environment."""
    monkeypatch.setattr(settings, "ADMIN_TOKEN", ADMIN_TOKEN)
    monkeypatch.setattr(settings, "REDIS_URL", "")


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session, closed after the test."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def store(db):
    """SQL key-value store on the test session."""
    return SqlKeyValueStore(db)


@pytest.fixture(scope="function")
def client(db_engine):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


class StaticAuthorizer(Authorizer):
    """Authorizer double: ``admin`` is admin, ``<channel>-token`` manages ``<channel>``."""

    def is_admin(self, token):
        return token == "admin"

    def can_manage(self, token, channel_name):
        return bool(token) and token == f"{channel_name}-token"


@pytest.fixture
def authorizer():
    return StaticAuthorizer()


# ---------------------------------------------------------------------------
# Helpers: drive the channel registry through the API
# ---------------------------------------------------------------------------
def admin_headers() -> dict:
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def create_test_channel(client: TestClient, name: str = "foo", password: str = "hunter2") -> dict:
    """Helper: POST /api/channels as admin and return response JSON."""
    resp = client.post("/api/channels/", json={"channelName": name, "password": password},
                       headers=admin_headers())
    assert resp.status_code == 201, resp.text
    return resp.json()


def login_channel(client: TestClient, name: str = "foo", password: str = "hunter2") -> str:
    """Helper: log in to a channel and return its session token."""
    resp = client.post(f"/api/channels/{name}/login", json={"password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["sessionToken"]


def register_channel(store, name: str) -> None:
    """Helper: add a channel to the registry without going through the API."""
    from scheduledesk.store import keys
    store.set_add(keys.CHANNELS_KEY, name)
