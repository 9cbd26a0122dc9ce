"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema created fresh for each test
- Users for every role
- HTTPX AsyncClient factory authenticated with a session cookie + CSRF header
- A recording real-time channel in place of the WebSocket manager
"""
import os
import uuid
from typing import Any, AsyncGenerator, Callable, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

# Must be set before the app (and its settings) are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ["TESTING"] = "1"
os.environ.setdefault("JWT_SECRET", "test-secret")

from bpm.main import app
from bpm.core.deps import COOKIE_NAME, get_db, get_realtime_channel
from bpm.core.security import create_session_token
from bpm.db import models  # noqa: F401 - registers every table
from bpm.db.base import Base
from bpm.db.enums import Role
from bpm.db.models import User
from bpm.db.session import SessionLocal, engine
from bpm.schemas.auth import UserSession


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    The in-memory database lives on a single shared connection (StaticPool),
    so the app, WebSocket handlers and the test all see the same data.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _make_user(db: Session, role: Role, name: str | None = None) -> User:
    suffix = uuid.uuid4().hex[:8]
    user = User(
        email=f"{role.value}-{suffix}@test.com",
        full_name=name or f"Test {role.value.title()} {suffix}",
        role=role.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    def factory(role: Role = Role.CLIENT, name: str | None = None) -> User:
        return _make_user(db, role, name)
    return factory


@pytest.fixture
def admin(make_user) -> User:
    return make_user(Role.ADMIN, "Alice Admin")


@pytest.fixture
def employee(make_user) -> User:
    return make_user(Role.EMPLOYEE, "Eve Employee")


@pytest.fixture
def other_employee(make_user) -> User:
    return make_user(Role.EMPLOYEE, "Omar Employee")


@pytest.fixture
def client_user(make_user) -> User:
    return make_user(Role.CLIENT, "Carla Client")


@pytest.fixture
def other_client(make_user) -> User:
    return make_user(Role.CLIENT, "Otto Client")


def _session_for(user: User) -> UserSession:
    return UserSession(
        user_id=user.id,
        role=Role(user.role),
        email=user.email,
        full_name=user.full_name,
    )


def token_for(user: User) -> str:
    return create_session_token(user.id, user.role, user.token_version)


@pytest.fixture
def session_for() -> Callable[[User], UserSession]:
    """Service-layer identity for a user (for tests that bypass HTTP)."""
    return _session_for


@pytest.fixture
def auth_token() -> Callable[[User], str]:
    return token_for


# =============================================================================
# Real-time channel
# =============================================================================

class RecordingChannel:
    """Stands in for the WebSocket manager and records every push."""

    def __init__(self):
        self.pushes: list[tuple[uuid.UUID, str, Any]] = []

    async def send_to_user(self, user_id, event: str, data: Any) -> int:
        self.pushes.append((user_id, event, data))
        return 1

    def events_for(self, user_id) -> list[str]:
        return [event for uid, event, _ in self.pushes if uid == user_id]


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client_for(
    db: Session, channel: RecordingChannel
) -> AsyncGenerator[Callable[..., AsyncClient], None]:
    """
    Factory for AsyncClients. `client_for(user)` is authenticated with the
    session cookie and CSRF header; `client_for()` is anonymous.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_realtime_channel] = lambda: channel

    clients: list[AsyncClient] = []

    def factory(user: User | None = None, **kwargs) -> AsyncClient:
        cookies = {COOKIE_NAME: token_for(user)} if user is not None else {}
        c = AsyncClient(
            transport=ASGITransport(app=app, **kwargs),
            base_url="http://test",
            cookies=cookies,
            headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
        )
        clients.append(c)
        return c

    yield factory

    for c in clients:
        await c.aclose()
    app.dependency_overrides.clear()


# =============================================================================
# Domain helpers
# =============================================================================

async def _submit_application(client: AsyncClient, **overrides) -> dict:
    body = {"service_type": "commercial", **overrides}
    res = await client.post("/applications", json=body)
    assert res.status_code == 201, res.text
    return res.json()["data"]


@pytest.fixture
def submit_application():
    """`await submit_application(client, **fields)` POSTs a commercial application."""
    return _submit_application
