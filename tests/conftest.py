"""
Shared test fixtures for the Keystone test suite.

Every test gets its own in-memory aiosqlite database (aiosqlite + AsyncSession)
and talks to the app through httpx's ASGI transport.
"""

import os
import sys
from datetime import datetime
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["SECRET_KEY"] = "test-secret-key-for-keystone-suite"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["EXEMPT_IDENTITY"] = "boss@keystone.test"
os.environ["LOGIN_TIMEZONE_OFFSET"] = "+06:00"
os.environ["REGISTRATION_REQUIRES_APPROVAL"] = "true"
os.environ.pop("NOTIFY_WEBHOOK_URL", None)

from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.v1.deps import get_clock, get_db
from app.core.security import get_password_hash
from app.db.base import Base
from app.db.session import enable_sqlite_foreign_keys
from app.main import app
from app.models.system_settings import SystemSettings
from app.models.user import Role, User
from app.services.time_window import LOGIN_TZ, hhmm_to_minutes

PASSWORD = "secret123"
API = "/api/v1"


@pytest.fixture
async def test_engine():
    """Fresh in-memory database with all tables for one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
def override_db(session_factory):
    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session_factory):
    """Insert a user straight into the database."""

    async def _make(
        email: str,
        *,
        role: Role | str = Role.ADMIN,
        is_approved: bool = True,
        is_active: bool = True,
        password: str = PASSWORD,
        phone: str | None = None,
        full_name: str | None = None,
    ) -> User:
        async with session_factory() as session:
            user = User(
                email=email.lower(),
                phone=phone,
                hashed_password=get_password_hash(password),
                full_name=full_name or email.split("@")[0].title(),
                role=role.value if isinstance(role, Role) else role,
                is_approved=is_approved,
                is_active=is_active,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make


@pytest.fixture
def login(async_client: AsyncClient):
    """Log in through the API and return bearer headers for the new session."""

    async def _login(identifier: str, password: str = PASSWORD) -> dict[str, str]:
        resp = await async_client.post(
            f"{API}/auth/login", json={"identifier": identifier, "password": password}
        )
        assert resp.status_code == 200, resp.text
        # Tests authenticate explicitly via headers, never via the cookie jar
        async_client.cookies.clear()
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _login


@pytest.fixture
def set_clock():
    """Pin the login clock to a given local time of day."""

    def _set(hour: int, minute: int = 0) -> datetime:
        moment = datetime(2026, 3, 10, hour, minute, tzinfo=LOGIN_TZ)
        app.dependency_overrides[get_clock] = lambda: (lambda: moment)
        return moment

    return _set


@pytest.fixture
async def admin_headers(make_user, login) -> dict[str, str]:
    await make_user("admin@keystone.test", role=Role.ADMIN)
    return await login("admin@keystone.test")


@pytest.fixture
def login_hours(session_factory):
    """Switch the login-hours restriction on for ``HH:MM`` start / end."""

    async def _restrict(start: str, end: str) -> None:
        async with session_factory() as session:
            await session.merge(
                SystemSettings(
                    id=1,
                    login_restriction_enabled=True,
                    login_start_minute=hhmm_to_minutes(start),
                    login_end_minute=hhmm_to_minutes(end),
                )
            )
            await session.commit()

    return _restrict
