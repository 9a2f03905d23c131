"""
Wine Stock — test fixtures

Each test gets its own SQLite database (aiosqlite) wired in through a
get_db dependency override; the app is driven in-process over ASGITransport.
"""
import os
from typing import AsyncGenerator

# Settings are read once at import time: configure before importing the app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["METRICS_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["OPT_LOCK_BASE_DELAY_MS"] = "1"
os.environ["OPT_LOCK_MAX_DELAY_MS"] = "5"
os.environ["OPT_LOCK_JITTER_MS"] = "1"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from winestock.main import app  # noqa: E402
from winestock.core.security import create_access_token, hash_password  # noqa: E402
from winestock.db.database import Base, get_db  # noqa: E402
from winestock.models.user import User  # noqa: E402

API = "/api"
ADMIN_PASSWORD = "admin-pass"
OPERATOR_PASSWORD = "operator-pass"


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'winestock.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """A session for seeding and inspecting the DB directly."""
    async with session_maker() as sess:
        yield sess


@pytest_asyncio.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    async def _get_db():
        async with session_maker() as sess:
            yield sess

    app.dependency_overrides[get_db] = _get_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


async def _make_user(session_maker, username: str, password: str, is_admin: bool = False) -> User:
    async with session_maker() as sess:
        user = User(username=username, hashed_password=hash_password(password), is_admin=is_admin)
        sess.add(user)
        await sess.commit()
        await sess.refresh(user)
        return user


def token_for(user: User) -> str:
    return create_access_token({"sub": user.id, "username": user.username, "is_admin": user.is_admin})


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest_asyncio.fixture
async def admin_user(session_maker) -> User:
    return await _make_user(session_maker, "admin", ADMIN_PASSWORD, is_admin=True)


@pytest_asyncio.fixture
async def operator_user(session_maker) -> User:
    return await _make_user(session_maker, "cellar", OPERATOR_PASSWORD)


@pytest.fixture
def admin_headers(admin_user) -> dict[str, str]:
    return bearer(admin_user)


@pytest.fixture
def operator_headers(operator_user) -> dict[str, str]:
    return bearer(operator_user)


@pytest.fixture
def make_wine(client, operator_headers):
    """POST /wine and return the created wine JSON."""

    async def _make(name: str = "Cabernet", type_: str = "red", **quantities):
        body = {"name": name, "type": type_, **quantities}
        r = await client.post(f"{API}/wine", json=body, headers=operator_headers)
        assert r.status_code == 201, r.text
        return r.json()["wine"]

    return _make
