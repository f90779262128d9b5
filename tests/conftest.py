"""Pytest configuration and fixtures."""

import os

# Settings are read at import time of gitdash.main
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("SESSION_SECRET", "test-session-secret-0123456789abcdefghij")
os.environ.setdefault("GITHUB_CLIENT_ID", "test-client-id")
os.environ.setdefault("GITHUB_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("CLIENT_URL", "http://localhost:5173")
os.environ.setdefault("RATE_LIMIT_REQUESTS", "100000")
os.environ["SESSION_BACKEND"] = "memory"

from collections.abc import AsyncGenerator, Generator  # noqa: E402
from unittest.mock import AsyncMock, MagicMock, patch  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from gitdash.auth.models import Session, UserIdentity  # noqa: E402
from gitdash.auth.session_store import InMemorySessionStore  # noqa: E402
from gitdash.constants import SESSION_COOKIE_NAME  # noqa: E402
from gitdash.github.client import GitHubClient  # noqa: E402
from gitdash.main import app  # noqa: E402


@pytest.fixture
def session_store() -> Generator[InMemorySessionStore, None, None]:
    """Fresh in-memory store installed on the app for one test."""
    previous = app.state.session_store
    store = InMemorySessionStore()
    app.state.session_store = store
    yield store
    app.state.session_store = previous


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    app.state.rate_limiter.reset()


@pytest.fixture
def test_identity() -> UserIdentity:
    return UserIdentity(
        id=123,
        username="testuser",
        display_name="Test User",
        avatar_url="http://example.com/avatar.png",
    )


@pytest_asyncio.fixture
async def user_session(
    session_store: InMemorySessionStore, test_identity: UserIdentity
) -> Session:
    return await session_store.create(test_identity, "fake_token")


@pytest_asyncio.fixture
async def client(session_store: InMemorySessionStore) -> AsyncGenerator[AsyncClient, None]:
    """Create an unauthenticated test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def authenticated_client(
    session_store: InMemorySessionStore, user_session: Session
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client carrying a live session cookie."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={SESSION_COOKIE_NAME: user_session.session_id},
    ) as ac:
        yield ac


@pytest.fixture
def github_client_cls() -> Generator[MagicMock, None, None]:
    """Replace the per-request GitHub client with a mock.

    The fixture value is the mocked class; ``.return_value`` is the client
    instance every endpoint receives.
    """
    with patch("gitdash.auth.dependencies.GitHubClient") as cls:
        cls.return_value = AsyncMock(spec=GitHubClient)
        yield cls


@pytest.fixture
def github(github_client_cls: MagicMock) -> AsyncMock:
    return github_client_cls.return_value
