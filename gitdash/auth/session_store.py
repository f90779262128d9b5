"""Server-side session storage.

The browser only ever holds an opaque, random session id in an HTTP-only
cookie. Identity and the GitHub access token stay in the store.
"""

import logging
import secrets
from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta

import redis.asyncio as redis
from fastapi import Response

from gitdash.auth.models import Session, UserIdentity
from gitdash.config import Settings, get_settings
from gitdash.constants import SESSION_COOKIE_NAME, SESSION_KEY_PREFIX

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionStore(ABC):
    """Create, look up and destroy sessions.

    Expiry is fixed from creation time and checked lazily: ``get`` on an
    expired session destroys it and returns None.
    """

    def __init__(self, ttl: timedelta = timedelta(hours=24)) -> None:
        self.ttl = ttl

    def _new_session(self, identity: UserIdentity, access_token: str) -> Session:
        now = datetime.now(UTC)
        return Session(
            session_id=new_session_id(),
            user=identity,
            access_token=access_token,
            created_at=now,
            expires_at=now + self.ttl,
        )

    @abstractmethod
    async def create(self, identity: UserIdentity, access_token: str) -> Session:
        """Start a session for ``identity``."""

    @abstractmethod
    async def get(self, session_id: str) -> Session | None:
        """Return the live session for ``session_id``, if any."""

    @abstractmethod
    async def destroy(self, session_id: str) -> None:
        """Forget ``session_id``. Unknown ids are ignored."""

    async def close(self) -> None:
        return None


class InMemorySessionStore(SessionStore):
    """Process-local store. Sessions are lost on restart."""

    def __init__(self, ttl: timedelta = timedelta(hours=24)) -> None:
        super().__init__(ttl)
        self._sessions: dict[str, Session] = {}

    async def create(self, identity: UserIdentity, access_token: str) -> Session:
        session = self._new_session(identity, access_token)
        self._sessions[session.session_id] = session
        return session

    async def get(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.is_expired():
            logger.debug(f"Session for {session.user.username} expired")
            await self.destroy(session_id)
            return None
        return session

    async def destroy(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore(SessionStore):
    """Redis-backed store so sessions survive restarts and span workers.

    Keys expire through Redis TTLs; ``get`` still checks ``expires_at``.
    """

    def __init__(self, client: redis.Redis, ttl: timedelta = timedelta(hours=24)) -> None:
        super().__init__(ttl)
        self._client = client

    @classmethod
    def from_url(cls, url: str, ttl: timedelta = timedelta(hours=24)) -> "RedisSessionStore":
        return cls(redis.from_url(url, encoding="utf-8", decode_responses=True), ttl)

    @staticmethod
    def _key(session_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}{session_id}"

    async def create(self, identity: UserIdentity, access_token: str) -> Session:
        session = self._new_session(identity, access_token)
        await self._client.setex(
            self._key(session.session_id),
            self.ttl,
            session.model_dump_json(),
        )
        return session

    async def get(self, session_id: str) -> Session | None:
        raw = await self._client.get(self._key(session_id))
        if raw is None:
            return None
        session = Session.model_validate_json(raw)
        if session.is_expired():
            await self.destroy(session_id)
            return None
        return session

    async def destroy(self, session_id: str) -> None:
        await self._client.delete(self._key(session_id))

    async def close(self) -> None:
        await self._client.aclose()


def create_session_store(settings: Settings | None = None) -> SessionStore:
    """Build the configured session backend."""
    settings = settings or get_settings()
    ttl = timedelta(hours=settings.session_ttl_hours)
    if settings.session_backend == "redis":
        logger.info("Using Redis session store")
        return RedisSessionStore.from_url(str(settings.redis_url), ttl)
    return InMemorySessionStore(ttl)


def set_session_cookie(response: Response, session: Session) -> None:
    """Attach the session id cookie to ``response``."""
    settings = get_settings()
    max_age = int((session.expires_at - datetime.now(UTC)).total_seconds())
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session.session_id,
        max_age=max(max_age, 0),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    settings = get_settings()
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
