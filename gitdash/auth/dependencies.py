"""Authentication dependencies for FastAPI."""

from typing import Annotated

from fastapi import Depends, Request

from gitdash.auth.models import Session
from gitdash.auth.session_store import SessionStore
from gitdash.config import get_settings
from gitdash.constants import SESSION_COOKIE_NAME
from gitdash.errors import AuthenticationRequired
from gitdash.github.client import GitHubClient
from gitdash.utils.http_client import get_github_http_client


def get_session_store(request: Request) -> SessionStore:
    """The store handle installed on the application."""
    return request.app.state.session_store


async def get_optional_session(
    request: Request,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> Session | None:
    """Get the current session from the cookie, if it is still valid."""
    session_id = request.cookies.get(SESSION_COOKIE_NAME)
    if not session_id:
        return None
    return await store.get(session_id)


async def require_session(
    session: Annotated[Session | None, Depends(get_optional_session)],
) -> Session:
    """Gate for proxy endpoints. Fails closed with 401."""
    if session is None:
        raise AuthenticationRequired()
    return session


def get_github_client(
    session: Annotated[Session, Depends(require_session)],
) -> GitHubClient:
    """Build a GitHub client bound to this request's session token."""
    return GitHubClient(
        session.access_token,
        http_client=get_github_http_client(),
        base_url=get_settings().github_api_url,
    )
