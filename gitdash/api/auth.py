"""Authentication API endpoints."""

import logging
import secrets
from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse

from gitdash.api.schemas import MeResponse, MessageResponse
from gitdash.auth import get_oauth_client, get_optional_session, get_session_store
from gitdash.auth.models import Session
from gitdash.auth.oauth import GitHubOAuth, OAuthError
from gitdash.auth.session_store import SessionStore, clear_session_cookie, set_session_cookie
from gitdash.config import get_settings
from gitdash.constants import SESSION_COOKIE_NAME
from gitdash.errors import AuthenticationRequired

router = APIRouter()
logger = logging.getLogger(__name__)


def _login_redirect() -> RedirectResponse:
    """Send the browser back to the client's login page."""
    return RedirectResponse(url=f"{get_settings().client_url}/", status_code=302)


@router.get("/github")
async def github_login(
    request: Request,
    oauth: Annotated[GitHubOAuth, Depends(get_oauth_client)],
) -> RedirectResponse:
    """Initiate GitHub OAuth login."""
    state = secrets.token_urlsafe(32)
    request.session["oauth_state"] = state
    return RedirectResponse(url=oauth.authorize_url(state), status_code=302)


@router.get("/github/callback")
async def github_callback(
    request: Request,
    oauth: Annotated[GitHubOAuth, Depends(get_oauth_client)],
    store: Annotated[SessionStore, Depends(get_session_store)],
    code: str | None = None,
    state: str | None = None,
) -> RedirectResponse:
    """Handle GitHub OAuth callback."""
    stored_state = request.session.pop("oauth_state", None)
    if not code or not stored_state or not state or not secrets.compare_digest(stored_state, state):
        logger.warning("GitHub callback rejected: missing code or state mismatch")
        return _login_redirect()

    try:
        identity, access_token = await oauth.complete(code)
    except (OAuthError, httpx.HTTPError) as e:
        logger.warning(f"GitHub login failed: {e}")
        return _login_redirect()

    # A fresh login replaces whatever session the browser had before
    previous = request.cookies.get(SESSION_COOKIE_NAME)
    if previous:
        await store.destroy(previous)

    session = await store.create(identity, access_token)
    response = RedirectResponse(url=f"{get_settings().client_url}/dashboard", status_code=302)
    set_session_cookie(response, session)
    return response


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> JSONResponse:
    """Log out the current user."""
    session_id = request.cookies.get(SESSION_COOKIE_NAME)
    if session_id:
        await store.destroy(session_id)
    response = JSONResponse({"message": "Logged out successfully"})
    clear_session_cookie(response)
    return response


@router.get("/me", response_model=MeResponse)
async def get_me(
    session: Annotated[Session | None, Depends(get_optional_session)],
) -> MeResponse:
    """Get current authenticated user."""
    if session is None:
        raise AuthenticationRequired(error="Not authenticated")
    user = session.user
    return MeResponse(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        avatar=user.avatar_url,
    )
