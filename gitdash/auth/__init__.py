"""Authentication module."""

from gitdash.auth.dependencies import (
    get_github_client,
    get_optional_session,
    get_session_store,
    require_session,
)
from gitdash.auth.oauth import GitHubOAuth, OAuthError, get_oauth_client

__all__ = [
    "GitHubOAuth",
    "OAuthError",
    "get_github_client",
    "get_oauth_client",
    "get_optional_session",
    "get_session_store",
    "require_session",
]
