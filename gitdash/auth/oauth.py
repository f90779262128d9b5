"""GitHub OAuth authorization-code flow."""

import logging
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError as PydanticValidationError

from gitdash.auth.models import GitHubUser, UserIdentity
from gitdash.config import Settings, get_settings
from gitdash.constants import GITHUB_AUTHORIZE_URL, GITHUB_OAUTH_SCOPE, GITHUB_TOKEN_URL
from gitdash.utils.http_client import get_github_http_client

logger = logging.getLogger(__name__)


class OAuthError(Exception):
    """The code exchange or profile lookup failed."""


class GitHubOAuth:
    """Talks to GitHub's OAuth endpoints on behalf of one login attempt."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._http = http_client or get_github_http_client()

    def authorize_url(self, state: str) -> str:
        params = {
            "client_id": self.settings.github_client_id,
            "redirect_uri": self.settings.github_callback_url,
            "scope": GITHUB_OAUTH_SCOPE,
            "state": state,
        }
        return f"{GITHUB_AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> str:
        """Exchange an authorization code for an access token."""
        try:
            response = await self._http.post(
                GITHUB_TOKEN_URL,
                data={
                    "client_id": self.settings.github_client_id,
                    "client_secret": self.settings.github_client_secret,
                    "code": code,
                    "redirect_uri": self.settings.github_callback_url,
                },
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            raise OAuthError(f"Token exchange failed: {e}") from e

        if response.status_code != 200:
            raise OAuthError(f"Failed to get access token (status {response.status_code})")

        try:
            token_result = response.json()
        except ValueError as e:
            raise OAuthError(f"Unexpected token response: {e}") from e
        if not isinstance(token_result, dict):
            raise OAuthError("Unexpected token response")

        if "error" in token_result:
            raise OAuthError(token_result.get("error_description", token_result["error"]))

        access_token = token_result.get("access_token")
        if not access_token:
            raise OAuthError("No access token received")
        return access_token

    async def fetch_identity(self, access_token: str) -> UserIdentity:
        """Load the GitHub profile for ``access_token``."""
        try:
            response = await self._http.get(
                f"{self.settings.github_api_url.rstrip('/')}/user",
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as e:
            raise OAuthError(f"Profile lookup failed: {e}") from e

        if response.status_code != 200:
            raise OAuthError(f"Failed to get user info (status {response.status_code})")

        try:
            profile = GitHubUser.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise OAuthError(f"Unexpected profile payload: {e}") from e
        return UserIdentity.from_github(profile)

    async def complete(self, code: str) -> tuple[UserIdentity, str]:
        """Run the whole exchange: code to token to identity."""
        access_token = await self.exchange_code(code)
        identity = await self.fetch_identity(access_token)
        logger.info(f"GitHub login completed for {identity.username}")
        return identity, access_token


def get_oauth_client() -> GitHubOAuth:
    """FastAPI dependency returning the OAuth client."""
    return GitHubOAuth()
