"""Shared persistent httpx client for GitHub calls.

The pool only carries connections. Credentials are attached per request by
``GitHubClient``, so sharing it never leaks one user's token to another.
"""

import httpx

from gitdash.constants import HTTPX_TIMEOUT

_POOL_LIMITS = httpx.Limits(
    max_connections=20,
    max_keepalive_connections=10,
    keepalive_expiry=30,
)

_github_client: httpx.AsyncClient | None = None


def get_github_http_client() -> httpx.AsyncClient:
    """Get persistent httpx client for GitHub API and OAuth calls."""
    global _github_client
    if _github_client is None or _github_client.is_closed:
        _github_client = httpx.AsyncClient(
            timeout=HTTPX_TIMEOUT,
            limits=_POOL_LIMITS,
            # Renamed or transferred repositories answer with a 301
            follow_redirects=True,
        )
    return _github_client


async def close_all_clients() -> None:
    """Close the persistent httpx client. Call during app shutdown."""
    global _github_client
    if _github_client is not None:
        await _github_client.aclose()
        _github_client = None
