"""GitHub REST API client.

A narrow client exposing only the operations the proxy endpoints use.
One instance is built per request, bound to that session's access token.
Documentation: https://docs.github.com/en/rest
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from gitdash.constants import GITHUB_API_VERSION, MAX_PAGE_SIZE

logger = logging.getLogger(__name__)


class GitHubAPIError(Exception):
    """A GitHub call failed.

    ``status_code`` is None when no response was received at all.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        rate_limited: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.rate_limited = rate_limited


def _is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    return response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase


def _segment(value: str) -> str:
    """Percent-encode one URL path segment so `#`, `?` and `/` stay literal."""
    return quote(str(value), safe="")


def _repo_path(owner: str, repo: str) -> str:
    return f"/repos/{_segment(owner)}/{_segment(repo)}"


class GitHubClient:
    """Client for the GitHub REST API.

    Usage:
        client = GitHubClient(access_token, http_client=get_github_http_client())
        repos = await client.list_repos(sort="updated", per_page=100)
    """

    def __init__(
        self,
        access_token: str,
        http_client: httpx.AsyncClient,
        base_url: str = "https://api.github.com",
    ):
        self.base_url = base_url.rstrip("/")
        self._http = http_client
        self._headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {access_token}",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Make an API request and return the decoded JSON body.

        Raises:
            GitHubAPIError: On any non-2xx response (including an unfollowed
                redirect) or transport failure
        """
        url = f"{self.base_url}{endpoint}"

        try:
            response = await self._http.request(
                method,
                url,
                headers=self._headers,
                params=params,
                json=json,
            )
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"Cannot reach GitHub: {e}") from e

        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None:
            logger.debug(f"GitHub rate limit remaining: {remaining}")

        if not response.is_success:
            raise GitHubAPIError(
                _error_message(response),
                status_code=response.status_code,
                rate_limited=_is_rate_limited(response),
            )

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ==================== Users ====================

    async def get_authenticated_user(self) -> dict[str, Any]:
        return await self._request("GET", "/user")

    # ==================== Repositories ====================

    async def list_repos(
        self, sort: str = "updated", per_page: int = MAX_PAGE_SIZE
    ) -> list[dict[str, Any]]:
        """List repositories the authenticated user can access."""
        return await self._request(
            "GET", "/user/repos", params={"sort": sort, "per_page": per_page}
        )

    async def get_repo(self, owner: str, repo: str) -> dict[str, Any]:
        return await self._request("GET", _repo_path(owner, repo))

    async def list_branches(
        self, owner: str, repo: str, per_page: int = MAX_PAGE_SIZE
    ) -> list[dict[str, Any]]:
        return await self._request(
            "GET", f"{_repo_path(owner, repo)}/branches", params={"per_page": per_page}
        )

    async def get_branch(self, owner: str, repo: str, branch: str) -> dict[str, Any]:
        return await self._request("GET", f"{_repo_path(owner, repo)}/branches/{_segment(branch)}")

    # ==================== Pull requests ====================

    async def list_pulls(
        self,
        owner: str,
        repo: str,
        state: str = "open",
        sort: str = "created",
        direction: str = "desc",
        per_page: int = MAX_PAGE_SIZE,
    ) -> list[dict[str, Any]]:
        return await self._request(
            "GET",
            f"{_repo_path(owner, repo)}/pulls",
            params={
                "state": state,
                "sort": sort,
                "direction": direction,
                "per_page": per_page,
            },
        )

    async def get_pull(self, owner: str, repo: str, number: int) -> dict[str, Any]:
        return await self._request("GET", f"{_repo_path(owner, repo)}/pulls/{number}")

    async def create_pull(
        self,
        owner: str,
        repo: str,
        title: str,
        head: str,
        base: str,
        body: str | None = None,
        draft: bool = False,
        maintainer_can_modify: bool = True,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "title": title,
            "head": head,
            "base": base,
            "draft": draft,
            "maintainer_can_modify": maintainer_can_modify,
        }
        if body is not None:
            payload["body"] = body
        return await self._request("POST", f"{_repo_path(owner, repo)}/pulls", json=payload)

    # ==================== Files ====================

    async def get_tree(
        self, owner: str, repo: str, tree_sha: str = "HEAD", recursive: bool = False
    ) -> dict[str, Any]:
        """Get a git tree. GitHub treats any ``recursive`` value as true, so omit it when false."""
        params = {"recursive": "1"} if recursive else None
        return await self._request(
            "GET", f"{_repo_path(owner, repo)}/git/trees/{_segment(tree_sha)}", params=params
        )

    async def get_content(
        self, owner: str, repo: str, path: str = ""
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Get a file (object) or directory listing (list)."""
        return await self._request(
            "GET", f"{_repo_path(owner, repo)}/contents/{quote(path.lstrip('/'), safe='/')}"
        )

    # ==================== Comments ====================

    async def list_issue_comments(
        self, owner: str, repo: str, issue_number: int, per_page: int = MAX_PAGE_SIZE
    ) -> list[dict[str, Any]]:
        return await self._request(
            "GET",
            f"{_repo_path(owner, repo)}/issues/{issue_number}/comments",
            params={"per_page": per_page},
        )

    async def create_issue_comment(
        self, owner: str, repo: str, issue_number: int, body: str
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"{_repo_path(owner, repo)}/issues/{issue_number}/comments",
            json={"body": body},
        )
