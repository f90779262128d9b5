"""Tests for repository proxy endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient

from gitdash.api.repos import compute_stats, merge_pulls
from gitdash.github.client import GitHubAPIError

REPOS = [
    {"id": 1, "name": "repo1", "fork": False, "stargazers_count": 5, "forks_count": 2, "private": False},
    {"id": 2, "name": "repo2", "fork": True, "stargazers_count": 3, "forks_count": 1, "private": True},
]


def _pull(number: int, state: str, updated_at: str) -> dict:
    return {"id": number, "number": number, "state": state, "updated_at": updated_at}


class TestAuthorizationGate:
    """Every proxy endpoint fails closed without a session."""

    ENDPOINTS = [
        ("GET", "/api/repos"),
        ("GET", "/api/repos/stats"),
        ("GET", "/api/repos/o/r/pulls"),
        ("GET", "/api/repos/o/r/pulls?state=open"),
        ("POST", "/api/repos/o/r/pulls"),
        ("GET", "/api/repos/o/r/pulls/1"),
        ("GET", "/api/repos/o/r/branches"),
        ("GET", "/api/repos/o/r/files"),
        ("GET", "/api/repos/o/r/contents"),
        ("GET", "/api/repos/o/r/pulls/1/comments"),
        ("POST", "/api/repos/o/r/pulls/1/comments"),
    ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method,url", ENDPOINTS)
    async def test_requires_session(
        self, client: AsyncClient, github_client_cls: MagicMock, method: str, url: str
    ):
        """Test that protected endpoints require authentication."""
        response = await client.request(method, url, json={"title": "t", "head": "a", "base": "b", "body": "x"})
        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}
        github_client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_session_cookie_rejected(
        self, client: AsyncClient, github_client_cls: MagicMock
    ):
        """Test an unknown session id is treated as signed out."""
        client.cookies.set("gitdash_session", "not-a-real-session")
        response = await client.get("/api/repos")
        assert response.status_code == 401
        github_client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_client_bound_to_session_token(
        self, authenticated_client: AsyncClient, github_client_cls: MagicMock, github: AsyncMock
    ):
        """Test the GitHub client is built with the session's token."""
        github.list_repos.return_value = []
        await authenticated_client.get("/api/repos")
        github_client_cls.assert_called_once()
        assert github_client_cls.call_args.args[0] == "fake_token"


class TestListRepositories:
    """Tests for GET /api/repos."""

    @pytest.mark.asyncio
    async def test_excludes_forks(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test forks are filtered out of the repository list."""
        github.list_repos.return_value = REPOS

        response = await authenticated_client.get("/api/repos")

        assert response.status_code == 200
        assert response.json() == [REPOS[0]]
        github.list_repos.assert_awaited_once_with(sort="updated", per_page=100)

    @pytest.mark.asyncio
    async def test_upstream_failure_normalized(
        self, authenticated_client: AsyncClient, github: AsyncMock
    ):
        """Test a GitHub failure renders as a normalized error."""
        github.list_repos.side_effect = GitHubAPIError("Bad credentials", status_code=401)

        response = await authenticated_client.get("/api/repos")

        assert response.status_code == 401
        assert response.json() == {"error": "Failed to fetch repositories", "message": "Bad credentials"}


class TestUserStats:
    """Tests for GET /api/repos/stats."""

    @pytest.mark.asyncio
    async def test_stats(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test statistics combine the profile and repository list."""
        github.get_authenticated_user.return_value = {"followers": 10, "following": 5}
        github.list_repos.return_value = REPOS

        response = await authenticated_client.get("/api/repos/stats")

        assert response.status_code == 200
        assert response.json() == {
            "totalRepos": 2,
            "totalStars": 8,
            "totalForks": 3,
            "followers": 10,
            "following": 5,
            "publicRepos": 1,
            "privateRepos": 1,
        }

    def test_compute_stats_partition(self):
        """Test public and private counts partition the total."""
        repos = [
            {"stargazers_count": 1, "forks_count": 0, "private": True},
            {"stargazers_count": None, "forks_count": 4},
            {"stargazers_count": 7, "forks_count": 1, "private": False},
        ]
        stats = compute_stats({}, repos)
        assert stats.total_repos == 3
        assert stats.total_stars == 8
        assert stats.total_forks == 5
        assert stats.public_repos + stats.private_repos == stats.total_repos
        assert stats.private_repos == 1
        assert stats.followers == 0

    @pytest.mark.asyncio
    async def test_stats_profile_failure(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test a failed profile lookup fails the whole request."""
        github.get_authenticated_user.side_effect = GitHubAPIError("Server Error", status_code=502)
        github.list_repos.return_value = REPOS

        response = await authenticated_client.get("/api/repos/stats")

        assert response.status_code == 502
        assert response.json()["error"] == "Failed to fetch user statistics"


class TestListPullRequests:
    """Tests for GET /api/repos/{owner}/{repo}/pulls."""

    @pytest.mark.asyncio
    async def test_all_merges_and_sorts(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test state=all merges open and closed pulls newest first."""
        open_pulls = [
            _pull(3, "open", "2024-01-03T00:00:00Z"),
            _pull(1, "open", "2024-01-01T00:00:00Z"),
        ]
        closed_pulls = [
            _pull(4, "closed", "2024-01-04T00:00:00Z"),
            _pull(2, "closed", "2024-01-02T00:00:00Z"),
        ]

        async def list_pulls(owner, repo, state, sort, per_page, **kwargs):
            return open_pulls if state == "open" else closed_pulls

        github.list_pulls.side_effect = list_pulls

        response = await authenticated_client.get("/api/repos/o/r/pulls?state=all")

        assert response.status_code == 200
        assert [p["number"] for p in response.json()] == [4, 3, 2, 1]
        assert github.list_pulls.await_count == 2
        calls = {c.kwargs["state"]: c.kwargs for c in github.list_pulls.await_args_list}
        assert calls["open"]["sort"] == "created"
        assert calls["closed"]["sort"] == "updated"
        assert calls["open"]["per_page"] == calls["closed"]["per_page"] == 50

    @pytest.mark.asyncio
    async def test_default_state_is_all(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test state defaults to all."""
        github.list_pulls.return_value = []
        response = await authenticated_client.get("/api/repos/o/r/pulls")
        assert response.status_code == 200
        assert github.list_pulls.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("state,sort", [("open", "created"), ("closed", "updated")])
    async def test_single_state(
        self, authenticated_client: AsyncClient, github: AsyncMock, state: str, sort: str
    ):
        """Test a single state makes one call for a full page."""
        github.list_pulls.return_value = [_pull(1, state, "2024-01-01T00:00:00Z")]

        response = await authenticated_client.get(f"/api/repos/o/r/pulls?state={state}")

        assert response.status_code == 200
        assert len(response.json()) == 1
        github.list_pulls.assert_awaited_once_with(
            "o", "r", state=state, sort=sort, per_page=100
        )

    @pytest.mark.asyncio
    async def test_invalid_state(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test an unknown state is rejected."""
        response = await authenticated_client.get("/api/repos/o/r/pulls?state=merged")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid state"
        github.list_pulls.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_found(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test a missing repository returns 404."""
        github.list_pulls.side_effect = GitHubAPIError("Not Found", status_code=404)
        response = await authenticated_client.get("/api/repos/o/missing/pulls?state=open")
        assert response.status_code == 404
        assert response.json()["error"] == "Not found"

    def test_merge_truncates_to_100(self):
        """Test the merged list is capped at 100 pulls."""
        open_pulls = [_pull(i, "open", f"2024-01-01T00:00:{i % 60:02d}Z") for i in range(50)]
        closed_pulls = [_pull(100 + i, "closed", "2023-06-01T00:00:00Z") for i in range(60)]
        merged = merge_pulls(open_pulls, closed_pulls)
        assert len(merged) == 100
        timestamps = [p["updated_at"] for p in merged]
        assert timestamps == sorted(timestamps, reverse=True)

    def test_merge_keeps_upstream_order_on_ties(self):
        """Test equal timestamps keep their upstream order."""
        same = "2024-01-01T00:00:00Z"
        merged = merge_pulls([_pull(1, "open", same), _pull(2, "open", same)], [_pull(3, "closed", same)])
        assert [p["number"] for p in merged] == [1, 2, 3]


class TestGetPullRequest:
    """Tests for GET /api/repos/{owner}/{repo}/pulls/{number}."""

    @pytest.mark.asyncio
    async def test_get_pull(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test fetching a single pull request."""
        github.get_pull.return_value = {"id": 102, "number": 7, "title": "Specific PR"}
        response = await authenticated_client.get("/api/repos/o/r/pulls/7")
        assert response.status_code == 200
        assert response.json()["title"] == "Specific PR"
        github.get_pull.assert_awaited_once_with("o", "r", 7)

    @pytest.mark.asyncio
    async def test_non_numeric_number(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test a non-numeric pull number is a 400."""
        response = await authenticated_client.get("/api/repos/o/r/pulls/abc")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"
        github.get_pull.assert_not_awaited()


class TestListBranches:
    """Tests for GET /api/repos/{owner}/{repo}/branches."""

    @pytest.mark.asyncio
    async def test_branches(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test branches are returned with the default branch."""
        github.get_repo.return_value = {"default_branch": "main"}
        github.list_branches.return_value = [
            {"name": "main", "protected": True, "commit": {"sha": "abc"}},
            {"name": "dev", "protected": False, "commit": {"sha": "def"}},
        ]

        response = await authenticated_client.get("/api/repos/o/r/branches")

        assert response.status_code == 200
        assert response.json() == {
            "default_branch": "main",
            "branches": [
                {"name": "main", "protected": True},
                {"name": "dev", "protected": False},
            ],
        }

    @pytest.mark.asyncio
    async def test_permission_denied(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test a GitHub 403 maps to permission denied."""
        github.get_repo.side_effect = GitHubAPIError("Resource not accessible", status_code=403)
        github.list_branches.return_value = []

        response = await authenticated_client.get("/api/repos/o/r/branches")

        assert response.status_code == 403
        assert response.json() == {"error": "Permission denied", "message": "Resource not accessible"}


class TestCreatePullRequest:
    """Tests for POST /api/repos/{owner}/{repo}/pulls."""

    @staticmethod
    def _branches(*existing: str):
        async def get_branch(owner, repo, branch):
            if branch in existing:
                return {"name": branch}
            raise GitHubAPIError("Branch not found", status_code=404)

        return get_branch

    @pytest.mark.asyncio
    async def test_creates_pull(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test creating a pull request after both branches are found."""
        github.get_branch.side_effect = self._branches("validHead", "validBase")
        github.create_pull.return_value = {"id": 101, "number": 5, "title": "t"}

        response = await authenticated_client.post(
            "/api/repos/o/r/pulls",
            json={"title": "t", "head": "validHead", "base": "validBase"},
        )

        assert response.status_code == 201
        assert response.json()["id"] == 101
        github.create_pull.assert_awaited_once_with(
            "o",
            "r",
            title="t",
            head="validHead",
            base="validBase",
            body=None,
            draft=False,
            maintainer_can_modify=True,
        )

    @pytest.mark.asyncio
    async def test_passes_optional_fields(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test body, draft and maintainer_can_modify are forwarded."""
        github.get_branch.side_effect = self._branches("feature", "main")
        github.create_pull.return_value = {"id": 1}

        await authenticated_client.post(
            "/api/repos/o/r/pulls",
            json={
                "title": "Add thing",
                "head": "feature",
                "base": "main",
                "body": "Details",
                "draft": True,
                "maintainer_can_modify": False,
            },
        )

        kwargs = github.create_pull.await_args.kwargs
        assert kwargs["body"] == "Details"
        assert kwargs["draft"] is True
        assert kwargs["maintainer_can_modify"] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"head": "a", "base": "b"},
            {"title": "t", "base": "b"},
            {"title": "t", "head": "a"},
            {"title": "   ", "head": "a", "base": "b"},
            {},
        ],
    )
    async def test_missing_fields(self, authenticated_client: AsyncClient, github: AsyncMock, payload: dict):
        """Test missing title, head or base is rejected."""
        response = await authenticated_client.post("/api/repos/o/r/pulls", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields: title, head, base"
        github.get_branch.assert_not_awaited()
        github.create_pull.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_same_branch_rejected(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test base and head must differ, with no GitHub calls."""
        github.get_branch.side_effect = self._branches("main")

        response = await authenticated_client.post(
            "/api/repos/o/r/pulls",
            json={"title": "t", "head": "main", "base": "main"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Base and head cannot be the same branch"
        github.create_pull.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "head,base,side",
        [
            ("validHead", "missingBase", "Base"),
            ("missingHead", "validBase", "Head"),
            ("missingHead", "missingBase", "Base and Head"),
        ],
    )
    async def test_missing_branch(
        self, authenticated_client: AsyncClient, github: AsyncMock, head: str, base: str, side: str
    ):
        """Test a missing branch is reported by side."""
        github.get_branch.side_effect = self._branches("validHead", "validBase")

        response = await authenticated_client.post(
            "/api/repos/o/r/pulls",
            json={"title": "t", "head": head, "base": base},
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": "Invalid branch selection",
            "message": f"{side} branch not found in o/r",
        }
        github.create_pull.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_branch_lookup_network_error_counts_as_missing(
        self, authenticated_client: AsyncClient, github: AsyncMock
    ):
        """Test a failed branch lookup counts as a missing branch."""
        github.get_branch.side_effect = GitHubAPIError("Cannot reach GitHub")

        response = await authenticated_client.post(
            "/api/repos/o/r/pulls",
            json={"title": "t", "head": "a", "base": "b"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid branch selection"

    @pytest.mark.asyncio
    async def test_upstream_rejection_forwards_status(
        self, authenticated_client: AsyncClient, github: AsyncMock
    ):
        """Test GitHub's rejection of the pull request forwards its status."""
        github.get_branch.side_effect = self._branches("a", "b")
        github.create_pull.side_effect = GitHubAPIError(
            "A pull request already exists for o:a.", status_code=422
        )

        response = await authenticated_client.post(
            "/api/repos/o/r/pulls",
            json={"title": "t", "head": "a", "base": "b"},
        )

        assert response.status_code == 422
        assert response.json() == {
            "error": "Failed to create pull request",
            "message": "A pull request already exists for o:a.",
        }

    @pytest.mark.asyncio
    async def test_malformed_json(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test a malformed body is a 400."""
        response = await authenticated_client.post(
            "/api/repos/o/r/pulls",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        github.create_pull.assert_not_awaited()


class TestRepositoryFiles:
    """Tests for GET /api/repos/{owner}/{repo}/files and /contents."""

    TREE = {
        "sha": "abc",
        "tree": [
            {"path": "file1.js", "type": "blob"},
            {"path": "dir", "type": "tree"},
            {"path": "dir/file2.js", "type": "blob"},
        ],
        "truncated": False,
    }

    @pytest.mark.asyncio
    async def test_tree(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test the default tree listing is not recursive."""
        github.get_tree.return_value = self.TREE

        response = await authenticated_client.get("/api/repos/o/r/files")

        assert response.status_code == 200
        assert response.json() == self.TREE["tree"]
        github.get_tree.assert_awaited_once_with("o", "r", tree_sha="HEAD", recursive=False)

    @pytest.mark.asyncio
    async def test_tree_recursive_with_prefix(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test recursive listing filtered by path prefix."""
        github.get_tree.return_value = self.TREE

        response = await authenticated_client.get("/api/repos/o/r/files?path=dir/&recursive=true")

        assert response.json() == [{"path": "dir/file2.js", "type": "blob"}]
        github.get_tree.assert_awaited_once_with("o", "r", tree_sha="HEAD", recursive=True)

    @pytest.mark.asyncio
    async def test_contents_directory(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test directory contents are returned as a list."""
        listing = [{"name": "file1.js", "type": "file"}, {"name": "src", "type": "dir"}]
        github.get_content.return_value = listing

        response = await authenticated_client.get("/api/repos/o/r/contents")

        assert response.status_code == 200
        assert response.json() == listing
        github.get_content.assert_awaited_once_with("o", "r", "")

    @pytest.mark.asyncio
    async def test_contents_file(self, authenticated_client: AsyncClient, github: AsyncMock):
        """Test file contents are returned as an object."""
        file_entry = {"name": "README.md", "type": "file", "encoding": "base64", "content": "SGk="}
        github.get_content.return_value = file_entry

        response = await authenticated_client.get("/api/repos/o/r/contents?path=README.md")

        assert response.json() == file_entry
        github.get_content.assert_awaited_once_with("o", "r", "README.md")
