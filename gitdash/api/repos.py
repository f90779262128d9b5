"""Repository, pull request, branch and file proxy endpoints."""

import asyncio
import logging
from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status

from gitdash.api.schemas import BranchInfo, BranchList, PullRequestCreate, UserStats
from gitdash.auth import get_github_client
from gitdash.constants import (
    MAX_COMBINED_PULLS,
    MAX_PAGE_SIZE,
    PULLS_PER_STATE_PAGE,
    VALID_PULL_STATES,
)
from gitdash.errors import ValidationError, normalize_upstream_error
from gitdash.github.client import GitHubAPIError, GitHubClient
from gitdash.utils.logging import LogContext

router = APIRouter()
logger = logging.getLogger(__name__)

GitHub = Annotated[GitHubClient, Depends(get_github_client)]


def _updated_at(pull: dict[str, Any]) -> datetime:
    # GitHub timestamps are ISO 8601 with a trailing Z
    value = pull.get("updated_at")
    if not value:
        return datetime.min
    return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)


def merge_pulls(open_pulls: list[dict], closed_pulls: list[dict]) -> list[dict]:
    """Combine open and closed listings, most recently updated first.

    ``sorted`` is stable, so equal timestamps keep upstream order (open first).
    """
    combined = [*open_pulls, *closed_pulls]
    return sorted(combined, key=_updated_at, reverse=True)[:MAX_COMBINED_PULLS]


def compute_stats(user: dict[str, Any], repos: list[dict[str, Any]]) -> UserStats:
    """Aggregate profile and repository counters."""
    private_repos = sum(1 for repo in repos if repo.get("private"))
    return UserStats(
        total_repos=len(repos),
        total_stars=sum(repo.get("stargazers_count") or 0 for repo in repos),
        total_forks=sum(repo.get("forks_count") or 0 for repo in repos),
        followers=user.get("followers") or 0,
        following=user.get("following") or 0,
        public_repos=len(repos) - private_repos,
        private_repos=private_repos,
    )


def _describe_missing(base_ok: bool, head_ok: bool) -> str:
    missing = [side for side, ok in (("Base", base_ok), ("Head", head_ok)) if not ok]
    return " and ".join(missing)


async def _branch_exists(github: GitHubClient, owner: str, repo: str, branch: str) -> bool:
    """Any lookup failure counts as a missing branch."""
    try:
        await github.get_branch(owner, repo, branch)
    except GitHubAPIError as e:
        logger.debug(f"Branch lookup {owner}/{repo}@{branch} failed: {e}")
        return False
    return True


@router.get("")
async def list_repositories(github: GitHub) -> list[dict[str, Any]]:
    """Most recently updated repositories, forks excluded."""
    try:
        repos = await github.list_repos(sort="updated", per_page=MAX_PAGE_SIZE)
    except GitHubAPIError as e:
        logger.error(f"Error fetching repositories: {e}")
        raise normalize_upstream_error(e, "fetch repositories") from e
    return [repo for repo in repos if not repo.get("fork")]


@router.get("/stats", response_model=UserStats)
async def get_user_stats(github: GitHub) -> UserStats:
    """Totals for the signed-in user, computed from the profile and repository list."""
    try:
        user, repos = await asyncio.gather(
            github.get_authenticated_user(),
            github.list_repos(sort="updated", per_page=MAX_PAGE_SIZE),
        )
    except GitHubAPIError as e:
        logger.error(f"Error fetching user statistics: {e}")
        raise normalize_upstream_error(e, "fetch user statistics") from e
    return compute_stats(user, repos)


@router.get("/{owner}/{repo}/pulls")
async def list_pull_requests(
    owner: str,
    repo: str,
    github: GitHub,
    state: Annotated[str, Query()] = "all",
) -> list[dict[str, Any]]:
    """List pull requests, optionally filtered by state.

    ``state=all`` merges one page of open and one page of closed pull
    requests, so a repository with more than 50 of either loses the overflow.
    """
    if state not in VALID_PULL_STATES:
        raise ValidationError(
            error="Invalid state",
            message=f"state must be one of: {', '.join(VALID_PULL_STATES)}",
        )

    log = LogContext(logger, owner=owner, repo=repo)
    try:
        if state == "all":
            open_pulls, closed_pulls = await asyncio.gather(
                github.list_pulls(
                    owner, repo, state="open", sort="created", per_page=PULLS_PER_STATE_PAGE
                ),
                github.list_pulls(
                    owner, repo, state="closed", sort="updated", per_page=PULLS_PER_STATE_PAGE
                ),
            )
            return merge_pulls(open_pulls, closed_pulls)

        return await github.list_pulls(
            owner,
            repo,
            state=state,
            sort="created" if state == "open" else "updated",
            per_page=MAX_PAGE_SIZE,
        )
    except GitHubAPIError as e:
        log.error(f"Error fetching pull requests: {e}")
        raise normalize_upstream_error(e, "fetch pull requests") from e


@router.post("/{owner}/{repo}/pulls", status_code=status.HTTP_201_CREATED)
async def create_pull_request(
    owner: str,
    repo: str,
    data: PullRequestCreate,
    github: GitHub,
) -> dict[str, Any]:
    """Open a pull request after checking both branches exist."""
    title, head, base = (
        (value or "").strip() for value in (data.title, data.head, data.base)
    )
    if not title or not head or not base:
        raise ValidationError(error="Missing required fields: title, head, base")

    if base == head:
        raise ValidationError(error="Base and head cannot be the same branch")

    base_ok, head_ok = await asyncio.gather(
        _branch_exists(github, owner, repo, base),
        _branch_exists(github, owner, repo, head),
    )
    if not base_ok or not head_ok:
        raise ValidationError(
            error="Invalid branch selection",
            message=f"{_describe_missing(base_ok, head_ok)} branch not found in {owner}/{repo}",
        )

    log = LogContext(logger, owner=owner, repo=repo)
    try:
        pull = await github.create_pull(
            owner,
            repo,
            title=title,
            head=head,
            base=base,
            body=data.body,
            draft=data.draft,
            maintainer_can_modify=data.maintainer_can_modify,
        )
    except GitHubAPIError as e:
        log.error(f"Error creating pull request {head} -> {base}: {e}")
        raise normalize_upstream_error(e, "create pull request") from e

    log.info(f"Created pull request #{pull.get('number')} ({head} -> {base})")
    return pull


@router.get("/{owner}/{repo}/pulls/{number}")
async def get_pull_request(owner: str, repo: str, number: int, github: GitHub) -> dict[str, Any]:
    try:
        return await github.get_pull(owner, repo, number)
    except GitHubAPIError as e:
        LogContext(logger, owner=owner, repo=repo).error(f"Error fetching pull request #{number}: {e}")
        raise normalize_upstream_error(e, "fetch pull request") from e


@router.get("/{owner}/{repo}/branches", response_model=BranchList)
async def list_branches(owner: str, repo: str, github: GitHub) -> BranchList:
    """Branches plus the repository's default branch, for the PR form."""
    try:
        repo_info, branches = await asyncio.gather(
            github.get_repo(owner, repo),
            github.list_branches(owner, repo, per_page=MAX_PAGE_SIZE),
        )
    except GitHubAPIError as e:
        LogContext(logger, owner=owner, repo=repo).error(f"Error fetching branches: {e}")
        raise normalize_upstream_error(e, "fetch branches") from e

    return BranchList(
        default_branch=repo_info.get("default_branch"),
        branches=[
            BranchInfo(name=b["name"], protected=bool(b.get("protected"))) for b in branches
        ],
    )


@router.get("/{owner}/{repo}/files")
async def get_repository_files(
    owner: str,
    repo: str,
    github: GitHub,
    path: str = "",
    recursive: str = "false",
) -> list[dict[str, Any]]:
    """Tree of HEAD, optionally narrowed to entries under ``path``."""
    try:
        tree = await github.get_tree(owner, repo, tree_sha="HEAD", recursive=recursive == "true")
    except GitHubAPIError as e:
        LogContext(logger, owner=owner, repo=repo).error(f"Error fetching repository files: {e}")
        raise normalize_upstream_error(e, "fetch repository files") from e

    entries = tree.get("tree", [])
    if path:
        entries = [item for item in entries if item.get("path", "").startswith(path)]
    return entries


@router.get("/{owner}/{repo}/contents")
async def get_repository_contents(
    owner: str,
    repo: str,
    github: GitHub,
    path: str = "",
) -> dict[str, Any] | list[dict[str, Any]]:
    """A file's content object, or a directory listing."""
    try:
        return await github.get_content(owner, repo, path)
    except GitHubAPIError as e:
        LogContext(logger, owner=owner, repo=repo).error(f"Error fetching contents of '{path}': {e}")
        raise normalize_upstream_error(e, "fetch repository contents") from e
