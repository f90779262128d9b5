"""Pull request comment endpoints."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from gitdash.api.schemas import CommentCreate, CommentCreated, CommentSummary
from gitdash.auth import get_github_client
from gitdash.constants import MAX_PAGE_SIZE
from gitdash.errors import ValidationError, normalize_upstream_error
from gitdash.github.client import GitHubAPIError, GitHubClient
from gitdash.utils.logging import LogContext

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/{owner}/{repo}/pulls/{number}/comments",
    response_model=CommentCreated,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    owner: str,
    repo: str,
    number: int,
    data: CommentCreate,
    github: Annotated[GitHubClient, Depends(get_github_client)],
) -> CommentCreated:
    """Add a comment to a pull request's conversation."""
    body = (data.body or "").strip()
    if not body:
        raise ValidationError(error="Comment body is required")

    log = LogContext(logger, owner=owner, repo=repo, pull=number)
    try:
        comment = await github.create_issue_comment(owner, repo, number, body)
    except GitHubAPIError as e:
        log.error(f"Error adding comment: {e}")
        raise normalize_upstream_error(
            e,
            "add comment",
            permission_message="You do not have permission to comment on this repository",
            not_found_message="Repository or pull request not found",
        ) from e

    log.info(f"Added comment {comment.get('id')}")
    return CommentCreated(
        message="Comment added successfully",
        comment=CommentSummary(
            id=comment["id"],
            body=comment.get("body", body),
            user=comment.get("user"),
            created_at=comment.get("created_at"),
        ),
    )


@router.get("/{owner}/{repo}/pulls/{number}/comments")
async def list_comments(
    owner: str,
    repo: str,
    number: int,
    github: Annotated[GitHubClient, Depends(get_github_client)],
) -> list[dict[str, Any]]:
    try:
        return await github.list_issue_comments(owner, repo, number, per_page=MAX_PAGE_SIZE)
    except GitHubAPIError as e:
        LogContext(logger, owner=owner, repo=repo, pull=number).error(f"Error fetching comments: {e}")
        raise normalize_upstream_error(e, "fetch comments") from e
