"""GitHub REST API integration."""

from gitdash.github.client import GitHubAPIError, GitHubClient

__all__ = ["GitHubAPIError", "GitHubClient"]
