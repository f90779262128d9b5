"""Utility modules for the GitDash application."""

from gitdash.utils.http_client import close_all_clients, get_github_http_client
from gitdash.utils.logging import LogContext, get_logger, setup_logging
from gitdash.utils.rate_limiter import RateLimitConfig, RateLimiter, RateLimitMiddleware

__all__ = [
    # HTTP
    "close_all_clients",
    "get_github_http_client",
    # Logging
    "get_logger",
    "LogContext",
    "setup_logging",
    # Rate limiting
    "RateLimitConfig",
    "RateLimiter",
    "RateLimitMiddleware",
]
