"""Error taxonomy and the upstream error normalizer.

Every error that reaches a client is one of the ``GitDashError`` subclasses
below and renders as ``{"error": ..., "message": ...}``.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from gitdash.config import get_settings
from gitdash.github.client import GitHubAPIError

logger = logging.getLogger(__name__)


class GitDashError(Exception):
    """Base exception for errors rendered to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal server error"

    def __init__(
        self,
        error: str | None = None,
        message: str | None = None,
        status_code: int | None = None,
    ) -> None:
        if error is not None:
            self.error = error
        if status_code is not None:
            self.status_code = status_code
        self.message = message
        super().__init__(message or self.error)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        return body


class AuthenticationRequired(GitDashError):
    """No session, or the session has expired."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Authentication required"


class ValidationError(GitDashError):
    """Request rejected before any upstream call."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "Invalid request"


class UpstreamPermissionDenied(GitDashError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "Permission denied"


class UpstreamNotFound(GitDashError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Not found"


class UpstreamOther(GitDashError):
    """Any other upstream failure; status is forwarded when GitHub sent one."""


class InternalError(GitDashError):
    pass


def normalize_upstream_error(
    exc: GitHubAPIError,
    action: str,
    permission_message: str | None = None,
    not_found_message: str | None = None,
) -> GitDashError:
    """Map a GitHub failure onto the public error shape.

    Args:
        exc: The failure raised by ``GitHubClient``
        action: What was being attempted, e.g. "fetch branches"
        permission_message: Message override for 403 responses
        not_found_message: Message override for 404 responses

    Returns:
        The tagged error to raise to the client
    """
    if exc.status_code == 403 and not exc.rate_limited:
        return UpstreamPermissionDenied(message=permission_message or exc.message)
    if exc.status_code == 404:
        return UpstreamNotFound(message=not_found_message or exc.message)
    if exc.rate_limited:
        return UpstreamOther(
            error=f"Failed to {action}",
            message="GitHub API rate limit exceeded, please try again later",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        )
    return UpstreamOther(
        error=f"Failed to {action}",
        message=exc.message,
        status_code=exc.status_code or status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def gitdash_error_handler(request: Request, exc: GitDashError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return await gitdash_error_handler(request, ValidationError(message=details))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(status_code=404, content={"error": "Route not found"})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    message = str(exc) if get_settings().is_development else "Something went wrong"
    return await gitdash_error_handler(request, InternalError(message=message))


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Render unexpected exceptions as JSON before they leave the app.

    An ``Exception`` handler alone runs in Starlette's outermost error
    middleware, above CORS, so browsers would get a 500 without CORS headers.
    Install this innermost so the 500 passes back through every other layer.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return await unhandled_error_handler(request, exc)


def register_error_handlers(app: FastAPI) -> None:
    """Install the JSON error handlers on ``app``."""
    app.add_exception_handler(GitDashError, gitdash_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
