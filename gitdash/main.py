"""Main FastAPI application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware

from gitdash.api import api_router, auth_router
from gitdash.auth.session_store import create_session_store
from gitdash.config import get_settings
from gitdash.constants import OAUTH_STATE_COOKIE_NAME, OAUTH_STATE_MAX_AGE
from gitdash.errors import UnhandledErrorMiddleware, register_error_handlers
from gitdash.utils.http_client import close_all_clients
from gitdash.utils.logging import get_logger, setup_logging
from gitdash.utils.rate_limiter import RateLimitConfig, RateLimiter, RateLimitMiddleware

settings = get_settings()
setup_logging()
logger = get_logger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "style-src 'self' 'unsafe-inline'; "
            "script-src 'self'; "
            "img-src 'self' data: https:;"
        )
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info(
        f"{settings.app_name} starting ({settings.app_env}, "
        f"{settings.session_backend} sessions)"
    )

    yield

    await app.state.session_store.close()
    await close_all_clients()
    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    lifespan=lifespan,
)

# The session store is the only server-held state
app.state.session_store = create_session_store(settings)
app.state.rate_limiter = RateLimiter(
    RateLimitConfig(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
)

register_error_handlers(app)

# Middleware (order matters - first added = last executed)
app.add_middleware(UnhandledErrorMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# Holds only the pending OAuth state between /auth/github and the callback
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    session_cookie=OAUTH_STATE_COOKIE_NAME,
    max_age=OAUTH_STATE_MAX_AGE,
    same_site="lax",
    https_only=settings.is_production,
)

app.add_middleware(RateLimitMiddleware, limiter=app.state.rate_limiter)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list({settings.client_url, *settings.cors_origins}),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)

# Routers
app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(api_router)


@app.get("/health", tags=["monitoring"])
async def health_check() -> dict[str, str]:
    """Liveness probe. Does not touch GitHub."""
    return {"status": "OK", "timestamp": datetime.now(UTC).isoformat()}
