"""API routers."""

from gitdash.api.router import api_router, auth_router

__all__ = ["api_router", "auth_router"]
