"""Main API router."""

from fastapi import APIRouter

from gitdash.api.auth import router as auth_router
from gitdash.api.comments import router as comments_router
from gitdash.api.repos import router as repos_router

api_router = APIRouter(prefix="/api")

api_router.include_router(repos_router, prefix="/repos", tags=["repos"])
api_router.include_router(comments_router, prefix="/repos", tags=["comments"])

__all__ = ["api_router", "auth_router"]
