"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import RedisDsn, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App
    app_env: Literal["development", "production", "test"] = "development"
    session_secret: str

    @field_validator("session_secret")
    @classmethod
    def validate_session_secret(cls, v: str) -> str:
        """Ensure the session secret is strong enough."""
        if len(v) < 32:
            raise ValueError("SESSION_SECRET must be at least 32 characters long")
        if v == "your-super-secret-session-key-change-in-production":
            raise ValueError("SESSION_SECRET must be changed from the default value")
        return v

    app_url: str = "http://localhost:3001"
    app_name: str = "GitDash"

    # Single-page client (login page and dashboard live here)
    client_url: str = "http://localhost:5173"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:5174"]

    # GitHub OAuth
    github_client_id: str
    github_client_secret: str
    github_callback_url: str = ""
    github_api_url: str = "https://api.github.com"

    # Sessions
    session_backend: Literal["memory", "redis"] = "memory"
    session_ttl_hours: int = 24
    redis_url: RedisDsn | None = None

    # Blanket per-IP rate limit
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 15 * 60

    @model_validator(mode="after")
    def fill_defaults(self) -> "Settings":
        """Derive the callback URL and check backend requirements."""
        if not self.github_callback_url:
            self.github_callback_url = f"{self.app_url}/auth/github/callback"
        if self.session_backend == "redis" and self.redis_url is None:
            raise ValueError("REDIS_URL is required when SESSION_BACKEND=redis")
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]
