"""Authentication-related Pydantic models."""

from datetime import UTC, datetime

from pydantic import BaseModel


class GitHubUser(BaseModel):
    """GitHub profile fields read at login."""

    id: int
    login: str
    name: str | None = None
    avatar_url: str | None = None


class UserIdentity(BaseModel):
    """The signed-in user, fixed for the lifetime of a session."""

    model_config = {"frozen": True}

    id: int
    username: str
    display_name: str
    avatar_url: str | None = None

    @classmethod
    def from_github(cls, profile: GitHubUser) -> "UserIdentity":
        return cls(
            id=profile.id,
            username=profile.login,
            display_name=profile.name or profile.login,
            avatar_url=profile.avatar_url,
        )


class Session(BaseModel):
    """Server-side session record. The access token never leaves the server."""

    session_id: str
    user: UserIdentity
    access_token: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at
