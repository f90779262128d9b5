"""Request and response schemas for the API."""

from pydantic import BaseModel, ConfigDict, Field


class MeResponse(BaseModel):
    """Public view of the signed-in user."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    username: str
    display_name: str = Field(alias="displayName")
    avatar: str | None = None


class MessageResponse(BaseModel):
    message: str


class UserStats(BaseModel):
    """Aggregates computed locally from the profile and repository list."""

    model_config = ConfigDict(populate_by_name=True)

    total_repos: int = Field(alias="totalRepos")
    total_stars: int = Field(alias="totalStars")
    total_forks: int = Field(alias="totalForks")
    followers: int
    following: int
    public_repos: int = Field(alias="publicRepos")
    private_repos: int = Field(alias="privateRepos")


class BranchInfo(BaseModel):
    name: str
    protected: bool = False


class BranchList(BaseModel):
    default_branch: str | None
    branches: list[BranchInfo]


# Fields are optional so missing values produce the 400 this API documents
# instead of FastAPI's 422.
class PullRequestCreate(BaseModel):
    """Schema for opening a pull request."""

    title: str | None = None
    head: str | None = None
    base: str | None = None
    body: str | None = None
    draft: bool = False
    maintainer_can_modify: bool = True


class CommentCreate(BaseModel):
    body: str | None = None


class CommentSummary(BaseModel):
    id: int
    body: str
    user: dict | None = None
    created_at: str | None = None


class CommentCreated(BaseModel):
    message: str
    comment: CommentSummary
