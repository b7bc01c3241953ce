"""Account and GitHub repository schemas."""
import uuid
from datetime import datetime

from pydantic import BaseModel


class AccountResponse(BaseModel):
    id: uuid.UUID
    github_id: str
    username: str
    email: str | None = None
    avatar_url: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class GitHubRepoOwner(BaseModel):
    login: str


class GitHubRepoResponse(BaseModel):
    id: int
    name: str
    full_name: str | None = None
    owner: GitHubRepoOwner
    description: str | None = None
    html_url: str | None = None
    stargazers_count: int = 0
    language: str | None = None
    private: bool = False
