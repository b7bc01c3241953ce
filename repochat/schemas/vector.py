"""Indexing, status and search schemas."""
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from repochat.models.repo_index_state import IndexStatus
from repochat.utils.helpers import split_repo_id


class ProgressResponse(BaseModel):
    current: int
    total: int
    failed: int
    last_updated: datetime


class RepoIndexStateResponse(BaseModel):
    owner: str
    name: str
    repo_id: str
    status: IndexStatus
    last_indexed: datetime
    progress: ProgressResponse
    error_message: str | None = None

    model_config = {"from_attributes": True}


class RecentFile(BaseModel):
    path: str
    last_modified: datetime | None = None


class RepoStats(BaseModel):
    total_files: int
    recent_files: list[RecentFile]


class RepoStatusResponse(RepoIndexStateResponse):
    stats: RepoStats


class FileMetadata(BaseModel):
    language: str | None = None
    last_modified: datetime | None = None
    size: int | None = None


class IndexedFileResponse(BaseModel):
    repo_id: str
    file_path: str
    content: str
    description: str | None = None
    metadata: FileMetadata = Field(validation_alias="metadata_")

    model_config = {"from_attributes": True}


class SearchRequest(BaseModel):
    repo_id: str = Field(..., min_length=3, max_length=201)
    query: str = Field(..., min_length=1, max_length=2000)

    @field_validator("repo_id")
    @classmethod
    def _owner_slash_name(cls, v: str) -> str:
        split_repo_id(v)
        return v


class SearchResult(BaseModel):
    file_path: str
    content: str
    description: str | None = None
    similarity: float
    metadata: FileMetadata
