"""Pydantic schemas for the stateless AI tools API."""
from pydantic import BaseModel, Field


class AssistantChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=8000)
    context: str | None = Field(default=None, max_length=20000)


class CodeAnalyzeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50000)


class CodeSuggestRequest(BaseModel):
    description: str = Field(..., min_length=1, max_length=8000)


class CodeFixRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50000)
    error: str = Field(..., min_length=1, max_length=8000)
