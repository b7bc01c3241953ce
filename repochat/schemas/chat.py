"""Chat schemas (REST and WebSocket payloads)."""
import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from repochat.models.chat_message import MessageKind


class ChatMessageRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=8000)
    repo_id: str | None = None
    search_query: str | None = None


class ChatMessageResponse(BaseModel):
    id: uuid.UUID
    account_id: uuid.UUID
    username: str
    text: str
    kind: MessageKind
    timestamp: datetime = Field(validation_alias="created_at")

    model_config = {"from_attributes": True}


class ChatExchangeResponse(BaseModel):
    user_message: ChatMessageResponse
    assistant_message: ChatMessageResponse
