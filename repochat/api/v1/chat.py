"""Chat API - history and request/response messaging."""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from repochat.config import settings
from repochat.dependencies import get_current_account, get_db, get_embedder, get_llm
from repochat.integrations.ai.embeddings import EmbeddingService
from repochat.integrations.ai.llm_client import LLMClient
from repochat.models.account import Account
from repochat.schemas.chat import ChatExchangeResponse, ChatMessageRequest, ChatMessageResponse
from repochat.schemas.common import APIResponse
from repochat.services import chat_service

router = APIRouter()


# GET /chat/history
@router.get("/history", response_model=APIResponse)
async def get_history(
    limit: int = Query(settings.CHAT_HISTORY_LIMIT, ge=1, le=200),
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    messages = await chat_service.get_history(db, current_account.id, limit=limit)
    return APIResponse(
        status="success",
        data=[ChatMessageResponse.model_validate(m).model_dump() for m in messages],
    )


# POST /chat/messages
@router.post("/messages", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    body: ChatMessageRequest,
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm),
    embedder: EmbeddingService = Depends(get_embedder),
):
    user_message, assistant_message = await chat_service.send_message(
        db,
        current_account,
        body.text,
        llm=llm,
        embedder=embedder,
        repo_id=body.repo_id,
        search_query=body.search_query,
    )
    exchange = ChatExchangeResponse(
        user_message=ChatMessageResponse.model_validate(user_message),
        assistant_message=ChatMessageResponse.model_validate(assistant_message),
    )
    return APIResponse(status="success", data=exchange.model_dump())
