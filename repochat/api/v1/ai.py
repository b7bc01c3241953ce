"""AI tools API endpoints - free chat, code analysis, suggestions and fixes."""
from fastapi import APIRouter, Depends

from repochat.dependencies import get_current_account, get_llm
from repochat.integrations.ai.llm_client import LLMClient
from repochat.models.account import Account
from repochat.schemas.ai import (
    AssistantChatRequest,
    CodeAnalyzeRequest,
    CodeFixRequest,
    CodeSuggestRequest,
)
from repochat.schemas.common import APIResponse
from repochat.services import ai_service

router = APIRouter()


# ── Chat ──


@router.post("/chat", response_model=APIResponse)
async def ai_chat(
    body: AssistantChatRequest,
    current_account: Account = Depends(get_current_account),
    llm: LLMClient = Depends(get_llm),
):
    """One-off question without history or repository context."""
    reply = await ai_service.chat(llm, body.message, body.context)
    return {"status": "success", "data": {"message": reply}}


# ── Code tools ──


@router.post("/analyze", response_model=APIResponse)
async def analyze_code(
    body: CodeAnalyzeRequest,
    current_account: Account = Depends(get_current_account),
    llm: LLMClient = Depends(get_llm),
):
    analysis = await ai_service.analyze_code(llm, body.code)
    return {"status": "success", "data": {"analysis": analysis}}


@router.post("/suggest", response_model=APIResponse)
async def suggest_code(
    body: CodeSuggestRequest,
    current_account: Account = Depends(get_current_account),
    llm: LLMClient = Depends(get_llm),
):
    suggestion = await ai_service.suggest_code(llm, body.description)
    return {"status": "success", "data": {"suggestion": suggestion}}


@router.post("/fix", response_model=APIResponse)
async def fix_code(
    body: CodeFixRequest,
    current_account: Account = Depends(get_current_account),
    llm: LLMClient = Depends(get_llm),
):
    fix = await ai_service.fix_code(llm, body.code, body.error)
    return {"status": "success", "data": {"fix": fix}}
