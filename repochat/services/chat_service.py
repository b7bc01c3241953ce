"""Chat with optional repository retrieval context.

A message may carry a repository id and a search query. When both are present
and the repository has vectors, the top-ranked files are prepended to the
prompt. Missing indexes degrade silently to context-free chat.
"""
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from repochat.config import settings
from repochat.indexing.similarity import top_k
from repochat.integrations.ai.embeddings import EmbeddingService
from repochat.integrations.ai.llm_client import HistoryEntry, LLMClient
from repochat.models.account import Account
from repochat.models.chat_message import ChatMessage, MessageKind
from repochat.repositories import message_repository, vector_repository

logger = logging.getLogger(__name__)

ASSISTANT_NAME = "AI Assistant"

CONTEXT_HEADER = "Relevant file contents:"


async def build_context(
    db: AsyncSession,
    account_id: uuid.UUID,
    repo_id: str | None,
    search_query: str | None,
    embedder: EmbeddingService,
    limit: int = settings.CHAT_CONTEXT_TOP_K,
) -> str:
    if not repo_id or not search_query or not search_query.strip():
        return ""
    records = await vector_repository.list_for_repo(db, account_id, repo_id)
    if not records:
        logger.debug("No vectors for %s, chatting without context", repo_id)
        return ""

    query_vector = await embedder.embed(search_query)
    ranked = top_k(query_vector, records, limit)
    if not ranked:
        return ""
    blocks = [f"{record.file_path}:\n{record.content}\n" for record, _score in ranked]
    return f"{CONTEXT_HEADER}\n" + "\n".join(blocks)


def build_prompt(context: str, text: str) -> str:
    return f"{context}\n\nUser question: {text}" if context else text


async def get_history(db: AsyncSession, account_id: uuid.UUID, limit: int = settings.CHAT_HISTORY_LIMIT) -> list[ChatMessage]:
    return await message_repository.list_recent(db, account_id, limit=limit)


async def post_user_message(db: AsyncSession, account: Account, text: str) -> ChatMessage:
    return await message_repository.create(
        db, ChatMessage(account_id=account.id, username=account.username, text=text, kind=MessageKind.USER),
    )


async def generate_reply(
    db: AsyncSession,
    account: Account,
    user_message: ChatMessage,
    *,
    llm: LLMClient,
    embedder: EmbeddingService,
    repo_id: str | None = None,
    search_query: str | None = None,
) -> ChatMessage:
    """Ask the completion provider about ``user_message`` and store the reply.

    The prompt history is the account's recent messages before this one.
    ProviderError propagates unretried.
    """
    context = await build_context(db, account.id, repo_id, search_query, embedder)
    recent = await message_repository.list_recent(
        db, account.id, limit=settings.CHAT_PROMPT_HISTORY, exclude_id=user_message.id,
    )
    history: list[HistoryEntry] = [
        {"role": "user" if m.kind == MessageKind.USER else "assistant", "content": m.text}
        for m in recent
    ]

    reply = await llm.complete(history, build_prompt(context, user_message.text))

    assistant_message = await message_repository.create(
        db,
        ChatMessage(account_id=account.id, username=ASSISTANT_NAME, text=reply, kind=MessageKind.ASSISTANT),
    )
    logger.info("Chat reply for account %s (context: %s)", account.id, "yes" if context else "no")
    return assistant_message


async def send_message(
    db: AsyncSession,
    account: Account,
    text: str,
    *,
    llm: LLMClient,
    embedder: EmbeddingService,
    repo_id: str | None = None,
    search_query: str | None = None,
) -> tuple[ChatMessage, ChatMessage]:
    user_message = await post_user_message(db, account, text)
    assistant_message = await generate_reply(
        db, account, user_message, llm=llm, embedder=embedder, repo_id=repo_id, search_query=search_query,
    )
    return user_message, assistant_message
