"""Chat message data access layer."""
import uuid as _uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from repochat.models.chat_message import ChatMessage


async def create(db: AsyncSession, message: ChatMessage) -> ChatMessage:
    db.add(message)
    await db.flush()
    return message


async def list_recent(
    db: AsyncSession,
    account_id: _uuid.UUID,
    *,
    limit: int = 50,
    exclude_id: _uuid.UUID | None = None,
) -> list[ChatMessage]:
    """Last ``limit`` messages of an account, oldest first."""
    q = select(ChatMessage).where(ChatMessage.account_id == account_id)
    if exclude_id is not None:
        q = q.where(ChatMessage.id != exclude_id)
    q = q.order_by(ChatMessage.created_at.desc()).limit(limit)
    rows = list((await db.execute(q)).scalars().all())
    rows.reverse()
    return rows
