"""Chat message ORM model."""
import enum
import uuid

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from repochat.models.base import Base, CreatedAtMixin, UUIDMixin, pg_enum


class MessageKind(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(Base, UUIDMixin, CreatedAtMixin):
    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("ix_chat_messages_account_created", "account_id", "created_at"),
    )

    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("accounts.id"), nullable=False
    )
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[MessageKind] = mapped_column(
        pg_enum(MessageKind, name="message_kind"), nullable=False, default=MessageKind.USER
    )
