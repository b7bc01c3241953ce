"""SQLAlchemy ORM models."""
from repochat.models.base import Base, CreatedAtMixin, TimestampMixin, UUIDMixin
from repochat.models.account import Account
from repochat.models.repo_index_state import IndexStatus, RepoIndexState
from repochat.models.vector_record import VectorRecord
from repochat.models.chat_message import ChatMessage, MessageKind

__all__ = [
    "Base",
    "CreatedAtMixin",
    "TimestampMixin",
    "UUIDMixin",
    "Account",
    "IndexStatus",
    "RepoIndexState",
    "VectorRecord",
    "ChatMessage",
    "MessageKind",
]
