"""Per-file embedding record."""
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from repochat.models.base import Base, TimestampMixin, UUIDMixin


class VectorRecord(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "vector_records"
    __table_args__ = (
        UniqueConstraint("account_id", "repo_id", "file_path", name="uq_vector_record_file"),
    )

    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("accounts.id"), nullable=False, index=True
    )
    repo_id: Mapped[str] = mapped_column(String(201), nullable=False, index=True)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Stored as a JSON float array; similarity is computed in Python
    embedding: Mapped[list[float]] = mapped_column(JSONB, nullable=False)
    language: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_modified: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    size: Mapped[int | None] = mapped_column(Integer, nullable=True)

    @property
    def metadata_(self) -> dict:
        return {
            "language": self.language,
            "last_modified": self.last_modified,
            "size": self.size,
        }
