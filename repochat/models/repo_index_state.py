"""Per-repository indexing job state."""
import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from repochat.models.base import Base, TimestampMixin, UUIDMixin, pg_enum
from repochat.utils.helpers import make_repo_id, utc_now


class IndexStatus(str, enum.Enum):
    PENDING = "pending"
    INDEXING = "indexing"
    COMPLETED = "completed"
    ERROR = "error"


class RepoIndexState(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "repo_index_states"
    __table_args__ = (
        UniqueConstraint("account_id", "owner", "name", name="uq_repo_index_state"),
    )

    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[IndexStatus] = mapped_column(
        pg_enum(IndexStatus, name="index_status"), nullable=False, default=IndexStatus.PENDING
    )
    last_indexed: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    progress_current: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    progress_total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    progress_failed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    progress_updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    run_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    # Relationships
    account = relationship("Account", back_populates="repo_states")

    @property
    def repo_id(self) -> str:
        return make_repo_id(self.owner, self.name)

    @property
    def progress(self) -> dict:
        return {
            "current": self.progress_current,
            "total": self.progress_total,
            "failed": self.progress_failed,
            "last_updated": self.progress_updated_at,
        }
