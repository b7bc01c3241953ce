"""Initial schema - accounts, index states, vector records, chat messages.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UPDATED_AT_TABLES = ["accounts", "repo_index_states", "vector_records"]


def upgrade() -> None:
    # --- ENUM types ---
    index_status = sa.Enum("pending", "indexing", "completed", "error", name="index_status")
    message_kind = sa.Enum("user", "assistant", name="message_kind")

    # --- 1. accounts ---
    op.create_table(
        "accounts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("github_id", sa.String(64), unique=True, nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("access_token", sa.Text, nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- 2. repo_index_states ---
    op.create_table(
        "repo_index_states",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("account_id", UUID(as_uuid=True), sa.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("owner", sa.String(100), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("status", index_status, nullable=False, server_default="pending"),
        sa.Column("last_indexed", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("progress_current", sa.Integer, nullable=False, server_default="0"),
        sa.Column("progress_total", sa.Integer, nullable=False, server_default="0"),
        sa.Column("progress_failed", sa.Integer, nullable=False, server_default="0"),
        sa.Column("progress_updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("run_id", sa.String(36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("account_id", "owner", "name", name="uq_repo_index_state"),
    )

    # --- 3. vector_records ---
    op.create_table(
        "vector_records",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("account_id", UUID(as_uuid=True), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("repo_id", sa.String(201), nullable=False),
        sa.Column("file_path", sa.String(1024), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("embedding", JSONB, nullable=False),
        sa.Column("language", sa.String(50), nullable=True),
        sa.Column("last_modified", sa.DateTime(timezone=True), nullable=True),
        sa.Column("size", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("account_id", "repo_id", "file_path", name="uq_vector_record_file"),
    )

    # --- 4. chat_messages ---
    op.create_table(
        "chat_messages",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("account_id", UUID(as_uuid=True), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("text", sa.Text, nullable=False),
        sa.Column("kind", message_kind, nullable=False, server_default="user"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- Indexes ---
    op.create_index("ix_repo_index_states_account_id", "repo_index_states", ["account_id"])
    op.create_index("ix_vector_records_account_id", "vector_records", ["account_id"])
    op.create_index("ix_vector_records_repo_id", "vector_records", ["repo_id"])
    op.create_index("ix_chat_messages_account_created", "chat_messages", ["account_id", "created_at"])
    # polled by the status endpoint while a run is in progress
    op.create_index(
        "idx_repo_index_states_indexing", "repo_index_states", ["account_id"],
        postgresql_where=sa.text("status = 'indexing'"),
    )

    # --- updated_at trigger ---
    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ language 'plpgsql';
    """)
    for table in UPDATED_AT_TABLES:
        op.execute(f"""
            CREATE TRIGGER trigger_update_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade() -> None:
    for table in UPDATED_AT_TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS trigger_update_{table}_updated_at ON {table}")
    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")

    for table in ["chat_messages", "vector_records", "repo_index_states", "accounts"]:
        op.drop_table(table)

    for enum in ["message_kind", "index_status"]:
        op.execute(f"DROP TYPE IF EXISTS {enum}")
