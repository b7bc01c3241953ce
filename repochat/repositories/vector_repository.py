"""Vector record data access layer.

Records are unique on (account, repository, file path); ``upsert`` overwrites
in place so re-indexing a file never duplicates it.
"""
import uuid as _uuid
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from repochat.models.vector_record import VectorRecord


async def upsert(
    db: AsyncSession,
    *,
    account_id: _uuid.UUID,
    repo_id: str,
    file_path: str,
    content: str,
    embedding: list[float],
    description: str | None = None,
    language: str | None = None,
    last_modified: datetime | None = None,
    size: int | None = None,
) -> VectorRecord:
    record = await get(db, account_id, repo_id, file_path)
    if record is None:
        record = VectorRecord(account_id=account_id, repo_id=repo_id, file_path=file_path)
        db.add(record)
    record.content = content
    record.embedding = embedding
    record.description = description
    record.language = language
    record.last_modified = last_modified
    record.size = size
    await db.flush()
    return record


async def get(
    db: AsyncSession, account_id: _uuid.UUID, repo_id: str, file_path: str,
) -> VectorRecord | None:
    q = select(VectorRecord).where(
        VectorRecord.account_id == account_id,
        VectorRecord.repo_id == repo_id,
        VectorRecord.file_path == file_path,
    )
    return (await db.execute(q)).scalar_one_or_none()


async def list_for_repo(db: AsyncSession, account_id: _uuid.UUID, repo_id: str) -> list[VectorRecord]:
    """All records of a repository in a stable (insertion) order."""
    q = (
        select(VectorRecord)
        .where(VectorRecord.account_id == account_id, VectorRecord.repo_id == repo_id)
        .order_by(VectorRecord.created_at, VectorRecord.file_path)
    )
    return list((await db.execute(q)).scalars().all())


async def count_for_repo(db: AsyncSession, account_id: _uuid.UUID, repo_id: str) -> int:
    q = select(func.count()).select_from(VectorRecord).where(
        VectorRecord.account_id == account_id, VectorRecord.repo_id == repo_id,
    )
    return (await db.execute(q)).scalar() or 0


async def recent_files(
    db: AsyncSession, account_id: _uuid.UUID, repo_id: str, limit: int = 5,
) -> list[tuple[str, datetime | None]]:
    q = (
        select(VectorRecord.file_path, VectorRecord.last_modified)
        .where(VectorRecord.account_id == account_id, VectorRecord.repo_id == repo_id)
        .order_by(VectorRecord.last_modified.desc().nulls_last(), VectorRecord.file_path)
        .limit(limit)
    )
    return [(row[0], row[1]) for row in (await db.execute(q)).all()]


async def delete_for_repo(db: AsyncSession, account_id: _uuid.UUID, repo_id: str) -> int:
    result = await db.execute(
        delete(VectorRecord).where(VectorRecord.account_id == account_id, VectorRecord.repo_id == repo_id)
    )
    return result.rowcount or 0


async def delete_for_account(db: AsyncSession, account_id: _uuid.UUID) -> int:
    result = await db.execute(delete(VectorRecord).where(VectorRecord.account_id == account_id))
    return result.rowcount or 0
