"""Account and repository index state data access layer."""
import uuid as _uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from repochat.models.account import Account
from repochat.models.repo_index_state import RepoIndexState


async def get_by_id(db: AsyncSession, account_id: _uuid.UUID) -> Account | None:
    return (await db.execute(select(Account).where(Account.id == account_id))).scalar_one_or_none()


async def get_by_github_id(db: AsyncSession, github_id: str) -> Account | None:
    return (await db.execute(select(Account).where(Account.github_id == github_id))).scalar_one_or_none()


async def create(db: AsyncSession, account: Account) -> Account:
    db.add(account)
    await db.flush()
    return account


async def get_repo_state(
    db: AsyncSession, account_id: _uuid.UUID, owner: str, name: str,
) -> RepoIndexState | None:
    q = select(RepoIndexState).where(
        RepoIndexState.account_id == account_id,
        RepoIndexState.owner == owner,
        RepoIndexState.name == name,
    )
    return (await db.execute(q)).scalar_one_or_none()


async def list_repo_states(db: AsyncSession, account_id: _uuid.UUID) -> list[RepoIndexState]:
    q = (
        select(RepoIndexState)
        .where(RepoIndexState.account_id == account_id)
        .order_by(RepoIndexState.created_at)
    )
    return list((await db.execute(q)).scalars().all())


async def delete_repo_state(db: AsyncSession, account_id: _uuid.UUID, owner: str, name: str) -> int:
    result = await db.execute(
        delete(RepoIndexState).where(
            RepoIndexState.account_id == account_id,
            RepoIndexState.owner == owner,
            RepoIndexState.name == name,
        )
    )
    return result.rowcount or 0


async def delete_all_repo_states(db: AsyncSession, account_id: _uuid.UUID) -> int:
    result = await db.execute(delete(RepoIndexState).where(RepoIndexState.account_id == account_id))
    return result.rowcount or 0
