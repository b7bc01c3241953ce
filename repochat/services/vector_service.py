"""Search, status and cleanup over an account's repository indexes."""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from repochat.config import settings
from repochat.exceptions import NotFoundError
from repochat.indexing.similarity import top_k
from repochat.integrations.ai.embeddings import EmbeddingService
from repochat.models.account import Account
from repochat.models.vector_record import VectorRecord
from repochat.repositories import account_repository, vector_repository
from repochat.utils.helpers import make_repo_id

logger = logging.getLogger(__name__)


async def search(
    db: AsyncSession,
    account: Account,
    repo_id: str,
    query: str,
    embedder: EmbeddingService,
    limit: int = settings.SEARCH_TOP_K,
) -> list[tuple[VectorRecord, float]]:
    """Rank a repository's files against ``query``.

    An unindexed repository yields an empty list without calling the embedder.
    ProviderError from the embedder propagates unretried.
    """
    records = await vector_repository.list_for_repo(db, account.id, repo_id)
    if not records:
        return []
    query_vector = await embedder.embed(query)
    results = top_k(query_vector, records, limit)
    logger.info("Search %s: %d candidates, %d returned", repo_id, len(records), len(results))
    return results


async def get_status(db: AsyncSession, account: Account, recent_limit: int = 5) -> list[dict]:
    """Every RepoIndexState of the account plus per-repository statistics."""
    projections = []
    for state in await account_repository.list_repo_states(db, account.id):
        repo_id = state.repo_id
        recent = await vector_repository.recent_files(db, account.id, repo_id, limit=recent_limit)
        projections.append({
            "owner": state.owner,
            "name": state.name,
            "repo_id": repo_id,
            "status": state.status,
            "last_indexed": state.last_indexed,
            "progress": state.progress,
            "error_message": state.error_message,
            "stats": {
                "total_files": await vector_repository.count_for_repo(db, account.id, repo_id),
                "recent_files": [{"path": path, "last_modified": modified} for path, modified in recent],
            },
        })
    return projections


async def list_files(db: AsyncSession, account: Account, owner: str, repo: str) -> list[VectorRecord]:
    return await vector_repository.list_for_repo(db, account.id, make_repo_id(owner, repo))


async def delete_index(db: AsyncSession, account: Account, owner: str, repo: str) -> int:
    """Remove the repository's vectors and its index state. Returns vectors removed."""
    repo_id = make_repo_id(owner, repo)
    removed = await vector_repository.delete_for_repo(db, account.id, repo_id)
    states = await account_repository.delete_repo_state(db, account.id, owner, repo)
    if not removed and not states:
        raise NotFoundError(f"No index found for {repo_id}")
    logger.info("Deleted index %s for account %s (%d vectors)", repo_id, account.id, removed)
    return removed


async def reset_all(db: AsyncSession, account: Account) -> int:
    removed = await vector_repository.delete_for_account(db, account.id)
    await account_repository.delete_all_repo_states(db, account.id)
    logger.info("Reset all indexes for account %s (%d vectors)", account.id, removed)
    return removed
