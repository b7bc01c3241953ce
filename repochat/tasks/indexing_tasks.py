"""Repository indexing tasks on the ``indexing`` queue.

The request that starts an index only persists the ``indexing`` transition and
enqueues ``index_repository``; the worker owns the rest of the run.
"""
import asyncio
import logging
import uuid

from repochat.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def dispatch_indexing(account_id: uuid.UUID, owner: str, repo: str, run_id: str) -> str:
    """Enqueue a run and return the Celery task id."""
    result = index_repository.delay(str(account_id), owner, repo, run_id)
    logger.info("Queued indexing of %s/%s (run=%s, task=%s)", owner, repo, run_id, result.id)
    return result.id


async def run_indexing(account_id: str, owner: str, repo: str, run_id: str) -> dict:
    from repochat.config import settings
    from repochat.database import async_session_factory
    from repochat.integrations.ai.embeddings import EmbeddingService
    from repochat.integrations.ai.llm_client import LLMClient
    from repochat.integrations.github.client import GitHubClient
    from repochat.repositories import account_repository
    from repochat.services.account_service import github_token_for
    from repochat.services.indexing_service import RepositoryIndexer

    async with async_session_factory() as db:
        account = await account_repository.get_by_id(db, uuid.UUID(account_id))
    if account is None:
        logger.warning("Account %s not found, dropping indexing of %s/%s", account_id, owner, repo)
        return {"status": "skipped"}

    async with GitHubClient(github_token_for(account)) as github:
        indexer = RepositoryIndexer(
            source=github,
            embedder=EmbeddingService(),
            describer=LLMClient() if settings.INDEX_GENERATE_DESCRIPTIONS else None,
            session_factory=async_session_factory,
        )
        report = await indexer.run(account.id, owner, repo, run_id)

    return {
        "repo_id": report.repo_id,
        "total": report.total,
        "processed": len(report.processed),
        "failed": [{"path": f.path, "error": f.error} for f in report.failed],
        "superseded": report.superseded,
        "error": report.error,
    }


async def _run_with_fresh_pool(account_id: str, owner: str, repo: str, run_id: str) -> dict:
    # pooled connections are bound to the event loop that opened them
    from repochat.database import engine

    try:
        return await run_indexing(account_id, owner, repo, run_id)
    finally:
        await engine.dispose()


@celery_app.task(name="repochat.tasks.indexing_tasks.index_repository")
def index_repository(account_id: str, owner: str, repo: str, run_id: str) -> dict:
    """Index every processable file of ``owner/repo`` for the account."""
    return asyncio.run(_run_with_fresh_pool(account_id, owner, repo, run_id))
