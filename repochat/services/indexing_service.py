"""Repository indexing: walk a GitHub tree, embed each file, store the vectors.

Flow:
    1. ``start_indexing`` (request side) guards against duplicate runs and
       persists the transition to ``indexing`` with a fresh run id.
    2. A Celery worker calls ``RepositoryIndexer.run`` with that run id.
    3. The run walks the tree, then processes files one at a time: fetch,
       truncate, embed, describe (best-effort), upsert. A failing file is
       recorded and skipped; the run carries on.
    4. Progress is checkpointed every few files and on the last one. At each
       checkpoint the run verifies it still owns the job and stops if a later
       request has reclaimed it.
"""
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repochat.config import settings
from repochat.database import async_session_factory, session_scope
from repochat.exceptions import ConflictError
from repochat.indexing import content_filter
from repochat.integrations.github.client import FileContent, FileRef
from repochat.models.account import Account
from repochat.models.repo_index_state import IndexStatus, RepoIndexState
from repochat.repositories import account_repository, vector_repository
from repochat.services import index_status
from repochat.utils.helpers import make_repo_id, utc_now

logger = logging.getLogger(__name__)


class SourceHost(Protocol):
    async def list_directory(self, owner: str, repo: str, path: str = "") -> list[FileRef]: ...

    async def fetch_file_content(self, owner: str, repo: str, path: str) -> FileContent: ...


class Embedder(Protocol):
    async def embed(self, text: str) -> list[float]: ...


class Describer(Protocol):
    async def describe_file(self, file_path: str, content: str) -> str: ...


@dataclass
class FailedFile:
    path: str
    error: str


@dataclass
class IndexingReport:
    repo_id: str
    total: int = 0
    processed: list[str] = field(default_factory=list)
    failed: list[FailedFile] = field(default_factory=list)
    superseded: bool = False
    error: str | None = None


# ── Request side ──


async def start_indexing(
    db: AsyncSession, account: Account, owner: str, repo: str, now: datetime | None = None,
) -> RepoIndexState:
    """Create or reset the job for ``owner/repo`` and mark it ``indexing``.

    Raises ConflictError when a non-stale run is already in progress. A stale
    run is flipped to ``error`` by the staleness check and then replaced.
    """
    now = now or utc_now()
    state = await account_repository.get_repo_state(db, account.id, owner, repo)
    if state is None:
        state = RepoIndexState(account_id=account.id, owner=owner, name=repo)
        db.add(state)
    elif state.status == IndexStatus.INDEXING and await index_status.is_active(db, state, now):
        raise ConflictError(f"Repository {owner}/{repo} is already being indexed")

    index_status.begin_run(state, str(uuid.uuid4()), now)
    await db.flush()
    logger.info("Indexing requested for %s/%s (account=%s, run=%s)", owner, repo, account.id, state.run_id)
    return state


# ── Worker side ──


class RepositoryIndexer:
    """Runs one indexing job. Collaborators are injected so tests can use fakes."""

    def __init__(
        self,
        source: SourceHost,
        embedder: Embedder,
        describer: Describer | None = None,
        session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
        *,
        progress_interval: int = settings.INDEX_PROGRESS_INTERVAL,
        max_file_size: int = settings.INDEX_MAX_FILE_SIZE,
        max_content_bytes: int = settings.INDEX_MAX_CONTENT_BYTES,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.source = source
        self.embedder = embedder
        self.describer = describer
        self.session_factory = session_factory
        self.progress_interval = max(1, progress_interval)
        self.max_file_size = max_file_size
        self.max_content_bytes = max_content_bytes
        self.clock = clock

    async def collect_files(self, owner: str, repo: str, path: str = "") -> list[FileRef]:
        """Depth-first walk; only processable files under the size ceiling are kept."""
        selected: list[FileRef] = []
        for entry in await self.source.list_directory(owner, repo, path):
            if entry.is_dir:
                selected.extend(await self.collect_files(owner, repo, entry.path))
            elif (
                entry.is_file
                and content_filter.is_within_size_limit(entry.size, self.max_file_size)
                and content_filter.is_processable(entry.name)
            ):
                selected.append(entry)
        return selected

    async def run(self, account_id: uuid.UUID, owner: str, repo: str, run_id: str) -> IndexingReport:
        repo_id = make_repo_id(owner, repo)
        report = IndexingReport(repo_id=repo_id)

        try:
            files = await self.collect_files(owner, repo)
            report.total = total = len(files)
            logger.info("Indexing %s: %d files selected (run=%s)", repo_id, total, run_id)

            if not await self._checkpoint(account_id, owner, repo, run_id, 0, total, 0):
                report.superseded = True
                return report

            for i, ref in enumerate(files):
                failed_now = False
                try:
                    await self._process_file(account_id, owner, repo, ref)
                    report.processed.append(ref.path)
                except Exception as exc:
                    logger.warning("Failed to index %s:%s: %s", repo_id, ref.path, exc)
                    report.failed.append(FailedFile(path=ref.path, error=str(exc)))
                    failed_now = True

                if failed_now or i % self.progress_interval == 0 or i == total - 1:
                    if not await self._checkpoint(account_id, owner, repo, run_id, i + 1, total, len(report.failed)):
                        report.superseded = True
                        logger.warning("Indexing run %s for %s superseded, stopping", run_id, repo_id)
                        return report

            async with session_scope(self.session_factory) as db:
                state = await self._owned_state(db, account_id, owner, repo, run_id)
                if state is None:
                    report.superseded = True
                    return report
                index_status.finish_run(state, total, len(report.failed), self.clock())

            logger.info(
                "Indexing %s finished: %d processed, %d failed",
                repo_id, len(report.processed), len(report.failed),
            )
        except Exception as exc:
            logger.exception("Indexing %s aborted (run=%s)", repo_id, run_id)
            report.error = str(exc) or type(exc).__name__
            await self._fail_run(account_id, owner, repo, run_id, report.error)

        return report

    async def _process_file(self, account_id: uuid.UUID, owner: str, repo: str, ref: FileRef) -> None:
        blob = await self.source.fetch_file_content(owner, repo, ref.path)
        content = content_filter.truncate(blob.text(), self.max_content_bytes)
        # empty files still get a vector, derived from their path
        embedding = await self.embedder.embed(content or ref.path)

        description = None
        if self.describer is not None and content:
            try:
                description = await self.describer.describe_file(ref.path, content)
            except Exception as exc:
                logger.info("No description for %s/%s:%s (%s)", owner, repo, ref.path, exc)

        async with session_scope(self.session_factory) as db:
            await vector_repository.upsert(
                db,
                account_id=account_id,
                repo_id=make_repo_id(owner, repo),
                file_path=ref.path,
                content=content,
                embedding=embedding,
                description=description,
                language=content_filter.detect_language(ref.name),
                last_modified=blob.last_modified or self.clock(),
                size=blob.size,
            )

    async def _owned_state(
        self, db: AsyncSession, account_id: uuid.UUID, owner: str, repo: str, run_id: str,
    ) -> RepoIndexState | None:
        state = await account_repository.get_repo_state(db, account_id, owner, repo)
        if state is None or state.status != IndexStatus.INDEXING or state.run_id != run_id:
            return None
        return state

    async def _checkpoint(
        self, account_id: uuid.UUID, owner: str, repo: str, run_id: str,
        current: int, total: int, failed: int,
    ) -> bool:
        """Persist progress; False when the job no longer belongs to this run."""
        async with session_scope(self.session_factory) as db:
            state = await self._owned_state(db, account_id, owner, repo, run_id)
            if state is None:
                return False
            index_status.record_progress(state, current, total, failed, self.clock())
            return True

    async def _fail_run(self, account_id: uuid.UUID, owner: str, repo: str, run_id: str, message: str) -> None:
        try:
            async with session_scope(self.session_factory) as db:
                state = await self._owned_state(db, account_id, owner, repo, run_id)
                if state is not None:
                    index_status.mark_failed(state, message, self.clock())
        except Exception:
            logger.exception("Could not record failure for %s/%s (run=%s)", owner, repo, run_id)
