"""Indexing job state machine: pending → indexing → completed | error.

The state of a run lives only in its persisted ``RepoIndexState`` row. There is
no heartbeat or watchdog: a run whose worker died is reclaimed when the next
indexing request for the same repository finds its progress timestamp older
than the staleness window.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from repochat.config import settings
from repochat.models.repo_index_state import IndexStatus, RepoIndexState
from repochat.utils.helpers import as_utc, utc_now

logger = logging.getLogger(__name__)

STALE_AFTER = timedelta(minutes=settings.INDEX_STALE_MINUTES)


def is_stale(state: RepoIndexState, now: datetime | None = None, stale_after: timedelta = STALE_AFTER) -> bool:
    now = now or utc_now()
    last = as_utc(state.progress_updated_at)
    return state.status == IndexStatus.INDEXING and (last is None or now - last > stale_after)


async def is_active(
    db: AsyncSession,
    state: RepoIndexState,
    now: datetime | None = None,
    stale_after: timedelta = STALE_AFTER,
) -> bool:
    """Whether a run is genuinely in progress for ``state``.

    An ``indexing`` job whose progress has not moved for ``stale_after`` is
    treated as abandoned: it is flipped to ``error`` with a timeout message,
    flushed, and reported inactive. Terminal and pending jobs are inactive.
    """
    if state.status != IndexStatus.INDEXING:
        return False

    now = now or utc_now()
    if is_stale(state, now, stale_after):
        minutes = int(stale_after.total_seconds() // 60)
        mark_failed(state, f"Indexing timed out: no progress for {minutes} minutes", now)
        await db.flush()
        logger.warning(
            "Reclaimed stale indexing job %s (run=%s, last progress %s)",
            state.repo_id, state.run_id, state.progress_updated_at,
        )
        return False
    return True


def begin_run(state: RepoIndexState, run_id: str, now: datetime | None = None) -> None:
    now = now or utc_now()
    state.status = IndexStatus.INDEXING
    state.run_id = run_id
    state.last_indexed = now
    state.error_message = None
    state.progress_current = 0
    state.progress_total = 0
    state.progress_failed = 0
    state.progress_updated_at = now


def record_progress(
    state: RepoIndexState, current: int, total: int, failed: int, now: datetime | None = None,
) -> None:
    state.progress_current = current
    state.progress_total = total
    state.progress_failed = failed
    state.progress_updated_at = now or utc_now()


def finish_run(state: RepoIndexState, total: int, failed: int, now: datetime | None = None) -> None:
    """Final snapshot: ``completed`` only when every file succeeded."""
    record_progress(state, total, total, failed, now)
    if failed:
        state.status = IndexStatus.ERROR
        state.error_message = f"{failed} of {total} files failed to index"
    else:
        state.status = IndexStatus.COMPLETED
        state.error_message = None


def mark_failed(state: RepoIndexState, message: str, now: datetime | None = None) -> None:
    state.status = IndexStatus.ERROR
    state.error_message = message
    state.progress_updated_at = now or utc_now()
