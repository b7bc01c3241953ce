"""Tests for the repository indexing pipeline."""
from datetime import timedelta

import pytest
from sqlalchemy import select

from repochat.exceptions import ConflictError
from repochat.models.repo_index_state import IndexStatus, RepoIndexState
from repochat.repositories import vector_repository
from repochat.services import index_status
from repochat.services.indexing_service import RepositoryIndexer, start_indexing
from repochat.utils.helpers import utc_now

from tests.conftest import FakeEmbedder, FakeLLM, FakeSource, _create_test_account, test_session_factory


async def _load_state(account_id) -> RepoIndexState:
    async with test_session_factory() as db:
        q = select(RepoIndexState).where(RepoIndexState.account_id == account_id)
        return (await db.execute(q)).scalar_one()


async def _count_records(account_id, repo_id="octo/demo") -> int:
    async with test_session_factory() as db:
        return await vector_repository.count_for_repo(db, account_id, repo_id)


async def _started(db_session):
    account, _ = await _create_test_account(db_session)
    state = await start_indexing(db_session, account, "octo", "demo")
    await db_session.commit()
    return account, state.run_id


def _indexer(source, embedder=None, describer=None, **kwargs):
    return RepositoryIndexer(
        source, embedder or FakeEmbedder(), describer, session_factory=test_session_factory, **kwargs,
    )


# ── Request side ──


async def test_start_indexing_creates_indexing_state(db_session):
    account, run_id = await _started(db_session)

    state = await _load_state(account.id)
    assert state.status == IndexStatus.INDEXING
    assert state.run_id == run_id
    assert state.progress_current == 0


async def test_start_indexing_rejects_active_run(db_session):
    account, _ = await _started(db_session)
    with pytest.raises(ConflictError):
        await start_indexing(db_session, account, "octo", "demo")


async def test_start_indexing_reclaims_stale_run(db_session):
    account, first_run = await _started(db_session)

    later = utc_now() + timedelta(minutes=6)
    state = await start_indexing(db_session, account, "octo", "demo", now=later)
    await db_session.commit()

    assert state.status == IndexStatus.INDEXING
    assert state.run_id != first_run
    assert state.error_message is None


async def test_start_indexing_restarts_terminal_job(db_session):
    account, _ = await _create_test_account(db_session)
    state = await start_indexing(db_session, account, "octo", "demo")
    first_run = state.run_id
    index_status.finish_run(state, total=0, failed=0)
    await db_session.commit()

    restarted = await start_indexing(db_session, account, "octo", "demo")
    assert restarted is state
    assert restarted.status == IndexStatus.INDEXING
    assert restarted.run_id != first_run


# ── Worker side ──


async def test_partial_failure_is_isolated(db_session):
    account, run_id = await _started(db_session)
    files = {f"src/file{i}.py": f"print({i})" for i in range(10)}
    files["src/file3.py"] = "BROKEN = True"

    report = await _indexer(FakeSource(files), FakeEmbedder(fail_on="BROKEN")).run(account.id, "octo", "demo", run_id)

    assert report.total == 10
    assert [f.path for f in report.failed] == ["src/file3.py"]
    assert len(report.processed) == 9

    state = await _load_state(account.id)
    assert state.status == IndexStatus.ERROR
    assert (state.progress_current, state.progress_total, state.progress_failed) == (10, 10, 1)
    assert state.error_message == "1 of 10 files failed to index"
    assert await _count_records(account.id) == 9


async def test_successful_run_completes(db_session):
    account, run_id = await _started(db_session)
    source = FakeSource({
        "README.md": "# Demo",
        "src/auth/login.py": "def login(): ...",
        "src/db/models.py": "class Model: ...",
        "assets/logo.png": "not text",
    })
    llm = FakeLLM()

    report = await _indexer(source, describer=llm).run(account.id, "octo", "demo", run_id)

    assert report.total == 3
    assert "assets/logo.png" not in source.fetched
    state = await _load_state(account.id)
    assert state.status == IndexStatus.COMPLETED
    assert state.error_message is None

    async with test_session_factory() as db:
        record = await vector_repository.get(db, account.id, "octo/demo", "src/auth/login.py")
    assert record.description == "Describes src/auth/login.py"
    assert record.language == "py"
    assert record.size == len("def login(): ...")


async def test_directories_are_walked_depth_first(db_session):
    account, _ = await _create_test_account(db_session)
    source = FakeSource({"a/x/one.py": "1", "a/two.py": "2", "three.py": "3"})

    files = await _indexer(source).collect_files("octo", "demo")
    assert [f.path for f in files] == ["a/x/one.py", "a/two.py", "three.py"]


async def test_oversized_files_are_never_fetched(db_session):
    account, run_id = await _started(db_session)
    source = FakeSource({"big.py": "x" * 60, "small.py": "y"})

    report = await _indexer(source, max_file_size=50).run(account.id, "octo", "demo", run_id)

    assert report.total == 1
    assert source.fetched == ["small.py"]


async def test_empty_file_is_embedded_by_path(db_session):
    account, run_id = await _started(db_session)
    embedder = FakeEmbedder()

    await _indexer(FakeSource({"src/__init__.py": ""}), embedder).run(account.id, "octo", "demo", run_id)

    assert embedder.calls == ["src/__init__.py"]
    assert await _count_records(account.id) == 1


async def test_description_failure_keeps_file(db_session):
    account, run_id = await _started(db_session)

    class BrokenDescriber:
        async def describe_file(self, file_path, content):
            raise RuntimeError("quota exceeded")

    report = await _indexer(FakeSource({"main.py": "print()"}), describer=BrokenDescriber()).run(
        account.id, "octo", "demo", run_id,
    )

    assert report.failed == []
    assert (await _load_state(account.id)).status == IndexStatus.COMPLETED
    async with test_session_factory() as db:
        record = await vector_repository.get(db, account.id, "octo/demo", "main.py")
    assert record.description is None


async def test_content_is_truncated_before_embedding(db_session):
    account, run_id = await _started(db_session)
    embedder = FakeEmbedder()
    text = "first line\n" + "z" * 40

    await _indexer(FakeSource({"notes.txt": text}), embedder, max_content_bytes=20).run(
        account.id, "octo", "demo", run_id,
    )

    assert embedder.calls == ["first line"]


async def test_tree_failure_marks_error_and_keeps_records(db_session):
    account, run_id = await _started(db_session)
    async with test_session_factory() as db:
        await vector_repository.upsert(
            db, account_id=account.id, repo_id="octo/demo", file_path="old.py", content="", embedding=[1.0],
        )
        await db.commit()

    class BrokenSource(FakeSource):
        async def list_directory(self, owner, repo, path=""):
            raise RuntimeError("tree unavailable")

    report = await _indexer(BrokenSource()).run(account.id, "octo", "demo", run_id)

    assert report.error == "tree unavailable"
    state = await _load_state(account.id)
    assert state.status == IndexStatus.ERROR
    assert state.error_message == "tree unavailable"
    assert await _count_records(account.id) == 1


async def test_empty_repository_completes(db_session):
    account, run_id = await _started(db_session)

    report = await _indexer(FakeSource({})).run(account.id, "octo", "demo", run_id)

    assert report.total == 0
    state = await _load_state(account.id)
    assert state.status == IndexStatus.COMPLETED
    assert (state.progress_current, state.progress_total) == (0, 0)


async def test_progress_checkpoints(db_session, monkeypatch):
    account, run_id = await _started(db_session)
    seen: list[int] = []
    original = index_status.record_progress

    def _recording(state, current, total, failed, now=None):
        seen.append(current)
        original(state, current, total, failed, now)

    monkeypatch.setattr(index_status, "record_progress", _recording)
    files = {f"f{i:02}.py": "pass" for i in range(12)}

    await _indexer(FakeSource(files)).run(account.id, "octo", "demo", run_id)

    # start, every fifth file, the last file, then the final snapshot
    assert seen == [0, 1, 6, 11, 12, 12]


async def test_superseded_run_stops_before_processing(db_session):
    account, _ = await _started(db_session)
    source = FakeSource({"a.py": "1"})

    report = await _indexer(source).run(account.id, "octo", "demo", "someone-else")

    assert report.superseded
    assert source.fetched == []
    assert (await _load_state(account.id)).status == IndexStatus.INDEXING


async def test_superseded_run_stops_at_next_checkpoint(db_session):
    account, run_id = await _started(db_session)

    class ReclaimingEmbedder(FakeEmbedder):
        async def embed(self, text):
            if len(self.calls) == 1:
                async with test_session_factory() as db:
                    state = (await db.execute(select(RepoIndexState))).scalar_one()
                    state.run_id = "newer-run"
                    await db.commit()
            return await super().embed(text)

    files = {f"f{i}.py": "pass" for i in range(10)}
    report = await _indexer(FakeSource(files), ReclaimingEmbedder()).run(account.id, "octo", "demo", run_id)

    assert report.superseded
    assert len(report.processed) == 6
    state = await _load_state(account.id)
    assert state.run_id == "newer-run"
    assert state.progress_current == 1
    assert state.status == IndexStatus.INDEXING


async def test_fetch_failure_is_recorded(db_session):
    account, run_id = await _started(db_session)
    source = FakeSource({"ok.py": "1", "gone.py": "2"}, fail_paths={"gone.py"})

    report = await _indexer(source).run(account.id, "octo", "demo", run_id)

    assert report.failed[0].path == "gone.py"
    assert "cannot fetch" in report.failed[0].error
    assert await _count_records(account.id) == 1


async def test_worker_sessions_see_committed_state(db_session):
    account, run_id = await _started(db_session)

    state = await _load_state(account.id)
    assert state.run_id == run_id
    assert await _count_records(account.id) == 0
