"""Shared test fixtures with a temporary SQLite database and fake provider clients."""
import os
import tempfile
import uuid
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.ext.compiler import compiles

from repochat.dependencies import get_db, get_embedder, get_llm
from repochat.exceptions import ProviderError
from repochat.integrations.github.client import FileContent, FileRef
from repochat.main import app
from repochat.models.account import Account
from repochat.models.base import Base
from repochat.models.repo_index_state import RepoIndexState
from repochat.repositories import vector_repository
from repochat.services import index_status
from repochat.services.auth_service import create_access_token

# --- SQLite compatibility: compile PostgreSQL types for SQLite ---

@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


@compiles(UUID, "sqlite")
def _compile_uuid_sqlite(type_, compiler, **kw):
    return "VARCHAR(36)"


# File-backed SQLite so every session (API, worker, helpers) sees the same tables
TEST_DATABASE_PATH = os.path.join(tempfile.gettempdir(), f"repochat-test-{os.getpid()}.db")
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DATABASE_PATH}"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
test_session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@event.listens_for(test_engine.sync_engine, "connect")
def _set_sqlite_pragma(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(scope="session", autouse=True)
def _remove_test_database():
    if os.path.exists(TEST_DATABASE_PATH):
        os.remove(TEST_DATABASE_PATH)
    yield
    if os.path.exists(TEST_DATABASE_PATH):
        os.remove(TEST_DATABASE_PATH)


@pytest.fixture(autouse=True)
async def setup_db():
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db():
    async with test_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = _override_get_db


# --- Fakes for GitHub and the AI providers ---


class FakeSource:
    """In-memory repository tree: ``files`` maps path -> text."""

    def __init__(self, files: dict[str, str] | None = None, fail_paths: set[str] | None = None):
        self.files = files or {}
        self.fail_paths = fail_paths or set()
        self.fetched: list[str] = []
        self.listed: list[str] = []

    async def list_directory(self, owner: str, repo: str, path: str = "") -> list[FileRef]:
        self.listed.append(path)
        prefix = f"{path}/" if path else ""
        entries: dict[str, FileRef] = {}
        for file_path, text in self.files.items():
            if not file_path.startswith(prefix):
                continue
            head, sep, _rest = file_path[len(prefix):].partition("/")
            child = prefix + head
            if sep:
                entries.setdefault(child, FileRef(name=head, path=child, type="dir", size=0))
            else:
                entries[child] = FileRef(name=head, path=child, type="file", size=len(text.encode()))
        return list(entries.values())

    async def fetch_file_content(self, owner: str, repo: str, path: str) -> FileContent:
        self.fetched.append(path)
        if path in self.fail_paths:
            raise RuntimeError(f"cannot fetch {path}")
        data = self.files[path].encode()
        return FileContent(
            path=path,
            data=data,
            size=len(data),
            last_modified=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )


class FakeEmbedder:
    """Keyword-bucket vectors: texts sharing a keyword point the same way."""

    KEYWORDS = ("auth", "database", "render")

    def __init__(self, fail: bool = False, fail_on: str | None = None):
        self.fail = fail
        self.fail_on = fail_on
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail or (self.fail_on and self.fail_on in text):
            raise ProviderError("embedding provider unavailable")
        lowered = text.lower()
        return [1.0 if k in lowered else 0.0 for k in self.KEYWORDS] + [0.1]


class FakeLLM:
    def __init__(self, reply: str = "Here is what I found.", fail: bool = False):
        self.reply = reply
        self.fail = fail
        self.calls: list[tuple[list, str]] = []
        self.described: list[str] = []

    async def complete(self, history, prompt, **kwargs) -> str:
        self.calls.append((list(history), prompt))
        if self.fail:
            raise ProviderError("completion provider unavailable")
        return self.reply

    async def describe_file(self, file_path: str, content: str) -> str:
        self.described.append(file_path)
        return f"Describes {file_path}"


@pytest.fixture
def fake_embedder():
    embedder = FakeEmbedder()
    app.dependency_overrides[get_embedder] = lambda: embedder
    yield embedder
    app.dependency_overrides.pop(get_embedder, None)


@pytest.fixture
def fake_llm():
    llm = FakeLLM()
    app.dependency_overrides[get_llm] = lambda: llm
    yield llm
    app.dependency_overrides.pop(get_llm, None)


@pytest.fixture
def dispatched(monkeypatch):
    """Capture indexing dispatches instead of enqueueing Celery tasks."""
    calls: list[tuple] = []

    def _dispatch(account_id, owner, repo, run_id):
        calls.append((account_id, owner, repo, run_id))
        return f"task-{len(calls)}"

    monkeypatch.setattr("repochat.tasks.indexing_tasks.dispatch_indexing", _dispatch)
    return calls


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    async with test_session_factory() as session:
        yield session


async def _create_test_account(
    db: AsyncSession, username: str = "octocat", github_token: str = "gho_test_token",
) -> tuple[Account, str]:
    """Create an account and return (account, access_token)."""
    github_id = str(uuid.uuid4().int % 10_000_000)
    account = Account(
        id=uuid.uuid4(),
        github_id=github_id,
        username=username,
        access_token=github_token,
    )
    db.add(account)
    await db.commit()
    await db.refresh(account)
    token = create_access_token(github_id, username, github_token)
    return account, token


@pytest.fixture
async def account_auth(db_session: AsyncSession) -> tuple[Account, dict]:
    """Return (account, auth_headers)."""
    account, token = await _create_test_account(db_session)
    return account, {"Authorization": f"Bearer {token}"}


async def _seed_index(db: AsyncSession, account: Account, files: dict[str, str], owner="octo", name="demo"):
    """Store a completed index whose vectors come from FakeEmbedder."""
    embedder = FakeEmbedder()
    state = RepoIndexState(account_id=account.id, owner=owner, name=name)
    index_status.begin_run(state, "seed-run")
    index_status.finish_run(state, total=len(files), failed=0)
    db.add(state)
    for i, (path, content) in enumerate(files.items()):
        await vector_repository.upsert(
            db,
            account_id=account.id,
            repo_id=f"{owner}/{name}",
            file_path=path,
            content=content,
            embedding=await embedder.embed(content),
            language=path.rsplit(".", 1)[-1],
            last_modified=datetime(2026, 5, 1 + i, tzinfo=timezone.utc),
            size=len(content),
        )
    await db.commit()
