"""Tests for indexing, status, search and cleanup endpoints."""
from datetime import timedelta

import pytest
from sqlalchemy import select, update

from repochat.models.repo_index_state import IndexStatus, RepoIndexState
from repochat.utils.helpers import utc_now

from tests.conftest import _create_test_account, _seed_index


# ── start-indexing ──


async def test_start_indexing_accepted(client, account_auth, dispatched):
    account, headers = account_auth
    resp = await client.post("/api/v1/vector/index/octo/demo", headers=headers)

    assert resp.status_code == 202
    data = resp.json()["data"]
    assert data["status"] == "indexing"
    assert data["repo_id"] == "octo/demo"
    assert data["progress"]["current"] == 0
    assert len(dispatched) == 1
    assert dispatched[0][0] == account.id
    assert dispatched[0][1:3] == ("octo", "demo")


async def test_start_indexing_conflict_while_active(client, account_auth, dispatched):
    _, headers = account_auth
    await client.post("/api/v1/vector/index/octo/demo", headers=headers)
    resp = await client.post("/api/v1/vector/index/octo/demo", headers=headers)

    assert resp.status_code == 409
    assert resp.json()["title"] == "Conflict"
    assert len(dispatched) == 1


async def test_start_indexing_reclaims_stale_job(client, account_auth, dispatched, db_session):
    _, headers = account_auth
    await client.post("/api/v1/vector/index/octo/demo", headers=headers)
    await db_session.execute(
        update(RepoIndexState).values(progress_updated_at=utc_now() - timedelta(minutes=6))
    )
    await db_session.commit()

    resp = await client.post("/api/v1/vector/index/octo/demo", headers=headers)

    assert resp.status_code == 202
    assert len(dispatched) == 2
    assert dispatched[0][3] != dispatched[1][3]


async def test_start_indexing_queue_failure_releases_job(client, account_auth, db_session, monkeypatch):
    _, headers = account_auth

    def _broker_down(account_id, owner, repo, run_id):
        raise ConnectionError("redis broker unreachable")

    monkeypatch.setattr("repochat.tasks.indexing_tasks.dispatch_indexing", _broker_down)
    resp = await client.post("/api/v1/vector/index/octo/demo", headers=headers)

    assert resp.status_code == 503
    state = (await db_session.execute(select(RepoIndexState))).scalar_one()
    assert state.status == IndexStatus.ERROR
    assert state.error_message == "Indexing could not be queued"

    queued: list[str] = []
    monkeypatch.setattr(
        "repochat.tasks.indexing_tasks.dispatch_indexing",
        lambda account_id, owner, repo, run_id: queued.append(run_id) or "task-1",
    )
    retry = await client.post("/api/v1/vector/index/octo/demo", headers=headers)

    assert retry.status_code == 202
    assert len(queued) == 1


async def test_requires_authentication(client):
    resp = await client.post("/api/v1/vector/index/octo/demo")
    assert resp.status_code in (401, 403)


async def test_rejects_invalid_token(client):
    resp = await client.get("/api/v1/vector/status", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


# ── status ──


async def test_status_lists_repositories_with_stats(client, account_auth, db_session):
    account, headers = account_auth
    await _seed_index(db_session, account, {f"doc{i}.md": f"page {i}" for i in range(7)})

    resp = await client.get("/api/v1/vector/status", headers=headers)

    assert resp.status_code == 200
    [repo] = resp.json()["data"]
    assert repo["owner"] == "octo"
    assert repo["name"] == "demo"
    assert repo["status"] == IndexStatus.COMPLETED.value
    assert repo["progress"]["total"] == 7
    assert repo["stats"]["total_files"] == 7
    assert [f["path"] for f in repo["stats"]["recent_files"]] == ["doc6.md", "doc5.md", "doc4.md", "doc3.md", "doc2.md"]


async def test_status_is_scoped_to_account(client, account_auth, db_session):
    _, headers = account_auth
    other, _ = await _create_test_account(db_session, username="someone")
    await _seed_index(db_session, other, {"a.py": "x"})

    resp = await client.get("/api/v1/vector/status", headers=headers)
    assert resp.json()["data"] == []


# ── search ──


async def test_search_unindexed_repository_is_empty(client, account_auth, fake_embedder):
    _, headers = account_auth
    resp = await client.post(
        "/api/v1/vector/search", json={"repo_id": "octo/missing", "query": "auth"}, headers=headers,
    )

    assert resp.status_code == 200
    assert resp.json()["data"] == []
    assert fake_embedder.calls == []


async def test_search_ranks_by_similarity(client, account_auth, fake_embedder, db_session):
    account, headers = account_auth
    await _seed_index(db_session, account, {
        "src/db.py": "database session setup",
        "src/login.py": "auth token check",
        "src/view.py": "render the page",
    })

    resp = await client.post(
        "/api/v1/vector/search", json={"repo_id": "octo/demo", "query": "where is auth handled"}, headers=headers,
    )

    results = resp.json()["data"]
    assert len(results) == 3
    assert results[0]["file_path"] == "src/login.py"
    assert results[0]["similarity"] == pytest.approx(1.0)
    assert results[0]["metadata"]["language"] == "py"
    scores = [r["similarity"] for r in results]
    assert scores == sorted(scores, reverse=True)


async def test_search_returns_at_most_ten(client, account_auth, fake_embedder, db_session):
    account, headers = account_auth
    await _seed_index(db_session, account, {f"f{i}.py": f"auth {i}" for i in range(15)})

    resp = await client.post(
        "/api/v1/vector/search", json={"repo_id": "octo/demo", "query": "auth"}, headers=headers,
    )
    assert len(resp.json()["data"]) == 10


async def test_search_provider_failure_is_502(client, account_auth, fake_embedder, db_session):
    account, headers = account_auth
    await _seed_index(db_session, account, {"a.py": "auth"})
    fake_embedder.fail = True

    resp = await client.post(
        "/api/v1/vector/search", json={"repo_id": "octo/demo", "query": "auth"}, headers=headers,
    )
    assert resp.status_code == 502


async def test_search_validates_repo_id(client, account_auth, fake_embedder):
    _, headers = account_auth
    resp = await client.post(
        "/api/v1/vector/search", json={"repo_id": "no-slash", "query": "auth"}, headers=headers,
    )
    assert resp.status_code == 422


# ── files, delete, reset ──


async def test_list_indexed_files(client, account_auth, db_session):
    account, headers = account_auth
    await _seed_index(db_session, account, {"README.md": "hello", "main.go": "package main"})

    resp = await client.get("/api/v1/vector/octo/demo", headers=headers)

    files = resp.json()["data"]
    assert {f["file_path"] for f in files} == {"README.md", "main.go"}
    assert files[0]["metadata"]["size"] == len("hello")


async def test_delete_index_removes_vectors_and_state(client, account_auth, db_session):
    account, headers = account_auth
    await _seed_index(db_session, account, {"a.py": "x", "b.py": "y"})
    await _seed_index(db_session, account, {"c.py": "z"}, name="keep")

    resp = await client.delete("/api/v1/vector/octo/demo", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["deleted"] == 2

    status_resp = await client.get("/api/v1/vector/status", headers=headers)
    assert [r["repo_id"] for r in status_resp.json()["data"]] == ["octo/keep"]


async def test_delete_unknown_index_is_404(client, account_auth):
    _, headers = account_auth
    resp = await client.delete("/api/v1/vector/octo/nothing", headers=headers)
    assert resp.status_code == 404


async def test_reset_clears_everything(client, account_auth, db_session):
    account, headers = account_auth
    await _seed_index(db_session, account, {"a.py": "x"})
    await _seed_index(db_session, account, {"b.py": "y"}, name="second")

    resp = await client.post("/api/v1/vector/reset", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["deleted"] == 2

    status_resp = await client.get("/api/v1/vector/status", headers=headers)
    assert status_resp.json()["data"] == []
