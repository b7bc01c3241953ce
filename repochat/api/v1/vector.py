"""Vector API - repository indexing, status, search and cleanup."""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from repochat.dependencies import get_current_account, get_db, get_embedder
from repochat.exceptions import QueueUnavailableError
from repochat.integrations.ai.embeddings import EmbeddingService
from repochat.models.account import Account
from repochat.schemas.common import APIResponse
from repochat.schemas.vector import (
    IndexedFileResponse,
    RepoIndexStateResponse,
    RepoStatusResponse,
    SearchRequest,
    SearchResult,
)
from repochat.services import index_status, indexing_service, vector_service
from repochat.tasks import indexing_tasks

logger = logging.getLogger(__name__)

router = APIRouter()


# POST /vector/index/{owner}/{repo}
@router.post("/index/{owner}/{repo}", response_model=APIResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_indexing(
    owner: str,
    repo: str,
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    state = await indexing_service.start_indexing(db, current_account, owner, repo)
    # the worker must see the indexing transition before it starts
    await db.commit()
    try:
        indexing_tasks.dispatch_indexing(current_account.id, owner, repo, state.run_id)
    except Exception as exc:
        logger.error("Failed to queue indexing of %s/%s: %s", owner, repo, exc)
        index_status.mark_failed(state, "Indexing could not be queued")
        await db.commit()
        raise QueueUnavailableError("Indexing queue is unavailable, try again later") from exc
    return APIResponse(
        status="success",
        data=RepoIndexStateResponse.model_validate(state).model_dump(),
        message="Indexing started",
    )


# GET /vector/status
@router.get("/status", response_model=APIResponse)
async def get_status(
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    projections = await vector_service.get_status(db, current_account)
    return APIResponse(
        status="success",
        data=[RepoStatusResponse.model_validate(p).model_dump() for p in projections],
    )


# POST /vector/search
@router.post("/search", response_model=APIResponse)
async def search(
    body: SearchRequest,
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
    embedder: EmbeddingService = Depends(get_embedder),
):
    results = await vector_service.search(db, current_account, body.repo_id, body.query, embedder)
    return APIResponse(
        status="success",
        data=[
            SearchResult(
                file_path=record.file_path,
                content=record.content,
                description=record.description,
                similarity=score,
                metadata=record.metadata_,
            ).model_dump()
            for record, score in results
        ],
    )


# POST /vector/reset
@router.post("/reset", response_model=APIResponse)
async def reset_all(
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    removed = await vector_service.reset_all(db, current_account)
    return APIResponse(status="success", data={"deleted": removed}, message="All indexes removed")


# GET /vector/{owner}/{repo}
@router.get("/{owner}/{repo}", response_model=APIResponse)
async def list_files(
    owner: str,
    repo: str,
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    records = await vector_service.list_files(db, current_account, owner, repo)
    return APIResponse(
        status="success",
        data=[IndexedFileResponse.model_validate(r).model_dump() for r in records],
    )


# DELETE /vector/{owner}/{repo}
@router.delete("/{owner}/{repo}", response_model=APIResponse)
async def delete_index(
    owner: str,
    repo: str,
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    removed = await vector_service.delete_index(db, current_account, owner, repo)
    return APIResponse(status="success", data={"deleted": removed}, message="Index deleted")
