"""FastAPI dependency injection utilities."""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from repochat.database import get_db
from repochat.integrations.ai.embeddings import EmbeddingService
from repochat.integrations.ai.llm_client import LLMClient
from repochat.integrations.github.client import GitHubClient
from repochat.models.account import Account
from repochat.services.account_service import github_token_for, resolve_account
from repochat.services.auth_service import decode_access_token

security = HTTPBearer()

__all__ = ["get_db", "get_current_account", "get_embedder", "get_llm", "get_github_client"]


async def account_from_token(db: AsyncSession, token: str) -> Account:
    """Resolve (and create or refresh) the account behind a JWT access token."""
    try:
        payload = decode_access_token(token)
    except JWTError as e:
        detail = "Token expired" if "expired" in str(e).lower() else "Invalid token"
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

    github_id = payload.get("sub")
    github_token = payload.get("github_token")
    if not github_id or not github_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    return await resolve_account(
        db,
        github_id=str(github_id),
        username=payload.get("username") or str(github_id),
        github_token=github_token,
        email=payload.get("email"),
        avatar_url=payload.get("avatar_url"),
    )


async def get_current_account(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Account:
    return await account_from_token(db, credentials.credentials)


def get_embedder() -> EmbeddingService:
    return EmbeddingService()


def get_llm() -> LLMClient:
    return LLMClient()


def get_github_client(account: Account = Depends(get_current_account)) -> GitHubClient:
    return GitHubClient(github_token_for(account))
