"""GitHub API - repositories visible to the signed-in account."""
from fastapi import APIRouter, Depends

from repochat.dependencies import get_github_client
from repochat.integrations.github.client import GitHubClient
from repochat.schemas.account import GitHubRepoResponse
from repochat.schemas.common import APIResponse

router = APIRouter()


# GET /github/repos
@router.get("/repos", response_model=APIResponse)
async def list_repos(github: GitHubClient = Depends(get_github_client)):
    async with github:
        repos = await github.list_user_repos()
    return APIResponse(
        status="success",
        data=[GitHubRepoResponse.model_validate(r).model_dump() for r in repos],
    )
