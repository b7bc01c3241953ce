"""Auth API endpoints.

Token issuance (the GitHub OAuth exchange) happens outside this service; every
request carries a bearer JWT whose claims identify the GitHub account.
"""
from fastapi import APIRouter, Depends

from repochat.dependencies import get_current_account
from repochat.models.account import Account
from repochat.schemas.account import AccountResponse
from repochat.schemas.common import APIResponse

router = APIRouter()


# GET /auth/me
@router.get("/me", response_model=APIResponse)
async def get_me(current_account: Account = Depends(get_current_account)):
    return APIResponse(
        status="success",
        data=AccountResponse.model_validate(current_account).model_dump(),
    )
