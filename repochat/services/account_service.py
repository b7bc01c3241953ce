"""Account resolution: first login creates the account, later logins refresh its token."""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from repochat.models.account import Account
from repochat.repositories import account_repository
from repochat.utils.encryption import open_token, seal_token

logger = logging.getLogger(__name__)


async def resolve_account(
    db: AsyncSession,
    github_id: str,
    username: str,
    github_token: str,
    email: str | None = None,
    avatar_url: str | None = None,
) -> Account:
    account = await account_repository.get_by_github_id(db, github_id)
    if account is None:
        logger.info("Creating account for GitHub user %s (%s)", username, github_id)
        return await account_repository.create(
            db,
            Account(
                github_id=github_id,
                username=username,
                access_token=seal_token(github_token),
                email=email,
                avatar_url=avatar_url,
            ),
        )

    if open_token(account.access_token) != github_token:
        logger.info("Refreshing GitHub token for account %s", account.id)
        account.access_token = seal_token(github_token)
    if username and account.username != username:
        account.username = username
    if email and account.email != email:
        account.email = email
    if avatar_url and account.avatar_url != avatar_url:
        account.avatar_url = avatar_url
    await db.flush()
    return account


def github_token_for(account: Account) -> str:
    return open_token(account.access_token)
