"""Authentication service - JWT access tokens carrying the GitHub identity.

The OAuth code exchange happens elsewhere; this module only issues and reads
the signed token that results from it.
"""
from datetime import datetime, timedelta, timezone

from jose import jwt

from repochat.config import settings


def create_access_token(
    github_id: str,
    username: str,
    github_token: str,
    email: str | None = None,
    avatar_url: str | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": github_id,
        "username": username,
        "github_token": github_token,
        "email": email,
        "avatar_url": avatar_url,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
