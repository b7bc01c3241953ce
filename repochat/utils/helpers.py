"""General-purpose utility helpers."""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from stores without tz support."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def make_repo_id(owner: str, name: str) -> str:
    return f"{owner}/{name}"


def split_repo_id(repo_id: str) -> tuple[str, str]:
    """Split ``owner/name`` into its parts."""
    owner, sep, name = repo_id.partition("/")
    if not sep or not owner or not name:
        raise ValueError(f"Invalid repository id: {repo_id!r} (expected 'owner/name')")
    return owner, name
