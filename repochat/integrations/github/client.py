"""GitHub REST v3 client: repositories, directory listings and file content."""
import base64
import logging
from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any
from urllib.parse import quote

import httpx

from repochat.config import settings
from repochat.exceptions import SourceHostError
from repochat.integrations.resilience import retry_with_backoff

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileRef:
    """One entry of a repository directory listing."""

    name: str
    path: str
    type: str  # "file" | "dir" | "symlink" | "submodule"
    size: int = 0

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"


@dataclass(frozen=True)
class FileContent:
    path: str
    data: bytes
    size: int
    last_modified: datetime | None = None

    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


class GitHubClient:
    """Async client for the GitHub REST API.

    All methods expect the account's decrypted OAuth access token.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.GITHUB_API_URL,
            timeout=timeout or settings.GITHUB_TIMEOUT,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/vnd.github.v3+json",
            },
            transport=transport,
        )

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def _get(self, url: str, **params: Any) -> httpx.Response:
        async def _request() -> httpx.Response:
            resp = await self._client.get(url, params=params or None)
            resp.raise_for_status()
            return resp

        try:
            return await retry_with_backoff(_request)
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = _error_message(exc.response)
            if status == 401:
                raise SourceHostError("GitHub token is invalid or expired", status_code=401) from exc
            if status == 404:
                raise SourceHostError(f"GitHub resource not found: {url}", status_code=404) from exc
            raise SourceHostError(f"GitHub API error {status}: {message}") from exc
        except httpx.TransportError as exc:
            raise SourceHostError(f"GitHub API unreachable: {exc}") from exc

    # ── Repositories ──

    async def list_user_repos(self, per_page: int = 100) -> list[dict[str, Any]]:
        """Repositories visible to the authenticated user (all pages)."""
        repos: list[dict[str, Any]] = []
        page = 1
        while True:
            resp = await self._get("/user/repos", per_page=per_page, page=page, sort="updated")
            batch = resp.json()
            repos.extend(batch)
            if len(batch) < per_page:
                return repos
            page += 1

    # ── Contents ──

    async def list_directory(self, owner: str, repo: str, path: str = "") -> list[FileRef]:
        """Entries of one directory; callers recurse into ``dir`` entries."""
        resp = await self._get(f"/repos/{owner}/{repo}/contents/{quote(path)}")
        payload = resp.json()
        if isinstance(payload, dict):
            # path pointed at a single file
            payload = [payload]
        return [
            FileRef(
                name=item["name"],
                path=item["path"],
                type=item["type"],
                size=item.get("size") or 0,
            )
            for item in payload
        ]

    async def fetch_file_content(self, owner: str, repo: str, path: str) -> FileContent:
        resp = await self._get(f"/repos/{owner}/{repo}/contents/{quote(path)}")
        payload = resp.json()
        if not isinstance(payload, dict) or payload.get("type") != "file":
            raise SourceHostError(f"Not a file: {path}", status_code=400)

        encoding = payload.get("encoding")
        raw = payload.get("content") or ""
        if encoding == "base64":
            data = base64.b64decode(raw)
        elif encoding in (None, "", "none") and payload.get("download_url"):
            # content omitted for 1-100 MB files; fall back to the raw download
            data = (await self._get(payload["download_url"])).content
        else:
            data = raw.encode()

        return FileContent(
            path=payload["path"],
            data=data,
            size=payload.get("size") or len(data),
            last_modified=_parse_http_date(resp.headers.get("last-modified")),
        )


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("message", response.text)
    except ValueError:
        return response.text


def _parse_http_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
