"""Retry with exponential backoff for outbound HTTP calls."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def is_retryable(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        if response.status_code in RETRYABLE_STATUS_CODES:
            return True
        # GitHub signals primary rate limiting with 403 + exhausted quota header
        return response.status_code == 403 and response.headers.get("x-ratelimit-remaining") == "0"
    return isinstance(exc, httpx.TransportError)


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_retries: int = 3,
    backoff_base: float = 1.0,
    backoff_factor: float = 2.0,
    **kwargs: Any,
) -> T:
    """Execute func, retrying rate-limit, 5xx and transport errors.

    Delay: backoff_base * (backoff_factor ** attempt) → 1s, 2s, 4s by default.
    Non-retryable errors propagate immediately.
    """
    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except (httpx.HTTPStatusError, httpx.TransportError) as exc:
            if not is_retryable(exc) or attempt >= max_retries:
                if attempt >= max_retries:
                    logger.error("Max retries (%d) exceeded: %s", max_retries, exc)
                raise
            delay = backoff_base * (backoff_factor ** attempt)
            logger.warning("Retry %d/%d after %.1fs: %s", attempt + 1, max_retries, delay, exc)
            await asyncio.sleep(delay)
    raise AssertionError("unreachable")
