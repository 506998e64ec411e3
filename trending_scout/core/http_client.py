"""Shared httpx helpers: request headers and GET with retry/backoff."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable

import httpx

GITHUB_BASE_URL = "https://github.com"
GITHUB_API_BASE = "https://api.github.com"

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
API_USER_AGENT = "trending-scout (+https://github.com/trending)"

RETRYABLE_STATUS = {403, 429}

Sleeper = Callable[[float], Awaitable[None]]


class ScraperError(Exception):
    """Raised for recoverable scraper errors."""


class NonRetryableError(ScraperError):
    """HTTP failure that another attempt will not fix (404 and most 4xx)."""


def api_headers(accept: str = "application/vnd.github+json") -> dict[str, str]:
    headers = {
        "Accept": accept,
        "User-Agent": API_USER_AGENT,
        "X-GitHub-Api-Version": "2022-11-28",
    }
    token = os.environ.get("GITHUB_TOKEN", "").strip()
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def backoff_delay(attempt: int, base: float, cap: float) -> float:
    """Exponential delay before retry number ``attempt`` (1-based)."""
    return min(cap, base * (2 ** (attempt - 1)))


async def get_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    attempts: int = 4,
    backoff_base: float = 0.75,
    backoff_cap: float = 8.0,
    sleep: Sleeper = asyncio.sleep,
) -> httpx.Response:
    """GET ``url`` and return the response, retrying transient failures.

    Transport errors, 5xx, 403 and 429 are retried with exponential backoff.
    404 and other 4xx responses raise NonRetryableError on the first attempt.
    Successful 2xx responses (including 202) are returned as-is.
    """
    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            response = await client.get(url, headers=headers, follow_redirects=True)
            status = response.status_code
            if status >= 500:
                raise ScraperError(f"Server error {status} for {url}")
            if status in RETRYABLE_STATUS:
                raise ScraperError(f"Rate limit or forbidden {status} for {url}")
            if status == 404:
                raise NonRetryableError(f"Not found: {url}")
            if status >= 400:
                body = response.text[:200]
                raise NonRetryableError(f"HTTP {status} for {url}: {body}")
            return response
        except NonRetryableError:
            raise
        except (httpx.HTTPError, ScraperError) as exc:
            last_error = exc
            if attempt == attempts:
                break
            await sleep(backoff_delay(attempt, backoff_base, backoff_cap))
    raise ScraperError(f"Failed fetching {url}: {last_error}") from last_error
