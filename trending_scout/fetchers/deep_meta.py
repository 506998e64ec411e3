"""GitHub REST API deep metadata for trending repositories."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx

from trending_scout.core.http_client import (
    GITHUB_API_BASE,
    Sleeper,
    api_headers,
    get_with_retry,
)

LOGGER = logging.getLogger(__name__)

SUMMARY_MAX_CHARS = 4000
RAW_MEDIA_TYPE = "application/vnd.github.v3.raw"


@dataclass(frozen=True, slots=True)
class DeepMeta:
    identifier: str
    open_issue_count: int
    watcher_count: int
    created_at: str
    last_activity_at: str
    license: str
    topics: frozenset[str]
    default_branch: str
    age_in_days: int
    recent_activity_level: int
    summary_text: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "repoName": self.identifier,
            "openIssues": self.open_issue_count,
            "watchers": self.watcher_count,
            "createdAt": self.created_at,
            "pushedAt": self.last_activity_at,
            "license": self.license,
            "topics": sorted(self.topics),
            "defaultBranch": self.default_branch,
            "ageInDays": self.age_in_days,
            "recentCommitActivity": self.recent_activity_level,
            "readme": self.summary_text,
        }


def chunked(items: Sequence[str], size: int) -> list[list[str]]:
    step = max(1, size)
    return [list(items[i : i + step]) for i in range(0, len(items), step)]


def _parse_ts(value: str) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def age_in_days(created_at: str, now: datetime) -> int:
    created = _parse_ts(created_at)
    if created is None:
        return 0
    return max(0, (now - created).days)


def latest_week_activity(payload: Any) -> int:
    """Last entry of the participation ``all`` series; 0 when absent."""
    if not isinstance(payload, dict):
        return 0
    weeks = payload.get("all")
    if not isinstance(weeks, list) or not weeks:
        return 0
    last = weeks[-1]
    return last if isinstance(last, int) and last > 0 else 0


def build_deep_meta(
    identifier: str,
    repo: dict[str, Any],
    summary_text: str,
    recent_activity: int,
    now: datetime,
) -> DeepMeta:
    created_at = str(repo.get("created_at") or "")
    license_info = repo.get("license")
    license_id = "None"
    if isinstance(license_info, dict) and license_info.get("spdx_id"):
        license_id = str(license_info["spdx_id"])
    topics = repo.get("topics")
    return DeepMeta(
        identifier=identifier,
        open_issue_count=int(repo.get("open_issues_count") or 0),
        watcher_count=int(repo.get("subscribers_count") or 0),
        created_at=created_at,
        last_activity_at=str(repo.get("pushed_at") or ""),
        license=license_id,
        topics=frozenset(str(t) for t in topics) if isinstance(topics, list) else frozenset(),
        default_branch=str(repo.get("default_branch") or "main"),
        age_in_days=age_in_days(created_at, now),
        recent_activity_level=recent_activity,
        summary_text=summary_text[:SUMMARY_MAX_CHARS],
    )


class DeepMetaFetcher:
    """Batched deep-metadata fetcher.

    Identifiers are processed in windows of ``concurrency``. Every sub-fetch in
    a window runs concurrently and the window settles completely before a
    fixed ``batch_delay_seconds`` pause and the next window. Unauthenticated
    GitHub API use is limited to roughly 60 requests per hour, so keep both
    numbers small unless GITHUB_TOKEN is set.
    """

    def __init__(
        self,
        concurrency: int = 2,
        batch_delay_seconds: float = 1.2,
        timeout_seconds: float = 20.0,
        attempts: int = 3,
        api_base: str = GITHUB_API_BASE,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleeper = asyncio.sleep,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.concurrency = max(1, concurrency)
        self.batch_delay_seconds = max(0.0, batch_delay_seconds)
        self.timeout_seconds = timeout_seconds
        self.attempts = max(1, attempts)
        self.api_base = api_base.rstrip("/")
        self.transport = transport
        self.sleep = sleep
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            transport=self.transport,
        )

    async def _get(
        self, client: httpx.AsyncClient, path: str, accept: str = "application/vnd.github+json"
    ) -> httpx.Response:
        return await get_with_retry(
            client,
            f"{self.api_base}{path}",
            headers=api_headers(accept),
            attempts=self.attempts,
            backoff_base=0.8,
            backoff_cap=10.0,
            sleep=self.sleep,
        )

    async def _repo(self, client: httpx.AsyncClient, identifier: str) -> dict[str, Any]:
        payload = (await self._get(client, f"/repos/{identifier}")).json()
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected repo payload for {identifier}")
        return payload

    async def _readme(self, client: httpx.AsyncClient, identifier: str) -> str:
        response = await self._get(client, f"/repos/{identifier}/readme", accept=RAW_MEDIA_TYPE)
        return response.text[:SUMMARY_MAX_CHARS]

    async def _participation(self, client: httpx.AsyncClient, identifier: str) -> int:
        response = await self._get(client, f"/repos/{identifier}/stats/participation")
        # 202 means GitHub is still computing the statistics.
        if response.status_code == 202:
            return 0
        return latest_week_activity(response.json())

    async def _fetch_with_client(
        self, client: httpx.AsyncClient, identifier: str
    ) -> DeepMeta | None:
        repo, readme, activity = await asyncio.gather(
            self._repo(client, identifier),
            self._readme(client, identifier),
            self._participation(client, identifier),
            return_exceptions=True,
        )
        if isinstance(repo, BaseException):
            LOGGER.warning("Deep metadata failed for %s: %s", identifier, repo)
            return None
        if isinstance(readme, BaseException):
            LOGGER.debug("README unavailable for %s: %s", identifier, readme)
            readme = ""
        if isinstance(activity, BaseException):
            LOGGER.debug("Participation stats unavailable for %s: %s", identifier, activity)
            activity = 0
        return build_deep_meta(identifier, repo, readme, activity, self.clock())

    async def fetch_one(self, identifier: str) -> DeepMeta | None:
        async with self._client() as client:
            return await self._fetch_with_client(client, identifier)

    async def fetch_many(
        self, identifiers: Sequence[str], concurrency: int | None = None
    ) -> dict[str, DeepMeta]:
        """Fetch metadata for each identifier; failed identifiers are omitted.

        ``concurrency`` overrides the fetcher's batch size for this call.
        """
        LOGGER.info("Fetching deep metadata for %d repos", len(identifiers))
        results: dict[str, DeepMeta] = {}
        size = self.concurrency if concurrency is None else max(1, concurrency)
        batches = chunked(identifiers, size)

        async with self._client() as client:
            for index, batch in enumerate(batches):
                settled = await asyncio.gather(
                    *(self._fetch_with_client(client, identifier) for identifier in batch),
                    return_exceptions=True,
                )
                for identifier, outcome in zip(batch, settled):
                    if isinstance(outcome, DeepMeta):
                        results[identifier] = outcome
                    elif isinstance(outcome, BaseException):
                        LOGGER.warning("Deep metadata failed for %s: %s", identifier, outcome)
                if index < len(batches) - 1:
                    await self.sleep(self.batch_delay_seconds)

        LOGGER.info("Fetched metadata for %d/%d repos", len(results), len(identifiers))
        return results
