"""Scout pipeline: scrape, deep metadata, history diff."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from trending_scout.analyzers.trend_diff import TrendDiff, compute_diff
from trending_scout.core.config import ScoutSettings
from trending_scout.core.history import SnapshotStore
from trending_scout.core.http_client import ScraperError
from trending_scout.fetchers.deep_meta import DeepMeta, DeepMetaFetcher
from trending_scout.fetchers.trending_scraper import Listing, Period, TrendingScraper

LOGGER = logging.getLogger(__name__)

DEEP_META_MAX_REPOS = 10


class EmptyListingError(ScraperError):
    """The trending page produced no records; its markup has likely changed."""


@dataclass(slots=True)
class ScoutOptions:
    period: Period | None = None
    language: str = ""
    top_n: int | None = None
    enable_deep_meta: bool | None = None
    enable_diff: bool | None = None


@dataclass(slots=True)
class TrendReport:
    listing: Listing
    deep_meta: dict[str, DeepMeta] = field(default_factory=dict)
    diff: TrendDiff | None = None
    duration_ms: int = 0
    generated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "scrape": self.listing.to_dict(),
            "deepMeta": {name: meta.to_dict() for name, meta in self.deep_meta.items()},
            "diff": self.diff.to_dict() if self.diff is not None else None,
            "metadata": {
                "durationMs": self.duration_ms,
                "generatedAt": self.generated_at,
            },
        }


async def run_scout(
    options: ScoutOptions,
    settings: ScoutSettings | None = None,
    *,
    scraper: TrendingScraper | None = None,
    deep_meta_fetcher: DeepMetaFetcher | None = None,
    store: SnapshotStore | None = None,
    today: date | None = None,
) -> TrendReport:
    """Run one scout pass and return the report for the analysis step.

    Raises EmptyListingError when the page yields no records at all.
    """
    cfg = settings or ScoutSettings()
    period = options.period or cfg.period
    top_n = options.top_n or cfg.top_n
    enable_deep_meta = (
        cfg.enable_deep_meta if options.enable_deep_meta is None else options.enable_deep_meta
    )
    enable_diff = cfg.enable_diff if options.enable_diff is None else options.enable_diff
    started = time.monotonic()

    LOGGER.info(
        "Scout run: period=%s top=%d language=%s deep_meta=%s diff=%s",
        period,
        top_n,
        options.language or "any",
        enable_deep_meta,
        enable_diff,
    )

    scraper = scraper or TrendingScraper(timeout_seconds=cfg.http_timeout)
    listing = await scraper.scrape(period=period, language=options.language, top_n=top_n)
    if not listing.records:
        raise EmptyListingError(
            "No trending repos found. GitHub might be rate-limiting or the page structure changed."
        )

    deep_meta: dict[str, DeepMeta] = {}
    if enable_deep_meta:
        fetcher = deep_meta_fetcher or DeepMetaFetcher(
            concurrency=cfg.deep_meta_concurrency,
            batch_delay_seconds=cfg.deep_meta_batch_delay,
            timeout_seconds=cfg.http_timeout,
        )
        names = listing.identifiers[: min(top_n, DEEP_META_MAX_REPOS)]
        deep_meta = await fetcher.fetch_many(names)
    else:
        LOGGER.info("Deep metadata skipped")

    diff: TrendDiff | None = None
    if enable_diff:
        history = store or SnapshotStore(cfg.history_dir)
        prior = history.load_most_recent_before(today)
        if prior is None:
            LOGGER.info("No previous snapshot found, skipping diff")
        else:
            LOGGER.info("Comparing with snapshot from %s", prior.date)
            diff = compute_diff(listing, prior)
        history.save(listing, today)
        if diff is not None:
            LOGGER.info("Diff: %d new, %d dropped", len(diff.new_entries), len(diff.dropped))

    duration_ms = int((time.monotonic() - started) * 1000)
    LOGGER.info("Scout run complete in %.1fs", duration_ms / 1000)
    return TrendReport(
        listing=listing,
        deep_meta=deep_meta,
        diff=diff,
        duration_ms=duration_ms,
        generated_at=datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
    )
