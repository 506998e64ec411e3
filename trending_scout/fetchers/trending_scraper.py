"""GitHub Trending page scraper: fetch, block extraction, and listing records."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, TypeVar
from urllib.parse import quote

import httpx
from bs4 import BeautifulSoup
from bs4.element import Tag

from trending_scout.core.http_client import (
    BROWSER_USER_AGENT,
    GITHUB_BASE_URL,
    ScraperError,
    Sleeper,
    get_with_retry,
)

LOGGER = logging.getLogger(__name__)

Period = Literal["daily", "weekly", "monthly"]
PERIODS: tuple[str, ...] = ("daily", "weekly", "monthly")
ANY_LANGUAGE = "any"

ARTICLE_SELECTOR = "article.Box-row"
REPO_PATH_RE = re.compile(r"^/([^/\s]+)/([^/\s]+?)/?$")
COUNT_RE = re.compile(r"([0-9][0-9,]*(?:\.[0-9]+)?)\s*([KkMm]?)(?![A-Za-z])")
DELTA_RE = re.compile(
    r"([\d,]+)\s+stars?\s+(?:today|this\s+week|this\s+month)", re.IGNORECASE
)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ListingRecord:
    rank: int
    identifier: str
    url: str
    description: str = ""
    primary_language: str = ""
    total_stat: int = 0
    delta_stat: int = 0
    fork_count: int = 0
    contributors: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "name": self.identifier,
            "url": self.url,
            "description": self.description,
            "language": self.primary_language,
            "totalStars": self.total_stat,
            "forks": self.fork_count,
            "starsToday": self.delta_stat,
            "builtBy": list(self.contributors),
        }


@dataclass(frozen=True, slots=True)
class Listing:
    """One scrape of the trending page. Records keep extraction order."""

    period: Period
    language_filter: str
    scraped_at: str
    records: tuple[ListingRecord, ...] = ()
    errors: tuple[str, ...] = ()

    @property
    def identifiers(self) -> list[str]:
        return [record.identifier for record in self.records]

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "language": self.language_filter,
            "scrapedAt": self.scraped_at,
            "repos": [record.to_dict() for record in self.records],
            "errors": list(self.errors),
        }


@dataclass(slots=True)
class ExtractionResult:
    records: list[ListingRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def parse_count(text: str) -> int:
    """Parse counts like '12,345', '1.2k' or ' 87 ' into ints; 0 when unparseable."""
    match = COUNT_RE.search(text or "")
    if not match:
        return 0
    try:
        base = float(match.group(1).replace(",", ""))
    except ValueError:
        return 0
    multiplier = {"": 1, "K": 1_000, "M": 1_000_000}[match.group(2).upper()]
    return int(base * multiplier)


def normalize_text(value: str) -> str:
    return " ".join((value or "").split())


def _field(label: str, block: Tag, extractor: Callable[[Tag], T], default: T) -> T:
    try:
        return extractor(block)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        LOGGER.debug("Field %s fell back to default: %s", label, exc)
        return default


def _heading_anchor(block: Tag) -> Tag | None:
    heading = block.find(["h2", "h1"])
    if heading is None:
        return None
    anchor = heading.find("a", href=True)
    if anchor is None or not str(anchor.get("href") or "").strip():
        return None
    return anchor


def _identifier_from_href(href: str) -> str:
    path = href.strip()
    if path.startswith(GITHUB_BASE_URL):
        path = path[len(GITHUB_BASE_URL):]
    match = REPO_PATH_RE.match(path)
    if not match:
        raise ScraperError(f"unexpected repository link {href!r}")
    return f"{match.group(1)}/{match.group(2)}"


def _description(block: Tag) -> str:
    node = block.select_one("p.col-9")
    return normalize_text(node.get_text(" ")) if node else ""


def _language(block: Tag) -> str:
    node = block.select_one('span[itemprop="programmingLanguage"]')
    return normalize_text(node.get_text(" ")) if node else ""


def _count_for_link_suffix(block: Tag, suffix: str) -> int:
    for anchor in block.find_all("a", href=True):
        if str(anchor["href"]).rstrip("/").endswith(suffix):
            return parse_count(anchor.get_text(" ", strip=True))
    return 0


def _delta_stars(block: Tag) -> int:
    match = DELTA_RE.search(block.get_text(" ", strip=True))
    return parse_count(match.group(1)) if match else 0


def _contributors(block: Tag) -> tuple[str, ...]:
    names: list[str] = []
    for img in block.select("img.avatar"):
        alt = str(img.get("alt") or "").strip().lstrip("@")
        if alt:
            names.append(alt)
    return tuple(names)


def parse_article(block: Tag, rank: int) -> ListingRecord | None:
    """Parse one listing block. Returns None when it carries no repository link.

    Raises ScraperError when the heading link is present but malformed.
    """
    anchor = _heading_anchor(block)
    if anchor is None:
        return None
    href = str(anchor["href"]).strip()
    identifier = _identifier_from_href(href)

    return ListingRecord(
        rank=rank,
        identifier=identifier,
        url=f"{GITHUB_BASE_URL}/{identifier}",
        description=_field("description", block, _description, ""),
        primary_language=_field("language", block, _language, ""),
        total_stat=_field("stars", block, lambda b: _count_for_link_suffix(b, "/stargazers"), 0),
        delta_stat=_field("stars_today", block, _delta_stars, 0),
        fork_count=_field("forks", block, lambda b: _count_for_link_suffix(b, "/forks"), 0),
        contributors=_field("built_by", block, _contributors, ()),
    )


def extract_listing(html: str, max_records: int) -> ExtractionResult:
    """Pure parser for a trending page. Ranks are 1..N in acceptance order."""
    result = ExtractionResult()
    if max_records <= 0:
        return result
    soup = BeautifulSoup(html or "", "html.parser")
    seen: set[str] = set()

    for index, block in enumerate(soup.select(ARTICLE_SELECTOR), start=1):
        if len(result.records) >= max_records:
            break
        try:
            record = parse_article(block, rank=len(result.records) + 1)
        except Exception as exc:  # noqa: BLE001
            result.errors.append(f"Failed to parse article #{index}: {exc}")
            continue
        if record is None:
            continue
        if record.identifier in seen:
            result.errors.append(
                f"Failed to parse article #{index}: duplicate repository {record.identifier}"
            )
            continue
        seen.add(record.identifier)
        result.records.append(record)

    return result


def trending_url(period: str, language: str = "", base_url: str = GITHUB_BASE_URL) -> str:
    if period not in PERIODS:
        raise ValueError(f"Unsupported trending period: {period!r}")
    lang_path = f"/{quote(language.strip().lower())}" if language.strip() else ""
    return f"{base_url.rstrip('/')}/trending{lang_path}?since={period}"


class TrendingScraper:
    """Fetches the trending page and turns it into a Listing."""

    def __init__(
        self,
        timeout_seconds: float = 20.0,
        attempts: int = 4,
        base_url: str = GITHUB_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.attempts = max(1, attempts)
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.sleep = sleep

    async def fetch_html(self, period: str, language: str = "") -> str:
        url = trending_url(period, language, base_url=self.base_url)
        LOGGER.info("Fetching %s", url)
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            headers={"User-Agent": BROWSER_USER_AGENT},
            transport=self.transport,
        ) as client:
            response = await get_with_retry(
                client, url, attempts=self.attempts, sleep=self.sleep
            )
        return response.text

    async def scrape(self, period: Period = "daily", language: str = "", top_n: int = 10) -> Listing:
        html = await self.fetch_html(period, language)
        extracted = extract_listing(html, top_n)
        for error in extracted.errors:
            LOGGER.warning("%s", error)
        LOGGER.info("Parsed %d repos from trending page", len(extracted.records))
        return Listing(
            period=period,
            language_filter=language.strip() or ANY_LANGUAGE,
            scraped_at=datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
            records=tuple(extracted.records),
            errors=tuple(extracted.errors),
        )
