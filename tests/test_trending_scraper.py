from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

from trending_scout.core.http_client import ScraperError
from trending_scout.fetchers.trending_scraper import (
    TrendingScraper,
    extract_listing,
    parse_count,
    trending_url,
)


FIXTURES = Path(__file__).parent / "fixtures"


def _article(name: str, stars: str = "100", today: str = "5 stars today") -> str:
    return f"""
    <article class="Box-row">
      <h2 class="h3"><a href="/{name}">{name}</a></h2>
      <p class="col-9">About {name}</p>
      <a href="/{name}/stargazers" class="Link--muted">{stars}</a>
      <a href="/{name}/forks" class="Link--muted">7</a>
      <span class="float-sm-right">{today}</span>
    </article>
    """


def _page(*articles: str) -> str:
    return "<html><body>" + "".join(articles) + "</body></html>"


def test_parse_count_normalization() -> None:
    assert parse_count("12,345") == 12345
    assert parse_count("  87 \n") == 87
    assert parse_count("1.2k") == 1200
    assert parse_count("3M") == 3_000_000
    assert parse_count("") == 0
    assert parse_count("n/a") == 0


def test_parse_count_ignores_words_starting_with_suffix_letters() -> None:
    assert parse_count("3 members") == 3
    assert parse_count("12 months") == 12
    assert parse_count("1,204 Stars") == 1204
    assert parse_count("2k stars") == 2000
    assert parse_count("4 K") == 4000


def test_extract_listing_fixture() -> None:
    html = (FIXTURES / "trending_daily.html").read_text(encoding="utf-8")
    result = extract_listing(html, max_records=25)

    assert [r.identifier for r in result.records] == [
        "acme/rocket",
        "beta/widget",
        "delta/engine",
        "omega/last",
    ]
    assert [r.rank for r in result.records] == [1, 2, 3, 4]

    rocket = result.records[0]
    assert rocket.url == "https://github.com/acme/rocket"
    assert rocket.description == "Fast, typed rocket launcher for data pipelines"
    assert rocket.primary_language == "Python"
    assert rocket.total_stat == 12345
    assert rocket.fork_count == 1024
    assert rocket.delta_stat == 567
    assert rocket.contributors == ("alice", "bob")

    engine = result.records[2]
    assert engine.delta_stat == 1203
    assert engine.total_stat == 2001
    assert engine.contributors == ("carol",)

    assert len(result.errors) == 2
    assert result.errors[0].startswith("Failed to parse article #4")
    assert "duplicate repository acme/rocket" in result.errors[1]


def test_missing_fields_degrade_to_defaults() -> None:
    html = (FIXTURES / "trending_daily.html").read_text(encoding="utf-8")
    widget = extract_listing(html, max_records=25).records[1]

    assert widget.identifier == "beta/widget"
    assert widget.description == ""
    assert widget.primary_language == ""
    assert widget.total_stat == 987
    assert widget.fork_count == 12
    assert widget.delta_stat == 1
    assert widget.contributors == ()


def test_block_without_link_is_neither_record_nor_error() -> None:
    html = _page(
        '<article class="Box-row"><h2>No link here</h2></article>',
        _article("a/one"),
        '<article class="Box-row"><h2><a href="">empty</a></h2></article>',
    )
    result = extract_listing(html, max_records=5)

    assert [r.identifier for r in result.records] == ["a/one"]
    assert result.records[0].rank == 1
    assert result.errors == []


def test_well_formed_page_respects_cap() -> None:
    names = [f"owner{i}/repo{i}" for i in range(1, 7)]
    html = _page(*(_article(name) for name in names))

    full = extract_listing(html, max_records=10)
    assert [r.identifier for r in full.records] == names
    assert [r.rank for r in full.records] == list(range(1, 7))
    assert full.errors == []

    capped = extract_listing(html, max_records=3)
    assert [r.identifier for r in capped.records] == names[:3]
    assert [r.rank for r in capped.records] == [1, 2, 3]


def test_link_less_blocks_do_not_count_toward_cap() -> None:
    html = _page(
        '<article class="Box-row"><h2>sponsored</h2></article>',
        _article("a/a"),
        '<article class="Box-row"><p>no heading</p></article>',
        _article("b/b"),
        _article("c/c"),
    )
    result = extract_listing(html, max_records=2)

    assert [r.identifier for r in result.records] == ["a/a", "b/b"]
    assert [r.rank for r in result.records] == [1, 2]
    assert result.errors == []


def test_unparseable_counts_become_zero() -> None:
    html = _page(_article("x/y", stars="lots", today="trending today"))
    record = extract_listing(html, max_records=5).records[0]

    assert record.total_stat == 0
    assert record.delta_stat == 0
    assert record.fork_count == 7


def test_weekly_window_phrase() -> None:
    html = _page(_article("x/y", today="2,500 stars this week"))
    assert extract_listing(html, max_records=5).records[0].delta_stat == 2500


def test_empty_document_yields_nothing() -> None:
    result = extract_listing("", max_records=10)
    assert result.records == []
    assert result.errors == []


def test_trending_url() -> None:
    assert trending_url("daily") == "https://github.com/trending?since=daily"
    assert trending_url("weekly", "C++") == "https://github.com/trending/c%2B%2B?since=weekly"
    with pytest.raises(ValueError):
        trending_url("hourly")


def test_scrape_builds_listing_from_page() -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(200, text=_page(_article("a/b"), _article("c/d")))

    scraper = TrendingScraper(transport=httpx.MockTransport(handler))
    listing = asyncio.run(scraper.scrape(period="monthly", language="Python", top_n=10))

    assert requested == ["https://github.com/trending/python?since=monthly"]
    assert listing.period == "monthly"
    assert listing.language_filter == "Python"
    assert listing.identifiers == ["a/b", "c/d"]
    assert listing.to_dict()["repos"][0]["starsToday"] == 5


def test_scrape_retries_then_raises() -> None:
    calls = 0
    delays: list[float] = []

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(503)

    async def no_sleep(seconds: float) -> None:
        delays.append(seconds)

    scraper = TrendingScraper(attempts=3, transport=httpx.MockTransport(handler), sleep=no_sleep)
    with pytest.raises(ScraperError):
        asyncio.run(scraper.scrape())

    assert calls == 3
    assert delays == [0.75, 1.5]
