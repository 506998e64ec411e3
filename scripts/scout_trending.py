#!/usr/bin/env python3
"""
Run one GitHub Trending scout pass and write the report as JSON.

Usage:
  python scripts/scout_trending.py
  python scripts/scout_trending.py --language python --period weekly --top 15
  python scripts/scout_trending.py --no-deep-meta --out ./content
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from trending_scout.core.config import load_settings  # noqa: E402
from trending_scout.core.http_client import ScraperError  # noqa: E402
from trending_scout.core.orchestrator import ScoutOptions, run_scout  # noqa: E402
from trending_scout.fetchers.trending_scraper import PERIODS  # noqa: E402

LOGGER = logging.getLogger("scout_trending")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scrape and enrich GitHub Trending repos.")
    parser.add_argument("--language", default="", help='Language filter, e.g. "python". Empty = all.')
    parser.add_argument("--period", choices=PERIODS, default=None, help="Trending window.")
    parser.add_argument("--top", type=int, default=None, help="Number of repos to keep.")
    parser.add_argument(
        "--no-deep-meta",
        dest="deep_meta",
        action="store_false",
        default=None,
        help="Skip GitHub API deep metadata.",
    )
    parser.add_argument(
        "--no-diff",
        dest="diff",
        action="store_false",
        default=None,
        help="Skip history snapshot and comparison.",
    )
    parser.add_argument("--out", default="scout_output", help="Output directory for JSON files.")
    parser.add_argument(
        "--history-dir",
        default=None,
        help="Snapshot directory (default: <out>/.history).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level.",
    )
    return parser.parse_args(argv)


async def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    out_dir = Path(args.out)
    settings = load_settings()
    settings.history_dir = Path(args.history_dir) if args.history_dir else out_dir / ".history"

    options = ScoutOptions(
        period=args.period,
        language=args.language,
        top_n=args.top,
        enable_deep_meta=args.deep_meta,
        enable_diff=args.diff,
    )
    try:
        report = await run_scout(options, settings)
    except ScraperError as exc:
        LOGGER.error("Scout failed: %s", exc)
        return 1

    out_dir.mkdir(parents=True, exist_ok=True)
    day = datetime.now(timezone.utc).date().isoformat()
    raw_path = out_dir / f"{day}-trending-raw.json"
    report_path = out_dir / f"{day}-report.json"
    raw_path.write_text(
        json.dumps(report.listing.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
    )
    report_path.write_text(json.dumps(report.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")

    summary = {
        "repos": len(report.listing.records),
        "extraction_errors": len(report.listing.errors),
        "deep_meta": len(report.deep_meta),
        "diff": report.diff is not None,
        "duration_ms": report.duration_ms,
        "report": str(report_path),
    }
    print(json.dumps({"summary": summary}, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(run()))
