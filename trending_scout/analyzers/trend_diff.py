"""Rank-based comparison of today's listing against the previous snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from trending_scout.core.history import Snapshot
from trending_scout.fetchers.trending_scraper import Listing


@dataclass(frozen=True)
class RankChange:
    name: str
    rank_change: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "rankChange": self.rank_change}


@dataclass(frozen=True)
class TrendDiff:
    new_entries: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    risers: list[RankChange] = field(default_factory=list)
    fallers: list[RankChange] = field(default_factory=list)
    stable_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "newEntries": list(self.new_entries),
            "dropped": list(self.dropped),
            "risers": [item.to_dict() for item in self.risers],
            "fallers": [item.to_dict() for item in self.fallers],
            "stableCount": self.stable_count,
        }


def compute_diff(listing: Listing, prior: Snapshot | None) -> TrendDiff | None:
    """Classify today's repos against ``prior``.

    Returns None when there is no prior snapshot, so callers can tell
    "nothing changed" apart from "no baseline". rank_change is
    prior_rank - today_rank: positive means the repo moved toward rank 1.
    """
    if prior is None:
        return None

    today_names = {record.identifier for record in listing.records}
    prior_ranks = {entry.identifier: entry.rank for entry in prior.entries}

    new_entries: list[str] = []
    risers: list[RankChange] = []
    fallers: list[RankChange] = []
    stable_count = 0

    for record in listing.records:
        prior_rank = prior_ranks.get(record.identifier)
        if prior_rank is None:
            new_entries.append(record.identifier)
            continue
        change = prior_rank - record.rank
        if change > 0:
            risers.append(RankChange(record.identifier, change))
        elif change < 0:
            fallers.append(RankChange(record.identifier, change))
        else:
            stable_count += 1

    dropped = [entry.identifier for entry in prior.entries if entry.identifier not in today_names]

    risers.sort(key=lambda item: item.rank_change, reverse=True)
    fallers.sort(key=lambda item: item.rank_change)

    return TrendDiff(
        new_entries=new_entries,
        dropped=dropped,
        risers=risers,
        fallers=fallers,
        stable_count=stable_count,
    )
