"""Daily trending snapshots stored as one JSON file per calendar day."""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from trending_scout.fetchers.trending_scraper import Listing

LOGGER = logging.getLogger(__name__)

SNAPSHOT_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class SnapshotEntry(BaseModel):
    """Reduced projection of a listing record. Aliases are the on-disk names."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    rank: int = Field(ge=1)
    identifier: str = Field(alias="name", min_length=1)
    delta_stat: int = Field(default=0, alias="starsToday", ge=0)


class Snapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    date: str
    entries: list[SnapshotEntry] = Field(default_factory=list, alias="repos")

    @classmethod
    def from_listing(cls, listing: Listing, day: date) -> Snapshot:
        return cls(
            date=day.isoformat(),
            entries=[
                SnapshotEntry(
                    rank=record.rank,
                    identifier=record.identifier,
                    delta_stat=record.delta_stat,
                )
                for record in listing.records
            ],
        )

    def to_json(self) -> str:
        return json.dumps(self.model_dump(by_alias=True), indent=2, ensure_ascii=False)


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


class SnapshotStore:
    """Append-only store keyed by ISO date. Assumes a single writer."""

    def __init__(self, history_dir: Path) -> None:
        self.history_dir = Path(history_dir)

    def snapshot_path(self, day: date) -> Path:
        return self.history_dir / f"{day.isoformat()}.json"

    def keys(self) -> list[str]:
        """Date keys present in the store, ascending."""
        if not self.history_dir.is_dir():
            return []
        return sorted(
            path.stem
            for path in self.history_dir.glob("*.json")
            if path.is_file() and SNAPSHOT_KEY_RE.match(path.stem)
        )

    def save(self, listing: Listing, today: date | None = None) -> Path:
        """Write today's snapshot, replacing an earlier one from the same day."""
        day = today or today_utc()
        snapshot = Snapshot.from_listing(listing, day)
        path = self.snapshot_path(day)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(snapshot.to_json(), encoding="utf-8")
        LOGGER.info("Snapshot saved: %s", path)
        return path

    def load(self, key: str) -> Snapshot | None:
        path = self.history_dir / f"{key}.json"
        try:
            return Snapshot.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            LOGGER.warning("Skipping unreadable snapshot %s: %s", path, exc)
            return None

    def load_most_recent_before(self, today: date | None = None) -> Snapshot | None:
        """Newest readable snapshot strictly older than ``today``; None if there is none."""
        today_key = (today or today_utc()).isoformat()
        for key in reversed(self.keys()):
            if key >= today_key:
                continue
            snapshot = self.load(key)
            if snapshot is not None:
                return snapshot
        return None
