"""Environment-driven settings for the scout pipeline."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

LOGGER = logging.getLogger(__name__)

DEFAULT_HISTORY_DIR = ".scout_history"
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(slots=True)
class ScoutSettings:
    history_dir: Path = Path(DEFAULT_HISTORY_DIR)
    top_n: int = 10
    period: str = "daily"
    deep_meta_concurrency: int = 2
    deep_meta_batch_delay: float = 1.2
    http_timeout: float = 20.0
    enable_deep_meta: bool = True
    enable_diff: bool = True


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("Invalid integer for %s=%s, using default=%d", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        LOGGER.warning("Invalid number for %s=%s, using default=%s", name, raw, default)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    if raw:
        LOGGER.warning("Invalid boolean for %s=%s, using default=%s", name, raw, default)
    return default


def load_settings() -> ScoutSettings:
    """Read settings from the environment (and a local .env, if present)."""
    load_dotenv(find_dotenv(usecwd=True))
    period = (os.getenv("SCOUT_PERIOD") or "daily").strip().lower()
    if period not in {"daily", "weekly", "monthly"}:
        LOGGER.warning("Invalid SCOUT_PERIOD=%s, using daily", period)
        period = "daily"
    return ScoutSettings(
        history_dir=Path(os.getenv("SCOUT_HISTORY_DIR") or DEFAULT_HISTORY_DIR),
        top_n=max(1, _env_int("SCOUT_TOP_N", 10)),
        period=period,
        deep_meta_concurrency=max(1, _env_int("SCOUT_DEEP_META_CONCURRENCY", 2)),
        deep_meta_batch_delay=max(0.0, _env_float("SCOUT_DEEP_META_BATCH_DELAY", 1.2)),
        http_timeout=max(1.0, _env_float("SCOUT_HTTP_TIMEOUT", 20.0)),
        enable_deep_meta=_env_bool("SCOUT_ENABLE_DEEP_META", True),
        enable_diff=_env_bool("SCOUT_ENABLE_DIFF", True),
    )
