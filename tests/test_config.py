from __future__ import annotations

import os
from pathlib import Path

import pytest

from trending_scout.core.config import load_settings


_VARS = (
    "SCOUT_HISTORY_DIR",
    "SCOUT_TOP_N",
    "SCOUT_PERIOD",
    "SCOUT_DEEP_META_CONCURRENCY",
    "SCOUT_DEEP_META_BATCH_DELAY",
    "SCOUT_HTTP_TIMEOUT",
    "SCOUT_ENABLE_DEEP_META",
    "SCOUT_ENABLE_DIFF",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = load_settings()
    assert settings.history_dir == Path(".scout_history")
    assert settings.top_n == 10
    assert settings.period == "daily"
    assert settings.deep_meta_concurrency == 2
    assert settings.deep_meta_batch_delay == 1.2
    assert settings.enable_deep_meta is True
    assert settings.enable_diff is True


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCOUT_HISTORY_DIR", "/var/lib/scout")
    monkeypatch.setenv("SCOUT_TOP_N", "25")
    monkeypatch.setenv("SCOUT_PERIOD", "Weekly")
    monkeypatch.setenv("SCOUT_DEEP_META_CONCURRENCY", "4")
    monkeypatch.setenv("SCOUT_ENABLE_DIFF", "off")

    settings = load_settings()
    assert settings.history_dir == Path("/var/lib/scout")
    assert settings.top_n == 25
    assert settings.period == "weekly"
    assert settings.deep_meta_concurrency == 4
    assert settings.enable_diff is False


def test_invalid_values_fall_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCOUT_TOP_N", "ten")
    monkeypatch.setenv("SCOUT_PERIOD", "hourly")
    monkeypatch.setenv("SCOUT_HTTP_TIMEOUT", "soon")
    monkeypatch.setenv("SCOUT_ENABLE_DEEP_META", "maybe")

    settings = load_settings()
    assert settings.top_n == 10
    assert settings.period == "daily"
    assert settings.http_timeout == 20.0
    assert settings.enable_deep_meta is True


def test_dotenv_file_is_read(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("SCOUT_TOP_N=7\n", encoding="utf-8")
    try:
        assert load_settings().top_n == 7
    finally:
        os.environ.pop("SCOUT_TOP_N", None)
