# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from tickler.config import Settings
from tickler.core.clock import load_timezone


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("TICKLER_TIMEZONE", "TICKLER_ESCALATION_INTERVAL_SECONDS", "TICKLER_DATA_DIR", "TICKLER_MIN_YEAR"):
        monkeypatch.delenv(name, raising=False)

    s = Settings.from_env()
    assert s.timezone == "Asia/Bangkok"
    assert s.escalation_interval_seconds == 3600.0
    assert s.min_year == 2024
    assert s.tasks_db_path == Path(".local/tickler") / "tasks.sqlite3"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TICKLER_TIMEZONE", "Europe/Berlin")
    monkeypatch.setenv("TICKLER_ESCALATION_INTERVAL_SECONDS", "90")
    monkeypatch.setenv("TICKLER_PERSIST_TASKS", "no")
    monkeypatch.setenv("TICKLER_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TICKLER_MATRIX_ROOMS", "!a:x.org, !b:x.org")
    monkeypatch.setenv("TICKLER_MIN_YEAR", "not a number")

    s = Settings.from_env()
    assert s.timezone == "Europe/Berlin"
    assert s.escalation_interval_seconds == 90.0
    assert s.persist_tasks is False
    assert s.tasks_db_path == tmp_path / "tasks.sqlite3"
    assert s.matrix_rooms == ["!a:x.org", "!b:x.org"]
    assert s.min_year == 2024


def test_unknown_timezone_is_rejected() -> None:
    with pytest.raises(ValueError):
        load_timezone("Mars/Olympus_Mons")


def test_validate_rejects_unusable_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TICKLER_ESCALATION_INTERVAL_SECONDS", "0")
    with pytest.raises(ValueError, match="must be positive"):
        Settings.from_env().validate()

    monkeypatch.setenv("TICKLER_ESCALATION_INTERVAL_SECONDS", "60")
    monkeypatch.setenv("TICKLER_TIMEZONE", "Nowhere/Special")
    with pytest.raises(ValueError, match="Unknown timezone"):
        Settings.from_env().validate()
