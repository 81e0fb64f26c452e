# src/tickler/config.py

"""Settings for tickler, read once from TICKLER_* environment variables.

A local .env file is loaded first; variables already present in the real
environment are never overridden by it. Malformed numbers fall back to their
defaults, while values that would break reminders (unknown timezone,
non-positive interval) fail at startup through Settings.validate().
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .core.clock import load_timezone

ENV_PREFIX = "TICKLER"

DEFAULT_TIMEZONE = "Asia/Bangkok"
DEFAULT_DATA_DIR = Path(".local/tickler")

_TRUE_WORDS = frozenset({"1", "true", "yes", "y", "on"})

load_dotenv(override=False)


def _raw(suffix: str, *fallbacks: str) -> Optional[str]:
    """First non-blank value among TICKLER_<suffix> and any unprefixed fallbacks."""
    for name in (f"{ENV_PREFIX}_{suffix}", *fallbacks):
        value = os.getenv(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def _str(suffix: str, default: str = "", *fallbacks: str) -> str:
    return _raw(suffix, *fallbacks) or default


def _bool(suffix: str, default: bool) -> bool:
    value = _raw(suffix)
    return default if value is None else value.lower() in _TRUE_WORDS


def _number(suffix: str, default, cast):
    value = _raw(suffix)
    if value is None:
        return default
    try:
        return cast(value)
    except ValueError:
        return default


def _rooms(suffix: str, *fallbacks: str) -> List[str]:
    value = _raw(suffix, *fallbacks)
    if value is None:
        return []
    return [room for room in value.replace(",", " ").split() if room]


def _path(suffix: str, default: Path) -> Path:
    value = _raw(suffix)
    return default if value is None else Path(value).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    app_name: str
    log_level: str

    # reminders
    timezone: str
    escalation_interval_seconds: float
    min_year: int
    persist_tasks: bool

    # connectors
    console_enabled: bool
    console_owner_id: str
    matrix_enabled: bool

    matrix_homeserver: str
    matrix_user_id: str
    matrix_password: str
    matrix_rooms: List[str]

    # gitignored local data
    data_dir: Path
    matrix_store_path: Path
    tasks_db_path: Path

    matrix_device_name: Optional[str] = None

    @staticmethod
    def from_env() -> "Settings":
        data_dir = _path("DATA_DIR", DEFAULT_DATA_DIR)
        return Settings(
            app_name=_str("APP_NAME", "tickler"),
            log_level=_str("LOG_LEVEL", "INFO").upper(),
            timezone=_str("TIMEZONE", DEFAULT_TIMEZONE),
            escalation_interval_seconds=_number("ESCALATION_INTERVAL_SECONDS", 3600.0, float),
            min_year=_number("MIN_YEAR", 2024, int),
            persist_tasks=_bool("PERSIST_TASKS", True),
            console_enabled=_bool("CONSOLE_ENABLED", True),
            console_owner_id=_str("CONSOLE_OWNER_ID", "console"),
            matrix_enabled=_bool("MATRIX_ENABLED", False),
            matrix_homeserver=_str("MATRIX_HOMESERVER", "", "MATRIX_HOMESERVER"),
            matrix_user_id=_str("MATRIX_USER_ID", "", "MATRIX_USER_ID"),
            matrix_password=_str("MATRIX_PASSWORD", "", "MATRIX_PASSWORD"),
            matrix_rooms=_rooms("MATRIX_ROOMS", "MATRIX_ROOMS"),
            data_dir=data_dir,
            matrix_store_path=_path("MATRIX_STORE_PATH", data_dir / "matrix_store"),
            tasks_db_path=_path("TASKS_DB_PATH", data_dir / "tasks.sqlite3"),
            matrix_device_name=_raw("MATRIX_DEVICE_NAME"),
        )

    def validate(self) -> None:
        """Raise ValueError for settings the reminder engine cannot run with."""
        load_timezone(self.timezone)
        if self.escalation_interval_seconds <= 0:
            raise ValueError(
                f"{ENV_PREFIX}_ESCALATION_INTERVAL_SECONDS must be positive, "
                f"got {self.escalation_interval_seconds}"
            )
        if self.matrix_enabled and not (self.matrix_homeserver and self.matrix_user_id):
            raise ValueError(
                f"{ENV_PREFIX}_MATRIX_HOMESERVER and {ENV_PREFIX}_MATRIX_USER_ID are required "
                "when Matrix is enabled"
            )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
