# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from tickler.connectors.routing import OwnerRoutedMessenger
from tickler.core.state import AppState
from tickler.tasks.reminder_scheduler import ReminderScheduler
from tickler.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeMessenger

BANGKOK = ZoneInfo("Asia/Bangkok")

# Monday
START = datetime(2025, 3, 10, 10, 0, tzinfo=BANGKOK)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="tickler-test",
        timezone="Asia/Bangkok",
        escalation_interval_seconds=3600.0,
        min_year=2024,
        persist_tasks=False,
        console_enabled=False,
        console_owner_id="console",
        matrix_enabled=False,
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        matrix_store_path=tmp_path / "matrix_store",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture()
def messenger() -> FakeMessenger:
    return FakeMessenger()


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FakeClock, messenger: FakeMessenger) -> AppState:
    """
    AppState wired with a virtual clock and a recording messenger.

    The scheduler is not started here: async tests call state.scheduler.start()
    inside their own event loop.
    """
    store = TaskStore()
    routed = OwnerRoutedMessenger(default=messenger)
    scheduler = ReminderScheduler(
        store,
        routed,
        clock=clock,
        escalation_interval_seconds=settings.escalation_interval_seconds,
    )
    return AppState(
        settings=settings,
        clock=clock,
        task_store=store,
        scheduler=scheduler,
        messenger=routed,
    )
