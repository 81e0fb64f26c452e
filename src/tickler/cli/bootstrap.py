# src/tickler/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires clock, task store (+ optional SQLite backend), messenger and scheduler
  into AppState,
- restores pending tasks and re-arms their reminders.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.routing import OwnerRoutedMessenger
from ..core.clock import SystemClock, load_timezone
from ..core.state import AppState
from ..tasks.reminder_scheduler import ReminderScheduler
from ..tasks.task_api import rearm_pending
from ..tasks.task_backend import SqliteTaskBackend
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    if settings.matrix_enabled:
        settings.matrix_store_path.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    tz = load_timezone(settings.timezone)
    clock = SystemClock(tz)

    backend = SqliteTaskBackend(settings.tasks_db_path, tz=tz) if settings.persist_tasks else None
    task_store = TaskStore(backend)

    messenger = OwnerRoutedMessenger()
    scheduler = ReminderScheduler(
        task_store,
        messenger,
        clock=clock,
        escalation_interval_seconds=settings.escalation_interval_seconds,
    )

    state = AppState(
        settings=settings,
        clock=clock,
        task_store=task_store,
        scheduler=scheduler,
        messenger=messenger,
    )

    # Queued until the scheduler loop starts.
    rearm_pending(state, task_store.load())
    return state
