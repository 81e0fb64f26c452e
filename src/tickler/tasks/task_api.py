# src/tickler/tasks/task_api.py

"""
Command contract used by every connector.

Each call maps one user intent onto TaskStore + ReminderScheduler and returns a
Result. Parse, lookup and past-due errors end here as Result failures; they are
never raised to the connector.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..core.clock import as_utc
from ..core.errors import PastDueError, TaskNotFoundError, TicklerError, TimeParseError
from .task_models import Task
from .task_text import format_due
from .time_resolver import DEFAULT_MIN_YEAR, resolve_time

if TYPE_CHECKING:
    from ..core.state import AppState

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Result:
    ok: bool
    tasks: tuple[Task, ...] = ()
    error: TicklerError | None = None

    @property
    def task(self) -> Task | None:
        return self.tasks[0] if self.tasks else None

    @property
    def reason(self) -> str:
        return str(self.error) if self.error is not None else ""

    @classmethod
    def success(cls, *tasks: Task) -> Result:
        return cls(ok=True, tasks=tuple(tasks))

    @classmethod
    def failure(cls, error: TicklerError) -> Result:
        return cls(ok=False, error=error)


def add_task(
    state: AppState,
    owner_id: str,
    description: str,
    time_text: str,
    *,
    room_id: str | None = None,
) -> Result:
    description = (description or "").strip()
    if not description:
        return Result.failure(TicklerError("Task description is empty."))

    now = state.clock.now()
    min_year = int(getattr(state.settings, "min_year", DEFAULT_MIN_YEAR))
    try:
        due_at = resolve_time(time_text, now, min_year=min_year)
    except TimeParseError as e:
        logger.debug("add_task parse failed owner=%s text=%r: %s", owner_id, time_text, e)
        return Result.failure(e)

    if as_utc(due_at) <= as_utc(now):
        return Result.failure(
            PastDueError(f"{format_due(due_at)} is in the past (now {format_due(now)}).")
        )

    task = state.task_store.create(owner_id, description, due_at, room_id=room_id, created_at=now)
    state.scheduler.schedule(task)
    logger.info("Task added owner=%s id=%s due_at=%s", owner_id, task.id, due_at.isoformat())
    return Result.success(task)


def complete_task(state: AppState, owner_id: str, id_text: str) -> Result:
    raw = (id_text or "").strip().lstrip("#")
    try:
        task_id = int(raw)
    except ValueError:
        return Result.failure(TaskNotFoundError(raw or "?"))

    try:
        task = state.task_store.complete(owner_id, task_id)
    except TaskNotFoundError as e:
        return Result.failure(e)

    state.scheduler.cancel(owner_id, task.id)
    logger.info("Task completed owner=%s id=%s", owner_id, task.id)
    return Result.success(task)


def list_tasks(state: AppState, owner_id: str) -> Result:
    return Result.success(*state.task_store.list(owner_id))


def clear_tasks(state: AppState, owner_id: str) -> Result:
    removed = state.task_store.clear(owner_id)
    cancelled = state.scheduler.cancel_many(removed)
    logger.info("Tasks cleared owner=%s removed=%d timers=%d", owner_id, len(removed), cancelled)
    return Result.success(*removed)


def rearm_pending(state: AppState, tasks: list[Task]) -> int:
    """Schedule reminders for tasks restored from the backend."""
    for task in tasks:
        state.scheduler.schedule(task)
    if tasks:
        logger.info("Re-armed %d reminder(s) after restart", len(tasks))
    return len(tasks)
