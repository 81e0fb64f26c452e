# src/tickler/tasks/task_text.py

"""User-facing text for reminders and task listings."""

from __future__ import annotations

from datetime import datetime, timedelta

from .task_models import Task


def format_due(dt: datetime) -> str:
    return dt.strftime("%a %Y-%m-%d %H:%M")


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}" if n == 1 else f"{n} {unit}s"


def format_duration(delta: timedelta) -> str:
    """Whole hours and minutes, e.g. "1 hour", "2 hours 15 minutes", "45 minutes"."""
    total_minutes = max(0, int(delta.total_seconds() // 60))
    hours, minutes = divmod(total_minutes, 60)
    if hours and minutes:
        return f"{_plural(hours, 'hour')} {_plural(minutes, 'minute')}"
    if hours:
        return _plural(hours, "hour")
    return _plural(minutes, "minute")


def done_hint(task: Task) -> str:
    return f'Reply "done {task.id}" once it is finished.'


def build_initial_text(task: Task) -> str:
    return f"Reminder: {task.description}\nDue: {format_due(task.due_at)}\n{done_hint(task)}"


def build_escalation_text(task: Task, overdue: timedelta) -> str:
    return (
        f"Still pending: {task.description}\n"
        f"Due: {format_due(task.due_at)}\n"
        f"Overdue by {format_duration(overdue)}.\n"
        f"{done_hint(task)}"
    )
