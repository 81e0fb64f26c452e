# src/tickler/core/errors.py

"""
Error taxonomy.

Every TicklerError carries a message that is safe to show to the user as-is.
"""

from __future__ import annotations


class TicklerError(Exception):
    pass


class TimeParseError(TicklerError, ValueError):
    """Time text is malformed or a field is out of range."""


class TaskNotFoundError(TicklerError, LookupError):
    def __init__(self, task_id: object) -> None:
        super().__init__(f"No such task: {task_id}")
        self.task_id = task_id


class PastDueError(TicklerError, ValueError):
    """Resolved time is not strictly after the resolution instant."""


class NotificationDeliveryError(TicklerError):
    pass
