# src/tickler/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class TaskStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"


class ReminderState(StrEnum):
    """
    Per-task timer lifecycle.

    SCHEDULED -> FIRED_INITIAL -> ESCALATING -> CANCELLED
    CANCELLED is terminal and reachable from every other state.
    """

    SCHEDULED = "scheduled"
    FIRED_INITIAL = "fired_initial"
    ESCALATING = "escalating"
    CANCELLED = "cancelled"


@dataclass(slots=True, frozen=True)
class Task:
    id: int
    owner_id: str
    description: str
    due_at: datetime
    created_at: datetime
    status: TaskStatus = TaskStatus.PENDING

    # Delivery hint from the channel the task came from (e.g. a Matrix room).
    room_id: str | None = None

    @property
    def key(self) -> tuple[str, int]:
        return (self.owner_id, self.id)

    @property
    def is_pending(self) -> bool:
        return self.status is TaskStatus.PENDING
