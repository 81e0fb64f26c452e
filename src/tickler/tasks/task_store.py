# src/tickler/tasks/task_store.py

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime

from ..core.errors import TaskNotFoundError
from ..core.ports import TaskBackend
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _OwnerTasks:
    lock: threading.Lock = field(default_factory=threading.Lock)
    # Insertion-ordered: dicts keep insertion order.
    tasks: dict[int, Task] = field(default_factory=dict)
    next_id: int = 1


class TaskStore:
    """
    Process-resident store of active (pending) tasks, partitioned by owner.

    Thread-safety:
    - every owner has its own lock; all operations on one owner run under it,
      so they are linearizable per owner and parallel across owners
    - the registry lock only guards lazy creation of owner sets

    Ids come from a per-owner counter that never goes backwards, so an id is
    never handed out twice to the same owner (not even after completion).

    An optional backend receives write-through updates before memory changes;
    a failing backend write leaves the in-memory state untouched.
    """

    def __init__(self, backend: TaskBackend | None = None) -> None:
        self._backend = backend
        self._owners: dict[str, _OwnerTasks] = {}
        self._registry_lock = threading.Lock()

    # ---- low-level helpers ----

    def _owner(self, owner_id: str) -> _OwnerTasks:
        if not owner_id:
            raise ValueError("owner_id is required")
        with self._registry_lock:
            owner = self._owners.get(owner_id)
            if owner is None:
                owner = _OwnerTasks()
                self._owners[owner_id] = owner
            return owner

    # ---- public API ----

    def load(self) -> list[Task]:
        """Restore pending tasks and id counters from the backend (startup only)."""
        if self._backend is None:
            return []

        counters, tasks = self._backend.load()
        restored: list[Task] = []

        for owner_id, next_id in counters.items():
            owner = self._owner(owner_id)
            with owner.lock:
                owner.next_id = max(owner.next_id, int(next_id))

        for task in tasks:
            if not task.is_pending:
                continue
            owner = self._owner(task.owner_id)
            with owner.lock:
                owner.tasks[task.id] = task
                owner.next_id = max(owner.next_id, task.id + 1)
            restored.append(task)

        logger.info("TaskStore restored %d pending task(s) for %d owner(s)", len(restored), len(counters))
        return restored

    def create(
        self,
        owner_id: str,
        description: str,
        due_at: datetime,
        *,
        room_id: str | None = None,
        created_at: datetime | None = None,
    ) -> Task:
        description = (description or "").strip()
        if not description:
            raise ValueError("description is required")
        if due_at.tzinfo is None:
            raise ValueError("due_at must be timezone-aware")

        owner = self._owner(owner_id)
        with owner.lock:
            task_id = owner.next_id
            while task_id in owner.tasks:
                task_id += 1

            task = Task(
                id=task_id,
                owner_id=owner_id,
                description=description,
                due_at=due_at,
                created_at=created_at or datetime.now(due_at.tzinfo),
                status=TaskStatus.PENDING,
                room_id=room_id,
            )

            if self._backend is not None:
                self._backend.insert(task, next_id=task_id + 1)

            owner.tasks[task_id] = task
            owner.next_id = task_id + 1

        logger.debug("Task created owner=%s id=%s due_at=%s", owner_id, task_id, due_at.isoformat())
        return task

    def find(self, owner_id: str, task_id: int) -> Task | None:
        owner = self._owner(owner_id)
        with owner.lock:
            return owner.tasks.get(task_id)

    def complete(self, owner_id: str, task_id: int) -> Task:
        """Mark a task completed and drop it from the active set in one step."""
        owner = self._owner(owner_id)
        with owner.lock:
            task = owner.tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)

            if self._backend is not None:
                self._backend.remove(owner_id, [task_id])

            del owner.tasks[task_id]

        logger.debug("Task completed owner=%s id=%s", owner_id, task_id)
        return replace(task, status=TaskStatus.COMPLETED)

    def list(self, owner_id: str) -> list[Task]:
        owner = self._owner(owner_id)
        with owner.lock:
            return list(owner.tasks.values())

    def clear(self, owner_id: str) -> list[Task]:
        owner = self._owner(owner_id)
        with owner.lock:
            removed = list(owner.tasks.values())
            if not removed:
                return []

            if self._backend is not None:
                self._backend.remove(owner_id, [t.id for t in removed])

            owner.tasks.clear()

        logger.debug("Tasks cleared owner=%s count=%d", owner_id, len(removed))
        return removed
