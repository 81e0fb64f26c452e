# tests/test_task_backend.py

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from tickler.tasks.task_backend import SqliteTaskBackend
from tickler.tasks.task_store import TaskStore

from .conftest import BANGKOK, START

DUE = START + timedelta(hours=3)


def test_pending_tasks_survive_restart(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"

    store = TaskStore(SqliteTaskBackend(db, tz=BANGKOK))
    keep = store.create("u1", "water plants", DUE, room_id="!room:example.org")
    gone = store.create("u1", "done already", DUE)
    store.create("u2", "cleared", DUE)
    store.complete("u1", gone.id)
    store.clear("u2")

    restarted = TaskStore(SqliteTaskBackend(db, tz=BANGKOK))
    restored = restarted.load()

    assert [(t.owner_id, t.id, t.description) for t in restored] == [("u1", keep.id, "water plants")]
    task = restored[0]
    assert task.due_at == DUE
    assert task.due_at.tzinfo is BANGKOK
    assert task.room_id == "!room:example.org"


def test_id_counter_survives_restart(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"

    store = TaskStore(SqliteTaskBackend(db))
    for name in ("a", "b", "c"):
        store.create("u1", name, DUE)
    store.clear("u1")

    restarted = TaskStore(SqliteTaskBackend(db))
    restarted.load()
    assert restarted.create("u1", "d", DUE).id == 4


class _BrokenBackend:
    def load(self):
        return {}, []

    def insert(self, task, *, next_id):
        raise OSError("disk full")

    def remove(self, owner_id, task_ids):
        raise OSError("disk full")


def test_backend_failure_leaves_memory_untouched() -> None:
    store = TaskStore(_BrokenBackend())
    with pytest.raises(OSError):
        store.create("u1", "x", DUE)
    assert store.list("u1") == []
