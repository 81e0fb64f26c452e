# tests/test_task_store.py

from __future__ import annotations

import threading
from datetime import datetime, timedelta

import pytest

from tickler.core.errors import TaskNotFoundError
from tickler.tasks.task_models import TaskStatus
from tickler.tasks.task_store import TaskStore

from .conftest import START

DUE = START + timedelta(hours=2)


def test_create_list_round_trip() -> None:
    store = TaskStore()
    task = store.create("u1", "pay rent", DUE)

    assert task.id == 1
    assert task.status is TaskStatus.PENDING
    listed = store.list("u1")
    assert [(t.description, t.due_at) for t in listed] == [("pay rent", DUE)]


def test_list_keeps_insertion_order_and_owners_are_isolated() -> None:
    store = TaskStore()
    store.create("u1", "b", DUE + timedelta(hours=1))
    store.create("u1", "a", DUE)
    store.create("u2", "other", DUE)

    assert [t.description for t in store.list("u1")] == ["b", "a"]
    assert [t.description for t in store.list("u2")] == ["other"]
    assert store.find("u2", 2) is None
    assert store.list("nobody") == []


def test_complete_twice_then_not_found() -> None:
    store = TaskStore()
    task = store.create("u1", "call mom", DUE)

    done = store.complete("u1", task.id)
    assert done.status is TaskStatus.COMPLETED
    assert store.find("u1", task.id) is None

    with pytest.raises(TaskNotFoundError):
        store.complete("u1", task.id)


def test_ids_are_not_reused_after_removal() -> None:
    store = TaskStore()
    t1 = store.create("u1", "one", DUE)
    t2 = store.create("u1", "two", DUE)
    store.complete("u1", t1.id)
    t3 = store.create("u1", "three", DUE)

    assert t3.id not in (t1.id, t2.id)
    assert t3.id == 3

    store.clear("u1")
    assert store.create("u1", "four", DUE).id == 4


def test_clear_returns_removed_tasks() -> None:
    store = TaskStore()
    for name in ("a", "b", "c"):
        store.create("u1", name, DUE)

    removed = store.clear("u1")
    assert [t.description for t in removed] == ["a", "b", "c"]
    assert store.list("u1") == []
    assert store.clear("u1") == []


def test_create_rejects_bad_input() -> None:
    store = TaskStore()
    with pytest.raises(ValueError):
        store.create("u1", "   ", DUE)
    with pytest.raises(ValueError):
        store.create("u1", "naive", datetime(2025, 3, 10, 12, 0))
    with pytest.raises(ValueError):
        store.create("", "no owner", DUE)


def test_concurrent_creates_never_share_an_id() -> None:
    store = TaskStore()
    barrier = threading.Barrier(8)

    def worker() -> None:
        barrier.wait()
        for i in range(50):
            store.create("u1", f"task {i}", DUE)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    ids = [t.id for t in store.list("u1")]
    assert len(ids) == 400
    assert sorted(ids) == list(range(1, 401))


def test_concurrent_complete_has_exactly_one_winner() -> None:
    store = TaskStore()
    task = store.create("u1", "once", DUE)
    barrier = threading.Barrier(6)
    outcomes: list[str] = []
    lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        try:
            store.complete("u1", task.id)
            result = "ok"
        except TaskNotFoundError:
            result = "missing"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("missing") == 5
