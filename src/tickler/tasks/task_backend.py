# src/tickler/tasks/task_backend.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterable
from datetime import datetime, tzinfo
from pathlib import Path

from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)


class SqliteTaskBackend:
    """
    SQLite write-through backend for TaskStore.

    Only pending tasks are kept: completing or clearing a task deletes its row.
    The per-owner id counter lives in its own table so ids are not reused
    after a restart.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3", *, tz: tzinfo | None = None) -> None:
        self._db_path = Path(db_path)
        # Stored offsets are fixed; loaded datetimes are moved back onto this zone.
        self._tz = tz
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("SqliteTaskBackend ready db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    owner_id TEXT NOT NULL,
                    id INTEGER NOT NULL,
                    description TEXT NOT NULL,
                    due_at TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    room_id TEXT,
                    PRIMARY KEY (owner_id, id)
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS owners (
                    owner_id TEXT PRIMARY KEY,
                    next_id INTEGER NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def _parse_ts(self, raw: str) -> datetime:
        value = datetime.fromisoformat(raw)
        if value.tzinfo is None:
            raise ValueError(f"naive timestamp in tasks table: {raw!r}")
        return value.astimezone(self._tz) if self._tz is not None else value

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            owner_id=str(row["owner_id"]),
            description=str(row["description"]),
            due_at=self._parse_ts(row["due_at"]),
            created_at=self._parse_ts(row["created_at"]),
            status=TaskStatus.PENDING,
            room_id=row["room_id"],
        )

    # ---- public API ----

    def load(self) -> tuple[dict[str, int], list[Task]]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT owner_id, next_id FROM owners")
            counters = {str(r["owner_id"]): int(r["next_id"]) for r in cur.fetchall()}

            # rowid keeps insertion order per owner
            cur.execute("SELECT * FROM tasks ORDER BY owner_id, rowid")
            tasks: list[Task] = []
            for row in cur.fetchall():
                try:
                    tasks.append(self._row_to_task(row))
                except (TypeError, ValueError):
                    logger.warning(
                        "Skipping unreadable task row owner=%s id=%s", row["owner_id"], row["id"]
                    )
            return counters, tasks
        finally:
            conn.close()

    def insert(self, task: Task, *, next_id: int) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO tasks (owner_id, id, description, due_at, created_at, room_id)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    task.owner_id,
                    task.id,
                    task.description,
                    task.due_at.isoformat(),
                    task.created_at.isoformat(),
                    task.room_id,
                ),
            )
            cur.execute(
                """
                INSERT INTO owners (owner_id, next_id) VALUES (?, ?)
                ON CONFLICT(owner_id) DO UPDATE SET next_id = MAX(next_id, excluded.next_id)
                """,
                (task.owner_id, int(next_id)),
            )
            conn.commit()
        finally:
            conn.close()

    def remove(self, owner_id: str, task_ids: Iterable[int]) -> None:
        ids = [int(i) for i in task_ids]
        if not ids:
            return
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.executemany(
                "DELETE FROM tasks WHERE owner_id = ? AND id = ?",
                [(owner_id, i) for i in ids],
            )
            conn.commit()
        finally:
            conn.close()
