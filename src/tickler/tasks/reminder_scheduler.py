# src/tickler/tasks/reminder_scheduler.py

from __future__ import annotations

"""
Reminder scheduler.

One timer state machine per pending task:

    SCHEDULED --due--> FIRED_INITIAL --> ESCALATING --tick--> ESCALATING ...
        \\                  \\                 \\
         +------------------+-----------------+--> CANCELLED (terminal)

Each lifecycle is a single asyncio.Task, so transitions for one task never overlap
and thousands of reminders can be armed at once. Entries live in an arena keyed by
(owner_id, task_id); cancelling means "mark CANCELLED and drop the handle".

The store is re-checked at every fire: that check (not a lock around the timer) is
what keeps a stale tick from notifying after complete/clear. A send that was already
in flight when cancellation arrived may still finish.

Delivery failures are logged and never change state.
"""

import asyncio
import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from ..core.clock import as_utc, elapsed
from ..core.ports import Clock, OutboundMessenger
from .task_models import ReminderState, Task
from .task_store import TaskStore
from .task_text import build_escalation_text, build_initial_text

logger = logging.getLogger(__name__)

DEFAULT_ESCALATION_INTERVAL_SECONDS = 3600.0


@dataclass(slots=True, eq=False)
class ReminderEntry:
    task: Task
    state: ReminderState = ReminderState.SCHEDULED
    handle: asyncio.Task[None] | None = None
    fired_at: datetime | None = None
    deliveries: int = 0
    failures: int = 0

    @property
    def key(self) -> tuple[str, int]:
        return self.task.key


class ReminderScheduler:
    """
    Owns every reminder timer.

    schedule()/cancel() may be called from any thread; timer handles are only
    created and cancelled on the scheduler's event loop. Entries scheduled before
    start() are queued and armed once the loop is bound.
    """

    def __init__(
        self,
        task_store: TaskStore,
        messenger: OutboundMessenger,
        *,
        clock: Clock,
        escalation_interval_seconds: float = DEFAULT_ESCALATION_INTERVAL_SECONDS,
    ) -> None:
        if escalation_interval_seconds <= 0:
            raise ValueError("escalation_interval_seconds must be positive")

        self._store = task_store
        self._messenger = messenger
        self._clock = clock
        self._interval = timedelta(seconds=float(escalation_interval_seconds))

        self._entries: dict[tuple[str, int], ReminderEntry] = {}
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

    # ---- loop binding ----

    def start(self) -> None:
        """Bind to the running loop and arm everything queued so far."""
        loop = asyncio.get_running_loop()
        with self._lock:
            self._loop = loop
            queued = [e for e in self._entries.values() if e.handle is None]
        for entry in queued:
            self._arm(entry)
        logger.info(
            "Reminder scheduler started (armed=%d, interval=%ss)",
            len(queued),
            int(self._interval.total_seconds()),
        )

    async def run(self) -> None:
        """start(), then park until cancelled. Cancel the coroutine to stop."""
        self.start()
        try:
            await asyncio.Event().wait()
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        """Release every timer (process stop). Tasks stay pending in the store."""
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
            loop = self._loop
            self._loop = None
            handles = [self._mark_cancelled(e) for e in entries]

        if loop is not None:
            for handle in handles:
                if handle is not None:
                    self._call_in_loop(loop, handle.cancel)
        logger.info("Reminder scheduler stopped (released=%d)", len(entries))

    # ---- public API ----

    def schedule(self, task: Task) -> None:
        if not task.is_pending:
            raise ValueError(f"task {task.key} is not pending")

        entry = ReminderEntry(task=task)
        with self._lock:
            previous = self._entries.get(task.key)
            self._entries[task.key] = entry
            stale_handle = self._mark_cancelled(previous) if previous is not None else None
            loop = self._loop

        if loop is not None and stale_handle is not None:
            self._call_in_loop(loop, stale_handle.cancel)

        # A complete/clear that ran between create and here found no entry to cancel.
        if self._store.find(task.owner_id, task.id) is None:
            with self._lock:
                if self._entries.get(task.key) is entry:
                    del self._entries[task.key]
                self._mark_cancelled(entry)
            logger.info(
                "Reminder dropped owner=%s task=%s: removed before arming", task.owner_id, task.id
            )
            return

        if loop is not None:
            self._call_in_loop(loop, self._arm, entry)

        logger.info(
            "Reminder scheduled owner=%s task=%s due_at=%s",
            task.owner_id,
            task.id,
            task.due_at.isoformat(),
        )

    def cancel(self, owner_id: str, task_id: int) -> bool:
        """
        Cancel a task's reminders. Safe to call at any point of the lifecycle,
        including while a fire is racing with it. Returns False if nothing was armed.
        """
        with self._lock:
            entry = self._entries.pop((owner_id, task_id), None)
            if entry is None:
                return False
            handle = self._mark_cancelled(entry)
            loop = self._loop

        if handle is not None and loop is not None:
            self._call_in_loop(loop, handle.cancel)

        logger.info("Reminder cancelled owner=%s task=%s", owner_id, task_id)
        return True

    def cancel_many(self, tasks: Iterable[Task]) -> int:
        return sum(1 for t in tasks if self.cancel(t.owner_id, t.id))

    def state_of(self, owner_id: str, task_id: int) -> ReminderState | None:
        with self._lock:
            entry = self._entries.get((owner_id, task_id))
            return entry.state if entry is not None else None

    def delivery_stats(self, owner_id: str, task_id: int) -> tuple[int, int] | None:
        """(delivered, failed) sends for an armed reminder, None if nothing is armed."""
        with self._lock:
            entry = self._entries.get((owner_id, task_id))
            return (entry.deliveries, entry.failures) if entry is not None else None

    def active_count(self) -> int:
        with self._lock:
            return len(self._entries)

    # ---- internals ----

    @staticmethod
    def _call_in_loop(loop: asyncio.AbstractEventLoop, fn: Callable[..., Any], *args: Any) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            fn(*args)
            return

        try:
            loop.call_soon_threadsafe(fn, *args)
        except RuntimeError:
            logger.debug("Scheduler loop is closed; dropping %r", fn)

    @staticmethod
    def _mark_cancelled(entry: ReminderEntry) -> asyncio.Task[None] | None:
        # Caller holds self._lock.
        entry.state = ReminderState.CANCELLED
        handle, entry.handle = entry.handle, None
        return handle

    def _arm(self, entry: ReminderEntry) -> None:
        with self._lock:
            if (
                self._loop is None
                or entry.handle is not None
                or entry.state is not ReminderState.SCHEDULED
                or self._entries.get(entry.key) is not entry
            ):
                return
            owner_id, task_id = entry.key
            entry.handle = self._loop.create_task(
                self._lifecycle(entry), name=f"reminder:{owner_id}:{task_id}"
            )

    def _advance(self, entry: ReminderEntry, new_state: ReminderState) -> bool:
        with self._lock:
            if entry.state is ReminderState.CANCELLED:
                return False
            old = entry.state
            entry.state = new_state
        logger.debug("Reminder %s: %s -> %s", entry.key, old.value, new_state.value)
        return True

    def _finish(self, entry: ReminderEntry, reason: str) -> None:
        with self._lock:
            entry.state = ReminderState.CANCELLED
            entry.handle = None
            if self._entries.get(entry.key) is entry:
                del self._entries[entry.key]
        logger.info(
            "Reminder %s finished: %s (delivered=%d failed=%d)",
            entry.key,
            reason,
            entry.deliveries,
            entry.failures,
        )

    def _is_live(self, entry: ReminderEntry) -> bool:
        with self._lock:
            if entry.state is ReminderState.CANCELLED:
                return False
        owner_id, task_id = entry.key
        return self._store.find(owner_id, task_id) is not None

    async def _sleep_until(self, when: datetime) -> None:
        while True:
            delay = elapsed(self._clock.now(), when).total_seconds()
            if delay <= 0:
                return
            await self._clock.sleep(delay)

    async def _deliver(self, entry: ReminderEntry, text: str, *, kind: str) -> bool:
        task = entry.task
        try:
            await self._messenger.send_text(text=text, room_id=task.room_id, to_user_id=task.owner_id)
        except Exception as e:
            entry.failures += 1
            logger.warning(
                "Reminder %s delivery failed owner=%s task=%s: %r", kind, task.owner_id, task.id, e
            )
            return False

        entry.deliveries += 1
        logger.info("Reminder %s sent owner=%s task=%s", kind, task.owner_id, task.id)
        return True

    async def _lifecycle(self, entry: ReminderEntry) -> None:
        task = entry.task
        try:
            await self._sleep_until(task.due_at)
            if not self._is_live(entry):
                self._finish(entry, "no longer pending at due time")
                return

            # A failed initial send still moves on to escalation.
            await self._deliver(entry, build_initial_text(task), kind="initial")
            entry.fired_at = self._clock.now()
            anchor = as_utc(entry.fired_at)
            if not self._advance(entry, ReminderState.FIRED_INITIAL):
                self._finish(entry, "cancelled during initial send")
                return
            if not self._advance(entry, ReminderState.ESCALATING):
                self._finish(entry, "cancelled during initial send")
                return

            tick = 1
            while True:
                await self._sleep_until(anchor + self._interval * tick)
                if not self._is_live(entry):
                    self._finish(entry, "no longer pending")
                    return

                overdue = elapsed(task.due_at, self._clock.now())
                await self._deliver(entry, build_escalation_text(task, overdue), kind="escalation")

                # Skip ticks missed while the loop was stalled instead of bursting.
                since_fire = elapsed(anchor, self._clock.now())
                tick = max(tick + 1, int(since_fire / self._interval) + 1)

        except asyncio.CancelledError:
            self._finish(entry, "cancelled")
            raise
        except Exception:
            logger.exception("Reminder lifecycle crashed owner=%s task=%s", task.owner_id, task.id)
            self._finish(entry, "crashed")
