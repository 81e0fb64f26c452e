# tests/fakes.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from tickler.core.errors import NotificationDeliveryError
from tickler.core.ports import OutboundMessenger


async def settle(rounds: int = 20) -> None:
    """Let every ready coroutine run until it blocks again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@dataclass(slots=True)
class SentMessage:
    text: str
    room_id: str | None
    to_user_id: str | None


@dataclass(slots=True)
class FakeMessenger(OutboundMessenger):
    """
    Fake OutboundMessenger used by scheduler tests.
    """

    sent: list[SentMessage] = field(default_factory=list)

    async def send_text(
        self,
        *,
        text: str,
        room_id: str | None = None,
        to_user_id: str | None = None,
    ) -> None:
        self.sent.append(SentMessage(text=text, room_id=room_id, to_user_id=to_user_id))

    def texts_for(self, owner_id: str) -> list[str]:
        return [m.text for m in self.sent if m.to_user_id == owner_id]


@dataclass(slots=True)
class FailingMessenger(OutboundMessenger):
    """Fails the first `failures` sends, then behaves like FakeMessenger."""

    failures: int = 1
    attempts: int = 0
    sent: list[SentMessage] = field(default_factory=list)

    async def send_text(
        self,
        *,
        text: str,
        room_id: str | None = None,
        to_user_id: str | None = None,
    ) -> None:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise NotificationDeliveryError("channel down")
        self.sent.append(SentMessage(text=text, room_id=room_id, to_user_id=to_user_id))


class FakeClock:
    """
    Virtual-time Clock.

    Time advances in real (UTC) seconds; now() reports that instant in the
    start's timezone, so DST changes show up exactly as on a wall clock.
    sleep() parks until advance() moves the clock past the sleeper's deadline;
    sleepers are woken in deadline order with now() set to their deadline.
    """

    def __init__(self, start: datetime) -> None:
        self._tz = start.tzinfo
        self._utc = start.astimezone(timezone.utc)
        self._sleepers: list[tuple[datetime, int, asyncio.Future[None]]] = []
        self._seq = 0

    @property
    def current(self) -> datetime:
        return self._utc.astimezone(self._tz)

    def now(self) -> datetime:
        return self.current

    async def sleep(self, seconds: float) -> None:
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._seq += 1
        entry = (self._utc + timedelta(seconds=max(0.0, seconds)), self._seq, fut)
        self._sleepers.append(entry)
        try:
            await fut
        finally:
            if entry in self._sleepers:
                self._sleepers.remove(entry)

    @property
    def sleeping(self) -> int:
        return sum(1 for _, _, fut in self._sleepers if not fut.done())

    async def advance(self, seconds: float) -> None:
        target = self._utc + timedelta(seconds=seconds)
        await settle()
        while True:
            due = [s for s in self._sleepers if s[0] <= target and not s[2].done()]
            if not due:
                break
            wake_at, _, fut = min(due, key=lambda s: (s[0], s[1]))
            self._utc = max(self._utc, wake_at)
            fut.set_result(None)
            await settle()
        self._utc = target
        await settle()
