# src/tickler/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps connectors/storage/clock swappable and makes testing easier.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Awaitable, Protocol


class OutboundMessenger(Protocol):
    """
    Connector-side port: how the reminder scheduler sends text outward.

    The connector decides how to interpret:
    - room_id (can be None)
    - to_user_id (the task owner)
    Raising means the message was not delivered.
    """

    def send_text(
            self,
            *,
            text: str,
            room_id: str | None = None,
            to_user_id: str | None = None,
    ) -> Awaitable[None]: ...


class Clock(Protocol):
    """Single source of "now" in the configured timezone."""

    def now(self) -> datetime: ...

    def sleep(self, seconds: float) -> Awaitable[None]: ...


class TaskBackend(Protocol):
    """Durable write-through storage behind the in-memory TaskStore."""

    def load(self) -> tuple[dict[str, int], list[Any]]: ...
    def insert(self, task: Any, *, next_id: int) -> None: ...
    def remove(self, owner_id: str, task_ids: Iterable[int]) -> None: ...
