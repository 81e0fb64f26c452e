# src/tickler/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..connectors.routing import OwnerRoutedMessenger
from ..tasks.reminder_scheduler import ReminderScheduler
from ..tasks.task_store import TaskStore
from .ports import Clock


@dataclass
class AppState:
    """Everything a connector or command handler needs, wired once in bootstrap."""

    settings: Any
    clock: Clock
    task_store: TaskStore
    scheduler: ReminderScheduler
    messenger: OwnerRoutedMessenger
