"""tickler: chat reminders that keep nudging until the task is done."""

__version__ = "0.1.0"
