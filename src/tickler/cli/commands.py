# src/tickler/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import timedelta

from ..core.clock import elapsed
from ..core.state import AppState
from ..tasks import task_api
from ..tasks.task_text import format_due, format_duration
from ..tasks.time_resolver import FORMATS_HELP, TRAILING_TIME_REGEX

# (state, raw argument text, user_id, room_id) -> reply
CommandHandler = Callable[[AppState, str, str | None, str | None], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """
    Text command registry used by connectors (add, done, list, ...).

    Commands are matched case-insensitively on the first word; a leading "/" is
    optional so both "list" and "/list" work.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        user_id: str | None = None,
        room_id: str | None = None,
    ) -> str | None:
        """
        Handle a string like "add pay rent | 18:00".
        Returns a reply string, or None for empty input.
        """
        text = (line or "").strip()
        if text.startswith("/"):
            text = text[1:].lstrip()
        if not text:
            return None

        name, _, rest = text.partition(" ")
        name = name.lower()

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: {name}. Use help to list available commands."

        logger.debug("Command %s (user_id=%s room_id=%s)", name, user_id, room_id)
        return handler(state, rest.strip(), user_id, room_id)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  {name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _owner(state: AppState, user_id: str | None) -> str:
    return user_id or str(getattr(state.settings, "console_owner_id", "console"))


def _now_line(state: AppState) -> str:
    return f"Current time: {format_due(state.clock.now())}"


def _split_add_args(args: str) -> tuple[str, str] | None:
    if "|" in args:
        description, _, time_text = args.rpartition("|")
        return description.strip(), time_text.strip()
    m = TRAILING_TIME_REGEX.match(args.strip())
    if m:
        return m.group("desc").strip(), m.group("time").strip()
    return None


def cmd_help(state: AppState, args: str, user_id: str | None, room_id: str | None) -> str:
    return (
        f"{registry.build_help()}\n\n"
        f"Time formats: {FORMATS_HELP}\n"
        "You get a reminder at the due time, then again every "
        f"{_interval_text(state)} until you mark it done.\n"
        f"{_now_line(state)}"
    )


def _interval_text(state: AppState) -> str:
    seconds = float(getattr(state.settings, "escalation_interval_seconds", 3600.0))
    return format_duration(timedelta(seconds=seconds))


def cmd_add(state: AppState, args: str, user_id: str | None, room_id: str | None) -> str:
    """
    add <description> | <time>
    add <description> <time>      (when the text ends with a time)
    """
    parts = _split_add_args(args)
    if parts is None or not parts[0] or not parts[1]:
        return (
            "Usage: add <task> | <time>\n"
            "Example: add call mom | 14:30\n"
            f"Time formats: {FORMATS_HELP}\n"
            f"{_now_line(state)}"
        )

    description, time_text = parts
    result = task_api.add_task(state, _owner(state, user_id), description, time_text, room_id=room_id)
    if not result.ok or result.task is None:
        return f"Could not add the task: {result.reason}\n{_now_line(state)}"

    task = result.task
    return (
        f"Added #{task.id}: {task.description}\n"
        f"I will remind you at {format_due(task.due_at)}.\n"
        'Type "list" to see all tasks.'
    )


def cmd_done(state: AppState, args: str, user_id: str | None, room_id: str | None) -> str:
    if not args:
        return 'Usage: done <id>. Type "list" to see task ids.'

    result = task_api.complete_task(state, _owner(state, user_id), args.split()[0])
    if not result.ok or result.task is None:
        return f'{result.reason}\nType "list" to see task ids.'
    return f"Done: {result.task.description}. Nice work!"


def cmd_list(state: AppState, args: str, user_id: str | None, room_id: str | None) -> str:
    result = task_api.list_tasks(state, _owner(state, user_id))
    if not result.tasks:
        return f"No pending tasks. Add one with: add <task> | <time>\n{_now_line(state)}"

    now = state.clock.now()
    lines = ["Your tasks:"]
    for task in result.tasks:
        overdue = elapsed(task.due_at, now)
        if overdue >= timedelta(0):
            status = f"overdue by {format_duration(overdue)}"
        else:
            status = "waiting"
        lines.append(f"{task.id}. {task.description}")
        lines.append(f"   due {format_due(task.due_at)} ({status})")
    lines.append(_now_line(state))
    lines.append('Type "done <id>" when a task is finished.')
    return "\n".join(lines)


def cmd_clear(state: AppState, args: str, user_id: str | None, room_id: str | None) -> str:
    result = task_api.clear_tasks(state, _owner(state, user_id))
    n = len(result.tasks)
    if n == 0:
        return "Nothing to clear."
    return f"Cleared {n} task(s). All their reminders are stopped."


def cmd_time(state: AppState, args: str, user_id: str | None, room_id: str | None) -> str:
    tz_name = str(getattr(state.settings, "timezone", ""))
    suffix = f" ({tz_name})" if tz_name else ""
    return f"{_now_line(state)}{suffix}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?", "ช่วยเหลือ"])
registry.register("add", cmd_add, help_text="Add a task: add <task> | <time>.")
registry.register("done", cmd_done, help_text="Mark a task finished: done <id>.")
registry.register("list", cmd_list, help_text="List pending tasks.", aliases=["รายการ"])
registry.register("clear", cmd_clear, help_text="Remove all tasks and stop their reminders.", aliases=["ล้าง"])
registry.register("time", cmd_time, help_text="Show the current time.", aliases=["เวลา"])
