# tests/test_commands.py

from __future__ import annotations

from tickler.cli.commands import CommandRegistry, registry
from tickler.tasks.task_models import ReminderState


def test_command_registry_routes_with_optional_slash(state) -> None:
    reg = CommandRegistry()
    seen: list[tuple[str, str | None, str | None]] = []

    def handler(state, args, user_id, room_id):
        seen.append((args, user_id, room_id))
        return "ok"

    reg.register("ping", handler, "ping", aliases=["p"])

    assert reg.handle(state, "/ping a b", user_id="u", room_id="r") == "ok"
    assert reg.handle(state, "PING", user_id="u") == "ok"
    assert reg.handle(state, "p x") == "ok"
    assert seen == [("a b", "u", "r"), ("", "u", None), ("x", None, None)]
    assert "ping - ping" in reg.build_help()


def test_command_registry_unknown_and_empty(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "   ") is None
    assert reg.handle(state, "/") is None
    assert "Unknown command: nope" in (reg.handle(state, "/nope") or "")


def test_add_with_separator_and_list(state) -> None:
    reply = registry.handle(state, "add pay rent | 18:00", user_id="u1") or ""
    assert reply.startswith("Added #1: pay rent")
    assert "Mon 2025-03-10 18:00" in reply

    listing = registry.handle(state, "list", user_id="u1") or ""
    assert "1. pay rent" in listing
    assert "(waiting)" in listing
    assert state.scheduler.state_of("u1", 1) is ReminderState.SCHEDULED


def test_add_with_trailing_time(state) -> None:
    reply = registry.handle(state, "add buy milk 25/12/2025 09:30", user_id="u1") or ""
    assert reply.startswith("Added #1: buy milk")
    task = state.task_store.find("u1", 1)
    assert task is not None
    assert (task.due_at.month, task.due_at.day, task.due_at.hour) == (12, 25, 9)


def test_add_past_time_today_rolls_to_tomorrow(state) -> None:
    # now is 10:00
    reply = registry.handle(state, "add early run | 06:00", user_id="u1") or ""
    assert "Tue 2025-03-11 06:00" in reply


def test_add_rejects_bad_time_and_past_dates(state) -> None:
    bad = registry.handle(state, "add thing | 31/02/2025 10:00", user_id="u1") or ""
    assert bad.startswith("Could not add the task:")

    past = registry.handle(state, "add thing | 2024-06-01 10:00", user_id="u1") or ""
    assert "in the past" in past

    usage = registry.handle(state, "add just words", user_id="u1") or ""
    assert usage.startswith("Usage: add")

    assert state.task_store.list("u1") == []
    assert state.scheduler.active_count() == 0


def test_done_flow(state) -> None:
    registry.handle(state, "add call mom | 14:30", user_id="u1")

    assert registry.handle(state, "done #1", user_id="u1") == "Done: call mom. Nice work!"
    assert state.scheduler.state_of("u1", 1) is None

    again = registry.handle(state, "done 1", user_id="u1") or ""
    assert again.startswith("No such task: 1")
    assert (registry.handle(state, "done abc", user_id="u1") or "").startswith("No such task: abc")
    assert (registry.handle(state, "done", user_id="u1") or "").startswith("Usage: done")


def test_done_only_touches_own_tasks(state) -> None:
    registry.handle(state, "add mine | 12:00", user_id="u1")
    reply = registry.handle(state, "done 1", user_id="u2") or ""
    assert reply.startswith("No such task")
    assert state.task_store.find("u1", 1) is not None


def test_clear_and_thai_aliases(state) -> None:
    for line in ("add a | 11:00", "add b | 12:00", "add c | 13:00"):
        registry.handle(state, line, user_id="u1")

    assert (registry.handle(state, "รายการ", user_id="u1") or "").count("due ") == 3
    assert registry.handle(state, "ล้าง", user_id="u1") == "Cleared 3 task(s). All their reminders are stopped."
    assert state.scheduler.active_count() == 0
    assert registry.handle(state, "clear", user_id="u1") == "Nothing to clear."
    assert (registry.handle(state, "list", user_id="u1") or "").startswith("No pending tasks.")


def test_console_owner_fallback(state) -> None:
    registry.handle(state, "add local | 11:00")
    assert [t.description for t in state.task_store.list("console")] == ["local"]


def test_help_and_time(state) -> None:
    help_text = registry.handle(state, "ช่วยเหลือ") or ""
    assert "add - " in help_text
    assert "every 1 hour" in help_text

    assert registry.handle(state, "เวลา") == "Current time: Mon 2025-03-10 10:00 (Asia/Bangkok)"
