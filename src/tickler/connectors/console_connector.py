# src/tickler/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
import threading
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    try:
        if sys.stdout.isatty():
            sys.stdout.write("\033[1A\033[2K\r")
            sys.stdout.write(line + "\n")
            sys.stdout.flush()
        else:
            print(line)
    except Exception:
        print(line)


class ConsoleMessenger:
    """OutboundMessenger that prints reminders to stdout (called from the scheduler thread)."""

    def __init__(self, app_name: str = "tickler") -> None:
        self._app_name = app_name
        self._lock = threading.Lock()

    async def send_text(
        self,
        *,
        text: str,
        room_id: str | None = None,
        to_user_id: str | None = None,
    ) -> None:
        with self._lock:
            print(f"\n[{_ts_local()}] <<< {self._app_name}: {text}\n", flush=True)


def run_console_loop(state: AppState, messenger: ConsoleMessenger | None = None) -> None:
    owner_id = str(getattr(state.settings, "console_owner_id", "console"))
    app_name = str(getattr(state.settings, "app_name", "tickler"))
    messenger = messenger or ConsoleMessenger(app_name)
    state.messenger.bind(owner_id, messenger)

    logger.info("Console connector started (owner=%s).", owner_id)
    print(f"[{_ts_local()}] [CONSOLE] Type commands. Use help for the list. Use exit to quit.\n")

    while True:
        try:
            user_input = input(">>> You: ").strip()
            _rewrite_prev_line(f"[{_ts_local()}] >>> You: {user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit", "/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            reply = command_registry.handle(state, user_input, user_id=owner_id)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            print(f"[{_ts_local()}] <<< {app_name}: {reply}\n")

    logger.info("Console connector finished.")
