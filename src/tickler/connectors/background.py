# src/tickler/connectors/background.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass

from ..core.state import AppState

logger = logging.getLogger(__name__)


async def _run_services(state: AppState, stop_event: asyncio.Event) -> None:
    """
    Run the reminder scheduler (and the Matrix connector, if enabled) on one loop
    until stop_event is set.
    """
    workers = [asyncio.create_task(state.scheduler.run(), name="reminder-scheduler")]

    if getattr(state.settings, "matrix_enabled", False):
        from .matrix_connector import run_matrix_connector

        workers.append(
            asyncio.create_task(run_matrix_connector(state, stop_event), name="matrix-connector")
        )

    try:
        await stop_event.wait()
    finally:
        for w in workers:
            w.cancel()
        for w in workers:
            with contextlib.suppress(asyncio.CancelledError):
                await w


@dataclass
class BackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal background stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_in_background(state: AppState) -> BackgroundRunner | None:
    """
    Start the service loop in a background thread so the console REPL (blocking
    input()) can run in the main thread.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_services(state, stop_event))
        except Exception:
            logger.exception("Background service loop crashed.")
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="tickler-services", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Background thread did not initialize properly.")
        return None

    logger.info("Background services started.")
    return BackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
