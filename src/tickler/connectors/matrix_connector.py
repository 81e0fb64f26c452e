# src/tickler/connectors/matrix_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
import time
from typing import Optional, Set

from nio import AsyncClient, MatrixRoom, RoomMessageText, RoomSendResponse, exceptions

from ..cli.commands import registry as command_registry
from ..core.errors import NotificationDeliveryError
from ..core.state import AppState
from .matrix_client import create_matrix_client

logger = logging.getLogger(__name__)


def _ms_now() -> int:
    return int(time.time() * 1000)


def _room_allowlist(settings_rooms: list[str]) -> Optional[Set[str]]:
    rooms = [r.strip() for r in (settings_rooms or []) if str(r).strip()]
    return set(rooms) if rooms else None


class MatrixMessenger:
    """
    OutboundMessenger over a Matrix client.

    Room choice for a reminder:
    - the room the task was created in (task.room_id)
    - else the room the owner last wrote from
    - else the first allowed room, else any joined room
    """

    def __init__(self, client: AsyncClient, allowed_rooms: Optional[Set[str]] = None) -> None:
        self._client = client
        self._allowed_rooms = allowed_rooms
        self._last_room: dict[str, str] = {}
        self._lock = threading.Lock()

    def remember_room(self, owner_id: str, room_id: str) -> None:
        with self._lock:
            self._last_room[owner_id] = room_id

    def _pick_room(self, room_id: str | None, to_user_id: str | None) -> str | None:
        if room_id:
            return room_id
        with self._lock:
            if to_user_id and to_user_id in self._last_room:
                return self._last_room[to_user_id]
        if self._allowed_rooms:
            return next(iter(self._allowed_rooms))
        if self._client.rooms:
            return next(iter(self._client.rooms.keys()))
        return None

    async def send_text(
        self,
        *,
        text: str,
        room_id: str | None = None,
        to_user_id: str | None = None,
    ) -> None:
        target = self._pick_room(room_id, to_user_id)
        if not target:
            raise NotificationDeliveryError(f"No Matrix room to reach {to_user_id!r}")

        try:
            resp = await self._client.room_send(
                room_id=target,
                message_type="m.room.message",
                content={"msgtype": "m.text", "body": text},
                ignore_unverified_devices=True,
            )
        except exceptions.OlmUnverifiedDeviceError as e:
            raise NotificationDeliveryError(f"Unverified device in {target}") from e

        if not isinstance(resp, RoomSendResponse):
            raise NotificationDeliveryError(f"Matrix send to {target} failed: {resp!r}")


async def run_matrix_connector(state: AppState, stop_event: asyncio.Event) -> None:
    """
    Matrix connector (async): init -> callbacks -> sync loop.

    Every text message in an allowed room is treated as a command from its sender.
    Runs on the same loop as the reminder scheduler.
    """
    settings = state.settings
    startup_ts = _ms_now()

    allowed_rooms = _room_allowlist(getattr(settings, "matrix_rooms", []) or [])
    logger.info("Matrix allowed_rooms=%s", allowed_rooms if allowed_rooms is not None else "ALL")

    client = await create_matrix_client(settings)
    if client is None:
        logger.error("Matrix client creation failed; connector will stop.")
        return

    messenger = MatrixMessenger(client, allowed_rooms)
    state.messenger.set_default(messenger)

    async def message_callback(room: MatrixRoom, event: RoomMessageText) -> None:
        # Ignore history from before startup.
        ts = getattr(event, "server_timestamp", None)
        if ts is not None and ts <= startup_ts:
            return
        if event.sender == client.user_id:
            return
        if allowed_rooms is not None and room.room_id not in allowed_rooms:
            return

        body = (event.body or "").strip()
        if not body:
            return

        logger.info("Matrix <%s> %s: %r", room.display_name, event.sender, body)
        state.messenger.bind(event.sender, messenger)
        messenger.remember_room(event.sender, room.room_id)

        try:
            reply = command_registry.handle(state, body, user_id=event.sender, room_id=room.room_id)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if not reply:
            return
        try:
            await messenger.send_text(text=reply, room_id=room.room_id, to_user_id=event.sender)
        except NotificationDeliveryError as e:
            logger.warning("Cannot send command reply: %s", e)

    client.add_event_callback(message_callback, RoomMessageText)

    try:
        logger.info("Matrix initial sync...")
        await client.sync(timeout=30000, full_state=True)
        logger.info("Matrix initial sync done. Joined rooms: %d", len(client.rooms))

        while not stop_event.is_set():
            await client.sync(timeout=30000, full_state=False)

    except asyncio.CancelledError:
        logger.info("Matrix connector cancelled.")
        raise
    except Exception:
        logger.exception("Matrix connector crashed.")
    finally:
        with contextlib.suppress(Exception):
            await client.close()
        logger.info("Matrix connector stopped.")
