# src/tickler/connectors/routing.py

from __future__ import annotations

import logging
import threading

from ..core.errors import NotificationDeliveryError
from ..core.ports import OutboundMessenger

logger = logging.getLogger(__name__)


class OwnerRoutedMessenger:
    """
    OutboundMessenger that delivers through the channel an owner last used.

    Connectors call bind() whenever they handle a message from an owner.
    Owners never seen since startup (e.g. tasks restored from disk) go to the
    default channel, if one is set. Exactly one channel per send.
    """

    def __init__(self, default: OutboundMessenger | None = None) -> None:
        self._default = default
        self._routes: dict[str, OutboundMessenger] = {}
        self._lock = threading.Lock()

    def set_default(self, messenger: OutboundMessenger | None) -> None:
        with self._lock:
            self._default = messenger

    def bind(self, owner_id: str, messenger: OutboundMessenger) -> None:
        with self._lock:
            self._routes[owner_id] = messenger

    def route_for(self, owner_id: str | None) -> OutboundMessenger | None:
        with self._lock:
            if owner_id is not None and owner_id in self._routes:
                return self._routes[owner_id]
            return self._default

    async def send_text(
        self,
        *,
        text: str,
        room_id: str | None = None,
        to_user_id: str | None = None,
    ) -> None:
        messenger = self.route_for(to_user_id)
        if messenger is None:
            raise NotificationDeliveryError(f"No outbound channel for owner {to_user_id!r}")
        logger.debug("Routing message for owner=%s via %s", to_user_id, type(messenger).__name__)
        await messenger.send_text(text=text, room_id=room_id, to_user_id=to_user_id)
