from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any], Optional[int]], None]


class MessageBus:
    """Runtime channel executors publish to and orchestrators listen on.

    Listeners get every message together with the sending tab id.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def publish(self, message: Dict[str, Any], sender_tab_id: Optional[int] = None) -> None:
        logger.debug("Message published: %s", message.get("type"), extra={"request_id": message.get("requestId") or "-"})
        # Listeners may remove themselves while being notified
        for listener in list(self._listeners):
            listener(message, sender_tab_id)

    def listener_count(self) -> int:
        return len(self._listeners)
