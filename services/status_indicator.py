from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional


logger = logging.getLogger(__name__)

STATES = ("extracting", "success", "error", "hidden")

Renderer = Callable[[str, str], None]


def _log_render(state: str, message: str) -> None:
    if state == "hidden":
        return
    logger.info(message, extra={"step": "status", "state": state})


class StatusIndicator:
    """Transient status shown while an extraction runs.

    Owned by whoever drives the extraction; nothing here is module state.
    ``render`` receives (state, message) on every change.
    """

    def __init__(self, render: Optional[Renderer] = None, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._render = render or _log_render
        self._loop = loop
        self._pending_hide: Optional[asyncio.TimerHandle] = None
        self.created = False
        self.state = "hidden"
        self.message = ""

    def create(self) -> None:
        if self.created:
            return
        self.created = True
        self.state = "hidden"
        self.message = ""

    def show(self, state: str, message: str) -> None:
        if state not in STATES:
            raise ValueError(f"Unknown status state: {state}")
        self.create()
        self._cancel_pending_hide()
        self.state = state
        self.message = message
        self._render(state, message)

    def hide(self, after_delay: Optional[float] = None) -> None:
        """Hide now, or ``after_delay`` seconds later on the running loop."""
        self._cancel_pending_hide()
        if not after_delay:
            self._hide_now()
            return
        loop = self._loop or asyncio.get_running_loop()
        self._pending_hide = loop.call_later(after_delay, self._hide_now)

    def _hide_now(self) -> None:
        self._pending_hide = None
        if self.state == "hidden":
            return
        self.state = "hidden"
        self.message = ""
        self._render("hidden", "")

    def _cancel_pending_hide(self) -> None:
        if self._pending_hide is not None:
            self._pending_hide.cancel()
            self._pending_hide = None
