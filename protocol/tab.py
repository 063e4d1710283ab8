from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from config.settings import Settings
from ports.page import RenderedPagePort
from protocol.bus import MessageBus
from protocol.executor import ExtractionExecutor
from utils.errors import ChannelError, InjectionFailed


logger = logging.getLogger(__name__)


class BrowserTab:
    """In-process stand-in for a browser tab hosting an executor.

    A fresh tab has no executor; ``inject`` installs one unless the tab is
    marked as not injectable (restricted pages).
    """

    def __init__(
        self,
        tab_id: int,
        page: RenderedPagePort,
        bus: MessageBus,
        *,
        injectable: bool = True,
        executor: Optional[Any] = None,
        executor_factory: Optional[Callable[["BrowserTab"], Any]] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.tab_id = tab_id
        self.page = page
        self.bus = bus
        self.injectable = injectable
        self.executor = executor
        self.settings = settings
        self._executor_factory = executor_factory or self._default_executor

    @property
    def url(self) -> str:
        return self.page.url

    def _default_executor(self, tab: "BrowserTab") -> ExtractionExecutor:
        return ExtractionExecutor(tab.page, tab.bus, tab.tab_id, settings=tab.settings)

    async def send_message(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if self.executor is None:
            raise ChannelError(
                "Could not establish connection. Receiving end does not exist.",
                {"tab_id": self.tab_id},
            )
        return await self.executor.handle(message)

    async def inject(self) -> None:
        if not self.injectable:
            raise InjectionFailed("Cannot access contents of the page", {"tab_id": self.tab_id, "url": self.url})
        if self.executor is None:
            self.executor = self._executor_factory(self)
            logger.info("Executor injected", extra={"step": "inject"})
