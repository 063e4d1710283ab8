from __future__ import annotations

import asyncio
import logging
import traceback
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set

from config.settings import Settings, get_settings
from extraction.labels import find_by_label
from extractors import ExtractionResult, extractor_for_page
from ports.page import RenderedPagePort
from protocol import messages
from protocol.bus import MessageBus
from utils.errors import ExtractorError


logger = logging.getLogger(__name__)


@dataclass
class DebugProbe:
    """Manual inspection of the page an executor is bound to."""

    executor: "ExtractionExecutor"

    def page_lines(self) -> List[str]:
        return self.executor.page.snapshot().lines()

    def find_by_label(self, label: str, partial: bool = False) -> Optional[str]:
        lines = self.page_lines()
        try:
            reserved = self.executor.extractor().reserved_labels
        except ExtractorError:
            reserved = ()
        return find_by_label(lines, label, reserved, partial=partial)

    async def run_extraction(self) -> ExtractionResult:
        return await self.executor.run_extraction()


class ExtractionExecutor:
    """Message handler living inside a tab: answers PING and runs extractions."""

    def __init__(
        self,
        page: RenderedPagePort,
        bus: MessageBus,
        tab_id: int,
        settings: Optional[Settings] = None,
        extractor_factory: Callable = extractor_for_page,
    ) -> None:
        self.page = page
        self.bus = bus
        self.tab_id = tab_id
        self.settings = settings or get_settings()
        self.extractor_factory = extractor_factory
        self._tasks: Set[asyncio.Task] = set()

    def extractor(self):
        return self.extractor_factory(self.page, self.settings)

    async def handle(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        kind = message.get("type")
        if kind == messages.PING:
            return messages.pong()
        if kind == messages.RUN_EXTRACTION:
            request_id = message.get("requestId")
            logger.info("Starting extraction", extra={"request_id": request_id, "state": "started"})
            # Reply right away; the outcome travels over the bus
            task = asyncio.create_task(self._run(request_id))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return messages.started()
        return None

    async def run_extraction(self) -> ExtractionResult:
        return await self.extractor().extract()

    async def _run(self, request_id: Optional[str]) -> None:
        try:
            result = await self.run_extraction()
        except Exception as exc:
            text = exc.message if isinstance(exc, ExtractorError) else str(exc)
            logger.warning(
                "Extraction failed: %s",
                text,
                extra={"request_id": request_id, "state": "failed", "error": type(exc).__name__},
            )
            self.bus.publish(messages.extraction_error(request_id, text, traceback.format_exc()), self.tab_id)
            return
        related = [r.to_wire() for r in result.related_records]
        self.bus.publish(messages.extraction_result(request_id, result.to_payload(), related), self.tab_id)

    async def drain(self) -> None:
        """Wait for in-flight extractions; used on shutdown and in tests."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def debug_probe(self) -> DebugProbe:
        return DebugProbe(executor=self)
