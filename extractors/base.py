from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from config.settings import Settings, get_settings
from extraction.identity import id_from_url
from extraction.labels import find_by_label, resolve_primary_name
from extraction.page import PageSnapshot
from models import Record, now_ms
from ports.page import RenderedPagePort
from utils.errors import MissingIdentifier
from utils.trace_logger import sha256_lines


logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    record: Record
    related_records: List[Record] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return self.record.to_wire()


class EntityExtractor:
    """Shared flow for one detail-page type.

    Subclasses set the class attributes and implement ``extract_fields``;
    the organization variant also overrides ``related_records``.
    """

    object_type: str = ""
    # Section header the display name follows, and header buttons to skip
    header: str = ""
    header_captions: Sequence[str] = ()
    # Captions that must never be read as a field value
    reserved_labels: Sequence[str] = ()

    def __init__(self, page: RenderedPagePort, settings: Optional[Settings] = None) -> None:
        self.page = page
        self.settings = settings or get_settings()

    def record_id(self) -> str:
        url = self.page.url
        record_id = id_from_url(url, self.object_type)
        if not record_id:
            raise MissingIdentifier(self.object_type, url)
        logger.debug("ID from URL: %s", record_id, extra={"object_type": self.object_type})
        return record_id

    async def settle(self) -> None:
        if self.settings.settle_mode == "fingerprint":
            await self._settle_on_fingerprint()
            return
        await asyncio.sleep(self.settings.settle_delay_ms / 1000)

    async def _settle_on_fingerprint(self) -> bool:
        """Poll until two consecutive reads of the page produce the same lines."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.settle_timeout_ms / 1000
        previous = sha256_lines(self.page.snapshot().lines())
        while loop.time() < deadline:
            await asyncio.sleep(self.settings.settle_poll_ms / 1000)
            current = sha256_lines(self.page.snapshot().lines())
            if current == previous:
                return True
            previous = current
        logger.warning(
            "Page content still changing after settle timeout",
            extra={"object_type": self.object_type, "step": "settle"},
        )
        return False

    def field(
        self,
        lines: Sequence[str],
        label: str,
        *,
        partial: bool = False,
        first_occurrence_only: bool = True,
    ) -> Optional[str]:
        return find_by_label(
            lines,
            label,
            self.reserved_labels,
            partial=partial,
            first_occurrence_only=first_occurrence_only,
        )

    def display_name(self, snapshot: PageSnapshot, lines: Sequence[str]) -> Optional[str]:
        return resolve_primary_name(lines, self.header, self.header_captions, snapshot)

    def extract_fields(self, snapshot: PageSnapshot, lines: Sequence[str]) -> Dict[str, Any]:
        raise NotImplementedError

    def related_records(self, record_id: str, snapshot: PageSnapshot) -> List[Record]:
        return []

    async def extract(self) -> ExtractionResult:
        started = time.perf_counter()
        record_id = self.record_id()
        logger.info(
            "Starting extraction url=%s",
            self.page.url,
            extra={"object_type": self.object_type, "step": "extract", "state": "started"},
        )

        await self.settle()

        # One snapshot per call; nothing below awaits, so the scan sees a consistent page
        snapshot = self.page.snapshot()
        lines = snapshot.lines()
        data = self.extract_fields(snapshot, lines)

        record = Record(
            id=record_id,
            object_type=self.object_type,
            data=data,
            source_url=snapshot.url,
            last_updated=now_ms(),
        )
        related = self.related_records(record_id, snapshot)

        missing = sorted(k for k, v in data.items() if v is None)
        logger.info(
            "Extracted record id=%s missing=%s related=%d",
            record_id,
            ",".join(missing) or "-",
            len(related),
            extra={
                "object_type": self.object_type,
                "step": "extract",
                "state": "done",
                "duration_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return ExtractionResult(record=record, related_records=related)
