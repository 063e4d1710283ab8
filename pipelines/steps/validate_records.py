from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from models import Record
from pipelines.runner import RunContext
from utils.errors import InvalidPayload


logger = logging.getLogger(__name__)


def validate_payload(payload: Optional[Dict[str, Any]]) -> Record:
    """Check the structural minimum of a success payload and build the Record."""
    if not isinstance(payload, dict):
        raise InvalidPayload("Payload is not an object")
    record_id = payload.get("id")
    if not isinstance(record_id, str) or not record_id.strip():
        raise InvalidPayload("Payload has no record id", {"id": record_id})
    if not isinstance(payload.get("data"), dict):
        raise InvalidPayload("Payload has no data mapping", {"id": record_id})
    try:
        return Record.model_validate(payload)
    except ValidationError as exc:
        raise InvalidPayload("Payload failed validation", {"id": record_id, "errors": exc.error_count()}) from exc


class ValidateRecords:
    def run(self, ctx: RunContext) -> RunContext:
        ctx.record = validate_payload(ctx.payload)

        # A malformed related record is dropped; it never fails the primary record
        related = []
        skipped = 0
        for item in ctx.related_payloads or []:
            try:
                related.append(validate_payload(item))
            except InvalidPayload as exc:
                skipped += 1
                logger.warning(
                    "Dropping related record: %s",
                    exc.message,
                    extra={"step": "validate", "request_id": ctx.request_id},
                )
        ctx.related_records = related
        ctx.meta["related_skipped"] = skipped
        return ctx
