from __future__ import annotations

import logging
from dataclasses import dataclass

from models import Record, Store


logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    inserted: int
    updated: int
    object_type: str
    related_inserted: int = 0


def merge_record(store: Store, record: Record) -> MergeResult:
    """Upsert ``record`` into its partition.

    An existing entry with the same id is replaced wholesale, so fields the
    new extraction did not find do not survive from the old one.
    """
    records = store.partition(record.partition)
    for i, existing in enumerate(records):
        if existing.id == record.id:
            records[i] = record
            logger.debug("Replaced %s %s", record.object_type, record.id, extra={"step": "merge"})
            return MergeResult(inserted=0, updated=1, object_type=record.object_type)
    records.append(record)
    logger.debug("Inserted %s %s", record.object_type, record.id, extra={"step": "merge"})
    return MergeResult(inserted=1, updated=0, object_type=record.object_type)


def insert_if_absent(store: Store, record: Record) -> bool:
    """Add a partial related record only when its id is not stored yet."""
    if store.find(record.partition, record.id) is not None:
        return False
    store.partition(record.partition).append(record)
    return True
