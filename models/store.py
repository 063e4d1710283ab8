from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from models.record import OBJECT_TYPE_PARTITIONS, Record


@dataclass
class Store:
    """Persisted collection: partition name -> records, plus the last write time.

    Document layout is flat: {"opportunities": [...], ..., "lastSync": 1700000000000}
    """

    partitions: Dict[str, List[Record]] = field(default_factory=dict)
    last_sync: Optional[int] = None

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]]) -> "Store":
        store = cls()
        if not doc:
            return store
        for key, value in doc.items():
            if key == "lastSync":
                store.last_sync = int(value) if value is not None else None
                continue
            if not isinstance(value, list):
                continue
            store.partitions[key] = [Record.model_validate(item) for item in value]
        return store

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            name: [r.to_wire() for r in records] for name, records in self.partitions.items()
        }
        doc["lastSync"] = self.last_sync
        return doc

    def partition(self, name: str) -> List[Record]:
        return self.partitions.setdefault(name, [])

    def find(self, partition: str, record_id: str) -> Optional[Record]:
        for record in self.partitions.get(partition, []):
            if record.id == record_id:
                return record
        return None

    def remove(self, partition: str, record_id: str) -> bool:
        records = self.partitions.get(partition, [])
        kept = [r for r in records if r.id != record_id]
        if len(kept) == len(records):
            return False
        self.partitions[partition] = kept
        return True

    def iter_records(self) -> Iterator[Record]:
        # Known partitions first, in object-type order, then anything else persisted
        seen = set()
        for name in OBJECT_TYPE_PARTITIONS.values():
            seen.add(name)
            yield from self.partitions.get(name, [])
        for name, records in self.partitions.items():
            if name not in seen:
                yield from records

    def count(self) -> int:
        return sum(len(records) for records in self.partitions.values())
