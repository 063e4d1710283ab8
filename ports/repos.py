from __future__ import annotations

from typing import Iterable, Optional, Protocol

from models import Record, Store
from services.merge import MergeResult


class StoreRepoPort(Protocol):
    def load(self) -> Store:
        ...

    def save(self, store: Store) -> None:
        ...

    def merge(self, record: Record, related: Iterable[Record] = ()) -> MergeResult:
        ...

    def delete_record(self, object_type: str, record_id: str) -> bool:
        ...

    def find(self, object_type: str, record_id: str) -> Optional[Record]:
        ...
