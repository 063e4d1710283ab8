from __future__ import annotations

import json
import logging
import sqlite3
import threading
from typing import Iterable, List, Optional

from config.settings import Settings, get_settings
from models import Record, Store, now_ms, partition_for
from services.merge import MergeResult, insert_if_absent, merge_record


logger = logging.getLogger(__name__)


class StoreRepo:
    """The persisted record store: one JSON document per store key.

    Merges are read-modify-write of the whole document and are serialised by
    a lock shared by every repo instance in the process.
    """

    _lock = threading.Lock()

    def __init__(self, conn: sqlite3.Connection, settings: Optional[Settings] = None):
        self.conn = conn
        self.settings = settings or get_settings()
        self.key = self.settings.store_key

    def load(self) -> Store:
        row = self.conn.execute(
            "SELECT body_json FROM store_documents WHERE name = ?",
            (self.key,),
        ).fetchone()
        if not row:
            return Store()
        return Store.from_document(json.loads(row[0]))

    def save(self, store: Store) -> None:
        store.last_sync = now_ms()
        body = json.dumps(store.to_document(), ensure_ascii=False)
        self.conn.execute(
            (
                "INSERT INTO store_documents (name, body_json, updated_at) VALUES (?, ?, datetime('now')) "
                "ON CONFLICT(name) DO UPDATE SET body_json = excluded.body_json, updated_at = excluded.updated_at"
            ),
            (self.key, body),
        )
        self.conn.commit()

    def merge(self, record: Record, related: Iterable[Record] = ()) -> MergeResult:
        with self._lock:
            store = self.load()
            result = merge_record(store, record)
            for item in related:
                if insert_if_absent(store, item):
                    result.related_inserted += 1
            self.save(store)
        logger.info(
            "Merged %s id=%s inserted=%d updated=%d related_inserted=%d",
            record.object_type,
            record.id,
            result.inserted,
            result.updated,
            result.related_inserted,
            extra={"step": "merge", "object_type": record.object_type},
        )
        return result

    def delete_record(self, object_type: str, record_id: str) -> bool:
        partition = partition_for(object_type)
        with self._lock:
            store = self.load()
            removed = store.remove(partition, record_id)
            if removed:
                self.save(store)
        return removed

    def find(self, object_type: str, record_id: str) -> Optional[Record]:
        return self.load().find(partition_for(object_type), record_id)

    def list(self, object_type: Optional[str] = None) -> List[Record]:
        store = self.load()
        if object_type is None:
            return list(store.iter_records())
        return list(store.partitions.get(partition_for(object_type), []))
