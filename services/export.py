from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from typing import Any, Dict, List

from models import Store


def export_document(store: Store) -> Dict[str, Any]:
    doc = store.to_document()
    doc["exportedAt"] = datetime.now(timezone.utc).isoformat()
    return doc


def export_json(store: Store, indent: int = 2) -> str:
    """Every partition plus lastSync and exportedAt, as one JSON document."""
    return json.dumps(export_document(store), indent=indent, ensure_ascii=False)


def _data_columns(store: Store) -> List[str]:
    # Union of data keys across all records, in first-seen order
    columns: Dict[str, None] = {}
    for record in store.iter_records():
        for key in record.data:
            columns.setdefault(key, None)
    return list(columns)


def export_csv(store: Store) -> str:
    """One row per record across partitions; None renders as an empty cell."""
    data_columns = _data_columns(store)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\r\n")
    writer.writerow(["id", "objectType", *data_columns, "sourceUrl", "lastUpdated"])
    for record in store.iter_records():
        row = [record.id, record.object_type]
        row.extend("" if record.data.get(col) is None else record.data.get(col) for col in data_columns)
        row.extend([record.source_url, record.last_updated])
        writer.writerow(row)
    return buf.getvalue()
