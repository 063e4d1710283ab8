from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Optional


def _exchanges_for_run(run_id: str) -> Dict[str, Dict[str, int]]:
    """Aggregate traced protocol exchanges for the given run_id.

    Returns dict like { 'PING': {'calls': N, 'errors': E}, 'RUN_EXTRACTION': {...} }
    """
    result: Dict[str, Dict[str, int]] = {}
    from config.settings import get_settings
    log_path = Path(get_settings().trace_log_path)
    if not log_path.exists():
        return result
    with log_path.open("r", encoding="utf-8") as f:
        for line in f:
            try:
                rec = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(rec, dict) or rec.get("run_id") != run_id:
                continue
            bucket = result.setdefault(rec.get("message_type") or "unknown", {"calls": 0, "errors": 0})
            bucket["calls"] += 1
            if rec.get("status") != "ok":
                bucket["errors"] += 1
    return result


def print_summary(outcome, store_count: int, output_path: Optional[Path] = None) -> None:
    """Print summary of one extraction request."""
    print("\n" + "="*60)
    print("CRM RECORD EXTRACTION - SUMMARY")
    print("="*60)
    print(f"Result: {'ok' if outcome.ok else 'error'}")
    print(f"Message: {outcome.user_message}")
    if outcome.request_id:
        print(f"Request ID: {outcome.request_id}")
    if outcome.ok and outcome.record is not None:
        record = outcome.record
        merged = outcome.merged
        print(f"Record: {record.object_type} {record.id}")
        for key, value in record.data.items():
            print(f"  {key}: {value if value is not None else '-'}")
        if merged is not None:
            print(f"Inserted: {merged.inserted}  Updated: {merged.updated}  Related inserted: {merged.related_inserted}")
    elif outcome.reason is not None:
        print(f"Reason: {outcome.reason.value}")
    print(f"Records in store: {store_count}")
    # Per-message exchange counts for current RUN_ID if tracing enabled
    from config.settings import get_settings
    run_id = os.getenv("RUN_ID")
    if run_id and get_settings().extraction_trace:
        usage = _exchanges_for_run(run_id)
        if usage:
            print("Exchanges:")
            for message_type, stats in usage.items():
                print(f"  {message_type}: calls={stats['calls']}, errors={stats['errors']}")
    if output_path:
        print(f"Output File: {output_path}")
    print("="*60)
