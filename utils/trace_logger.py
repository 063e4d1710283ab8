from __future__ import annotations

import hashlib
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from config.settings import get_settings


logger = logging.getLogger(__name__)


def sha256_lines(lines: Iterable[str]) -> str:
    """Fingerprint of a line sequence; used to detect a page that stopped changing."""
    digest = hashlib.sha256()
    for line in lines:
        digest.update(line.encode("utf-8"))
        digest.update(b"\n")
    return digest.hexdigest()


def _ensure_parent_dir(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("Could not create trace directory", extra={"error": str(exc)})


def log_exchange(
    *,
    caller: str,
    message_type: str,
    request_id: Optional[str] = None,
    tab_id: Optional[int] = None,
    state: Optional[str] = None,
    duration_ms: Optional[int] = None,
    status: str = "ok",
    error: Optional[str] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> None:
    """Append a single JSON line describing a protocol exchange if tracing is enabled.

    Controlled by EXTRACTION_TRACE / TRACE_LOG_PATH in config/settings.py
    """
    # Tests monkeypatch env between calls
    get_settings.cache_clear()
    settings = get_settings()
    if not settings.extraction_trace:
        return

    log_path = Path(settings.trace_log_path)
    _ensure_parent_dir(log_path)

    payload: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "caller": caller,
        "message_type": message_type,
        "request_id": request_id,
        "tab_id": tab_id,
        "state": state,
        "duration_ms": duration_ms,
        "status": status,
        "error": error,
    }
    run_id = os.getenv("RUN_ID")
    if run_id:
        payload["run_id"] = run_id
    if extras:
        payload["extras"] = extras

    try:
        with log_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False) + "\n")
    except OSError as exc:
        # Tracing must never break an extraction
        logger.warning("Could not write trace line", extra={"error": str(exc)})
