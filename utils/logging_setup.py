from __future__ import annotations

import logging
import os
import sys
from typing import Any

from config.settings import get_settings


_INITIALIZED: bool = False

LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(message)s "
    "step=%(step)s state=%(state)s request_id=%(request_id)s "
    "object_type=%(object_type)s duration_ms=%(duration_ms)s "
    "error=%(error)s run_id=%(run_id)s"
)

# Suffix-list refresh chatter; the bundled snapshot is always used
_QUIET_LOGGERS = ("tldextract", "filelock")


class SafeExtraFormatter(logging.Formatter):
    """Fills the structured extras an extraction log line may omit."""

    DEFAULTS: dict[str, Any] = {
        "step": "-",
        "state": "-",
        "request_id": "-",
        "object_type": "-",
        "duration_ms": "-",
        "error": "-",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        for key, value in self.DEFAULTS.items():
            record.__dict__.setdefault(key, value)
        # The CLI exports RUN_ID per invocation; explicit extras win
        record.__dict__.setdefault("run_id", os.getenv("RUN_ID") or "-")
        return super().format(record)


def init_logging(level: str | None = None) -> None:
    """Attach one stdout handler to the root logger, once per process."""
    global _INITIALIZED
    if _INITIALIZED:
        return

    level_name = (level or get_settings().log_level).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.setFormatter(SafeExtraFormatter(fmt=LOG_FORMAT))
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    _INITIALIZED = True
