from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _load_env() -> None:
    # Centralized dotenv loading; safe if .env missing
    load_dotenv()


def _as_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Core/runtime
    db_path: str
    run_env: str
    log_level: str
    store_key: str

    # Context validation
    supported_domains: list[str]

    # Extraction settle behaviour (milliseconds)
    settle_mode: str  # fixed | fingerprint
    settle_delay_ms: int
    settle_poll_ms: int
    settle_timeout_ms: int

    # Handshake/dispatch bounds (milliseconds)
    ping_timeout_ms: int
    injection_settle_ms: int
    dispatch_timeout_ms: int
    dispatch_retries: int

    # Status indicator
    status_hide_delay_ms: int = 4000

    # Logging/tracing
    extraction_trace: bool = False
    trace_log_path: str = "logs/extraction_trace.jsonl"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_env()
    settle_mode = os.getenv("SETTLE_MODE", "fixed").lower()
    if settle_mode not in ("fixed", "fingerprint"):
        raise RuntimeError("SETTLE_MODE must be 'fixed' or 'fingerprint'")
    domains = os.getenv("SUPPORTED_DOMAINS", "force.com,salesforce.com")
    return Settings(
        db_path=os.getenv("DB_PATH", "crm_records.db"),
        run_env=os.getenv("RUN_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        store_key=os.getenv("STORE_KEY", "crm_data"),
        supported_domains=[d.strip().lower() for d in domains.split(",") if d.strip()],
        settle_mode=settle_mode,
        settle_delay_ms=int(os.getenv("SETTLE_DELAY_MS", "300")),
        settle_poll_ms=int(os.getenv("SETTLE_POLL_MS", "100")),
        settle_timeout_ms=int(os.getenv("SETTLE_TIMEOUT_MS", "3000")),
        ping_timeout_ms=int(os.getenv("PING_TIMEOUT_MS", "1000")),
        injection_settle_ms=int(os.getenv("INJECTION_SETTLE_MS", "300")),
        dispatch_timeout_ms=int(os.getenv("DISPATCH_TIMEOUT_MS", "10000")),
        dispatch_retries=int(os.getenv("DISPATCH_RETRIES", "1")),
        status_hide_delay_ms=int(os.getenv("STATUS_HIDE_DELAY_MS", "4000")),
        extraction_trace=_as_bool(os.getenv("EXTRACTION_TRACE")),
        trace_log_path=os.getenv("TRACE_LOG_PATH", "logs/extraction_trace.jsonl"),
    )
