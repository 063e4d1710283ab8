from __future__ import annotations

import os
import sys
from dataclasses import replace
from pathlib import Path

import pytest


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'extraction.labels'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    # Set test environment knobs
    os.environ.setdefault("RUN_ENV", "test")


FIXTURES = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def fast_settings(tmp_path):
    """Settings with every wait shrunk so protocol tests finish quickly."""
    from config.settings import get_settings

    get_settings.cache_clear()
    return replace(
        get_settings(),
        db_path=str(tmp_path / "store.db"),
        settle_mode="fixed",
        settle_delay_ms=0,
        ping_timeout_ms=200,
        injection_settle_ms=0,
        dispatch_timeout_ms=300,
        dispatch_retries=1,
        status_hide_delay_ms=0,
    )


@pytest.fixture
def fixture_text():
    def _read(name: str) -> str:
        return (FIXTURES / name).read_text(encoding="utf-8")
    return _read
