from __future__ import annotations

import logging

from utils.logging_setup import LOG_FORMAT, SafeExtraFormatter


def _record(**extra):
    record = logging.LogRecord("crm.test", logging.INFO, __file__, 1, "hello", None, None)
    record.__dict__.update(extra)
    return record


def test_missing_extras_render_as_dashes(monkeypatch):
    monkeypatch.delenv("RUN_ID", raising=False)
    line = SafeExtraFormatter(fmt=LOG_FORMAT).format(_record(step="merge"))
    assert "step=merge state=- request_id=-" in line
    assert line.endswith("error=- run_id=-")


def test_run_id_comes_from_environment_unless_given(monkeypatch):
    monkeypatch.setenv("RUN_ID", "run-42")
    formatter = SafeExtraFormatter(fmt=LOG_FORMAT)
    assert formatter.format(_record()).endswith("run_id=run-42")
    assert formatter.format(_record(run_id="explicit")).endswith("run_id=explicit")
