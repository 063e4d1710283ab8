from __future__ import annotations

import asyncio
import threading

import pytest

from db import schema
from db.connection import get_connection
from db.repos.store_repo import StoreRepo
from extraction.page import InMemoryPage
from protocol import (
    BrowserTab,
    ExtractionExecutor,
    ExtractionOrchestrator,
    ExtractionOutcome,
    FailureReason,
    MessageBus,
    RequestState,
)
from protocol import messages
from services.status_indicator import StatusIndicator


OPP_URL = "https://acme.lightning.force.com/lightning/r/Opportunity/006ABC000000001AAA/view"
OPP_TEXT = "Opportunity\nAcme Deal\nAmount\n$50,000\nClose Date\n3/15/2026"


@pytest.fixture
def repo(fast_settings):
    conn = get_connection(fast_settings.db_path)
    schema.bootstrap(conn)
    yield StoreRepo(conn, fast_settings)
    conn.close()


@pytest.fixture
def bus():
    return MessageBus()


def _orchestrator(repo, bus, settings, renders=None):
    indicator = StatusIndicator(render=(lambda s, m: renders.append((s, m))) if renders is not None else None)
    return ExtractionOrchestrator(repo, bus, settings, indicator=indicator)


class _ScriptedExecutor:
    """Answers PING; replies to RUN_EXTRACTION according to ``script`` (one entry per dispatch)."""

    def __init__(self, bus, tab_id, script, payload=None):
        self.bus = bus
        self.tab_id = tab_id
        self.script = list(script)
        self.payload = payload
        self.dispatched = []

    async def handle(self, message):
        if message["type"] == messages.PING:
            return messages.pong()
        if message["type"] == messages.RUN_EXTRACTION:
            request_id = message["requestId"]
            self.dispatched.append(request_id)
            action = self.script.pop(0) if self.script else "silent"
            if action == "result":
                self.bus.publish(messages.extraction_result(request_id, self.payload), self.tab_id)
            elif action == "stale_then_result":
                self.bus.publish(messages.extraction_result("someone-else", {"id": "bogus", "data": {}}), self.tab_id)
                self.bus.publish(messages.extraction_result(request_id, self.payload), 99)
                self.bus.publish(messages.extraction_result(request_id, self.payload), self.tab_id)
            elif action == "error":
                self.bus.publish(messages.extraction_error(request_id, "boom"), self.tab_id)
            return messages.started()
        return None


def _payload():
    return {
        "id": "006ABC000000001AAA",
        "objectType": "opportunity",
        "data": {"name": "Acme Deal"},
        "sourceUrl": OPP_URL,
        "lastUpdated": 1,
    }


@pytest.mark.asyncio
async def test_handshake_injects_then_dispatches(repo, bus, fast_settings):
    page = InMemoryPage(url=OPP_URL, text=OPP_TEXT)
    tab = BrowserTab(1, page, bus, settings=fast_settings)
    renders = []
    orch = _orchestrator(repo, bus, fast_settings, renders)

    outcome = await orch.request_extract(tab)

    assert outcome.ok, outcome.user_message
    assert isinstance(tab.executor, ExtractionExecutor)
    assert outcome.record.data["amount"] == 50000
    assert outcome.merged.inserted == 1
    assert outcome.user_message == "New Opportunity extracted!"
    assert orch.state == RequestState.SUCCEEDED
    assert repo.find("opportunity", "006ABC000000001AAA").data["name"] == "Acme Deal"
    assert [state for state, _ in renders] == ["extracting", "success", "hidden"]
    assert renders[1][1] == "New Opportunity extracted!"


@pytest.mark.asyncio
async def test_second_extraction_reports_update(repo, bus, fast_settings):
    page = InMemoryPage(url=OPP_URL, text=OPP_TEXT)
    tab = BrowserTab(1, page, bus, settings=fast_settings)
    orch = _orchestrator(repo, bus, fast_settings)
    await orch.request_extract(tab)
    outcome = await orch.request_extract(tab)
    assert outcome.merged.updated == 1
    assert outcome.user_message == "Opportunity updated!"
    assert outcome.to_response()["merged"] == {
        "inserted": 0,
        "updated": 1,
        "objectType": "opportunity",
        "relatedInserted": 0,
    }


@pytest.mark.asyncio
async def test_injection_failure_is_terminal(repo, bus, fast_settings):
    tab = BrowserTab(1, InMemoryPage(url=OPP_URL, text=OPP_TEXT), bus, injectable=False)
    outcome = await _orchestrator(repo, bus, fast_settings).request_extract(tab)
    assert outcome.reason == FailureReason.INJECTION_FAILED
    assert outcome.user_message == "Failed to inject extraction script"
    assert tab.executor is None
    assert repo.load().count() == 0


@pytest.mark.asyncio
async def test_no_pong_after_injection(repo, bus, fast_settings):
    class _Mute:
        async def handle(self, message):
            return {"type": "NOT_A_PONG"}

    tab = BrowserTab(1, InMemoryPage(url=OPP_URL), bus, executor_factory=lambda t: _Mute())
    outcome = await _orchestrator(repo, bus, fast_settings).request_extract(tab)
    assert outcome.reason == FailureReason.NO_EXECUTOR


@pytest.mark.asyncio
async def test_any_install_error_is_injection_failed(repo, bus, fast_settings):
    def _refuse(tab):
        raise RuntimeError("Cannot access a chrome:// URL")

    tab = BrowserTab(1, InMemoryPage(url=OPP_URL), bus, executor_factory=_refuse)
    outcome = await _orchestrator(repo, bus, fast_settings).request_extract(tab)
    assert outcome.reason == FailureReason.INJECTION_FAILED
    assert outcome.detail == "Cannot access a chrome:// URL"
    assert repo.load().count() == 0


@pytest.mark.asyncio
async def test_ping_that_raises_falls_through_to_injection(repo, bus, fast_settings):
    class _Invalidated:
        async def handle(self, message):
            raise RuntimeError("Extension context invalidated.")

    tab = BrowserTab(1, InMemoryPage(url=OPP_URL), bus, executor=_Invalidated())
    injected = []

    async def _inject():
        injected.append(True)
        tab.executor = _ScriptedExecutor(bus, 1, ["result"], payload=_payload())

    tab.inject = _inject
    outcome = await _orchestrator(repo, bus, fast_settings).request_extract(tab)
    assert injected == [True]
    assert outcome.ok
    assert outcome.merged.inserted == 1


def test_failure_without_reason_has_generic_message():
    assert ExtractionOutcome(ok=False).user_message == "Unknown error occurred"


@pytest.mark.asyncio
async def test_timeout_retries_once_with_new_id(repo, bus, fast_settings):
    tab = BrowserTab(1, InMemoryPage(url=OPP_URL), bus)
    tab.executor = _ScriptedExecutor(bus, 1, ["silent", "result"], payload=_payload())
    outcome = await _orchestrator(repo, bus, fast_settings).request_extract(tab)
    assert outcome.ok
    first, second = tab.executor.dispatched
    assert first != second
    assert outcome.request_id == second
    assert bus.listener_count() == 0


@pytest.mark.asyncio
async def test_second_timeout_is_terminal(repo, bus, fast_settings):
    tab = BrowserTab(1, InMemoryPage(url=OPP_URL), bus)
    tab.executor = _ScriptedExecutor(bus, 1, ["silent", "silent", "result"], payload=_payload())
    outcome = await _orchestrator(repo, bus, fast_settings).request_extract(tab)
    assert outcome.reason == FailureReason.TIMEOUT
    assert len(tab.executor.dispatched) == 2
    assert outcome.user_message == "Extraction timed out. Page may still be loading."


@pytest.mark.asyncio
async def test_mismatched_ids_and_other_tabs_are_ignored(repo, bus, fast_settings):
    tab = BrowserTab(1, InMemoryPage(url=OPP_URL), bus)
    tab.executor = _ScriptedExecutor(bus, 1, ["stale_then_result"], payload=_payload())
    outcome = await _orchestrator(repo, bus, fast_settings).request_extract(tab)
    assert outcome.ok
    assert repo.find("opportunity", "bogus") is None
    assert repo.load().count() == 1


@pytest.mark.asyncio
async def test_extraction_error_carries_message(repo, bus, fast_settings):
    tab = BrowserTab(1, InMemoryPage(url=OPP_URL), bus)
    tab.executor = _ScriptedExecutor(bus, 1, ["error"])
    outcome = await _orchestrator(repo, bus, fast_settings).request_extract(tab)
    assert outcome.reason == FailureReason.EXTRACTION_ERROR
    assert outcome.user_message == "boom"


@pytest.mark.asyncio
async def test_missing_identifier_surfaces_as_extraction_error(repo, bus, fast_settings):
    url = "https://acme.lightning.force.com/lightning/o/Opportunity/list"
    tab = BrowserTab(1, InMemoryPage(url=url, text=OPP_TEXT), bus, settings=fast_settings)
    outcome = await _orchestrator(repo, bus, fast_settings).request_extract(tab)
    assert outcome.reason == FailureReason.EXTRACTION_ERROR
    assert "record ID from URL" in outcome.user_message


@pytest.mark.asyncio
async def test_invalid_payload_is_rejected(repo, bus, fast_settings):
    tab = BrowserTab(1, InMemoryPage(url=OPP_URL), bus)
    tab.executor = _ScriptedExecutor(bus, 1, ["result"], payload={"id": "", "data": {"name": "x"}})
    outcome = await _orchestrator(repo, bus, fast_settings).request_extract(tab)
    assert outcome.reason == FailureReason.INVALID_PAYLOAD
    assert repo.load().count() == 0


@pytest.mark.asyncio
async def test_send_failure(repo, bus, fast_settings):
    class _DropsDispatch:
        async def handle(self, message):
            return messages.pong()

    tab = BrowserTab(1, InMemoryPage(url=OPP_URL), bus, executor=_DropsDispatch())
    original = tab.send_message

    async def send(message):
        if message["type"] == messages.RUN_EXTRACTION:
            tab.executor = None
        return await original(message)

    tab.send_message = send
    outcome = await _orchestrator(repo, bus, fast_settings).request_extract(tab)
    assert outcome.reason == FailureReason.SEND_FAILED
    assert bus.listener_count() == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "url",
    [
        "https://example.com/lightning/r/Opportunity/006ABC000000001AAA/view",
        "http://acme.lightning.force.com/lightning/r/Opportunity/006ABC000000001AAA/view",
        "chrome://extensions",
    ],
)
async def test_unsupported_site(repo, bus, fast_settings, url):
    tab = BrowserTab(1, InMemoryPage(url=url), bus)
    outcome = await _orchestrator(repo, bus, fast_settings).request_extract(tab)
    assert outcome.reason == FailureReason.NOT_SUPPORTED_SITE
    assert tab.executor is None


@pytest.mark.asyncio
async def test_no_active_tab(repo, bus, fast_settings):
    outcome = await _orchestrator(repo, bus, fast_settings).request_extract(None)
    assert outcome.reason == FailureReason.NO_ACTIVE_TAB
    assert outcome.to_response() == {"status": "error", "reason": "NO_ACTIVE_TAB", "message": "No active tab found"}


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_unknown_error(bus, fast_settings):
    class _BrokenRepo:
        def merge(self, record, related=()):
            raise RuntimeError("disk full")

    tab = BrowserTab(1, InMemoryPage(url=OPP_URL), bus)
    tab.executor = _ScriptedExecutor(bus, 1, ["result"], payload=_payload())
    outcome = await ExtractionOrchestrator(_BrokenRepo(), bus, fast_settings).request_extract(tab)
    assert outcome.reason == FailureReason.UNKNOWN_ERROR
    assert outcome.user_message == "disk full"


@pytest.mark.asyncio
async def test_executor_publishes_result_with_related_records(bus, fast_settings, fixture_text):
    url = "https://acme.lightning.force.com/lightning/r/Account/001000000000001AAA/view"
    executor = ExtractionExecutor(InMemoryPage(url=url, html=fixture_text("account.html")), bus, 7, fast_settings)
    seen = []
    bus.add_listener(lambda message, sender: seen.append((message, sender)))

    assert await executor.handle(messages.ping()) == {"type": "PONG"}
    assert await executor.handle(messages.run_extraction("r-1")) == {"status": "started"}
    await executor.drain()

    (message, sender), = seen
    assert sender == 7
    assert message["type"] == messages.EXTRACTION_RESULT
    assert message["requestId"] == "r-1"
    assert message["payload"]["objectType"] == "account"
    assert [r["parentId"] for r in message["relatedRecords"]] == ["001000000000001AAA"] * 2


@pytest.mark.asyncio
async def test_debug_probe(bus, fast_settings):
    executor = ExtractionExecutor(InMemoryPage(url=OPP_URL, text=OPP_TEXT), bus, 1, fast_settings)
    probe = executor.debug_probe()
    assert probe.page_lines()[:2] == ["Opportunity", "Acme Deal"]
    assert probe.find_by_label("amount") == "$50,000"
    result = await probe.run_extraction()
    assert result.record.data["closeDate"] == "2026-03-15"


@pytest.mark.asyncio
async def test_requests_are_serialised(repo, bus, fast_settings):
    page = InMemoryPage(url=OPP_URL, text=OPP_TEXT)
    tab = BrowserTab(1, page, bus, settings=fast_settings)
    orch = _orchestrator(repo, bus, fast_settings)
    first, second = await asyncio.gather(orch.request_extract(tab), orch.request_extract(tab))
    assert (first.merged.inserted, second.merged.updated) == (1, 1)


@pytest.mark.asyncio
async def test_store_merge_runs_off_the_event_loop_thread(repo, bus, fast_settings):
    threads = []

    class _RecordingRepo:
        def merge(self, record, related=()):
            threads.append(threading.get_ident())
            return repo.merge(record, related)

    tab = BrowserTab(1, InMemoryPage(url=OPP_URL), bus)
    tab.executor = _ScriptedExecutor(bus, 1, ["result"], payload=_payload())
    outcome = await ExtractionOrchestrator(_RecordingRepo(), bus, fast_settings).request_extract(tab)
    assert outcome.ok
    assert threads and threads[0] != threading.get_ident()
    assert repo.find("opportunity", "006ABC000000001AAA") is not None
