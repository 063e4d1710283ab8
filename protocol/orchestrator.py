"""
Background-side driver of one extraction request.

Sequence per request: validate the target context, handshake (ping, inject
once, ping again), dispatch with a correlation id, re-dispatch once on
timeout, validate the returned payload, merge it into the store.

Failures come back as an ``ExtractionOutcome`` tagged with a ``FailureReason``;
nothing raised inside the protocol escapes ``request_extract``.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from config.settings import Settings, get_settings
from models import Record
from pipelines.runner import Pipeline, RunContext
from pipelines.steps import MergeRecords, ValidateRecords
from ports.host import ExecutorHostPort
from ports.repos import StoreRepoPort
from protocol import messages
from protocol.bus import MessageBus
from services.domain_utils import is_supported_crm_url
from services.merge import MergeResult
from services.status_indicator import StatusIndicator
from utils.errors import ChannelError, DispatchTimeout, InjectionFailed, InvalidPayload, NoLiveExecutor
from utils.trace_logger import log_exchange


logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    IDLE = "IDLE"
    PINGING = "PINGING"
    INJECTING = "INJECTING"
    DISPATCHED = "DISPATCHED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class FailureReason(str, Enum):
    NO_ACTIVE_TAB = "NO_ACTIVE_TAB"
    NOT_SUPPORTED_SITE = "NOT_SUPPORTED_SITE"
    NO_EXECUTOR = "NO_EXECUTOR"
    INJECTION_FAILED = "INJECTION_FAILED"
    SEND_FAILED = "SEND_FAILED"
    TIMEOUT = "TIMEOUT"
    EXTRACTION_ERROR = "EXTRACTION_ERROR"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


FAILURE_MESSAGES: Dict[FailureReason, str] = {
    FailureReason.NO_ACTIVE_TAB: "No active tab found",
    FailureReason.NOT_SUPPORTED_SITE: "Navigate to a CRM record page",
    FailureReason.NO_EXECUTOR: "Could not connect to page. Try refreshing.",
    FailureReason.INJECTION_FAILED: "Failed to inject extraction script",
    FailureReason.SEND_FAILED: "Failed to communicate with page",
    FailureReason.TIMEOUT: "Extraction timed out. Page may still be loading.",
    FailureReason.EXTRACTION_ERROR: "Extraction failed",
    FailureReason.INVALID_PAYLOAD: "Invalid data extracted",
    FailureReason.UNKNOWN_ERROR: "Unknown error occurred",
}

# Reasons whose user message prefers the detail carried with the failure
_DETAIL_FIRST = (FailureReason.EXTRACTION_ERROR, FailureReason.UNKNOWN_ERROR)


@dataclass
class ExtractionOutcome:
    ok: bool
    reason: Optional[FailureReason] = None
    detail: Optional[str] = None
    record: Optional[Record] = None
    merged: Optional[MergeResult] = None
    request_id: Optional[str] = None

    @classmethod
    def failure(cls, reason: FailureReason, detail: Optional[str] = None, request_id: Optional[str] = None) -> "ExtractionOutcome":
        return cls(ok=False, reason=reason, detail=detail, request_id=request_id)

    @property
    def user_message(self) -> str:
        if self.ok:
            label = self.record.object_type.capitalize() if self.record else "Record"
            if self.merged and self.merged.inserted:
                return f"New {label} extracted!"
            if self.merged and self.merged.updated:
                return f"{label} updated!"
            return "Extraction complete"
        if self.reason is None:
            return FAILURE_MESSAGES[FailureReason.UNKNOWN_ERROR]
        if self.reason in _DETAIL_FIRST and self.detail:
            return self.detail
        return FAILURE_MESSAGES[self.reason]

    def to_response(self) -> Dict[str, Any]:
        if self.ok:
            merged = self.merged
            return {
                "status": "ok",
                "merged": {
                    "inserted": merged.inserted if merged else 0,
                    "updated": merged.updated if merged else 0,
                    "objectType": merged.object_type if merged else None,
                    "relatedInserted": merged.related_inserted if merged else 0,
                },
                "record": self.record.to_wire() if self.record else None,
            }
        return {"status": "error", "reason": self.reason.value if self.reason else None, "message": self.user_message}


class ExtractionOrchestrator:
    def __init__(
        self,
        repo: StoreRepoPort,
        bus: MessageBus,
        settings: Optional[Settings] = None,
        indicator: Optional[StatusIndicator] = None,
    ) -> None:
        self.repo = repo
        self.bus = bus
        self.settings = settings or get_settings()
        self.indicator = indicator or StatusIndicator()
        self.state = RequestState.IDLE
        self._serial = asyncio.Lock()

    async def request_extract(self, tab: Optional[ExecutorHostPort]) -> ExtractionOutcome:
        async with self._serial:
            started = time.perf_counter()
            try:
                outcome = await self._extract(tab)
            except Exception as exc:
                logger.exception("Extract request error", extra={"error": type(exc).__name__})
                outcome = ExtractionOutcome.failure(FailureReason.UNKNOWN_ERROR, str(exc))

            self.state = RequestState.SUCCEEDED if outcome.ok else RequestState.FAILED
            logger.info(
                "Extraction request finished: %s",
                outcome.user_message,
                extra={
                    "state": self.state.value,
                    "request_id": outcome.request_id or "-",
                    "error": outcome.reason.value if outcome.reason else "-",
                    "duration_ms": int((time.perf_counter() - started) * 1000),
                },
            )
            self._update_indicator(outcome)
            return outcome

    async def _extract(self, tab: Optional[ExecutorHostPort]) -> ExtractionOutcome:
        self.state = RequestState.IDLE
        if tab is None:
            return ExtractionOutcome.failure(FailureReason.NO_ACTIVE_TAB)
        if not is_supported_crm_url(tab.url, self.settings.supported_domains):
            return ExtractionOutcome.failure(FailureReason.NOT_SUPPORTED_SITE)

        self.indicator.show("extracting", "Extracting record...")

        try:
            await self._handshake(tab)
        except InjectionFailed as exc:
            return ExtractionOutcome.failure(FailureReason.INJECTION_FAILED, exc.message)
        except NoLiveExecutor as exc:
            return ExtractionOutcome.failure(FailureReason.NO_EXECUTOR, exc.message)

        attempts = 1 + max(0, self.settings.dispatch_retries)
        response: Dict[str, Any] = {}
        request_id = ""
        for attempt in range(1, attempts + 1):
            request_id = str(uuid.uuid4())
            try:
                response = await self._dispatch(tab, request_id)
                break
            except DispatchTimeout as exc:
                if attempt == attempts:
                    return ExtractionOutcome.failure(FailureReason.TIMEOUT, exc.message, request_id)
                logger.info("Retrying extraction", extra={"request_id": request_id, "state": "retry"})
            except ChannelError as exc:
                return ExtractionOutcome.failure(FailureReason.SEND_FAILED, exc.message, request_id)

        if response.get("type") == messages.EXTRACTION_ERROR:
            error = response.get("error") or {}
            return ExtractionOutcome.failure(FailureReason.EXTRACTION_ERROR, error.get("message"), request_id)

        ctx = RunContext(
            request_id=request_id,
            payload=response.get("payload"),
            related_payloads=response.get("relatedRecords") or [],
        )
        try:
            pipeline = Pipeline([ValidateRecords(), MergeRecords(self.repo)])
            # sqlite merge blocks; run it off the event loop
            ctx = await asyncio.get_running_loop().run_in_executor(None, pipeline.run, ctx)
        except InvalidPayload as exc:
            return ExtractionOutcome.failure(FailureReason.INVALID_PAYLOAD, exc.message, request_id)

        return ExtractionOutcome(ok=True, record=ctx.record, merged=ctx.meta.get("merge"), request_id=request_id)

    async def _ping(self, tab: ExecutorHostPort) -> bool:
        self.state = RequestState.PINGING
        started = time.perf_counter()
        try:
            reply = await asyncio.wait_for(
                tab.send_message(messages.ping()),
                timeout=self.settings.ping_timeout_ms / 1000,
            )
        except Exception as exc:
            # Any failure to answer counts as no live executor
            logger.info("PING failed: %s", exc or type(exc).__name__, extra={"step": "handshake"})
            log_exchange(
                caller="orchestrator",
                message_type=messages.PING,
                tab_id=tab.tab_id,
                state=self.state.value,
                status="error",
                error=type(exc).__name__,
            )
            return False
        alive = messages.is_pong(reply)
        log_exchange(
            caller="orchestrator",
            message_type=messages.PING,
            tab_id=tab.tab_id,
            state=self.state.value,
            duration_ms=int((time.perf_counter() - started) * 1000),
            status="ok" if alive else "error",
            error=None if alive else "unexpected reply",
        )
        return alive

    async def _handshake(self, tab: ExecutorHostPort) -> None:
        if await self._ping(tab):
            return

        logger.info("No PONG, injecting executor", extra={"step": "handshake"})
        self.state = RequestState.INJECTING
        try:
            await tab.inject()
        except InjectionFailed as exc:
            log_exchange(caller="orchestrator", message_type="INJECT", tab_id=tab.tab_id, status="error", error=exc.message)
            raise
        except Exception as exc:
            log_exchange(caller="orchestrator", message_type="INJECT", tab_id=tab.tab_id, status="error", error=str(exc))
            raise InjectionFailed(str(exc) or type(exc).__name__, {"tab_id": tab.tab_id}) from exc
        log_exchange(caller="orchestrator", message_type="INJECT", tab_id=tab.tab_id, state=self.state.value)
        await asyncio.sleep(self.settings.injection_settle_ms / 1000)

        if await self._ping(tab):
            return
        raise NoLiveExecutor("No PONG after injection", {"tab_id": tab.tab_id})

    async def _dispatch(self, tab: ExecutorHostPort, request_id: str) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        answer: asyncio.Future = loop.create_future()

        def listener(message: Dict[str, Any], sender_tab_id: Optional[int]) -> None:
            if sender_tab_id != tab.tab_id:
                return
            if not messages.is_response_for(message, request_id):
                if message.get("type") in messages.RESPONSE_TYPES:
                    logger.debug(
                        "Ignoring response for another request",
                        extra={"request_id": message.get("requestId") or "-"},
                    )
                return
            if not answer.done():
                answer.set_result(message)

        started = time.perf_counter()
        # Listen before sending so a fast executor cannot answer into the void
        self.bus.add_listener(listener)
        self.state = RequestState.DISPATCHED
        try:
            await tab.send_message(messages.run_extraction(request_id))
            log_exchange(
                caller="orchestrator",
                message_type=messages.RUN_EXTRACTION,
                request_id=request_id,
                tab_id=tab.tab_id,
                state=self.state.value,
            )
            try:
                response = await asyncio.wait_for(answer, timeout=self.settings.dispatch_timeout_ms / 1000)
            except asyncio.TimeoutError as exc:
                log_exchange(
                    caller="orchestrator",
                    message_type=messages.RUN_EXTRACTION,
                    request_id=request_id,
                    tab_id=tab.tab_id,
                    status="error",
                    error="TIMEOUT",
                    duration_ms=int((time.perf_counter() - started) * 1000),
                )
                raise DispatchTimeout("Extraction timed out", {"request_id": request_id}) from exc
        except ChannelError as exc:
            log_exchange(
                caller="orchestrator",
                message_type=messages.RUN_EXTRACTION,
                request_id=request_id,
                tab_id=tab.tab_id,
                status="error",
                error=exc.message,
            )
            raise
        finally:
            self.bus.remove_listener(listener)

        log_exchange(
            caller="orchestrator",
            message_type=response.get("type", "-"),
            request_id=request_id,
            tab_id=tab.tab_id,
            duration_ms=int((time.perf_counter() - started) * 1000),
            status="ok" if response.get("type") == messages.EXTRACTION_RESULT else "error",
        )
        return response

    def _update_indicator(self, outcome: ExtractionOutcome) -> None:
        self.indicator.show("success" if outcome.ok else "error", outcome.user_message)
        try:
            self.indicator.hide(after_delay=self.settings.status_hide_delay_ms / 1000)
        except RuntimeError:
            # No running loop to schedule on
            self.indicator.hide()
