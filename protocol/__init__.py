from protocol.bus import MessageBus
from protocol.executor import DebugProbe, ExtractionExecutor
from protocol.orchestrator import (
    ExtractionOrchestrator,
    ExtractionOutcome,
    FailureReason,
    RequestState,
)
from protocol.tab import BrowserTab

__all__ = [
    "BrowserTab",
    "DebugProbe",
    "ExtractionExecutor",
    "ExtractionOrchestrator",
    "ExtractionOutcome",
    "FailureReason",
    "MessageBus",
    "RequestState",
]
