"""
Exceptions raised inside the extraction executor and the executor host.

The orchestrator never lets these escape to its caller: each one is mapped to
a ``FailureReason`` tag on the returned outcome.
"""

from __future__ import annotations

from typing import Any, Optional


class ExtractorError(Exception):
    """Base exception for all extractor errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class MissingIdentifier(ExtractorError):
    """The page address does not match the record address pattern."""

    def __init__(self, object_type: str, url: str) -> None:
        label = object_type.capitalize() if object_type else "CRM"
        super().__init__(
            f"Could not determine {label} record ID from URL",
            {"object_type": object_type, "url": url},
        )


class ChannelError(ExtractorError):
    """No receiver is listening in the target context."""

    pass


class InjectionFailed(ExtractorError):
    """The host refused to install the executor."""

    pass


class NoLiveExecutor(ExtractorError):
    """The handshake was exhausted without a PONG."""

    pass


class DispatchTimeout(ExtractorError):
    """No correlated response arrived within the dispatch bound."""

    pass


class InvalidPayload(ExtractorError):
    """A success message carried a structurally malformed record."""

    pass
