from __future__ import annotations

from typing import Any, Dict, Optional, Protocol


class ExecutorHostPort(Protocol):
    """A target context (browser tab) the orchestrator talks to."""

    tab_id: int
    url: str

    async def send_message(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        ...

    async def inject(self) -> None:
        ...
