from __future__ import annotations

from typing import Protocol

from extraction.page import PageSnapshot


class RenderedPagePort(Protocol):
    url: str

    def snapshot(self) -> PageSnapshot:
        ...
