from __future__ import annotations

import re
from typing import List, Optional


_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def lineize(raw_text: Optional[str]) -> List[str]:
    """Split rendered page text into trimmed, non-empty lines in reading order.

    Never memoize the result: the page re-renders without reloading, so every
    extraction attempt has to read a fresh copy.
    """
    if not raw_text:
        return []
    lines: List[str] = []
    for segment in _LINE_BREAK.split(raw_text):
        line = segment.strip()
        if line:
            lines.append(line)
    return lines
