from __future__ import annotations

import re
from typing import Optional


_AMOUNT_STRIP = re.compile(r"[^0-9.\-]")
_US_DATE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
_LEADING_NUMBER = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)")


def normalize_amount(value) -> Optional[float]:
    """Parse strings like '$50,000.00' or '-1,200' into a float.

    Everything except digits, '.' and '-' is dropped first; no locale or
    currency handling beyond that. Returns None for unparsable inputs.
    """
    if value is None:
        return None
    cleaned = _AMOUNT_STRIP.sub("", str(value))
    # Leading-prefix parse: "1.2.3" -> 1.2, like a lenient float reader
    m = _LEADING_NUMBER.match(cleaned)
    if not m:
        return None
    try:
        return float(m.group(0))
    except ValueError:
        return None


def normalize_date(value: Optional[str]) -> Optional[str]:
    """Render 'M/D/YYYY' as 'YYYY-MM-DD'; pass anything else through unchanged."""
    if not value:
        return None
    m = _US_DATE.search(value)
    if not m:
        return value
    month, day, year = m.groups()
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
