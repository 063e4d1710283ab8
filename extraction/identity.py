from __future__ import annotations

import re
from typing import Dict, Optional, Pattern


# Address segment per object type, as it appears in /lightning/r/<Segment>/<id>/
ADDRESS_SEGMENTS: Dict[str, str] = {
    "opportunity": "Opportunity",
    "lead": "Lead",
    "contact": "Contact",
    "account": "Account",
    "task": "Task",
}

RECORD_URL_PATTERNS: Dict[str, Pattern[str]] = {
    object_type: re.compile(rf"/lightning/r/{segment}/([a-zA-Z0-9]{{15,18}})/")
    for object_type, segment in ADDRESS_SEGMENTS.items()
}

RECORD_LINK_ID = {
    object_type: re.compile(rf"/{segment}/([a-zA-Z0-9]{{15,18}})")
    for object_type, segment in ADDRESS_SEGMENTS.items()
}


def id_from_url(url: Optional[str], object_type: str) -> Optional[str]:
    """Record id embedded in a detail-page address, or None when the shape does not match."""
    if not url:
        return None
    pattern = RECORD_URL_PATTERNS.get(object_type)
    if pattern is None:
        raise KeyError(f"Unknown object type: {object_type}")
    m = pattern.search(url)
    return m.group(1) if m else None


def is_record_page(url: Optional[str], object_type: str) -> bool:
    return id_from_url(url, object_type) is not None


def object_type_for_url(url: Optional[str]) -> Optional[str]:
    """First object type whose detail-page pattern matches ``url``."""
    for object_type in RECORD_URL_PATTERNS:
        if id_from_url(url, object_type):
            return object_type
    return None
