from __future__ import annotations

import logging
from typing import Iterable, Optional, Protocol, Sequence


logger = logging.getLogger(__name__)


class PrimaryFieldSource(Protocol):
    def primary_field_text(self) -> Optional[str]:
        ...


def _normalized_set(values: Iterable[str]) -> frozenset[str]:
    return frozenset(v.strip().lower() for v in values)


def find_by_label(
    lines: Sequence[str],
    label: str,
    reserved: Iterable[str] = (),
    *,
    partial: bool = False,
    first_occurrence_only: bool = True,
) -> Optional[str]:
    """Return the line that follows ``label``, or None.

    Matching is case-insensitive; ``partial`` accepts lines that start with the
    label (e.g. "Phone (2)"). A candidate equal to a reserved caption is
    rejected.

    By default the first label occurrence is authoritative: a rejected
    candidate there ends the lookup, even if a later section repeats the
    label with a usable value. ``first_occurrence_only=False`` keeps scanning
    and returns the first accepted candidate instead.
    """
    wanted = label.strip().lower()
    blocked = _normalized_set(reserved)

    for i, line in enumerate(lines):
        current = line.lower()
        matched = current.startswith(wanted) if partial else current == wanted
        if not matched:
            continue
        if i + 1 >= len(lines):
            continue
        candidate = lines[i + 1]
        if candidate.lower() not in blocked:
            logger.debug("Found %r via text: %r", label, candidate, extra={"step": "find_by_label"})
            return candidate
        if first_occurrence_only:
            logger.debug("%r appears empty", label, extra={"step": "find_by_label"})
            return None

    logger.debug("%r NOT FOUND", label, extra={"step": "find_by_label", "state": "field_not_found"})
    return None


def find_header_value(lines: Sequence[str], header: str, captions: Iterable[str]) -> Optional[str]:
    """Line after an exact (case-sensitive) section header, skipping header buttons."""
    blocked = frozenset(captions)
    for i, line in enumerate(lines[:-1]):
        if line == header and lines[i + 1] not in blocked:
            return lines[i + 1]
    return None


def resolve_primary_name(
    lines: Sequence[str],
    header: str,
    captions: Iterable[str],
    page: Optional[PrimaryFieldSource] = None,
) -> Optional[str]:
    """Two-tier display name: header-adjacent line, then the primary-field slot."""
    name = find_header_value(lines, header, captions)
    if name:
        logger.debug("Name from text (after %s): %r", header, name, extra={"step": "name"})
        return name
    if page is not None:
        slot = page.primary_field_text()
        if slot:
            logger.debug("Name from primaryField: %r", slot, extra={"step": "name"})
            return slot
    logger.debug("Name NOT FOUND", extra={"step": "name", "state": "field_not_found"})
    return None


def match_vocabulary(lines: Sequence[str], vocabulary: Sequence[str]) -> Optional[str]:
    """First vocabulary member (in vocabulary order) present as an exact line."""
    present = set(lines)
    for term in vocabulary:
        if term in present:
            return term
    return None


def in_vocabulary(value: Optional[str], vocabulary: Sequence[str]) -> Optional[str]:
    if not value:
        return None
    low = value.lower()
    for term in vocabulary:
        if term.lower() == low:
            return value
    return None


def search_vocabulary(text: Optional[str], vocabulary: Sequence[str]) -> Optional[str]:
    """First vocabulary member contained anywhere in ``text``."""
    if not text:
        return None
    for term in vocabulary:
        if term in text:
            return term
    return None
