from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from extraction.identity import is_record_page
from extraction.labels import in_vocabulary, match_vocabulary, search_vocabulary
from extraction.page import PageSnapshot
from extractors.base import EntityExtractor
from extractors.registry import register


logger = logging.getLogger(__name__)


LEAD_STATUSES = (
    "Open - Not Contacted",
    "Working - Contacted",
    "Closed - Converted",
    "Closed - Not Converted",
    "Converted",
    "New",
    "Contacted",
    "Qualified",
    "Unqualified",
)


class LeadExtractor(EntityExtractor):
    object_type = "lead"
    header = "Lead"
    header_captions = (
        "Follow",
        "Following",
        "New Case",
        "New Note",
        "Clone",
        "Edit",
        "Delete",
        "Convert",
        "Submit for Approval",
    )
    reserved_labels = (
        "Company",
        "Email",
        "Phone",
        "Lead Source",
        "Lead Status",
        "Lead Owner",
        "Title",
        "Name",
        "Address",
        "Follow",
        "New Case",
        "New Note",
        "Clone",
        "Convert",
        "Edit",
        "Delete",
        "Submit for Approval",
    )

    def resolve_status(self, snapshot: PageSnapshot, lines: Sequence[str]) -> Optional[str]:
        if not is_record_page(snapshot.url, self.object_type):
            return None

        status = match_vocabulary(lines, LEAD_STATUSES)
        if status:
            logger.debug("Status from known values: %s", status, extra={"step": "lead_status"})
            return status

        for label in ("Lead Status", "Status"):
            status = in_vocabulary(self.field(lines, label, first_occurrence_only=False), LEAD_STATUSES)
            if status:
                return status

        status = search_vocabulary(snapshot.path_text(), LEAD_STATUSES)
        if status:
            logger.debug("Status from path text: %s", status, extra={"step": "lead_status"})
            return status

        logger.debug("Lead Status NOT FOUND", extra={"step": "lead_status", "state": "field_not_found"})
        return None

    def extract_fields(self, snapshot: PageSnapshot, lines: Sequence[str]) -> Dict[str, Any]:
        return {
            "name": self.display_name(snapshot, lines),
            "company": self.field(lines, "Company"),
            "email": self.field(lines, "Email"),
            # Rendered as "Phone (2)" and similar
            "phone": self.field(lines, "Phone", partial=True),
            "leadStatus": self.resolve_status(snapshot, lines),
        }


def _register():
    register(LeadExtractor.object_type, LeadExtractor)


_register()
