from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from extraction.identity import is_record_page
from extraction.labels import in_vocabulary, match_vocabulary, search_vocabulary
from extraction.normalizers import normalize_amount, normalize_date
from extraction.page import PageSnapshot
from extractors.base import EntityExtractor
from extractors.registry import register


logger = logging.getLogger(__name__)


STAGE_NAMES = (
    "Prospecting",
    "Qualification",
    "Needs Analysis",
    "Value Proposition",
    "Id. Decision Makers",
    "Perception Analysis",
    "Proposal/Price Quote",
    "Negotiation/Review",
    "Closed Won",
    "Closed Lost",
)


class OpportunityExtractor(EntityExtractor):
    object_type = "opportunity"
    header = "Opportunity"
    header_captions = ("Follow", "Following", "New Case", "New Note", "Clone", "Edit", "Delete")
    reserved_labels = (
        "Account Name",
        "Close Date",
        "Amount",
        "Opportunity Owner",
        "Stage",
        "Follow",
        "New Case",
        "New Note",
        "Clone",
        "Edit",
    )

    def resolve_stage(self, snapshot: PageSnapshot, lines: Sequence[str]) -> Optional[str]:
        # Path widgets from other record types share markup; only trust this page's own
        if not is_record_page(snapshot.url, self.object_type):
            logger.debug("Not on an Opportunity page, skipping stage", extra={"step": "stage"})
            return None

        stage = match_vocabulary(lines, STAGE_NAMES)
        if stage:
            logger.debug("Stage from known values: %s", stage, extra={"step": "stage"})
            return stage

        # Any "Stage" occurrence whose value is a known stage
        stage = in_vocabulary(self.field(lines, "Stage", first_occurrence_only=False), STAGE_NAMES)
        if stage:
            return stage

        stage = search_vocabulary(snapshot.path_text(), STAGE_NAMES)
        if stage:
            logger.debug("Stage from path text: %s", stage, extra={"step": "stage"})
            return stage

        logger.debug("Stage NOT FOUND", extra={"step": "stage", "state": "field_not_found"})
        return None

    def extract_fields(self, snapshot: PageSnapshot, lines: Sequence[str]) -> Dict[str, Any]:
        return {
            "name": self.display_name(snapshot, lines),
            "amount": normalize_amount(self.field(lines, "Amount")),
            "closeDate": normalize_date(self.field(lines, "Close Date")),
            "account": self.field(lines, "Account Name"),
            "owner": self.field(lines, "Opportunity Owner"),
            "stage": self.resolve_stage(snapshot, lines),
        }


def _register():
    register(OpportunityExtractor.object_type, OpportunityExtractor)


_register()
