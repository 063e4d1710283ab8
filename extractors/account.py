from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Sequence

from extraction.page import PageSnapshot
from extractors.base import EntityExtractor
from extractors.registry import register
from models import Record, now_ms


logger = logging.getLogger(__name__)


EMAIL_RE = re.compile(r"[\w.-]+@[\w.-]+\.\w+")
PHONE_RE = re.compile(r"\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")


class AccountExtractor(EntityExtractor):
    """Organization pages; also collects the contacts linked from the page."""

    object_type = "account"
    header = "Account"
    header_captions = (
        "Follow",
        "Following",
        "New Case",
        "New Note",
        "Clone",
        "Edit",
        "Delete",
        "Submit for Approval",
    )
    reserved_labels = (
        "Type",
        "Phone",
        "Website",
        "Account Owner",
        "Account Site",
        "Industry",
        "Name",
        "Follow",
        "New Case",
        "New Note",
        "Clone",
        "Edit",
        "Delete",
        "Submit for Approval",
        "Description",
        "Billing Address",
        "Shipping Address",
    )

    def extract_fields(self, snapshot: PageSnapshot, lines: Sequence[str]) -> Dict[str, Any]:
        return {
            "name": self.display_name(snapshot, lines),
            "type": self.field(lines, "Type"),
            "phone": self.field(lines, "Phone", partial=True),
            "website": self.field(lines, "Website"),
            "owner": self.field(lines, "Account Owner"),
            "accountSite": self.field(lines, "Account Site"),
            "industry": self.field(lines, "Industry"),
        }

    def related_records(self, record_id: str, snapshot: PageSnapshot) -> List[Record]:
        related: List[Record] = []
        for link in snapshot.record_links("contact"):
            email = EMAIL_RE.search(link.row_text)
            phone = PHONE_RE.search(link.row_text)
            related.append(
                Record(
                    id=link.id,
                    object_type="contact",
                    parent_id=record_id,
                    data={
                        "name": link.name,
                        "email": email.group(0) if email else None,
                        "phone": phone.group(0) if phone else None,
                        "accountName": None,
                        "title": None,
                        "owner": None,
                    },
                    source_url=snapshot.url,
                    last_updated=now_ms(),
                )
            )
            logger.debug("Found related Contact: %s", link.name, extra={"step": "related"})
        return related


def _register():
    register(AccountExtractor.object_type, AccountExtractor)


_register()
