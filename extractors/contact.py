from __future__ import annotations

from typing import Any, Dict, Sequence

from extraction.page import PageSnapshot
from extractors.base import EntityExtractor
from extractors.registry import register


class ContactExtractor(EntityExtractor):
    object_type = "contact"
    header = "Contact"
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
        "Title",
        "Account Name",
        "Phone",
        "Email",
        "Contact Owner",
        "Name",
        "Address",
        "Follow",
        "New Case",
        "New Note",
        "Clone",
        "Edit",
        "Delete",
        "Submit for Approval",
        "Mailing Address",
    )

    def extract_fields(self, snapshot: PageSnapshot, lines: Sequence[str]) -> Dict[str, Any]:
        return {
            "name": self.display_name(snapshot, lines),
            "title": self.field(lines, "Title"),
            "accountName": self.field(lines, "Account Name"),
            "phone": self.field(lines, "Phone", partial=True),
            "email": self.field(lines, "Email"),
            "owner": self.field(lines, "Contact Owner"),
        }


def _register():
    register(ContactExtractor.object_type, ContactExtractor)


_register()
