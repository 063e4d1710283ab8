from __future__ import annotations

from extraction.labels import find_by_label, find_header_value, resolve_primary_name
from extraction.lines import lineize
from extraction.page import InMemoryPage


RESERVED = ("Close Date", "Amount", "Stage", "Follow")


def test_lineize_trims_and_drops_blank_lines():
    raw = "  Opportunity \r\nAcme Deal\r\r\n\n   \nAmount\n$50,000  "
    assert lineize(raw) == ["Opportunity", "Acme Deal", "Amount", "$50,000"]
    assert lineize("") == []
    assert lineize(None) == []


def test_lineize_is_recomputed_per_call():
    text = "A\nB"
    first = lineize(text)
    first.append("mutated")
    assert lineize(text) == ["A", "B"]


def test_find_by_label_returns_adjacent_value():
    lines = ["Amount", "$50,000", "Close Date", "3/15/2026"]
    assert find_by_label(lines, "Amount", RESERVED) == "$50,000"
    assert find_by_label(lines, "close date", RESERVED) == "3/15/2026"


def test_find_by_label_missing_or_trailing_label_is_none():
    assert find_by_label(["Amount"], "Amount", RESERVED) is None
    assert find_by_label(["Owner", "Jane"], "Amount", RESERVED) is None


def test_find_by_label_partial_match():
    lines = ["Phone (2)", "(555) 010-2233"]
    assert find_by_label(lines, "Phone", partial=True) == "(555) 010-2233"
    assert find_by_label(lines, "Phone") is None


def test_reserved_candidate_is_rejected_case_insensitively():
    lines = ["Account Name", "close date", "3/15/2026"]
    assert find_by_label(lines, "Account Name", RESERVED) is None


def test_first_occurrence_is_authoritative_even_with_later_value():
    # The first "Account Name" is empty on the page; a related list repeats the label later
    lines = ["Account Name", "Close Date", "3/15/2026", "Related", "Account Name", "Globex Inc"]
    assert find_by_label(lines, "Account Name", RESERVED) is None


def test_scan_can_continue_past_rejected_candidate():
    lines = ["Account Name", "Close Date", "3/15/2026", "Related", "Account Name", "Globex Inc"]
    assert find_by_label(lines, "Account Name", RESERVED, first_occurrence_only=False) == "Globex Inc"


def test_header_value_skips_header_buttons():
    captions = ("Follow", "Edit")
    lines = ["Opportunity", "Follow", "Opportunity", "Acme Deal"]
    assert find_header_value(lines, "Opportunity", captions) == "Acme Deal"
    # Header match is exact and case-sensitive
    assert find_header_value(["opportunity", "Acme Deal"], "Opportunity", captions) is None


class _Slot:
    def __init__(self, text):
        self.text = text

    def primary_field_text(self):
        return self.text


def test_primary_name_falls_back_to_slot_then_none():
    assert resolve_primary_name(["Amount", "$1"], "Opportunity", (), _Slot("Slot Name")) == "Slot Name"
    assert resolve_primary_name(["Amount", "$1"], "Opportunity", (), _Slot(None)) is None
    assert resolve_primary_name(["Opportunity", "Header Name"], "Opportunity", (), _Slot("Slot Name")) == "Header Name"


def test_inline_markup_stays_on_one_line():
    html = "<div><span>Account Name</span></div><div><a>Acme <b>Corporation</b></a></div>"
    lines = InMemoryPage(url="https://x.force.com/", html=html).snapshot().lines()
    assert lines == ["Account Name", "Acme Corporation"]
    assert find_by_label(lines, "Account Name") == "Acme Corporation"


def test_block_elements_and_breaks_split_lines():
    html = (
        "<html><head><title>Ignored</title></head><body>"
        "<p>Amount<br>$50,000</p><script>var x = 1;</script>"
        "<ul><li>Stage</li><li>  Closed\n   Won </li></ul>"
        "<table><tr><td>Alice</td><td>Director</td></tr></table>"
        "</body></html>"
    )
    lines = InMemoryPage(url="https://x.force.com/", html=html).snapshot().lines()
    assert lines == ["Amount", "$50,000", "Stage", "Closed Won", "Alice\tDirector"]
