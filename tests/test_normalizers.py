from __future__ import annotations

import pytest

from extraction.identity import id_from_url, object_type_for_url
from extraction.normalizers import normalize_amount, normalize_date


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("$50,000.00", 50000),
        ("$50,000", 50000),
        ("USD 1,250.5", 1250.5),
        ("-1,200", -1200),
        ("N/A", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_amount(raw, expected):
    assert normalize_amount(raw) == expected


def test_normalize_date_renders_iso_and_passes_through_others():
    assert normalize_date("3/7/2026") == "2026-03-07"
    assert normalize_date("Due 12/31/2025 (overdue)") == "2025-12-31"
    assert normalize_date("March 2026") == "March 2026"
    assert normalize_date("") is None
    assert normalize_date(None) is None


def test_id_from_url_per_object_type():
    url = "https://acme.lightning.force.com/lightning/r/Opportunity/006ABCDEFGHIJKLMNO/view"
    assert id_from_url(url, "opportunity") == "006ABCDEFGHIJKLMNO"
    assert id_from_url(url, "lead") is None
    assert object_type_for_url(url) == "opportunity"


def test_id_from_url_requires_well_formed_address():
    # Too short, and missing the trailing segment
    assert id_from_url("https://x.lightning.force.com/lightning/r/Lead/00Q123/view", "lead") is None
    assert id_from_url("https://x.lightning.force.com/lightning/r/Lead/00QABCDEFGHIJKLMNO", "lead") is None
    assert id_from_url(None, "lead") is None
    assert object_type_for_url("https://x.lightning.force.com/lightning/o/Lead/list") is None


def test_id_from_url_unknown_type_raises():
    with pytest.raises(KeyError):
        id_from_url("https://x.lightning.force.com/lightning/r/Case/500ABCDEFGHIJKLMNO/view", "case")
