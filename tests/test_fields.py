"""Tests for record parsing and the field-aware matcher."""

import pytest

from sensitive_patterns.core.definitions import MatchMethod
from sensitive_patterns.engine.fields import (
    FieldAwareMatcher,
    is_structured_text,
    normalize_field_name,
    parse_records,
)


@pytest.fixture
def matcher(vocabulary):
    return FieldAwareMatcher(vocabulary)


# ── Structure detection ──────────────────────────────────────────────

def test_record_header_marks_text_structured():
    assert is_structured_text("Record 7:\nsomething free-form")


def test_majority_of_field_lines_marks_text_structured():
    assert is_structured_text("name: Ann\nphone: 555\nnotes follow")
    assert not is_structured_text("Hello world.\nHow are you?")
    assert not is_structured_text("")


# ── Field names ──────────────────────────────────────────────────────

def test_normalize_field_name(vocabulary):
    aliases = vocabulary.field_aliases()
    assert normalize_field_name("First Name") == "first_name"
    assert normalize_field_name("FName", aliases) == "first_name"
    assert normalize_field_name("Social Security #", aliases) == "ssn"
    assert normalize_field_name("Favourite Colour", aliases) == "favourite_colour"


def test_parse_records_tracks_offsets_and_records():
    text = "Record 1:\nemail: a@b.com\nRecord 2:\nemail: null\nno colon here"
    entries = parse_records(text)

    assert len(entries) == 1
    entry = entries[0]
    assert entry.record == "1"
    assert entry.value == "a@b.com"
    assert text[entry.start : entry.end] == "a@b.com"


# ── Matching ─────────────────────────────────────────────────────────

def test_record_fields_are_matched_by_name(matcher):
    text = "Record 1:\nfirst_name: John\nssn: 123-45-6789"
    matches = matcher.find(text)

    assert [m.text for m in matches] == ["John", "123-45-6789"]
    assert matches[0].confidence == pytest.approx(0.95)
    assert matches[1].confidence == pytest.approx(0.99)
    assert all(m.method == MatchMethod.FIELD for m in matches)
    assert matches[0].start == text.index("John")
    assert matches[1].start == text.index("123-45-6789")
    assert "first_name" in matches[0].label


def test_null_values_are_skipped(matcher):
    matches = matcher.find("email: null\nphone: (212) 555-0100")
    assert [m.text for m in matches] == ["(212) 555-0100"]
    assert matches[0].confidence == pytest.approx(0.98)


def test_invalid_values_are_rejected(matcher):
    assert matcher.find("ssn: 000-12-3456\nemail: not-an-email") == []


def test_duplicate_findings_within_a_record_collapse(matcher):
    text = "Record 1:\nssn: 123-45-6789\nssn: 123-45-6789\nRecord 2:\nssn: 123-45-6789"
    assert len(matcher.find(text)) == 2


def test_tag_filter(matcher):
    text = "first_name: John\nssn: 123-45-6789"
    assert [m.text for m in matcher.find(text, ["ssn"])] == ["123-45-6789"]
    assert matcher.find(text, []) == []


def test_display_name(matcher):
    assert "ssn" in matcher.tags
    assert matcher.display_name("ssn") == "Social Security Number"
