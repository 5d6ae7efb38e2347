"""End-to-end tests for the detection engine."""

import asyncio

import pytest

from sensitive_patterns.core.definitions import MatchMethod
from sensitive_patterns.core.domain import Entity, Pattern, RedactionStyle
from sensitive_patterns.core.exceptions import ConfigurationError, ValidationError
from sensitive_patterns.service.config import Settings
from sensitive_patterns.service.pipeline import DetectionEngine, MatcherKind, detect_text

SSN_TEXT = "SSN: 123-45-6789, phone 555-123-4567"
MEETING_TEXT = "Meeting with John Smith tomorrow"


def _ssn_pattern(**kwargs):
    return Pattern(id="ssn", name="SSN", category="pii", context_keywords=["ssn"], **kwargs)


def _phone_pattern():
    return Pattern(id="phone", name="Phone", category="pii", context_keywords=["phone"])


def _person_pattern():
    return Pattern(id="person", name="Person", category="pii", context_keywords=["attendee"])


class FakeDetector:
    """Returns fixed entities and counts calls."""

    def __init__(self, entities):
        self.entities = entities
        self.calls = 0

    async def detect_entities(self, text):
        self.calls += 1
        return self.entities


class SlowDetector:
    async def detect_entities(self, text):
        await asyncio.sleep(1)
        return [Entity("John Smith", "person", 0.99, 13, 23)]


class BrokenDetector:
    async def detect_entities(self, text):
        raise RuntimeError("model exploded")


def _engine_with(detector, vocabulary, **settings):
    return DetectionEngine(
        settings=Settings(_env_file=None, **settings),
        vocabulary=vocabulary,
        entity_detector=detector,
    )


# ── Context detection ────────────────────────────────────────────────

def test_ssn_and_phone_are_detected(engine):
    result = engine.detect(SSN_TEXT, [_ssn_pattern(), _phone_pattern()])

    assert [m.text for m in result.matches] == ["123-45-6789", "555-123-4567"]
    assert [m.pattern_id for m in result.matches] == ["ssn", "phone"]
    assert all(m.confidence >= 0.9 for m in result.matches)
    assert all(m.method == MatchMethod.CONTEXT for m in result.matches)
    assert result.redacted_text == "SSN: [REDACTED], phone [REDACTED]"
    assert result.original_text == SSN_TEXT


def test_statistics_and_metadata(engine):
    result = engine.detect(SSN_TEXT, [_ssn_pattern(), _phone_pattern()])

    stats = result.statistics
    assert stats.total_matches == 2
    assert stats.per_method_counts["context"] == 2
    assert stats.per_method_counts["regex"] == 0
    assert stats.per_category_counts == {"pii": 2}
    assert stats.average_confidence == pytest.approx(0.96)

    assert result.metadata["pattern_count"] == 2
    assert result.metadata["failed_patterns"] == []
    assert result.metadata["per_pattern_counts"] == {"ssn": 1, "phone": 1}


def test_partial_redaction_of_ssn(engine):
    result = engine.detect(
        SSN_TEXT, [_ssn_pattern()], style=RedactionStyle("partial", "XXX-XX-####")
    )
    assert result.redacted_text == "SSN: XXX-XX-6789, phone 555-123-4567"


def test_token_redaction(engine):
    result = engine.detect(SSN_TEXT, [_ssn_pattern(), _phone_pattern()], style=RedactionStyle("token"))
    assert result.redacted_text == "SSN: [PII-1], phone [PII-2]"


def test_record_fields(engine):
    text = "Record 1:\nfirst_name: John\nssn: 123-45-6789"
    pattern = Pattern(id="ssn", name="Social Security Number", category="pii")

    result = engine.detect(text, [pattern])

    assert [m.text for m in result.matches] == ["123-45-6789"]
    assert result.matches[0].confidence == pytest.approx(0.99)
    assert result.metadata["structured"] is True


# ── Structural and address detection ─────────────────────────────────

def test_explicit_regex_pattern(engine):
    pattern = Pattern(id="emp", name="Employee ID", regex=r"EMP-\d{4}")
    result = engine.detect("Badge EMP-1234 issued", [pattern])

    assert [m.text for m in result.matches] == ["EMP-1234"]
    assert result.matches[0].method == MatchMethod.REGEX
    assert result.redacted_text == "Badge [REDACTED] issued"


def test_address_found_by_similarity(engine):
    text = "Deliver to:\n789 Elm Street\n"
    pattern = Pattern(
        id="addr", name="Address", category="pii", examples=["123 Main Street", "456 Oak Avenue"]
    )

    result = engine.detect(text, [pattern])

    assert [m.text for m in result.matches] == ["789 Elm Street"]
    assert result.matches[0].method == MatchMethod.EXTERNAL
    assert result.redacted_text == "Deliver to:\n[REDACTED]\n"


def test_invalid_regex_fails_only_its_pattern(engine):
    broken = Pattern(id="bad", name="Broken", regex="([a-z")
    result = engine.detect(SSN_TEXT, [broken, _ssn_pattern()])

    assert [m.pattern_id for m in result.matches] == ["ssn"]
    assert result.metadata["failed_patterns"] == ["bad"]


def test_matcher_selection(settings, vocabulary):
    engine = DetectionEngine(
        settings=settings, vocabulary=vocabulary, matchers=[MatcherKind.STRUCTURAL]
    )
    assert engine.detect(SSN_TEXT, [_ssn_pattern()]).matches == []


# ── Exclusions and thresholds ────────────────────────────────────────

def test_pattern_exclusions(engine):
    result = engine.detect(SSN_TEXT, [_ssn_pattern(excluded_examples=["123-45-6789"])])
    assert result.matches == []
    assert result.redacted_text == SSN_TEXT


def test_feedback_exclusions_apply_to_later_calls(engine):
    engine.feedback.exclude("ssn", "123-45-6789")
    assert engine.detect(SSN_TEXT, [_ssn_pattern()]).matches == []


def test_false_positive_reports_refine_after_threshold(engine):
    pattern = _ssn_pattern()
    for _ in range(2):
        engine.feedback.record_false_positive("ssn", "123-45-6789")
    assert len(engine.detect(SSN_TEXT, [pattern]).matches) == 1

    assert engine.feedback.record_false_positive("ssn", "123-45-6789")
    assert engine.detect(SSN_TEXT, [pattern]).matches == []


def test_pattern_threshold(engine):
    result = engine.detect(SSN_TEXT, [_ssn_pattern(confidence_threshold=0.99)])
    assert result.matches == []


# ── Relevant categories ──────────────────────────────────────────────

def test_relevant_tags_from_keywords_and_name(engine):
    assert engine.relevant_tags(_ssn_pattern()) == ["ssn"]
    assert engine.relevant_tags(_person_pattern()) == ["person_name"]


def test_relevant_tags_family_fallback(engine):
    assert engine.relevant_tags(Pattern(id="g", name="Generic", category="financial")) == [
        "credit_card"
    ]
    keyworded = Pattern(id="g", name="Generic", category="financial", context_keywords=["zzz"])
    assert engine.relevant_tags(keyworded) == []


def test_name_only_pattern_resolves_through_field_names(engine):
    first_name = Pattern(id="first", name="First Name", category="pii")
    assert engine.relevant_tags(first_name) == ["person_name"]


def test_family_fallback_skips_tags_claimed_by_other_patterns(engine):
    generic = Pattern(id="g", name="Generic", category="pii")
    claimed = engine.claimed_tags([generic, _ssn_pattern()])

    assert claimed == {"ssn"}
    assert "ssn" not in engine.relevant_tags(generic, claimed)
    assert "email" in engine.relevant_tags(generic, claimed)


def test_name_only_pattern_does_not_take_over_excluded_values(engine):
    text = "Contact: jane@example.com, SSN 123-45-6789"
    first_name = Pattern(id="first", name="First Name", category="pii")
    ssn = _ssn_pattern(excluded_examples=("123-45-6789",))

    result = engine.detect(text, [first_name, ssn])

    assert result.matches == []
    assert result.redacted_text == text


# ── External detector ────────────────────────────────────────────────

def test_external_entities_become_matches(vocabulary):
    start = MEETING_TEXT.index("John Smith")
    detector = FakeDetector([Entity("John Smith", "person", 0.9, start, start + 10)])
    engine = _engine_with(detector, vocabulary)

    result = engine.detect(MEETING_TEXT, [_person_pattern(), _ssn_pattern()])

    assert detector.calls == 1
    assert [m.text for m in result.matches] == ["John Smith"]
    assert result.matches[0].method == MatchMethod.EXTERNAL
    assert result.redacted_text == "Meeting with [REDACTED] tomorrow"
    assert result.metadata["external_entity_count"] == 1


def test_external_timeout_degrades_to_no_entities(vocabulary):
    engine = _engine_with(SlowDetector(), vocabulary, external_timeout_seconds=0.05)
    result = engine.detect(MEETING_TEXT, [_person_pattern()])

    assert result.matches == []
    assert result.metadata["external_entity_count"] == 0


def test_external_failure_degrades_to_no_entities(vocabulary):
    engine = _engine_with(BrokenDetector(), vocabulary)
    result = engine.detect(MEETING_TEXT, [_person_pattern()])

    assert result.matches == []
    assert result.redacted_text == MEETING_TEXT


def test_external_matcher_can_be_disabled(vocabulary):
    detector = FakeDetector([Entity("John Smith", "person", 0.9, 13, 23)])
    engine = DetectionEngine(
        settings=Settings(_env_file=None),
        vocabulary=vocabulary,
        entity_detector=detector,
        matchers=[MatcherKind.STRUCTURAL, MatcherKind.CONTEXT],
    )

    assert engine.detect(MEETING_TEXT, [_person_pattern()]).matches == []
    assert detector.calls == 0


def test_detect_async(engine):
    result = asyncio.run(engine.detect_async(SSN_TEXT, [_ssn_pattern()]))
    assert [m.text for m in result.matches] == ["123-45-6789"]


# ── Input handling ───────────────────────────────────────────────────

def test_empty_text_and_patterns(engine):
    empty = engine.detect("", [_ssn_pattern()])
    assert empty.matches == []
    assert empty.statistics.total_matches == 0

    no_patterns = engine.detect(SSN_TEXT, [])
    assert no_patterns.redacted_text == SSN_TEXT


def test_non_string_input_is_rejected(engine):
    with pytest.raises(ValidationError):
        engine.detect(None, [_ssn_pattern()])


def test_detect_text_success(engine):
    result = detect_text(SSN_TEXT, [_ssn_pattern()], engine=engine)
    assert result.redacted_text == "SSN: [REDACTED], phone 555-123-4567"


def test_detect_text_empty_input():
    result = detect_text("", [])
    assert result.metadata["error"] == "Empty input provided"


def test_detect_text_invalid_input():
    result = detect_text(12345, [])
    assert result.metadata["error"] == "Invalid input format"


@pytest.mark.parametrize("value", [0, [], None])
def test_detect_text_falsy_non_strings_are_invalid(value):
    result = detect_text(value, [])
    assert result.metadata["error"] == "Invalid input format"


def test_detect_text_reports_known_errors(engine, monkeypatch):
    def explode(*args, **kwargs):
        raise ConfigurationError("vocabulary vanished")

    monkeypatch.setattr(engine, "detect", explode)
    result = detect_text(SSN_TEXT, [_ssn_pattern()], engine=engine)

    assert result.redacted_text == SSN_TEXT
    assert result.metadata["status"] == "failed"
    assert result.metadata["error_type"] == "ConfigurationError"
