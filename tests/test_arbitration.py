"""Tests for exclusion filtering, thresholds and overlap arbitration."""

import pytest

from sensitive_patterns.core.definitions import MatchMethod
from sensitive_patterns.core.domain import Match
from sensitive_patterns.core.exceptions import ValidationError
from sensitive_patterns.logic.arbitration import (
    apply_thresholds,
    arbitrate,
    count_by_pattern,
    filter_excluded,
)


def _match(start, end, confidence, pattern_id="p", text=None, method=MatchMethod.REGEX):
    return Match(
        text=text if text is not None else "x" * (end - start),
        start=start,
        end=end,
        method=method,
        confidence=confidence,
        pattern_id=pattern_id,
    )


# ── Match construction ───────────────────────────────────────────────

def test_match_rejects_bad_offsets():
    with pytest.raises(ValidationError):
        _match(5, 5, 0.9)
    with pytest.raises(ValidationError):
        _match(-1, 3, 0.9)


def test_match_confidence_is_clamped():
    assert _match(0, 1, 1.5).confidence == 1.0
    assert _match(0, 1, -0.2).confidence == 0.0


# ── Arbitration ──────────────────────────────────────────────────────

def test_higher_confidence_overlap_replaces_kept_match():
    a = _match(0, 10, 0.9, "a")
    b = _match(5, 15, 0.95, "b")
    assert arbitrate([a, b]) == [b]


def test_equal_confidence_overlap_keeps_earlier_match():
    a = _match(0, 10, 0.9, "a")
    b = _match(5, 15, 0.9, "b")
    assert arbitrate([b, a]) == [a]


def test_longest_match_wins_at_same_start_and_confidence():
    short = _match(0, 5, 0.9, "short")
    long = _match(0, 10, 0.9, "long")
    assert arbitrate([short, long]) == [long]


def test_disjoint_matches_are_kept_in_order():
    first = _match(0, 3, 0.8)
    second = _match(5, 8, 0.7)
    assert arbitrate([second, first]) == [first, second]


def test_arbitrated_output_is_disjoint():
    candidates = [
        _match(0, 4, 0.9),
        _match(2, 6, 0.7),
        _match(3, 9, 0.95),
        _match(9, 12, 0.6),
        _match(10, 11, 0.99),
        _match(20, 25, 0.5),
    ]
    kept = arbitrate(candidates)

    for left, right in zip(kept, kept[1:]):
        assert left.end <= right.start


def test_arbitrate_empty():
    assert arbitrate([]) == []


# ── Exclusions and thresholds ────────────────────────────────────────

def test_excluded_text_is_dropped_for_its_pattern_only():
    ssn = _match(0, 11, 0.9, "ssn", text="123-45-6789")
    other = _match(20, 31, 0.9, "other", text="123-45-6789")

    kept = filter_excluded([ssn, other], {"ssn": {"123-45-6789"}})
    assert kept == [other]


def test_exclusions_are_case_sensitive():
    match = _match(0, 3, 0.9, "p", text="ABC")
    assert filter_excluded([match], {"p": {"abc"}}) == [match]


def test_thresholds_keep_equal_confidence():
    at = _match(0, 1, 0.7, "p")
    below = _match(2, 3, 0.69, "p")
    unknown = _match(4, 5, 0.1, "q")

    assert apply_thresholds([at, below, unknown], {"p": 0.7}) == [at, unknown]


def test_count_by_pattern():
    counts = count_by_pattern([_match(0, 1, 0.9, "a"), _match(2, 3, 0.9, "a"), _match(4, 5, 0.9, "b")])
    assert counts == {"a": 2, "b": 1}
