# sensitive_patterns/logic/arbitration.py

"""Exclusion filtering and overlap arbitration of candidate matches."""

import logging
from typing import Collection, Dict, Iterable, List, Mapping

from sensitive_patterns.core.domain import Match

logger = logging.getLogger(__name__)


def filter_excluded(
    candidates: Iterable[Match], exclusions: Mapping[str, Collection[str]]
) -> List[Match]:
    """Drops candidates whose text exactly equals an excluded example.

    Args:
        candidates: Raw candidate matches
        exclusions: Excluded strings keyed by pattern id (case-sensitive)

    Returns:
        Candidates that survived the filter, in input order
    """
    kept: List[Match] = []
    for candidate in candidates:
        excluded = exclusions.get(candidate.pattern_id or "", ())
        if candidate.text in excluded:
            logger.debug(
                "Dropping excluded candidate",
                extra={"pattern_id": candidate.pattern_id, "method": candidate.method.value},
            )
            continue
        kept.append(candidate)
    return kept


def apply_thresholds(
    candidates: Iterable[Match], thresholds: Mapping[str, float]
) -> List[Match]:
    """Drops candidates below their pattern's confidence threshold."""
    return [
        c
        for c in candidates
        if c.confidence >= thresholds.get(c.pattern_id or "", 0.0)
    ]


def arbitrate(candidates: Iterable[Match]) -> List[Match]:
    """Resolves overlapping candidates into an interval-disjoint set.

    Candidates are ordered by start ascending, confidence descending and
    length descending; the sort is stable so input order breaks exact ties.
    A greedy sweep keeps a candidate unless it overlaps the most recently
    kept one, which it replaces only on strictly higher confidence.

    Returns:
        Disjoint matches ordered by start
    """
    ordered = sorted(candidates, key=lambda m: (m.start, -m.confidence, -m.length))

    kept: List[Match] = []
    for candidate in ordered:
        if kept and candidate.overlaps(kept[-1]):
            if candidate.confidence > kept[-1].confidence:
                kept[-1] = candidate
            continue
        kept.append(candidate)

    return kept


def count_by_pattern(matches: Iterable[Match]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for match in matches:
        key = match.pattern_id or ""
        counts[key] = counts.get(key, 0) + 1
    return counts
