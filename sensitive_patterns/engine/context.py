# sensitive_patterns/engine/context.py

"""Context-aware matcher over the built-in sensitive entity library.

Each library category is plain data from the vocabulary (value-shape regex,
clue words, conflicting clue words, optional field-label regex). Confidence
is computed by a pure function per category, looked up in ``CONFIDENCE_RULES``.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sensitive_patterns.core.definitions import EntityCategory, MatchMethod, PatternCategory
from sensitive_patterns.core.domain import Match, clamp_confidence
from sensitive_patterns.core.loader import Vocabulary
from sensitive_patterns.engine.fields import is_structured_text
from sensitive_patterns.logic.validators import get_validator

logger = logging.getLogger(__name__)

OWN = "own"
CONFLICTING = "conflicting"

_TRAILING_LOCATION = re.compile(
    r"^\s*,?\s*[A-Za-z][A-Za-z .'-]*,\s*[A-Z]{2}\b(?:\s+\d{5}(?:-\d{4})?)?"
)


def _clue_regex(clue: str) -> re.Pattern:
    return re.compile(r"(?<![a-z0-9])" + re.escape(clue.lower()) + r"(?![a-z0-9])")


@dataclass(frozen=True)
class ContextCategory:
    """Compiled library entry for one entity category."""

    tag: str
    name: str
    family: str
    value_pattern: re.Pattern
    clues: Tuple[str, ...]
    conflicting_clues: Tuple[str, ...]
    label_pattern: Optional[re.Pattern]

    @classmethod
    def from_spec(cls, tag: str, spec: Dict[str, Any]) -> "ContextCategory":
        label = spec.get("label_pattern")
        return cls(
            tag=tag,
            name=spec.get("name", tag),
            family=spec.get("family", PatternCategory.PII.value),
            value_pattern=re.compile(spec["value_pattern"]),
            clues=tuple(c.lower() for c in spec.get("clues", [])),
            conflicting_clues=tuple(c.lower() for c in spec.get("conflicting_clues", [])),
            label_pattern=re.compile(label) if label else None,
        )


@dataclass(frozen=True)
class Evidence:
    """What the window around one candidate says about it.

    Attributes:
        value: Candidate text
        before: Window text preceding the candidate
        after: Window text following the candidate
        nearest: OWN, CONFLICTING or None (no clue in the window)
        labelled: A field label for the category directly precedes the value
        false_positive: Candidate is a known non-sensitive phrase
    """

    value: str
    before: str
    after: str
    nearest: Optional[str]
    labelled: bool
    false_positive: bool = False


def _find_nearest(
    window: str, clues: Sequence[re.Pattern], from_end: bool
) -> Optional[int]:
    best: Optional[int] = None
    for clue in clues:
        for m in clue.finditer(window):
            distance = len(window) - m.end() if from_end else m.start()
            if best is None or distance < best:
                best = distance
    return best


def nearest_clue(
    before: str,
    after: str,
    own: Sequence[re.Pattern],
    conflicting: Sequence[re.Pattern],
) -> Optional[str]:
    """Decides between own and conflicting clues by proximity.

    Before-context clues are considered first, then after-context clues.
    Equal distances prefer the category's own clue.
    """
    for window, from_end in ((before.lower(), True), (after.lower(), False)):
        own_distance = _find_nearest(window, own, from_end)
        conflict_distance = _find_nearest(window, conflicting, from_end)
        if own_distance is None and conflict_distance is None:
            continue
        if conflict_distance is None:
            return OWN
        if own_distance is None:
            return CONFLICTING
        return OWN if own_distance <= conflict_distance else CONFLICTING
    return None


def _ssn_confidence(ev: Evidence) -> float:
    if ev.labelled:
        return 0.97
    if ev.nearest == OWN:
        return 0.95
    if ev.nearest == CONFLICTING:
        return 0.2
    return 0.6 if get_validator(EntityCategory.SSN).validate(ev.value) else 0.1


def _email_confidence(ev: Evidence) -> float:
    if ev.labelled:
        return 0.98
    if ev.nearest == OWN:
        return 0.9
    if ev.nearest == CONFLICTING:
        return 0.2
    return 0.7 if get_validator(EntityCategory.EMAIL).validate(ev.value) else 0.3


def _credit_card_confidence(ev: Evidence) -> float:
    if ev.nearest == CONFLICTING and not ev.labelled:
        return 0.2
    if get_validator(EntityCategory.CREDIT_CARD).validate(ev.value):
        if ev.labelled:
            return 0.99
        return 0.98 if ev.nearest == OWN else 0.7
    return 0.5 if ev.labelled or ev.nearest == OWN else 0.3


def _phone_confidence(ev: Evidence) -> float:
    if ev.labelled:
        return 0.95
    if ev.nearest == OWN:
        return 0.9
    if ev.nearest == CONFLICTING:
        return 0.2
    return 0.55 if get_validator(EntityCategory.PHONE).validate(ev.value) else 0.3


def _date_of_birth_confidence(ev: Evidence) -> float:
    plausible = get_validator(EntityCategory.DOB).validate(ev.value)
    if ev.labelled:
        return 0.95 if plausible else 0.7
    if ev.nearest == OWN:
        return 0.9 if plausible else 0.7
    if ev.nearest == CONFLICTING:
        return 0.2
    return 0.6 if plausible else 0.3


def _address_confidence(ev: Evidence) -> float:
    if ev.labelled:
        return 0.95
    if ev.nearest == CONFLICTING:
        return 0.2
    if _TRAILING_LOCATION.match(ev.after):
        return 0.92
    if ev.nearest == OWN:
        return 0.9
    return 0.6


def _person_name_confidence(ev: Evidence) -> float:
    if ev.false_positive:
        return 0.1
    if ev.labelled:
        return 0.95
    if ev.nearest == CONFLICTING:
        return 0.2
    if ev.nearest == OWN:
        return 0.9
    return 0.6


CONFIDENCE_RULES: Dict[str, Callable[[Evidence], float]] = {
    EntityCategory.SSN: _ssn_confidence,
    EntityCategory.EMAIL: _email_confidence,
    EntityCategory.CREDIT_CARD: _credit_card_confidence,
    EntityCategory.PHONE: _phone_confidence,
    EntityCategory.DOB: _date_of_birth_confidence,
    EntityCategory.ADDRESS: _address_confidence,
    EntityCategory.PERSON_NAME: _person_name_confidence,
}


class ContextAwareMatcher:
    """Scores library value shapes by the clue words around them.

    Args:
        vocabulary: Source of the category library
        window: Characters inspected on each side of a candidate
        threshold: Acceptance threshold for free text
        structured_threshold: Acceptance threshold for record-style text
        structured_boost: Confidence added when the candidate's line names it
        boost_cap: Upper bound for boosted confidences
    """

    def __init__(
        self,
        vocabulary: Vocabulary,
        window: int = 50,
        threshold: float = 0.5,
        structured_threshold: float = 0.3,
        structured_boost: float = 0.2,
        boost_cap: float = 0.95,
    ) -> None:
        self.window = window
        self.threshold = threshold
        self.structured_threshold = structured_threshold
        self.structured_boost = structured_boost
        self.boost_cap = boost_cap

        self._categories: Dict[str, ContextCategory] = {}
        for tag, spec in vocabulary.context_categories().items():
            if tag not in CONFIDENCE_RULES:
                logger.warning(f"Skipping context category without confidence rule: {tag}")
                continue
            self._categories[tag] = ContextCategory.from_spec(tag, spec)

        self._own = {
            tag: [_clue_regex(c) for c in cat.clues] for tag, cat in self._categories.items()
        }
        self._conflicting = {
            tag: [_clue_regex(c) for c in cat.conflicting_clues]
            for tag, cat in self._categories.items()
        }
        self._false_positives = {p.lower() for p in vocabulary.name_false_positives()}

    @property
    def categories(self) -> Dict[str, ContextCategory]:
        return dict(self._categories)

    def find(self, text: str, tags: Optional[Sequence[str]] = None) -> List[Match]:
        """Returns context matches for the given category tags (all when omitted).

        Matches are labelled with the category tag and are not deduplicated.
        """
        structured = is_structured_text(text)
        threshold = self.structured_threshold if structured else self.threshold

        selected = [
            self._categories[t]
            for t in (tags if tags is not None else self._categories)
            if t in self._categories
        ]

        matches: List[Match] = []
        for category in selected:
            for m in category.value_pattern.finditer(text):
                if m.end() <= m.start():
                    continue
                confidence = self._score(text, m.start(), m.end(), category, structured)
                if confidence > threshold:
                    matches.append(
                        Match(
                            text=m.group(),
                            start=m.start(),
                            end=m.end(),
                            method=MatchMethod.CONTEXT,
                            confidence=confidence,
                            category=PatternCategory.parse(category.family),
                            label=category.tag,
                        )
                    )

        logger.debug(
            "Context matching complete",
            extra={"match_count": len(matches), "structured": structured},
        )
        return matches

    def _score(
        self, text: str, start: int, end: int, category: ContextCategory, structured: bool
    ) -> float:
        value = text[start:end]
        before = text[max(0, start - self.window) : start]
        after = text[end : end + self.window]

        evidence = Evidence(
            value=value,
            before=before,
            after=after,
            nearest=nearest_clue(
                before, after, self._own[category.tag], self._conflicting[category.tag]
            ),
            labelled=bool(category.label_pattern and category.label_pattern.search(before)),
            false_positive=value.lower() in self._false_positives,
        )
        confidence = CONFIDENCE_RULES[category.tag](evidence)

        if structured:
            line_start = text.rfind("\n", 0, start) + 1
            line_prefix = text[line_start:start].lower()
            if any(clue.search(line_prefix) for clue in self._own[category.tag]):
                confidence = max(confidence, min(self.boost_cap, confidence + self.structured_boost))

        return clamp_confidence(confidence)
