# sensitive_patterns/core/domain.py

"""Domain models for patterns, matches and detection results."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from sensitive_patterns.core.definitions import (
    DEFAULT_PATTERN_THRESHOLD,
    MatchMethod,
    PatternCategory,
    RedactionKind,
)
from sensitive_patterns.core.exceptions import ValidationError


def clamp_confidence(value: float) -> float:
    """Clamps a confidence score into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


def _as_tuple(values: Optional[Sequence[str]]) -> Tuple[str, ...]:
    return tuple(values) if values else ()


@dataclass(frozen=True)
class Pattern:
    """User-authored definition of what to look for.

    Patterns are supplied by the persistence layer and treated as read-only
    for the duration of a detection call.

    Attributes:
        id: Stable identifier used for exclusion bookkeeping
        name: Display name (e.g. "Social Security Number")
        category: Category family of the pattern
        regex: Optional primary regular expression
        regex_patterns: Additional regular expressions
        examples: Example strings, used for exact matching and inference
        excluded_examples: Exact strings that must never be reported
        context_keywords: Clue words expected near true matches
        confidence_threshold: Minimum confidence for a candidate to survive
    """

    id: str
    name: str
    category: PatternCategory = PatternCategory.CUSTOM
    regex: Optional[str] = None
    regex_patterns: Tuple[str, ...] = ()
    examples: Tuple[str, ...] = ()
    excluded_examples: Tuple[str, ...] = ()
    context_keywords: Tuple[str, ...] = ()
    confidence_threshold: float = DEFAULT_PATTERN_THRESHOLD

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", PatternCategory.parse(self.category))
        for name in ("regex_patterns", "examples", "excluded_examples", "context_keywords"):
            object.__setattr__(self, name, _as_tuple(getattr(self, name)))
        object.__setattr__(
            self, "confidence_threshold", clamp_confidence(self.confidence_threshold)
        )

    @property
    def explicit_regexes(self) -> List[str]:
        """Primary regex followed by the additional ones, blanks removed."""
        regexes = [self.regex] if self.regex else []
        regexes.extend(r for r in self.regex_patterns if r)
        return regexes


@dataclass
class Match:
    """A candidate (or arbitrated) match of a pattern in the source text.

    Attributes:
        text: Matched text as it appears in the source
        start: Starting character offset (inclusive)
        end: Ending character offset (exclusive)
        method: Matcher that produced the candidate
        confidence: Confidence score, always clamped into [0, 1]
        pattern_id: Originating pattern identifier
        category: Category family of the originating pattern
        label: Short human-readable reason or entity label
    """

    text: str
    start: int
    end: int
    method: MatchMethod
    confidence: float
    pattern_id: Optional[str] = None
    category: Optional[PatternCategory] = None
    label: Optional[str] = None

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValidationError(
                f"Invalid match offsets [{self.start}, {self.end}) for {self.text!r}"
            )
        self.confidence = clamp_confidence(self.confidence)

    @property
    def length(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "Match") -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class Entity:
    """Entity reported by an external ML/NER collaborator."""

    value: str
    label: str
    confidence: float
    start: int
    end: int


@dataclass(frozen=True)
class RedactionStyle:
    """Redaction transformation applied to matched spans.

    An empty format is resolved from the category's style family.
    """

    kind: RedactionKind
    format: str = ""

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "kind", RedactionKind(self.kind))
        except ValueError as e:
            raise ValidationError(f"Unknown redaction kind: {self.kind!r}") from e


@dataclass
class DetectionStatistics:
    """Aggregate counts over the arbitrated match set."""

    total_matches: int = 0
    per_method_counts: Dict[str, int] = field(default_factory=dict)
    per_category_counts: Dict[str, int] = field(default_factory=dict)
    average_confidence: float = 0.0

    @classmethod
    def from_matches(cls, matches: Sequence[Match]) -> "DetectionStatistics":
        per_method = {method.value: 0 for method in MatchMethod}
        per_category: Dict[str, int] = {}

        for match in matches:
            per_method[match.method.value] += 1
            if match.category is not None:
                key = match.category.value
                per_category[key] = per_category.get(key, 0) + 1

        average = sum(m.confidence for m in matches) / len(matches) if matches else 0.0

        return cls(
            total_matches=len(matches),
            per_method_counts=per_method,
            per_category_counts=per_category,
            average_confidence=average,
        )


@dataclass
class DetectionResult:
    """Result object returned by the detection engine.

    Attributes:
        original_text: Input text
        redacted_text: Text with every arbitrated match rewritten
        matches: Arbitrated, interval-disjoint matches ordered by start
        statistics: Aggregate counts over ``matches``
        metadata: Additional processing information
    """

    original_text: str
    redacted_text: str
    matches: List[Match] = field(default_factory=list)
    statistics: DetectionStatistics = field(default_factory=DetectionStatistics)
    metadata: Dict[str, object] = field(default_factory=dict)
