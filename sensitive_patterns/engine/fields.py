# sensitive_patterns/engine/fields.py

"""Field-aware matcher for ``Record N:`` / ``field: value`` text."""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sensitive_patterns.core.definitions import MatchMethod, PatternCategory
from sensitive_patterns.core.domain import Match
from sensitive_patterns.core.loader import Vocabulary
from sensitive_patterns.logic.validators import get_validator

logger = logging.getLogger(__name__)

RECORD_HEADER = re.compile(r"^\s*Record\s+(\w+)\s*:", re.IGNORECASE)
FIELD_LINE = re.compile(r"^\s*([A-Za-z][A-Za-z0-9 _.\-/]{0,49}?)\s*:[ \t]*(.*?)\s*$")
_LINES = re.compile(r"[^\r\n]+")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

_EMPTY_VALUES = {"", "null", "undefined"}
STRUCTURED_LINE_RATIO = 0.6


def is_structured_text(text: str) -> bool:
    """True for record-style documents.

    A document is structured when it has a ``Record N:`` header or more than
    60% of its non-empty lines are shaped ``field: value``.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return False
    if any(RECORD_HEADER.match(line) for line in lines):
        return True
    field_lines = sum(1 for line in lines if FIELD_LINE.match(line) and line.split(":", 1)[1].strip())
    return field_lines / len(lines) > STRUCTURED_LINE_RATIO


def normalize_field_name(name: str, aliases: Optional[Dict[str, str]] = None) -> str:
    """Lower-cases, collapses non-alphanumeric runs to '_' and applies aliases."""
    normalized = _NON_ALNUM.sub("_", name.lower()).strip("_")
    if aliases:
        return aliases.get(normalized, normalized)
    return normalized


@dataclass(frozen=True)
class FieldEntry:
    """One ``field: value`` line with the exact offsets of its value."""

    record: Optional[str]
    field_name: str
    normalized_name: str
    value: str
    start: int
    end: int


def parse_records(text: str, aliases: Optional[Dict[str, str]] = None) -> List[FieldEntry]:
    """Parses record headers and field lines; malformed lines are skipped."""
    entries: List[FieldEntry] = []
    record: Optional[str] = None

    for line_match in _LINES.finditer(text):
        line = line_match.group()
        offset = line_match.start()

        header = RECORD_HEADER.match(line)
        if header:
            record = header.group(1)
            continue

        field = FIELD_LINE.match(line)
        if not field:
            continue

        value = field.group(2)
        if value.lower() in _EMPTY_VALUES:
            continue

        entries.append(
            FieldEntry(
                record=record,
                field_name=field.group(1),
                normalized_name=normalize_field_name(field.group(1), aliases),
                value=value,
                start=offset + field.start(2),
                end=offset + field.end(2),
            )
        )

    return entries


class _FieldCategory:
    """Compiled view of one field category from the vocabulary."""

    def __init__(self, tag: str, spec: Dict[str, Any]) -> None:
        self.tag = tag
        self.name = spec.get("name", tag)
        self.family = spec.get("family", PatternCategory.PII.value)
        self.field_names = [re.compile(p, re.IGNORECASE) for p in spec.get("field_names", [])]
        self.value_pattern = re.compile(spec["value_pattern"]) if spec.get("value_pattern") else None
        self.tiers: List[Tuple[re.Pattern, float]] = [
            (re.compile(t["field_name"], re.IGNORECASE), float(t["confidence"]))
            for t in spec.get("tiers", [])
        ]
        self.default_confidence = float(spec.get("default_confidence", 0.85))

    def accepts_name(self, *names: str) -> bool:
        return any(p.search(n) for p in self.field_names for n in names)

    def accepts_value(self, value: str) -> bool:
        if self.value_pattern and not self.value_pattern.search(value):
            return False
        validator = get_validator(self.tag)
        return validator.validate(value) if validator else True

    def confidence(self, *names: str) -> float:
        for pattern, confidence in self.tiers:
            if any(pattern.search(n) for n in names):
                return confidence
        return self.default_confidence


class FieldAwareMatcher:
    """Matches structured values by their (normalized) field name.

    Each finding carries a human-readable reason as its label. Duplicate
    (record, field, value) findings keep the highest confidence.
    """

    def __init__(self, vocabulary: Vocabulary) -> None:
        self._aliases = vocabulary.field_aliases()
        self._categories = {
            tag: _FieldCategory(tag, spec)
            for tag, spec in vocabulary.field_categories().items()
        }

    @property
    def tags(self) -> List[str]:
        return list(self._categories)

    def display_name(self, tag: str) -> str:
        return self._categories[tag].name

    def tags_for_field(self, name: str) -> List[str]:
        """Category tags whose field names accept ``name`` as a field label."""
        normalized = normalize_field_name(name, self._aliases)
        if not normalized:
            return []
        return [
            tag for tag, category in self._categories.items()
            if category.accepts_name(name, normalized)
        ]

    def find(self, text: str, tags: Optional[Sequence[str]] = None) -> List[Match]:
        """Returns field matches for the given category tags (all when omitted)."""
        selected = [
            self._categories[t]
            for t in (tags if tags is not None else self._categories)
            if t in self._categories
        ]
        if not selected:
            return []

        best: Dict[Tuple[Optional[str], str, str], Match] = {}
        for entry in parse_records(text, self._aliases):
            for category in selected:
                if not category.accepts_name(entry.field_name, entry.normalized_name):
                    continue
                if not category.accepts_value(entry.value):
                    continue

                confidence = category.confidence(entry.field_name, entry.normalized_name)
                key = (entry.record, entry.normalized_name, entry.value)
                current = best.get(key)
                if current is not None and current.confidence >= confidence:
                    continue

                best[key] = Match(
                    text=entry.value,
                    start=entry.start,
                    end=entry.end,
                    method=MatchMethod.FIELD,
                    confidence=confidence,
                    category=PatternCategory.parse(category.family),
                    label=f"Field '{entry.field_name}' holds a {category.name}",
                )

        matches = sorted(best.values(), key=lambda m: m.start)
        logger.debug("Field matching complete", extra={"match_count": len(matches)})
        return matches
