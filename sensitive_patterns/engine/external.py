# sensitive_patterns/engine/external.py

"""Boundary to external entity detectors plus the address similarity fallback."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple

from sensitive_patterns.core.definitions import (
    ADDRESS_EXTERNAL_MIN_CONFIDENCE,
    ADDRESS_LABEL,
    MatchMethod,
)
from sensitive_patterns.core.domain import Entity, Match, Pattern
from sensitive_patterns.core.loader import Vocabulary
from sensitive_patterns.logic.inference import is_address_example_set

logger = logging.getLogger(__name__)


class EntityDetector(Protocol):
    """Contract for an external ML/NER entity detection capability."""

    async def detect_entities(self, text: str) -> List[Entity]:
        ...


def is_address_pattern(pattern: Pattern) -> bool:
    """Address patterns mention 'address' in their name or have address examples."""
    return "address" in pattern.name.lower() or is_address_example_set(pattern.examples)


def is_relevant(entity: Entity, pattern: Pattern, vocabulary: Vocabulary) -> bool:
    """Decides whether an external entity belongs to a pattern.

    Address patterns only accept confident 'address' entities. Other
    patterns accept labels mapped to their category, or labels equal to
    the pattern name.
    """
    label = entity.label.lower()

    if is_address_pattern(pattern):
        return label == ADDRESS_LABEL and entity.confidence > ADDRESS_EXTERNAL_MIN_CONFIDENCE

    if pattern.category.value in vocabulary.label_categories(label):
        return True
    return label == pattern.name.strip().lower()


def entities_to_matches(
    entities: Sequence[Entity], pattern: Pattern, text: str, vocabulary: Vocabulary
) -> List[Match]:
    """Converts relevant entities into external matches for ``pattern``.

    Entities with offsets outside the text are dropped with a warning.
    """
    matches: List[Match] = []
    for entity in entities:
        if not is_relevant(entity, pattern, vocabulary):
            continue
        if entity.start < 0 or entity.end <= entity.start or entity.end > len(text):
            logger.warning(
                "Discarding external entity with invalid offsets",
                extra={"label": entity.label, "start": entity.start, "end": entity.end},
            )
            continue
        matches.append(
            Match(
                text=text[entity.start : entity.end],
                start=entity.start,
                end=entity.end,
                method=MatchMethod.EXTERNAL,
                confidence=entity.confidence,
                pattern_id=pattern.id,
                category=pattern.category,
                label=entity.label,
            )
        )
    return matches


@dataclass(frozen=True)
class Chunk:
    """A sentence, clause or line of the source text with its offsets."""

    text: str
    start: int
    end: int


_SENTENCE_BREAK = re.compile(r"(?<=[.!?;])\s+|[\r\n]+")
_LINE = re.compile(r"[^\r\n]+")
_DIGIT = re.compile(r"\d")
_WORD = re.compile(r"[A-Za-z]+")
_LEADING_NUMBER_WORD = re.compile(r"^\d+\s+[A-Za-z]+")
_TRAILING_CITY_STATE = re.compile(
    r",\s*[A-Za-z][A-Za-z .'-]*,?\s*[A-Z]{2}(?:\s+\d{5}(?:-\d{4})?)?\s*$"
)
_TRIM = " \t.,;:!?"


def _trimmed(text: str, start: int, end: int) -> Optional[Chunk]:
    segment = text[start:end]
    stripped_left = len(segment) - len(segment.lstrip(_TRIM))
    stripped = segment.strip(_TRIM)
    if not stripped:
        return None
    chunk_start = start + stripped_left
    return Chunk(text=stripped, start=chunk_start, end=chunk_start + len(stripped))


def split_chunks(text: str) -> List[Chunk]:
    """Splits text into sentence/clause chunks and individual lines."""
    chunks: List[Chunk] = []
    seen = set()

    boundaries = [0]
    for m in _SENTENCE_BREAK.finditer(text):
        boundaries.extend((m.start(), m.end()))
    boundaries.append(len(text))
    spans = [(boundaries[i], boundaries[i + 1]) for i in range(0, len(boundaries) - 1, 2)]
    spans.extend((m.start(), m.end()) for m in _LINE.finditer(text))

    for start, end in spans:
        chunk = _trimmed(text, start, end)
        if chunk and (chunk.start, chunk.end) not in seen:
            seen.add((chunk.start, chunk.end))
            chunks.append(chunk)

    return sorted(chunks, key=lambda c: (c.start, c.end))


class AddressSimilarityScorer:
    """Scores text chunks against address examples.

    Runs independently of any external detector, for address patterns that
    carry examples. Accepted chunks become external matches labelled with the
    scoring reason.
    """

    def __init__(self, vocabulary: Vocabulary, threshold: float = 0.7) -> None:
        self.threshold = threshold
        self._keywords = {k.lower() for k in vocabulary.address_vocabulary("keywords")}
        self._openers = [re.compile(p) for p in vocabulary.address_vocabulary("non_address_openers")]

    def _is_candidate(self, chunk: str) -> bool:
        return not any(p.search(chunk) for p in self._openers)

    def _has_keyword(self, text: str) -> bool:
        return any(w.lower() in self._keywords for w in _WORD.findall(text))

    def score(self, chunk: str, example: str) -> Tuple[float, List[str]]:
        """Scores one chunk against one example.

        Returns:
            Tuple of (score capped at 1.0, reasons)
        """
        score = 0.0
        reasons: List[str] = []

        if _DIGIT.search(chunk) and _DIGIT.search(example):
            score += 0.2
            reasons.append("numbers")
        if self._has_keyword(chunk) and self._has_keyword(example):
            score += 0.4
            reasons.append("street keywords")
        if _TRAILING_CITY_STATE.search(chunk) and _TRAILING_CITY_STATE.search(example):
            score += 0.3
            reasons.append("city/state")
        if _LEADING_NUMBER_WORD.match(chunk) and _LEADING_NUMBER_WORD.match(example):
            score += 0.3
            reasons.append("number and street name")

        chunk_words = len(chunk.split())
        example_words = len(example.split())
        longest = max(chunk_words, example_words)
        if longest:
            similarity = 1.0 - abs(chunk_words - example_words) / longest
            score += 0.2 * similarity
            if similarity > 0.5:
                reasons.append("similar length")

        return min(score, 1.0), reasons

    def find(self, text: str, pattern: Pattern) -> List[Match]:
        examples = [e.strip() for e in pattern.examples if e and e.strip()]
        if not examples:
            return []

        matches: List[Match] = []
        for chunk in split_chunks(text):
            if not self._is_candidate(chunk.text):
                continue

            best_score, best_reasons, best_example = 0.0, [], ""
            for example in examples:
                score, reasons = self.score(chunk.text, example)
                if score > best_score:
                    best_score, best_reasons, best_example = score, reasons, example

            if best_score > self.threshold:
                matches.append(
                    Match(
                        text=chunk.text,
                        start=chunk.start,
                        end=chunk.end,
                        method=MatchMethod.EXTERNAL,
                        confidence=best_score,
                        pattern_id=pattern.id,
                        category=pattern.category,
                        label=(
                            f"Similar to address example '{best_example}' "
                            f"({', '.join(best_reasons)})"
                        ),
                    )
                )

        logger.debug(
            "Address similarity complete",
            extra={"pattern_id": pattern.id, "match_count": len(matches)},
        )
        return matches
