# sensitive_patterns/service/pipeline.py

"""Main detection pipeline."""

import asyncio
import dataclasses
import logging
from enum import Enum
from typing import Collection, Dict, List, Optional, Sequence, Set

from sensitive_patterns.core.domain import (
    DetectionResult,
    DetectionStatistics,
    Entity,
    Match,
    Pattern,
    RedactionStyle,
)
from sensitive_patterns.core.exceptions import (
    DetectionError,
    PatternError,
    ValidationError,
)
from sensitive_patterns.core.loader import Vocabulary, load_vocabulary
from sensitive_patterns.engine.context import ContextAwareMatcher
from sensitive_patterns.engine.exclusions import (
    ExclusionStore,
    FeedbackRecorder,
    InMemoryExclusionStore,
)
from sensitive_patterns.engine.external import (
    AddressSimilarityScorer,
    EntityDetector,
    entities_to_matches,
    is_address_pattern,
)
from sensitive_patterns.engine.fields import FieldAwareMatcher, is_structured_text
from sensitive_patterns.engine.structural import StructuralMatcher
from sensitive_patterns.logic.arbitration import (
    apply_thresholds,
    arbitrate,
    count_by_pattern,
    filter_excluded,
)
from sensitive_patterns.logic.redaction import apply_redactions
from sensitive_patterns.service.config import Settings

logger = logging.getLogger(__name__)


class MatcherKind(str, Enum):
    """Independent candidate producers run for every pattern."""

    STRUCTURAL = "structural"
    CONTEXT = "context"
    FIELD = "field"
    ADDRESS_SIMILARITY = "address_similarity"
    EXTERNAL = "external"


class DetectionEngine:
    """Detects, arbitrates and redacts pattern matches in text.

    The engine is an explicit value: it owns its settings, vocabulary,
    matchers and collaborators, and keeps no state between detection calls
    other than what its exclusion store holds.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        vocabulary: Optional[Vocabulary] = None,
        entity_detector: Optional[EntityDetector] = None,
        exclusion_store: Optional[ExclusionStore] = None,
        matchers: Sequence[MatcherKind] = tuple(MatcherKind),
    ) -> None:
        """Initialize the detection engine.

        Args:
            settings: Engine settings; read from the environment when omitted
            vocabulary: Detection vocabulary; loaded from settings when omitted
            entity_detector: External ML/NER collaborator
            exclusion_store: Persistence collaborator for exclusions
            matchers: Matchers to run, in order

        Raises:
            ConfigurationError: If the vocabulary cannot be loaded
        """
        self.settings = settings or Settings()
        self.vocabulary = vocabulary or load_vocabulary(self.settings.vocabulary_path)
        self.matchers = tuple(MatcherKind(m) for m in matchers)

        self._structural = StructuralMatcher()
        self._context = ContextAwareMatcher(
            self.vocabulary,
            window=self.settings.context_window,
            threshold=self.settings.context_threshold,
            structured_threshold=self.settings.structured_context_threshold,
            structured_boost=self.settings.structured_field_boost,
            boost_cap=self.settings.structured_boost_cap,
        )
        self._fields = FieldAwareMatcher(self.vocabulary)
        self._address = AddressSimilarityScorer(
            self.vocabulary, threshold=self.settings.address_similarity_threshold
        )

        if entity_detector is None and self.settings.external_enabled:
            # Lazy import keeps Presidio and spaCy optional at import time
            from sensitive_patterns.engine.presidio_adapter import PresidioEntityDetector

            entity_detector = PresidioEntityDetector(
                spacy_model=self.settings.spacy_model,
                score_threshold=self.settings.external_score_threshold,
                vocabulary=self.vocabulary,
            )
        self.entity_detector = entity_detector

        self.exclusion_store = exclusion_store or InMemoryExclusionStore()
        self.feedback = FeedbackRecorder(
            self.exclusion_store, auto_refine_threshold=self.settings.auto_refine_threshold
        )

    def _named_tags(self, pattern: Pattern) -> List[str]:
        """Tags a pattern claims through its keywords or its name."""
        keywords = {k.strip().lower() for k in pattern.context_keywords if k.strip()}
        pattern_name = pattern.name.strip().lower()
        tags: List[str] = []

        for tag, category in self._context.categories.items():
            category_name = category.name.lower()
            if keywords & set(category.clues):
                tags.append(tag)
            elif pattern_name and (
                category_name in pattern_name
                or pattern_name in category_name
                or tag.replace("_", " ") in pattern_name
            ):
                tags.append(tag)

        if tags or keywords:
            return tags

        # Name-only patterns resolve like a field label ("First Name" -> person_name)
        return self._fields.tags_for_field(pattern.name)

    def claimed_tags(self, patterns: Sequence[Pattern]) -> Set[str]:
        """Tags claimed by keyword or name across one detection call."""
        claimed: Set[str] = set()
        for pattern in patterns:
            claimed.update(self._named_tags(pattern))
        return claimed

    def relevant_tags(
        self, pattern: Pattern, claimed: Collection[str] = ()
    ) -> List[str]:
        """Library categories whose findings are attributed to ``pattern``.

        A category is relevant when its clue words overlap the pattern's
        context keywords or its name and the pattern name mention each other.
        A name-only pattern is next resolved against the field-name table.
        Patterns without keywords, regexes or examples whose name resolves to
        nothing fall back to their category family, minus the ``claimed``
        tags that other patterns own by keyword or name.
        """
        tags = self._named_tags(pattern)
        if tags:
            return tags

        if pattern.context_keywords or pattern.explicit_regexes or pattern.examples:
            return []
        return [
            tag for tag in self.vocabulary.category_family(pattern.category.value)
            if tag not in claimed
        ]

    def _attribute(self, matches: List[Match], pattern: Pattern) -> List[Match]:
        return [
            dataclasses.replace(m, pattern_id=pattern.id, category=pattern.category)
            for m in matches
        ]

    def _run_matcher(
        self,
        kind: MatcherKind,
        text: str,
        pattern: Pattern,
        entities: List[Entity],
        tags: Sequence[str],
    ) -> List[Match]:
        """Dispatches one matcher for one pattern.

        Raises:
            PatternError: If the pattern cannot be applied
        """
        if kind is MatcherKind.STRUCTURAL:
            return self._structural.find(text, pattern)

        if kind is MatcherKind.CONTEXT:
            return self._attribute(self._context.find(text, tags), pattern) if tags else []

        if kind is MatcherKind.FIELD:
            return self._attribute(self._fields.find(text, tags), pattern) if tags else []

        if kind is MatcherKind.ADDRESS_SIMILARITY:
            if pattern.examples and is_address_pattern(pattern):
                return self._address.find(text, pattern)
            return []

        if kind is MatcherKind.EXTERNAL:
            return entities_to_matches(entities, pattern, text, self.vocabulary)

        raise ValidationError(f"Unknown matcher kind: {kind!r}")

    async def _external_entities(self, text: str) -> List[Entity]:
        """Calls the external detector once, bounded by the configured timeout.

        Failures and timeouts degrade to no entities.
        """
        if self.entity_detector is None or MatcherKind.EXTERNAL not in self.matchers:
            return []

        timeout = self.settings.external_timeout_seconds
        try:
            entities = await asyncio.wait_for(
                self.entity_detector.detect_entities(text), timeout=timeout
            )
            return list(entities or [])
        except asyncio.TimeoutError:
            logger.warning(
                "External entity detection timed out",
                extra={"timeout_seconds": timeout, "text_length": len(text)},
            )
        except Exception as e:
            logger.warning(
                f"External entity detection failed: {type(e).__name__}",
                exc_info=True,
                extra={"text_length": len(text)},
            )
        return []

    def _exclusions(self, patterns: Sequence[Pattern]) -> Dict[str, Set[str]]:
        return {
            p.id: set(p.excluded_examples) | set(self.exclusion_store.get_exclusions(p.id))
            for p in patterns
        }

    async def detect_async(
        self,
        text: str,
        patterns: Sequence[Pattern],
        style: Optional[RedactionStyle] = None,
    ) -> DetectionResult:
        """Runs every matcher, arbitrates the candidates and redacts the text.

        Args:
            text: Input text
            patterns: Pattern definitions, read-only for this call
            style: Redaction style for every match; per-category defaults when None

        Returns:
            DetectionResult with arbitrated matches, redacted text and statistics

        Raises:
            ValidationError: If ``text`` is not a string
        """
        if not isinstance(text, str):
            raise ValidationError(f"Invalid input type received: {type(text)}")

        if not text or not patterns:
            return DetectionResult(
                original_text=text,
                redacted_text=text,
                statistics=DetectionStatistics.from_matches([]),
                metadata={"pattern_count": len(patterns)},
            )

        logger.info(
            "Starting detection request",
            extra={"text_length": len(text), "pattern_count": len(patterns)},
        )

        entities = await self._external_entities(text)

        claimed = self.claimed_tags(patterns)
        candidates: List[Match] = []
        failed_patterns: List[str] = []
        for pattern in patterns:
            try:
                tags = self.relevant_tags(pattern, claimed)
                found: List[Match] = []
                for kind in self.matchers:
                    found.extend(self._run_matcher(kind, text, pattern, entities, tags))
            except PatternError as e:
                logger.error(
                    f"Skipping pattern with invalid definition: {e}",
                    exc_info=True,
                    extra={"pattern_id": pattern.id},
                )
                failed_patterns.append(pattern.id)
                continue
            candidates.extend(found)

        surviving = filter_excluded(candidates, self._exclusions(patterns))
        surviving = apply_thresholds(
            surviving, {p.id: p.confidence_threshold for p in patterns}
        )
        matches = arbitrate(surviving)

        redacted = apply_redactions(text, matches, style=style, vocabulary=self.vocabulary)
        statistics = DetectionStatistics.from_matches(matches)

        logger.info(
            "Detection completed",
            extra={
                "candidate_count": len(candidates),
                "match_count": statistics.total_matches,
                "failed_pattern_count": len(failed_patterns),
            },
        )

        return DetectionResult(
            original_text=text,
            redacted_text=redacted,
            matches=matches,
            statistics=statistics,
            metadata={
                "pattern_count": len(patterns),
                "candidate_count": len(candidates),
                "failed_patterns": failed_patterns,
                "structured": is_structured_text(text),
                "external_entity_count": len(entities),
                "per_pattern_counts": count_by_pattern(matches),
            },
        )

    def detect(
        self,
        text: str,
        patterns: Sequence[Pattern],
        style: Optional[RedactionStyle] = None,
    ) -> DetectionResult:
        """Synchronous wrapper around :meth:`detect_async`.

        Must not be called from inside a running event loop.
        """
        return asyncio.run(self.detect_async(text, patterns, style))


def detect_text(
    text: str,
    patterns: Sequence[Pattern],
    style: Optional[RedactionStyle] = None,
    engine: Optional[DetectionEngine] = None,
) -> DetectionResult:
    """Convenience entry point for one-off detection.

    Args:
        text: Input text to scan
        patterns: Pattern definitions
        style: Optional call-level redaction style
        engine: Engine to use; a default one is built when omitted

    Returns:
        DetectionResult. On failure, returns the unmodified text with the
        error described in metadata.
    """
    if not isinstance(text, str):
        logger.error(f"Invalid input type received: {type(text)}")
        return DetectionResult(
            original_text=str(text),
            redacted_text=str(text),
            metadata={"error": "Invalid input format"},
        )

    if not text:
        logger.warning("Empty text provided for detection")
        return DetectionResult(
            original_text="",
            redacted_text="",
            metadata={"error": "Empty input provided"},
        )

    try:
        engine = engine or DetectionEngine()
        return engine.detect(text, patterns, style)

    except DetectionError as e:
        # Known errors: log with context but keep internals out of the result
        logger.error(
            f"Known error during detection: {type(e).__name__}",
            exc_info=True,
            extra={"text_length": len(text)},
        )
        return DetectionResult(
            original_text=text,
            redacted_text=text,
            metadata={
                "error": "The detection service encountered a processing error.",
                "status": "failed",
                "error_type": type(e).__name__,
            },
        )
