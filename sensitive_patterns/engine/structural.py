# sensitive_patterns/engine/structural.py

"""Structural matcher: explicit regexes, inferred regexes and exact examples."""

import logging
import re
from functools import lru_cache
from typing import List

from sensitive_patterns.core.definitions import (
    EXAMPLE_CONFIDENCE,
    INFERRED_CONFIDENCE,
    REGEX_CONFIDENCE,
    MatchMethod,
)
from sensitive_patterns.core.domain import Match, Pattern
from sensitive_patterns.core.exceptions import PatternError
from sensitive_patterns.logic.inference import infer_regex, is_address_example_set

logger = logging.getLogger(__name__)


@lru_cache(maxsize=512)
def _compile(regex: str, flags: int) -> re.Pattern:
    return re.compile(regex, flags)


def compile_pattern_regex(regex: str, pattern_id: str, flags: int = 0) -> re.Pattern:
    """Compiles a pattern regex, raising PatternError when it is invalid."""
    try:
        return _compile(regex, flags)
    except re.error as e:
        raise PatternError(f"Invalid regex {regex!r}: {e}", pattern_id=pattern_id) from e


class StructuralMatcher:
    """Finds candidates from a pattern's own regexes and examples.

    Address-classified example sets are never generalized into a regex;
    only their exact occurrences (and explicit regexes) are reported.
    """

    def find(self, text: str, pattern: Pattern) -> List[Match]:
        """Runs every structural path of ``pattern`` over ``text``.

        Raises:
            PatternError: If an explicit regex does not compile
        """
        matches: List[Match] = []
        explicit = pattern.explicit_regexes

        for regex in explicit:
            compiled = compile_pattern_regex(regex, pattern.id, re.IGNORECASE)
            matches.extend(
                self._scan(compiled, text, pattern, MatchMethod.REGEX, REGEX_CONFIDENCE, "regex")
            )

        examples = [e for e in pattern.examples if e and e.strip()]
        if not examples:
            return matches

        if not explicit and not is_address_example_set(examples):
            inferred = infer_regex(examples)
            if inferred:
                compiled = compile_pattern_regex(inferred, pattern.id)
                matches.extend(
                    self._scan(
                        compiled, text, pattern, MatchMethod.EXAMPLE, INFERRED_CONFIDENCE, "inferred"
                    )
                )

        for example in examples:
            compiled = _compile(re.escape(example), re.IGNORECASE)
            matches.extend(
                self._scan(compiled, text, pattern, MatchMethod.EXAMPLE, EXAMPLE_CONFIDENCE, "example")
            )

        logger.debug(
            "Structural matching complete",
            extra={"pattern_id": pattern.id, "candidate_count": len(matches)},
        )
        return matches

    @staticmethod
    def _scan(
        compiled: re.Pattern,
        text: str,
        pattern: Pattern,
        method: MatchMethod,
        confidence: float,
        label: str,
    ) -> List[Match]:
        found = []
        for m in compiled.finditer(text):
            # Zero-width matches carry nothing to redact
            if m.end() <= m.start():
                continue
            found.append(
                Match(
                    text=m.group(),
                    start=m.start(),
                    end=m.end(),
                    method=method,
                    confidence=confidence,
                    pattern_id=pattern.id,
                    category=pattern.category,
                    label=label,
                )
            )
        return found
