# sensitive_patterns/engine/exclusions.py

"""Exclusion store and false-positive feedback recording."""

import logging
import threading
from typing import Any, Dict, Protocol, Tuple

from sensitive_patterns.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ExclusionStore(Protocol):
    """Persistence contract for per-pattern exclusions."""

    def append_exclusion(self, pattern_id: str, text: str) -> None:
        ...

    def get_exclusions(self, pattern_id: str) -> Tuple[str, ...]:
        ...


class InMemoryExclusionStore:
    """Append-only, de-duplicated exclusion storage.

    Appends are serialized by a lock and publish a fresh tuple per pattern,
    so readers always see a complete snapshot without locking.
    """

    def __init__(self) -> None:
        self._exclusions: Dict[str, Tuple[str, ...]] = {}
        self._lock = threading.Lock()

    def append_exclusion(self, pattern_id: str, text: str) -> None:
        """Adds an exact string that must never be reported for a pattern."""
        if not text:
            return

        with self._lock:
            current = self._exclusions.get(pattern_id, ())
            if text in current:
                return
            self._exclusions[pattern_id] = current + (text,)

        logger.info(
            "Exclusion added",
            extra={"pattern_id": pattern_id, "exclusion_count": len(current) + 1},
        )

    def get_exclusions(self, pattern_id: str) -> Tuple[str, ...]:
        return self._exclusions.get(pattern_id, ())

    def get_summary(self) -> Dict[str, Any]:
        """Returns store state summary for logging and debugging."""
        snapshot = dict(self._exclusions)
        return {
            "pattern_count": len(snapshot),
            "exclusion_count": sum(len(v) for v in snapshot.values()),
        }

    def __repr__(self):
        summary = self.get_summary()
        return (
            f"<InMemoryExclusionStore "
            f"patterns={summary['pattern_count']} "
            f"exclusions={summary['exclusion_count']}>"
        )


class FeedbackRecorder:
    """Turns user feedback into exclusions.

    ``exclude`` appends immediately. ``record_false_positive`` counts
    negative feedback per (pattern, text) and appends once the count
    reaches ``auto_refine_threshold``.
    """

    def __init__(self, store: ExclusionStore, auto_refine_threshold: int = 3) -> None:
        if auto_refine_threshold < 1:
            raise ConfigurationError("auto_refine_threshold must be at least 1")
        self._store = store
        self._threshold = auto_refine_threshold
        self._counts: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def exclude(self, pattern_id: str, text: str) -> None:
        self._store.append_exclusion(pattern_id, text)

    def record_false_positive(self, pattern_id: str, text: str) -> bool:
        """Records one false-positive report.

        Reports for a value that is already excluded are ignored. A counter
        is dropped once it has been turned into an exclusion.

        Returns:
            True if this report turned the text into an exclusion
        """
        if text in self._store.get_exclusions(pattern_id):
            return False

        key = (pattern_id, text)
        with self._lock:
            count = self._counts.get(key, 0) + 1
            refined = count >= self._threshold
            if refined:
                self._counts.pop(key, None)
            else:
                self._counts[key] = count

        logger.debug(
            "False positive recorded",
            extra={"pattern_id": pattern_id, "report_count": count},
        )

        if refined:
            self._store.append_exclusion(pattern_id, text)
            logger.info(
                "Auto-refinement excluded value",
                extra={"pattern_id": pattern_id, "report_count": count},
            )
        return refined

    def report_count(self, pattern_id: str, text: str) -> int:
        """Pending reports for a value that is not yet excluded."""
        with self._lock:
            return self._counts.get((pattern_id, text), 0)
