# sensitive_patterns/__init__.py

"""Sensitive pattern detection and redaction engine."""

from sensitive_patterns.core.definitions import (
    MatchMethod,
    PatternCategory,
    RedactionKind,
)
from sensitive_patterns.core.domain import (
    DetectionResult,
    DetectionStatistics,
    Entity,
    Match,
    Pattern,
    RedactionStyle,
)
from sensitive_patterns.core.exceptions import (
    ConfigurationError,
    DetectionError,
    ExternalAdapterError,
    InitializationError,
    PatternError,
    ValidationError,
)
from sensitive_patterns.core.loader import Vocabulary, load_vocabulary
from sensitive_patterns.engine.exclusions import FeedbackRecorder, InMemoryExclusionStore
from sensitive_patterns.engine.external import EntityDetector
from sensitive_patterns.logic.inference import infer_regex, suggest_context_keywords
from sensitive_patterns.logic.redaction import available_styles, default_style
from sensitive_patterns.service.config import Settings
from sensitive_patterns.service.pipeline import DetectionEngine, MatcherKind, detect_text

__all__ = [
    "ConfigurationError",
    "DetectionEngine",
    "DetectionError",
    "DetectionResult",
    "DetectionStatistics",
    "Entity",
    "EntityDetector",
    "ExternalAdapterError",
    "FeedbackRecorder",
    "InMemoryExclusionStore",
    "InitializationError",
    "Match",
    "MatchMethod",
    "MatcherKind",
    "Pattern",
    "PatternCategory",
    "PatternError",
    "RedactionKind",
    "RedactionStyle",
    "Settings",
    "ValidationError",
    "Vocabulary",
    "available_styles",
    "default_style",
    "detect_text",
    "infer_regex",
    "load_vocabulary",
    "suggest_context_keywords",
]
