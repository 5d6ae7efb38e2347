# sensitive_patterns/core/exceptions.py

"""Custom exception hierarchy for the pattern detection engine.

This module defines the specific error types used throughout the package
to differentiate between configuration, initialization, pattern and runtime
errors.
"""

from typing import Optional


class DetectionError(Exception):
    """Base exception for all engine-specific errors."""

    pass


class ConfigurationError(DetectionError):
    """Raised when settings or vocabulary loading or validation fails."""

    pass


class InitializationError(DetectionError):
    """Raised when an external adapter or NLP model fails to initialize."""

    pass


class PatternError(DetectionError):
    """Raised when a pattern definition cannot be applied (e.g. invalid regex)."""

    def __init__(self, message: str, pattern_id: Optional[str] = None):
        super().__init__(message)
        self.pattern_id = pattern_id


class ExternalAdapterError(DetectionError):
    """Raised when the external entity adapter call fails."""

    pass


class ValidationError(DetectionError):
    """Raised on programmer errors such as invalid offsets or unknown styles."""

    pass
