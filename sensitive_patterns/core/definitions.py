# sensitive_patterns/core/definitions.py

"""Enumerations and constants shared by the detection engine."""

from enum import Enum


class PatternCategory(str, Enum):
    """Category families a user-authored pattern can belong to."""

    PII = "pii"
    FINANCIAL = "financial"
    MEDICAL = "medical"
    CLASSIFICATION = "classification"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: str) -> "PatternCategory":
        """Accepts enum members or case-insensitive names (e.g. 'PII')."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class MatchMethod(str, Enum):
    """Method that produced a candidate match."""

    REGEX = "regex"
    EXAMPLE = "example"
    CONTEXT = "context"
    FIELD = "field"
    EXTERNAL = "external"


class RedactionKind(str, Enum):
    """Supported redaction transformations."""

    FULL = "full"
    PARTIAL = "partial"
    TOKEN = "token"
    MASK = "mask"


class EntityCategory:
    """Tags of the built-in entity library used by the context and field matchers."""

    SSN = "ssn"
    EMAIL = "email"
    CREDIT_CARD = "credit_card"
    PHONE = "phone"
    DOB = "date_of_birth"
    ADDRESS = "address"
    PERSON_NAME = "person_name"

    ALL = (SSN, EMAIL, CREDIT_CARD, PHONE, DOB, ADDRESS, PERSON_NAME)


# Fixed match confidences for the structural matcher
REGEX_CONFIDENCE = 0.90
INFERRED_CONFIDENCE = 0.85
EXAMPLE_CONFIDENCE = 0.95

DEFAULT_PATTERN_THRESHOLD = 0.7

ADDRESS_LABEL = "address"
ADDRESS_EXTERNAL_MIN_CONFIDENCE = 0.8
