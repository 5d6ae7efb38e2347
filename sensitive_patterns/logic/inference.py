# sensitive_patterns/logic/inference.py

"""Regular-expression induction from pattern examples.

Shapes are tried in a fixed priority order and every step requires all
examples to pass. Street addresses are never generalized.
"""

import re
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from sensitive_patterns.core.definitions import EntityCategory
from sensitive_patterns.core.loader import Vocabulary, load_vocabulary
from sensitive_patterns.logic.validators import ValidationLogic, get_validator

logger = logging.getLogger(__name__)

SSN_REGEX = r"\b\d{3}[-.\s]?\d{2}[-.\s]?\d{4}\b"
PHONE_REGEX = r"(?<!\w)(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b"
EMAIL_REGEX = r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"
CARD_GENERIC_REGEX = r"\b\d(?:[-\s]?\d){12,18}\b"
DATE_REGEX = (
    r"\b(?:\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}"
    r"|\d{4}[-/.]\d{1,2}[-/.]\d{1,2}"
    r"|(?i:(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*)\.?\s+\d{1,2},?\s+\d{4})\b"
)

_PHONE_CHARS = re.compile(r"^\+?[\d\s\-().]+$")
_PHONE_DIGITS = re.compile(r"^\+?1?\d{10}$")
_CARD_CHARS = re.compile(r"^\d+(?:[-\s]\d+)*$")
_NUMERIC = re.compile(r"^\d+(?:[-.\s]\d+)*$")
_NUMERIC_SEPARATORS = re.compile(r"[-.\s]")

_TOKENS = re.compile(
    r"(?P<digit>\d+)"
    r"|(?P<upper>[A-Z]+(?![a-z]))"
    r"|(?P<capital>[A-Z][a-z]+)"
    r"|(?P<lower>[a-z]+)"
    r"|(?P<space>\s+)"
    r"|(?P<literal>.)",
    re.DOTALL,
)

_TOKEN_REGEX = {
    "digit": r"\d+",
    "upper": r"[A-Z]+",
    "capital": r"[A-Z][a-z]+",
    "lower": r"[a-z]+",
    "space": r"\s+",
}

_WORD_TOKENS = ("digit", "upper", "capital", "lower")

Token = Tuple[str, str]


def _clean(examples: Sequence[str]) -> List[str]:
    return [e.strip() for e in examples if e and e.strip()]


def is_address_example(example: str) -> bool:
    """True for street-address shaped values and ``City, ST`` fragments."""
    return ValidationLogic.is_street_address(example) or ValidationLogic.is_city_state(
        example
    )


def is_address_example_set(examples: Sequence[str]) -> bool:
    """True when any example looks like part of a postal address."""
    return any(is_address_example(e) for e in _clean(examples))


def _infer_ssn(samples: List[str]) -> Optional[str]:
    if all(ValidationLogic.SSN_SHAPE.match(s) for s in samples):
        return SSN_REGEX
    return None


def _infer_phone(samples: List[str]) -> Optional[str]:
    for s in samples:
        if not _PHONE_CHARS.match(s):
            return None
        cleaned = re.sub(r"[^\d+]", "", s)
        if not _PHONE_DIGITS.match(cleaned):
            return None
    return PHONE_REGEX


def _infer_email(samples: List[str]) -> Optional[str]:
    if all(ValidationLogic.EMAIL_SHAPE.match(s) for s in samples):
        return EMAIL_REGEX
    return None


def _infer_credit_card(samples: List[str]) -> Optional[str]:
    validator = get_validator(EntityCategory.CREDIT_CARD)
    if not all(_CARD_CHARS.match(s) and validator.validate(s) for s in samples):
        return None

    groupings = {tuple(len(g) for g in re.split(r"[-\s]", s)) for s in samples}
    if len(groupings) == 1:
        groups = groupings.pop()
        return r"\b" + r"[-\s]?".join(rf"\d{{{n}}}" for n in groups) + r"\b"
    return CARD_GENERIC_REGEX


def _infer_date(samples: List[str]) -> Optional[str]:
    if all(ValidationLogic.parse_date(s) is not None for s in samples):
        return DATE_REGEX
    return None


def _infer_numeric(samples: List[str]) -> Optional[str]:
    if not all(_NUMERIC.match(s) for s in samples):
        return None

    groupings = {
        tuple(len(g) for g in _NUMERIC_SEPARATORS.split(s)) for s in samples
    }
    if len(groupings) == 1:
        groups = groupings.pop()
        return r"\b" + r"[-.\s]?".join(rf"\d{{{n}}}" for n in groups) + r"\b"

    counts = [len(ValidationLogic.digits(s)) for s in samples]
    low, high = min(counts), max(counts)
    return rf"\b\d(?:[-.\s]?\d){{{low - 1},{high - 1}}}\b"


def tokenize(example: str) -> List[Token]:
    """Reduces an example to its structural token sequence."""
    tokens: List[Token] = []
    for m in _TOKENS.finditer(example):
        kind = m.lastgroup
        tokens.append((kind, m.group() if kind == "literal" else ""))
    return tokens


def _infer_structure(samples: List[str]) -> Optional[str]:
    if len(samples) < 2:
        return None

    sequences = {tuple(tokenize(s)) for s in samples}
    if len(sequences) != 1:
        return None

    tokens = sequences.pop()
    if not tokens:
        return None

    parts = [
        re.escape(value) if kind == "literal" else _TOKEN_REGEX[kind]
        for kind, value in tokens
    ]
    if tokens[0][0] in _WORD_TOKENS:
        parts.insert(0, r"\b")
    if tokens[-1][0] in _WORD_TOKENS:
        parts.append(r"\b")
    return "".join(parts)


# Priority order; the first shape that accepts every example wins
_SHAPES: List[Tuple[str, Callable[[List[str]], Optional[str]]]] = [
    (EntityCategory.SSN, _infer_ssn),
    (EntityCategory.PHONE, _infer_phone),
    (EntityCategory.EMAIL, _infer_email),
    (EntityCategory.CREDIT_CARD, _infer_credit_card),
    (EntityCategory.DOB, _infer_date),
    ("numeric", _infer_numeric),
    ("structural", _infer_structure),
]


def _matches_all(regex: str, samples: List[str]) -> bool:
    compiled = re.compile(regex)
    return all(compiled.fullmatch(s) for s in samples)


def classify_examples(examples: Sequence[str]) -> Tuple[Optional[str], Optional[str]]:
    """Finds the first shape that covers every example.

    Returns:
        Tuple of (shape name, regex). The shape is 'address' with a None regex
        for street addresses, and (None, None) when nothing fits.
    """
    samples = _clean(examples)
    if not samples:
        return None, None

    if all(ValidationLogic.is_street_address(s) for s in samples):
        return EntityCategory.ADDRESS, None

    for shape, infer in _SHAPES:
        regex = infer(samples)
        if regex and _matches_all(regex, samples):
            return shape, regex

    return None, None


def infer_regex(examples: Sequence[str]) -> Optional[str]:
    """Derives a regular expression covering all examples.

    Args:
        examples: Example strings; blank entries are ignored

    Returns:
        Regex string matching every example, or None
    """
    shape, regex = classify_examples(examples)
    if regex:
        logger.debug("Inferred regex", extra={"shape": shape, "regex": regex})
    return regex


def suggest_context_keywords(
    examples: Sequence[str],
    label: Optional[str] = None,
    vocabulary: Optional[Vocabulary] = None,
) -> List[str]:
    """Suggests clue words for a new pattern.

    The inferred shape of ``examples`` decides first, then any vocabulary key
    mentioned in the label, then generic personal-data words.
    """
    if vocabulary is None:
        vocabulary = load_vocabulary()

    shape, _ = classify_examples(examples)
    if shape:
        suggestions = vocabulary.keyword_suggestions(shape)
        if suggestions:
            return list(suggestions)

    if label:
        normalized = re.sub(r"[^a-z0-9]+", "_", label.lower())
        for key in (
            EntityCategory.SSN,
            EntityCategory.EMAIL,
            EntityCategory.PHONE,
            EntityCategory.ADDRESS,
            EntityCategory.CREDIT_CARD,
            EntityCategory.DOB,
            "medical",
            "financial",
        ):
            if key in normalized:
                return list(vocabulary.keyword_suggestions(key))

    return list(vocabulary.keyword_suggestions("pii"))
