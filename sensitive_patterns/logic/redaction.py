# sensitive_patterns/logic/redaction.py

"""Redaction applier: rewrites text for an arbitrated match set."""

import logging
from typing import List, Optional, Sequence

from sensitive_patterns.core.definitions import PatternCategory, RedactionKind
from sensitive_patterns.core.domain import Match, RedactionStyle
from sensitive_patterns.core.exceptions import ValidationError
from sensitive_patterns.core.loader import Vocabulary, load_vocabulary
from sensitive_patterns.logic.validators import ValidationLogic

logger = logging.getLogger(__name__)

# Used when neither the category nor the pii family defines the kind
_FALLBACK_FORMATS = {
    RedactionKind.FULL: "[REDACTED]",
    RedactionKind.PARTIAL: "",
    RedactionKind.TOKEN: "[REDACTED-{index}]",
    RedactionKind.MASK: "****",
}


def available_styles(
    category: PatternCategory, vocabulary: Optional[Vocabulary] = None
) -> List[RedactionStyle]:
    """Returns the ordered style family for a category (first is the default)."""
    vocabulary = vocabulary or load_vocabulary()
    category = PatternCategory.parse(category)
    return [
        RedactionStyle(kind=entry["kind"], format=entry.get("format", ""))
        for entry in vocabulary.redaction_styles(category.value)
    ]


def default_style(
    category: PatternCategory, vocabulary: Optional[Vocabulary] = None
) -> RedactionStyle:
    styles = available_styles(category, vocabulary)
    if styles:
        return styles[0]
    return RedactionStyle(RedactionKind.FULL, _FALLBACK_FORMATS[RedactionKind.FULL])


def resolve_style(
    style: RedactionStyle,
    category: PatternCategory,
    vocabulary: Optional[Vocabulary] = None,
) -> RedactionStyle:
    """Fills an empty format from the category's style family."""
    if style.format:
        return style

    for family in (PatternCategory.parse(category), PatternCategory.PII):
        for candidate in available_styles(family, vocabulary):
            if candidate.kind == style.kind:
                return candidate

    return RedactionStyle(style.kind, _FALLBACK_FORMATS[style.kind])


def _partial(value: str, fmt: str) -> str:
    digits = ValidationLogic.digits(value)

    if fmt.upper().startswith("XXX-XX") and ValidationLogic.SSN_SHAPE.match(value.strip()):
        return "XXX-XX-" + digits[-4:]
    if fmt.startswith("****-****") and len(digits) >= 13:
        return "****-****-****-" + digits[-4:]

    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]


def _mask(value: str, fmt: str) -> str:
    if fmt == "****":
        return "*" * len(value)
    if "#" in fmt:
        return "#" * len(value)
    return fmt


def _token(fmt: str, index: int) -> str:
    if "{index}" in fmt:
        return fmt.replace("{index}", str(index))
    if fmt.endswith("]"):
        return f"{fmt[:-1]}-{index}]"
    return f"{fmt}-{index}"


def render_replacement(value: str, style: RedactionStyle, index: int) -> str:
    """Renders the replacement string for one matched value.

    Args:
        value: Matched text
        style: Resolved redaction style
        index: 1-based position of the match in left-to-right order

    Returns:
        Replacement text
    """
    if style.kind is RedactionKind.FULL:
        return style.format
    if style.kind is RedactionKind.PARTIAL:
        return _partial(value, style.format)
    if style.kind is RedactionKind.TOKEN:
        return _token(style.format, index)
    return _mask(value, style.format)


def apply_redactions(
    text: str,
    matches: Sequence[Match],
    style: Optional[RedactionStyle] = None,
    vocabulary: Optional[Vocabulary] = None,
) -> str:
    """Rewrites every matched span of ``text``.

    Tokens are numbered 1..n in left-to-right order of the original text
    while replacements are applied from the end backward, so earlier offsets
    stay valid. Each match uses its own category's default style unless a
    call-level ``style`` is given.

    Raises:
        ValidationError: If a match lies outside the text
    """
    vocabulary = vocabulary or load_vocabulary()

    for match in matches:
        if match.end > len(text):
            raise ValidationError(
                f"Match [{match.start}, {match.end}) exceeds text length {len(text)}"
            )

    ordered = sorted(matches, key=lambda m: m.start)
    replacements = []
    for index, match in enumerate(ordered, start=1):
        category = match.category or PatternCategory.CUSTOM
        if style is None:
            match_style = default_style(category, vocabulary)
        else:
            match_style = resolve_style(style, category, vocabulary)
        replacements.append(
            (match, render_replacement(text[match.start : match.end], match_style, index))
        )

    redacted = text
    for match, replacement in reversed(replacements):
        redacted = redacted[: match.start] + replacement + redacted[match.end :]

    logger.debug(
        "Redactions applied",
        extra={"match_count": len(ordered), "text_length": len(text)},
    )
    return redacted
