# sensitive_patterns/engine/recognizers.py

"""Custom Presidio recognizers registered by the Presidio entity detector."""

import logging
from typing import Dict, List, Optional

from presidio_analyzer import EntityRecognizer, Pattern, PatternRecognizer

from sensitive_patterns.core.definitions import EntityCategory
from sensitive_patterns.core.loader import Vocabulary, load_vocabulary
from sensitive_patterns.logic.validators import ValidatorStrategy, get_validator

logger = logging.getLogger(__name__)

STREET_ADDRESS = "STREET_ADDRESS"
DATE_OF_BIRTH = "DATE_OF_BIRTH"


def build_patterns(entity_type: str, vocabulary: Vocabulary) -> List[Pattern]:
    """Creates Presidio Pattern objects from the vocabulary definitions."""
    definition = vocabulary.recognizer_definitions().get(entity_type, {})
    return [
        Pattern(name=p["name"], regex=p["regex"], score=p["score"])
        for p in definition.get("patterns", [])
    ]


def _context_words(entity_type: str, vocabulary: Vocabulary) -> List[str]:
    return list(vocabulary.recognizer_definitions().get(entity_type, {}).get("context", []))


class ValidatedPatternRecognizer(PatternRecognizer):
    """Pattern recognizer that rejects values failing a category validator."""

    def __init__(
        self,
        entity_type: str,
        category: str,
        vocabulary: Vocabulary,
        name: Optional[str] = None,
    ):
        self.validator: Optional[ValidatorStrategy] = get_validator(category)
        self.category = category

        super().__init__(
            supported_entity=entity_type,
            name=name or f"{entity_type.title().replace('_', '')}_Recognizer",
            patterns=build_patterns(entity_type, vocabulary),
            context=_context_words(entity_type, vocabulary),
        )

    def validate_result(self, pattern_text: str) -> Optional[bool]:
        # None keeps the pattern score so context words can still enhance it
        if not self.validator:
            return None
        if not self.validator.validate(pattern_text):
            logger.debug(f"{self.category} validation failed for candidate value")
            return False
        return None


def create_all_recognizers(vocabulary: Optional[Vocabulary] = None) -> List[EntityRecognizer]:
    """Create the extra recognizers added on top of Presidio's defaults."""
    vocabulary = vocabulary or load_vocabulary()
    recognizers: List[EntityRecognizer] = []

    mapping: Dict[str, str] = {
        STREET_ADDRESS: EntityCategory.ADDRESS,
        DATE_OF_BIRTH: EntityCategory.DOB,
    }

    for entity_type, category in mapping.items():
        if not build_patterns(entity_type, vocabulary):
            logger.warning(f"Skipping {entity_type} recognizer: No patterns found.")
            continue
        recognizers.append(ValidatedPatternRecognizer(entity_type, category, vocabulary))

    logger.info(f"Initialized {len(recognizers)} custom recognizers")
    return recognizers
