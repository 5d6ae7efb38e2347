# sensitive_patterns/logic/validators.py

"""Format validators for the built-in sensitive entity categories."""

import re
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Dict, Optional

from sensitive_patterns.core.definitions import EntityCategory

logger = logging.getLogger(__name__)

_DATE_FORMATS = (
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%m.%d.%Y",
    "%m/%d/%y",
    "%m-%d-%y",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%B %d, %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%b %d %Y",
    "%b. %d, %Y",
)


class ValidationLogic:
    """Utility methods for validation algorithms."""

    # Pre-compiled regex patterns for performance
    NON_DIGIT = re.compile(r"[^0-9]")
    SSN_SHAPE = re.compile(r"^\d{3}[-.\s]?\d{2}[-.\s]?\d{4}$")
    EMAIL_SHAPE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
    STREET_ADDRESS_SHAPE = re.compile(
        r"^\d+\s+[A-Za-z]+(?:\s+[A-Za-z]+)*\s+"
        r"(?:Street|St|Avenue|Ave|Boulevard|Blvd|Road|Rd|Lane|Ln|Drive|Dr|"
        r"Court|Ct|Plaza|Pl|Way|Circle|Cir|Parkway|Pkwy|Highway|Hwy)\.?$",
        re.IGNORECASE,
    )
    CITY_STATE_SHAPE = re.compile(
        r"^[A-Za-z][A-Za-z .'-]*,\s*[A-Z]{2}(?:\s+\d{5}(?:-\d{4})?)?$"
    )

    @staticmethod
    def luhn_check(digits: str) -> bool:
        """Performs Modulus 10 (Luhn) checksum validation.

        Args:
            digits: Numeric string to validate

        Returns:
            True if checksum is valid
        """
        if not digits.isdigit():
            return False

        total = 0
        reverse_digits = digits[::-1]

        for i, digit in enumerate(reverse_digits):
            n = int(digit)
            if i % 2 == 1:
                n *= 2
                if n > 9:
                    n -= 9
            total += n

        return total % 10 == 0

    @staticmethod
    def digits(text: str) -> str:
        """Returns only the digit characters of ``text``."""
        return ValidationLogic.NON_DIGIT.sub("", text)

    @staticmethod
    def parse_date(text: str) -> Optional[date]:
        """Parses a calendar-valid date in one of the supported layouts.

        Returns:
            The parsed date, or None if no layout matches
        """
        candidate = " ".join(text.strip().split())
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(candidate, fmt).date()
            except ValueError:
                continue
        return None

    @staticmethod
    def is_plausible_birth_year(year: int) -> bool:
        return 1900 <= year <= date.today().year + 1

    @staticmethod
    def is_street_address(text: str) -> bool:
        return bool(ValidationLogic.STREET_ADDRESS_SHAPE.match(text.strip()))

    @staticmethod
    def is_city_state(text: str) -> bool:
        return bool(ValidationLogic.CITY_STATE_SHAPE.match(text.strip()))


class ValidatorStrategy(ABC):
    """Base class for category-specific validation strategies."""

    @abstractmethod
    def validate(self, text: str) -> bool:
        """Validates the format (and checksum, where one exists) of a value.

        Args:
            text: Candidate value to validate

        Returns:
            True if validation passes
        """
        pass


class SSNValidator(ValidatorStrategy):
    """Validator for US Social Security Numbers.

    Rejects area numbers 000, 666 and 900-999, group 00 and serial 0000.
    """

    def validate(self, text: str) -> bool:
        if not ValidationLogic.SSN_SHAPE.match(text.strip()):
            return False

        digits = ValidationLogic.digits(text)
        area, group, serial = digits[:3], digits[3:5], digits[5:]

        if area in ("000", "666") or int(area) >= 900:
            return False
        if group == "00":
            return False
        return serial != "0000"


class CreditCardValidator(ValidatorStrategy):
    """Validator for payment card numbers (13-19 digits, Luhn)."""

    ALLOWED = re.compile(r"^[\d\s-]+$")

    def validate(self, text: str) -> bool:
        if not self.ALLOWED.match(text.strip()):
            return False
        digits = ValidationLogic.digits(text)
        if not (13 <= len(digits) <= 19):
            return False
        return ValidationLogic.luhn_check(digits)


class PhoneValidator(ValidatorStrategy):
    """Validator for North American phone numbers.

    Area code and exchange must not start with 0 or 1.
    """

    ALLOWED = re.compile(r"^\+?[\d\s\-().]+$")

    def validate(self, text: str) -> bool:
        if not self.ALLOWED.match(text.strip()):
            return False

        digits = ValidationLogic.digits(text)
        if len(digits) == 11 and digits.startswith("1"):
            digits = digits[1:]
        if len(digits) != 10:
            return False

        return digits[0] not in "01" and digits[3] not in "01"


class EmailValidator(ValidatorStrategy):
    """Validator for email addresses."""

    def validate(self, text: str) -> bool:
        return bool(ValidationLogic.EMAIL_SHAPE.match(text.strip()))


class DateOfBirthValidator(ValidatorStrategy):
    """Validator for birth dates: calendar-valid with a plausible year."""

    def validate(self, text: str) -> bool:
        parsed = ValidationLogic.parse_date(text)
        if parsed is None:
            return False
        return ValidationLogic.is_plausible_birth_year(parsed.year)


class AddressValidator(ValidatorStrategy):
    """Validator for street address values in structured records."""

    def validate(self, text: str) -> bool:
        value = text.strip()
        if ValidationLogic.is_street_address(value):
            return True
        # "742 Evergreen Terrace, Springfield" style values
        return bool(re.search(r"\d", value)) and bool(re.search(r"[A-Za-z]{2,}", value))


class PersonNameValidator(ValidatorStrategy):
    """Validator for person names in structured records."""

    def validate(self, text: str) -> bool:
        words = text.split()
        if not words or len(words) > 5:
            return False
        return any(ch.isalpha() for ch in text)


# Cache for validator instances to avoid repeated construction
_validator_cache: Dict[str, ValidatorStrategy] = {}


def get_validator(category: str) -> Optional[ValidatorStrategy]:
    """Factory method to retrieve a category-specific validator.

    Uses caching to reuse validator instances (Flyweight pattern).

    Args:
        category: Entity category tag (e.g., 'ssn', 'credit_card')

    Returns:
        ValidatorStrategy instance or None if category not found
    """
    if category in _validator_cache:
        return _validator_cache[category]

    lookup = {
        EntityCategory.SSN: SSNValidator,
        EntityCategory.CREDIT_CARD: CreditCardValidator,
        EntityCategory.PHONE: PhoneValidator,
        EntityCategory.EMAIL: EmailValidator,
        EntityCategory.DOB: DateOfBirthValidator,
        EntityCategory.ADDRESS: AddressValidator,
        EntityCategory.PERSON_NAME: PersonNameValidator,
    }

    validator_class = lookup.get(category)

    if validator_class:
        instance = validator_class()
        _validator_cache[category] = instance
        return instance

    logger.warning(f"No validator found for category: {category}")
    return None
