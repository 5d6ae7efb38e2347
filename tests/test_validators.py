"""Tests for the category validators."""

import pytest

from sensitive_patterns.core.definitions import EntityCategory
from sensitive_patterns.logic.validators import (
    CreditCardValidator,
    ValidationLogic,
    get_validator,
)


# ── Luhn ─────────────────────────────────────────────────────────────

def test_luhn_accepts_valid_numbers():
    assert ValidationLogic.luhn_check("4111111111111111")
    assert ValidationLogic.luhn_check("79927398713")


def test_luhn_rejects_invalid_numbers():
    assert not ValidationLogic.luhn_check("4111111111111112")
    assert not ValidationLogic.luhn_check("4111-1111")


# ── SSN ──────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "value",
    ["000-12-3456", "666-12-3456", "912-12-3456", "123-00-4567", "123-45-0000"],
)
def test_ssn_rejects_reserved_numbers(value):
    assert not get_validator("ssn").validate(value)


def test_ssn_accepts_regular_number():
    validator = get_validator("ssn")
    assert validator.validate("123-45-6789")
    assert validator.validate("123 45 6789")
    assert validator.validate("123456789")


def test_ssn_rejects_wrong_shape():
    assert not get_validator("ssn").validate("12-345-6789")


# ── Credit cards ─────────────────────────────────────────────────────

def test_credit_card_requires_luhn():
    validator = CreditCardValidator()
    assert validator.validate("4111 1111 1111 1111")
    assert validator.validate("5500-0000-0000-0004")
    assert not validator.validate("4111 1111 1111 1112")


def test_credit_card_length_bounds():
    validator = CreditCardValidator()
    assert not validator.validate("4111 1111")
    assert not validator.validate("4111 1111 1111 1111 1111 1")


# ── Phone, email, date of birth ──────────────────────────────────────

def test_phone_area_and_exchange_rules():
    validator = get_validator("phone")
    assert validator.validate("(212) 555-0100")
    assert validator.validate("+1 212 555 0100")
    assert not validator.validate("555-123-4567")
    assert not validator.validate("012-555-0100")


def test_email_shape():
    validator = get_validator("email")
    assert validator.validate("alice@example.com")
    assert not validator.validate("alice@example")


def test_birth_date_calendar_and_year_range():
    validator = get_validator("date_of_birth")
    assert validator.validate("01/15/1990")
    assert validator.validate("1990-01-15")
    assert validator.validate("March 3, 1975")
    assert not validator.validate("02/30/1990")
    assert not validator.validate("01/15/1850")


def test_parse_date_returns_none_for_garbage():
    assert ValidationLogic.parse_date("not a date") is None


# ── Address shapes ───────────────────────────────────────────────────

def test_street_address_shape():
    assert ValidationLogic.is_street_address("123 Main Street")
    assert ValidationLogic.is_street_address("9 Elm St.")
    assert not ValidationLogic.is_street_address("Main Street")


def test_city_state_fragment():
    assert ValidationLogic.is_city_state("Springfield, IL")
    assert ValidationLogic.is_city_state("Portland, OR 97201")
    assert not ValidationLogic.is_city_state("Springfield")


# ── Factory ──────────────────────────────────────────────────────────

def test_get_validator_caches_instances():
    assert get_validator("email") is get_validator("email")


def test_get_validator_unknown_category():
    assert get_validator("passport") is None


def test_get_validator_is_keyed_by_category_tag():
    assert get_validator(EntityCategory.SSN) is get_validator("ssn")
    with pytest.raises(TypeError):
        get_validator("ssn", ["social security"])
