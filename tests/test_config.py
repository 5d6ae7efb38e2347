"""Tests for settings loading and validation."""

import pydantic
import pytest

from sensitive_patterns.service.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.context_window == 50
    assert settings.context_threshold == 0.5
    assert settings.structured_context_threshold == 0.3
    assert settings.external_enabled is False
    assert settings.external_timeout_seconds == 5.0
    assert settings.spacy_model == "en_core_web_sm"
    assert settings.auto_refine_threshold == 3
    assert settings.vocabulary_path is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PATTERN_DETECTION_CONTEXT_WINDOW", "80")
    monkeypatch.setenv("PATTERN_DETECTION_EXTERNAL_ENABLED", "true")

    settings = Settings(_env_file=None)

    assert settings.context_window == 80
    assert settings.external_enabled is True


def test_log_level_is_normalized():
    assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"


@pytest.mark.parametrize(
    "overrides",
    [
        {"context_window": 0},
        {"context_threshold": 1.5},
        {"external_timeout_seconds": 0},
        {"auto_refine_threshold": 0},
        {"spacy_model": "   "},
        {"log_level": "chatty"},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(pydantic.ValidationError):
        Settings(_env_file=None, **overrides)
