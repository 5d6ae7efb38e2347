"""Shared fixtures for the detection engine tests."""

import pytest

from sensitive_patterns.core.loader import load_vocabulary
from sensitive_patterns.service.config import Settings
from sensitive_patterns.service.pipeline import DetectionEngine


@pytest.fixture
def vocabulary():
    return load_vocabulary()


@pytest.fixture
def settings():
    return Settings(_env_file=None, external_enabled=False)


@pytest.fixture
def engine(settings, vocabulary):
    return DetectionEngine(settings=settings, vocabulary=vocabulary)
