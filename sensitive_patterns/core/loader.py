# sensitive_patterns/core/loader.py

"""Vocabulary loader for the detection engine."""

import yaml
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Any, Optional, Union

from sensitive_patterns.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_VOCABULARY_PATH = Path(__file__).parent / "vocabulary.yaml"


class Vocabulary:
    """Read-only view over the detection vocabulary.

    Loads the category library, field tiers, alias table, label tables,
    address vocabulary and redaction style families from a YAML file.
    Instances are immutable after construction and can be shared freely
    between engines and threads.
    """

    REQUIRED_SECTIONS = (
        "context_categories",
        "field_categories",
        "field_aliases",
        "category_families",
        "entity_labels",
        "address",
        "redaction_styles",
    )

    def __init__(self, config_path: Optional[Union[str, Path]] = None) -> None:
        self._path = Path(config_path) if config_path else DEFAULT_VOCABULARY_PATH
        self._config: Dict[str, Any] = self._load_config(self._path)

    @property
    def path(self) -> Path:
        return self._path

    def _load_config(self, config_path: Path) -> Dict[str, Any]:
        """Loads and validates the vocabulary file.

        Raises:
            ConfigurationError: If file is missing, invalid, or empty.
        """
        try:
            if not config_path.exists():
                error_msg = f"Vocabulary file not found: {config_path}"
                logger.error(error_msg)
                raise ConfigurationError(error_msg)

            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)

            if not config or not isinstance(config, dict):
                raise ConfigurationError("Vocabulary file is empty or invalid")

            self._validate_config(config)

            logger.info(
                "Vocabulary loaded successfully",
                extra={
                    "config_path": str(config_path),
                    "context_category_count": len(config["context_categories"]),
                    "field_category_count": len(config["field_categories"]),
                },
            )
            return config

        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error: {e}", exc_info=True)
            raise ConfigurationError(f"Failed to parse {config_path.name}: {e}") from e
        except ConfigurationError:
            raise
        except OSError as e:
            logger.error(f"Vocabulary loading failed: {e}", exc_info=True)
            raise ConfigurationError(f"Failed to load vocabulary: {e}") from e

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """Validates required vocabulary sections exist.

        Raises:
            ConfigurationError: If required sections are missing.
        """
        missing = [s for s in self.REQUIRED_SECTIONS if s not in config]

        if missing:
            error_msg = f"Missing required vocabulary sections: {missing}"
            logger.error(error_msg)
            raise ConfigurationError(error_msg)

    def context_categories(self) -> Dict[str, Dict[str, Any]]:
        """Returns the context-aware entity library keyed by category tag."""
        return self._config.get("context_categories", {})

    def field_categories(self) -> Dict[str, Dict[str, Any]]:
        """Returns the field-aware category table keyed by category tag."""
        return self._config.get("field_categories", {})

    def field_aliases(self) -> Dict[str, str]:
        return self._config.get("field_aliases", {}) or {}

    def category_family(self, category: str) -> List[str]:
        """Returns entity library tags considered relevant to a pattern category.

        Args:
            category: Pattern category value (e.g., 'pii')

        Returns:
            List of category tags, empty list if category not found
        """
        tags = self._config.get("category_families", {}).get(category, [])
        return tags if tags else []

    def label_categories(self, label: str) -> List[str]:
        """Returns pattern categories that an external entity label maps to."""
        categories = self._config.get("entity_labels", {}).get(label.lower(), [])
        return categories if categories else []

    def presidio_labels(self) -> Dict[str, str]:
        return self._config.get("presidio_labels", {}) or {}

    def recognizer_definitions(self) -> Dict[str, Dict[str, Any]]:
        """Returns extra Presidio recognizer definitions keyed by entity type."""
        return self._config.get("recognizers", {}) or {}

    def name_false_positives(self) -> List[str]:
        return self._config.get("name_false_positives", []) or []

    def address_vocabulary(self, section: str) -> List[str]:
        """Retrieves an address vocabulary list by section name.

        Args:
            section: Either 'keywords' or 'non_address_openers'

        Returns:
            List of vocabulary terms, empty list if section not found
        """
        terms = self._config.get("address", {}).get(section, [])
        return terms if terms else []

    def redaction_styles(self, category: str) -> List[Dict[str, str]]:
        """Returns the ordered style family for a pattern category."""
        styles = self._config.get("redaction_styles", {}).get(category, [])
        return styles if styles else []

    def keyword_suggestions(self, key: str) -> List[str]:
        terms = self._config.get("keyword_suggestions", {}).get(key, [])
        return terms if terms else []


@lru_cache(maxsize=None)
def _load_cached(path: str) -> Vocabulary:
    return Vocabulary(path)


def load_vocabulary(path: Optional[Union[str, Path]] = None) -> Vocabulary:
    """Returns the vocabulary at ``path`` (packaged default when omitted).

    Vocabularies are memoized per resolved path.
    """
    resolved = Path(path) if path else DEFAULT_VOCABULARY_PATH
    return _load_cached(str(resolved.resolve()))
