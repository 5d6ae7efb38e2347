# sensitive_patterns/service/config.py

"""Application configuration using Pydantic Settings.

Manages environment variables, defaults, and validation rules.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Detection engine settings.

    Loads values from environment variables (prefix 'PATTERN_DETECTION_') or .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="PATTERN_DETECTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Context-aware matching
    context_window: int = Field(
        default=50,
        ge=1,
        description="Characters inspected on each side of a context candidate.",
    )

    context_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Acceptance threshold for context candidates in free text.",
    )

    structured_context_threshold: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Acceptance threshold for context candidates in record-style text.",
    )

    structured_field_boost: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Confidence added when a candidate's line names its category.",
    )

    structured_boost_cap: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="Upper bound for boosted confidences.",
    )

    address_similarity_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum similarity score for address chunk matches.",
    )

    # External entity detection
    external_enabled: bool = Field(
        default=False,
        description="Create the Presidio entity detector when none is supplied.",
    )

    external_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Upper bound on the external detector call.",
    )

    external_score_threshold: float = Field(
        default=0.35,
        ge=0.0,
        le=1.0,
        description="Minimum Presidio score for reported entities.",
    )

    spacy_model: str = Field(
        default="en_core_web_sm", description="SpaCy model name to use for NLP."
    )

    # Refinement
    auto_refine_threshold: int = Field(
        default=3,
        ge=1,
        description="False-positive reports needed before a value is excluded.",
    )

    vocabulary_path: Optional[str] = Field(
        default=None,
        description="Detection vocabulary YAML; the packaged file when unset.",
    )

    log_level: str = Field(default="INFO", description="Logging level.")

    @field_validator("spacy_model")
    @classmethod
    def validate_model_name(cls, v: str) -> str:
        """Ensure model name is not empty."""
        if not v.strip():
            raise ValueError("SpaCy model name cannot be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level
