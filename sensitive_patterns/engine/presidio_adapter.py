# sensitive_patterns/engine/presidio_adapter.py

"""Presidio-backed implementation of the external entity detector."""

import asyncio
import logging
import threading
from typing import List, Optional

import spacy
from presidio_analyzer import AnalyzerEngine, RecognizerRegistry
from presidio_analyzer.nlp_engine import NerModelConfiguration, SpacyNlpEngine

from sensitive_patterns.core.domain import Entity
from sensitive_patterns.core.exceptions import ExternalAdapterError, InitializationError
from sensitive_patterns.core.loader import Vocabulary, load_vocabulary
from sensitive_patterns.engine.recognizers import create_all_recognizers

logger = logging.getLogger(__name__)


class PresidioEntityDetector:
    """External entity detector built on Presidio's AnalyzerEngine.

    The analyzer (spaCy model plus recognizers) is created lazily on first
    use and shared by later calls. Analysis runs in a worker thread so the
    detection pipeline's event loop is not blocked.
    """

    def __init__(
        self,
        spacy_model: str = "en_core_web_sm",
        score_threshold: float = 0.35,
        vocabulary: Optional[Vocabulary] = None,
        language: str = "en",
    ) -> None:
        """Initialize the detector without loading any model.

        Args:
            spacy_model: SpaCy model to use for NLP processing
            score_threshold: Minimum Presidio score for reported entities
            vocabulary: Source of label mappings and custom recognizers
            language: Analysis language code
        """
        self.spacy_model = spacy_model
        self.score_threshold = score_threshold
        self.language = language
        self._vocabulary = vocabulary or load_vocabulary()
        self._labels = self._vocabulary.presidio_labels()
        self._analyzer: Optional[AnalyzerEngine] = None
        self._lock = threading.Lock()

    def _create_nlp_engine(self) -> SpacyNlpEngine:
        ner_mapping = NerModelConfiguration(
            labels_to_ignore=[
                "CARDINAL",
                "ORDINAL",
                "FAC",
                "LAW",
                "PERCENT",
                "QUANTITY",
                "WORK_OF_ART",
                "PRODUCT",
                "EVENT",
            ],
            model_to_presidio_entity_mapping={
                "PER": "PERSON",
                "PERSON": "PERSON",
                "LOC": "LOCATION",
                "GPE": "LOCATION",
                "ORG": "ORGANIZATION",
                "DATE": "DATE_TIME",
                "TIME": "DATE_TIME",
                "NORP": "NRP",
            },
        )

        if not spacy.util.is_package(self.spacy_model):
            raise OSError(f"spaCy model '{self.spacy_model}' is not installed")

        nlp_engine = SpacyNlpEngine(
            models=[{"lang_code": self.language, "model_name": self.spacy_model}],
            ner_model_configuration=ner_mapping,
        )
        nlp_engine.load()
        return nlp_engine

    def _initialize(self) -> AnalyzerEngine:
        """Sets up NLP engine, registry, and the Presidio analyzer.

        Raises:
            InitializationError: If components cannot be initialized.
        """
        logger.info(f"Initializing NLP engine with model: {self.spacy_model}")

        try:
            nlp_engine = self._create_nlp_engine()
        except OSError as e:
            logger.critical(
                f"SpaCy model '{self.spacy_model}' not found. "
                "Ensure it is installed in the environment."
            )
            raise InitializationError(
                f"Missing required SpaCy model '{self.spacy_model}'."
            ) from e

        try:
            registry = RecognizerRegistry()
            registry.load_predefined_recognizers(
                languages=[self.language], nlp_engine=nlp_engine
            )
            recognizers = create_all_recognizers(self._vocabulary)

            for rec in recognizers:
                registry.add_recognizer(rec)

            analyzer = AnalyzerEngine(
                registry=registry,
                nlp_engine=nlp_engine,
                supported_languages=[self.language],
            )

            logger.info(
                "Presidio analyzer initialized successfully",
                extra={"custom_recognizer_count": len(recognizers)},
            )
            return analyzer

        except Exception as e:
            logger.error("Analyzer initialization failed", exc_info=True)
            raise InitializationError("Failed to initialize Presidio analyzer") from e

    def get_analyzer(self) -> AnalyzerEngine:
        """Returns the shared analyzer, creating it on first use.

        Raises:
            InitializationError: If the analyzer cannot be created
        """
        if self._analyzer is None:
            with self._lock:
                # Double-checked locking pattern
                if self._analyzer is None:
                    self._analyzer = self._initialize()
        return self._analyzer

    def to_label(self, entity_type: str) -> str:
        """Maps a Presidio entity type to the canonical lowercase label."""
        return self._labels.get(entity_type, entity_type.lower())

    def analyze(self, text: str) -> List[Entity]:
        """Runs Presidio over ``text`` synchronously.

        Raises:
            InitializationError: If the analyzer cannot be created
            ExternalAdapterError: If analysis fails
        """
        if not text:
            return []

        analyzer = self.get_analyzer()

        try:
            results = analyzer.analyze(
                text=text,
                language=self.language,
                score_threshold=self.score_threshold,
            )
        except Exception as e:
            logger.error(
                "Presidio analysis failed",
                exc_info=True,
                extra={"text_length": len(text)},
            )
            raise ExternalAdapterError(f"Presidio analysis failed: {e}") from e

        entities = [
            Entity(
                value=text[r.start : r.end],
                label=self.to_label(r.entity_type),
                confidence=r.score,
                start=r.start,
                end=r.end,
            )
            for r in results
        ]

        logger.info(
            "External analysis completed",
            extra={"entity_count": len(entities), "text_length": len(text)},
        )
        return entities

    async def detect_entities(self, text: str) -> List[Entity]:
        return await asyncio.to_thread(self.analyze, text)
