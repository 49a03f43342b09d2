"""Application configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docanswer.embedding.encoder import DEFAULT_MODEL, DEFAULT_OPENAI_MODEL


class AppConfig(BaseSettings):
    """Runtime settings, overridable by ``DOCANSWER_*`` variables or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_prefix="DOCANSWER_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
        protected_namespaces=(),
    )

    model_name: str = DEFAULT_MODEL
    embedding_backend: Literal["sentence-transformers", "openai"] = "sentence-transformers"
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DOCANSWER_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    chunk_chars: int = 1000
    overlap: int = 200
    max_chunks: int = 10000
    max_upload_bytes: int = 10 * 1024 * 1024
    max_upload_files: int = 10
    upload_dir: Path = Path("uploads")

    @model_validator(mode="after")
    def _check_overlap(self) -> "AppConfig":
        if self.overlap >= self.chunk_chars:
            raise ValueError("overlap must be smaller than chunk_chars")
        return self

    def ensure_upload_dir(self) -> Path:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        return self.upload_dir


@dataclass(slots=True, frozen=True)
class RankingConfig:
    """Hand-tuned weights and thresholds used by the ranking pipeline.

    The defaults were tuned against a small product-documentation corpus and
    overlap in range, so a strong penalty can push a chunk below one that
    received no bonus at all. Treat them as per-corpus settings.
    """

    # candidate admission and base score
    admission_similarity: float = 0.80
    keyword_weight: float = 0.3
    early_fraction: float = 0.15

    # position
    first_chunk_bonus: float = 0.5
    early_chunk_bonus: float = 0.2
    intro_first_chunk_bonus: float = 0.1
    intro_early_chunk_bonus: float = 0.05

    explicit_term_bonus: float = 0.3

    # definition scoring
    definition_early_window: float = 0.30
    definition_mid_window: float = 0.70
    definition_early_bonus: float = 1.0
    definition_mid_bonus: float = 0.8
    definition_question_bonus: float = 0.2
    intro_without_definition_penalty: float = -1.0
    question_only_penalty: float = -0.7
    intro_question_only_penalty: float = -1.5

    # definition tiers
    tier1_window: float = 0.40
    tier2_window: float = 0.25
    tier2_match_window: float = 0.30
    synthesis_window: float = 0.30
    synthesis_max_architecture_indicators: int = 2
    synthesis_confidence: float = 0.70

    # comparison scoring
    explicit_contrast_bonus: float = 0.6
    dual_entity_contrast_bonus: float = 0.4
    contrast_only_bonus: float = 0.2
    no_contrast_penalty: float = -0.4
    comparison_intro_penalty: float = -0.3
    late_header_threshold: float = 0.3
    very_late_header_threshold: float = 0.5
    late_header_penalty: float = -0.6
    very_late_header_penalty: float = -1.2

    # topic coverage gate
    coverage_keyword_threshold: float = 0.66
    coverage_similarity_threshold: float = 0.85

    # maximum reachable score, used to scale the winner into a confidence
    confidence_divisor: float = 3.1
