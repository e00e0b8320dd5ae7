"""
Configuration settings for the aleph drilling engine.

Uses Pydantic Settings for environment variable management with .env file support.
Variables are prefixed with ALEPH_ (e.g. ALEPH_STATE_DIR, ALEPH_LOG_LEVEL).
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from src.adaptive.question_generator import GeneratorConfig
    from src.adaptive.vocabulary_selector import SelectionStrategy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ALEPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level for the console sink",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional log file path (rotated by loguru)",
    )

    # ========================================
    # Storage
    # ========================================
    state_dir: Path = Field(
        default=Path.home() / ".aleph",
        description="Directory holding the learner's mastery JSON files",
    )
    data_dir: Path | None = Field(
        default=None,
        description="Override directory for symbols/vocabulary/progression tables",
    )

    # ========================================
    # Question Generator
    # ========================================
    min_mastery_for_new_symbol: float = Field(
        default=0.70,
        ge=0.0,
        le=1.0,
        description="Mean accuracy of active symbols required to unlock the next group",
    )
    confusion_pair_boost: float = Field(
        default=2.0,
        ge=1.0,
        le=3.0,
        description="Selection weight multiplier for symbols with recorded confusions",
    )
    form_progression_enabled: bool = Field(
        default=True,
        description="Damp medial/initial/final forms until the isolated form is practised",
    )
    word_reading_enabled: bool = Field(
        default=True,
        description="Allow whole-word reading questions",
    )
    random_seed: int | None = Field(
        default=None,
        description="Seed for reproducible sessions (None for system entropy)",
    )

    # ========================================
    # Vocabulary Selection
    # ========================================
    known_symbol_threshold: float = Field(
        default=0.40,
        ge=0.0,
        le=1.0,
        description="Overall mastery at which a symbol counts as known for word selection",
    )
    novelty_weight: float = Field(default=0.30, ge=0.0, description="Prefer new words")
    difficulty_weight: float = Field(default=0.20, ge=0.0, description="Match difficulty to level")
    frequency_weight: float = Field(default=0.20, ge=0.0, description="Prefer common words")
    spacing_weight: float = Field(default=0.20, ge=0.0, description="Space out repetitions")
    category_weight: float = Field(default=0.10, ge=0.0, description="Vary categories")

    # ========================================
    # Helper Methods
    # ========================================
    def get_generator_config(self) -> GeneratorConfig:
        """Build the question generator config from settings."""
        from src.adaptive.question_generator import GeneratorConfig

        return GeneratorConfig(
            min_mastery_for_new_symbol=self.min_mastery_for_new_symbol,
            confusion_pair_boost=self.confusion_pair_boost,
            form_progression_enabled=self.form_progression_enabled,
            word_reading_enabled=self.word_reading_enabled,
        )

    def get_selection_strategy(self) -> SelectionStrategy:
        """Build the vocabulary selection weights from settings."""
        from src.adaptive.vocabulary_selector import SelectionStrategy

        return SelectionStrategy(
            novelty_weight=self.novelty_weight,
            difficulty_weight=self.difficulty_weight,
            frequency_weight=self.frequency_weight,
            spacing_weight=self.spacing_weight,
            category_weight=self.category_weight,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
