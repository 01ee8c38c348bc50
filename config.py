# config.py
"""Configuration settings for the Book AI analysis system.
Uses Pydantic BaseSettings for automatic environment variable loading.
"""

from __future__ import annotations

import structlog
from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

logger = structlog.get_logger()


class BookAISettings(BaseSettings):
    """Full configuration for the Book AI system."""

    # API and Model Configuration
    OPENAI_API_BASE: str = "https://api.openai.com/v1"
    OPENAI_API_KEY: str = ""
    HTTPX_TIMEOUT: float = 600.0

    # Base Model Definitions
    LARGE_MODEL: str = "gpt-4o"
    SMALL_MODEL: str = "gpt-4o-mini"
    MODERATION_MODEL: str = "omni-moderation-latest"

    # Dynamic Model Assignments (set from base models if not specified in env)
    SECTION_SUMMARY_MODEL: str | None = None
    ANALYSIS_MODEL: str | None = None
    REFINEMENT_MODEL: str | None = None
    SAMPLER_MODEL: str | None = None

    # Temperature Settings
    TEMPERATURE_SECTION_SUMMARY: float = 0.0
    TEMPERATURE_ANALYSIS: float = 0.0
    TEMPERATURE_REFINEMENT: float = 0.3
    TEMPERATURE_SAMPLER: float = 0.3

    MAX_GENERATION_TOKENS: int = 4096
    MAX_SAMPLER_TOKENS: int = 500

    # Section pipeline
    SECTION_CONCURRENCY_LIMIT: int = 75
    ENABLE_MODERATION: bool = True
    MODERATION_CACHE_SIZE: int = 256
    SECTION_HISTORY_SIZE: int = 5

    # Refinement history
    REFINEMENT_SAME_FIELD_HISTORY: int = 2
    REFINEMENT_OTHER_FIELD_HISTORY: int = 3
    HISTORY_VERSION: str = "1.0"

    # Output and File Paths
    BASE_OUTPUT_DIR: str = "book_ai_output"
    SECTION_SUMMARIES_FILE: str = "section_summaries.json"
    COMPREHENSIVE_SUMMARY_FILE: str = "comprehensive_summary.json"
    HISTORY_FILE: str = "history.json"

    # Logging & UI
    LOG_LEVEL_STR: str = Field("INFO", alias="BOOK_AI_LOG_LEVEL")
    LOG_FORMAT: str = (
        "%(asctime)s - %(levelname)s - [%(name)s:%(funcName)s:%(lineno)d] - %(message)s"
    )
    LOG_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
    LOG_FILE: str | None = None
    ENABLE_RICH_LOGGING: bool = True

    @model_validator(mode="after")
    def set_dynamic_model_defaults(self) -> BookAISettings:
        if self.SECTION_SUMMARY_MODEL is None:
            self.SECTION_SUMMARY_MODEL = self.SMALL_MODEL
        if self.ANALYSIS_MODEL is None:
            self.ANALYSIS_MODEL = self.LARGE_MODEL
        if self.REFINEMENT_MODEL is None:
            self.REFINEMENT_MODEL = self.LARGE_MODEL
        if self.SAMPLER_MODEL is None:
            self.SAMPLER_MODEL = self.SMALL_MODEL
        return self

    @model_validator(mode="after")
    def check_limits(self) -> BookAISettings:
        if self.SECTION_CONCURRENCY_LIMIT < 1:
            raise ValueError("SECTION_CONCURRENCY_LIMIT must be at least 1")
        if self.SECTION_HISTORY_SIZE < 0:
            raise ValueError("SECTION_HISTORY_SIZE cannot be negative")
        return self

    @model_validator(mode="after")
    def warn_missing_api_key(self) -> BookAISettings:
        if not self.OPENAI_API_KEY.strip():
            logger.warning(
                "OPENAI_API_KEY is not set. Generation calls will be refused."
            )
        return self

    model_config = SettingsConfigDict(
        env_prefix="", env_file=".env", populate_by_name=True, extra="ignore"
    )


settings = BookAISettings()
