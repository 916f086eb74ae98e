"""Configuration management for examforge.

This module provides configuration classes using pydantic-settings
for environment variable management and validation.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables with
    the EXAMFORGE_ prefix. The Groq API key is read from GROQ_API_KEY
    by the Groq adapter itself.

    Attributes:
        groq_model: Model used for exam generation.
        groq_base_url: Base URL of the Groq OpenAI-compatible API.
        timeout_seconds: HTTP timeout for generation calls.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        max_requests_per_minute: Per-minute call budget (provider allows 30).
        max_requests_per_day: Per-day call budget (provider allows 14,400).
        batch_split_threshold: Requests at or below this size are not split.
        optimal_batch_size: Questions per batch when splitting.
        max_attempts: Attempts per batch before it is abandoned.
        retry_base_delay: First backoff delay in seconds, doubled each attempt.
        batch_stagger_delay: Pause in seconds between consecutive batches.
        duplicate_threshold: Jaccard similarity above which questions are duplicates.
        minimum_quality_score: Overall score required for a valid exam.

    Example:
        >>> # export EXAMFORGE_LOG_LEVEL=DEBUG
        >>> settings = Settings()
        >>> settings.optimal_batch_size
        8

    Environment Variables:
        EXAMFORGE_GROQ_MODEL: Groq model (default: llama-3.3-70b-versatile)
        EXAMFORGE_LOG_LEVEL: Logging level (default: INFO)
        EXAMFORGE_MAX_REQUESTS_PER_MINUTE: Minute budget (default: 25)
        EXAMFORGE_MAX_REQUESTS_PER_DAY: Day budget (default: 14000)
    """

    model_config = SettingsConfigDict(
        env_prefix="EXAMFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Groq settings
    groq_model: str = Field(
        default="llama-3.3-70b-versatile",
        description="Model used for exam generation",
    )
    groq_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description="Base URL of the Groq API",
    )
    timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="HTTP timeout for generation calls in seconds",
    )

    # General settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    # Rate limiting
    max_requests_per_minute: int = Field(default=25, ge=1, description="Per-minute call budget")
    max_requests_per_day: int = Field(default=14000, ge=1, description="Per-day call budget")

    # Batching and retries
    batch_split_threshold: int = Field(default=10, ge=1, description="Largest request generated in one batch")
    optimal_batch_size: int = Field(default=8, ge=1, description="Questions per batch when splitting")
    max_attempts: int = Field(default=3, ge=1, description="Attempts per batch")
    retry_base_delay: float = Field(default=1.0, ge=0, description="Initial retry backoff in seconds")
    batch_stagger_delay: float = Field(default=0.2, ge=0, description="Pause between batches in seconds")

    # Quality scoring
    duplicate_threshold: float = Field(default=0.85, ge=0.0, le=1.0, description="Duplicate similarity threshold")
    minimum_quality_score: float = Field(default=0.7, ge=0.0, le=1.0, description="Minimum valid quality score")
