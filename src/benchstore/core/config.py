"""Configuration management for benchstore.

This module provides configuration classes using pydantic-settings
for environment variable management and validation.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables with
    the BENCHSTORE_ prefix. CLI options take precedence.

    Example:
        >>> # export BENCHSTORE_STORE_PATH=gh-pages/dev/bench/data.js
        >>> # export BENCHSTORE_THRESHOLD=0.1
        >>>
        >>> settings = Settings()
        >>> settings.threshold
        0.1

    Environment Variables:
        BENCHSTORE_STORE_PATH: History file (default: dev/bench/data.js)
        BENCHSTORE_REPO_URL: Repository URL recorded in the store
        BENCHSTORE_GROUP: Benchmark group name (default: Benchmark)
        BENCHSTORE_LOCK_TIMEOUT_SECONDS: Write lock wait bound (default: 30.0)
        BENCHSTORE_THRESHOLD: Relative change threshold (default: 0.05)
        BENCHSTORE_CRITICAL_MULTIPLIER: Critical severity multiplier (default: 2.0)
        BENCHSTORE_BASELINE: previous or rolling (default: previous)
        BENCHSTORE_ROLLING_WINDOW: Points in a rolling baseline (default: 5)
        BENCHSTORE_LOG_LEVEL: Logging level (default: INFO)
        BENCHSTORE_JS_VARIABLE: Variable assigned in data.js output
    """

    model_config = SettingsConfigDict(
        env_prefix="BENCHSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Store settings
    store_path: str = Field(
        default="dev/bench/data.js",
        description="Path of the history file",
    )
    repo_url: str | None = Field(
        default=None,
        description="Repository URL recorded in the store",
    )
    group: str = Field(
        default="Benchmark",
        description="Benchmark group name (entries key)",
    )
    lock_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Maximum wait for the store write lock in seconds",
    )
    js_variable: str = Field(
        default="window.BENCHMARK_DATA",
        description="Variable assigned when writing a data.js file",
    )

    # Regression settings
    threshold: float = Field(
        default=0.05,
        gt=0,
        description="Relative change threshold (0.05 = 5%)",
    )
    critical_multiplier: float = Field(
        default=2.0,
        ge=1,
        description="Multiplier of threshold for critical severity",
    )
    baseline: Literal["previous", "rolling"] = Field(
        default="previous",
        description="Baseline selection strategy",
    )
    rolling_window: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Number of prior points in a rolling baseline",
    )

    # General settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return level
