"""
AutoML Engine Configuration Management

Pydantic-based settings for the AutoML job engine service, covering
application metadata, logging and the knobs used by the tuning and
model-selection phases.
"""

import os
from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from automl_engine.utils.logging_utils import setup_universal_logging


class Settings(BaseSettings):
    """
    Application settings with automatic environment variable loading.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )

    # === CORE APPLICATION METADATA ===
    APP_NAME: str = "AutoML Engine"
    APP_VERSION: str = "0.1.0"
    APP_SUMMARY: str = "Automated model-search job orchestration."
    APP_DESCRIPTION: str = (
        "Programmatic interface for submitting AutoML jobs, driving them through the "
        "preprocessing, search, training, selection and evaluation phases, and "
        "monitoring their progress."
    )
    DEBUG: bool = False
    TESTING: bool = False

    # Server configuration
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    API_PREFIX: str = "/api/automl"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # === AUTOML ENGINE ===
    # Number of top-ranked candidates blended into an ensemble
    AUTOML_ENSEMBLE_SIZE: int = 3
    # Folds requested from the trial runner when it cross-validates a trial
    AUTOML_CV_FOLDS: int = 5
    # Seed shared by samplers and the default trial runner
    AUTOML_RANDOM_STATE: Optional[int] = 42
    AUTOML_DEFAULT_MAX_TRIALS: int = 20
    # Loaded datasets kept in memory by the trial runner and profiler
    AUTOML_DATASET_CACHE_SIZE: int = 4
    AUTOML_DEFAULT_SELECTION_CRITERIA: List[str] = ["accuracy", "interpretability", "robustness"]
    AUTOML_DEFAULT_ENSEMBLE_METHODS: List[str] = ["voting"]
    # Overrides the built-in optimization method table when non-empty
    AUTOML_OPTIMIZATION_METHODS: List[Dict[str, Any]] = []

    # === LOGGING ===
    LOG_LEVEL: str = "INFO"
    LOG_CONSOLE_LEVEL: str = "WARNING"
    LOG_FILE: str = "logs/automl_engine.log"
    LOG_MAX_SIZE: int = 50 * 1024 * 1024  # 50MB
    LOG_BACKUP_COUNT: int = 10
    # Rotation strategy: 'size' (default) or 'time'
    LOG_ROTATION_TYPE: str = "size"
    # Accepts values like 'midnight', 'D', 'H', 'M', 'S', or 'W0'-'W6'
    LOG_ROTATION_WHEN: Optional[str] = "midnight"
    LOG_ROTATION_INTERVAL: int = 1

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator(
        "AUTOML_DEFAULT_SELECTION_CRITERIA",
        "AUTOML_DEFAULT_ENSEMBLE_METHODS",
        mode="before",
    )
    @classmethod
    def parse_comma_separated(cls, v):
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator(
        "AUTOML_ENSEMBLE_SIZE",
        "AUTOML_CV_FOLDS",
        "AUTOML_DEFAULT_MAX_TRIALS",
        "AUTOML_DATASET_CACHE_SIZE",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    def setup_logging(self) -> None:
        """Configure root logging from these settings."""
        setup_universal_logging(
            log_file=self.LOG_FILE,
            log_level=self.LOG_LEVEL,
            rotation_type=self.LOG_ROTATION_TYPE,
            rotation_when=self.LOG_ROTATION_WHEN,
            rotation_interval=self.LOG_ROTATION_INTERVAL,
            max_bytes=self.LOG_MAX_SIZE,
            backup_count=self.LOG_BACKUP_COUNT,
            console_log_level=self.LOG_CONSOLE_LEVEL,
        )


class DevelopmentSettings(Settings):
    """Development environment settings."""
    DEBUG: bool = True
    LOG_LEVEL: str = "DEBUG"
    HOST: str = "0.0.0.0"  # Allow external connections in dev
    CORS_ORIGINS: List[str] = ["*"]


class ProductionSettings(Settings):
    """Production environment settings."""
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_ROTATION_TYPE: str = "time"


class TestingSettings(Settings):
    """Testing environment settings."""
    TESTING: bool = True
    DEBUG: bool = True
    LOG_LEVEL: str = "DEBUG"
    LOG_FILE: str = "logs/automl_engine_test.log"

    # Small trial counts for the test suite
    AUTOML_DEFAULT_MAX_TRIALS: int = 5
    AUTOML_CV_FOLDS: int = 3


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings based on environment.
    Uses lru_cache to avoid recreating settings on every call.
    """
    env = os.getenv("AUTOML_ENV", "development").lower()

    if env == "production":
        return ProductionSettings()
    if env == "testing":
        return TestingSettings()
    return DevelopmentSettings()


__all__ = [
    "DevelopmentSettings",
    "ProductionSettings",
    "Settings",
    "TestingSettings",
    "get_settings",
]
