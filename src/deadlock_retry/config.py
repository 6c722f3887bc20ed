"""
Configuration settings for transaction retry.

All settings are loaded from environment variables prefixed with
``DEADLOCK_RETRY_`` with sensible defaults. Use a .env file for local
development.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Retry policy settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DEADLOCK_RETRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "deadlock-retry"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # === Retry Policy ===
    MAX_RETRIES: int = 5
    BACKOFF_WAIT_TIMES: list[float] = [0, 1, 2, 4, 8, 16, 32]  # seconds, indexed by attempt - 1
    BACKOFF_CEILING: float = 32.0  # used once the table is exhausted

    # === Error Classification ===
    # "Duplicate entry" covers unique-key races some engines report after a deadlock.
    # Drop it if legitimate constraint violations must never be retried.
    TRANSIENT_ERROR_MESSAGES: list[str] = [
        "Try restarting transaction",
        "Duplicate entry",
    ]

    # === Engine Diagnostics ===
    DIAGNOSTICS_ENABLED: bool = True
    DIAGNOSTICS_ENGINE_FAMILIES: list[str] = ["mysql", "mariadb"]
    DIAGNOSTICS_VERSION_BOUNDARY: str = "5.5"  # versions below use the legacy command
    DIAGNOSTICS_LEGACY_COMMAND: str = "SHOW INNODB STATUS"
    DIAGNOSTICS_COMMAND: str = "SHOW ENGINE INNODB STATUS"
    DIAGNOSTICS_STATUS_COLUMN: str = "Status"

    @field_validator("MAX_RETRIES")
    @classmethod
    def _non_negative_retries(cls, value: int) -> int:
        if value < 0:
            raise ValueError("MAX_RETRIES must be >= 0")
        return value

    @field_validator("BACKOFF_WAIT_TIMES")
    @classmethod
    def _non_negative_waits(cls, value: list[float]) -> list[float]:
        if any(wait < 0 for wait in value):
            raise ValueError("BACKOFF_WAIT_TIMES must not contain negative values")
        return value

    @field_validator("TRANSIENT_ERROR_MESSAGES")
    @classmethod
    def _no_blank_signatures(cls, value: list[str]) -> list[str]:
        if any(not message.strip() for message in value):
            raise ValueError("TRANSIENT_ERROR_MESSAGES entries must not be blank")
        return value


# Global settings instance
settings = Settings()
