"""Application configuration management."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Settings
    app_name: str = "AccuScene - Accident Investigation Records"
    app_version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"

    # Database Settings
    database_url: str = "sqlite+aiosqlite:///./accuscene.db"
    database_echo: bool = False  # SQL query logging

    # Concurrency
    mutation_max_retries: int = Field(
        default=3,
        ge=1,
        description="Attempts for a read-modify-write cycle before a conflict is surfaced"
    )
    mutation_retry_delay: float = Field(
        default=0.05,
        ge=0.0,
        description="Base delay in seconds between conflict retries (doubled per attempt)"
    )

    # Account lockout
    max_login_attempts: int = Field(
        default=5,
        ge=1,
        description="Failed logins allowed before the account is locked"
    )
    lockout_minutes: int = Field(
        default=15,
        ge=1,
        description="How long a locked account stays locked"
    )

    # Record numbering
    case_number_prefix: str = "ACC"
    evidence_number_prefix: str = "EV"

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parent.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings: Application settings loaded from environment
    """
    return Settings()


# Global settings instance
settings = get_settings()
