"""Application configuration using pydantic-settings."""

from decimal import Decimal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite:///./automation.db"

    # Automation engine
    ROUND_UP_THRESHOLD: Decimal = Decimal("5.00")
    TRANSACTION_FEE_RATE: Decimal = Decimal("0.001")
    DEFAULT_MARKET_DIP_THRESHOLD: Decimal = Decimal("5")
    MARKET_DIP_COOLDOWN_HOURS: int = 24
    DEFAULT_QUANTITY_INCREMENT: Decimal = Decimal("0.00000001")

    @field_validator("ROUND_UP_THRESHOLD", "DEFAULT_QUANTITY_INCREMENT", mode="after")
    @classmethod
    def validate_positive(cls, v: Decimal) -> Decimal:
        """Thresholds and increments must be strictly positive."""
        if v <= 0:
            raise ValueError(f"must be positive, got {v}")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    # App settings
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"


settings = Settings()
