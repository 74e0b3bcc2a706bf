"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly.
"""

from functools import lru_cache
from typing import Dict, List, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database - SQLite for development, PostgreSQL via DATABASE_URL in production
    database_url: str = "sqlite:///./data/quartermaster.db"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_echo: bool = False

    # Security
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 480

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_prefix: str = "/api"

    # Rate limiting
    rate_limit_enabled: bool = True

    # Inventory ledger
    expiry_alert_days: int = 7

    # Distribution recipients: slot key -> unit code, in slot order
    distribution_recipient_codes: Dict[str, str] = {
        "unit1": "TD1",
        "unit2": "TD2",
        "unit3": "TD3",
        "ceremonyUnit": "LDH",
    }

    # Processing station weekly/monthly views
    processing_year_min: int = 2000
    processing_year_max: int = 2100

    @field_validator("distribution_recipient_codes")
    @classmethod
    def validate_recipient_codes(cls, v: Dict[str, str]) -> Dict[str, str]:
        if not v:
            raise ValueError("distribution_recipient_codes must define at least one slot")
        codes = list(v.values())
        if len(set(codes)) != len(codes):
            raise ValueError("distribution_recipient_codes must map slots to distinct unit codes")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Refuse to start in production with the default secret key."""
        if not self.debug and self.secret_key == "change-me-in-production":
            raise ValueError(
                "FATAL: Cannot start in production mode with default SECRET_KEY. "
                "Set a secure SECRET_KEY environment variable."
            )
        return self

    @property
    def cors_origins_list(self) -> List[str]:
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
