"""
Application configuration for the POS backend.

Values come from environment variables (or a local ``.env`` file) so each
terminal host can point at the shared restaurant database without code
changes.
"""

from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Process-level settings.

    Restaurant workflow policy (payment rules, status flow, table policy)
    lives in the database-backed workflow configuration, not here.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./pos.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    LOG_SQL_QUERIES: bool = False

    # Environment Settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # API
    API_PREFIX: str = "/api/v1"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Order / KOT numbering
    ORDER_NUMBER_PREFIX: str = "ORD"
    KOT_NUMBER_PREFIX: str = "KOT"
    SEQUENCE_PADDING: int = 4

    # Optimistic-lock retries performed internally before surfacing a conflict
    WORKFLOW_CONFLICT_RETRIES: int = 1

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("SEQUENCE_PADDING")
    @classmethod
    def validate_padding(cls, v):
        if v < 1 or v > 12:
            raise ValueError("SEQUENCE_PADDING must be between 1 and 12")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Returns:
        Settings instance with environment variables loaded
    """
    return Settings()
