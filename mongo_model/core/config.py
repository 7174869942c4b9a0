"""
Configuration Settings
======================
Central configuration for mongo-model.

All settings can be overridden via environment variables or a .env file.
"""

from typing import List, Optional, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pymongo.write_concern import WriteConcern
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        env_parse_none_str="None",
        extra="ignore"
    )

    # ============================================================================
    # APPLICATION INFO
    # ============================================================================
    APP_NAME: str = "mongo-model"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"

    # ============================================================================
    # MONGODB
    # ============================================================================
    MONGODB_URI: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "mongo_model"

    # Connection pool
    MAX_POOL_SIZE: int = 10
    MIN_POOL_SIZE: int = 1
    MAX_IDLE_TIME_MS: int = 45000
    SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # Write acknowledgement used by create/update/remove
    WRITE_CONCERN_W: int = 1
    WRITE_CONCERN_JOURNAL: bool = True

    # ============================================================================
    # LOGGING
    # ============================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # ============================================================================
    # API SERVER (FastAPI)
    # ============================================================================
    API_PREFIX: str = "/api/v1"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # CORS
    CORS_ORIGINS: Union[str, List[str]] = "*"

    @field_validator("CORS_ORIGINS", mode="after")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("LOG_LEVEL", mode="after")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    def write_concern(self) -> WriteConcern:
        """
        Build the durable write concern for mutating operations.

        Returns:
            WriteConcern requesting acknowledgement (and journaling if enabled)
        """
        return WriteConcern(w=self.WRITE_CONCERN_W, j=self.WRITE_CONCERN_JOURNAL)

    def __repr__(self) -> str:
        return f"<Settings env={self.ENVIRONMENT} database={self.DATABASE_NAME}>"


# Create global settings instance
settings = Settings()


def get_settings() -> Settings:
    """
    Get settings instance.

    Returns:
        Settings singleton
    """
    return settings
