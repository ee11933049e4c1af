# mediq/config.py - Application configuration
from dotenv import load_dotenv

load_dotenv()
from typing import Optional, Union
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings with validation and environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="allow",
        case_sensitive=False
    )

    # Application
    app_name: str = Field(default="Medi_Q", alias="APP_NAME")
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_prefix: str = "/api"

    # Database
    database_url: str = Field(default="sqlite:///./medi_q.db", alias="DATABASE_URL")
    database_pool_size: int = Field(default=5, alias="DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(default=10, alias="DATABASE_MAX_OVERFLOW")

    # Security
    secret_key: str = Field(..., alias="SECRET_KEY")
    algorithm: str = Field(default="HS256", alias="ALGORITHM")
    session_cookie_name: str = Field(default="medi_q_token", alias="SESSION_COOKIE_NAME")
    session_expire_hours: int = Field(default=24, alias="SESSION_EXPIRE_HOURS")
    password_min_length: int = Field(default=6, alias="PASSWORD_MIN_LENGTH")

    # Initial admin account, created on startup when a password is configured
    admin_username: str = Field(default="admin", alias="ADMIN_USERNAME")
    admin_password: Optional[str] = Field(default=None, alias="ADMIN_PASSWORD")

    # CORS
    cors_origins: Union[str, list[str]] = Field(default=["http://localhost:3000"], alias="CORS_ORIGINS")

    # VOICEVOX speech engine
    voicevox_api_url: str = Field(default="http://localhost:50021", alias="VOICEVOX_API_URL")
    voicevox_default_speaker: int = Field(default=3, alias="VOICEVOX_DEFAULT_SPEAKER")
    voicevox_check_timeout: float = Field(default=3.0, alias="VOICEVOX_CHECK_TIMEOUT")
    voicevox_timeout: float = Field(default=10.0, alias="VOICEVOX_TIMEOUT")
    voice_text_max_length: int = Field(default=1000, alias="VOICE_TEXT_MAX_LENGTH")

    # Admin listing
    patient_search_limit: int = Field(default=100, alias="PATIENT_SEARCH_LIMIT")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    @field_validator("cors_origins", mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            if not v.strip():
                return ["http://localhost:3000"]
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        if not v:
            raise ValueError("DATABASE_URL is required")
        if not v.startswith(("postgresql://", "postgresql+psycopg2://", "sqlite://")):
            raise ValueError("DATABASE_URL must be a valid PostgreSQL or SQLite URL")
        return v

    @field_validator("secret_key")
    @classmethod
    def validate_key_length(cls, v):
        if not v or len(v) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters long")
        return v

    @field_validator("voicevox_api_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def cookie_secure(self) -> bool:
        return self.is_production

    @property
    def admin_bootstrap_enabled(self) -> bool:
        return bool(self.admin_username and self.admin_password)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()

# Note: Do not instantiate settings at import time to avoid failing
# on missing environment variables. Use `get_settings()` instead.
