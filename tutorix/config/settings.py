"""
Environment configuration for the Tutorix fee payments backend.
Uses Pydantic's settings management to handle environment variables
with proper type validation and default values.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file if it exists
env_path = Path('.') / '.env'
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Application configuration
    APP_NAME: str = "Tutorix"
    API_VERSION: str = "1.0.0"
    API_V1_STR: str = ""
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    CORS_ORIGINS: str = "*"

    # Database configuration
    DATABASE_URL: str = "sqlite:///./tutorix.db"
    DB_POOL_SIZE: int = 10
    DB_POOL_OVERFLOW: int = 20
    DB_ECHO: bool = False

    # Security configuration
    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Payment gateway
    CURRENCY: str = "INR"
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_WEBHOOK_SECRET: str = ""
    RAZORPAY_API_BASE: str = "https://api.razorpay.com/v1"
    RAZORPAY_TIMEOUT_SECONDS: float = 15.0

    # Business logic
    ORDER_REUSE_WINDOW_MINUTES: int = 30
    DEFAULT_PLATFORM_FEE_PERCENT: float = Field(default=1.0, ge=0, le=100)
    BANK_VERIFICATION_VALIDITY_DAYS: int = 30
    MAX_MULTI_PAY_RECORDS: int = 20

    # Rate limiting and quotas
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    PAYMENT_RATE_LIMIT: int = 10
    QUOTA_CACHE_TTL_SECONDS: int = 10
    MAX_FEE_STRUCTURES_PER_COACHING: int = 100

    # Monitoring and logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    LOG_FILE: Optional[str] = None

    @field_validator('LOG_LEVEL', mode='before')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept log levels in any case"""
        return str(v).upper()

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in ("json", "console"):
            raise ValueError("LOG_FORMAT must be 'json' or 'console'")
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS_ORIGINS from a comma separated string to a list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def gateway_enabled(self) -> bool:
        return bool(self.RAZORPAY_KEY_ID and self.RAZORPAY_KEY_SECRET)

    def get_database_url(self) -> str:
        """Get database URL, resolving relative sqlite paths as-is"""
        return self.DATABASE_URL

    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT.lower() == "production"

    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.ENVIRONMENT.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
