from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = "sqlite:///./shortlinks.db"
    STORE_TIMEOUT_SECONDS: int = 30

    # Security
    SECRET_KEY: str = "shortlink-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_HOUR: int = 30

    # Short codes
    SHORT_CODE_LENGTH: int = 10
    MAX_CODE_ATTEMPTS: int = 10
    CODE_RETRY_BACKOFF_MS: int = 0

    # Clicks
    MAX_CLICK_EVENTS: int = 1000
    TIMEZONE: str = "UTC"  # "today" boundary for analytics

    # Domain
    BASE_URL: str = "http://localhost:8000"
    REDIRECT_STATUS_CODE: int = 301

    # Diagnostics
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    class Config:
        env_file = ".env"


settings = Settings()
