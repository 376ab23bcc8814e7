"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures consistent configuration across the application.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional, Literal
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database Configuration
    # DATABASE_URL wins when set (e.g. "sqlite://" for local runs and tests);
    # otherwise the URL is assembled from the POSTGRES_* parts.
    DATABASE_URL: Optional[str] = Field(default=None)
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="runly")
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)

    # Database Pool Configuration
    DB_POOL_SIZE: int = Field(default=20)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)  # 1 hour

    # Redis Configuration (only used by the redis rate limit backend)
    REDIS_URL: str = Field(default="redis://redis:6379/0")

    # API Configuration
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)
    API_RELOAD: bool = Field(default=False)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # Session cookie
    SESSION_COOKIE_NAME: str = Field(default="runly_session")
    SESSION_MAX_AGE_SECONDS: int = Field(default=7 * 24 * 60 * 60, ge=60)  # 7 days
    # Unset: Secure only in production. Set explicitly to force either way.
    SESSION_COOKIE_SECURE: Optional[bool] = Field(default=None)

    # Login rate limiting (per client address)
    RATE_LIMIT_ENABLED: bool = Field(default=True)
    RATE_LIMIT_BACKEND: Literal["memory", "redis"] = Field(default="memory")
    LOGIN_RATE_LIMIT_MAX: int = Field(default=10, ge=1)
    LOGIN_RATE_LIMIT_WINDOW_SECONDS: int = Field(default=600, ge=1)  # 10 minutes

    # reCAPTCHA. Login skips verification entirely when no secret is configured.
    RECAPTCHA_SECRET_KEY: Optional[str] = Field(default=None)
    RECAPTCHA_VERIFY_URL: str = Field(default="https://www.google.com/recaptcha/api/siteverify")
    RECAPTCHA_TIMEOUT_SECONDS: float = Field(default=5.0)

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)
    EXPOSE_API_DOCS: bool = Field(default=True)

    # CORS - comma-separated list of allowed origins for production
    # e.g., "https://runly.app,https://www.runly.app"
    CORS_ORIGINS: Optional[str] = Field(default=None)

    # Admin bootstrap (scripts/seed_admin.py)
    SEED_ADMIN_EMAIL: str = Field(default="admin@runly.app")
    SEED_ADMIN_USERNAME: str = Field(default="runly_admin")
    SEED_ADMIN_PASSWORD: Optional[str] = Field(default=None)

    # Sentry Error Tracking
    SENTRY_DSN: Optional[str] = Field(default=None)
    SENTRY_TRACES_SAMPLE_RATE: float = Field(default=0.1)  # 10% of transactions

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:"
            f"{self.POSTGRES_PORT}/"
            f"{self.POSTGRES_DB}"
        )

    @property
    def session_cookie_secure(self) -> bool:
        if self.SESSION_COOKIE_SECURE is not None:
            return self.SESSION_COOKIE_SECURE
        return self.ENVIRONMENT == "production"

    @property
    def captcha_enabled(self) -> bool:
        return bool(self.RECAPTCHA_SECRET_KEY)


# Global settings instance
settings = Settings()
