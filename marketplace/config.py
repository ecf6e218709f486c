"""Configuration settings for the marketplace."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./marketplace.db")

    # JWT
    JWT_SECRET: str = os.getenv("JWT_SECRET", "")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")

    # Email
    APP_URL: str = os.getenv("APP_URL", "http://localhost:8000")
    RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "")
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "onboarding@resend.dev")

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def __init__(self) -> None:
        self.secret_generated = not self.JWT_SECRET
        if self.secret_generated:
            self.JWT_SECRET = secrets.token_urlsafe(32)

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        warnings = []
        if self.secret_generated:
            warnings.append("JWT_SECRET is not set - using auto-generated key (sessions do not survive restarts)")
        if not self.RESEND_API_KEY:
            warnings.append("RESEND_API_KEY is not set - emails will be logged instead of sent")
        return warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
