"""Environment configuration for the Task Tracker backend."""

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEV_SESSION_SECRET = "dev_secret_key_change_in_production"


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self) -> None:
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./tasks.db")
        self.ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
        self.SESSION_SECRET: str = os.getenv("SESSION_SECRET", "")
        self.FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")
        self.JWT_ALGORITHM: str = "HS256"
        self.SESSION_EXPIRATION_HOURS: int = 24
        self.SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "stm.sid")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
        # Google sign-in is optional
        self.GOOGLE_CLIENT_ID: str = os.getenv("GOOGLE_CLIENT_ID", "")
        self.GOOGLE_CLIENT_SECRET: str = os.getenv("GOOGLE_CLIENT_SECRET", "")
        self.GOOGLE_CALLBACK_URL: str = os.getenv(
            "GOOGLE_CALLBACK_URL", "http://localhost:8000/api/auth/google/callback"
        )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def session_secret(self) -> str:
        """Signing key for session tokens, falling back to a dev-only key."""
        return self.SESSION_SECRET or DEV_SESSION_SECRET

    @property
    def cookie_secure(self) -> bool:
        return self.is_production

    @property
    def google_auth_enabled(self) -> bool:
        return bool(self.GOOGLE_CLIENT_ID and self.GOOGLE_CLIENT_SECRET)

    def validate(self) -> None:
        """Validate that required environment variables are set."""
        if not self.DATABASE_URL:
            raise ValueError("DATABASE_URL environment variable is required")
        if not self.SESSION_SECRET:
            if self.is_production:
                raise ValueError("SESSION_SECRET environment variable is required")
            logger.warning("SESSION_SECRET not set, using insecure development secret")
        if not self.google_auth_enabled:
            logger.warning(
                "Google OAuth not configured; set GOOGLE_CLIENT_ID and "
                "GOOGLE_CLIENT_SECRET to enable it"
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    return settings
