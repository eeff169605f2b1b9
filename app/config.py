"""Configuration settings for the user accounts API."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./accounts.db")
    DB_AUTO_CREATE: bool = os.getenv("DB_AUTO_CREATE", "true").lower() == "true"

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: str = os.getenv("PORT", "3000")
    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    # Security
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    RESET_TOKEN_TTL_MINUTES: int = int(os.getenv("RESET_TOKEN_TTL_MINUTES", "60"))
    RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def port(self) -> int:
        return int(self.PORT)

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    def validate(self) -> list[str]:
        """Validate settings and return the list of fatal problems."""
        errors = []
        if not self.DATABASE_URL:
            errors.append("DATABASE_URL is not set")
        try:
            if not 0 < self.port < 65536:
                errors.append(f"PORT {self.PORT} is out of range")
        except ValueError:
            errors.append(f"PORT {self.PORT!r} is not a number")
        if not 4 <= self.BCRYPT_ROUNDS <= 31:
            errors.append(f"BCRYPT_ROUNDS must be between 4 and 31, got {self.BCRYPT_ROUNDS}")
        if self.RESET_TOKEN_TTL_MINUTES <= 0:
            errors.append("RESET_TOKEN_TTL_MINUTES must be positive")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
