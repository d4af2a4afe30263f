"""
Application Settings

Centralized configuration for the backend.
All settings are loaded from environment variables (optionally via .env).
"""
import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable, falling back on bad input."""
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_list_env(key: str) -> List[str]:
    """Get a comma-separated list from environment variable."""
    return [item.strip() for item in os.getenv(key, "").split(",") if item.strip()]


class Settings:
    """
    Settings for the application.

    To add a new setting:
    1. Add it here as a class attribute
    2. Load it from an environment variable with a safe default
    3. Read it through the `settings` instance
    """

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./election.db")

    # Tokens
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = get_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 7 * 24 * 60)
    REVIEWER_TOKEN_EXPIRE_MINUTES: int = get_int_env("REVIEWER_TOKEN_EXPIRE_MINUTES", 12 * 60)

    # Registration
    INSTITUTION_EMAIL_DOMAIN: str = os.getenv("INSTITUTION_EMAIL_DOMAIN", "iitk.ac.in")
    OTP_EXPIRE_MINUTES: int = get_int_env("OTP_EXPIRE_MINUTES", 10)
    OTP_MAX_ATTEMPTS: int = get_int_env("OTP_MAX_ATTEMPTS", 5)

    # Manifesto storage
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")
    MAX_MANIFESTO_SIZE_MB: int = get_int_env("MAX_MANIFESTO_SIZE_MB", 10)
    BLOB_STORE_TIMEOUT_SECONDS: int = get_int_env("BLOB_STORE_TIMEOUT_SECONDS", 30)
    UPSTREAM_TIMEOUT_SECONDS: int = get_int_env("UPSTREAM_TIMEOUT_SECONDS", 30)

    # Outbound mail (OTP delivery). Empty host means log-only delivery.
    SMTP_HOST: str = os.getenv("SMTP_HOST", "")
    SMTP_PORT: int = get_int_env("SMTP_PORT", 587)
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_FROM: str = os.getenv("SMTP_FROM", "elections@localhost")
    SMTP_USE_TLS: bool = get_bool_env("SMTP_USE_TLS", True)

    # HTTP
    RATE_LIMIT_ENABLED: bool = get_bool_env("RATE_LIMIT_ENABLED", True)
    ALLOWED_ORIGINS: List[str] = get_list_env("ALLOWED_ORIGINS")

    # CLI bootstrap
    SUPERADMIN_EMAIL: str = os.getenv("SUPERADMIN_EMAIL", "")
    SUPERADMIN_PASSWORD: str = os.getenv("SUPERADMIN_PASSWORD", "")

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT == "development"

    @classmethod
    def max_manifesto_bytes(cls) -> int:
        return cls.MAX_MANIFESTO_SIZE_MB * 1024 * 1024


# Singleton instance for easy importing
settings = Settings()
