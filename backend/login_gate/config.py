"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Any, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


KNOWN_INTERFACES = ("backend", "frontend")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Login Gate"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # Security
    SECRET_KEY: str = "dev-secret-key-change-in-production"

    # Site layout
    SITENAME: str = "New Site"
    SITE_PATH: str = "/"  # Path of the site root, always with trailing slash
    BACKEND_DIR: str = "backend/"  # Backend entry directory below SITE_PATH

    # Interfaces a session may be routed into after login
    INTERFACES: list[str] = ["backend"]

    # Registered login providers, keyed by identifier.
    # "provider" is a "module:Class" reference to a LoginProvider subclass.
    LOGIN_PROVIDERS: dict[str, Any] = {
        "username_password": {
            "provider": "login_gate.services.login_providers.username_password:UsernamePasswordLoginProvider",
            "sorting": 50,
            "icon-class": "fa-key",
            "label": "Username / Password",
        },
    }

    # Cookies
    SESSION_COOKIE_NAME: str = "be_session"
    LAST_LOGIN_PROVIDER_COOKIE: str = "last_login_provider"

    # Session / registry storage
    SESSION_BACKEND: str = "memory"  # memory, redis
    REDIS_URL: str = "redis://localhost:6379/0"
    SESSION_LIFETIME_SECONDS: int = 28800  # 8 hours

    # Static user records (username, email, password_hash, redirect_to_url, ...)
    BACKEND_USERS: list[dict[str, Any]] = []

    # System news shown next to the login form (title, content, created)
    SYSTEM_NEWS: list[dict[str, Any]] = []
    NEWS_DATE_FORMAT: str = "%d-%m-%y"

    # Password reset
    PASSWORD_RESET_ENABLED: bool = True
    PASSWORD_RESET_TOKEN_EXPIRE_MINUTES: int = 60
    PASSWORD_RESET_DELAY_MIN_MS: int = 200
    PASSWORD_RESET_DELAY_MAX_MS: int = 3000
    PASSWORD_MIN_LENGTH: int = 8

    # Login form
    ENFORCE_REFERRER: bool = True
    LOGIN_LOGO: str = ""
    LOGIN_LOGO_ALT: str = ""
    LOGIN_FOOTNOTE: str = ""
    LOGIN_HIGHLIGHT_COLOR: str = ""
    LOGIN_BACKGROUND_IMAGE: str = ""

    # Email (SMTP), all optional; emails are silently skipped when SMTP_HOST is unset.
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: str = "noreply@example.com"
    SMTP_FROM_NAME: str = "Login Gate"
    SMTP_USE_TLS: bool = True
    APP_BASE_URL: str = "http://localhost:8000"  # Used to build links in emails

    # Monitoring
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # 'text' or 'json' (json for production)

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Validate SECRET_KEY is not using insecure defaults in production."""
        insecure_defaults = [
            "dev-secret-key-change-in-production",
            "your-secret-key-here",
            "change-me",
            "secret",
        ]

        import os

        environment = os.getenv("ENVIRONMENT", "development")

        if environment == "production" and (v in insecure_defaults or len(v) < 32):
            raise ValueError(
                "Insecure SECRET_KEY detected in production! "
                "Generate a secure key with: openssl rand -hex 32"
            )

        return v

    @field_validator("SITE_PATH", "BACKEND_DIR")
    @classmethod
    def validate_trailing_slash(cls, v: str) -> str:
        """Paths are joined by concatenation, so both must end with a slash."""
        if not v.endswith("/"):
            v = v + "/"
        return v

    @field_validator("INTERFACES")
    @classmethod
    def validate_interfaces(cls, v: list[str]) -> list[str]:
        """Only interfaces with a known jump target may be configured."""
        interfaces = [name.strip() for name in v if name.strip()]
        unknown = [name for name in interfaces if name not in KNOWN_INTERFACES]
        if unknown:
            raise ValueError(
                f"Unknown interface(s) {unknown}; allowed: {list(KNOWN_INTERFACES)}"
            )
        return interfaces

    @field_validator("SESSION_BACKEND")
    @classmethod
    def validate_session_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("memory", "redis"):
            raise ValueError("SESSION_BACKEND must be 'memory' or 'redis'")
        return v

    @model_validator(mode="after")
    def validate_reset_delay(self) -> "Settings":
        """The reset delay is drawn from [MIN, MAX], so the range must be valid."""
        if self.PASSWORD_RESET_DELAY_MIN_MS < 0 or self.PASSWORD_RESET_DELAY_MAX_MS < 0:
            raise ValueError("PASSWORD_RESET_DELAY_MIN_MS/MAX_MS must not be negative")
        if self.PASSWORD_RESET_DELAY_MIN_MS > self.PASSWORD_RESET_DELAY_MAX_MS:
            raise ValueError(
                "PASSWORD_RESET_DELAY_MIN_MS must not exceed PASSWORD_RESET_DELAY_MAX_MS"
            )
        return self

    @property
    def backend_path(self) -> str:
        """Absolute path of the backend entry directory, e.g. ``/backend/``."""
        return self.SITE_PATH + self.BACKEND_DIR


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
