"""Process configuration loaded once at startup.

WHAT:
    Validates every environment variable the service needs and freezes the
    result into a single `Settings` object.

WHY:
    - Fail-fast: a missing secret or malformed URL stops the process before it
      accepts traffic (no degraded start).
    - Components receive settings explicitly; business logic never touches
      os.environ, so tests build a `Settings` instead of patching the env.

USAGE:
    from clarity.settings import get_settings

    settings = get_settings()
    engine = create_db_engine(settings.DATABASE_URL)

Variables are split into server-only secrets and client-exposed public keys.
Only the latter may ever be returned to a browser (see `public_config`).
"""

import logging
import os
from functools import lru_cache
from typing import Dict, List, Literal, Optional

from cryptography.fernet import Fernet
from pydantic import AnyHttpUrl, Field, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from .exceptions import ConfigurationError
from .utils.env import load_env_file

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_SECRET_KEY = "supersecretkey-change-this-in-production"

_http_url = TypeAdapter(AnyHttpUrl)


class Settings(BaseSettings):
    """Application settings loaded from the environment."""

    # -------------------------------------------------------------------------
    # Server-side variables (never exposed to the browser)
    # -------------------------------------------------------------------------
    DATABASE_URL: str
    CLERK_SECRET_KEY: str = Field(min_length=1)
    STRIPE_SECRET_KEY: str = Field(min_length=1)
    TOKEN_ENCRYPTION_KEY: str
    ENVIRONMENT: Literal["development", "test", "production"] = "development"

    # Networkless session verification; falls back to the JWKS endpoint when unset
    CLERK_JWT_KEY: Optional[str] = None
    CLERK_API_URL: str = "https://api.clerk.com/v1"
    CLERK_AUTHORIZED_PARTIES: Optional[str] = None

    ADMIN_SECRET_KEY: str = DEFAULT_ADMIN_SECRET_KEY
    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"

    # -------------------------------------------------------------------------
    # Client-side variables (safe to ship to the frontend)
    # -------------------------------------------------------------------------
    CLERK_PUBLISHABLE_KEY: str = Field(min_length=1)
    POSTHOG_KEY: str = Field(min_length=1)
    POSTHOG_HOST: str

    # env_ignore_empty treats "KEY=" as missing
    model_config = SettingsConfigDict(
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def _validate_database_url(cls, value: str) -> str:
        try:
            make_url(value)
        except ArgumentError as exc:
            raise ValueError(f"not a valid database URL: {exc}") from exc
        return value

    @field_validator("TOKEN_ENCRYPTION_KEY")
    @classmethod
    def _validate_encryption_key(cls, value: str) -> str:
        try:
            Fernet(value)
        except (ValueError, TypeError) as exc:
            raise ValueError(
                "must be a URL-safe base64-encoded 32-byte string "
                "(generate with generate_keys.py)"
            ) from exc
        return value

    @field_validator("POSTHOG_HOST")
    @classmethod
    def _validate_posthog_host(cls, value: str) -> str:
        try:
            _http_url.validate_python(value)
        except ValidationError as exc:
            raise ValueError("must be an http(s) URL") from exc
        return value

    @field_validator("CLERK_JWT_KEY")
    @classmethod
    def _unescape_pem(cls, value: Optional[str]) -> Optional[str]:
        # PEM keys are often exported on a single line with literal "\n"
        if value and "\\n" in value:
            return value.replace("\\n", "\n")
        return value

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def authorized_parties(self) -> List[str]:
        if not self.CLERK_AUTHORIZED_PARTIES:
            return []
        return [party.strip() for party in self.CLERK_AUTHORIZED_PARTIES.split(",") if party.strip()]

    def public_config(self) -> Dict[str, str]:
        """Return the client-exposed subset of the configuration."""
        return {
            "clerk_publishable_key": self.CLERK_PUBLISHABLE_KEY,
            "posthog_key": self.POSTHOG_KEY,
            "posthog_host": self.POSTHOG_HOST,
        }


def _is_truthy(value: Optional[str]) -> bool:
    return bool(value) and value.strip().lower() not in ("0", "false", "no", "off")


def _unvalidated_settings() -> Settings:
    # Required variables that are absent stay None instead of unset attributes
    values = {}
    for name, field_info in Settings.model_fields.items():
        raw = os.environ.get(name)
        if raw:
            values[name] = raw
        elif field_info.is_required():
            values[name] = None
    return Settings.model_construct(**values)


def load_settings() -> Settings:
    """Read and validate the environment.

    Raises:
        ConfigurationError: listing every missing or malformed variable.
    """
    load_env_file()

    if _is_truthy(os.getenv("SKIP_ENV_VALIDATION")):
        logger.warning("[CONFIG] SKIP_ENV_VALIDATION is set; environment is NOT validated")
        return _unvalidated_settings()

    try:
        return Settings()
    except ValidationError as exc:
        invalid = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
        logger.error("[CONFIG] Invalid environment: %s", ", ".join(invalid))
        raise ConfigurationError(invalid) from exc


@lru_cache()
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return load_settings()
