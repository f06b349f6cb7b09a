"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Profile Portal happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. session_cookie_key -> SESSION_COOKIE_KEY).

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. Implements the environment-conditional signing key policy:
      development generates a key with a warning, production refuses to start
      without one.

Security notes:
  - SESSION_COOKIE_KEY shorter than 32 chars is rejected outright. The
    session cookie signature is HMAC-based and relies on key entropy.

  - With ENVIRONMENT=production a missing SESSION_COOKIE_KEY is a hard
    startup failure. A random key would log every user out on restart.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("profileapp.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'profileapp.db'}"

SESSION_MAX_AGE = 24 * 60 * 60  # 24 hours in seconds


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces the
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Process
    # ------------------------------------------------------------------

    # "production" switches on HTTPS-only cookies. Anything else is treated
    # as a development/test deployment.
    environment: str = "development"
    host: str = "127.0.0.1"
    port: int = 3000

    # ------------------------------------------------------------------
    # Session cookie
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The validator below
    # either generates a dev key or raises, so callers never see "".
    session_cookie_key: str = ""
    session_cookie_name: str = "session"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # OAuth providers (empty string means provider is disabled)
    # ------------------------------------------------------------------

    google_client_id: str = ""
    google_client_secret: str = ""
    github_client_id: str = ""
    github_client_secret: str = ""

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @model_validator(mode="after")
    def validate_session_cookie_key(self) -> "Settings":
        """Enforce the signing key policy.

        Development: auto-generate a random key with a warning. Sessions will
        not survive a restart -- acceptable for local work.

        Production: refuse to start without SESSION_COOKIE_KEY.

        Both: reject keys shorter than 32 characters.
        """
        if not self.session_cookie_key:
            if self.is_production:
                raise ValueError(
                    "SESSION_COOKIE_KEY is required in production. "
                    "Set SESSION_COOKIE_KEY in your environment or .env file."
                )
            self.session_cookie_key = secrets.token_hex(32)
            logger.warning("WARNING: Using auto-generated SESSION_COOKIE_KEY. Sessions will not persist across restarts.")
        if len(self.session_cookie_key) < 32:
            raise ValueError("SESSION_COOKIE_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
