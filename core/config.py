"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for authlog happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  Frozen model: Settings is immutable once built. Components never read it
      as ambient state; the app hands each store the values it needs (the
      secret to the credential store, the page size to the log viewer).

  field_validator on secret_key: dev mode generates a key with a warning,
      production mode refuses to start without one.

Security notes:
  SECRET_KEY signs the admin session cookie AND keys the password HMAC.
  Rotating it logs every admin out and invalidates every stored password
  fingerprint. Keys shorter than 32 chars are rejected outright.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, audit/, or kv/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authlog.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `secret_key` reads from SECRET_KEY, `log_page_size` from LOG_PAGE_SIZE.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    # debug must stay declared before secret_key: the secret_key validator
    # reads it from the already-validated fields.
    debug: bool = False
    # Empty string is the sentinel for "not configured". The validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = Field(default="", validate_default=True)

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = 8000

    # ------------------------------------------------------------------
    # Admin console
    # ------------------------------------------------------------------

    admin_user: str = "admin"
    # Empty password disables console login entirely.
    admin_password: str = ""
    secure_cookies: bool = False
    session_max_age: int = 14 * 24 * 3600

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    data_dir: Path = Path("db")
    log_page_size: int = Field(default=50, ge=1)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, value: str, info: ValidationInfo) -> str:
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions and stored password fingerprints will not survive a
            restart -- acceptable for local dev only.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not value:
            if info.data.get("debug"):
                logger.warning(
                    "WARNING: Using auto-generated SECRET_KEY. "
                    "Sessions and password hashes will not persist across restarts."
                )
                return secrets.token_hex(32)
            raise ValueError(
                "SECRET_KEY is required in production mode. "
                "Set SECRET_KEY in your environment or .env file. "
                "To run in development mode, set DEBUG=true."
            )
        if len(value) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return value

    @property
    def user_db_path(self) -> Path:
        return self.data_dir / "user.db"

    @property
    def log_db_path(self) -> Path:
        return self.data_dir / "log.db"


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings() directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    settings = Settings()
    if not settings.admin_password:
        logger.warning("ADMIN_PASSWORD is not set -- admin console login is disabled.")
    return settings
