"""
Centralised config for the token store.

Settings are loaded from environment variables (and an optional ``.env``
file) and exposed through a singleton ``settings`` object. Nothing here is
required at import time so the library can be used with an explicitly
supplied connection string.
"""

import os
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from psycopg.conninfo import make_conninfo
from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILE = Path(__file__).resolve()


def _discover_project_root(config_file: Path) -> tuple[Path, Path]:
    """Return a project root and env file path without assuming ``.env`` exists.

    Walk the parents looking for a ``.env`` file and fall back to the
    repository root (detected via common project markers) when it is missing.
    """

    parents = list(config_file.parents)

    for parent in parents:
        env_file = parent / ".env"
        if env_file.exists():
            return parent, env_file

    for marker in ("pyproject.toml", ".git"):
        for parent in parents:
            if (parent / marker).exists():
                return parent, parent / ".env"

    fallback_root = parents[1] if len(parents) > 1 else parents[0]
    return fallback_root, fallback_root / ".env"


PROJECT_ROOT, ENV_FILE_PATH = _discover_project_root(CONFIG_FILE)


T = TypeVar("T")


class Settings(BaseSettings):
    """
    Centralised and validated application settings.
    """
    model_config = SettingsConfigDict(
        env_file=ENV_FILE_PATH, env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # --- CORE APP SETTINGS ---
    DATABASE_URL: Optional[str] = Field(None, validate_default=True)

    # --- DATABASE CONNECTION (from environment) ---
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[SecretStr] = None
    POSTGRES_HOST: Optional[str] = None
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: Optional[str] = None

    # --- CONNECTION POOL ---
    DB_POOL_MIN_SIZE: int = 1
    DB_POOL_MAX_SIZE: int = 5

    # --- TOKENS ---
    TOKEN_DEFAULT_EXPIRES_IN: int = 7200

    # --- HTTP EXAMPLE SERVER ---
    API_KEY: Optional[SecretStr] = None
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3000

    # --- LOGGING ---
    OAUTH2_STORE_LOG_LEVEL: str = "INFO"
    OAUTH2_STORE_LOG_TO_CONSOLE: bool = True
    OAUTH2_STORE_LOG_DIR: Optional[Path] = None

    @model_validator(mode="after")
    def build_database_url(self) -> "Settings":
        """Construct ``DATABASE_URL`` from the ``POSTGRES_*`` values when absent."""
        if self.DATABASE_URL:
            return self
        if not (self.POSTGRES_USER and self.POSTGRES_HOST and self.POSTGRES_DB):
            return self

        db_host = os.getenv("DB_HOST_OVERRIDE", self.POSTGRES_HOST)
        conninfo_params = {
            "user": self.POSTGRES_USER,
            "host": db_host,
            "port": self.POSTGRES_PORT,
            "dbname": self.POSTGRES_DB,
        }
        if self.POSTGRES_PASSWORD is not None:
            conninfo_params["password"] = self.POSTGRES_PASSWORD.get_secret_value()

        self.DATABASE_URL = make_conninfo(**conninfo_params)
        return self

    @property
    def api_key(self) -> Optional[str]:
        if self.API_KEY is None:
            return None
        return self.API_KEY.get_secret_value() or None

    # --- DYNAMIC FILE PATHS ---
    @property
    def log_path(self) -> Path:
        """
        Path for the token store log file.

        Uses ``OAUTH2_STORE_LOG_DIR`` when it is writable, otherwise falls
        back to a directory in the user's home and never raises.
        """
        configured = self.OAUTH2_STORE_LOG_DIR
        if configured is not None:
            configured = Path(configured)
            try:
                configured.mkdir(parents=True, exist_ok=True)
                if os.access(configured, os.W_OK):
                    return configured / "oauth2_store.log"
            except OSError:
                pass

        fallback_dir = Path.home() / "oauth2_store_logs"
        fallback_dir.mkdir(parents=True, exist_ok=True)
        return fallback_dir / "oauth2_store.log"


# Create a single, importable instance of the settings for the entire application.
settings = Settings()


def _coerce_secret(value: Any) -> Any:
    if isinstance(value, SecretStr):
        return value.get_secret_value()
    return value


def _to_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _coerce_type(raw: str, template: Any) -> Any:
    if isinstance(template, bool):
        return _to_bool(raw)
    if isinstance(template, int) and not isinstance(template, bool):
        return int(raw)
    if isinstance(template, float):
        return float(raw)
    if isinstance(template, Path):
        return Path(raw)
    return raw


def get_env(
    name: str,
    default: T | None = None,
    *,
    parser: Callable[[str], T] | None = None,
) -> T | Any | None:
    """Return a configuration value resolving environment overrides consistently.

    The resolution order is:

    1. Explicit environment variable overrides at runtime.
    2. Typed values provided by the Pydantic ``settings`` object.
    3. The supplied ``default`` value.

    When an override is read directly from :mod:`os.environ`, ``parser`` (or the
    inferred type from ``settings``) is used to coerce the string into the
    expected type.
    """

    if name in os.environ:
        raw_value = os.environ[name]
        if parser is not None:
            return parser(raw_value)
        template = _coerce_secret(getattr(settings, name, None))
        if template is not None:
            try:
                return _coerce_type(raw_value, template)
            except (TypeError, ValueError):
                return template
        return raw_value

    value = _coerce_secret(getattr(settings, name, None))
    if value is not None:
        return value

    return default
