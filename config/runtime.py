"""Runtime configuration - environment-driven settings.

Reads environment variables and applies defaults for production runtime.
"""

import os
from pathlib import Path

from .base import (
    DEFAULT_DB_URI,
    TESTING_DB_URI,
    DEFAULT_AUTO_CREATE_DB,
    DEFAULT_MAX_UPLOAD_MB,
    DEFAULT_ALLOWED_EXTENSIONS,
    DEFAULT_CORS_ALLOWED_ORIGINS,
    DEFAULT_CORS_ALLOWED_ORIGINS_PROD,
)
from .schema import RuntimeConfig


def _env_flag(name, default=False):
    """Read a boolean environment variable."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "on")


def _env_int(name, default):
    """Read an integer environment variable."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def get_runtime_config(flask_config_name="default") -> RuntimeConfig:
    """
    Build runtime configuration from environment variables.

    Args:
        flask_config_name: Flask config profile name
                          (default/development/production/testing).

    Returns:
        RuntimeConfig instance
    """
    if flask_config_name == "testing":
        db_uri = TESTING_DB_URI
        auto_create_db = True
    else:
        db_env = os.environ.get("DB_PATH")  # Optional explicit override
        db_uri = _sqlite_uri(Path(db_env)) if db_env else DEFAULT_DB_URI
        auto_create_db = _env_flag(
            "AUTO_CREATE_DB",
            default=flask_config_name == "development" or DEFAULT_AUTO_CREATE_DB,
        )

    if flask_config_name == "production":
        cors_default = DEFAULT_CORS_ALLOWED_ORIGINS_PROD
    else:
        cors_default = DEFAULT_CORS_ALLOWED_ORIGINS

    max_upload_mb = _env_int("MAX_UPLOAD_MB", default=DEFAULT_MAX_UPLOAD_MB)

    return RuntimeConfig(
        db_uri=db_uri,
        db_read_only=_env_flag("DB_READ_ONLY", default=False),
        auto_create_db=auto_create_db,
        max_content_length=max_upload_mb * 1024 * 1024,
        allowed_extensions=DEFAULT_ALLOWED_EXTENSIONS,
        cors_allowed_origins=os.environ.get("CORS_ALLOWED_ORIGINS", cors_default),
    )


def _sqlite_uri(path: Path) -> str:
    """Convert a Path to SQLite URI."""
    return f"sqlite:///{path.resolve().as_posix()}"


__all__ = ["get_runtime_config", "_env_flag", "_env_int"]
