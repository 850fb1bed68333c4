"""Configuration package with layered settings.

Provides a centralized `get_config()` function that returns an AppConfig singleton.
"""

import os
import threading

from .base import DEFAULT_SECRET_KEY
from .runtime import get_runtime_config
from .ai import get_ai_config
from .schema import AppConfig, RuntimeConfig, AiConfig

# Singleton cache
_config_cache = None
_config_lock = threading.Lock()
_config_name = "default"  # Flask profile name


def set_config_name(name: str) -> None:
    """
    Set the Flask config profile name.

    This must be called before `get_config()` if using a non-default profile.
    """
    global _config_name, _config_cache
    with _config_lock:
        if name != _config_name:
            _config_cache = None  # Invalidate cache
        _config_name = name


def reset_config() -> None:
    """Drop the cached configuration so the next call re-reads the environment."""
    global _config_cache
    with _config_lock:
        _config_cache = None


def get_config() -> AppConfig:
    """
    Get the application configuration (singleton).

    Returns:
        AppConfig instance with runtime and AI settings
    """
    global _config_cache

    if _config_cache is not None:
        return _config_cache

    with _config_lock:
        if _config_cache is None:
            _config_cache = AppConfig(
                runtime=get_runtime_config(flask_config_name=_config_name),
                ai=get_ai_config(),
                secret_key=os.environ.get("SECRET_KEY") or DEFAULT_SECRET_KEY,
                profile=_config_name,
            )

    return _config_cache


__all__ = [
    "get_config",
    "set_config_name",
    "reset_config",
    "RuntimeConfig",
    "AiConfig",
    "AppConfig",
]
