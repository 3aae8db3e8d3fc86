"""
Configuration module for ForbiddenBlocks.

Usage:
    from forbiddenblocks.config import get_config

    config = get_config()
    logger.info("Storage configured", worlds_path=str(config.storage.worlds_path))
"""

import sys
import threading
from functools import lru_cache
from os import getenv

from .models import AppConfig, InteractionConfig, LoggingConfig, StorageConfig

__all__ = ["get_config", "reset_config", "AppConfig", "InteractionConfig", "LoggingConfig", "StorageConfig"]

_config_instance: AppConfig | None = None
_config_lock = threading.Lock()


def _is_test_mode() -> bool:
    """Detect if running under pytest."""
    if "pytest" in sys.modules:
        return True
    return bool(getenv("PYTEST_CURRENT_TEST"))


@lru_cache(maxsize=1)
def _get_config_cached() -> AppConfig:
    """Production config loader with caching."""
    global _config_instance  # pylint: disable=global-statement  # Reason: process-wide config singleton
    with _config_lock:
        if _config_instance is None:
            _config_instance = AppConfig()
    return _config_instance


def get_config() -> AppConfig:
    """
    Get application configuration (singleton in production, fresh in tests).

    Configuration is loaded from environment variables and the .env file.

    Returns:
        AppConfig: The application configuration

    Raises:
        ValidationError: If configuration is invalid
    """
    if _is_test_mode():
        return AppConfig()
    return _get_config_cached()


def reset_config() -> None:
    """Reset the configuration cache so the next get_config() re-reads the environment."""
    global _config_instance  # pylint: disable=global-statement  # Reason: process-wide config singleton
    with _config_lock:
        _get_config_cached.cache_clear()
        _config_instance = None
