"""Configuration management for upsert-all.

This module provides centralized configuration loaded from environment variables
with validation using Pydantic BaseSettings.

Usage:
    >>> from upsert_all.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.DB_BATCH_SIZE)
"""

from upsert_all.config.settings import Settings, get_engine, get_settings

__all__ = [
    "Settings",
    "get_engine",
    "get_settings",
]
