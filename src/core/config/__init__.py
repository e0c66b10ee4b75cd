# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for the temporary enrolments service.

This package provides centralized configuration management:
- Settings: Pydantic-based settings loaded from environment variables
- YAML loader: Email template overrides kept in a YAML file

Example:
    >>> from src.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from src.core.config.settings import (
    APISettings,
    DatabaseSettings,
    RedisSettings,
    Settings,
    SMTPSettings,
    TemporaryEnrolmentSettings,
    WorkerSettings,
    clear_settings_cache,
    get_settings,
)
from src.core.config.yaml_loader import (
    YAMLLoadError,
    load_template_overrides,
    load_yaml,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "RedisSettings",
    "SMTPSettings",
    "APISettings",
    "WorkerSettings",
    "TemporaryEnrolmentSettings",
    # YAML utilities
    "load_yaml",
    "load_template_overrides",
    "YAMLLoadError",
]
