# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for school_admin.

Example:
    >>> from school_admin.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.academic.passing_grade
    70
"""

from school_admin.core.config.settings import (
    AcademicSettings,
    CacheSettings,
    DatabaseSettings,
    RedisSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "AcademicSettings",
    "CacheSettings",
    "DatabaseSettings",
    "RedisSettings",
    "Settings",
    "clear_settings_cache",
    "get_settings",
]
