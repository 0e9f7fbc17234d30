# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Group domain package."""

from school_admin.domains.group.service import (
    GroupHasEnrollmentsError,
    GroupService,
    is_english_group,
    validate_group_settings,
)

__all__ = [
    "GroupHasEnrollmentsError",
    "GroupService",
    "is_english_group",
    "validate_group_settings",
]
