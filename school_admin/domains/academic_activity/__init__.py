# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic activity domain package."""

from school_admin.domains.academic_activity.service import (
    ACTIVITY_CODE_PREFIXES,
    AcademicActivityService,
    ActivityNotFoundError,
)

__all__ = [
    "ACTIVITY_CODE_PREFIXES",
    "AcademicActivityService",
    "ActivityNotFoundError",
]
