# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""English requests handled through legacy enrollments."""

from school_admin.domains.english_enrollment.service import EnglishEnrollmentService
from school_admin.domains.english_enrollment.validators import (
    EnglishEnrollmentValidators,
    NotEnglishGroupError,
)

__all__ = [
    "EnglishEnrollmentService",
    "EnglishEnrollmentValidators",
    "NotEnglishGroupError",
]
