# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Special course domain package."""

from school_admin.domains.special_course.service import SpecialCourseService
from school_admin.domains.special_course.validators import (
    AlreadyInCourseError,
    SpecialCourseNotFoundError,
    SpecialCourseValidators,
)

__all__ = [
    "AlreadyInCourseError",
    "SpecialCourseNotFoundError",
    "SpecialCourseService",
    "SpecialCourseValidators",
]
