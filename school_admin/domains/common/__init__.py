# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Helpers shared by every domain: validators, English rules, pagination."""

from school_admin.domains.common.english import (
    ENGLISH_LEVELS,
    ENGLISH_MINIMUM_AVERAGE,
    PASSING_GRADE,
    grade_to_english_level,
    is_english_subject,
    is_passing,
)
from school_admin.domains.common.validators import (
    EntityValidators,
    GroupNotFoundError,
    StudentNotFoundError,
    SubjectNotFoundError,
    TeacherNotFoundError,
)

__all__ = [
    "ENGLISH_LEVELS",
    "ENGLISH_MINIMUM_AVERAGE",
    "PASSING_GRADE",
    "EntityValidators",
    "GroupNotFoundError",
    "StudentNotFoundError",
    "SubjectNotFoundError",
    "TeacherNotFoundError",
    "grade_to_english_level",
    "is_english_subject",
    "is_passing",
]
