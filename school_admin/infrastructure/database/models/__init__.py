# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for the school database.

Importing this package registers every mapped class on Base.metadata.
"""

from school_admin.infrastructure.database.models.activity import (
    AcademicActivity,
    ActivityHistory,
    Exam,
    SpecialCourse,
)
from school_admin.infrastructure.database.models.base import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from school_admin.infrastructure.database.models.enrollment import GRADE_FIELDS, Enrollment
from school_admin.infrastructure.database.models.exam_period import ExamPeriod
from school_admin.infrastructure.database.models.school import Group, Student, Subject, Teacher
from school_admin.infrastructure.database.models.user import User

__all__ = [
    "AcademicActivity",
    "ActivityHistory",
    "Base",
    "Enrollment",
    "Exam",
    "ExamPeriod",
    "GRADE_FIELDS",
    "Group",
    "SoftDeleteMixin",
    "SpecialCourse",
    "Student",
    "Subject",
    "Teacher",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "User",
]
