# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Common enums and schemas shared across domains.

The enum values are the strings persisted in the database.
"""

from enum import Enum
from math import ceil
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class UserRole(str, Enum):
    """Role of an authenticated user."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class StudentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    GRADUATED = "graduated"


class TeacherStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    RETIRED = "retired"
    ON_LEAVE = "on_leave"


class GroupStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    CANCELLED = "cancelled"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class Modality(str, Enum):
    IN_PERSON = "in_person"
    VIRTUAL = "virtual"
    HYBRID = "hybrid"
    BLENDED = "blended"


class EnrollmentType(str, Enum):
    """Kind of legacy enrollment."""

    NORMAL = "normal"
    SPECIAL = "special"
    REPEAT = "repeat"
    EQUIVALENCY = "equivalency"
    DIAGNOSTIC_EXAM = "diagnostic_exam"
    ENGLISH_COURSE = "english_course"


class EnrollmentStatus(str, Enum):
    """Lifecycle status of a legacy enrollment."""

    ENROLLED = "enrolled"
    IN_PROGRESS = "in_progress"
    DROPPED = "dropped"
    PASSED = "passed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    PENDING_PAYMENT = "pending_payment"
    PAYMENT_PENDING_APPROVAL = "payment_pending_approval"
    PAYMENT_APPROVED = "payment_approved"


class ActivityStatus(str, Enum):
    """Lifecycle status of an academic activity.

    Superset of EnrollmentStatus with evaluation and review states.
    """

    ENROLLED = "enrolled"
    IN_PROGRESS = "in_progress"
    DROPPED = "dropped"
    PASSED = "passed"
    FAILED = "failed"
    EVALUATED = "evaluated"
    CANCELLED = "cancelled"
    PENDING_PAYMENT = "pending_payment"
    PAYMENT_PENDING_APPROVAL = "payment_pending_approval"
    PAYMENT_APPROVED = "payment_approved"
    COMPLETED = "completed"
    IN_REVIEW = "in_review"


class ActivityType(str, Enum):
    ENROLLMENT = "enrollment"
    EXAM = "exam"
    SPECIAL_COURSE = "special_course"
    SOCIAL_SERVICE = "social_service"
    PROFESSIONAL_PRACTICE = "professional_practice"


class ExamType(str, Enum):
    DIAGNOSTIC = "diagnostic"
    ADMISSION = "admission"
    CERTIFICATION = "certification"


class CourseType(str, Enum):
    ENGLISH = "english"
    SUMMER = "summer"
    EXTRACURRICULAR = "extracurricular"
    WORKSHOP = "workshop"
    SEMINAR = "seminar"
    DIPLOMA = "diploma"
    CERTIFICATION = "certification"


class ExamPeriodStatus(str, Enum):
    PLANNED = "planned"
    OPEN = "open"
    CLOSED = "closed"
    IN_PROCESS = "in_process"
    FINISHED = "finished"


class HistoryAction(str, Enum):
    """Action recorded in the activity history log."""

    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    PAYMENT_APPROVED = "payment_approved"
    PAYMENT_REJECTED = "payment_rejected"
    GRADE_UPDATED = "grade_updated"
    DELETED = "deleted"


class CurrentUser(BaseModel):
    """Identity of the caller, resolved by the outer layer.

    Attributes:
        user_id: User identifier.
        role: Role of the user.
        student_id: Student profile ID when role is student.
        teacher_id: Teacher profile ID when role is teacher.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole
    student_id: str | None = None
    teacher_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT


class PageParams(BaseModel):
    """Pagination and sorting parameters for list operations."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)
    sort_by: str | None = None
    sort_order: Literal["asc", "desc"] = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def clamped(self, max_limit: int) -> "PageParams":
        """Return a copy whose limit does not exceed max_limit."""
        if self.limit <= max_limit:
            return self
        return self.model_copy(update={"limit": max_limit})


class PaginationMeta(BaseModel):
    """Pagination block returned with every list."""

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=ceil(total / limit) if limit else 0,
        )


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated list response."""

    items: list[T]
    pagination: PaginationMeta
