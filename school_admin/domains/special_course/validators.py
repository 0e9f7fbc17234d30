# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rules for special courses, English levels in particular."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.domains.common.english import ENGLISH_LEVELS
from school_admin.domains.errors import (
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from school_admin.domains.student.calculators import StudentCalculators
from school_admin.infrastructure.database.models import AcademicActivity, SpecialCourse, Student
from school_admin.models.common import ActivityStatus, ActivityType, CourseType

# A course in one of these statuses no longer blocks a new request
CLOSED_COURSE_STATUSES = (
    ActivityStatus.FAILED.value,
    ActivityStatus.DROPPED.value,
    ActivityStatus.CANCELLED.value,
)

_ACTIVE_COURSE_MESSAGES = {
    ActivityStatus.ENROLLED.value: "You are already enrolled in",
    ActivityStatus.IN_PROGRESS.value: "You are already taking",
    ActivityStatus.PENDING_PAYMENT.value: "You already have a pending payment request for",
    ActivityStatus.PAYMENT_PENDING_APPROVAL.value: (
        "You already have a payment awaiting approval for"
    ),
    ActivityStatus.PASSED.value: "You already completed",
}


class SpecialCourseNotFoundError(NotFoundError):
    """Raised when a special course is not found."""

    pass


class AlreadyInCourseError(ConflictError):
    """Raised when the student already holds a place in the course or level."""

    pass


def active_course_message(status: str, level: int) -> str:
    prefix = _ACTIVE_COURSE_MESSAGES.get(status, "You already have an active request for")
    return f"{prefix} English level {level}. You cannot enroll again."


class SpecialCourseValidators:
    """Validation rules for special courses.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession, english_levels: int = ENGLISH_LEVELS) -> None:
        self.db = db
        self._english_levels = english_levels
        self._calculators = StudentCalculators(db)

    async def validate_can_request_english_course(self, student: Student, level: int) -> None:
        """Check that a student may request an English course of the given level.

        A student without a diagnostic level may only start at level 1.
        Everyone else may only enroll in their current level.

        Raises:
            ValidationError: If the level is out of range.
            BusinessRuleError: If the requirement is met, the level was passed
                or the level is not the student's current level.
            AlreadyInCourseError: If a course for the level is still active.
        """
        if not 1 <= level <= self._english_levels:
            raise ValidationError(f"English level must be between 1 and {self._english_levels}")

        status = await self._calculators.calculate_english_requirement_status(student.id)
        if status.meets_requirement:
            raise BusinessRuleError(
                "You have already met every English requirement: all levels are "
                "complete with a passing average. No more English courses are needed."
            )

        current = student.current_english_level
        if not current:
            if level > 1:
                raise BusinessRuleError(
                    "You must take the diagnostic exam before enrolling in an English "
                    "course above level 1"
                )
            return

        if await self._find_course_status(student.id, level, passed_only=True):
            raise BusinessRuleError(
                f"You have already completed English level {level}. You cannot enroll again."
            )

        if level != current:
            direction = "lower" if level < current else "higher"
            raise BusinessRuleError(
                f"You cannot enroll in a {direction} level ({level}) than your current "
                f"level ({current}). You can only enroll in level {current}."
            )

        active_status = await self._find_course_status(student.id, level)
        if active_status is not None:
            raise AlreadyInCourseError(active_course_message(active_status, level))

    async def validate_not_enrolled_in_group(self, student_id: str, group_id: str) -> None:
        result = await self.db.execute(
            select(AcademicActivity.id)
            .join(SpecialCourse, SpecialCourse.activity_id == AcademicActivity.id)
            .where(
                AcademicActivity.student_id == str(student_id),
                AcademicActivity.activity_type == ActivityType.SPECIAL_COURSE.value,
                AcademicActivity.deleted_at.is_(None),
                AcademicActivity.status.notin_(CLOSED_COURSE_STATUSES),
                SpecialCourse.group_id == str(group_id),
            )
            .limit(1)
        )
        if result.scalar_one_or_none() is not None:
            raise AlreadyInCourseError(
                "You are already enrolled in this course. "
                "You cannot enroll twice in the same course."
            )

    @staticmethod
    def validate_grade(grade: float) -> None:
        if not 0 <= grade <= 100:
            raise ValidationError("Grade must be between 0 and 100")

    @staticmethod
    def validate_payment_amount(amount: float | None) -> None:
        if amount is None or amount <= 0:
            raise ValidationError("Payment amount must be greater than 0")

    async def _find_course_status(
        self,
        student_id: str,
        level: int,
        passed_only: bool = False,
    ) -> str | None:
        """Status of a blocking English course for the level, if any."""
        stmt = (
            select(AcademicActivity.status)
            .join(SpecialCourse, SpecialCourse.activity_id == AcademicActivity.id)
            .where(
                AcademicActivity.student_id == str(student_id),
                AcademicActivity.activity_type == ActivityType.SPECIAL_COURSE.value,
                AcademicActivity.deleted_at.is_(None),
                SpecialCourse.course_type == CourseType.ENGLISH.value,
                SpecialCourse.english_level == level,
            )
        )
        if passed_only:
            stmt = stmt.where(AcademicActivity.status == ActivityStatus.PASSED.value)
        else:
            stmt = stmt.where(AcademicActivity.status.notin_(CLOSED_COURSE_STATUSES))

        result = await self.db.execute(stmt.limit(1))
        return result.scalar_one_or_none()
