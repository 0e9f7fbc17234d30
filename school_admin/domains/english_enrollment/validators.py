# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rules for the legacy English flow (diagnostic exams and paid courses)."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.domains.common.english import ENGLISH_LEVELS, is_english_subject
from school_admin.domains.errors import BusinessRuleError, ValidationError
from school_admin.infrastructure.database.models import Enrollment, Group, Student
from school_admin.models.common import EnrollmentStatus, EnrollmentType

# A diagnostic in one of these statuses blocks a new request
PENDING_DIAGNOSTIC_STATUSES = (
    EnrollmentStatus.ENROLLED.value,
    EnrollmentStatus.IN_PROGRESS.value,
    EnrollmentStatus.PENDING_PAYMENT.value,
    EnrollmentStatus.PAYMENT_PENDING_APPROVAL.value,
)

PENDING_PAYMENT_STATUSES = (
    EnrollmentStatus.PENDING_PAYMENT.value,
    EnrollmentStatus.PAYMENT_PENDING_APPROVAL.value,
)


class NotEnglishGroupError(BusinessRuleError):
    """Raised when the English flow is used with a non-English group."""

    pass


class EnglishEnrollmentValidators:
    """Validation rules for English requests.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession, english_levels: int = ENGLISH_LEVELS) -> None:
        self.db = db
        self._english_levels = english_levels

    async def validate_can_request_diagnostic(self, student_id: str) -> None:
        """Reject the request while another diagnostic exam is pending."""
        result = await self.db.execute(
            select(Enrollment.id)
            .where(
                Enrollment.student_id == str(student_id),
                Enrollment.enrollment_type == EnrollmentType.DIAGNOSTIC_EXAM.value,
                Enrollment.status.in_(PENDING_DIAGNOSTIC_STATUSES),
            )
            .limit(1)
        )
        if result.scalar_one_or_none() is not None:
            raise BusinessRuleError(
                "You already have a pending diagnostic exam. "
                "Finish it before requesting a new one."
            )

    async def validate_can_request_course(self, student: Student, level: int) -> None:
        """Check that the student may request the given English level.

        Raises:
            ValidationError: If the level is out of range.
            BusinessRuleError: If the student has no diagnostic level, already
                passed the level, is above it, or has a pending payment for it.
        """
        if not 1 <= level <= self._english_levels:
            raise ValidationError(f"English level must be between 1 and {self._english_levels}")

        if not student.current_english_level:
            raise BusinessRuleError(
                "You must take the diagnostic exam before enrolling in an English course"
            )

        if await self._find_course(student.id, level, (EnrollmentStatus.PASSED.value,)):
            raise BusinessRuleError(f"You have already completed English level {level}")

        if level < student.current_english_level:
            raise BusinessRuleError(
                f"You cannot enroll in a level ({level}) lower than your current level "
                f"({student.current_english_level})"
            )

        if await self._find_course(student.id, level, PENDING_PAYMENT_STATUSES):
            raise BusinessRuleError(f"You already have a pending payment request for level {level}")

    @staticmethod
    def validate_group_is_english(group: Group) -> None:
        subject = group.subject
        if subject is None:
            raise BusinessRuleError("Group subject information not found")
        if not (group.is_english_course or is_english_subject(subject.code, subject.name)):
            raise NotEnglishGroupError("This group is not an English group")

    @staticmethod
    def validate_payment_amount(amount: float | None) -> None:
        if amount is None or amount <= 0:
            raise ValidationError("Payment amount must be greater than 0")

    async def _find_course(
        self,
        student_id: str,
        level: int,
        statuses: tuple[str, ...],
    ) -> str | None:
        result = await self.db.execute(
            select(Enrollment.id)
            .where(
                Enrollment.student_id == str(student_id),
                Enrollment.enrollment_type == EnrollmentType.ENGLISH_COURSE.value,
                Enrollment.english_level == level,
                Enrollment.status.in_(statuses),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()
