# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rules for exam activities."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.domains.common.english import ENGLISH_LEVELS
from school_admin.domains.errors import BusinessRuleError, NotFoundError, ValidationError
from school_admin.domains.student.calculators import StudentCalculators
from school_admin.infrastructure.database.models import AcademicActivity, Exam
from school_admin.models.common import ActivityStatus, ActivityType, ExamType

# A diagnostic exam in any other status blocks a new one
CLOSED_EXAM_STATUSES = (
    ActivityStatus.FAILED.value,
    ActivityStatus.CANCELLED.value,
    ActivityStatus.DROPPED.value,
)

_ACTIVE_EXAM_MESSAGES = {
    ActivityStatus.ENROLLED.value: "You are already enrolled in",
    ActivityStatus.IN_PROGRESS.value: "You are already taking",
    ActivityStatus.PENDING_PAYMENT.value: "You already have a pending payment request for",
    ActivityStatus.PAYMENT_PENDING_APPROVAL.value: (
        "You already have a payment awaiting approval for"
    ),
    ActivityStatus.PASSED.value: "You already completed",
}


class ExamNotFoundError(NotFoundError):
    """Raised when an exam activity is not found."""

    pass


class ActiveDiagnosticExamError(BusinessRuleError):
    """Raised when the student already has an active diagnostic exam."""

    pass


def active_exam_message(status: str) -> str:
    prefix = _ACTIVE_EXAM_MESSAGES.get(status, "You already have an active request for")
    return f"{prefix} a diagnostic exam. You cannot enroll again."


class ExamValidators:
    """Validation rules for exams.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession, english_levels: int = ENGLISH_LEVELS) -> None:
        self.db = db
        self._english_levels = english_levels
        self._calculators = StudentCalculators(db)

    async def validate_can_request_diagnostic(self, student_id: str) -> None:
        """Check that a student may register for a diagnostic exam.

        Raises:
            StudentNotFoundError: If the student does not exist.
            BusinessRuleError: If the English requirement is already met.
            ActiveDiagnosticExamError: If another diagnostic exam is active.
        """
        status = await self._calculators.calculate_english_requirement_status(student_id)
        if status.meets_requirement:
            raise BusinessRuleError(
                "You have already met every English requirement: all levels are "
                "complete with a passing average. No diagnostic exam is needed."
            )

        result = await self.db.execute(
            select(AcademicActivity.status)
            .join(Exam, Exam.activity_id == AcademicActivity.id)
            .where(
                AcademicActivity.student_id == str(student_id),
                AcademicActivity.activity_type == ActivityType.EXAM.value,
                AcademicActivity.deleted_at.is_(None),
                AcademicActivity.status.notin_(CLOSED_EXAM_STATUSES),
                Exam.exam_type == ExamType.DIAGNOSTIC.value,
            )
            .order_by(AcademicActivity.enrolled_at.desc())
            .limit(1)
        )
        active_status = result.scalar_one_or_none()
        if active_status is not None:
            raise ActiveDiagnosticExamError(active_exam_message(active_status))

    @staticmethod
    def validate_result(result: float) -> None:
        if not 0 <= result <= 100:
            raise ValidationError("Result must be between 0 and 100")

    def validate_english_level(self, level: int | None) -> None:
        """Level 0 means no level is credited; None means derive it from the grade."""
        if level is not None and not 0 <= level <= self._english_levels:
            raise ValidationError(f"English level must be between 0 and {self._english_levels}")

    def validate_level_grades(self, level_grades: dict[int, float] | None) -> None:
        for level, grade in (level_grades or {}).items():
            if not 1 <= int(level) <= self._english_levels:
                raise ValidationError(f"Unknown English level in level grades: {level}")
            if not 0 <= grade <= 100:
                raise ValidationError(f"Grade for level {level} must be between 0 and 100")

    @staticmethod
    def validate_payment_amount(amount: float | None) -> None:
        if amount is None or amount <= 0:
            raise ValidationError("Payment amount must be greater than 0")
