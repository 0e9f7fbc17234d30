# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""English enrollment service for the legacy enrollments table.

This module provides the EnglishEnrollmentService that handles:
- Free diagnostic exam requests
- Paid English course requests with proof of payment
- Payment approval and rejection by administrators
- Diagnostic results and course completion, updating the student's level

Flow of a paid course:
    PENDING_PAYMENT -> (proof submitted) -> PAYMENT_PENDING_APPROVAL
    -> PAYMENT_APPROVED (seat taken) | CANCELLED (rejected)

Taking a seat invalidates cached group listings.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_admin.core.config import get_settings
from school_admin.domains.common.codes import next_code
from school_admin.domains.common.english import grade_to_english_level, required_levels
from school_admin.domains.common.validators import EntityValidators
from school_admin.domains.english_enrollment.validators import EnglishEnrollmentValidators
from school_admin.domains.enrollment.validators import (
    EnrollmentNotFoundError,
    EnrollmentValidators,
)
from school_admin.domains.errors import BusinessRuleError, DomainError, PermissionDeniedError
from school_admin.domains.group.service import CACHE_PREFIX as GROUP_CACHE_PREFIX
from school_admin.domains.student.calculators import StudentCalculators
from school_admin.infrastructure.cache import QueryCache
from school_admin.infrastructure.database.models import Enrollment, Group
from school_admin.infrastructure.database.models.base import new_uuid
from school_admin.models.common import EnrollmentStatus, EnrollmentType
from school_admin.models.enrollment import EnglishEnrollmentStatus, EnrollmentResponse
from school_admin.utils.datetime import utc_now

logger = logging.getLogger(__name__)

DIAGNOSTIC_CODE_PREFIX = "EXA"
COURSE_CODE_PREFIX = "ING"


class EnglishEnrollmentService:
    """Service for English requests made through legacy enrollments.

    Attributes:
        db: Async database session.
        cache: Optional query cache; group listings are invalidated when a
            request takes a seat.
    """

    def __init__(self, db: AsyncSession, cache: QueryCache | None = None) -> None:
        self.db = db
        self.cache = cache
        self._settings = get_settings().academic
        self._entities = EntityValidators(db)
        self._rules = EnglishEnrollmentValidators(db, self._settings.english_levels)
        self._calculators = StudentCalculators(db)

    async def request_diagnostic_exam(self, student_id: str, group_id: str) -> EnrollmentResponse:
        """Enroll a student in a free diagnostic exam.

        Raises:
            StudentNotFoundError: If the student does not exist.
            BusinessRuleError: If a diagnostic exam is already pending.
            GroupNotFoundError: If the group does not exist.
            NotEnglishGroupError: If the group is not an English group.
        """
        student = await self._entities.validate_student_exists(student_id)
        await self._rules.validate_can_request_diagnostic(student.id)

        group = await self._entities.validate_group_exists(group_id)
        self._rules.validate_group_is_english(group)

        now = utc_now()
        enrollment = Enrollment(
            id=new_uuid(),
            code=await next_code(self.db, Enrollment.code, DIAGNOSTIC_CODE_PREFIX),
            student_id=student.id,
            group_id=group.id,
            enrollment_type=EnrollmentType.DIAGNOSTIC_EXAM.value,
            status=EnrollmentStatus.ENROLLED.value,
            enrolled_at=now,
            attendances=0,
            absences=0,
            tardies=0,
            requires_payment=False,
            payment_approved=True,
            payment_approved_at=now,
        )
        group.current_enrollment += 1

        self.db.add(enrollment)
        await self.db.commit()
        await self.db.refresh(enrollment)
        await self._invalidate_group_cache()

        logger.info("Diagnostic exam requested: %s (student=%s)", enrollment.code, student.id)
        return EnrollmentResponse.model_validate(enrollment)

    async def request_english_course(
        self,
        student_id: str,
        group_id: str,
        level: int,
    ) -> EnrollmentResponse:
        """Request a paid English course. The seat is taken on payment approval.

        Raises:
            StudentNotFoundError: If the student does not exist.
            ValidationError: If the level is out of range.
            BusinessRuleError: If the student may not request this level.
            GroupNotFoundError: If the group does not exist.
            NotEnglishGroupError: If the group is not an English group.
        """
        student = await self._entities.validate_student_exists(student_id)
        await self._rules.validate_can_request_course(student, level)

        group = await self._entities.validate_group_exists(group_id)
        self._rules.validate_group_is_english(group)

        enrollment = Enrollment(
            id=new_uuid(),
            code=await next_code(self.db, Enrollment.code, COURSE_CODE_PREFIX),
            student_id=student.id,
            group_id=group.id,
            enrollment_type=EnrollmentType.ENGLISH_COURSE.value,
            status=EnrollmentStatus.PENDING_PAYMENT.value,
            enrolled_at=utc_now(),
            attendances=0,
            absences=0,
            tardies=0,
            english_level=level,
            requires_payment=True,
        )

        self.db.add(enrollment)
        await self.db.commit()
        await self.db.refresh(enrollment)

        logger.info(
            "English course requested: %s (student=%s, level=%d)",
            enrollment.code,
            student.id,
            level,
        )
        return EnrollmentResponse.model_validate(enrollment)

    async def submit_payment_proof(
        self,
        enrollment_id: str,
        student_id: str,
        amount: float,
        proof_url: str,
    ) -> EnrollmentResponse:
        """Attach a payment proof to the student's own pending course.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist.
            PermissionDeniedError: If it belongs to another student.
            BusinessRuleError: If it does not await a payment.
            ValidationError: If amount is not positive.
        """
        enrollment = await self._get_enrollment(enrollment_id)

        if enrollment.student_id != str(student_id):
            raise PermissionDeniedError("You can only submit payments for your own enrollments")
        if not enrollment.requires_payment:
            raise BusinessRuleError("This enrollment does not require payment")
        if enrollment.status != EnrollmentStatus.PENDING_PAYMENT.value:
            raise BusinessRuleError("This enrollment is not pending payment")
        self._rules.validate_payment_amount(amount)

        enrollment.payment_amount = Decimal(str(amount))
        enrollment.payment_proof_url = proof_url
        enrollment.payment_date = utc_now()
        enrollment.status = EnrollmentStatus.PAYMENT_PENDING_APPROVAL.value
        enrollment.updated_by = str(student_id)

        await self.db.commit()
        await self.db.refresh(enrollment)

        logger.info("Payment proof submitted: %s (amount=%s)", enrollment.code, amount)
        return EnrollmentResponse.model_validate(enrollment)

    async def approve_payment(self, enrollment_id: str, approved_by: str) -> EnrollmentResponse:
        """Approve a submitted payment and take the seat in the group."""
        enrollment = await self._get_enrollment(enrollment_id)
        self._require_pending_approval(enrollment)

        enrollment.payment_approved = True
        enrollment.payment_approved_at = utc_now()
        enrollment.status = EnrollmentStatus.PAYMENT_APPROVED.value
        enrollment.updated_by = approved_by
        if enrollment.group is not None:
            enrollment.group.current_enrollment += 1

        await self.db.commit()
        await self.db.refresh(enrollment)
        if enrollment.group is not None:
            await self._invalidate_group_cache()

        logger.info("Payment approved: %s by %s", enrollment.code, approved_by)
        return EnrollmentResponse.model_validate(enrollment)

    async def reject_payment(
        self,
        enrollment_id: str,
        reason: str,
        rejected_by: str,
    ) -> EnrollmentResponse:
        """Reject a submitted payment. The request is cancelled."""
        enrollment = await self._get_enrollment(enrollment_id)
        self._require_pending_approval(enrollment)

        enrollment.payment_approved = False
        enrollment.status = EnrollmentStatus.CANCELLED.value
        enrollment.remarks = reason
        enrollment.updated_by = rejected_by

        await self.db.commit()
        await self.db.refresh(enrollment)

        logger.info("Payment rejected: %s by %s (%s)", enrollment.code, rejected_by, reason)
        return EnrollmentResponse.model_validate(enrollment)

    async def process_diagnostic_result(
        self,
        enrollment_id: str,
        grade: float,
        processed_by: str,
    ) -> EnrollmentResponse:
        """Grade a diagnostic exam and place the student in an English level.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist.
            BusinessRuleError: If it is not a diagnostic exam.
            ValidationError: If grade is outside 0-100.
        """
        enrollment = await self._get_enrollment(enrollment_id)
        if enrollment.enrollment_type != EnrollmentType.DIAGNOSTIC_EXAM.value:
            raise BusinessRuleError("This enrollment is not a diagnostic exam")
        EnrollmentValidators.validate_grade_range(grade, "grade")

        passed = self._grade_enrollment(enrollment, grade, processed_by)

        student = await self._entities.validate_student_exists(enrollment.student_id)
        student.current_english_level = grade_to_english_level(grade)
        student.diagnostic_exam_date = utc_now()
        student.english_percentage = grade
        student.meets_english_requirement = passed

        await self._recalculate(enrollment.student_id)
        await self.db.commit()
        await self.db.refresh(enrollment)

        logger.info(
            "Diagnostic result processed: %s (grade=%s, level=%d)",
            enrollment.code,
            grade,
            student.current_english_level,
        )
        return EnrollmentResponse.model_validate(enrollment)

    async def process_course_completion(
        self,
        enrollment_id: str,
        grade: float,
        processed_by: str,
    ) -> EnrollmentResponse:
        """Record the final grade of an English course.

        A passed course raises the student's certified level.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist.
            BusinessRuleError: If it is not an English course with a level.
            ValidationError: If grade is outside 0-100.
        """
        enrollment = await self._get_enrollment(enrollment_id)
        if enrollment.enrollment_type != EnrollmentType.ENGLISH_COURSE.value:
            raise BusinessRuleError("This enrollment is not an English course")
        if enrollment.english_level is None:
            raise BusinessRuleError("This enrollment has no English level")
        EnrollmentValidators.validate_grade_range(grade, "grade")

        passed = self._grade_enrollment(enrollment, grade, processed_by)

        if passed:
            student = await self._entities.validate_student_exists(enrollment.student_id)
            student.certified_english_level = max(
                student.certified_english_level or 0, enrollment.english_level
            )
            student.english_percentage = grade
            student.meets_english_requirement = passed

        await self._recalculate(enrollment.student_id)
        await self.db.commit()
        await self.db.refresh(enrollment)

        logger.info(
            "English course completed: %s (grade=%s, passed=%s)",
            enrollment.code,
            grade,
            passed,
        )
        return EnrollmentResponse.model_validate(enrollment)

    async def get_student_english_status(self, student_id: str) -> EnglishEnrollmentStatus:
        """Summarize diagnostic exams, English courses and passed levels."""
        student = await self._entities.validate_student_exists(student_id)

        result = await self.db.execute(
            select(Enrollment)
            .where(
                Enrollment.student_id == student.id,
                or_(
                    Enrollment.enrollment_type == EnrollmentType.DIAGNOSTIC_EXAM.value,
                    Enrollment.enrollment_type == EnrollmentType.ENGLISH_COURSE.value,
                ),
            )
            .order_by(Enrollment.enrolled_at.desc())
        )
        enrollments = result.scalars().all()

        exams = [e for e in enrollments if e.enrollment_type == EnrollmentType.DIAGNOSTIC_EXAM.value]
        courses = [e for e in enrollments if e.enrollment_type == EnrollmentType.ENGLISH_COURSE.value]

        levels = required_levels(self._settings.english_levels)
        completed = sorted(
            {
                e.english_level
                for e in courses
                if e.status == EnrollmentStatus.PASSED.value and e.english_level in levels
            }
        )

        return EnglishEnrollmentStatus(
            student_id=student.id,
            current_english_level=student.current_english_level,
            certified_english_level=student.certified_english_level,
            english_percentage=student.english_percentage,
            meets_english_requirement=bool(student.meets_english_requirement),
            diagnostic_exam_date=student.diagnostic_exam_date,
            diagnostic_exams=[EnrollmentResponse.model_validate(e) for e in exams],
            english_courses=[EnrollmentResponse.model_validate(e) for e in courses],
            completed_levels=completed,
            missing_levels=[lvl for lvl in levels if lvl not in completed],
            progress=round(len(completed) / len(levels) * 100, 2),
        )

    async def get_pending_payment_approvals(self) -> list[EnrollmentResponse]:
        """Enrollments waiting for an administrator to review their payment."""
        result = await self.db.execute(
            select(Enrollment)
            .where(Enrollment.status == EnrollmentStatus.PAYMENT_PENDING_APPROVAL.value)
            .order_by(Enrollment.enrolled_at.desc())
        )
        return [EnrollmentResponse.model_validate(e) for e in result.scalars().all()]

    def _grade_enrollment(self, enrollment: Enrollment, grade: float, processed_by: str) -> bool:
        passed = grade >= self._settings.passing_grade
        enrollment.final_grade = grade
        enrollment.grade = grade
        enrollment.passed = passed
        enrollment.pass_date = utc_now() if passed else None
        enrollment.status = (
            EnrollmentStatus.PASSED.value if passed else EnrollmentStatus.FAILED.value
        )
        enrollment.updated_by = processed_by
        return passed

    async def _invalidate_group_cache(self) -> None:
        if self.cache is not None:
            await self.cache.invalidate_prefix(GROUP_CACHE_PREFIX)

    async def _recalculate(self, student_id: str) -> None:
        """Recalculate averages. Failures are logged and do not abort the result."""
        try:
            async with self.db.begin_nested():
                await self._calculators.recalculate_student_averages(student_id)
        except (DomainError, SQLAlchemyError) as e:
            logger.error("Error recalculating averages for student %s: %s", student_id, e)

    @staticmethod
    def _require_pending_approval(enrollment: Enrollment) -> None:
        if enrollment.status != EnrollmentStatus.PAYMENT_PENDING_APPROVAL.value:
            raise BusinessRuleError("This enrollment is not awaiting payment approval")

    async def _get_enrollment(self, enrollment_id: str) -> Enrollment:
        result = await self.db.execute(
            select(Enrollment)
            .options(selectinload(Enrollment.group).selectinload(Group.subject))
            .where(Enrollment.id == str(enrollment_id))
        )
        enrollment = result.scalar_one_or_none()
        if enrollment is None:
            raise EnrollmentNotFoundError("Enrollment not found")
        return enrollment
