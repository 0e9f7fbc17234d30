# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam service for activity based exams.

This module provides the ExamService that handles:
- Exam registration, optionally inside a diagnostic exam period
- Payment approval and rejection by administrators
- Result processing, including English placement from diagnostic exams
- The English status of a student built from exams and courses

Flow of a paid diagnostic exam:
    PENDING_PAYMENT -> (payment approved) -> ENROLLED -> PASSED | EVALUATED

A diagnostic result places the student in an English level. Every level
below it is credited as a passed special course marked
``completed_by_diagnostic``; a perfect score credits all levels.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_admin.core.config import get_settings
from school_admin.domains.academic_activity.service import AcademicActivityService
from school_admin.domains.common.english import (
    PERFECT_SCORE,
    grade_to_english_level,
    required_levels,
)
from school_admin.domains.common.pagination import paginate
from school_admin.domains.common.validators import EntityValidators
from school_admin.domains.errors import BusinessRuleError, DomainError
from school_admin.domains.exam.validators import ExamNotFoundError, ExamValidators
from school_admin.domains.exam_period.service import CACHE_PREFIX as EXAM_PERIOD_CACHE_PREFIX
from school_admin.domains.exam_period.validators import ExamPeriodValidators
from school_admin.domains.student.calculators import StudentCalculators
from school_admin.infrastructure.cache import QueryCache
from school_admin.infrastructure.database.models import (
    AcademicActivity,
    Exam,
    Group,
    SpecialCourse,
    Student,
)
from school_admin.infrastructure.database.models.base import new_uuid
from school_admin.models.common import (
    ActivityStatus,
    ActivityType,
    CourseType,
    ExamType,
    HistoryAction,
    PageParams,
    PaginatedResponse,
    PaginationMeta,
)
from school_admin.models.exam import (
    EnglishCourseRecord,
    ExamCreateRequest,
    ExamFilters,
    ExamResponse,
    ExamResultResponse,
    StudentEnglishStatus,
)
from school_admin.models.student import EnglishRequirementStatus
from school_admin.utils.datetime import utc_now

logger = logging.getLogger(__name__)

# A diagnostic exam in one of these statuses is still waiting for the student
_PENDING_EXAM_STATUSES = (
    ActivityStatus.PENDING_PAYMENT.value,
    ActivityStatus.PAYMENT_PENDING_APPROVAL.value,
)


def _amount(value: Decimal | None) -> float | None:
    return None if value is None else float(value)


class ExamService:
    """Service for exam activities.

    Attributes:
        db: Async database session.
        cache: Optional query cache; period listings are invalidated when
            a registration changes a period's occupancy.
    """

    def __init__(self, db: AsyncSession, cache: QueryCache | None = None) -> None:
        self.db = db
        self.cache = cache
        self._settings = get_settings().academic
        self._entities = EntityValidators(db)
        self._rules = ExamValidators(db, self._settings.english_levels)
        self._periods = ExamPeriodValidators(db)
        self._activities = AcademicActivityService(db)
        self._calculators = StudentCalculators(db)

    # =========================================================================
    # Registration and payment
    # =========================================================================

    async def create_exam(
        self,
        request: ExamCreateRequest,
        created_by: str | None = None,
    ) -> ExamResponse:
        """Register a student for an exam.

        When a period is given its payment settings decide the initial
        status, and the student takes one of its seats.

        Raises:
            StudentNotFoundError: If the student does not exist.
            BusinessRuleError: If a diagnostic exam is not allowed, or the
                period is closed or outside its registration window.
            ActiveDiagnosticExamError: If a diagnostic exam is already active.
            SubjectNotFoundError: If the subject does not exist.
            ExamPeriodNotFoundError: If the period does not exist.
            ExamPeriodFullError: If the period has no seats left.
        """
        student = await self._entities.validate_student_exists(request.student_id)
        self._rules.validate_english_level(request.english_level)

        if request.exam_type == ExamType.DIAGNOSTIC:
            await self._rules.validate_can_request_diagnostic(student.id)

        subject = None
        if request.subject_id:
            subject = await self._entities.validate_subject_exists(request.subject_id)

        now = utc_now()
        period = None
        if request.period_id:
            period = await self._periods.validate_period_exists(request.period_id)
            self._periods.validate_open_for_registration(period, now)
            self._periods.validate_capacity(period)

        requires_payment = bool(period and period.requires_payment)
        status = ActivityStatus.PENDING_PAYMENT if requires_payment else ActivityStatus.ENROLLED

        activity = AcademicActivity(
            id=new_uuid(),
            code=await self._activities.generate_activity_code(ActivityType.EXAM),
            student_id=student.id,
            activity_type=ActivityType.EXAM.value,
            status=status.value,
            enrolled_at=now,
            created_by=created_by,
        )
        exam = Exam(
            id=new_uuid(),
            activity_id=activity.id,
            exam_type=request.exam_type.value,
            subject_id=subject.id if subject else None,
            period_id=period.id if period else None,
            english_level=request.english_level,
            requires_payment=requires_payment,
            payment_amount=period.cost if period else None,
            payment_approved=None if requires_payment else True,
        )
        exam.subject = subject
        exam.period = period
        activity.exam = exam

        if period is not None:
            period.current_enrollment += 1

        self.db.add_all([activity, exam])
        self._activities.record_history(
            activity.id,
            HistoryAction.CREATED,
            notes=f"{request.exam_type.value} exam created",
            performed_by=created_by,
        )
        await self.db.commit()
        if period is not None:
            await self._invalidate_period_cache()

        logger.info(
            "Exam created: %s (student=%s, type=%s, status=%s)",
            activity.code,
            student.id,
            exam.exam_type,
            activity.status,
        )
        return self._to_response(activity)

    async def approve_payment(
        self,
        exam_id: str,
        amount: float,
        remarks: str | None = None,
        approved_by: str | None = None,
    ) -> ExamResponse:
        """Record a received payment and enroll the student in the exam.

        Args:
            exam_id: ID of the exam activity.
            amount: Amount received, greater than zero.
            remarks: Optional note stored on the activity.
            approved_by: ID of the approving user.

        Raises:
            ValidationError: If the amount is not positive.
            ExamNotFoundError: If the exam does not exist.
            BusinessRuleError: If the exam is not waiting for a payment.
        """
        self._rules.validate_payment_amount(amount)
        activity = await self._get_exam_activity(exam_id)
        exam = activity.exam

        if activity.status != ActivityStatus.PENDING_PAYMENT.value:
            raise BusinessRuleError("This exam is not pending payment")
        if not exam.requires_payment:
            raise BusinessRuleError("This exam does not require payment")

        exam.payment_amount = Decimal(str(amount))
        exam.payment_approved = True
        exam.payment_date = utc_now()
        exam.payment_approved_by = approved_by

        self._activities.apply_status(activity, ActivityStatus.ENROLLED, approved_by)
        if remarks:
            activity.remarks = remarks
        self._activities.record_history(
            activity.id,
            HistoryAction.PAYMENT_APPROVED,
            field_name="payment_amount",
            new_value=exam.payment_amount,
            notes=remarks,
            performed_by=approved_by,
        )
        await self.db.commit()

        logger.info("Exam payment approved: %s (amount=%s)", activity.code, exam.payment_amount)
        return self._to_response(activity)

    async def reject_payment(
        self,
        exam_id: str,
        reason: str,
        rejected_by: str | None = None,
    ) -> ExamResponse:
        """Reject the payment of an exam. The activity stays PENDING_PAYMENT.

        Raises:
            ExamNotFoundError: If the exam does not exist.
            BusinessRuleError: If the exam is not pending payment.
        """
        activity = await self._get_exam_activity(exam_id)
        if activity.status != ActivityStatus.PENDING_PAYMENT.value:
            raise BusinessRuleError("This exam must be pending payment to reject it")

        exam = activity.exam
        exam.payment_approved = False
        exam.payment_amount = None
        activity.remarks = f"Payment rejected. Reason: {reason}"
        activity.updated_by = rejected_by

        self._activities.record_history(
            activity.id,
            HistoryAction.PAYMENT_REJECTED,
            notes=reason,
            performed_by=rejected_by,
        )
        await self.db.commit()

        logger.info("Exam payment rejected: %s (%s)", activity.code, reason)
        return self._to_response(activity)

    # =========================================================================
    # Results
    # =========================================================================

    async def process_result(
        self,
        exam_id: str,
        result: float,
        english_level: int | None = None,
        level_grades: dict[int, float] | None = None,
        processed_by: str | None = None,
    ) -> ExamResultResponse:
        """Grade an exam and apply its consequences.

        A diagnostic exam places the student in an English level. A passing
        result with level 0 or no level credits nothing, and a failing one
        is placed by its score. Placement and average failures roll back
        their own savepoint, are logged and do not undo the recorded result.

        Args:
            exam_id: ID of the exam activity.
            result: Score from 0 to 100.
            english_level: Level to place the student in, 0 to credit none.
                Falls back to the exam's level. Without either, only a
                failing score places the student.
            level_grades: Optional grade per credited level.
            processed_by: ID of the grading user.

        Raises:
            ValidationError: If the result, level or level grades are invalid.
            ExamNotFoundError: If the exam does not exist.
        """
        self._rules.validate_result(result)
        self._rules.validate_english_level(english_level)
        self._rules.validate_level_grades(level_grades)

        activity = await self._get_exam_activity(exam_id)
        exam = activity.exam
        now = utc_now()
        is_diagnostic = exam.exam_type == ExamType.DIAGNOSTIC.value
        passed = result >= self._settings.passing_grade

        old_result = exam.result
        exam.result = result
        exam.evaluated_at = now
        exam.evaluated_by = processed_by
        exam.exam_date = exam.exam_date or now

        if passed:
            new_status = ActivityStatus.PASSED
        elif is_diagnostic:
            new_status = ActivityStatus.EVALUATED
        else:
            new_status = ActivityStatus.FAILED
        self._activities.apply_status(activity, new_status, processed_by)

        is_perfect = is_diagnostic and result >= PERFECT_SCORE
        level = english_level if english_level is not None else exam.english_level

        if not is_diagnostic:
            message = f"Exam result recorded. Status: {new_status.value}"
            if exam.subject_id:
                await self._recalculate(activity.student_id)
        elif not level and passed:
            student = await self._entities.validate_student_exists(activity.student_id)
            student.diagnostic_exam_date = now
            student.english_percentage = result
            message = "Result recorded. No English level was credited."
        else:
            placement = self.placement_level(result, level)
            exam.assigned_level = placement
            try:
                async with self.db.begin_nested():
                    await self.update_student_english_level(
                        activity.student_id,
                        result,
                        exam.id,
                        level=placement,
                        level_grades=level_grades,
                        performed_by=processed_by,
                    )
            except (DomainError, SQLAlchemyError) as e:
                logger.error(
                    "Error updating English level for student %s: %s", activity.student_id, e
                )
            await self._recalculate(activity.student_id)
            message = self._placement_message(placement, is_perfect)

        self._activities.record_history(
            activity.id,
            HistoryAction.GRADE_UPDATED,
            field_name="result",
            old_value=old_result,
            new_value=result,
            performed_by=processed_by,
        )
        await self.db.commit()

        logger.info(
            "Exam result processed: %s (result=%s, status=%s)",
            activity.code,
            result,
            activity.status,
        )
        return ExamResultResponse(
            exam=self._to_response(activity),
            is_perfect_score=is_perfect,
            message=message,
        )

    def placement_level(self, grade: float, level: int | None = None) -> int:
        """English level a diagnostic grade places the student in."""
        total = self._settings.english_levels
        if grade >= PERFECT_SCORE:
            return total
        return min(level or grade_to_english_level(grade), total)

    async def update_student_english_level(
        self,
        student_id: str,
        grade: float,
        exam_id: str,
        level: int | None = None,
        level_grades: dict[int, float] | None = None,
        performed_by: str | None = None,
    ) -> Student:
        """Place a student in an English level and credit the levels below it.

        Each credited level becomes a PASSED English special course with no
        group and no payment. Levels the student already has are skipped.
        Changes are flushed, not committed.

        Args:
            student_id: Student to update.
            grade: Diagnostic exam score.
            exam_id: Exam the credit comes from.
            level: Placement level. Derived from the grade when omitted.
            level_grades: Optional grade per credited level; the exam grade
                is used for the others.
            performed_by: ID of the user processing the exam.

        Returns:
            The updated student.
        """
        student = await self._entities.validate_student_exists(student_id)
        total = self._settings.english_levels
        now = utc_now()
        is_perfect = grade >= PERFECT_SCORE
        placement = self.placement_level(grade, level)

        student.current_english_level = placement
        student.diagnostic_exam_date = now
        student.english_percentage = grade
        if is_perfect:
            student.meets_english_requirement = True

        credited = required_levels(total) if is_perfect else list(range(1, placement))
        if credited:
            grades = {int(k): float(v) for k, v in (level_grades or {}).items()}
            existing = await self._existing_english_levels(student.id, credited)
            missing = [lvl for lvl in credited if lvl not in existing]
            codes = await self._activities.generate_activity_codes(
                ActivityType.SPECIAL_COURSE, len(missing)
            )
            for lvl, code in zip(missing, codes):
                self._credit_level(
                    student.id, lvl, code, grades.get(lvl, grade), exam_id, performed_by
                )

            student.certified_english_level = max(student.certified_english_level or 0, credited[-1])
            await self.db.flush()

            logger.info(
                "Credited English levels %s to student %s from exam %s",
                missing,
                student.id,
                exam_id,
            )

        student.english_average = await self._calculators.calculate_english_average(student.id)
        return student

    def _credit_level(
        self,
        student_id: str,
        level: int,
        code: str,
        grade: float,
        exam_id: str,
        performed_by: str | None,
    ) -> None:
        now = utc_now()
        activity = AcademicActivity(
            id=new_uuid(),
            code=code,
            student_id=student_id,
            activity_type=ActivityType.SPECIAL_COURSE.value,
            status=ActivityStatus.PASSED.value,
            enrolled_at=now,
            completed_at=now,
            created_by=performed_by,
        )
        course = SpecialCourse(
            id=new_uuid(),
            activity_id=activity.id,
            course_type=CourseType.ENGLISH.value,
            english_level=level,
            group_id=None,
            grade=grade,
            passed=True,
            requires_payment=False,
            payment_approved=True,
            completed_by_diagnostic=True,
            source_exam_id=exam_id,
        )
        self.db.add_all([activity, course])
        self._activities.record_history(
            activity.id,
            HistoryAction.CREATED,
            notes=f"English level {level} credited by diagnostic exam",
            performed_by=performed_by,
        )

    async def _existing_english_levels(self, student_id: str, levels: list[int]) -> set[int]:
        result = await self.db.execute(
            select(SpecialCourse.english_level)
            .join(AcademicActivity, SpecialCourse.activity_id == AcademicActivity.id)
            .where(
                AcademicActivity.student_id == str(student_id),
                AcademicActivity.activity_type == ActivityType.SPECIAL_COURSE.value,
                AcademicActivity.deleted_at.is_(None),
                SpecialCourse.course_type == CourseType.ENGLISH.value,
                SpecialCourse.english_level.in_(levels),
            )
        )
        return {lvl for lvl in result.scalars().all() if lvl is not None}

    def _placement_message(self, placement: int, is_perfect: bool) -> str:
        total = self._settings.english_levels
        if is_perfect:
            return "Perfect score. Every English level was credited and the requirement is met."
        if placement == total:
            return (
                f"Diagnostic processed. Levels 1-{total - 1} were credited; "
                f"the student can enroll in level {total} as a regular course."
            )
        return f"Diagnostic processed. The student was placed in English level {placement}."

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_exam(self, exam_id: str) -> ExamResponse:
        activity = await self._get_exam_activity(exam_id)
        return self._to_response(activity)

    async def get_exams_by_student(self, student_id: str) -> list[ExamResponse]:
        """Every non-deleted exam of a student, newest first."""
        result = await self.db.execute(
            self._exam_query()
            .where(AcademicActivity.student_id == str(student_id))
            .order_by(AcademicActivity.enrolled_at.desc())
        )
        return [self._to_response(a) for a in result.scalars().all()]

    async def list_exams(
        self,
        filters: ExamFilters | None = None,
        params: PageParams | None = None,
    ) -> PaginatedResponse[ExamResponse]:
        filters = filters or ExamFilters()
        params = (params or PageParams(limit=self._settings.default_page_size)).clamped(
            self._settings.max_page_size
        )

        stmt = self._exam_query()
        if filters.exam_type is not None:
            stmt = stmt.where(Exam.exam_type == filters.exam_type.value)
        if filters.status is not None:
            stmt = stmt.where(AcademicActivity.status == filters.status.value)
        if filters.student_id:
            stmt = stmt.where(AcademicActivity.student_id == filters.student_id)
        if filters.period_id:
            stmt = stmt.where(Exam.period_id == filters.period_id)
        stmt = stmt.order_by(AcademicActivity.enrolled_at.desc())

        activities, total = await paginate(self.db, stmt, params)
        return PaginatedResponse[ExamResponse](
            items=[self._to_response(a) for a in activities],
            pagination=PaginationMeta.build(params.page, params.limit, total),
        )

    async def get_student_english_status(self, student_id: str) -> StudentEnglishStatus:
        """Collect diagnostic exams, English courses and the requirement status.

        Courses credited by a diagnostic exam count toward completed levels
        but are not listed as courses.

        Raises:
            StudentNotFoundError: If the student does not exist.
        """
        student = await self._entities.validate_student_exists(student_id)

        exam_result = await self.db.execute(
            self._exam_query()
            .where(
                AcademicActivity.student_id == student.id,
                Exam.exam_type == ExamType.DIAGNOSTIC.value,
            )
            .order_by(AcademicActivity.enrolled_at.desc())
        )
        diagnostic_exams = [self._to_response(a) for a in exam_result.scalars().all()]

        course_result = await self.db.execute(
            select(AcademicActivity)
            .join(SpecialCourse, SpecialCourse.activity_id == AcademicActivity.id)
            .options(
                selectinload(AcademicActivity.special_course)
                .selectinload(SpecialCourse.group)
                .selectinload(Group.subject)
            )
            .where(
                AcademicActivity.student_id == student.id,
                AcademicActivity.activity_type == ActivityType.SPECIAL_COURSE.value,
                AcademicActivity.deleted_at.is_(None),
                SpecialCourse.course_type == CourseType.ENGLISH.value,
            )
            .order_by(AcademicActivity.enrolled_at.desc())
        )
        course_activities = list(course_result.scalars().all())

        try:
            requirement = await self._calculators.calculate_english_requirement_status(student.id)
        except (DomainError, SQLAlchemyError) as e:
            logger.error("Error calculating English requirement for %s: %s", student.id, e)
            requirement = self._fallback_requirement(student, course_activities)

        pending_exam = next((e for e in diagnostic_exams if self._is_pending(e)), None)

        return StudentEnglishStatus(
            student_id=student.id,
            student_number=student.student_number,
            full_name=student.full_name,
            current_english_level=student.current_english_level,
            certified_english_level=student.certified_english_level,
            english_percentage=student.english_percentage,
            diagnostic_exam_date=student.diagnostic_exam_date,
            latest_diagnostic=diagnostic_exams[0] if diagnostic_exams else None,
            diagnostic_exams=diagnostic_exams,
            english_courses=[
                self._to_course_record(a)
                for a in course_activities
                if not a.special_course.completed_by_diagnostic
            ],
            has_pending_exam=pending_exam is not None,
            pending_exam=pending_exam,
            requirement=requirement,
        )

    def _fallback_requirement(
        self,
        student: Student,
        course_activities: list[AcademicActivity],
    ) -> EnglishRequirementStatus:
        passed_levels = [
            a.special_course.english_level
            for a in course_activities
            if a.status == ActivityStatus.PASSED.value
        ]
        return StudentCalculators.build_requirement_status(
            passed_levels,
            student.english_average,
            total_levels=self._settings.english_levels,
            minimum_average=self._settings.english_minimum_average,
        )

    @staticmethod
    def _is_pending(exam: ExamResponse) -> bool:
        if exam.status.value in _PENDING_EXAM_STATUSES:
            return True
        return exam.status == ActivityStatus.ENROLLED and exam.result is None

    # =========================================================================
    # Helpers
    # =========================================================================

    def _exam_query(self):
        return (
            select(AcademicActivity)
            .join(Exam, Exam.activity_id == AcademicActivity.id)
            .options(
                selectinload(AcademicActivity.exam).selectinload(Exam.subject),
                selectinload(AcademicActivity.exam).selectinload(Exam.period),
            )
            .where(
                AcademicActivity.activity_type == ActivityType.EXAM.value,
                AcademicActivity.deleted_at.is_(None),
            )
        )

    async def _get_exam_activity(self, exam_id: str) -> AcademicActivity:
        result = await self.db.execute(
            select(AcademicActivity)
            .options(
                selectinload(AcademicActivity.exam).selectinload(Exam.subject),
                selectinload(AcademicActivity.exam).selectinload(Exam.period),
            )
            .where(
                AcademicActivity.id == str(exam_id),
                AcademicActivity.deleted_at.is_(None),
            )
        )
        activity = result.scalar_one_or_none()
        if activity is None or activity.exam is None:
            raise ExamNotFoundError("Exam not found")
        if activity.activity_type != ActivityType.EXAM.value:
            raise BusinessRuleError("This activity is not an exam")
        return activity

    async def _recalculate(self, student_id: str) -> None:
        """Recalculate averages. Failures are logged and do not abort the result."""
        try:
            async with self.db.begin_nested():
                await self._calculators.recalculate_student_averages(student_id)
        except (DomainError, SQLAlchemyError) as e:
            logger.error("Error recalculating averages for student %s: %s", student_id, e)

    async def _invalidate_period_cache(self) -> None:
        if self.cache is not None:
            await self.cache.invalidate_prefix(EXAM_PERIOD_CACHE_PREFIX)

    @staticmethod
    def _to_response(activity: AcademicActivity) -> ExamResponse:
        exam = activity.exam
        return ExamResponse(
            id=activity.id,
            exam_id=exam.id,
            code=activity.code,
            student_id=activity.student_id,
            status=activity.status,
            exam_type=exam.exam_type,
            enrolled_at=activity.enrolled_at,
            subject_id=exam.subject_id,
            subject_name=exam.subject.name if exam.subject else None,
            period_id=exam.period_id,
            period_name=exam.period.name if exam.period else None,
            english_level=exam.english_level,
            result=exam.result,
            assigned_level=exam.assigned_level,
            exam_date=exam.exam_date,
            evaluated_at=exam.evaluated_at,
            requires_payment=exam.requires_payment,
            payment_amount=_amount(exam.payment_amount),
            payment_date=exam.payment_date,
            payment_approved=exam.payment_approved,
            remarks=activity.remarks,
        )

    @staticmethod
    def _to_course_record(activity: AcademicActivity) -> EnglishCourseRecord:
        course = activity.special_course
        group = course.group
        return EnglishCourseRecord(
            id=activity.id,
            code=activity.code,
            english_level=course.english_level,
            status=activity.status,
            enrolled_at=activity.enrolled_at,
            grade=course.grade,
            payment_approved=course.payment_approved,
            group_id=course.group_id,
            subject_name=group.subject.name if group and group.subject else None,
        )
