# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Special course service.

This module provides the SpecialCourseService that handles:
- Course requests, with or without a group
- Payment approval and rejection by administrators
- Course completion, which certifies English levels

Flow of a paid course:
    PENDING_PAYMENT -> (payment approved, seat taken) -> ENROLLED
    -> PASSED | FAILED
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_admin.core.config import get_settings
from school_admin.domains.academic_activity.service import AcademicActivityService
from school_admin.domains.common.pagination import paginate
from school_admin.domains.common.validators import EntityValidators
from school_admin.domains.errors import BusinessRuleError, DomainError
from school_admin.domains.group.service import CACHE_PREFIX as GROUP_CACHE_PREFIX
from school_admin.domains.special_course.validators import (
    SpecialCourseNotFoundError,
    SpecialCourseValidators,
)
from school_admin.domains.student.calculators import StudentCalculators
from school_admin.infrastructure.cache import QueryCache
from school_admin.infrastructure.database.models import (
    AcademicActivity,
    Group,
    SpecialCourse,
    Student,
)
from school_admin.infrastructure.database.models.base import new_uuid
from school_admin.models.common import (
    ActivityStatus,
    ActivityType,
    CourseType,
    HistoryAction,
    PageParams,
    PaginatedResponse,
    PaginationMeta,
)
from school_admin.models.special_course import (
    SpecialCourseCreateRequest,
    SpecialCourseFilters,
    SpecialCourseResponse,
)
from school_admin.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class SpecialCourseService:
    """Service for special course activities.

    Attributes:
        db: Async database session.
        cache: Optional query cache; group listings are invalidated when a
            course takes a group seat.
    """

    def __init__(self, db: AsyncSession, cache: QueryCache | None = None) -> None:
        self.db = db
        self.cache = cache
        self._settings = get_settings().academic
        self._entities = EntityValidators(db)
        self._rules = SpecialCourseValidators(db, self._settings.english_levels)
        self._activities = AcademicActivityService(db)
        self._calculators = StudentCalculators(db)

    async def create_special_course(
        self,
        request: SpecialCourseCreateRequest,
        created_by: str | None = None,
    ) -> SpecialCourseResponse:
        """Enroll a student in a special course.

        English courses without a level are level 1 requests. Courses that
        need no payment are enrolled directly and take a group seat.

        Raises:
            StudentNotFoundError: If the student does not exist.
            ValidationError: If the English level is out of range.
            BusinessRuleError: If the English rules forbid the request.
            AlreadyInCourseError: If the student already holds a place.
            GroupNotFoundError: If the group does not exist.
        """
        student = await self._entities.validate_student_exists(request.student_id)

        level = request.english_level
        if request.course_type == CourseType.ENGLISH:
            level = level or 1
            await self._rules.validate_can_request_english_course(student, level)

        group = None
        if request.group_id:
            group = await self._entities.validate_group_exists(request.group_id)
            await self._rules.validate_not_enrolled_in_group(student.id, group.id)

        status = (
            ActivityStatus.PENDING_PAYMENT if request.requires_payment else ActivityStatus.ENROLLED
        )
        activity = AcademicActivity(
            id=new_uuid(),
            code=await self._activities.generate_activity_code(ActivityType.SPECIAL_COURSE),
            student_id=student.id,
            activity_type=ActivityType.SPECIAL_COURSE.value,
            status=status.value,
            enrolled_at=utc_now(),
            created_by=created_by,
        )
        course = SpecialCourse(
            id=new_uuid(),
            activity_id=activity.id,
            course_type=request.course_type.value,
            english_level=level,
            group_id=group.id if group else None,
            requires_payment=request.requires_payment,
            payment_approved=None if request.requires_payment else True,
            completed_by_diagnostic=False,
        )
        course.group = group
        activity.special_course = course

        if group is not None and not request.requires_payment:
            group.current_enrollment += 1

        self.db.add_all([activity, course])
        self._activities.record_history(
            activity.id,
            HistoryAction.CREATED,
            notes=f"{request.course_type.value} special course created",
            performed_by=created_by,
        )
        await self.db.commit()
        if group is not None and not request.requires_payment:
            await self._invalidate_group_cache()

        logger.info(
            "Special course created: %s (student=%s, type=%s, level=%s, status=%s)",
            activity.code,
            student.id,
            course.course_type,
            level,
            activity.status,
        )
        return self._to_response(activity)

    async def approve_payment(
        self,
        course_id: str,
        amount: float,
        remarks: str | None = None,
        approved_by: str | None = None,
        start_date: datetime | None = None,
    ) -> SpecialCourseResponse:
        """Record a received payment and enroll the student.

        Raises:
            ValidationError: If the amount is not positive.
            SpecialCourseNotFoundError: If the course does not exist.
            BusinessRuleError: If the course is not pending payment.
        """
        self._rules.validate_payment_amount(amount)
        activity = await self._get_course_activity(course_id)
        if activity.status != ActivityStatus.PENDING_PAYMENT.value:
            raise BusinessRuleError("This course is not pending payment")

        course = activity.special_course
        course.payment_amount = Decimal(str(amount))
        course.payment_approved = True
        course.payment_date = utc_now()
        course.payment_approved_by = approved_by
        if start_date is not None:
            course.start_date = start_date

        self._activities.apply_status(activity, ActivityStatus.ENROLLED, approved_by)
        if remarks:
            activity.remarks = remarks
        if course.group is not None:
            course.group.current_enrollment += 1

        self._activities.record_history(
            activity.id,
            HistoryAction.PAYMENT_APPROVED,
            field_name="payment_amount",
            new_value=course.payment_amount,
            notes=remarks,
            performed_by=approved_by,
        )
        await self.db.commit()
        if course.group is not None:
            await self._invalidate_group_cache()

        logger.info("Course payment approved: %s (amount=%s)", activity.code, course.payment_amount)
        return self._to_response(activity)

    async def reject_payment(
        self,
        course_id: str,
        reason: str,
        rejected_by: str | None = None,
    ) -> SpecialCourseResponse:
        activity = await self._get_course_activity(course_id)
        if activity.status != ActivityStatus.PENDING_PAYMENT.value:
            raise BusinessRuleError("This course must be pending payment to reject it")

        course = activity.special_course
        course.payment_approved = False
        course.payment_amount = None
        activity.remarks = f"Payment rejected. Reason: {reason}"
        activity.updated_by = rejected_by

        self._activities.record_history(
            activity.id,
            HistoryAction.PAYMENT_REJECTED,
            notes=reason,
            performed_by=rejected_by,
        )
        await self.db.commit()

        logger.info("Course payment rejected: %s (%s)", activity.code, reason)
        return self._to_response(activity)

    async def list_special_courses(
        self,
        filters: SpecialCourseFilters | None = None,
        params: PageParams | None = None,
    ) -> PaginatedResponse[SpecialCourseResponse]:
        """List special courses. Levels credited by a diagnostic exam are excluded."""
        filters = filters or SpecialCourseFilters()
        params = (params or PageParams(limit=self._settings.default_page_size)).clamped(
            self._settings.max_page_size
        )

        stmt = (
            select(AcademicActivity)
            .join(SpecialCourse, SpecialCourse.activity_id == AcademicActivity.id)
            .options(
                selectinload(AcademicActivity.special_course)
                .selectinload(SpecialCourse.group)
                .selectinload(Group.subject)
            )
            .where(
                AcademicActivity.activity_type == ActivityType.SPECIAL_COURSE.value,
                AcademicActivity.deleted_at.is_(None),
                SpecialCourse.completed_by_diagnostic.is_(False),
            )
        )
        if filters.course_type is not None:
            stmt = stmt.where(SpecialCourse.course_type == filters.course_type.value)
        if filters.status is not None:
            stmt = stmt.where(AcademicActivity.status == filters.status.value)
        if filters.student_id:
            stmt = stmt.where(AcademicActivity.student_id == filters.student_id)
        if filters.group_id:
            stmt = stmt.where(SpecialCourse.group_id == filters.group_id)
        if filters.english_level is not None:
            stmt = stmt.where(SpecialCourse.english_level == filters.english_level)
        stmt = stmt.order_by(AcademicActivity.enrolled_at.desc())

        activities, total = await paginate(self.db, stmt, params)
        return PaginatedResponse[SpecialCourseResponse](
            items=[self._to_response(a) for a in activities],
            pagination=PaginationMeta.build(params.page, params.limit, total),
        )

    async def get_special_course(self, course_id: str) -> SpecialCourseResponse:
        activity = await self._get_course_activity(course_id)
        return self._to_response(activity)

    async def complete_special_course(
        self,
        course_id: str,
        grade: float,
        completed_by: str | None = None,
    ) -> SpecialCourseResponse:
        """Grade a course and close it as PASSED or FAILED.

        Passing an English course certifies its level and moves the
        student on to the next one.

        Raises:
            ValidationError: If the grade is out of range.
            SpecialCourseNotFoundError: If the course does not exist.
        """
        self._rules.validate_grade(grade)
        activity = await self._get_course_activity(course_id)
        course = activity.special_course

        passed = grade >= self._settings.passing_grade
        old_grade = course.grade
        course.grade = grade
        course.passed = passed
        if passed:
            course.end_date = course.end_date or utc_now()

        new_status = ActivityStatus.PASSED if passed else ActivityStatus.FAILED
        self._activities.apply_status(activity, new_status, completed_by)

        if course.course_type == CourseType.ENGLISH.value and passed:
            self._certify_level(activity.student, course.english_level or 1, grade)

        await self._recalculate(activity.student_id)

        self._activities.record_history(
            activity.id,
            HistoryAction.GRADE_UPDATED,
            field_name="grade",
            old_value=old_grade,
            new_value=grade,
            performed_by=completed_by,
        )
        await self.db.commit()

        logger.info(
            "Special course completed: %s (grade=%s, status=%s)",
            activity.code,
            grade,
            activity.status,
        )
        return self._to_response(activity)

    def _certify_level(self, student: Student, level: int, grade: float) -> None:
        student.certified_english_level = max(student.certified_english_level or 0, level)
        student.english_percentage = grade
        if (student.current_english_level or 0) <= level:
            student.current_english_level = min(level + 1, self._settings.english_levels)

    async def _get_course_activity(self, course_id: str) -> AcademicActivity:
        result = await self.db.execute(
            select(AcademicActivity)
            .options(
                selectinload(AcademicActivity.student),
                selectinload(AcademicActivity.special_course)
                .selectinload(SpecialCourse.group)
                .selectinload(Group.subject),
            )
            .where(
                AcademicActivity.id == str(course_id),
                AcademicActivity.deleted_at.is_(None),
            )
        )
        activity = result.scalar_one_or_none()
        if activity is None or activity.special_course is None:
            raise SpecialCourseNotFoundError("Special course not found")
        if activity.activity_type != ActivityType.SPECIAL_COURSE.value:
            raise BusinessRuleError("This activity is not a special course")
        return activity

    async def _recalculate(self, student_id: str) -> None:
        try:
            async with self.db.begin_nested():
                await self._calculators.recalculate_student_averages(student_id)
        except (DomainError, SQLAlchemyError) as e:
            logger.error("Error recalculating averages for student %s: %s", student_id, e)

    async def _invalidate_group_cache(self) -> None:
        if self.cache is not None:
            await self.cache.invalidate_prefix(GROUP_CACHE_PREFIX)

    @staticmethod
    def _to_response(activity: AcademicActivity) -> SpecialCourseResponse:
        course = activity.special_course
        group = course.group
        return SpecialCourseResponse(
            id=activity.id,
            course_id=course.id,
            code=activity.code,
            student_id=activity.student_id,
            status=activity.status,
            course_type=course.course_type,
            enrolled_at=activity.enrolled_at,
            english_level=course.english_level,
            group_id=course.group_id,
            group_name=group.name if group else None,
            subject_name=group.subject.name if group and group.subject else None,
            grade=course.grade,
            passed=course.passed,
            start_date=course.start_date,
            end_date=course.end_date,
            requires_payment=course.requires_payment,
            payment_amount=None if course.payment_amount is None else float(course.payment_amount),
            payment_date=course.payment_date,
            payment_approved=course.payment_approved,
            completed_by_diagnostic=course.completed_by_diagnostic,
            remarks=activity.remarks,
        )
