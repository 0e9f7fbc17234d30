# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Legacy enrollment service.

This module provides the EnrollmentService that handles:
- Enrolling students in groups with seat accounting
- Grade, attendance and status updates with lifecycle rules
- Role-scoped reads for students, teachers and admins

Any grade change triggers a recalculation of the student's averages. Seat
changes invalidate cached group listings.

Example:
    >>> service = EnrollmentService(db_session)
    >>> enrollment = await service.create_enrollment(request, current_user)
    >>> await service.update_enrollment(enrollment.id, update, teacher_user)
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_admin.core.config import get_settings
from school_admin.domains.common.codes import next_code
from school_admin.domains.common.pagination import paginate
from school_admin.domains.common.validators import EntityValidators
from school_admin.domains.enrollment.calculators import EnrollmentCalculators
from school_admin.domains.enrollment.validators import (
    EnrollmentNotFoundError,
    EnrollmentValidators,
)
from school_admin.domains.errors import PermissionDeniedError
from school_admin.domains.group.service import CACHE_PREFIX as GROUP_CACHE_PREFIX
from school_admin.domains.student.calculators import StudentCalculators
from school_admin.infrastructure.cache import QueryCache
from school_admin.infrastructure.database.models import GRADE_FIELDS, Enrollment, Group
from school_admin.infrastructure.database.models.base import new_uuid
from school_admin.models.common import (
    CurrentUser,
    PageParams,
    PaginatedResponse,
    PaginationMeta,
)
from school_admin.models.enrollment import (
    EnrollmentCreateRequest,
    EnrollmentFilters,
    EnrollmentResponse,
    EnrollmentUpdateRequest,
)
from school_admin.utils.datetime import utc_now

logger = logging.getLogger(__name__)

CODE_PREFIX = "INS"

TEACHER_EDITABLE_FIELDS = frozenset(
    GRADE_FIELDS + ("attendances", "absences", "tardies", "attendance_percentage", "remarks")
)

# Columns copied as-is from requests
_PLAIN_FIELDS = GRADE_FIELDS + (
    "passed",
    "pass_date",
    "attendances",
    "absences",
    "tardies",
    "attendance_percentage",
    "remarks",
)


class EnrollmentService:
    """Service for legacy enrollments.

    Attributes:
        db: Async database session.
        cache: Optional query cache; group listings are invalidated when an
            enrollment takes or frees a seat.
    """

    def __init__(self, db: AsyncSession, cache: QueryCache | None = None) -> None:
        self.db = db
        self.cache = cache
        self._entities = EntityValidators(db)
        self._rules = EnrollmentValidators(db)
        self._calculators = StudentCalculators(db)
        self._settings = get_settings().academic

    async def create_enrollment(
        self,
        request: EnrollmentCreateRequest,
        current_user: CurrentUser,
    ) -> EnrollmentResponse:
        """Enroll a student in a group.

        Raises:
            PermissionDeniedError: If the caller is not an admin.
            StudentNotFoundError: If the student does not exist.
            GroupNotFoundError: If the group does not exist.
            BusinessRuleError: If the student or group cannot take the enrollment.
            GroupFullError: If the group has no seats left.
            DuplicateEnrollmentError: If the student is already in the group.
            ValidationError: If a grade is out of range.
        """
        if not current_user.is_admin:
            raise PermissionDeniedError("Only administrators can create enrollments")

        student = await self._entities.validate_student_exists(request.student_id)
        self._rules.validate_student_enrollable(student)

        group = await self._entities.validate_group_exists(request.group_id)
        self._rules.validate_group_available(group)
        self._rules.validate_group_capacity(group)
        await self._rules.validate_no_duplicate(student.id, group.id)

        values = {field: getattr(request, field) for field in _PLAIN_FIELDS}
        self._rules.validate_grades(values)

        enrollment = Enrollment(
            id=new_uuid(),
            code=await next_code(self.db, Enrollment.code, CODE_PREFIX),
            student_id=student.id,
            group_id=group.id,
            enrollment_type=request.enrollment_type.value,
            status=request.status.value,
            enrolled_at=utc_now(),
            requires_payment=False,
            created_by=current_user.user_id,
            **values,
        )
        enrollment.attendances = enrollment.attendances or 0
        enrollment.absences = enrollment.absences or 0
        enrollment.tardies = enrollment.tardies or 0
        self._apply_calculators(enrollment, explicit=set(request.model_fields_set))

        group.current_enrollment += 1
        self.db.add(enrollment)

        if self._has_grades(values):
            await self.db.flush()
            await self._calculators.recalculate_student_averages(student.id)

        await self.db.commit()
        await self.db.refresh(enrollment)
        await self._invalidate_group_cache()

        logger.info(
            "Enrollment created: %s (student=%s, group=%s)",
            enrollment.code,
            student.id,
            group.id,
        )
        return EnrollmentResponse.model_validate(enrollment)

    async def update_enrollment(
        self,
        enrollment_id: str,
        request: EnrollmentUpdateRequest,
        current_user: CurrentUser,
    ) -> EnrollmentResponse:
        """Update an enrollment.

        Teachers may only change grades, attendance and remarks of
        enrollments in groups they teach. Admins may change everything the
        lifecycle allows.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist.
            PermissionDeniedError: If the caller may not make this change.
            LockedFieldError: If a field is locked by the current status.
            InvalidTransitionError: If the status change is not allowed.
            GroupFullError: If the target group has no seats left.
            ValidationError: If a grade is out of range.
        """
        enrollment = await self._get_enrollment(enrollment_id)
        changes: dict[str, Any] = request.model_dump(exclude_unset=True)

        if current_user.is_student:
            raise PermissionDeniedError("Students cannot update enrollments")
        if current_user.is_teacher:
            if enrollment.group is None or enrollment.group.teacher_id != current_user.teacher_id:
                raise PermissionDeniedError("You can only update enrollments of your own groups")
            if set(changes) - TEACHER_EDITABLE_FIELDS:
                raise PermissionDeniedError("Teachers can only update grades, attendance and remarks")

        self._rules.validate_editable_fields(enrollment.status, changes)
        if "student_id" in changes:
            self._rules.validate_student_id_unchanged(changes["student_id"], enrollment.student_id)

        new_status = changes.get("status")
        if new_status is not None:
            self._rules.validate_status_transition(enrollment.status, new_status.value)

        new_group_id = changes.get("group_id")
        group_changed = new_group_id is not None and new_group_id != enrollment.group_id
        if group_changed:
            await self._change_group(enrollment, new_group_id)

        self._rules.validate_grades(changes)

        for field in _PLAIN_FIELDS:
            if field in changes:
                setattr(enrollment, field, changes[field])
        if new_status is not None:
            enrollment.status = new_status.value
        if changes.get("enrollment_type") is not None:
            enrollment.enrollment_type = changes["enrollment_type"].value
        enrollment.updated_by = current_user.user_id

        self._apply_calculators(enrollment, explicit=set(changes))

        if any(field in changes for field in GRADE_FIELDS):
            await self.db.flush()
            await self._calculators.recalculate_student_averages(enrollment.student_id)

        await self.db.commit()
        await self.db.refresh(enrollment)
        if group_changed:
            await self._invalidate_group_cache()

        logger.info("Enrollment updated: %s by %s", enrollment.code, current_user.user_id)
        return EnrollmentResponse.model_validate(enrollment)

    async def delete_enrollment(self, enrollment_id: str) -> None:
        """Delete an enrollment, free its seat and recalculate averages."""
        enrollment = await self._get_enrollment(enrollment_id)
        student_id = enrollment.student_id

        if enrollment.group is not None:
            enrollment.group.current_enrollment = max(enrollment.group.current_enrollment - 1, 0)

        await self.db.delete(enrollment)
        await self.db.flush()
        await self._calculators.recalculate_student_averages(student_id)
        await self.db.commit()
        await self._invalidate_group_cache()

        logger.info("Enrollment deleted: %s (student=%s)", enrollment.code, student_id)

    async def get_enrollment(self, enrollment_id: str) -> EnrollmentResponse:
        enrollment = await self._get_enrollment(enrollment_id)
        return EnrollmentResponse.model_validate(enrollment)

    async def list_enrollments(
        self,
        filters: EnrollmentFilters | None = None,
        params: PageParams | None = None,
    ) -> PaginatedResponse[EnrollmentResponse]:
        filters = filters or EnrollmentFilters()
        params = (params or PageParams(limit=self._settings.default_page_size)).clamped(
            self._settings.max_page_size
        )

        stmt = select(Enrollment)
        if filters.student_id:
            stmt = stmt.where(Enrollment.student_id == filters.student_id)
        if filters.group_id:
            stmt = stmt.where(Enrollment.group_id == filters.group_id)
        if filters.status is not None:
            stmt = stmt.where(Enrollment.status == filters.status.value)
        if filters.enrollment_type is not None:
            stmt = stmt.where(Enrollment.enrollment_type == filters.enrollment_type.value)
        stmt = stmt.order_by(Enrollment.enrolled_at.desc())

        enrollments, total = await paginate(self.db, stmt, params)
        return PaginatedResponse[EnrollmentResponse](
            items=[EnrollmentResponse.model_validate(e) for e in enrollments],
            pagination=PaginationMeta.build(params.page, params.limit, total),
        )

    async def get_my_enrollments(self, current_user: CurrentUser) -> list[EnrollmentResponse]:
        """Enrollments of the calling student, newest first."""
        if not current_user.is_student or not current_user.student_id:
            raise PermissionDeniedError("Only students have their own enrollments")

        result = await self.db.execute(
            select(Enrollment)
            .where(Enrollment.student_id == current_user.student_id)
            .order_by(Enrollment.enrolled_at.desc())
        )
        return [EnrollmentResponse.model_validate(e) for e in result.scalars().all()]

    async def get_group_enrollments(
        self,
        group_id: str,
        current_user: CurrentUser,
    ) -> list[EnrollmentResponse]:
        """Enrollments of a group. Teachers only see their own groups."""
        group = await self._entities.validate_group_exists(group_id)
        if current_user.is_teacher and group.teacher_id != current_user.teacher_id:
            raise PermissionDeniedError("You can only view enrollments for your own groups")
        if current_user.is_student:
            raise PermissionDeniedError("Students cannot view group enrollments")

        result = await self.db.execute(
            select(Enrollment)
            .where(Enrollment.group_id == group.id)
            .order_by(Enrollment.enrolled_at.asc())
        )
        return [EnrollmentResponse.model_validate(e) for e in result.scalars().all()]

    async def _change_group(self, enrollment: Enrollment, new_group_id: str) -> None:
        """Move an enrollment to another group and shift the seat counters."""
        self._rules.validate_group_change_allowed(enrollment.status)

        new_group = await self._entities.validate_group_exists(new_group_id)
        self._rules.validate_group_available(new_group)
        self._rules.validate_new_group_capacity(new_group)
        await self._rules.validate_no_duplicate(
            enrollment.student_id, new_group.id, exclude_enrollment_id=enrollment.id
        )

        old_group = enrollment.group
        if old_group is not None:
            old_group.current_enrollment = max(old_group.current_enrollment - 1, 0)
        new_group.current_enrollment += 1

        enrollment.group = new_group
        enrollment.group_id = new_group.id

        logger.info(
            "Enrollment %s moved from group %s to %s",
            enrollment.code,
            old_group.id if old_group is not None else None,
            new_group.id,
        )

    async def _invalidate_group_cache(self) -> None:
        if self.cache is not None:
            await self.cache.invalidate_prefix(GROUP_CACHE_PREFIX)

    def _apply_calculators(self, enrollment: Enrollment, explicit: set[str]) -> None:
        """Derive pass flag, pass date and attendance from merged values."""
        passing_grade = self._settings.passing_grade

        if "passed" not in explicit:
            enrollment.passed = EnrollmentCalculators.calculate_passed(
                enrollment.final_grade, None if "final_grade" in explicit else enrollment.passed,
                passing_grade,
            )
        EnrollmentCalculators.check_passed_consistency(
            enrollment.code, enrollment.final_grade, enrollment.passed, passing_grade
        )

        enrollment.pass_date = EnrollmentCalculators.calculate_pass_date(
            enrollment.passed, enrollment.pass_date
        )

        if "attendance_percentage" not in explicit and (
            "attendances" in explicit or "absences" in explicit
        ):
            enrollment.attendance_percentage = EnrollmentCalculators.calculate_attendance_percentage(
                enrollment.attendances, enrollment.absences
            )

    @staticmethod
    def _has_grades(values: dict[str, Any]) -> bool:
        return any(values.get(field) is not None for field in GRADE_FIELDS)

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
