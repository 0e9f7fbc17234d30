# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Group service.

This module provides the GroupService that handles:
- Group CRUD with capacity and registration window validation
- Role-scoped listing (admin, teacher, student)
- The cached list of English courses open for registration

Example:
    >>> service = GroupService(db_session, cache=query_cache)
    >>> group = await service.create_group(request)
    >>> courses = await service.get_available_english_courses()
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_admin.core.config import get_settings
from school_admin.domains.common.english import is_english_subject
from school_admin.domains.common.pagination import paginate
from school_admin.domains.common.validators import EntityValidators, GroupNotFoundError
from school_admin.domains.errors import ConflictError, ValidationError
from school_admin.infrastructure.cache import QueryCache
from school_admin.infrastructure.database.models import Enrollment, Group
from school_admin.infrastructure.database.models.base import new_uuid
from school_admin.models.common import (
    CurrentUser,
    EnrollmentStatus,
    GroupStatus,
    PageParams,
    PaginatedResponse,
    PaginationMeta,
)
from school_admin.models.group import (
    GroupCreateRequest,
    GroupFilters,
    GroupResponse,
    GroupSubjectSummary,
    GroupTeacherSummary,
    GroupUpdateRequest,
)
from school_admin.utils.datetime import is_within_window, utc_now

logger = logging.getLogger(__name__)

CACHE_PREFIX = "groups:"
AVAILABLE_ENGLISH_KEY = "groups:available_english"

# Enrollments in these statuses occupy a seat
ACTIVE_ENROLLMENT_STATUSES = (
    EnrollmentStatus.ENROLLED.value,
    EnrollmentStatus.IN_PROGRESS.value,
    EnrollmentStatus.PENDING_PAYMENT.value,
    EnrollmentStatus.PAYMENT_PENDING_APPROVAL.value,
    EnrollmentStatus.PAYMENT_APPROVED.value,
)

_SIMPLE_FIELDS = (
    "name",
    "code",
    "period",
    "schedule",
    "classroom",
    "building",
    "registration_start",
    "registration_end",
    "english_level",
    "is_english_course",
    "min_capacity",
    "max_capacity",
)


class GroupHasEnrollmentsError(ConflictError):
    """Raised when deleting a group with active enrollments."""

    pass


def validate_group_settings(
    max_capacity: int,
    min_capacity: int,
    is_english_course: bool,
    english_level: int | None,
    registration_start: datetime | None,
    registration_end: datetime | None,
    english_levels: int = 6,
) -> None:
    """Validate capacity, English level and registration window of a group.

    Raises:
        ValidationError: On the first rule that fails.
    """
    if max_capacity < 1:
        raise ValidationError("Maximum capacity must be at least 1")
    if min_capacity > max_capacity:
        raise ValidationError("Minimum capacity cannot exceed maximum capacity")
    if is_english_course and (english_level is None or not 1 <= english_level <= english_levels):
        raise ValidationError(f"English courses require a level between 1 and {english_levels}")
    if registration_start and registration_end and registration_start >= registration_end:
        raise ValidationError("Registration start must be before registration end")


def is_english_group(group: Group) -> bool:
    if group.is_english_course:
        return True
    subject = group.subject
    return subject is not None and is_english_subject(subject.code, subject.name)


class GroupService:
    """Service for managing groups.

    Attributes:
        db: Async database session.
        cache: Optional query cache for the available English courses.
    """

    def __init__(self, db: AsyncSession, cache: QueryCache | None = None) -> None:
        self.db = db
        self.cache = cache
        self._validators = EntityValidators(db)
        self._settings = get_settings().academic

    async def create_group(self, request: GroupCreateRequest) -> GroupResponse:
        """Create a group for an existing subject and teacher.

        Raises:
            SubjectNotFoundError: If the subject does not exist.
            TeacherNotFoundError: If the teacher does not exist.
            ValidationError: If capacity, level or window rules fail.
        """
        subject = await self._validators.validate_subject_exists(request.subject_id)
        teacher = await self._validators.validate_teacher_exists(request.teacher_id)

        validate_group_settings(
            request.max_capacity,
            request.min_capacity,
            request.is_english_course,
            request.english_level,
            request.registration_start,
            request.registration_end,
            english_levels=self._settings.english_levels,
        )

        group = Group(
            id=new_uuid(),
            subject_id=subject.id,
            teacher_id=teacher.id,
            current_enrollment=0,
            modality=request.modality.value,
            status=request.status.value,
            **{field: getattr(request, field) for field in _SIMPLE_FIELDS},
        )
        group.subject = subject
        group.teacher = teacher

        self.db.add(group)
        await self.db.commit()
        await self._invalidate_cache()

        logger.info("Group created: %s (subject=%s, period=%s)", group.id, subject.code, group.period)
        return self._to_response(group)

    async def list_groups(
        self,
        current_user: CurrentUser,
        filters: GroupFilters | None = None,
        params: PageParams | None = None,
    ) -> PaginatedResponse[GroupResponse]:
        """List groups visible to the caller.

        Admins see every group, teachers the groups they teach and students
        the groups they are enrolled in.
        """
        filters = filters or GroupFilters()
        params = (params or PageParams(limit=self._settings.default_page_size)).clamped(
            self._settings.max_page_size
        )

        stmt = (
            select(Group)
            .options(selectinload(Group.subject), selectinload(Group.teacher))
            .where(Group.deleted_at.is_(None))
        )

        if current_user.is_teacher:
            stmt = stmt.where(Group.teacher_id == current_user.teacher_id)
        elif current_user.is_student:
            stmt = stmt.where(
                Group.id.in_(
                    select(Enrollment.group_id).where(
                        Enrollment.student_id == current_user.student_id
                    )
                )
            )

        if filters.period:
            stmt = stmt.where(Group.period == filters.period)
        if filters.subject_id:
            stmt = stmt.where(Group.subject_id == filters.subject_id)
        if filters.teacher_id:
            stmt = stmt.where(Group.teacher_id == filters.teacher_id)
        if filters.status is not None:
            stmt = stmt.where(Group.status == filters.status.value)
        if filters.modality is not None:
            stmt = stmt.where(Group.modality == filters.modality.value)

        stmt = stmt.order_by(Group.period.desc(), Group.name.asc())

        groups, total = await paginate(self.db, stmt, params)
        return PaginatedResponse[GroupResponse](
            items=[self._to_response(g) for g in groups],
            pagination=PaginationMeta.build(params.page, params.limit, total),
        )

    async def get_group(self, group_id: str) -> GroupResponse:
        group = await self._get_group(group_id)
        return self._to_response(group)

    async def update_group(self, group_id: str, request: GroupUpdateRequest) -> GroupResponse:
        """Update a group, re-validating the merged configuration.

        Raises:
            GroupNotFoundError: If the group does not exist.
            SubjectNotFoundError: If a new subject does not exist.
            TeacherNotFoundError: If a new teacher does not exist.
            ValidationError: If the merged values break a rule, or max
                capacity would drop below the current enrollment.
        """
        group = await self._get_group(group_id)
        changes = request.model_dump(exclude_none=True)

        if request.subject_id is not None and request.subject_id != group.subject_id:
            group.subject = await self._validators.validate_subject_exists(request.subject_id)
            group.subject_id = group.subject.id
        if request.teacher_id is not None and request.teacher_id != group.teacher_id:
            group.teacher = await self._validators.validate_teacher_exists(request.teacher_id)
            group.teacher_id = group.teacher.id

        merged = {field: changes.get(field, getattr(group, field)) for field in _SIMPLE_FIELDS}
        validate_group_settings(
            merged["max_capacity"],
            merged["min_capacity"],
            merged["is_english_course"],
            merged["english_level"],
            merged["registration_start"],
            merged["registration_end"],
            english_levels=self._settings.english_levels,
        )
        if merged["max_capacity"] < group.current_enrollment:
            raise ValidationError(
                f"Maximum capacity cannot be lower than current enrollment "
                f"({group.current_enrollment})"
            )

        for field, value in merged.items():
            setattr(group, field, value)
        if request.modality is not None:
            group.modality = request.modality.value
        if request.status is not None:
            group.status = request.status.value

        await self.db.commit()
        await self._invalidate_cache()

        logger.info("Group updated: %s", group.id)
        return self._to_response(group)

    async def delete_group(self, group_id: str) -> None:
        """Soft delete a group without active enrollments.

        Raises:
            GroupNotFoundError: If the group does not exist.
            GroupHasEnrollmentsError: If any enrollment still occupies a seat.
        """
        group = await self._get_group(group_id)

        result = await self.db.execute(
            select(func.count(Enrollment.id)).where(
                Enrollment.group_id == group.id,
                Enrollment.status.in_(ACTIVE_ENROLLMENT_STATUSES),
            )
        )
        if (result.scalar() or 0) > 0:
            raise GroupHasEnrollmentsError("Cannot delete group with active enrollments")

        group.soft_delete()
        await self.db.commit()
        await self._invalidate_cache()

        logger.info("Group deleted: %s", group.id)

    async def get_available_english_courses(
        self,
        now: datetime | None = None,
    ) -> list[GroupResponse]:
        """Open English groups with free seats inside their registration window.

        Only reads for the current time go through the cache.

        Args:
            now: Reference time. Defaults to the current UTC time.
        """
        if now is None and self.cache is not None:
            cached = await self.cache.cached(AVAILABLE_ENGLISH_KEY, {}, self._load_available_english)
            return [GroupResponse.model_validate(item) for item in cached]

        groups = await self._query_available_english(now or utc_now())
        return [self._to_response(g) for g in groups]

    async def _load_available_english(self) -> list[dict]:
        groups = await self._query_available_english(utc_now())
        return [self._to_response(g).model_dump(mode="json") for g in groups]

    async def _query_available_english(self, now: datetime) -> list[Group]:
        result = await self.db.execute(
            select(Group)
            .options(selectinload(Group.subject), selectinload(Group.teacher))
            .where(
                Group.deleted_at.is_(None),
                Group.status == GroupStatus.OPEN.value,
            )
            .order_by(Group.english_level.asc(), Group.name.asc())
        )
        return [
            group
            for group in result.scalars().all()
            if is_english_group(group)
            and is_within_window(now, group.registration_start, group.registration_end)
            and group.has_capacity
        ]

    async def _get_group(self, group_id: str) -> Group:
        result = await self.db.execute(
            select(Group)
            .options(selectinload(Group.subject), selectinload(Group.teacher))
            .where(Group.id == str(group_id), Group.deleted_at.is_(None))
        )
        group = result.scalar_one_or_none()
        if group is None:
            raise GroupNotFoundError("Group not found")
        return group

    async def _invalidate_cache(self) -> None:
        if self.cache is not None:
            await self.cache.invalidate_prefix(CACHE_PREFIX)

    def _to_response(self, group: Group) -> GroupResponse:
        subject = group.subject
        teacher = group.teacher
        return GroupResponse(
            id=group.id,
            subject_id=group.subject_id,
            teacher_id=group.teacher_id,
            name=group.name,
            code=group.code,
            period=group.period,
            max_capacity=group.max_capacity,
            min_capacity=group.min_capacity,
            current_enrollment=group.current_enrollment,
            available_seats=group.available_seats,
            schedule=group.schedule,
            classroom=group.classroom,
            building=group.building,
            modality=group.modality,
            status=group.status,
            is_english_course=group.is_english_course,
            english_level=group.english_level,
            registration_start=group.registration_start,
            registration_end=group.registration_end,
            subject=(
                GroupSubjectSummary(
                    id=subject.id,
                    code=subject.code,
                    name=subject.name,
                    is_english=is_english_subject(subject.code, subject.name),
                )
                if subject is not None
                else None
            ),
            teacher=(
                GroupTeacherSummary(id=teacher.id, full_name=teacher.full_name)
                if teacher is not None
                else None
            ),
            created_at=group.created_at,
            updated_at=group.updated_at,
        )
