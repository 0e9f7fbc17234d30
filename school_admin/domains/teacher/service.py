# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Teacher service.

Teachers are created with a login account (role teacher). A teacher that
still has groups assigned cannot be deleted.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.config import get_settings
from school_admin.domains.common.pagination import paginate
from school_admin.domains.common.password import PasswordHasher
from school_admin.domains.common.validators import EntityValidators
from school_admin.domains.errors import ConflictError
from school_admin.infrastructure.database.models import Group, Teacher, User
from school_admin.infrastructure.database.models.base import new_uuid
from school_admin.models.common import PageParams, PaginatedResponse, PaginationMeta, UserRole
from school_admin.models.teacher import (
    TeacherCreateRequest,
    TeacherFilters,
    TeacherResponse,
    TeacherUpdateRequest,
)

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = (
    "first_name",
    "paternal_surname",
    "maternal_surname",
    "department",
    "email",
    "phone",
    "academic_degree",
    "specialty",
    "contract_type",
    "hire_date",
)


class TeacherHasGroupsError(ConflictError):
    """Raised when deleting a teacher that still has groups."""

    pass


class TeacherService:
    """Service for managing teachers.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession, hasher: PasswordHasher | None = None) -> None:
        self.db = db
        self._hasher = hasher or PasswordHasher()
        self._validators = EntityValidators(db)
        self._settings = get_settings().academic

    async def create_teacher(self, request: TeacherCreateRequest) -> TeacherResponse:
        """Create a teacher and its user account.

        Raises:
            UsernameExistsError: If the username is taken.
        """
        await self._validators.validate_username_unique(request.username)

        user = User(
            id=new_uuid(),
            username=request.username,
            password_hash=self._hasher.hash(request.password),
            role=UserRole.TEACHER.value,
            is_active=True,
        )
        teacher = Teacher(
            id=new_uuid(),
            user_id=user.id,
            status=request.status.value,
            **{field: getattr(request, field) for field in _PROFILE_FIELDS},
        )

        self.db.add_all([user, teacher])
        await self.db.commit()
        await self.db.refresh(teacher)

        logger.info("Teacher created: %s (user=%s)", teacher.id, user.username)
        return TeacherResponse.model_validate(teacher)

    async def list_teachers(
        self,
        filters: TeacherFilters | None = None,
        params: PageParams | None = None,
    ) -> PaginatedResponse[TeacherResponse]:
        """List non-deleted teachers ordered by first name."""
        filters = filters or TeacherFilters()
        params = (params or PageParams(limit=self._settings.default_page_size)).clamped(
            self._settings.max_page_size
        )

        stmt = select(Teacher).where(Teacher.deleted_at.is_(None))
        if filters.department:
            stmt = stmt.where(Teacher.department.ilike(f"%{filters.department}%"))
        if filters.status is not None:
            stmt = stmt.where(Teacher.status == filters.status.value)
        if filters.search:
            pattern = f"%{filters.search}%"
            stmt = stmt.where(
                or_(
                    Teacher.first_name.ilike(pattern),
                    Teacher.paternal_surname.ilike(pattern),
                    Teacher.maternal_surname.ilike(pattern),
                )
            )
        stmt = stmt.order_by(Teacher.first_name.asc(), Teacher.paternal_surname.asc())

        teachers, total = await paginate(self.db, stmt, params)
        return PaginatedResponse[TeacherResponse](
            items=[TeacherResponse.model_validate(t) for t in teachers],
            pagination=PaginationMeta.build(params.page, params.limit, total),
        )

    async def get_teacher(self, teacher_id: str) -> TeacherResponse:
        teacher = await self._validators.validate_teacher_exists(teacher_id)
        return TeacherResponse.model_validate(teacher)

    async def update_teacher(
        self,
        teacher_id: str,
        request: TeacherUpdateRequest,
    ) -> TeacherResponse:
        """Apply the provided fields to a teacher.

        Raises:
            TeacherNotFoundError: If the teacher does not exist.
        """
        teacher = await self._validators.validate_teacher_exists(teacher_id)

        for field in _PROFILE_FIELDS:
            value = getattr(request, field)
            if value is not None:
                setattr(teacher, field, value)
        if request.status is not None:
            teacher.status = request.status.value

        await self.db.commit()
        await self.db.refresh(teacher)

        logger.info("Teacher updated: %s", teacher.id)
        return TeacherResponse.model_validate(teacher)

    async def delete_teacher(self, teacher_id: str) -> None:
        """Soft delete a teacher with no assigned groups.

        Raises:
            TeacherNotFoundError: If the teacher does not exist.
            TeacherHasGroupsError: If any non-deleted group references the teacher.
        """
        teacher = await self._validators.validate_teacher_exists(teacher_id)

        result = await self.db.execute(
            select(func.count(Group.id)).where(
                Group.teacher_id == teacher.id,
                Group.deleted_at.is_(None),
            )
        )
        group_count = result.scalar() or 0
        if group_count > 0:
            raise TeacherHasGroupsError("Cannot delete teacher with assigned groups")

        teacher.soft_delete()
        await self.db.commit()

        logger.info("Teacher deleted: %s", teacher.id)
