# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Subject service.

Subject codes are stored upper-cased and never change after creation.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.config import get_settings
from school_admin.domains.common.english import is_english_subject
from school_admin.domains.common.pagination import paginate
from school_admin.domains.common.validators import EntityValidators
from school_admin.domains.errors import ConflictError, ValidationError
from school_admin.infrastructure.database.models import Group, Subject
from school_admin.infrastructure.database.models.base import new_uuid
from school_admin.models.common import PageParams, PaginatedResponse, PaginationMeta
from school_admin.models.subject import (
    SubjectCreateRequest,
    SubjectResponse,
    SubjectUpdateRequest,
)

logger = logging.getLogger(__name__)


class SubjectHasGroupsError(ConflictError):
    """Raised when deleting a subject that still has groups."""

    pass


class SubjectService:
    """Service for managing subjects.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._validators = EntityValidators(db)
        self._settings = get_settings().academic

    async def create_subject(self, request: SubjectCreateRequest) -> SubjectResponse:
        """Create a subject.

        Raises:
            SubjectCodeExistsError: If the upper-cased code is taken.
        """
        code = request.code.strip().upper()
        await self._validators.validate_subject_code_unique(code)

        subject = Subject(
            id=new_uuid(),
            code=code,
            name=request.name,
            credits=request.credits,
            description=request.description,
        )
        self.db.add(subject)
        await self.db.commit()
        await self.db.refresh(subject)

        logger.info("Subject created: %s (code=%s)", subject.id, subject.code)
        return self._to_response(subject)

    async def list_subjects(
        self,
        search: str | None = None,
        params: PageParams | None = None,
    ) -> PaginatedResponse[SubjectResponse]:
        params = (params or PageParams(limit=self._settings.default_page_size)).clamped(
            self._settings.max_page_size
        )

        stmt = select(Subject).where(Subject.deleted_at.is_(None))
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Subject.code.ilike(pattern), Subject.name.ilike(pattern)))
        stmt = stmt.order_by(Subject.code.asc())

        subjects, total = await paginate(self.db, stmt, params)
        return PaginatedResponse[SubjectResponse](
            items=[self._to_response(s) for s in subjects],
            pagination=PaginationMeta.build(params.page, params.limit, total),
        )

    async def get_subject(self, subject_id: str) -> SubjectResponse:
        subject = await self._validators.validate_subject_exists(subject_id)
        return self._to_response(subject)

    async def update_subject(
        self,
        subject_id: str,
        request: SubjectUpdateRequest,
    ) -> SubjectResponse:
        """Update name, credits and description.

        Raises:
            SubjectNotFoundError: If the subject does not exist.
            ValidationError: If the request tries to change the code.
        """
        subject = await self._validators.validate_subject_exists(subject_id)

        if request.code is not None and request.code.strip().upper() != subject.code:
            raise ValidationError("Subject code cannot be updated")

        if request.name is not None:
            subject.name = request.name
        if request.credits is not None:
            subject.credits = request.credits
        if request.description is not None:
            subject.description = request.description

        await self.db.commit()
        await self.db.refresh(subject)

        logger.info("Subject updated: %s", subject.id)
        return self._to_response(subject)

    async def delete_subject(self, subject_id: str) -> None:
        """Soft delete a subject with no groups.

        Raises:
            SubjectNotFoundError: If the subject does not exist.
            SubjectHasGroupsError: If any non-deleted group uses the subject.
        """
        subject = await self._validators.validate_subject_exists(subject_id)

        result = await self.db.execute(
            select(func.count(Group.id)).where(
                Group.subject_id == subject.id,
                Group.deleted_at.is_(None),
            )
        )
        if (result.scalar() or 0) > 0:
            raise SubjectHasGroupsError("Cannot delete subject with assigned groups")

        subject.soft_delete()
        await self.db.commit()

        logger.info("Subject deleted: %s (code=%s)", subject.id, subject.code)

    def _to_response(self, subject: Subject) -> SubjectResponse:
        return SubjectResponse(
            id=subject.id,
            code=subject.code,
            name=subject.name,
            credits=subject.credits,
            description=subject.description,
            is_english=is_english_subject(subject.code, subject.name),
            created_at=subject.created_at,
            updated_at=subject.updated_at,
        )
