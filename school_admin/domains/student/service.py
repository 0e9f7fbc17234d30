# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student service.

This module provides the StudentService that handles:
- Student creation together with the login account
- Listing with filters, sorting and pagination
- Profile updates and soft deletion

Example:
    >>> service = StudentService(db_session)
    >>> student = await service.create_student(request)
    >>> page = await service.list_students(StudentFilters(program="ISC"))
"""

from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_admin.core.config import get_settings
from school_admin.domains.common.pagination import paginate
from school_admin.domains.common.password import PasswordHasher
from school_admin.domains.common.validators import EntityValidators, StudentNotFoundError
from school_admin.domains.errors import ValidationError
from school_admin.domains.student.calculators import StudentCalculators
from school_admin.infrastructure.database.models import Student, User
from school_admin.infrastructure.database.models.base import new_uuid
from school_admin.models.common import PageParams, PaginatedResponse, PaginationMeta, UserRole
from school_admin.models.student import (
    EnglishRequirementStatus,
    StudentCreateRequest,
    StudentFilters,
    StudentResponse,
    StudentUpdateRequest,
)

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "first_name": Student.first_name,
    "paternal_surname": Student.paternal_surname,
    "student_number": Student.student_number,
    "program": Student.program,
    "semester": Student.semester,
    "general_average": Student.general_average,
    "created_at": Student.created_at,
}

_PROFILE_FIELDS = (
    "first_name",
    "paternal_surname",
    "maternal_surname",
    "program",
    "semester",
    "curp",
    "email",
    "phone",
)


class StudentService:
    """Service for managing students.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession, hasher: PasswordHasher | None = None) -> None:
        self.db = db
        self._hasher = hasher or PasswordHasher()
        self._validators = EntityValidators(db)
        self._settings = get_settings().academic

    async def create_student(self, request: StudentCreateRequest) -> StudentResponse:
        """Create a student and its user account.

        Raises:
            UsernameExistsError: If the username is taken.
            StudentNumberExistsError: If the student number is taken.
        """
        await self._validators.validate_username_unique(request.username)
        await self._validators.validate_student_number_unique(request.student_number)

        user = User(
            id=new_uuid(),
            username=request.username,
            password_hash=self._hasher.hash(request.password),
            role=UserRole.STUDENT.value,
            is_active=True,
        )
        student = Student(
            id=new_uuid(),
            user_id=user.id,
            student_number=request.student_number,
            first_name=request.first_name,
            paternal_surname=request.paternal_surname,
            maternal_surname=request.maternal_surname,
            program=request.program,
            semester=request.semester,
            status=request.status.value,
            curp=request.curp,
            email=request.email,
            phone=request.phone,
            meets_english_requirement=False,
            credits_taken=0,
            credits_passed=0,
        )

        self.db.add_all([user, student])
        await self.db.commit()
        await self.db.refresh(student)

        logger.info("Student created: %s (number=%s)", student.id, student.student_number)
        return self._to_response(student)

    async def list_students(
        self,
        filters: StudentFilters | None = None,
        params: PageParams | None = None,
    ) -> PaginatedResponse[StudentResponse]:
        """List non-deleted students.

        Sorting defaults to first name. Unknown sort fields are rejected.

        Raises:
            ValidationError: If sort_by is not a sortable field.
        """
        filters = filters or StudentFilters()
        params = (params or PageParams(limit=self._settings.default_page_size)).clamped(
            self._settings.max_page_size
        )

        stmt = select(Student).where(Student.deleted_at.is_(None))

        if filters.student_number:
            stmt = stmt.where(Student.student_number.ilike(f"%{filters.student_number}%"))
        if filters.program:
            stmt = stmt.where(Student.program.ilike(f"%{filters.program}%"))
        if filters.semester is not None:
            stmt = stmt.where(Student.semester == filters.semester)
        if filters.status is not None:
            stmt = stmt.where(Student.status == filters.status.value)
        if filters.search:
            pattern = f"%{filters.search}%"
            stmt = stmt.where(
                or_(
                    Student.student_number.ilike(pattern),
                    Student.first_name.ilike(pattern),
                    Student.paternal_surname.ilike(pattern),
                    Student.maternal_surname.ilike(pattern),
                    Student.curp.ilike(pattern),
                )
            )

        sort_by = params.sort_by or "first_name"
        column = _SORT_COLUMNS.get(sort_by)
        if column is None:
            raise ValidationError(f"Cannot sort students by '{sort_by}'")
        stmt = stmt.order_by(column.asc() if params.sort_order == "asc" else column.desc())

        students, total = await paginate(self.db, stmt, params)
        return PaginatedResponse[StudentResponse](
            items=[self._to_response(s) for s in students],
            pagination=PaginationMeta.build(params.page, params.limit, total),
        )

    async def get_student(self, student_id: str) -> StudentResponse:
        """Get a student by ID.

        Raises:
            StudentNotFoundError: If the student does not exist.
        """
        student = await self._validators.validate_student_exists(student_id)
        return self._to_response(student)

    async def get_student_by_user(self, user_id: str) -> StudentResponse:
        """Get the student profile linked to a user account."""
        result = await self.db.execute(
            select(Student).where(Student.user_id == str(user_id), Student.deleted_at.is_(None))
        )
        student = result.scalar_one_or_none()
        if student is None:
            raise StudentNotFoundError("Student not found")
        return self._to_response(student)

    async def update_student(
        self,
        student_id: str,
        request: StudentUpdateRequest,
    ) -> StudentResponse:
        """Update profile fields and, optionally, the linked user's credentials.

        Raises:
            StudentNotFoundError: If the student does not exist.
            UsernameExistsError: If the new username is taken.
            StudentNumberExistsError: If the new student number is taken.
        """
        student = await self._get_with_user(student_id)

        if request.student_number is not None and request.student_number != student.student_number:
            await self._validators.validate_student_number_unique(
                request.student_number, exclude_student_id=student.id
            )
            student.student_number = request.student_number

        user = student.user
        if request.username is not None and user is not None and request.username != user.username:
            await self._validators.validate_username_unique(
                request.username, exclude_user_id=user.id
            )
            user.username = request.username
        if request.password is not None and user is not None:
            user.password_hash = self._hasher.hash(request.password)

        for field in _PROFILE_FIELDS:
            value = getattr(request, field)
            if value is not None:
                setattr(student, field, value)
        if request.status is not None:
            student.status = request.status.value

        await self.db.commit()
        await self.db.refresh(student)

        logger.info("Student updated: %s", student.id)
        return self._to_response(student)

    async def delete_student(self, student_id: str) -> None:
        """Soft delete a student and deactivate its user account."""
        student = await self._get_with_user(student_id)

        student.soft_delete()
        if student.user is not None:
            student.user.is_active = False

        await self.db.commit()
        logger.info("Student deleted: %s", student.id)

    async def get_english_requirement_status(self, student_id: str) -> EnglishRequirementStatus:
        await self._validators.validate_student_exists(student_id)
        return await StudentCalculators(self.db).calculate_english_requirement_status(student_id)

    async def _get_with_user(self, student_id: str) -> Student:
        result = await self.db.execute(
            select(Student)
            .options(selectinload(Student.user))
            .where(Student.id == str(student_id), Student.deleted_at.is_(None))
        )
        student = result.scalar_one_or_none()
        if student is None:
            raise StudentNotFoundError("Student not found")
        return student

    def _to_response(self, student: Student) -> StudentResponse:
        return StudentResponse.model_validate(student)
