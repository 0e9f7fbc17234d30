# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Existence and uniqueness checks shared across domains.

Soft-deleted rows are treated as missing.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_admin.domains.errors import ConflictError, NotFoundError
from school_admin.infrastructure.database.models import Group, Student, Subject, Teacher, User


class StudentNotFoundError(NotFoundError):
    """Raised when student is not found."""

    pass


class TeacherNotFoundError(NotFoundError):
    """Raised when teacher is not found."""

    pass


class SubjectNotFoundError(NotFoundError):
    """Raised when subject is not found."""

    pass


class GroupNotFoundError(NotFoundError):
    """Raised when group is not found."""

    pass


class UsernameExistsError(ConflictError):
    """Raised when a username is already taken."""

    pass


class SubjectCodeExistsError(ConflictError):
    """Raised when a subject code is already taken."""

    pass


class StudentNumberExistsError(ConflictError):
    """Raised when a student number is already taken."""

    pass


class EntityValidators:
    """Shared validators used by several domain services.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def validate_username_unique(
        self,
        username: str,
        exclude_user_id: str | None = None,
    ) -> None:
        """Raise UsernameExistsError if another user has this username."""
        query = select(User.id).where(User.username == username)
        if exclude_user_id:
            query = query.where(User.id != exclude_user_id)

        result = await self.db.execute(query)
        if result.scalar_one_or_none() is not None:
            raise UsernameExistsError("Username already exists")

    async def validate_student_number_unique(
        self,
        student_number: str,
        exclude_student_id: str | None = None,
    ) -> None:
        query = select(Student.id).where(Student.student_number == student_number)
        if exclude_student_id:
            query = query.where(Student.id != exclude_student_id)

        result = await self.db.execute(query)
        if result.scalar_one_or_none() is not None:
            raise StudentNumberExistsError("Student number already exists")

    async def validate_subject_code_unique(
        self,
        code: str,
        exclude_subject_id: str | None = None,
    ) -> None:
        query = select(Subject.id).where(Subject.code == code)
        if exclude_subject_id:
            query = query.where(Subject.id != exclude_subject_id)

        result = await self.db.execute(query)
        if result.scalar_one_or_none() is not None:
            raise SubjectCodeExistsError("Subject code already exists")

    async def validate_student_exists(self, student_id: str) -> Student:
        """Return the student or raise StudentNotFoundError."""
        result = await self.db.execute(
            select(Student).where(Student.id == str(student_id), Student.deleted_at.is_(None))
        )
        student = result.scalar_one_or_none()
        if student is None:
            raise StudentNotFoundError("Student not found")
        return student

    async def validate_teacher_exists(self, teacher_id: str) -> Teacher:
        """Return the teacher or raise TeacherNotFoundError."""
        result = await self.db.execute(
            select(Teacher).where(Teacher.id == str(teacher_id), Teacher.deleted_at.is_(None))
        )
        teacher = result.scalar_one_or_none()
        if teacher is None:
            raise TeacherNotFoundError("Teacher not found")
        return teacher

    async def validate_subject_exists(self, subject_id: str) -> Subject:
        """Return the subject or raise SubjectNotFoundError."""
        result = await self.db.execute(
            select(Subject).where(Subject.id == str(subject_id), Subject.deleted_at.is_(None))
        )
        subject = result.scalar_one_or_none()
        if subject is None:
            raise SubjectNotFoundError("Subject not found")
        return subject

    async def validate_group_exists(self, group_id: str) -> Group:
        """Return the group, with its subject loaded, or raise GroupNotFoundError."""
        result = await self.db.execute(
            select(Group)
            .options(selectinload(Group.subject))
            .where(Group.id == str(group_id), Group.deleted_at.is_(None))
        )
        group = result.scalar_one_or_none()
        if group is None:
            raise GroupNotFoundError("Group not found")
        return group
