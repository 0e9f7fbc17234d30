# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for shared helpers: codes, pagination and entity validators."""

import pytest

from school_admin.domains.common.codes import format_code, next_code
from school_admin.domains.common.pagination import paginate
from school_admin.domains.common.validators import (
    EntityValidators,
    GroupNotFoundError,
    StudentNotFoundError,
    StudentNumberExistsError,
    SubjectCodeExistsError,
    SubjectNotFoundError,
    TeacherNotFoundError,
    UsernameExistsError,
)
from school_admin.domains.errors import ConflictError, NotFoundError
from school_admin.infrastructure.database.models import Enrollment, Student
from school_admin.models.common import PageParams, PaginationMeta
from sqlalchemy import select


class TestCodes:
    """Tests for sequential record codes."""

    def test_format_code_pads_to_eight_digits(self) -> None:
        assert format_code("INS", 42) == "INS-00000042"

    @pytest.mark.asyncio
    async def test_first_code(self, mock_db, results) -> None:
        mock_db.execute.return_value = results.scalar(None)

        assert await next_code(mock_db, Enrollment.code, "INS") == "INS-00000001"

    @pytest.mark.asyncio
    async def test_follows_highest_code(self, mock_db, results) -> None:
        mock_db.execute.return_value = results.scalar("EXA-00000041")

        assert await next_code(mock_db, Enrollment.code, "EXA") == "EXA-00000042"


class TestPagination:
    def test_page_params_offset(self) -> None:
        assert PageParams(page=3, limit=20).offset == 40

    def test_clamped_limit(self) -> None:
        params = PageParams(limit=500).clamped(100)

        assert params.limit == 100

    def test_clamped_keeps_small_limit(self) -> None:
        params = PageParams(limit=10)

        assert params.clamped(100) is params

    def test_meta_total_pages(self) -> None:
        meta = PaginationMeta.build(page=1, limit=20, total=41)

        assert meta.total_pages == 3

    def test_meta_empty(self) -> None:
        assert PaginationMeta.build(page=1, limit=20, total=0).total_pages == 0

    @pytest.mark.asyncio
    async def test_paginate_runs_count_then_page(self, mock_db, results, make_student) -> None:
        students = [make_student(), make_student(student_number="2025000002")]
        mock_db.execute.side_effect = [results.scalar(12), results.scalars(students)]

        items, total = await paginate(mock_db, select(Student), PageParams(page=2, limit=2))

        assert total == 12
        assert list(items) == students
        assert mock_db.execute.await_count == 2


class TestEntityValidators:
    """Tests for the shared existence and uniqueness checks."""

    @pytest.mark.asyncio
    async def test_student_exists(self, mock_db, results, make_student) -> None:
        student = make_student()
        mock_db.execute.return_value = results.scalar(student)

        assert await EntityValidators(mock_db).validate_student_exists(student.id) is student

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("method", "error", "message"),
        [
            ("validate_student_exists", StudentNotFoundError, "Student not found"),
            ("validate_teacher_exists", TeacherNotFoundError, "Teacher not found"),
            ("validate_subject_exists", SubjectNotFoundError, "Subject not found"),
            ("validate_group_exists", GroupNotFoundError, "Group not found"),
        ],
    )
    async def test_missing_entities(self, mock_db, results, method, error, message) -> None:
        mock_db.execute.return_value = results.scalar(None)

        with pytest.raises(error, match=message) as exc_info:
            await getattr(EntityValidators(mock_db), method)("missing-id")

        assert isinstance(exc_info.value, NotFoundError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("method", "error"),
        [
            ("validate_username_unique", UsernameExistsError),
            ("validate_student_number_unique", StudentNumberExistsError),
            ("validate_subject_code_unique", SubjectCodeExistsError),
        ],
    )
    async def test_uniqueness_conflicts(self, mock_db, results, method, error) -> None:
        mock_db.execute.return_value = results.scalar("existing-id")

        with pytest.raises(error) as exc_info:
            await getattr(EntityValidators(mock_db), method)("value")

        assert isinstance(exc_info.value, ConflictError)

    @pytest.mark.asyncio
    async def test_unique_value_passes(self, mock_db, results) -> None:
        mock_db.execute.return_value = results.scalar(None)

        await EntityValidators(mock_db).validate_username_unique("new.user", exclude_user_id="u1")
