# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for TeacherService and SubjectService."""

import pytest

from school_admin.domains.common.password import PasswordHasher
from school_admin.domains.common.validators import (
    SubjectCodeExistsError,
    SubjectNotFoundError,
    TeacherNotFoundError,
    UsernameExistsError,
)
from school_admin.domains.errors import ValidationError
from school_admin.domains.subject import SubjectHasGroupsError, SubjectService
from school_admin.domains.teacher import TeacherHasGroupsError, TeacherService
from school_admin.models.common import TeacherStatus, UserRole
from school_admin.models.subject import SubjectCreateRequest, SubjectUpdateRequest
from school_admin.models.teacher import TeacherCreateRequest, TeacherUpdateRequest


@pytest.fixture
def teacher_service(mock_db) -> TeacherService:
    return TeacherService(mock_db, hasher=PasswordHasher(rounds=4))


@pytest.fixture
def subject_service(mock_db) -> SubjectService:
    return SubjectService(mock_db)


class TestTeacherService:
    """Tests for TeacherService."""

    @pytest.mark.asyncio
    async def test_create_teacher_with_account(self, teacher_service, mock_db, results) -> None:
        mock_db.execute.return_value = results.scalar(None)
        request = TeacherCreateRequest(
            username="laura.m",
            password="secret123",
            first_name="Laura",
            paternal_surname="Mendoza",
            department="Languages",
        )

        response = await teacher_service.create_teacher(request)

        user, teacher = mock_db.add_all.call_args[0][0]
        assert user.role == UserRole.TEACHER.value
        assert teacher.user_id == user.id
        assert response.full_name == "Laura Mendoza"
        assert response.status == TeacherStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_create_teacher_username_taken(self, teacher_service, mock_db, results) -> None:
        mock_db.execute.return_value = results.scalar("existing")
        request = TeacherCreateRequest(
            username="laura.m",
            password="secret123",
            first_name="Laura",
            paternal_surname="Mendoza",
            department="Languages",
        )

        with pytest.raises(UsernameExistsError):
            await teacher_service.create_teacher(request)

    @pytest.mark.asyncio
    async def test_update_teacher(self, teacher_service, mock_db, results, make_teacher) -> None:
        teacher = make_teacher()
        mock_db.execute.return_value = results.scalar(teacher)

        response = await teacher_service.update_teacher(
            teacher.id, TeacherUpdateRequest(department="Sciences", status=TeacherStatus.ON_LEAVE)
        )

        assert response.department == "Sciences"
        assert response.status == TeacherStatus.ON_LEAVE

    @pytest.mark.asyncio
    async def test_get_missing_teacher(self, teacher_service, mock_db, results) -> None:
        mock_db.execute.return_value = results.scalar(None)

        with pytest.raises(TeacherNotFoundError):
            await teacher_service.get_teacher("missing")

    @pytest.mark.asyncio
    async def test_delete_teacher_with_groups(
        self, teacher_service, mock_db, results, make_teacher
    ) -> None:
        teacher = make_teacher()
        mock_db.execute.side_effect = [results.scalar(teacher), results.scalar(2)]

        with pytest.raises(TeacherHasGroupsError, match="assigned groups"):
            await teacher_service.delete_teacher(teacher.id)

        assert teacher.deleted_at is None

    @pytest.mark.asyncio
    async def test_delete_teacher(self, teacher_service, mock_db, results, make_teacher) -> None:
        teacher = make_teacher()
        mock_db.execute.side_effect = [results.scalar(teacher), results.scalar(0)]

        await teacher_service.delete_teacher(teacher.id)

        assert teacher.deleted_at is not None
        mock_db.commit.assert_awaited_once()


class TestSubjectService:
    """Tests for SubjectService."""

    @pytest.mark.asyncio
    async def test_create_subject_uppercases_code(self, subject_service, mock_db, results) -> None:
        mock_db.execute.return_value = results.scalar(None)

        response = await subject_service.create_subject(
            SubjectCreateRequest(code=" ing-1 ", name="English 1", credits=4)
        )

        assert response.code == "ING-1"
        assert response.is_english is True
        mock_db.add.assert_called_once()

    @pytest.mark.asyncio
    async def test_create_subject_duplicate_code(self, subject_service, mock_db, results) -> None:
        mock_db.execute.return_value = results.scalar("existing")

        with pytest.raises(SubjectCodeExistsError):
            await subject_service.create_subject(SubjectCreateRequest(code="MAT-101", name="Calc"))

    @pytest.mark.asyncio
    async def test_update_rejects_code_change(
        self, subject_service, mock_db, results, make_subject
    ) -> None:
        subject = make_subject()
        mock_db.execute.return_value = results.scalar(subject)

        with pytest.raises(ValidationError, match="Subject code cannot be updated"):
            await subject_service.update_subject(subject.id, SubjectUpdateRequest(code="MAT-999"))

    @pytest.mark.asyncio
    async def test_update_same_code_is_allowed(
        self, subject_service, mock_db, results, make_subject
    ) -> None:
        subject = make_subject()
        mock_db.execute.return_value = results.scalar(subject)

        response = await subject_service.update_subject(
            subject.id, SubjectUpdateRequest(code="mat-101", credits=8)
        )

        assert response.credits == 8
        assert response.is_english is False

    @pytest.mark.asyncio
    async def test_delete_subject_with_groups(
        self, subject_service, mock_db, results, make_subject
    ) -> None:
        subject = make_subject()
        mock_db.execute.side_effect = [results.scalar(subject), results.scalar(1)]

        with pytest.raises(SubjectHasGroupsError):
            await subject_service.delete_subject(subject.id)

    @pytest.mark.asyncio
    async def test_delete_missing_subject(self, subject_service, mock_db, results) -> None:
        mock_db.execute.return_value = results.scalar(None)

        with pytest.raises(SubjectNotFoundError):
            await subject_service.delete_subject("missing")

    @pytest.mark.asyncio
    async def test_list_subjects(self, subject_service, mock_db, results, make_subject) -> None:
        subjects = [make_subject(), make_subject(code="ING-1", name="English 1")]
        mock_db.execute.side_effect = [results.scalar(2), results.scalars(subjects)]

        page = await subject_service.list_subjects(search="1")

        assert [s.is_english for s in page.items] == [False, True]
        assert page.pagination.total == 2
