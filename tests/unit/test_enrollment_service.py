# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for Enrollment service."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from school_admin.domains.enrollment import (
    DuplicateEnrollmentError,
    EnrollmentNotFoundError,
    EnrollmentService,
    GroupFullError,
    InvalidTransitionError,
    LockedFieldError,
)
from school_admin.domains.errors import PermissionDeniedError
from school_admin.infrastructure.cache import QueryCache
from school_admin.models.common import EnrollmentStatus
from school_admin.models.enrollment import EnrollmentCreateRequest, EnrollmentUpdateRequest


@pytest.fixture
def cache() -> MagicMock:
    cache = MagicMock(spec=QueryCache)
    cache.invalidate_prefix = AsyncMock(return_value=1)
    return cache


@pytest.fixture
def enrollment_service(mock_db, cache):
    """Create enrollment service with mock database and stubbed recalculation."""
    service = EnrollmentService(db=mock_db, cache=cache)
    service._calculators.recalculate_student_averages = AsyncMock()
    return service


@pytest.fixture
def own_group(make_group, make_teacher, teacher_user):
    """Group taught by the teacher_user caller."""
    return make_group(teacher=make_teacher(id=teacher_user.teacher_id))


class TestCreateEnrollment:
    """Tests for enrolling students."""

    @pytest.mark.asyncio
    async def test_create_enrollment(
        self, enrollment_service, mock_db, results, make_student, make_group, admin_user, cache
    ) -> None:
        student = make_student()
        group = make_group(current_enrollment=4)
        mock_db.execute.side_effect = [
            results.scalar(student),
            results.scalar(group),
            results.scalar(None),
            results.scalar("INS-00000009"),
        ]

        response = await enrollment_service.create_enrollment(
            EnrollmentCreateRequest(student_id=student.id, group_id=group.id), admin_user
        )

        assert response.code == "INS-00000010"
        assert response.status == EnrollmentStatus.ENROLLED
        assert response.attendances == 0
        assert group.current_enrollment == 5
        mock_db.add.assert_called_once()
        enrollment_service._calculators.recalculate_student_averages.assert_not_called()
        cache.invalidate_prefix.assert_awaited_once_with("groups:")

    @pytest.mark.asyncio
    async def test_grades_trigger_recalculation(
        self, enrollment_service, mock_db, results, make_student, make_group, admin_user
    ) -> None:
        student = make_student()
        group = make_group()
        mock_db.execute.side_effect = [
            results.scalar(student),
            results.scalar(group),
            results.scalar(None),
            results.scalar(None),
        ]

        response = await enrollment_service.create_enrollment(
            EnrollmentCreateRequest(
                student_id=student.id,
                group_id=group.id,
                final_grade=85,
                attendances=9,
                absences=1,
            ),
            admin_user,
        )

        assert response.passed is True
        assert response.pass_date is not None
        assert response.attendance_percentage == 90.0
        enrollment_service._calculators.recalculate_student_averages.assert_awaited_once_with(
            student.id
        )

    @pytest.mark.asyncio
    async def test_only_admins_create(self, enrollment_service, teacher_user) -> None:
        with pytest.raises(PermissionDeniedError):
            await enrollment_service.create_enrollment(
                EnrollmentCreateRequest(student_id="s", group_id="g"), teacher_user
            )

    @pytest.mark.asyncio
    async def test_group_full(
        self, enrollment_service, mock_db, results, make_student, make_group, admin_user
    ) -> None:
        group = make_group(max_capacity=1, current_enrollment=1)
        mock_db.execute.side_effect = [results.scalar(make_student()), results.scalar(group)]

        with pytest.raises(GroupFullError):
            await enrollment_service.create_enrollment(
                EnrollmentCreateRequest(student_id="s", group_id=group.id), admin_user
            )

        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate(
        self, enrollment_service, mock_db, results, make_student, make_group, admin_user
    ) -> None:
        mock_db.execute.side_effect = [
            results.scalar(make_student()),
            results.scalar(make_group()),
            results.scalar("existing"),
        ]

        with pytest.raises(DuplicateEnrollmentError):
            await enrollment_service.create_enrollment(
                EnrollmentCreateRequest(student_id="s", group_id="g"), admin_user
            )


class TestUpdateEnrollment:
    """Tests for enrollment updates by role."""

    @pytest.mark.asyncio
    async def test_teacher_records_final_grade(
        self, enrollment_service, mock_db, results, make_enrollment, own_group, teacher_user, cache
    ) -> None:
        enrollment = make_enrollment(group=own_group, status=EnrollmentStatus.IN_PROGRESS.value)
        mock_db.execute.return_value = results.scalar(enrollment)

        response = await enrollment_service.update_enrollment(
            enrollment.id, EnrollmentUpdateRequest(final_grade=60), teacher_user
        )

        assert response.final_grade == 60
        assert response.passed is False
        assert enrollment.updated_by == teacher_user.user_id
        enrollment_service._calculators.recalculate_student_averages.assert_awaited_once()
        cache.invalidate_prefix.assert_not_called()

    @pytest.mark.asyncio
    async def test_teacher_other_group(
        self, enrollment_service, mock_db, results, make_enrollment, teacher_user
    ) -> None:
        mock_db.execute.return_value = results.scalar(make_enrollment())

        with pytest.raises(PermissionDeniedError, match="your own groups"):
            await enrollment_service.update_enrollment(
                "e1", EnrollmentUpdateRequest(final_grade=90), teacher_user
            )

    @pytest.mark.asyncio
    async def test_teacher_cannot_change_status(
        self, enrollment_service, mock_db, results, make_enrollment, own_group, teacher_user
    ) -> None:
        mock_db.execute.return_value = results.scalar(make_enrollment(group=own_group))

        with pytest.raises(PermissionDeniedError, match="grades, attendance and remarks"):
            await enrollment_service.update_enrollment(
                "e1", EnrollmentUpdateRequest(status=EnrollmentStatus.DROPPED), teacher_user
            )

    @pytest.mark.asyncio
    async def test_student_cannot_update(
        self, enrollment_service, mock_db, results, make_enrollment, student_user
    ) -> None:
        mock_db.execute.return_value = results.scalar(make_enrollment())

        with pytest.raises(PermissionDeniedError):
            await enrollment_service.update_enrollment(
                "e1", EnrollmentUpdateRequest(remarks="hi"), student_user
            )

    @pytest.mark.asyncio
    async def test_invalid_transition(
        self, enrollment_service, mock_db, results, make_enrollment, admin_user
    ) -> None:
        mock_db.execute.return_value = results.scalar(make_enrollment())

        with pytest.raises(InvalidTransitionError):
            await enrollment_service.update_enrollment(
                "e1", EnrollmentUpdateRequest(status=EnrollmentStatus.PASSED), admin_user
            )

    @pytest.mark.asyncio
    async def test_locked_fields_when_passed(
        self, enrollment_service, mock_db, results, make_enrollment, admin_user
    ) -> None:
        enrollment = make_enrollment(status=EnrollmentStatus.PASSED.value)
        mock_db.execute.return_value = results.scalar(enrollment)

        with pytest.raises(LockedFieldError):
            await enrollment_service.update_enrollment(
                enrollment.id, EnrollmentUpdateRequest(group_id="other"), admin_user
            )

    @pytest.mark.asyncio
    async def test_change_group_moves_seat(
        self, enrollment_service, mock_db, results, make_enrollment, make_group, admin_user, cache
    ) -> None:
        old_group = make_group(current_enrollment=3)
        new_group = make_group(current_enrollment=1)
        enrollment = make_enrollment(group=old_group)
        mock_db.execute.side_effect = [
            results.scalar(enrollment),
            results.scalar(new_group),
            results.scalar(None),
        ]

        response = await enrollment_service.update_enrollment(
            enrollment.id, EnrollmentUpdateRequest(group_id=new_group.id), admin_user
        )

        assert response.group_id == new_group.id
        assert old_group.current_enrollment == 2
        assert new_group.current_enrollment == 2
        cache.invalidate_prefix.assert_awaited_once_with("groups:")

    @pytest.mark.asyncio
    async def test_not_found(self, enrollment_service, mock_db, results, admin_user) -> None:
        mock_db.execute.return_value = results.scalar(None)

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.update_enrollment("x", EnrollmentUpdateRequest(), admin_user)


class TestReadsAndDelete:
    @pytest.mark.asyncio
    async def test_delete_frees_seat(
        self, enrollment_service, mock_db, results, make_enrollment, make_group, cache
    ) -> None:
        group = make_group(current_enrollment=2)
        enrollment = make_enrollment(group=group)
        mock_db.execute.return_value = results.scalar(enrollment)

        await enrollment_service.delete_enrollment(enrollment.id)

        assert group.current_enrollment == 1
        mock_db.delete.assert_awaited_once_with(enrollment)
        cache.invalidate_prefix.assert_awaited_once_with("groups:")
        enrollment_service._calculators.recalculate_student_averages.assert_awaited_once_with(
            enrollment.student_id
        )

    @pytest.mark.asyncio
    async def test_my_enrollments_only_for_students(self, enrollment_service, admin_user) -> None:
        with pytest.raises(PermissionDeniedError):
            await enrollment_service.get_my_enrollments(admin_user)

    @pytest.mark.asyncio
    async def test_my_enrollments(
        self, enrollment_service, mock_db, results, make_enrollment, student_user
    ) -> None:
        mock_db.execute.return_value = results.scalars([make_enrollment(), make_enrollment()])

        assert len(await enrollment_service.get_my_enrollments(student_user)) == 2

    @pytest.mark.asyncio
    async def test_group_enrollments_of_other_teacher(
        self, enrollment_service, mock_db, results, make_group, teacher_user
    ) -> None:
        mock_db.execute.return_value = results.scalar(make_group())

        with pytest.raises(PermissionDeniedError):
            await enrollment_service.get_group_enrollments("g1", teacher_user)
