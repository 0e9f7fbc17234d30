# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for special courses and the English course rules."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from school_admin.domains.errors import BusinessRuleError, ValidationError
from school_admin.domains.special_course import (
    AlreadyInCourseError,
    SpecialCourseNotFoundError,
    SpecialCourseService,
)
from school_admin.domains.special_course.validators import (
    SpecialCourseValidators,
    active_course_message,
)
from school_admin.infrastructure.cache import QueryCache
from school_admin.infrastructure.database.models import ActivityHistory
from school_admin.models.common import ActivityStatus, CourseType, HistoryAction
from school_admin.models.special_course import SpecialCourseCreateRequest


@pytest.fixture
def cache() -> MagicMock:
    cache = MagicMock(spec=QueryCache)
    cache.invalidate_prefix = AsyncMock(return_value=1)
    return cache


@pytest.fixture
def service(mock_db, cache) -> SpecialCourseService:
    service = SpecialCourseService(mock_db, cache=cache)
    service._recalculate = AsyncMock()
    return service


def _history_actions(mock_db) -> list[str]:
    return [
        call.args[0].action
        for call in mock_db.add.call_args_list
        if isinstance(call.args[0], ActivityHistory)
    ]


def _not_met(results, student) -> list:
    """Execute results for a requirement check that is not met."""
    return [results.scalar(student), results.rows([])]


class TestEnglishCourseRules:
    """Tests for SpecialCourseValidators.validate_can_request_english_course."""

    @pytest.mark.asyncio
    async def test_level_out_of_range(self, mock_db, make_student) -> None:
        with pytest.raises(ValidationError, match="between 1 and 6"):
            await SpecialCourseValidators(mock_db).validate_can_request_english_course(
                make_student(), 7
            )

    @pytest.mark.asyncio
    async def test_requirement_met(self, mock_db, results, make_student) -> None:
        student = make_student(english_average=90.0)
        rows = [(level, 90.0, ActivityStatus.PASSED.value) for level in range(1, 7)]
        mock_db.execute.side_effect = [results.scalar(student), results.rows(rows)]

        with pytest.raises(BusinessRuleError, match="No more English courses are needed"):
            await SpecialCourseValidators(mock_db).validate_can_request_english_course(student, 1)

    @pytest.mark.asyncio
    async def test_without_diagnostic_only_level_one(self, mock_db, results, make_student) -> None:
        student = make_student()
        mock_db.execute.side_effect = _not_met(results, student)

        with pytest.raises(BusinessRuleError, match="diagnostic exam before enrolling"):
            await SpecialCourseValidators(mock_db).validate_can_request_english_course(student, 2)

    @pytest.mark.asyncio
    async def test_without_diagnostic_level_one_allowed(
        self, mock_db, results, make_student
    ) -> None:
        student = make_student()
        mock_db.execute.side_effect = _not_met(results, student)

        await SpecialCourseValidators(mock_db).validate_can_request_english_course(student, 1)

        assert mock_db.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_level_already_passed(self, mock_db, results, make_student) -> None:
        student = make_student(current_english_level=3)
        mock_db.execute.side_effect = [*_not_met(results, student), results.scalar("passed")]

        with pytest.raises(BusinessRuleError, match="already completed English level 2"):
            await SpecialCourseValidators(mock_db).validate_can_request_english_course(student, 2)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("level", "direction"), [(2, "lower"), (4, "higher")])
    async def test_only_current_level(
        self, mock_db, results, make_student, level, direction
    ) -> None:
        student = make_student(current_english_level=3)
        mock_db.execute.side_effect = [*_not_met(results, student), results.scalar(None)]

        with pytest.raises(BusinessRuleError) as exc_info:
            await SpecialCourseValidators(mock_db).validate_can_request_english_course(
                student, level
            )

        assert str(exc_info.value) == (
            f"You cannot enroll in a {direction} level ({level}) than your current "
            f"level (3). You can only enroll in level 3."
        )

    @pytest.mark.asyncio
    async def test_active_course_for_level(self, mock_db, results, make_student) -> None:
        student = make_student(current_english_level=3)
        mock_db.execute.side_effect = [
            *_not_met(results, student),
            results.scalar(None),
            results.scalar(ActivityStatus.IN_PROGRESS.value),
        ]

        with pytest.raises(AlreadyInCourseError, match="You are already taking English level 3"):
            await SpecialCourseValidators(mock_db).validate_can_request_english_course(student, 3)

    def test_active_course_message_default(self) -> None:
        assert active_course_message("in_review", 2) == (
            "You already have an active request for English level 2. You cannot enroll again."
        )


class TestCreateSpecialCourse:
    @pytest.mark.asyncio
    async def test_paid_english_course_waits_for_payment(
        self, service, mock_db, results, make_student, make_group, cache
    ) -> None:
        student = make_student()
        group = make_group(is_english_course=True, english_level=1, current_enrollment=2)
        mock_db.execute.side_effect = [
            results.scalar(student),
            *_not_met(results, student),
            results.scalar(group),
            results.scalar(None),
            results.scalar("CUR-00000002"),
        ]

        response = await service.create_special_course(
            SpecialCourseCreateRequest(
                student_id=student.id, course_type=CourseType.ENGLISH, group_id=group.id
            ),
            created_by="admin-1",
        )

        assert response.code == "CUR-00000003"
        assert response.status == ActivityStatus.PENDING_PAYMENT
        assert response.english_level == 1
        assert response.payment_approved is None
        assert response.group_name == group.name
        assert group.current_enrollment == 2
        assert _history_actions(mock_db) == [HistoryAction.CREATED.value]
        cache.invalidate_prefix.assert_not_called()

    @pytest.mark.asyncio
    async def test_free_course_takes_seat(
        self, service, mock_db, results, make_student, make_group, cache
    ) -> None:
        student = make_student()
        group = make_group(current_enrollment=2)
        mock_db.execute.side_effect = [
            results.scalar(student),
            results.scalar(group),
            results.scalar(None),
            results.scalar(None),
        ]

        response = await service.create_special_course(
            SpecialCourseCreateRequest(
                student_id=student.id,
                course_type=CourseType.WORKSHOP,
                group_id=group.id,
                requires_payment=False,
            )
        )

        assert response.status == ActivityStatus.ENROLLED
        assert response.english_level is None
        assert response.payment_approved is True
        assert group.current_enrollment == 3
        cache.invalidate_prefix.assert_awaited_once_with("groups:")

    @pytest.mark.asyncio
    async def test_twice_in_same_group(
        self, service, mock_db, results, make_student, make_group
    ) -> None:
        mock_db.execute.side_effect = [
            results.scalar(make_student()),
            results.scalar(make_group()),
            results.scalar("existing"),
        ]

        with pytest.raises(AlreadyInCourseError, match="cannot enroll twice in the same course"):
            await service.create_special_course(
                SpecialCourseCreateRequest(
                    student_id="s1", course_type=CourseType.SUMMER, group_id="g1"
                )
            )

        mock_db.add_all.assert_not_called()


class TestCoursePayments:
    """Tests for course payment review."""

    @pytest.mark.asyncio
    async def test_approve_takes_seat(
        self, service, mock_db, results, make_course_activity, make_group, cache
    ) -> None:
        group = make_group(current_enrollment=4)
        activity = make_course_activity(group=group, status=ActivityStatus.PENDING_PAYMENT.value)
        mock_db.execute.return_value = results.scalar(activity)

        response = await service.approve_payment(activity.id, 1200, approved_by="admin-1")

        assert response.status == ActivityStatus.ENROLLED
        assert response.payment_amount == 1200.0
        assert response.payment_approved is True
        assert group.current_enrollment == 5
        assert _history_actions(mock_db) == [
            HistoryAction.STATUS_CHANGED.value,
            HistoryAction.PAYMENT_APPROVED.value,
        ]
        cache.invalidate_prefix.assert_awaited_once_with("groups:")

    @pytest.mark.asyncio
    async def test_approve_not_pending(
        self, service, mock_db, results, make_course_activity
    ) -> None:
        mock_db.execute.return_value = results.scalar(make_course_activity())

        with pytest.raises(BusinessRuleError, match="not pending payment"):
            await service.approve_payment("c1", 1200)

    @pytest.mark.asyncio
    async def test_reject(self, service, mock_db, results, make_course_activity) -> None:
        activity = make_course_activity(status=ActivityStatus.PENDING_PAYMENT.value)
        mock_db.execute.return_value = results.scalar(activity)

        response = await service.reject_payment(activity.id, "Wrong amount")

        assert response.status == ActivityStatus.PENDING_PAYMENT
        assert response.payment_approved is False
        assert response.remarks == "Payment rejected. Reason: Wrong amount"

    @pytest.mark.asyncio
    async def test_missing_course(self, service, mock_db, results) -> None:
        mock_db.execute.return_value = results.scalar(None)

        with pytest.raises(SpecialCourseNotFoundError):
            await service.get_special_course("missing")


class TestCompleteSpecialCourse:
    """Tests for grading special courses."""

    @pytest.mark.asyncio
    async def test_passing_english_course_advances_level(
        self, service, mock_db, results, make_course_activity, make_student
    ) -> None:
        student = make_student(current_english_level=2, certified_english_level=1)
        activity = make_course_activity(
            student=student, course_overrides={"english_level": 2}
        )
        mock_db.execute.return_value = results.scalar(activity)

        response = await service.complete_special_course(activity.id, 85, "teacher-1")

        assert response.status == ActivityStatus.PASSED
        assert response.passed is True
        assert response.end_date is not None
        assert student.certified_english_level == 2
        assert student.current_english_level == 3
        assert student.english_percentage == 85
        service._recalculate.assert_awaited_once_with(student.id)
        assert _history_actions(mock_db)[-1] == HistoryAction.GRADE_UPDATED.value

    @pytest.mark.asyncio
    async def test_last_level_stays_at_top(
        self, service, mock_db, results, make_course_activity, make_student
    ) -> None:
        student = make_student(current_english_level=6)
        activity = make_course_activity(student=student, course_overrides={"english_level": 6})
        mock_db.execute.return_value = results.scalar(activity)

        await service.complete_special_course(activity.id, 90)

        assert student.current_english_level == 6
        assert student.certified_english_level == 6

    @pytest.mark.asyncio
    async def test_failing_keeps_levels(
        self, service, mock_db, results, make_course_activity, make_student
    ) -> None:
        student = make_student(current_english_level=2)
        activity = make_course_activity(student=student, course_overrides={"english_level": 2})
        mock_db.execute.return_value = results.scalar(activity)

        response = await service.complete_special_course(activity.id, 60)

        assert response.status == ActivityStatus.FAILED
        assert response.end_date is None
        assert student.current_english_level == 2
        assert student.certified_english_level is None

    @pytest.mark.asyncio
    async def test_grade_range(self, service) -> None:
        with pytest.raises(ValidationError, match="Grade must be between 0 and 100"):
            await service.complete_special_course("c1", -1)

    @pytest.mark.asyncio
    async def test_exam_is_not_a_course(
        self, service, mock_db, results, make_course_activity
    ) -> None:
        mock_db.execute.return_value = results.scalar(make_course_activity(activity_type="exam"))

        with pytest.raises(BusinessRuleError, match="not a special course"):
            await service.complete_special_course("a1", 80)
