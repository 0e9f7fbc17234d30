# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for AcademicActivityService."""

import pytest

from school_admin.domains.academic_activity import (
    AcademicActivityService,
    ActivityNotFoundError,
)
from school_admin.infrastructure.database.models import ActivityHistory
from school_admin.models.common import ActivityStatus, ActivityType, HistoryAction


@pytest.fixture
def service(mock_db) -> AcademicActivityService:
    return AcademicActivityService(mock_db)


def _history_rows(mock_db) -> list[ActivityHistory]:
    return [
        call.args[0]
        for call in mock_db.add.call_args_list
        if isinstance(call.args[0], ActivityHistory)
    ]


class TestActivityCodes:
    """Tests for per-type activity codes."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("activity_type", "expected"),
        [
            (ActivityType.EXAM, "EXA-00000001"),
            (ActivityType.SPECIAL_COURSE, "CUR-00000001"),
            (ActivityType.SOCIAL_SERVICE, "SS-00000001"),
            (ActivityType.PROFESSIONAL_PRACTICE, "PP-00000001"),
        ],
    )
    async def test_first_code_per_type(
        self, service, mock_db, results, activity_type, expected
    ) -> None:
        mock_db.execute.return_value = results.scalar(None)

        assert await service.generate_activity_code(activity_type) == expected

    @pytest.mark.asyncio
    async def test_consecutive_codes(self, service, mock_db, results) -> None:
        mock_db.execute.return_value = results.scalar("CUR-00000007")

        codes = await service.generate_activity_codes(ActivityType.SPECIAL_COURSE, 3)

        assert codes == ["CUR-00000008", "CUR-00000009", "CUR-00000010"]
        assert mock_db.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_zero_codes(self, service, mock_db) -> None:
        assert await service.generate_activity_codes(ActivityType.EXAM, 0) == []
        mock_db.execute.assert_not_called()


class TestApplyStatus:
    """Tests for status changes and their history rows."""

    def test_records_status_change(self, service, mock_db, make_exam_activity) -> None:
        activity = make_exam_activity()

        service.apply_status(activity, ActivityStatus.IN_PROGRESS, "admin-1")

        assert activity.status == ActivityStatus.IN_PROGRESS.value
        assert activity.updated_by == "admin-1"
        assert activity.completed_at is None
        (entry,) = _history_rows(mock_db)
        assert entry.action == HistoryAction.STATUS_CHANGED.value
        assert entry.field_name == "status"
        assert entry.old_value == "enrolled"
        assert entry.new_value == "in_progress"
        assert entry.performed_by == "admin-1"

    @pytest.mark.parametrize(
        "status",
        [
            ActivityStatus.PASSED,
            ActivityStatus.FAILED,
            ActivityStatus.EVALUATED,
            ActivityStatus.COMPLETED,
        ],
    )
    def test_final_status_stamps_completion(self, service, make_exam_activity, status) -> None:
        activity = make_exam_activity()

        service.apply_status(activity, status)

        assert activity.completed_at is not None

    def test_same_status_is_noop(self, service, mock_db, make_exam_activity) -> None:
        activity = make_exam_activity()

        service.apply_status(activity, "enrolled", "admin-1")

        assert activity.updated_by is None
        mock_db.add.assert_not_called()

    def test_history_values_stored_as_text(self, service) -> None:
        entry = service.record_history(
            "activity-1", HistoryAction.GRADE_UPDATED, field_name="grade", old_value=None, new_value=85.5
        )

        assert entry.old_value is None
        assert entry.new_value == "85.5"
        assert entry.created_at is not None


class TestActivityLookups:
    @pytest.mark.asyncio
    async def test_get_activity_not_found(self, service, mock_db, results) -> None:
        mock_db.execute.return_value = results.scalar(None)

        with pytest.raises(ActivityNotFoundError, match="Academic activity not found"):
            await service.get_activity("missing")

    @pytest.mark.asyncio
    async def test_activities_by_student(
        self, service, mock_db, results, make_exam_activity, make_course_activity
    ) -> None:
        mock_db.execute.return_value = results.scalars(
            [make_exam_activity(), make_course_activity()]
        )

        activities = await service.get_activities_by_student("s1")

        assert [a.activity_type for a in activities] == [
            ActivityType.EXAM,
            ActivityType.SPECIAL_COURSE,
        ]

    @pytest.mark.asyncio
    async def test_history(self, service, mock_db, results) -> None:
        entry = service.record_history("a1", HistoryAction.CREATED, notes="Exam requested")
        mock_db.execute.return_value = results.scalars([entry])

        history = await service.get_history("a1")

        assert history[0].action == HistoryAction.CREATED
        assert history[0].notes == "Exam requested"


class TestStatusAndDelete:
    @pytest.mark.asyncio
    async def test_update_activity_status(
        self, service, mock_db, results, make_exam_activity
    ) -> None:
        activity = make_exam_activity()
        mock_db.execute.return_value = results.scalar(activity)

        response = await service.update_activity_status(
            activity.id, ActivityStatus.CANCELLED, "admin-1"
        )

        assert response.status == ActivityStatus.CANCELLED
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_activity(self, service, mock_db, results, make_exam_activity) -> None:
        activity = make_exam_activity()
        mock_db.execute.return_value = results.scalar(activity)

        await service.delete_activity(activity.id, "admin-1")

        assert activity.deleted_at is not None
        (entry,) = _history_rows(mock_db)
        assert entry.action == HistoryAction.DELETED.value
        mock_db.commit.assert_awaited_once()
