# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for enrollment validators and calculators."""

from datetime import datetime, timezone

import pytest

from school_admin.domains.enrollment import (
    DuplicateEnrollmentError,
    EnrollmentCalculators,
    EnrollmentValidators,
    GroupFullError,
    InvalidTransitionError,
    LockedFieldError,
)
from school_admin.domains.errors import BusinessRuleError, ValidationError
from school_admin.models.common import EnrollmentStatus, GroupStatus, StudentStatus

S = EnrollmentStatus


class TestStatusTransitions:
    """Tests for the enrollment lifecycle."""

    @pytest.mark.parametrize(
        ("current", "new"),
        [
            (S.ENROLLED, S.IN_PROGRESS),
            (S.ENROLLED, S.DROPPED),
            (S.ENROLLED, S.CANCELLED),
            (S.IN_PROGRESS, S.PASSED),
            (S.IN_PROGRESS, S.FAILED),
            (S.DROPPED, S.IN_PROGRESS),
            (S.PASSED, S.PASSED),
        ],
    )
    def test_allowed(self, current, new) -> None:
        EnrollmentValidators.validate_status_transition(current.value, new.value)

    @pytest.mark.parametrize(
        ("current", "new"),
        [
            (S.ENROLLED, S.PASSED),
            (S.PASSED, S.IN_PROGRESS),
            (S.FAILED, S.ENROLLED),
            (S.CANCELLED, S.ENROLLED),
            (S.DROPPED, S.ENROLLED),
        ],
    )
    def test_rejected(self, current, new) -> None:
        with pytest.raises(InvalidTransitionError, match="Invalid transition"):
            EnrollmentValidators.validate_status_transition(current.value, new.value)


class TestLockedFields:
    def test_passed_locks_status(self) -> None:
        with pytest.raises(LockedFieldError, match="Cannot edit group_id, status when"):
            EnrollmentValidators.validate_editable_fields(
                S.PASSED.value, ["status", "group_id", "remarks"]
            )

    def test_dropped_allows_status(self) -> None:
        EnrollmentValidators.validate_editable_fields(S.DROPPED.value, ["status", "remarks"])

    def test_enrolled_locks_nothing(self) -> None:
        EnrollmentValidators.validate_editable_fields(S.ENROLLED.value, ["group_id", "student_id"])


class TestEntityRules:
    """Tests for student, group and grade checks."""

    @pytest.mark.parametrize("status", [StudentStatus.INACTIVE, StudentStatus.GRADUATED])
    def test_student_not_enrollable(self, make_student, status) -> None:
        with pytest.raises(BusinessRuleError, match=f"status {status.value}"):
            EnrollmentValidators.validate_student_enrollable(make_student(status=status.value))

    @pytest.mark.parametrize(
        "status", [GroupStatus.CLOSED, GroupStatus.CANCELLED, GroupStatus.FINISHED]
    )
    def test_group_unavailable(self, make_group, status) -> None:
        with pytest.raises(BusinessRuleError):
            EnrollmentValidators.validate_group_available(make_group(status=status.value))

    def test_group_in_progress_is_available(self, make_group) -> None:
        EnrollmentValidators.validate_group_available(
            make_group(status=GroupStatus.IN_PROGRESS.value)
        )

    def test_group_full(self, make_group) -> None:
        with pytest.raises(GroupFullError, match="Group is full"):
            EnrollmentValidators.validate_group_capacity(
                make_group(max_capacity=2, current_enrollment=2)
            )

    def test_group_change_only_while_active(self) -> None:
        with pytest.raises(BusinessRuleError, match="Group can only be changed"):
            EnrollmentValidators.validate_group_change_allowed(S.DROPPED.value)

    def test_grades_out_of_range(self) -> None:
        with pytest.raises(ValidationError, match="partial_grade_2 must be between 0 and 100"):
            EnrollmentValidators.validate_grades({"partial_grade_1": 80, "partial_grade_2": 101})

    def test_student_cannot_change(self) -> None:
        with pytest.raises(BusinessRuleError, match="cannot be changed"):
            EnrollmentValidators.validate_student_id_unchanged("other", "original")

    @pytest.mark.asyncio
    async def test_duplicate_enrollment(self, mock_db, results) -> None:
        mock_db.execute.return_value = results.scalar("enrollment-id")

        with pytest.raises(DuplicateEnrollmentError):
            await EnrollmentValidators(mock_db).validate_no_duplicate("s1", "g1")


class TestEnrollmentCalculators:
    """Tests for derived enrollment values."""

    @pytest.mark.parametrize(("grade", "expected"), [(70, True), (69.5, False), (None, None)])
    def test_calculate_passed(self, grade, expected) -> None:
        assert EnrollmentCalculators.calculate_passed(grade, None) is expected

    def test_explicit_passed_wins(self) -> None:
        assert EnrollmentCalculators.calculate_passed(50, True) is True

    def test_consistency_mismatch_is_logged(self, caplog) -> None:
        with caplog.at_level("WARNING"):
            ok = EnrollmentCalculators.check_passed_consistency("e1", 90, False)

        assert ok is False
        assert "is not marked passed" in caplog.text

    def test_consistency_ok(self) -> None:
        assert EnrollmentCalculators.check_passed_consistency("e1", 40, False) is True

    def test_pass_date_stamped(self) -> None:
        now = datetime(2025, 6, 1, tzinfo=timezone.utc)

        assert EnrollmentCalculators.calculate_pass_date(True, None, now=now) == now

    def test_pass_date_cleared_on_fail(self) -> None:
        now = datetime(2025, 6, 1, tzinfo=timezone.utc)

        assert EnrollmentCalculators.calculate_pass_date(False, now) is None

    def test_attendance_percentage(self) -> None:
        assert EnrollmentCalculators.calculate_attendance_percentage(18, 2) == 90.0
        assert EnrollmentCalculators.calculate_attendance_percentage(2, 1) == 66.67

    def test_attendance_without_sessions(self) -> None:
        assert EnrollmentCalculators.calculate_attendance_percentage(0, 0) is None

    def test_explicit_attendance_kept(self) -> None:
        assert EnrollmentCalculators.calculate_attendance_percentage(18, 2, 75.0) == 75.0
