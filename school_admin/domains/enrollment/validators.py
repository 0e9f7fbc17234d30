# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Business rules for legacy enrollments.

Most rules are static and work on loaded entities so they can be tested
without a session. Only the duplicate check queries the database.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.domains.errors import (
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from school_admin.infrastructure.database.models import GRADE_FIELDS, Enrollment, Group, Student
from school_admin.models.common import EnrollmentStatus, GroupStatus, StudentStatus


class EnrollmentNotFoundError(NotFoundError):
    """Raised when enrollment is not found."""

    pass


class DuplicateEnrollmentError(ConflictError):
    """Raised when the student is already enrolled in the group."""

    pass


class GroupFullError(BusinessRuleError):
    """Raised when a group has no seats left."""

    pass


class InvalidTransitionError(BusinessRuleError):
    """Raised on a status change the lifecycle does not allow."""

    pass


class LockedFieldError(BusinessRuleError):
    """Raised when editing a field locked by the current status."""

    pass


_S = EnrollmentStatus

STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    _S.ENROLLED.value: frozenset({_S.IN_PROGRESS.value, _S.DROPPED.value, _S.CANCELLED.value}),
    _S.IN_PROGRESS.value: frozenset({_S.DROPPED.value, _S.PASSED.value, _S.FAILED.value}),
    _S.DROPPED.value: frozenset({_S.IN_PROGRESS.value}),
    _S.PASSED.value: frozenset(),
    _S.FAILED.value: frozenset(),
    _S.CANCELLED.value: frozenset(),
}

LOCKED_FIELDS: dict[str, frozenset[str]] = {
    _S.PASSED.value: frozenset({"student_id", "group_id", "enrollment_type", "status"}),
    _S.FAILED.value: frozenset({"student_id", "group_id", "enrollment_type", "status"}),
    _S.CANCELLED.value: frozenset({"student_id", "group_id", "enrollment_type", "status"}),
    _S.DROPPED.value: frozenset({"student_id", "group_id", "enrollment_type"}),
}

NON_ENROLLABLE_STUDENT_STATUSES = frozenset(
    {StudentStatus.INACTIVE.value, StudentStatus.GRADUATED.value}
)
UNAVAILABLE_GROUP_STATUSES = frozenset(
    {GroupStatus.CLOSED.value, GroupStatus.CANCELLED.value, GroupStatus.FINISHED.value}
)
GROUP_CHANGE_STATUSES = frozenset({_S.ENROLLED.value, _S.IN_PROGRESS.value})


class EnrollmentValidators:
    """Validation rules for creating and updating enrollments.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @staticmethod
    def validate_student_enrollable(student: Student) -> None:
        if student.status in NON_ENROLLABLE_STUDENT_STATUSES:
            raise BusinessRuleError(f"Cannot enroll a student with status {student.status}")

    @staticmethod
    def validate_group_available(group: Group) -> None:
        if group.status in UNAVAILABLE_GROUP_STATUSES:
            raise BusinessRuleError(f"Cannot enroll in a group with status {group.status}")

    @staticmethod
    def validate_group_capacity(group: Group) -> None:
        if group.current_enrollment >= group.max_capacity:
            raise GroupFullError("Group is full. No seats available")

    @staticmethod
    def validate_new_group_capacity(group: Group) -> None:
        if group.current_enrollment >= group.max_capacity:
            raise GroupFullError("The new group is full. No seats available")

    @staticmethod
    def validate_group_change_allowed(current_status: str) -> None:
        if current_status not in GROUP_CHANGE_STATUSES:
            raise BusinessRuleError(
                "Group can only be changed while the enrollment is enrolled or in progress"
            )

    @staticmethod
    def validate_status_transition(current_status: str, new_status: str) -> None:
        """Check a status change against the enrollment lifecycle.

        Setting the same status again is allowed.

        Raises:
            InvalidTransitionError: If the lifecycle forbids the change.
        """
        if current_status == new_status:
            return
        allowed = STATUS_TRANSITIONS.get(current_status, frozenset())
        if new_status not in allowed:
            raise InvalidTransitionError(
                f"Invalid transition: cannot change from {current_status} to {new_status}"
            )

    @staticmethod
    def validate_editable_fields(current_status: str, fields: Iterable[str]) -> None:
        """Reject edits of fields locked by the current status.

        Raises:
            LockedFieldError: If any of fields is locked.
        """
        locked = LOCKED_FIELDS.get(current_status, frozenset())
        touched = sorted(locked.intersection(fields))
        if touched:
            raise LockedFieldError(
                f"Cannot edit {', '.join(touched)} when the status is {current_status}"
            )

    @staticmethod
    def validate_grade_range(value: float | None, field_name: str = "grade") -> None:
        if value is not None and not 0 <= value <= 100:
            raise ValidationError(f"{field_name} must be between 0 and 100")

    @classmethod
    def validate_grades(cls, values: Mapping[str, Any]) -> None:
        """Range-check every grade field present in values."""
        for field in GRADE_FIELDS:
            if field in values:
                cls.validate_grade_range(values[field], field)

    @staticmethod
    def validate_student_id_unchanged(new_student_id: str | None, existing_student_id: str) -> None:
        if new_student_id is not None and new_student_id != existing_student_id:
            raise BusinessRuleError("The student of an enrollment cannot be changed")

    async def validate_no_duplicate(
        self,
        student_id: str,
        group_id: str,
        exclude_enrollment_id: str | None = None,
    ) -> None:
        """Raise DuplicateEnrollmentError if the student is already in the group."""
        query = select(Enrollment.id).where(
            Enrollment.student_id == str(student_id),
            Enrollment.group_id == str(group_id),
        )
        if exclude_enrollment_id:
            query = query.where(Enrollment.id != exclude_enrollment_id)

        result = await self.db.execute(query.limit(1))
        if result.scalar_one_or_none() is not None:
            raise DuplicateEnrollmentError("Student is already enrolled in this group")
