# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic activity service.

This module provides the AcademicActivityService that handles:
- Activity code generation per activity type
- Lookups of activities with their exam or course detail
- Status changes and soft deletes, each recorded in the history log

The exam and special course services build on the helpers here; the
``apply_status`` and ``record_history`` methods only stage changes on the
session and leave committing to the caller.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_admin.domains.common.codes import format_code, next_code
from school_admin.domains.errors import NotFoundError
from school_admin.infrastructure.database.models import (
    AcademicActivity,
    ActivityHistory,
    Exam,
    Group,
    SpecialCourse,
)
from school_admin.infrastructure.database.models.base import new_uuid
from school_admin.models.activity import ActivityHistoryResponse, ActivityResponse
from school_admin.models.common import ActivityStatus, ActivityType, HistoryAction
from school_admin.utils.datetime import utc_now

logger = logging.getLogger(__name__)

ACTIVITY_CODE_PREFIXES: dict[ActivityType, str] = {
    ActivityType.EXAM: "EXA",
    ActivityType.SPECIAL_COURSE: "CUR",
    ActivityType.SOCIAL_SERVICE: "SS",
    ActivityType.PROFESSIONAL_PRACTICE: "PP",
    ActivityType.ENROLLMENT: "INS",
}

# Reaching one of these statuses stamps completed_at
_FINAL_STATUSES = (
    ActivityStatus.PASSED.value,
    ActivityStatus.FAILED.value,
    ActivityStatus.EVALUATED.value,
    ActivityStatus.COMPLETED.value,
)


class ActivityNotFoundError(NotFoundError):
    """Raised when an academic activity is not found."""

    pass


def _status_value(status: ActivityStatus | str) -> str:
    return status.value if isinstance(status, ActivityStatus) else str(status)


class AcademicActivityService:
    """Service for the activity header shared by exams and special courses.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def generate_activity_code(self, activity_type: ActivityType) -> str:
        """Next code for an activity type, e.g. ``EXA-00000001``."""
        prefix = ACTIVITY_CODE_PREFIXES[ActivityType(activity_type)]
        return await next_code(self.db, AcademicActivity.code, prefix)

    async def generate_activity_codes(self, activity_type: ActivityType, count: int) -> list[str]:
        """Reserve ``count`` consecutive codes for rows created in one transaction."""
        if count <= 0:
            return []
        first = await self.generate_activity_code(activity_type)
        prefix, number = first.rsplit("-", 1)
        return [format_code(prefix, int(number) + offset) for offset in range(count)]

    async def get_activity(self, activity_id: str) -> AcademicActivity:
        """Load an activity with its student and type specific detail.

        Raises:
            ActivityNotFoundError: If the activity does not exist or is deleted.
        """
        result = await self.db.execute(
            select(AcademicActivity)
            .options(
                selectinload(AcademicActivity.student),
                selectinload(AcademicActivity.exam).selectinload(Exam.subject),
                selectinload(AcademicActivity.exam).selectinload(Exam.period),
                selectinload(AcademicActivity.special_course)
                .selectinload(SpecialCourse.group)
                .selectinload(Group.subject),
            )
            .where(
                AcademicActivity.id == str(activity_id),
                AcademicActivity.deleted_at.is_(None),
            )
        )
        activity = result.scalar_one_or_none()
        if activity is None:
            raise ActivityNotFoundError("Academic activity not found")
        return activity

    async def get_activities_by_student(
        self,
        student_id: str,
        activity_type: ActivityType | None = None,
    ) -> list[ActivityResponse]:
        """Non-deleted activities of a student, newest first."""
        stmt = select(AcademicActivity).where(
            AcademicActivity.student_id == str(student_id),
            AcademicActivity.deleted_at.is_(None),
        )
        if activity_type is not None:
            stmt = stmt.where(AcademicActivity.activity_type == ActivityType(activity_type).value)

        result = await self.db.execute(stmt.order_by(AcademicActivity.enrolled_at.desc()))
        return [ActivityResponse.model_validate(a) for a in result.scalars().all()]

    async def get_history(self, activity_id: str) -> list[ActivityHistoryResponse]:
        result = await self.db.execute(
            select(ActivityHistory)
            .where(ActivityHistory.activity_id == str(activity_id))
            .order_by(ActivityHistory.created_at.asc())
        )
        return [ActivityHistoryResponse.model_validate(h) for h in result.scalars().all()]

    async def update_activity_status(
        self,
        activity_id: str,
        new_status: ActivityStatus,
        updated_by: str | None = None,
    ) -> ActivityResponse:
        """Change the status of an activity and log the change.

        Raises:
            ActivityNotFoundError: If the activity does not exist.
        """
        activity = await self.get_activity(activity_id)
        self.apply_status(activity, new_status, updated_by)

        await self.db.commit()
        await self.db.refresh(activity)
        return ActivityResponse.model_validate(activity)

    async def delete_activity(self, activity_id: str, deleted_by: str | None = None) -> None:
        """Soft delete an activity and log the deletion.

        Raises:
            ActivityNotFoundError: If the activity does not exist.
        """
        activity = await self.get_activity(activity_id)
        activity.soft_delete()
        activity.updated_by = deleted_by
        self.record_history(activity.id, HistoryAction.DELETED, performed_by=deleted_by)

        await self.db.commit()
        logger.info("Activity deleted: %s by %s", activity.code, deleted_by)

    def apply_status(
        self,
        activity: AcademicActivity,
        new_status: ActivityStatus | str,
        updated_by: str | None = None,
    ) -> None:
        """Set a new status on a loaded activity and stage the history row.

        Setting the current status again is a no-op.
        """
        old_status = activity.status
        new_value = _status_value(new_status)
        if old_status == new_value:
            return

        activity.status = new_value
        activity.updated_by = updated_by
        if new_value in _FINAL_STATUSES:
            activity.completed_at = utc_now()

        self.record_history(
            activity.id,
            HistoryAction.STATUS_CHANGED,
            field_name="status",
            old_value=old_status,
            new_value=new_value,
            performed_by=updated_by,
        )
        logger.info("Activity %s status: %s -> %s", activity.code, old_status, new_value)

    def record_history(
        self,
        activity_id: str,
        action: HistoryAction,
        *,
        field_name: str | None = None,
        old_value: object = None,
        new_value: object = None,
        notes: str | None = None,
        performed_by: str | None = None,
    ) -> ActivityHistory:
        """Stage a history row for an activity.

        Values are stored as text; None stays None.
        """
        entry = ActivityHistory(
            id=new_uuid(),
            activity_id=activity_id,
            action=action.value,
            field_name=field_name,
            old_value=None if old_value is None else str(old_value),
            new_value=None if new_value is None else str(new_value),
            notes=notes,
            performed_by=performed_by,
            created_at=utc_now(),
        )
        self.db.add(entry)
        return entry
