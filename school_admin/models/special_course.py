# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Special course schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from school_admin.models.common import ActivityStatus, CourseType


class SpecialCourseCreateRequest(BaseModel):
    """Request to enroll a student in a special course.

    The group is optional since some courses have no traditional group.
    """

    student_id: str
    course_type: CourseType
    english_level: int | None = Field(default=None, ge=1)
    group_id: str | None = None
    requires_payment: bool = True


class SpecialCourseFilters(BaseModel):
    course_type: CourseType | None = None
    status: ActivityStatus | None = None
    student_id: str | None = None
    group_id: str | None = None
    english_level: int | None = None


class SpecialCourseResponse(BaseModel):
    """Special course activity flattened with its course detail."""

    id: str
    course_id: str
    code: str
    student_id: str
    status: ActivityStatus
    course_type: CourseType
    enrolled_at: datetime | None = None
    english_level: int | None = None
    group_id: str | None = None
    group_name: str | None = None
    subject_name: str | None = None
    grade: float | None = None
    passed: bool | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    requires_payment: bool = True
    payment_amount: float | None = None
    payment_date: datetime | None = None
    payment_approved: bool | None = None
    completed_by_diagnostic: bool = False
    remarks: str | None = None
