# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Group schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from school_admin.models.common import GroupStatus, Modality


class GroupCreateRequest(BaseModel):
    """Request to open a group of a subject."""

    subject_id: str
    teacher_id: str
    name: str = Field(min_length=1, max_length=100)
    code: str | None = Field(default=None, max_length=50)
    period: str = Field(min_length=1, max_length=20, description="Academic period, e.g. 2025-1")
    max_capacity: int = Field(default=30)
    min_capacity: int = Field(default=5, ge=0)
    schedule: str | None = Field(default=None, max_length=200)
    classroom: str | None = Field(default=None, max_length=50)
    building: str | None = Field(default=None, max_length=50)
    modality: Modality = Modality.IN_PERSON
    status: GroupStatus = GroupStatus.OPEN
    is_english_course: bool = False
    english_level: int | None = None
    registration_start: datetime | None = None
    registration_end: datetime | None = None


class GroupUpdateRequest(BaseModel):
    subject_id: str | None = None
    teacher_id: str | None = None
    name: str | None = Field(default=None, min_length=1, max_length=100)
    code: str | None = Field(default=None, max_length=50)
    period: str | None = Field(default=None, min_length=1, max_length=20)
    max_capacity: int | None = None
    min_capacity: int | None = Field(default=None, ge=0)
    schedule: str | None = Field(default=None, max_length=200)
    classroom: str | None = Field(default=None, max_length=50)
    building: str | None = Field(default=None, max_length=50)
    modality: Modality | None = None
    status: GroupStatus | None = None
    is_english_course: bool | None = None
    english_level: int | None = None
    registration_start: datetime | None = None
    registration_end: datetime | None = None


class GroupFilters(BaseModel):
    period: str | None = None
    subject_id: str | None = None
    teacher_id: str | None = None
    status: GroupStatus | None = None
    modality: Modality | None = None


class GroupSubjectSummary(BaseModel):
    id: str
    code: str
    name: str
    is_english: bool


class GroupTeacherSummary(BaseModel):
    id: str
    full_name: str


class GroupResponse(BaseModel):
    id: str
    subject_id: str
    teacher_id: str
    name: str
    code: str | None = None
    period: str
    max_capacity: int
    min_capacity: int
    current_enrollment: int
    available_seats: int
    schedule: str | None = None
    classroom: str | None = None
    building: str | None = None
    modality: Modality
    status: GroupStatus
    is_english_course: bool
    english_level: int | None = None
    registration_start: datetime | None = None
    registration_end: datetime | None = None
    subject: GroupSubjectSummary | None = None
    teacher: GroupTeacherSummary | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
