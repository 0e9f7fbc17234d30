# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from school_admin.models.common import StudentStatus


class StudentCreateRequest(BaseModel):
    """Request to create a student together with its login account."""

    username: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=6, max_length=128)
    student_number: str = Field(min_length=1, max_length=20)
    first_name: str = Field(min_length=1, max_length=100)
    paternal_surname: str = Field(min_length=1, max_length=100)
    maternal_surname: str | None = Field(default=None, max_length=100)
    program: str = Field(min_length=1, max_length=150, description="Degree program")
    semester: int = Field(default=1, ge=1, le=20)
    status: StudentStatus = StudentStatus.ACTIVE
    curp: str | None = Field(default=None, min_length=18, max_length=18)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=30)


class StudentUpdateRequest(BaseModel):
    """Partial student update. Only provided fields are applied."""

    username: str | None = Field(default=None, min_length=3, max_length=100)
    password: str | None = Field(default=None, min_length=6, max_length=128)
    student_number: str | None = Field(default=None, min_length=1, max_length=20)
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    paternal_surname: str | None = Field(default=None, min_length=1, max_length=100)
    maternal_surname: str | None = Field(default=None, max_length=100)
    program: str | None = Field(default=None, min_length=1, max_length=150)
    semester: int | None = Field(default=None, ge=1, le=20)
    status: StudentStatus | None = None
    curp: str | None = Field(default=None, min_length=18, max_length=18)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=30)


class StudentFilters(BaseModel):
    """Filters for listing students."""

    student_number: str | None = None
    program: str | None = None
    semester: int | None = None
    status: StudentStatus | None = None
    search: str | None = Field(default=None, description="Matches number, names or CURP")


class StudentResponse(BaseModel):
    """Student profile response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    student_number: str
    first_name: str
    paternal_surname: str
    maternal_surname: str | None = None
    full_name: str
    program: str
    semester: int
    status: StudentStatus
    curp: str | None = None
    email: str | None = None
    phone: str | None = None
    current_english_level: int | None = None
    certified_english_level: int | None = None
    english_percentage: float | None = None
    english_average: float | None = None
    general_average: float | None = None
    meets_english_requirement: bool = False
    diagnostic_exam_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EnglishRequirementStatus(BaseModel):
    """Progress of a student toward the English graduation requirement."""

    meets_requirement: bool
    english_average: float | None
    completed_levels: list[int]
    pending_levels: list[int]
    progress: int = Field(description="Percentage of required levels completed (0-100)")
    reason: str | None = Field(default=None, description="Why the requirement is not met")
