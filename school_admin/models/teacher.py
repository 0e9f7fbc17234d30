# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Teacher schemas."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from school_admin.models.common import TeacherStatus


class TeacherCreateRequest(BaseModel):
    """Request to create a teacher together with its login account."""

    username: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    paternal_surname: str = Field(min_length=1, max_length=100)
    maternal_surname: str | None = Field(default=None, max_length=100)
    department: str = Field(min_length=1, max_length=150)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=30)
    academic_degree: str | None = Field(default=None, max_length=100)
    specialty: str | None = Field(default=None, max_length=150)
    contract_type: str | None = Field(default=None, max_length=50)
    hire_date: date | None = None
    status: TeacherStatus = TeacherStatus.ACTIVE


class TeacherUpdateRequest(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    paternal_surname: str | None = Field(default=None, min_length=1, max_length=100)
    maternal_surname: str | None = Field(default=None, max_length=100)
    department: str | None = Field(default=None, min_length=1, max_length=150)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=30)
    academic_degree: str | None = Field(default=None, max_length=100)
    specialty: str | None = Field(default=None, max_length=150)
    contract_type: str | None = Field(default=None, max_length=50)
    hire_date: date | None = None
    status: TeacherStatus | None = None


class TeacherFilters(BaseModel):
    department: str | None = None
    status: TeacherStatus | None = None
    search: str | None = Field(default=None, description="Matches first name or surnames")


class TeacherResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str | None = None
    first_name: str
    paternal_surname: str
    maternal_surname: str | None = None
    full_name: str
    department: str
    email: str | None = None
    phone: str | None = None
    academic_degree: str | None = None
    specialty: str | None = None
    contract_type: str | None = None
    hire_date: date | None = None
    status: TeacherStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None
