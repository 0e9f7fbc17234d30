# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Diagnostic exam period schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from school_admin.models.common import ExamPeriodStatus


class ExamPeriodCreateRequest(BaseModel):
    """Request to create an exam period.

    Capacity falls back to the configured default when omitted.
    """

    name: str = Field(min_length=1, max_length=150)
    description: str | None = None
    start_date: datetime
    end_date: datetime
    registration_start: datetime
    registration_end: datetime
    max_capacity: int | None = Field(default=None, ge=1)
    requires_payment: bool = False
    cost: float | None = Field(default=None, ge=0)


class ExamPeriodUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=150)
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    registration_start: datetime | None = None
    registration_end: datetime | None = None
    max_capacity: int | None = Field(default=None, ge=1)
    requires_payment: bool | None = None
    cost: float | None = Field(default=None, ge=0)
    status: ExamPeriodStatus | None = None


class ExamPeriodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    start_date: datetime
    end_date: datetime
    registration_start: datetime
    registration_end: datetime
    max_capacity: int
    current_enrollment: int
    requires_payment: bool
    cost: float | None = None
    status: ExamPeriodStatus
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AvailableExamPeriodResponse(ExamPeriodResponse):
    """Open period as offered to students."""

    available_seats: int
    is_available: bool
