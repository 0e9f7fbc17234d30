# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic activity schemas shared by exams and special courses."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from school_admin.models.common import ActivityStatus, ActivityType, HistoryAction


class ActivityHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    activity_id: str
    action: HistoryAction
    field_name: str | None = None
    old_value: str | None = None
    new_value: str | None = None
    notes: str | None = None
    performed_by: str | None = None
    created_at: datetime | None = None


class ActivityResponse(BaseModel):
    """Header of an academic activity, without its type specific detail."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    student_id: str
    activity_type: ActivityType
    status: ActivityStatus
    enrolled_at: datetime | None = None
    completed_at: datetime | None = None
    remarks: str | None = None
    created_by: str | None = None
    updated_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
