# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Legacy enrollment schemas, including the English enrollment flow."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from school_admin.models.common import EnrollmentStatus, EnrollmentType


class EnrollmentCreateRequest(BaseModel):
    """Request to enroll a student in a group.

    Grades are range-checked by the enrollment validators so that the
    error names the offending field.
    """

    student_id: str
    group_id: str
    enrollment_type: EnrollmentType = EnrollmentType.NORMAL
    status: EnrollmentStatus = EnrollmentStatus.ENROLLED
    partial_grade_1: float | None = None
    partial_grade_2: float | None = None
    partial_grade_3: float | None = None
    final_grade: float | None = None
    extraordinary_grade: float | None = None
    grade: float | None = None
    passed: bool | None = None
    pass_date: datetime | None = None
    attendances: int | None = Field(default=None, ge=0)
    absences: int | None = Field(default=None, ge=0)
    tardies: int | None = Field(default=None, ge=0)
    attendance_percentage: float | None = Field(default=None, ge=0, le=100)
    remarks: str | None = None


class EnrollmentUpdateRequest(BaseModel):
    """Partial enrollment update.

    Only fields explicitly set by the caller are applied, so an explicit
    null clears a value.
    """

    student_id: str | None = None
    group_id: str | None = None
    enrollment_type: EnrollmentType | None = None
    status: EnrollmentStatus | None = None
    partial_grade_1: float | None = None
    partial_grade_2: float | None = None
    partial_grade_3: float | None = None
    final_grade: float | None = None
    extraordinary_grade: float | None = None
    grade: float | None = None
    passed: bool | None = None
    pass_date: datetime | None = None
    attendances: int | None = Field(default=None, ge=0)
    absences: int | None = Field(default=None, ge=0)
    tardies: int | None = Field(default=None, ge=0)
    attendance_percentage: float | None = Field(default=None, ge=0, le=100)
    remarks: str | None = None


class EnrollmentFilters(BaseModel):
    student_id: str | None = None
    group_id: str | None = None
    status: EnrollmentStatus | None = None
    enrollment_type: EnrollmentType | None = None


class EnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    student_id: str
    group_id: str
    enrollment_type: EnrollmentType
    status: EnrollmentStatus
    enrolled_at: datetime | None = None
    partial_grade_1: float | None = None
    partial_grade_2: float | None = None
    partial_grade_3: float | None = None
    final_grade: float | None = None
    extraordinary_grade: float | None = None
    grade: float | None = None
    passed: bool | None = None
    pass_date: datetime | None = None
    attendances: int | None = None
    absences: int | None = None
    tardies: int | None = None
    attendance_percentage: float | None = None
    remarks: str | None = None
    english_level: int | None = None
    requires_payment: bool = False
    payment_amount: float | None = None
    payment_proof_url: str | None = None
    payment_date: datetime | None = None
    payment_approved: bool | None = None
    payment_approved_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EnglishEnrollmentStatus(BaseModel):
    """English progress of a student as seen by the legacy enrollment flow."""

    student_id: str
    current_english_level: int | None = None
    certified_english_level: int | None = None
    english_percentage: float | None = None
    meets_english_requirement: bool = False
    diagnostic_exam_date: datetime | None = None
    diagnostic_exams: list[EnrollmentResponse] = Field(default_factory=list)
    english_courses: list[EnrollmentResponse] = Field(default_factory=list)
    completed_levels: list[int] = Field(default_factory=list)
    missing_levels: list[int] = Field(default_factory=list)
    progress: float = Field(default=0.0, description="Percentage of levels completed")
