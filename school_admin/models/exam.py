# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam schemas (activity based English flow)."""

from datetime import datetime

from pydantic import BaseModel, Field

from school_admin.models.common import ActivityStatus, ExamType
from school_admin.models.student import EnglishRequirementStatus


class ExamCreateRequest(BaseModel):
    """Request to register a student for an exam.

    Attributes:
        student_id: Student sitting the exam.
        exam_type: Diagnostic, admission or certification.
        subject_id: Optional subject the exam belongs to.
        english_level: Optional English level the exam targets.
        period_id: Optional diagnostic exam period.
    """

    student_id: str
    exam_type: ExamType = ExamType.DIAGNOSTIC
    subject_id: str | None = None
    english_level: int | None = Field(default=None, ge=1)
    period_id: str | None = None


class ExamFilters(BaseModel):
    exam_type: ExamType | None = None
    status: ActivityStatus | None = None
    student_id: str | None = None
    period_id: str | None = None


class ExamResponse(BaseModel):
    """Exam activity flattened with its exam detail."""

    id: str
    exam_id: str
    code: str
    student_id: str
    status: ActivityStatus
    exam_type: ExamType
    enrolled_at: datetime | None = None
    subject_id: str | None = None
    subject_name: str | None = None
    period_id: str | None = None
    period_name: str | None = None
    english_level: int | None = None
    result: float | None = None
    assigned_level: int | None = None
    exam_date: datetime | None = None
    evaluated_at: datetime | None = None
    requires_payment: bool = False
    payment_amount: float | None = None
    payment_date: datetime | None = None
    payment_approved: bool | None = None
    remarks: str | None = None


class ExamResultResponse(BaseModel):
    """Outcome of processing an exam result."""

    exam: ExamResponse
    is_perfect_score: bool = False
    message: str


class EnglishCourseRecord(BaseModel):
    """English course taken by a student, as listed in the English status."""

    id: str
    code: str
    english_level: int | None = None
    status: ActivityStatus
    enrolled_at: datetime | None = None
    grade: float | None = None
    payment_approved: bool | None = None
    group_id: str | None = None
    subject_name: str | None = None


class StudentEnglishStatus(BaseModel):
    """English progress of a student built from exam and course activities."""

    student_id: str
    student_number: str
    full_name: str
    current_english_level: int | None = None
    certified_english_level: int | None = None
    english_percentage: float | None = None
    diagnostic_exam_date: datetime | None = None
    latest_diagnostic: ExamResponse | None = None
    diagnostic_exams: list[ExamResponse] = Field(default_factory=list)
    english_courses: list[EnglishCourseRecord] = Field(default_factory=list)
    has_pending_exam: bool = False
    pending_exam: ExamResponse | None = None
    requirement: EnglishRequirementStatus
