# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Legacy enrollment model.

One row per student participation in a group. English diagnostic exams and
English course requests made through the legacy flow live here as well,
distinguished by enrollment_type.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_admin.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from school_admin.models.common import EnrollmentStatus, EnrollmentType
from school_admin.utils.datetime import utc_now

if TYPE_CHECKING:
    from school_admin.infrastructure.database.models.school import Group, Student

GRADE_FIELDS = (
    "partial_grade_1",
    "partial_grade_2",
    "partial_grade_3",
    "final_grade",
    "extraordinary_grade",
    "grade",
)


class Enrollment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Student enrollment in a group."""

    __tablename__ = "enrollments"

    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    group_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("class_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    enrollment_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default=EnrollmentType.NORMAL.value
    )
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=EnrollmentStatus.ENROLLED.value, index=True
    )
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    # Grades (0-100)
    partial_grade_1: Mapped[float | None] = mapped_column(Float, nullable=True)
    partial_grade_2: Mapped[float | None] = mapped_column(Float, nullable=True)
    partial_grade_3: Mapped[float | None] = mapped_column(Float, nullable=True)
    final_grade: Mapped[float | None] = mapped_column(Float, nullable=True)
    extraordinary_grade: Mapped[float | None] = mapped_column(Float, nullable=True)
    grade: Mapped[float | None] = mapped_column(Float, nullable=True)
    passed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    pass_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Attendance
    attendances: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    absences: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tardies: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attendance_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)

    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    # English flow
    english_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    requires_payment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payment_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    payment_proof_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_approved: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    payment_approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(36), nullable=True)

    student: Mapped["Student"] = relationship("Student", back_populates="enrollments")
    group: Mapped["Group"] = relationship("Group", back_populates="enrollments")

    @property
    def effective_grade(self) -> float | None:
        """Final grade when recorded, otherwise the plain grade."""
        if self.final_grade is not None:
            return self.final_grade
        return self.grade
