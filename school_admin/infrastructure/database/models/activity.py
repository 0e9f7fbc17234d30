# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic activity models.

An AcademicActivity is the polymorphic header shared by every kind of
student activity. Type specific data lives in a one-to-one detail row
(exams, special_courses). Every change is appended to activity_history.
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
    SoftDeleteMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from school_admin.models.common import ActivityStatus
from school_admin.utils.datetime import utc_now

if TYPE_CHECKING:
    from school_admin.infrastructure.database.models.exam_period import ExamPeriod
    from school_admin.infrastructure.database.models.school import Group, Student, Subject


class AcademicActivity(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Header row for an exam, special course or other activity."""

    __tablename__ = "academic_activities"

    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    activity_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=ActivityStatus.ENROLLED.value
    )
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(36), nullable=True)

    student: Mapped["Student"] = relationship("Student", back_populates="activities")
    exam: Mapped["Exam"] = relationship("Exam", back_populates="activity", uselist=False)
    special_course: Mapped["SpecialCourse"] = relationship(
        "SpecialCourse", back_populates="activity", uselist=False
    )
    history: Mapped[list["ActivityHistory"]] = relationship(
        "ActivityHistory",
        back_populates="activity",
        order_by="ActivityHistory.created_at",
    )


class ActivityHistory(UUIDPrimaryKeyMixin, Base):
    """Append-only audit trail of activity changes."""

    __tablename__ = "activity_history"

    activity_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("academic_activities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    field_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    performed_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    activity: Mapped["AcademicActivity"] = relationship(
        "AcademicActivity", back_populates="history"
    )


class Exam(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Exam detail (diagnostic, admission or certification)."""

    __tablename__ = "exams"

    activity_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("academic_activities.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    exam_type: Mapped[str] = mapped_column(String(20), nullable=False)
    subject_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("subjects.id", ondelete="SET NULL"),
        nullable=True,
    )
    period_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("exam_periods.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    english_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    result: Mapped[float | None] = mapped_column(Float, nullable=True)
    assigned_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    exam_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    evaluated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    evaluated_by: Mapped[str | None] = mapped_column(String(36), nullable=True)

    requires_payment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payment_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_approved: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    payment_approved_by: Mapped[str | None] = mapped_column(String(36), nullable=True)

    activity: Mapped["AcademicActivity"] = relationship("AcademicActivity", back_populates="exam")
    subject: Mapped["Subject"] = relationship("Subject")
    period: Mapped["ExamPeriod"] = relationship("ExamPeriod", back_populates="exams")


class SpecialCourse(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Special course detail. English levels are tracked here."""

    __tablename__ = "special_courses"

    activity_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("academic_activities.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    course_type: Mapped[str] = mapped_column(String(30), nullable=False)
    english_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    group_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("class_groups.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    grade: Mapped[float | None] = mapped_column(Float, nullable=True)
    passed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    requires_payment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    payment_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_approved: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    payment_approved_by: Mapped[str | None] = mapped_column(String(36), nullable=True)

    # Set on levels credited by a diagnostic exam instead of taken as a course
    completed_by_diagnostic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source_exam_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("exams.id", ondelete="SET NULL"),
        nullable=True,
    )

    activity: Mapped["AcademicActivity"] = relationship(
        "AcademicActivity", back_populates="special_course"
    )
    group: Mapped["Group"] = relationship("Group")
