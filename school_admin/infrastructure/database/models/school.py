# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core school entities: students, teachers, subjects and groups."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_admin.infrastructure.database.models.base import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from school_admin.models.common import GroupStatus, Modality, StudentStatus, TeacherStatus

if TYPE_CHECKING:
    from school_admin.infrastructure.database.models.activity import AcademicActivity
    from school_admin.infrastructure.database.models.enrollment import Enrollment
    from school_admin.infrastructure.database.models.user import User


class Student(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Student profile with the denormalized English progress fields."""

    __tablename__ = "students"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    student_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    paternal_surname: Mapped[str] = mapped_column(String(100), nullable=False)
    maternal_surname: Mapped[str | None] = mapped_column(String(100), nullable=True)
    program: Mapped[str] = mapped_column(String(150), nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=StudentStatus.ACTIVE.value
    )
    curp: Mapped[str | None] = mapped_column(String(18), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    # English progress
    current_english_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    certified_english_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    english_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    english_average: Mapped[float | None] = mapped_column(Float, nullable=True)
    meets_english_requirement: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    diagnostic_exam_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Academic summary
    general_average: Mapped[float | None] = mapped_column(Float, nullable=True)
    credits_taken: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    credits_passed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    user: Mapped["User"] = relationship("User", back_populates="student")
    enrollments: Mapped[list["Enrollment"]] = relationship("Enrollment", back_populates="student")
    activities: Mapped[list["AcademicActivity"]] = relationship(
        "AcademicActivity", back_populates="student"
    )

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.paternal_surname, self.maternal_surname]
        return " ".join(p for p in parts if p)

    def __repr__(self) -> str:
        return f"<Student {self.student_number}>"


class Teacher(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Teacher profile."""

    __tablename__ = "teachers"

    user_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        unique=True,
        nullable=True,
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    paternal_surname: Mapped[str] = mapped_column(String(100), nullable=False)
    maternal_surname: Mapped[str | None] = mapped_column(String(100), nullable=True)
    department: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    academic_degree: Mapped[str | None] = mapped_column(String(100), nullable=True)
    specialty: Mapped[str | None] = mapped_column(String(150), nullable=True)
    contract_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TeacherStatus.ACTIVE.value
    )

    user: Mapped["User"] = relationship("User", back_populates="teacher")
    groups: Mapped[list["Group"]] = relationship("Group", back_populates="teacher")

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.paternal_surname, self.maternal_surname]
        return " ".join(p for p in parts if p)


class Subject(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Subject in the curriculum, identified by a unique code."""

    __tablename__ = "subjects"

    code: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    groups: Mapped[list["Group"]] = relationship("Group", back_populates="subject")


class Group(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A subject taught by a teacher in a period, with a seat capacity."""

    __tablename__ = "class_groups"

    subject_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("subjects.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    teacher_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("teachers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)
    period: Mapped[str] = mapped_column(String(20), nullable=False)
    max_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    min_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    current_enrollment: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    schedule: Mapped[str | None] = mapped_column(String(200), nullable=True)
    classroom: Mapped[str | None] = mapped_column(String(50), nullable=True)
    building: Mapped[str | None] = mapped_column(String(50), nullable=True)
    modality: Mapped[str] = mapped_column(
        String(20), nullable=False, default=Modality.IN_PERSON.value
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=GroupStatus.OPEN.value
    )

    # English course configuration
    is_english_course: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    english_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    registration_start: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    registration_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    subject: Mapped["Subject"] = relationship("Subject", back_populates="groups")
    teacher: Mapped["Teacher"] = relationship("Teacher", back_populates="groups")
    enrollments: Mapped[list["Enrollment"]] = relationship("Enrollment", back_populates="group")

    @property
    def has_capacity(self) -> bool:
        return self.current_enrollment < self.max_capacity

    @property
    def available_seats(self) -> int:
        return max(self.max_capacity - self.current_enrollment, 0)
