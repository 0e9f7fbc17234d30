# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Diagnostic exam period model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_admin.infrastructure.database.models.base import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from school_admin.models.common import ExamPeriodStatus

if TYPE_CHECKING:
    from school_admin.infrastructure.database.models.activity import Exam


class ExamPeriod(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Window during which students register for and sit diagnostic exams."""

    __tablename__ = "exam_periods"

    name: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    registration_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    registration_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    max_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    current_enrollment: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    requires_payment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cost: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ExamPeriodStatus.PLANNED.value
    )
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)

    exams: Mapped[list["Exam"]] = relationship("Exam", back_populates="period")

    @property
    def available_seats(self) -> int:
        return max(self.max_capacity - self.current_enrollment, 0)
