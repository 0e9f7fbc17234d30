# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rules for diagnostic exam periods."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.domains.errors import BusinessRuleError, NotFoundError, ValidationError
from school_admin.infrastructure.database.models import ExamPeriod
from school_admin.models.common import ExamPeriodStatus
from school_admin.utils.datetime import ensure_utc, is_within_window


class ExamPeriodNotFoundError(NotFoundError):
    """Raised when an exam period is not found."""

    pass


class ExamPeriodFullError(BusinessRuleError):
    """Raised when an exam period has no seats left."""

    pass


def validate_dates(
    registration_start: datetime,
    registration_end: datetime,
    start_date: datetime,
    end_date: datetime,
) -> None:
    """Validate the registration window against the exam window.

    Registration has to open and close no later than the day exams start.

    Raises:
        ValidationError: On the first rule that fails.
    """
    registration_start = ensure_utc(registration_start)
    registration_end = ensure_utc(registration_end)
    start_date = ensure_utc(start_date)
    end_date = ensure_utc(end_date)

    if registration_start >= registration_end:
        raise ValidationError("Registration start must be before registration end")
    if start_date >= end_date:
        raise ValidationError("Period start must be before period end")
    if registration_end > start_date:
        raise ValidationError("Registration must close on or before the day exams start")
    if registration_start > start_date:
        raise ValidationError("Registration must open before the exam period starts")


class ExamPeriodValidators:
    """Lookups and registration checks for exam periods.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def validate_period_exists(self, period_id: str) -> ExamPeriod:
        result = await self.db.execute(
            select(ExamPeriod).where(
                ExamPeriod.id == str(period_id),
                ExamPeriod.deleted_at.is_(None),
            )
        )
        period = result.scalar_one_or_none()
        if period is None:
            raise ExamPeriodNotFoundError("Exam period not found")
        return period

    @staticmethod
    def validate_open_for_registration(period: ExamPeriod, now: datetime) -> None:
        """Raise BusinessRuleError unless the period accepts registrations at ``now``."""
        if period.status != ExamPeriodStatus.OPEN.value:
            raise BusinessRuleError("The exam period is not open for registration")
        if not is_within_window(now, period.registration_start, period.registration_end):
            raise BusinessRuleError("Registration for this exam period is not active right now")

    @staticmethod
    def validate_capacity(period: ExamPeriod) -> None:
        if period.current_enrollment >= period.max_capacity:
            raise ExamPeriodFullError("The exam period is full")
