# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam period service.

This module provides the ExamPeriodService that handles:
- Period CRUD with registration and exam date validation
- Opening and closing periods for registration
- The cached list of periods students can register for

Example:
    >>> service = ExamPeriodService(db_session, cache=query_cache)
    >>> period = await service.create_period(request, created_by=user_id)
    >>> await service.open_period(period.id)
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.config import get_settings
from school_admin.domains.common.pagination import paginate
from school_admin.domains.errors import BusinessRuleError, ValidationError
from school_admin.domains.exam_period.validators import ExamPeriodValidators, validate_dates
from school_admin.infrastructure.cache import QueryCache
from school_admin.infrastructure.database.models import ExamPeriod
from school_admin.infrastructure.database.models.base import new_uuid
from school_admin.models.common import (
    ExamPeriodStatus,
    PageParams,
    PaginatedResponse,
    PaginationMeta,
)
from school_admin.models.exam_period import (
    AvailableExamPeriodResponse,
    ExamPeriodCreateRequest,
    ExamPeriodResponse,
    ExamPeriodUpdateRequest,
)
from school_admin.utils.datetime import utc_now

logger = logging.getLogger(__name__)

CACHE_PREFIX = "exam_periods:"
AVAILABLE_PERIODS_KEY = "exam_periods:available"

_DATE_FIELDS = ("registration_start", "registration_end", "start_date", "end_date")
_PLAIN_FIELDS = ("name", "description", "requires_payment", *_DATE_FIELDS)

_OPENABLE_STATUSES = (ExamPeriodStatus.PLANNED.value, ExamPeriodStatus.CLOSED.value)


def _to_decimal(value: float | None) -> Decimal | None:
    return None if value is None else Decimal(str(value))


class ExamPeriodService:
    """Service for managing diagnostic exam periods.

    Attributes:
        db: Async database session.
        cache: Optional query cache for the available periods.
    """

    def __init__(self, db: AsyncSession, cache: QueryCache | None = None) -> None:
        self.db = db
        self.cache = cache
        self._validators = ExamPeriodValidators(db)
        self._settings = get_settings().academic

    async def create_period(
        self,
        request: ExamPeriodCreateRequest,
        created_by: str | None = None,
    ) -> ExamPeriodResponse:
        """Create a PLANNED exam period.

        Raises:
            ValidationError: If the dates are inconsistent.
        """
        validate_dates(
            request.registration_start,
            request.registration_end,
            request.start_date,
            request.end_date,
        )

        period = ExamPeriod(
            id=new_uuid(),
            max_capacity=request.max_capacity or self._settings.default_exam_period_capacity,
            current_enrollment=0,
            cost=_to_decimal(request.cost),
            status=ExamPeriodStatus.PLANNED.value,
            created_by=created_by,
            **{field: getattr(request, field) for field in _PLAIN_FIELDS},
        )

        self.db.add(period)
        await self.db.commit()
        await self.db.refresh(period)
        await self._invalidate_cache()

        logger.info("Exam period created: %s (%s)", period.id, period.name)
        return ExamPeriodResponse.model_validate(period)

    async def list_periods(
        self,
        status: ExamPeriodStatus | None = None,
        params: PageParams | None = None,
    ) -> PaginatedResponse[ExamPeriodResponse]:
        """List non-deleted periods, latest start first."""
        params = (params or PageParams(limit=self._settings.default_page_size)).clamped(
            self._settings.max_page_size
        )

        stmt = select(ExamPeriod).where(ExamPeriod.deleted_at.is_(None))
        if status is not None:
            stmt = stmt.where(ExamPeriod.status == ExamPeriodStatus(status).value)
        stmt = stmt.order_by(ExamPeriod.start_date.desc())

        periods, total = await paginate(self.db, stmt, params)
        return PaginatedResponse[ExamPeriodResponse](
            items=[ExamPeriodResponse.model_validate(p) for p in periods],
            pagination=PaginationMeta.build(params.page, params.limit, total),
        )

    async def get_period(self, period_id: str) -> ExamPeriodResponse:
        period = await self._validators.validate_period_exists(period_id)
        return ExamPeriodResponse.model_validate(period)

    async def update_period(
        self,
        period_id: str,
        request: ExamPeriodUpdateRequest,
    ) -> ExamPeriodResponse:
        """Update a period, re-validating the merged dates.

        Raises:
            ExamPeriodNotFoundError: If the period does not exist.
            ValidationError: If the merged dates are inconsistent or the
                capacity would drop below the current occupancy.
        """
        period = await self._validators.validate_period_exists(period_id)
        changes = request.model_dump(exclude_unset=True)

        merged = {field: changes.get(field) or getattr(period, field) for field in _DATE_FIELDS}
        validate_dates(
            merged["registration_start"],
            merged["registration_end"],
            merged["start_date"],
            merged["end_date"],
        )

        if request.max_capacity is not None and request.max_capacity < period.current_enrollment:
            raise ValidationError(
                f"Maximum capacity cannot be lower than current enrollment "
                f"({period.current_enrollment})"
            )

        for field in _PLAIN_FIELDS:
            if field in changes and changes[field] is not None:
                setattr(period, field, changes[field])
        if "description" in changes:
            period.description = changes["description"]
        if request.max_capacity is not None:
            period.max_capacity = request.max_capacity
        if "cost" in changes:
            period.cost = _to_decimal(request.cost)
        if request.status is not None:
            period.status = request.status.value

        return await self._save(period, "updated")

    async def delete_period(self, period_id: str) -> None:
        period = await self._validators.validate_period_exists(period_id)
        period.soft_delete()

        await self.db.commit()
        await self._invalidate_cache()
        logger.info("Exam period deleted: %s", period.id)

    async def open_period(self, period_id: str) -> ExamPeriodResponse:
        """Open a PLANNED or CLOSED period for registration.

        Raises:
            BusinessRuleError: If the period is in any other status.
        """
        period = await self._validators.validate_period_exists(period_id)
        if period.status not in _OPENABLE_STATUSES:
            raise BusinessRuleError(
                f"Only planned or closed periods can be opened (status is {period.status})"
            )
        period.status = ExamPeriodStatus.OPEN.value
        return await self._save(period, "opened")

    async def close_period(self, period_id: str) -> ExamPeriodResponse:
        period = await self._validators.validate_period_exists(period_id)
        if period.status != ExamPeriodStatus.OPEN.value:
            raise BusinessRuleError(
                f"Only open periods can be closed (status is {period.status})"
            )
        period.status = ExamPeriodStatus.CLOSED.value
        return await self._save(period, "closed")

    async def get_available_periods(
        self,
        now: datetime | None = None,
    ) -> list[AvailableExamPeriodResponse]:
        """Open periods whose registration window contains ``now``.

        Full periods are included and flagged with ``is_available=False``.
        Only reads for the current time go through the cache.
        """
        if now is None and self.cache is not None:
            cached = await self.cache.cached(AVAILABLE_PERIODS_KEY, {}, self._load_available)
            return [AvailableExamPeriodResponse.model_validate(item) for item in cached]

        return await self._query_available(now or utc_now())

    async def _load_available(self) -> list[dict]:
        periods = await self._query_available(utc_now())
        return [p.model_dump(mode="json") for p in periods]

    async def _query_available(self, now: datetime) -> list[AvailableExamPeriodResponse]:
        result = await self.db.execute(
            select(ExamPeriod)
            .where(
                ExamPeriod.deleted_at.is_(None),
                ExamPeriod.status == ExamPeriodStatus.OPEN.value,
                ExamPeriod.registration_start <= now,
                ExamPeriod.registration_end >= now,
            )
            .order_by(ExamPeriod.registration_start.asc())
        )

        available = []
        for period in result.scalars().all():
            data = ExamPeriodResponse.model_validate(period).model_dump()
            available.append(
                AvailableExamPeriodResponse(
                    **data,
                    available_seats=period.available_seats,
                    is_available=period.available_seats > 0,
                )
            )
        return available

    async def _save(self, period: ExamPeriod, action: str) -> ExamPeriodResponse:
        await self.db.commit()
        await self.db.refresh(period)
        await self._invalidate_cache()

        logger.info("Exam period %s: %s (status=%s)", action, period.id, period.status)
        return ExamPeriodResponse.model_validate(period)

    async def _invalidate_cache(self) -> None:
        if self.cache is not None:
            await self.cache.invalidate_prefix(CACHE_PREFIX)
