# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pagination helper for list queries."""

from typing import Any, Sequence

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.models.common import PageParams


async def paginate(
    db: AsyncSession,
    query: Select,
    params: PageParams,
) -> tuple[Sequence[Any], int]:
    """Run a count query and a page query for the same statement.

    Args:
        db: Async database session.
        query: Filtered and ordered select statement.
        params: Pagination parameters.

    Returns:
        Tuple of (rows on the requested page, total row count).
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    result = await db.execute(query.offset(params.offset).limit(params.limit))
    return result.scalars().all(), total
