# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Sequential record codes such as INS-00000001."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

CODE_DIGITS = 8


def format_code(prefix: str, number: int) -> str:
    return f"{prefix}-{number:0{CODE_DIGITS}d}"


async def next_code(db: AsyncSession, column: InstrumentedAttribute, prefix: str) -> str:
    """Return the code following the highest existing code with this prefix.

    Codes are zero padded, so the lexical maximum is the numeric maximum.

    Args:
        db: Async database session.
        column: Code column to scan, e.g. ``Enrollment.code``.
        prefix: Code prefix without the dash, e.g. ``"INS"``.

    Returns:
        The next code, ``prefix-00000001`` when none exists.
    """
    result = await db.execute(select(func.max(column)).where(column.like(f"{prefix}-%")))
    last = result.scalar()
    if not last:
        return format_code(prefix, 1)

    return format_code(prefix, int(last.rsplit("-", 1)[1]) + 1)
