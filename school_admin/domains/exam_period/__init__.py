# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Diagnostic exam period domain package."""

from school_admin.domains.exam_period.service import ExamPeriodService
from school_admin.domains.exam_period.validators import (
    ExamPeriodFullError,
    ExamPeriodNotFoundError,
    ExamPeriodValidators,
    validate_dates,
)

__all__ = [
    "ExamPeriodFullError",
    "ExamPeriodNotFoundError",
    "ExamPeriodService",
    "ExamPeriodValidators",
    "validate_dates",
]
