# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam domain package.

This package provides:
- Diagnostic, admission and certification exams as academic activities
- English placement from diagnostic results
- The ExamService
"""

from school_admin.domains.exam.service import ExamService
from school_admin.domains.exam.validators import (
    ActiveDiagnosticExamError,
    ExamNotFoundError,
    ExamValidators,
)

__all__ = [
    "ActiveDiagnosticExamError",
    "ExamNotFoundError",
    "ExamService",
    "ExamValidators",
]
