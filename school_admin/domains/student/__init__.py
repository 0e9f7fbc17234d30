# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student domain package.

This package provides student management functionality including:
- Student CRUD with the linked login account
- General and English averages
- English requirement status
"""

from school_admin.domains.student.calculators import StudentCalculators
from school_admin.domains.student.service import StudentService

__all__ = [
    "StudentCalculators",
    "StudentService",
]
