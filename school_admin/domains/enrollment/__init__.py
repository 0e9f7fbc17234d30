# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Legacy enrollment domain package.

This package provides:
- Enrollment lifecycle rules (transitions, locked fields, capacity)
- Derived values (pass flag, pass date, attendance)
- The EnrollmentService
"""

from school_admin.domains.enrollment.calculators import EnrollmentCalculators
from school_admin.domains.enrollment.service import EnrollmentService
from school_admin.domains.enrollment.validators import (
    DuplicateEnrollmentError,
    EnrollmentNotFoundError,
    EnrollmentValidators,
    GroupFullError,
    InvalidTransitionError,
    LockedFieldError,
)

__all__ = [
    "DuplicateEnrollmentError",
    "EnrollmentCalculators",
    "EnrollmentNotFoundError",
    "EnrollmentService",
    "EnrollmentValidators",
    "GroupFullError",
    "InvalidTransitionError",
    "LockedFieldError",
]
