# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database seed package.

This package contains seed data for initializing a school database:
users, teacher and student profiles, subjects, groups and an exam period.
"""

from school_admin.infrastructure.database.seeds.school import seed_school_database

__all__ = ["seed_school_database"]
