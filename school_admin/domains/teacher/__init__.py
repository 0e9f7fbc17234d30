# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Teacher domain package."""

from school_admin.domains.teacher.service import TeacherHasGroupsError, TeacherService

__all__ = [
    "TeacherHasGroupsError",
    "TeacherService",
]
