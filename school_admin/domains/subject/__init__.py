# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Subject domain package."""

from school_admin.domains.subject.service import SubjectHasGroupsError, SubjectService

__all__ = [
    "SubjectHasGroupsError",
    "SubjectService",
]
