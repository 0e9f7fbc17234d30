"""School administration backend.

Domain services for students, teachers, subjects, groups, enrollments,
exams, special courses and the English proficiency requirement.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
