# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services for school_admin.

Each subpackage owns one area of the school: entity CRUD (students,
teachers, subjects, groups), legacy enrollments, the English enrollment
flow, and the academic activity family (exams, special courses, exam
periods).
"""
