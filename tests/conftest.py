# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across the unit tests:
- A mocked AsyncSession
- Factories building ORM entities in memory
- Callers for each role
"""

from collections.abc import Callable, Generator
from datetime import timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from school_admin.core.config import clear_settings_cache
from school_admin.infrastructure.database.models import (
    AcademicActivity,
    Enrollment,
    Exam,
    ExamPeriod,
    Group,
    SpecialCourse,
    Student,
    Subject,
    Teacher,
    User,
)
from school_admin.models.common import (
    ActivityStatus,
    ActivityType,
    CourseType,
    CurrentUser,
    EnrollmentStatus,
    EnrollmentType,
    ExamPeriodStatus,
    ExamType,
    GroupStatus,
    Modality,
    StudentStatus,
    TeacherStatus,
    UserRole,
)
from school_admin.utils.datetime import utc_now


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_settings() -> Generator[None, None, None]:
    """Reload settings for every test so env patches take effect."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def mock_db() -> AsyncMock:
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    db.delete = AsyncMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()

    # begin_nested() is sync and returns an async context manager
    savepoint = AsyncMock()
    savepoint.__aenter__.return_value = savepoint
    savepoint.__aexit__.return_value = False
    db.begin_nested = MagicMock(return_value=savepoint)
    return db


def scalar_result(value: Any) -> MagicMock:
    """Result whose scalar_one_or_none() and scalar() return value."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar.return_value = value
    return result


def scalars_result(values: list[Any]) -> MagicMock:
    """Result whose scalars().all() returns values."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = values
    return result


def rows_result(rows: list[tuple]) -> MagicMock:
    """Result whose all() returns rows."""
    result = MagicMock()
    result.all.return_value = rows
    return result


@pytest.fixture
def results() -> Any:
    """Builders for mocked execute() results."""

    class _Results:
        scalar = staticmethod(scalar_result)
        scalars = staticmethod(scalars_result)
        rows = staticmethod(rows_result)

    return _Results


# =============================================================================
# Entity Factories
# =============================================================================


def _id() -> str:
    return str(uuid4())


def build_user(**overrides: Any) -> User:
    data = {
        "id": _id(),
        "username": "user.demo",
        "password_hash": "$2b$12$hash",
        "role": UserRole.STUDENT.value,
        "is_active": True,
    }
    data.update(overrides)
    return User(**data)


def build_student(**overrides: Any) -> Student:
    data = {
        "id": _id(),
        "user_id": _id(),
        "student_number": "2025000001",
        "first_name": "Carlos",
        "paternal_surname": "Hernandez",
        "maternal_surname": "Lopez",
        "program": "Computer Systems Engineering",
        "semester": 3,
        "status": StudentStatus.ACTIVE.value,
        "curp": None,
        "email": "carlos@example.edu",
        "phone": None,
        "current_english_level": None,
        "certified_english_level": None,
        "english_percentage": None,
        "english_average": None,
        "meets_english_requirement": False,
        "diagnostic_exam_date": None,
        "general_average": None,
        "credits_taken": 0,
        "credits_passed": 0,
        "deleted_at": None,
        "created_at": utc_now(),
        "updated_at": utc_now(),
    }
    data.update(overrides)
    return Student(**data)


def build_teacher(**overrides: Any) -> Teacher:
    data = {
        "id": _id(),
        "user_id": _id(),
        "first_name": "Laura",
        "paternal_surname": "Mendoza",
        "maternal_surname": "Ruiz",
        "department": "Languages",
        "email": "laura@example.edu",
        "phone": None,
        "academic_degree": "M.A.",
        "specialty": None,
        "contract_type": None,
        "hire_date": None,
        "status": TeacherStatus.ACTIVE.value,
        "deleted_at": None,
        "created_at": utc_now(),
        "updated_at": utc_now(),
    }
    data.update(overrides)
    return Teacher(**data)


def build_subject(**overrides: Any) -> Subject:
    data = {
        "id": _id(),
        "code": "MAT-101",
        "name": "Differential Calculus",
        "credits": 5,
        "description": None,
        "deleted_at": None,
        "created_at": utc_now(),
        "updated_at": utc_now(),
    }
    data.update(overrides)
    return Subject(**data)


def build_group(subject: Subject | None = None, teacher: Teacher | None = None, **overrides: Any) -> Group:
    subject = subject or build_subject()
    teacher = teacher or build_teacher()
    now = utc_now()
    data = {
        "id": _id(),
        "subject_id": subject.id,
        "teacher_id": teacher.id,
        "name": "Group A",
        "code": None,
        "period": "2025-2",
        "max_capacity": 30,
        "min_capacity": 5,
        "current_enrollment": 0,
        "schedule": None,
        "classroom": None,
        "building": None,
        "modality": Modality.IN_PERSON.value,
        "status": GroupStatus.OPEN.value,
        "is_english_course": False,
        "english_level": None,
        "registration_start": now - timedelta(days=1),
        "registration_end": now + timedelta(days=10),
        "deleted_at": None,
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    group = Group(**data)
    group.subject = subject
    group.teacher = teacher
    return group


def build_enrollment(
    student: Student | None = None,
    group: Group | None = None,
    **overrides: Any,
) -> Enrollment:
    student = student or build_student()
    group = group or build_group()
    data = {
        "id": _id(),
        "code": "INS-00000001",
        "student_id": student.id,
        "group_id": group.id,
        "enrollment_type": EnrollmentType.NORMAL.value,
        "status": EnrollmentStatus.ENROLLED.value,
        "enrolled_at": utc_now(),
        "partial_grade_1": None,
        "partial_grade_2": None,
        "partial_grade_3": None,
        "final_grade": None,
        "extraordinary_grade": None,
        "grade": None,
        "passed": None,
        "pass_date": None,
        "attendances": 0,
        "absences": 0,
        "tardies": 0,
        "attendance_percentage": None,
        "remarks": None,
        "english_level": None,
        "requires_payment": False,
        "payment_amount": None,
        "payment_proof_url": None,
        "payment_date": None,
        "payment_approved": None,
        "payment_approved_at": None,
        "created_at": utc_now(),
        "updated_at": utc_now(),
    }
    data.update(overrides)
    enrollment = Enrollment(**data)
    enrollment.group = group
    return enrollment


def build_exam_period(**overrides: Any) -> ExamPeriod:
    now = utc_now()
    data = {
        "id": _id(),
        "name": "Diagnostic exams 2025-2",
        "description": None,
        "registration_start": now - timedelta(days=1),
        "registration_end": now + timedelta(days=5),
        "start_date": now + timedelta(days=6),
        "end_date": now + timedelta(days=10),
        "max_capacity": 100,
        "current_enrollment": 0,
        "requires_payment": False,
        "cost": None,
        "status": ExamPeriodStatus.OPEN.value,
        "created_by": None,
        "deleted_at": None,
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    return ExamPeriod(**data)


def build_activity(student: Student | None = None, **overrides: Any) -> AcademicActivity:
    student = student or build_student()
    data = {
        "id": _id(),
        "code": "EXA-00000001",
        "student_id": student.id,
        "activity_type": ActivityType.EXAM.value,
        "status": ActivityStatus.ENROLLED.value,
        "enrolled_at": utc_now(),
        "completed_at": None,
        "remarks": None,
        "created_by": None,
        "updated_by": None,
        "deleted_at": None,
        "created_at": utc_now(),
        "updated_at": utc_now(),
    }
    data.update(overrides)
    activity = AcademicActivity(**data)
    activity.student = student
    return activity


def build_exam_activity(
    student: Student | None = None,
    exam_overrides: dict[str, Any] | None = None,
    **overrides: Any,
) -> AcademicActivity:
    """Exam activity with its Exam detail attached."""
    activity = build_activity(student, **overrides)
    data = {
        "id": _id(),
        "activity_id": activity.id,
        "exam_type": ExamType.DIAGNOSTIC.value,
        "subject_id": None,
        "period_id": None,
        "english_level": None,
        "result": None,
        "assigned_level": None,
        "exam_date": None,
        "evaluated_at": None,
        "evaluated_by": None,
        "requires_payment": False,
        "payment_amount": None,
        "payment_date": None,
        "payment_approved": True,
        "payment_approved_by": None,
    }
    data.update(exam_overrides or {})
    exam = Exam(**data)
    exam.subject = None
    exam.period = None
    activity.exam = exam
    return activity


def build_course_activity(
    student: Student | None = None,
    group: Group | None = None,
    course_overrides: dict[str, Any] | None = None,
    **overrides: Any,
) -> AcademicActivity:
    """Special course activity with its SpecialCourse detail attached."""
    overrides.setdefault("activity_type", ActivityType.SPECIAL_COURSE.value)
    overrides.setdefault("code", "CUR-00000001")
    activity = build_activity(student, **overrides)
    data = {
        "id": _id(),
        "activity_id": activity.id,
        "course_type": CourseType.ENGLISH.value,
        "english_level": 1,
        "group_id": group.id if group else None,
        "grade": None,
        "passed": None,
        "start_date": None,
        "end_date": None,
        "requires_payment": True,
        "payment_amount": None,
        "payment_date": None,
        "payment_approved": None,
        "payment_approved_by": None,
        "completed_by_diagnostic": False,
        "source_exam_id": None,
    }
    data.update(course_overrides or {})
    course = SpecialCourse(**data)
    course.group = group
    activity.special_course = course
    return activity


@pytest.fixture
def make_student() -> Callable[..., Student]:
    return build_student


@pytest.fixture
def make_teacher() -> Callable[..., Teacher]:
    return build_teacher


@pytest.fixture
def make_subject() -> Callable[..., Subject]:
    return build_subject


@pytest.fixture
def make_group() -> Callable[..., Group]:
    return build_group


@pytest.fixture
def make_enrollment() -> Callable[..., Enrollment]:
    return build_enrollment


@pytest.fixture
def make_user() -> Callable[..., User]:
    return build_user


@pytest.fixture
def make_exam_period() -> Callable[..., ExamPeriod]:
    return build_exam_period


@pytest.fixture
def make_exam_activity() -> Callable[..., AcademicActivity]:
    return build_exam_activity


@pytest.fixture
def make_course_activity() -> Callable[..., AcademicActivity]:
    return build_course_activity


# =============================================================================
# Callers
# =============================================================================


@pytest.fixture
def admin_user() -> CurrentUser:
    return CurrentUser(user_id=_id(), role=UserRole.ADMIN)


@pytest.fixture
def teacher_user() -> CurrentUser:
    return CurrentUser(user_id=_id(), role=UserRole.TEACHER, teacher_id=_id())


@pytest.fixture
def student_user() -> CurrentUser:
    return CurrentUser(user_id=_id(), role=UserRole.STUDENT, student_id=_id())
