# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School database seed data.

This module provides seed data for a fresh school database:
- Users: one administrator, one teacher and one student
- Subjects: a regular subject and the six English levels
- Groups: an open group per subject
- Exam periods: one open diagnostic exam period
"""

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.infrastructure.database.models import (
    ExamPeriod,
    Group,
    Student,
    Subject,
    Teacher,
    User,
)
from school_admin.models.common import (
    ExamPeriodStatus,
    GroupStatus,
    Modality,
    StudentStatus,
    TeacherStatus,
    UserRole,
)
from school_admin.utils.datetime import utc_now

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

DEFAULT_PERIOD = "2025-2"


async def seed_users(
    session: AsyncSession,
    admin_password: str = "Admin*2025",
    sample_password: str = "Password*2025",
) -> dict[str, User]:
    """Seed the administrator and the sample teacher and student accounts.

    Args:
        session: Database session.
        admin_password: Password of the admin account.
        sample_password: Password of the sample accounts.

    Returns:
        Users keyed by role.
    """
    users = {
        "admin": User(
            username="admin",
            password_hash=pwd_context.hash(admin_password),
            role=UserRole.ADMIN.value,
            is_active=True,
        ),
        "teacher": User(
            username="teacher.demo",
            password_hash=pwd_context.hash(sample_password),
            role=UserRole.TEACHER.value,
            is_active=True,
        ),
        "student": User(
            username="student.demo",
            password_hash=pwd_context.hash(sample_password),
            role=UserRole.STUDENT.value,
            is_active=True,
        ),
    }
    session.add_all(users.values())
    await session.flush()
    logger.info(f"Seeded {len(users)} users")
    return users


async def seed_profiles(
    session: AsyncSession,
    users: dict[str, User],
) -> tuple[Teacher, Student]:
    """Seed the teacher and student profiles linked to the sample users."""
    teacher = Teacher(
        user_id=users["teacher"].id,
        first_name="Laura",
        paternal_surname="Mendoza",
        maternal_surname="Ruiz",
        department="Languages",
        email="laura.mendoza@example.edu",
        academic_degree="M.A.",
        specialty="English as a foreign language",
        status=TeacherStatus.ACTIVE.value,
    )
    student = Student(
        user_id=users["student"].id,
        student_number="2025000001",
        first_name="Carlos",
        paternal_surname="Hernandez",
        maternal_surname="Lopez",
        program="Computer Systems Engineering",
        semester=1,
        status=StudentStatus.ACTIVE.value,
        email="carlos.hernandez@example.edu",
        meets_english_requirement=False,
        credits_taken=0,
        credits_passed=0,
    )
    session.add_all([teacher, student])
    await session.flush()
    logger.info("Seeded teacher and student profiles")
    return teacher, student


async def seed_subjects(session: AsyncSession) -> list[Subject]:
    """Seed a regular subject and the English levels ING-1 to ING-6."""
    subjects_data = [
        {"code": "MAT-101", "name": "Differential Calculus", "credits": 5},
        {"code": "PRG-101", "name": "Programming Fundamentals", "credits": 5},
    ]
    subjects_data += [
        {"code": f"ING-{level}", "name": f"English {level}", "credits": 0}
        for level in range(1, 7)
    ]

    subjects = [Subject(**data) for data in subjects_data]
    session.add_all(subjects)
    await session.flush()
    logger.info(f"Seeded {len(subjects)} subjects")
    return subjects


async def seed_groups(
    session: AsyncSession,
    subjects: list[Subject],
    teacher: Teacher,
    period: str = DEFAULT_PERIOD,
) -> list[Group]:
    """Seed one open group per subject, taught by the sample teacher."""
    now = utc_now()
    groups = []
    for subject in subjects:
        level = int(subject.code.split("-")[1]) if subject.code.startswith("ING-") else None
        groups.append(
            Group(
                subject_id=subject.id,
                teacher_id=teacher.id,
                name=f"{subject.name} A",
                code=f"{subject.code}-{period}-A",
                period=period,
                max_capacity=30,
                min_capacity=5,
                current_enrollment=0,
                schedule="Mon-Wed 08:00-10:00",
                classroom="A-101",
                modality=Modality.IN_PERSON.value,
                status=GroupStatus.OPEN.value,
                is_english_course=level is not None,
                english_level=level,
                registration_start=now - timedelta(days=1),
                registration_end=now + timedelta(days=30),
            )
        )

    session.add_all(groups)
    await session.flush()
    logger.info(f"Seeded {len(groups)} groups")
    return groups


async def seed_exam_periods(
    session: AsyncSession,
    created_by: Optional[str] = None,
) -> list[ExamPeriod]:
    """Seed an open diagnostic exam period with free registration."""
    now = utc_now()
    period = ExamPeriod(
        name=f"Diagnostic exams {DEFAULT_PERIOD}",
        description="English placement exams for incoming students",
        registration_start=now - timedelta(days=1),
        registration_end=now + timedelta(days=14),
        start_date=now + timedelta(days=15),
        end_date=now + timedelta(days=20),
        max_capacity=100,
        current_enrollment=0,
        requires_payment=False,
        status=ExamPeriodStatus.OPEN.value,
        created_by=created_by,
    )
    session.add(period)
    await session.flush()
    logger.info("Seeded 1 exam period")
    return [period]


async def seed_school_database(
    session: AsyncSession,
    admin_password: Optional[str] = None,
) -> dict:
    """Seed the school database with initial data.

    Args:
        session: Database session.
        admin_password: Optional admin password override.

    Returns:
        Dictionary with seeded entities.
    """
    logger.info("Seeding school database...")

    user_kwargs = {}
    if admin_password:
        user_kwargs["admin_password"] = admin_password

    users = await seed_users(session, **user_kwargs)
    teacher, student = await seed_profiles(session, users)
    subjects = await seed_subjects(session)
    groups = await seed_groups(session, subjects, teacher)
    periods = await seed_exam_periods(session, created_by=users["admin"].id)

    await session.commit()

    logger.info("School database seeding complete")

    return {
        "users": list(users.values()),
        "teachers": [teacher],
        "students": [student],
        "subjects": subjects,
        "groups": groups,
        "exam_periods": periods,
    }


if __name__ == "__main__":
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from school_admin.core.config import get_settings
    from school_admin.utils.logging import setup_logging

    async def main():
        settings = get_settings()
        setup_logging(settings)
        engine = create_async_engine(settings.database.url)
        async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        async with async_session() as session:
            await seed_school_database(session)

        await engine.dispose()

    asyncio.run(main())
