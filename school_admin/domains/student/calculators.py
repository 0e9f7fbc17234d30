# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade averages and English requirement calculations for students.

English grades never count toward the general average. A student meets the
English requirement only with an English average of at least the minimum
and every required level passed.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_admin.core.config import get_settings
from school_admin.domains.common.english import is_english_subject, required_levels
from school_admin.domains.common.validators import StudentNotFoundError
from school_admin.infrastructure.database.models import (
    AcademicActivity,
    Enrollment,
    Group,
    SpecialCourse,
    Student,
)
from school_admin.models.common import ActivityStatus, ActivityType, CourseType
from school_admin.models.student import EnglishRequirementStatus

logger = logging.getLogger(__name__)


def _mean(values: Sequence[float]) -> float | None:
    if not values:
        return None
    return round(sum(values) / len(values), 2)


def _format_average(average: float | None) -> str:
    return f"{average:.2f}" if average is not None else "N/A"


def _is_english_enrollment(enrollment: Enrollment) -> bool | None:
    """True/False for English/other subjects, None when the subject is unknown."""
    group = enrollment.group
    subject = group.subject if group is not None else None
    if subject is None:
        return None
    return is_english_subject(subject.code, subject.name)


class StudentCalculators:
    """Average and requirement calculations.

    The static methods are pure and work on already loaded rows. The
    instance methods load what they need through the session.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._academic = get_settings().academic

    @staticmethod
    def general_average_of(enrollments: Iterable[Enrollment]) -> float | None:
        """Average of non-English enrollment grades, rounded to 2 decimals.

        The final grade is preferred over the plain grade. Rows without a
        grade or without a subject are skipped.
        """
        grades = [
            float(e.effective_grade)
            for e in enrollments
            if e.effective_grade is not None and _is_english_enrollment(e) is False
        ]
        return _mean(grades)

    @staticmethod
    def english_subject_average_of(enrollments: Iterable[Enrollment]) -> float | None:
        """Average of English-subject enrollment grades, rounded to 2 decimals."""
        grades = [
            float(e.effective_grade)
            for e in enrollments
            if e.effective_grade is not None and _is_english_enrollment(e) is True
        ]
        return _mean(grades)

    @staticmethod
    def course_average_of(course_grades: Iterable[float | None]) -> float | None:
        """Average of graded English special courses, rounded to 2 decimals."""
        return _mean([float(g) for g in course_grades if g is not None])

    @staticmethod
    def build_requirement_status(
        passed_levels: Iterable[int | None],
        english_average: float | None,
        total_levels: int = 6,
        minimum_average: float = 70.0,
    ) -> EnglishRequirementStatus:
        """Evaluate the English requirement from passed levels and the average.

        Args:
            passed_levels: English levels of passed courses, in any order,
                possibly with duplicates or out-of-range values.
            english_average: The student's English average.
            total_levels: Number of required levels.
            minimum_average: Minimum English average.

        Returns:
            The requirement status with a reason when it is not met.
        """
        required = required_levels(total_levels)
        completed = sorted({lvl for lvl in passed_levels if lvl is not None and lvl in required})
        pending = [lvl for lvl in required if lvl not in completed]
        progress = round(len(completed) / len(required) * 100)

        has_average = english_average is not None and english_average >= minimum_average
        has_levels = not pending
        meets = has_average and has_levels

        reason = None
        if not meets:
            avg = _format_average(english_average)
            if not has_average and not has_levels:
                reason = f"Insufficient average ({avg}%) and {len(pending)} level(s) missing"
            elif not has_average:
                reason = f"Insufficient average: {avg}% (requires ≥{minimum_average:g}%)"
            else:
                reason = f"{len(pending)} level(s) missing: {', '.join(map(str, pending))}"

        return EnglishRequirementStatus(
            meets_requirement=meets,
            english_average=english_average,
            completed_levels=completed,
            pending_levels=pending,
            progress=progress,
            reason=reason,
        )

    async def _get_student(self, student_id: str) -> Student:
        result = await self.db.execute(select(Student).where(Student.id == str(student_id)))
        student = result.scalar_one_or_none()
        if student is None:
            raise StudentNotFoundError("Student not found")
        return student

    async def _get_enrollments(self, student_id: str) -> list[Enrollment]:
        result = await self.db.execute(
            select(Enrollment)
            .options(selectinload(Enrollment.group).selectinload(Group.subject))
            .where(Enrollment.student_id == str(student_id))
        )
        return list(result.scalars().all())

    async def _get_english_course_rows(self, student_id: str) -> list[tuple]:
        """Load (english_level, grade, status) of the student's English courses."""
        result = await self.db.execute(
            select(
                SpecialCourse.english_level,
                SpecialCourse.grade,
                AcademicActivity.status,
            )
            .join(AcademicActivity, SpecialCourse.activity_id == AcademicActivity.id)
            .where(
                AcademicActivity.student_id == str(student_id),
                AcademicActivity.activity_type == ActivityType.SPECIAL_COURSE.value,
                AcademicActivity.deleted_at.is_(None),
                SpecialCourse.course_type == CourseType.ENGLISH.value,
            )
        )
        return list(result.all())

    async def calculate_general_average(self, student_id: str) -> float | None:
        """General average from the student's legacy enrollments."""
        return self.general_average_of(await self._get_enrollments(student_id))

    async def calculate_english_average(self, student_id: str) -> float | None:
        """English average from graded English special courses.

        Courses credited by a diagnostic exam are included. Students with no
        graded course fall back to their English-subject enrollments.
        """
        rows = await self._get_english_course_rows(student_id)
        average = self.course_average_of(grade for _level, grade, _status in rows)
        if average is None:
            average = self.english_subject_average_of(await self._get_enrollments(student_id))
        return average

    def _status_from_rows(
        self, rows: list[tuple], english_average: float | None
    ) -> EnglishRequirementStatus:
        passed_levels = [
            level for level, _grade, status in rows if status == ActivityStatus.PASSED.value
        ]
        return self.build_requirement_status(
            passed_levels,
            english_average,
            total_levels=self._academic.english_levels,
            minimum_average=self._academic.english_minimum_average,
        )

    async def calculate_english_requirement_status(
        self,
        student_id: str,
    ) -> EnglishRequirementStatus:
        """Compute the requirement status from stored average and passed courses.

        Raises:
            StudentNotFoundError: If the student does not exist.
        """
        student = await self._get_student(student_id)
        rows = await self._get_english_course_rows(student_id)
        return self._status_from_rows(rows, student.english_average)

    async def recalculate_student_averages(self, student_id: str) -> Student:
        """Recompute and store general average, English average and requirement flag.

        Changes are flushed, not committed.

        Raises:
            StudentNotFoundError: If the student does not exist.
        """
        student = await self._get_student(student_id)
        enrollments = await self._get_enrollments(student_id)
        rows = await self._get_english_course_rows(student_id)

        student.general_average = self.general_average_of(enrollments)

        english_average = self.course_average_of(grade for _level, grade, _status in rows)
        if english_average is None:
            english_average = self.english_subject_average_of(enrollments)
        student.english_average = english_average

        status = self._status_from_rows(rows, english_average)
        student.meets_english_requirement = status.meets_requirement

        await self.db.flush()

        logger.info(
            "Recalculated averages: student=%s, general=%s, english=%s, meets=%s",
            student_id,
            student.general_average,
            student.english_average,
            student.meets_english_requirement,
        )
        return student
