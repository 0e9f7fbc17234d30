# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Derived enrollment values: pass flag, pass date and attendance percentage."""

import logging
from datetime import datetime

from school_admin.domains.common.english import PASSING_GRADE
from school_admin.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class EnrollmentCalculators:
    """Pure calculations applied before an enrollment is saved."""

    @staticmethod
    def calculate_passed(
        final_grade: float | None,
        passed: bool | None,
        passing_grade: float = PASSING_GRADE,
    ) -> bool | None:
        """Derive the pass flag from the final grade unless given explicitly."""
        if final_grade is not None and passed is None:
            return final_grade >= passing_grade
        return passed

    @staticmethod
    def check_passed_consistency(
        enrollment_id: str | None,
        final_grade: float | None,
        passed: bool | None,
        passing_grade: float = PASSING_GRADE,
    ) -> bool:
        """Log a warning when the pass flag disagrees with the final grade.

        Manual overrides are allowed, so nothing is raised.

        Returns:
            False if a mismatch was found.
        """
        if final_grade is None or passed is None:
            return True

        if final_grade >= passing_grade and not passed:
            logger.warning(
                "Enrollment %s has final grade %s >= %s but is not marked passed",
                enrollment_id,
                final_grade,
                passing_grade,
            )
            return False
        if final_grade < passing_grade and passed:
            logger.warning(
                "Enrollment %s has final grade %s < %s but is marked passed",
                enrollment_id,
                final_grade,
                passing_grade,
            )
            return False
        return True

    @staticmethod
    def calculate_pass_date(
        passed: bool | None,
        pass_date: datetime | None,
        now: datetime | None = None,
    ) -> datetime | None:
        """Stamp the pass date when passed, clear it when failed."""
        if passed is True and pass_date is None:
            return now or utc_now()
        if passed is False:
            return None
        return pass_date

    @staticmethod
    def calculate_attendance_percentage(
        attendances: int | None,
        absences: int | None,
        attendance_percentage: float | None = None,
    ) -> float | None:
        """attendances / (attendances + absences) * 100, unless given explicitly."""
        if attendance_percentage is not None or attendances is None or absences is None:
            return attendance_percentage

        total = attendances + absences
        if total > 0:
            return round(attendances / total * 100, 2)
        return attendance_percentage
