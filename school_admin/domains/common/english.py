# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""English proficiency rules shared by every English-related service."""

PASSING_GRADE = 70.0
ENGLISH_LEVELS = 6
ENGLISH_MINIMUM_AVERAGE = 70.0
PERFECT_SCORE = 100.0

ENGLISH_CODE_PREFIXES = ("ING-", "LE-", "EN-", "ENG-")
ENGLISH_NAME_MARKERS = ("inglés", "ingles", "english")

# (minimum grade, level), highest first
_LEVEL_THRESHOLDS = (
    (91, 6),
    (81, 5),
    (71, 4),
    (56, 3),
    (41, 2),
)


def is_english_subject(code: str | None, name: str | None) -> bool:
    """Check whether a subject is an English subject.

    A subject is English when its code starts with one of the English
    prefixes (ING-, LE-, EN-, ENG-) or its name mentions English.

    Args:
        code: Subject code, e.g. "ING-101".
        name: Subject name, e.g. "Inglés I".

    Returns:
        True if the subject is an English subject.
    """
    if code and code.upper().startswith(ENGLISH_CODE_PREFIXES):
        return True

    if name:
        lowered = name.lower()
        return any(marker in lowered for marker in ENGLISH_NAME_MARKERS)

    return False


def grade_to_english_level(grade: float) -> int:
    """Map a diagnostic grade (0-100) to an English level (1-6)."""
    for minimum, level in _LEVEL_THRESHOLDS:
        if grade >= minimum:
            return level
    return 1


def is_passing(grade: float | None, passing_grade: float = PASSING_GRADE) -> bool:
    return grade is not None and grade >= passing_grade


def required_levels(total: int = ENGLISH_LEVELS) -> list[int]:
    return list(range(1, total + 1))

