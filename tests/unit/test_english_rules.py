# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the shared English rules."""

import pytest

from school_admin.domains.common.english import (
    grade_to_english_level,
    is_english_subject,
    is_passing,
    required_levels,
)


class TestIsEnglishSubject:
    """Tests for English subject detection."""

    @pytest.mark.parametrize("code", ["ING-101", "LE-1", "EN-200", "ENG-3", "ing-4"])
    def test_english_code_prefixes(self, code: str) -> None:
        assert is_english_subject(code, "Anything") is True

    @pytest.mark.parametrize("name", ["Inglés I", "INGLES 2", "Business English"])
    def test_english_names(self, name: str) -> None:
        assert is_english_subject("X-1", name) is True

    def test_non_english_subject(self) -> None:
        assert is_english_subject("MAT-101", "Differential Calculus") is False

    def test_missing_values(self) -> None:
        assert is_english_subject(None, None) is False

    def test_prefix_must_include_dash(self) -> None:
        """ENERGY-1 is not an English code."""
        assert is_english_subject("ENERGY-1", "Energy Systems") is False


class TestGradeToEnglishLevel:
    """Tests for the diagnostic grade mapping."""

    @pytest.mark.parametrize(
        ("grade", "level"),
        [
            (0, 1),
            (40, 1),
            (41, 2),
            (55, 2),
            (56, 3),
            (70, 3),
            (71, 4),
            (80, 4),
            (81, 5),
            (90, 5),
            (91, 6),
            (100, 6),
        ],
    )
    def test_thresholds(self, grade: float, level: int) -> None:
        assert grade_to_english_level(grade) == level

    def test_fractional_grade_below_threshold(self) -> None:
        assert grade_to_english_level(40.5) == 1


class TestHelpers:
    def test_is_passing(self) -> None:
        assert is_passing(70) is True
        assert is_passing(69.99) is False
        assert is_passing(None) is False

    def test_is_passing_custom_grade(self) -> None:
        assert is_passing(60, passing_grade=60) is True

    def test_required_levels(self) -> None:
        assert required_levels() == [1, 2, 3, 4, 5, 6]
        assert required_levels(3) == [1, 2, 3]
