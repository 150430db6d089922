# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for score totals, grades and GPA."""

import pytest

from src.core.config.settings import GradingSettings
from src.domains.results.exceptions import ScoreValidationError
from src.domains.results.grading import (
    calculate_gpa,
    compute_total,
    grade_points,
    grade_scores,
    is_gradable_course,
    is_passing,
    letter_grade,
    result_statistics,
)


@pytest.fixture
def grading() -> GradingSettings:
    """Create grading settings with the default bounds."""
    return GradingSettings(ca_max=30, exam_max=70, total_max=100)


class TestLetterGrade:
    """Tests for the grade thresholds."""

    @pytest.mark.parametrize(
        "total,grade",
        [
            (100, "A"),
            (70, "A"),
            (69.99, "B"),
            (60, "B"),
            (50, "C"),
            (49.5, "D"),
            (45, "D"),
            (40, "E"),
            (39.99, "F"),
            (0, "F"),
        ],
    )
    def test_boundaries(self, total, grade) -> None:
        """Test each threshold is inclusive."""
        assert letter_grade(total) == grade

    def test_grade_points(self) -> None:
        """Test points per grade."""
        assert [grade_points(g) for g in "ABCDEF"] == [5, 4, 3, 2, 1, 0]
        assert grade_points("X") == 0

    def test_passing(self) -> None:
        """Test E and F are not passes."""
        assert is_passing("D")
        assert not is_passing("E")
        assert not is_passing("F")


class TestGradeScores:
    """Tests for validation and total computation."""

    def test_total_and_grade(self, grading) -> None:
        """Test the documented examples."""
        assert grade_scores(25, 50, grading) == (75.0, "A")
        assert grade_scores(25, 60, grading) == (85.0, "A")
        assert grade_scores(15.5, 30.25, grading) == (45.75, "D")

    def test_total_exact_and_capped(self) -> None:
        """Test the total is the exact sum, capped at the maximum."""
        assert compute_total(10.111, 20.222) == 30.333
        assert compute_total(0.1, 0.2) == 0.3
        assert compute_total(60, 60) == 100.0

    @pytest.mark.parametrize(
        "ca,exam,total,grade",
        [
            (29.996, 40.0, 69.996, "B"),
            (29.999, 40.0, 69.999, "B"),
            (30.0, 40.0, 70.0, "A"),
            (19.995, 40.0, 59.995, "C"),
            (4.999, 35.0, 39.999, "F"),
        ],
    )
    def test_grade_boundaries_use_exact_total(self, grading, ca, exam, total, grade) -> None:
        """Test a total just under a threshold keeps the lower grade."""
        assert grade_scores(ca, exam, grading) == (total, grade)

    @pytest.mark.parametrize("ca,exam", [(-1, 50), (31, 50), (20, -0.5), (20, 70.5)])
    def test_out_of_bounds(self, grading, ca, exam) -> None:
        """Test components outside their range are refused."""
        with pytest.raises(ScoreValidationError):
            grade_scores(ca, exam, grading)

    def test_maximum_is_allowed(self, grading) -> None:
        """Test the maxima themselves are valid."""
        assert grade_scores(30, 70, grading) == (100.0, "A")


class TestGradableCourses:
    """Tests for excluding industrial training courses."""

    def test_marker_in_code(self) -> None:
        """Test SIW courses are excluded regardless of case."""
        assert not is_gradable_course("CSC 399 SIW", True, ["SIW"])
        assert not is_gradable_course("csc-siw-300", True, ["SIW"])
        assert is_gradable_course("CSC 301", True, ["SIW"])

    def test_catalog_flag(self) -> None:
        """Test the catalog flag excludes a course too."""
        assert not is_gradable_course("CSC 301", False, ["SIW"])


class TestGpa:
    """Tests for GPA and statistics."""

    def test_credit_weighted(self) -> None:
        """Test GPA weights grade points by credit units."""
        assert calculate_gpa([("A", 3), ("C", 2)]) == 4.2
        assert calculate_gpa([("B", 3), ("F", 3)]) == 2.0

    def test_empty(self) -> None:
        """Test no credits gives zero."""
        assert calculate_gpa([]) == 0.0

    def test_statistics(self) -> None:
        """Test pass counts and rate."""
        stats = result_statistics([("A", 3), ("E", 2), ("F", 1), ("D", 2)])

        assert stats == {
            "total": 4,
            "passed": 2,
            "failed": 2,
            "total_credits": 8,
            "pass_rate": 50.0,
        }
