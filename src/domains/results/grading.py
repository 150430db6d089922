# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Score totals, letter grades and grade point averages.

Thresholds and grade points are fixed by the institution's grading
policy. Score maxima come from GradingSettings.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from src.core.config.settings import GradingSettings
from src.domains.results.exceptions import ScoreValidationError

# (minimum total, grade), checked in order
GRADE_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (70, "A"),
    (60, "B"),
    (50, "C"),
    (45, "D"),
    (40, "E"),
)
FAIL_GRADE = "F"

GRADE_POINTS: dict[str, int] = {
    "A": 5,
    "B": 4,
    "C": 3,
    "D": 2,
    "E": 1,
    "F": 0,
}

PASSING_GRADES: frozenset[str] = frozenset({"A", "B", "C", "D"})


def compute_total(ca: float, exam: float, total_max: float = 100.0) -> float:
    """Compute the capped total of continuous assessment and exam scores.

    The components are added as decimals and the sum is not rounded, so
    the letter grade is always derived from the exact total.
    """
    total = Decimal(str(ca)) + Decimal(str(exam))
    return float(min(Decimal(str(total_max)), total))


def letter_grade(total: float) -> str:
    """Map a total score to its letter grade."""
    for minimum, grade in GRADE_THRESHOLDS:
        if total >= minimum:
            return grade
    return FAIL_GRADE


def grade_points(grade: str) -> int:
    """Return the grade points earned by a letter grade."""
    return GRADE_POINTS.get(grade, 0)


def is_passing(grade: str) -> bool:
    """Whether a letter grade counts as a pass."""
    return grade in PASSING_GRADES


def validate_scores(ca: float, exam: float, grading: GradingSettings) -> None:
    """Validate score components against the configured bounds.

    Args:
        ca: Continuous assessment score.
        exam: Examination score.
        grading: Grading settings with the maxima.

    Raises:
        ScoreValidationError: If a component is negative or above its maximum.
    """
    if ca < 0 or ca > grading.ca_max:
        raise ScoreValidationError(
            f"CA score {ca} is outside the allowed range 0-{grading.ca_max:g}"
        )
    if exam < 0 or exam > grading.exam_max:
        raise ScoreValidationError(
            f"Exam score {exam} is outside the allowed range 0-{grading.exam_max:g}"
        )


def grade_scores(ca: float, exam: float, grading: GradingSettings) -> tuple[float, str]:
    """Validate scores and derive total and letter grade.

    Returns:
        Tuple of (total_score, letter_grade).

    Raises:
        ScoreValidationError: If a component is out of bounds.
    """
    validate_scores(ca, exam, grading)
    total = compute_total(ca, exam, grading.total_max)
    return total, letter_grade(total)


def is_gradable_course(
    code: str,
    is_gradable: bool,
    markers: Iterable[str],
) -> bool:
    """Whether scores are generated for a course.

    Industrial training courses are identified by a marker in the course
    code (for example "SIW") or by the catalog flag.
    """
    if not is_gradable:
        return False
    upper_code = code.upper()
    return not any(marker.upper() in upper_code for marker in markers)


def calculate_gpa(graded: Iterable[tuple[str, int]]) -> float:
    """Compute a credit-weighted grade point average.

    Args:
        graded: Pairs of (letter_grade, credit_unit).

    Returns:
        GPA rounded to two decimals, 0.0 when there are no credits.
    """
    total_points = 0
    total_credits = 0
    for grade, credits in graded:
        total_points += grade_points(grade) * credits
        total_credits += credits
    if total_credits == 0:
        return 0.0
    return round(total_points / total_credits, 2)


def result_statistics(graded: Iterable[tuple[str, int]]) -> dict[str, Any]:
    """Summarise pass and fail counts for a set of graded courses.

    Args:
        graded: Pairs of (letter_grade, credit_unit).

    Returns:
        Dict with total, passed, failed, total_credits and pass_rate.
    """
    items = list(graded)
    passed = sum(1 for grade, _ in items if is_passing(grade))
    total = len(items)
    return {
        "total": total,
        "passed": passed,
        "failed": total - passed,
        "total_credits": sum(credits for _, credits in items),
        "pass_rate": round(passed / total * 100, 2) if total else 0.0,
    }
