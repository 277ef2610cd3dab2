"""
Grade computation: weighted quarter grades, remarks and averages.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional

from teachease.schemas.records import (
    Assessment, Grade, GradeCategory, GradeLabels, GradeSettings, GradeWeights
)

logger = logging.getLogger(__name__)

PASSING_GRADE = 75.0

DEFAULT_WEIGHTS = GradeWeights(quiz=0.20, assignment=0.20, exam=0.40, project=0.20)

DEFAULT_LABELS = GradeLabels(quiz="Quiz", assignment="Assignment", exam="Exam", project="Project")

REMARK_BANDS = (
    (90.0, "Outstanding"),
    (85.0, "Very Satisfactory"),
    (80.0, "Satisfactory"),
    (75.0, "Fairly Satisfactory"),
)


class GradeWeightsError(ValueError):
    """Category weights do not add up to 100%."""
    pass


def calculate_final_grade(
    quiz: float,
    assignment: float,
    exam: float,
    project: float,
    weights: Optional[GradeWeights] = None
) -> float:
    """Weighted sum of the four category percentages, rounded to 2 decimals."""
    w = weights or DEFAULT_WEIGHTS
    final_grade = (
        quiz * w.quiz
        + assignment * w.assignment
        + exam * w.exam
        + project * w.project
    )
    return round(final_grade, 2)


def get_grade_remark(grade: float) -> str:
    for threshold, remark in REMARK_BANDS:
        if grade >= threshold:
            return remark
    return "Did Not Meet Expectations"


def get_grade_status(grade: float) -> str:
    return "Passed" if grade >= PASSING_GRADE else "Failed"


def calculate_quarter_average(grades: Iterable[Grade]) -> float:
    grades = list(grades)
    if not grades:
        return 0.0
    return round(sum(g.final_grade or 0 for g in grades) / len(grades), 2)


def calculate_final_rating(quarter_grades: Iterable[float]) -> float:
    quarter_grades = list(quarter_grades)
    if not quarter_grades:
        return 0.0
    return round(sum(quarter_grades) / len(quarter_grades), 2)


def category_percentages(assessments: Iterable[Assessment]) -> Dict[GradeCategory, float]:
    """Mean score percentage per category; items with a zero total are ignored."""
    by_category: Dict[GradeCategory, List[float]] = defaultdict(list)
    for assessment in assessments:
        if assessment.total > 0:
            by_category[assessment.category].append(assessment.score / assessment.total * 100)

    return {
        category: (sum(by_category[category]) / len(by_category[category]) if by_category[category] else 0.0)
        for category in GradeCategory
    }


def weights_from_percentages(percentages: Mapping[str, float]) -> GradeWeights:
    """Validate whole-percent weights from an editor and convert them to fractions.

    The four values must sum to exactly 100.
    """
    values = {category.value: float(percentages.get(category.value) or 0) for category in GradeCategory}
    total = sum(values.values())
    if abs(total - 100) > 1e-9:
        raise GradeWeightsError(f"Weights must sum to 100% (got {total:g}%)")
    for key, value in values.items():
        if value < 0:
            raise GradeWeightsError(f"Weight for {key} cannot be negative")
    return GradeWeights(**{key: value / 100 for key, value in values.items()})


def build_grade_settings(percentages: Mapping[str, float], labels: Optional[Mapping[str, str]] = None) -> GradeSettings:
    label_values = DEFAULT_LABELS.model_dump()
    for key, value in (labels or {}).items():
        if key in label_values and value and value.strip():
            label_values[key] = value.strip()
    return GradeSettings(labels=GradeLabels(**label_values), weights=weights_from_percentages(percentages))
