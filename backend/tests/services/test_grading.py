"""Tests for grade computation."""

import pytest

from teachease.schemas.records import GradeCategory, GradeWeights
from teachease.services.grading import (
    GradeWeightsError,
    build_grade_settings,
    calculate_final_grade,
    calculate_final_rating,
    calculate_quarter_average,
    category_percentages,
    get_grade_remark,
    get_grade_status,
    weights_from_percentages,
)


class TestFinalGrade:

    def test_default_weights(self):
        # 90*.2 + 85*.2 + 80*.4 + 95*.2
        assert calculate_final_grade(90, 85, 80, 95) == 86.0

    def test_custom_weights(self):
        weights = GradeWeights(quiz=0.25, assignment=0.25, exam=0.25, project=0.25)

        assert calculate_final_grade(100, 80, 60, 40, weights) == 70.0

    def test_rounds_to_two_decimals(self):
        assert calculate_final_grade(83.333, 83.333, 83.333, 83.333) == 83.33


class TestRemarks:

    @pytest.mark.parametrize("grade,remark", [
        (95, "Outstanding"),
        (90, "Outstanding"),
        (87, "Very Satisfactory"),
        (80, "Satisfactory"),
        (75, "Fairly Satisfactory"),
        (74.99, "Did Not Meet Expectations"),
    ])
    def test_remark_bands(self, grade, remark):
        assert get_grade_remark(grade) == remark

    def test_status(self):
        assert get_grade_status(75) == "Passed"
        assert get_grade_status(74) == "Failed"


class TestAverages:

    def test_quarter_average(self, make_grade):
        grades = [make_grade(quarter=1, final_grade=80), make_grade(quarter=2, final_grade=91)]

        assert calculate_quarter_average(grades) == 85.5

    def test_quarter_average_empty(self):
        assert calculate_quarter_average([]) == 0.0

    def test_final_rating(self):
        assert calculate_final_rating([80, 85, 90, 95]) == 87.5
        assert calculate_final_rating([]) == 0.0


class TestCategoryPercentages:

    def test_mean_per_category(self, make_assessment):
        assessments = [
            make_assessment("a1", score=8, total=10),
            make_assessment("a2", score=5, total=10),
            make_assessment("a3", category=GradeCategory.EXAM, score=45, total=50),
        ]

        percents = category_percentages(assessments)

        assert percents[GradeCategory.QUIZ] == 65.0
        assert percents[GradeCategory.EXAM] == 90.0
        assert percents[GradeCategory.PROJECT] == 0.0

    def test_zero_total_is_ignored(self, make_assessment):
        assessments = [make_assessment("a1", score=0, total=0), make_assessment("a2", score=9, total=10)]

        assert category_percentages(assessments)[GradeCategory.QUIZ] == 90.0


class TestWeightValidation:

    def test_percentages_become_fractions(self):
        weights = weights_from_percentages({"quiz": 25, "assignment": 25, "exam": 30, "project": 20})

        assert weights.exam == pytest.approx(0.30)
        assert weights.project == pytest.approx(0.20)

    def test_sum_must_be_exactly_100(self):
        with pytest.raises(GradeWeightsError, match="101"):
            weights_from_percentages({"quiz": 20, "assignment": 20, "exam": 40, "project": 21})

    def test_missing_category_counts_as_zero(self):
        with pytest.raises(GradeWeightsError):
            weights_from_percentages({"quiz": 50, "exam": 40})

    def test_negative_weight_rejected(self):
        with pytest.raises(GradeWeightsError, match="negative"):
            weights_from_percentages({"quiz": -10, "assignment": 30, "exam": 60, "project": 20})

    def test_build_settings_keeps_default_labels_for_blanks(self):
        settings = build_grade_settings(
            {"quiz": 20, "assignment": 20, "exam": 40, "project": 20},
            {"quiz": "  Seatwork ", "exam": ""}
        )

        assert settings.labels.quiz == "Seatwork"
        assert settings.labels.exam == "Exam"
