"""Tests for teacher compatibility scoring."""

import pytest

from class_placement.constants import Gender
from class_placement.models import GenderPreference, LevelTarget, SpecialEducationCapacity, TeacherProfile
from class_placement.teachers import (
    academic_distribution,
    behavioral_distribution,
    class_size_score,
    compatibility_score,
    distribution_score,
    gender_balance_score,
    gender_distribution,
    special_education_score,
)


class TestClassSizeScore:
    """Tests for class_size_score function."""

    def test_at_preferred_size(self):
        assert class_size_score(20, 20, 15, 25) == 1.0

    def test_near_preferred_size(self):
        # two students off the ideal inside the bounds
        assert class_size_score(22, 20, 15, 25) == pytest.approx(0.8)

    def test_far_over_maximum_is_zero(self):
        assert class_size_score(30, 20, 15, 25) == 0.0

    def test_under_minimum(self):
        assert class_size_score(12, 20, 15, 25) == pytest.approx(0.4)


class TestDistributions:
    """Tests for class composition percentages."""

    def test_academic_distribution(self, make_student):
        students = [make_student(str(level), academic=level) for level in [5, 4, 3, 1]]
        assert academic_distribution(students) == {
            "advanced": 25.0,
            "proficient": 25.0,
            "developing": 25.0,
            "needs_support": 25.0,
        }

    def test_behavioral_distribution_empty(self):
        assert behavioral_distribution([]) == {
            "excellent": 0.0,
            "good": 0.0,
            "fair": 0.0,
            "needs_improvement": 0.0,
        }

    def test_gender_distribution(self, make_student):
        students = [make_student("a", Gender.MALE), make_student("b", Gender.OTHER)]
        assert gender_distribution(students) == {"male": 50.0, "female": 0.0, "other": 50.0}


class TestSubscores:
    """Tests for distribution, special education and gender subscores."""

    def test_distribution_deviation_and_excess(self):
        actual = {"advanced": 50.0, "proficient": 50.0, "developing": 0.0, "needs_support": 0.0}
        targets = {"advanced": LevelTarget(preferred=25, maximum=40)}
        assert distribution_score(actual, targets) == pytest.approx(0.55)

    def test_distribution_without_targets(self):
        assert distribution_score({"advanced": 100.0}, {}) == 1.0

    def test_distribution_floor(self):
        actual = {"advanced": 100.0}
        targets = {"advanced": LevelTarget(preferred=0, maximum=0)}
        assert distribution_score(actual, targets) == 0.0

    def test_special_education_over_capacity(self, make_student):
        students = [make_student(str(i), has_iep=True) for i in range(3)]
        capacity = SpecialEducationCapacity(max_iep=1)
        # IEP: 2 over -> 0.6, 504: within -> 1.0
        assert special_education_score(students, capacity) == pytest.approx(0.8)

    def test_special_education_without_preferences(self, make_student):
        assert special_education_score([make_student("a")], None) == 0.5

    def test_gender_matches_ratio(self):
        preference = GenderPreference(importance=5, preferred_ratio={"male": 50, "female": 50})
        assert gender_balance_score({"male": 50.0, "female": 50.0, "other": 0.0}, preference) == 1.0

    def test_gender_low_importance_stays_near_neutral(self):
        preference = GenderPreference(importance=1, preferred_ratio={"male": 50, "female": 50})
        assert gender_balance_score(
            {"male": 50.0, "female": 50.0, "other": 0.0}, preference
        ) == pytest.approx(0.6)

    def test_gender_without_ratio(self):
        assert gender_balance_score({"male": 100.0}, GenderPreference()) == 0.5
        assert gender_balance_score({"male": 100.0}, None) == 0.5


class TestCompatibilityScore:
    """Tests for compatibility_score function."""

    def test_class_of_22_against_ideal_20(self, make_student, teacher_profile):
        students = [make_student(f"S{i}") for i in range(22)]
        result = compatibility_score(teacher_profile, "Class 1", students)

        assert result.teacher_id == "T1"
        assert result.class_name == "Class 1"
        assert result.class_size == pytest.approx(0.8)
        # 0.8*20 + 1*25 + 1*25 + 0.5*15 + 0.5*15
        assert result.score == 81

    def test_class_of_30_loses_all_size_points(self, make_student, teacher_profile):
        students = [make_student(f"S{i}") for i in range(30)]
        result = compatibility_score(teacher_profile, "Class 1", students)
        assert result.class_size == 0.0
        assert result.score == 65

    def test_score_is_bounded(self, roster_24, teacher_survey):
        teacher = TeacherProfile.from_dict(teacher_survey)
        result = compatibility_score(teacher, "Class 1", roster_24)
        assert 0 <= result.score <= 100
        assert set(result.to_dict()["subscores"]) == {
            "class_size",
            "academic",
            "behavioral",
            "special_education",
            "gender",
        }
