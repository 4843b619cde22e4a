"""Tests for class balance scoring."""

import pytest

from class_placement.constants import Gender
from class_placement.models import BalanceScores, BalanceWeights, ClassBucket, Student
from class_placement.placement.balance import (
    BalanceScorer,
    aggregate_balance,
    gender_balance,
    level_balance,
    score_bucket,
    special_needs_balance,
)


class TestGenderBalance:
    """Tests for gender_balance function."""

    def test_empty(self):
        assert gender_balance([]) == 0.0

    def test_single_student(self, make_student):
        assert gender_balance([make_student("A")]) == 1.0

    def test_equal_counts(self, make_student):
        students = [make_student("A", Gender.MALE), make_student("B", Gender.FEMALE)]
        assert gender_balance(students) == 1.0

    def test_ratio(self, make_student):
        students = [
            make_student("A", Gender.MALE),
            make_student("B", Gender.MALE),
            make_student("C", Gender.MALE),
            make_student("D", Gender.FEMALE),
        ]
        assert gender_balance(students) == pytest.approx(1 / 3)

    def test_all_one_gender(self, make_student):
        students = [make_student("A", Gender.FEMALE), make_student("B", Gender.FEMALE)]
        assert gender_balance(students) == 0.0


class TestLevelBalance:
    """Tests for level_balance function."""

    def test_uniform_levels(self):
        assert level_balance([3, 3, 3]) == 1.0

    def test_extreme_spread(self):
        # stddev of [1, 5] is 2
        assert level_balance([1, 5]) == pytest.approx(0.5)

    def test_empty(self):
        assert level_balance([]) == 1.0


class TestSpecialNeedsBalance:
    """Tests for special_needs_balance function."""

    def test_no_special_needs_in_cohort(self, make_student):
        cohort = [make_student("A"), make_student("B")]
        assert special_needs_balance(cohort[:1], cohort) == 1.0

    def test_exact_expected_share(self, make_student):
        cohort = [make_student(f"S{i}", special_needs=i < 2) for i in range(8)]
        # expected 1 in a class of 4 holding exactly one
        assert special_needs_balance([cohort[0], *cohort[4:7]], cohort) == 1.0

    def test_double_share(self, make_student):
        cohort = [make_student(f"S{i}", special_needs=i < 2) for i in range(8)]
        assert special_needs_balance(cohort[:4], cohort) == 0.0


class TestScoreBucket:
    """Tests for score_bucket function."""

    def test_scores_are_bounded_and_rounded(self, roster_24):
        scores = score_bucket(roster_24[:7], roster_24)
        for value in scores.to_dict().values():
            assert 0.0 <= value <= 1.0
            assert round(value, 2) == value

    def test_halves_round_up(self, make_student):
        students = [make_student("F0", Gender.FEMALE)] + [
            make_student(f"M{i}", Gender.MALE) for i in range(8)
        ]
        # 1/8 = 0.125
        assert score_bucket(students, students).gender == 0.13

    def test_empty_bucket(self, roster_24):
        scores = score_bucket([], roster_24)
        assert scores.gender == 0.0
        assert scores.academic == 1.0
        assert 0.0 <= scores.overall <= 1.0

    def test_weights_shift_overall(self, make_student):
        students = [make_student("A", Gender.MALE, academic=1), make_student("B", Gender.MALE, academic=5)]
        gender_only = score_bucket(students, students, {"gender": 1, "academic": 0, "behavioral": 0, "special_needs": 0})
        academic_only = score_bucket(students, students, {"gender": 0, "academic": 1, "behavioral": 0, "special_needs": 0})
        assert gender_only.overall == 0.0
        assert academic_only.overall == 0.5

    def test_zero_weights_do_not_divide_by_zero(self, make_student):
        students = [make_student("A")]
        scores = score_bucket(students, students, BalanceWeights(0, 0, 0, 0))
        assert scores.overall == 0.0


class TestBalanceScorer:
    """Tests for BalanceScorer class."""

    def test_apply_sets_scores(self, roster_24):
        buckets = [
            ClassBucket(name="A", student_ids=[s.id for s in roster_24[:12]]),
            ClassBucket(name="B", student_ids=[s.id for s in roster_24[12:]]),
        ]
        BalanceScorer(roster_24).apply(buckets)
        assert all(b.balance_scores != BalanceScores() for b in buckets)
        assert 0.0 <= aggregate_balance(buckets) <= 1.0

    def test_unknown_ids_are_skipped(self, roster_24):
        scorer = BalanceScorer(roster_24)
        assert scorer.members(["S1", "nobody"]) == [roster_24[0]]

    def test_aggregate_of_no_classes(self):
        assert aggregate_balance([]) == 0.0

    def test_score_ids_matches_score(self, roster_24):
        scorer = BalanceScorer(roster_24, BalanceWeights(gender=2))
        assert scorer.score_ids(["S1", "S2", "S3"]) == scorer.score(roster_24[:3])

    def test_student_gender_other_counts_toward_size_only(self):
        students = [
            Student(id="A", gender=Gender.OTHER),
            Student(id="B", gender=Gender.MALE),
            Student(id="C", gender=Gender.FEMALE),
        ]
        assert score_bucket(students, students).gender == 1.0
