"""Tests for teacher-to-class matching."""

import pytest

from class_placement.exceptions import ValidationError
from class_placement.models import ClassBucket, CompatibilityScore, TeacherAssignment
from class_placement.normalization import round_half_up
from class_placement.teachers import GreedyMatcher, Matcher, OptimalMatcher, match_teachers


def scores(*rows):
    return [CompatibilityScore(teacher_id=t, class_name=c, score=s) for t, c, s in rows]


# Greedy takes T1-C1 first and is left with the worst pair
TRAP = scores(
    ("T1", "C1", 90),
    ("T1", "C2", 80),
    ("T2", "C1", 85),
    ("T2", "C2", 10),
)


class TestGreedyMatcher:
    """Tests for GreedyMatcher class."""

    def test_highest_first(self):
        assignments = GreedyMatcher().match(TRAP)
        assert assignments == [
            TeacherAssignment("C1", "T1", 90),
            TeacherAssignment("C2", "T2", 10),
        ]

    def test_ties_keep_enumeration_order(self):
        assignments = GreedyMatcher().match(
            scores(("T1", "C1", 50), ("T1", "C2", 50), ("T2", "C1", 50), ("T2", "C2", 50))
        )
        assert assignments == [
            TeacherAssignment("C1", "T1", 50),
            TeacherAssignment("C2", "T2", 50),
        ]

    def test_more_teachers_than_classes(self):
        assignments = GreedyMatcher().match(
            scores(("T1", "C1", 40), ("T2", "C1", 70), ("T3", "C1", 60))
        )
        assert assignments == [TeacherAssignment("C1", "T2", 70)]

    def test_empty(self):
        assert GreedyMatcher().match([]) == []


class TestOptimalMatcher:
    """Tests for OptimalMatcher class."""

    def test_beats_greedy(self):
        assignments = OptimalMatcher().match(TRAP)
        assert assignments == [
            TeacherAssignment("C1", "T2", 85),
            TeacherAssignment("C2", "T1", 80),
        ]
        assert sum(a.score for a in assignments) > sum(a.score for a in GreedyMatcher().match(TRAP))

    def test_every_class_gets_a_teacher_when_possible(self):
        assignments = OptimalMatcher().match(
            scores(
                ("T1", "C1", 90), ("T1", "C2", 90), ("T1", "C3", 90),
                ("T2", "C1", 0), ("T2", "C2", 0), ("T2", "C3", 0),
                ("T3", "C1", 0), ("T3", "C2", 0), ("T3", "C3", 0),
            )
        )
        assert len(assignments) == 3
        assert len({a.teacher_id for a in assignments}) == 3

    def test_empty(self):
        assert OptimalMatcher().match([]) == []


class TestMatchTeachers:
    """Tests for match_teachers function."""

    def _classes(self, roster):
        return [
            ClassBucket(name="Class 1", student_ids=[s.id for s in roster[:12]]),
            ClassBucket(name="Class 2", student_ids=[s.id for s in roster[12:]]),
        ]

    def test_assigns_teachers(self, roster_24, teacher_profile, teacher_survey):
        classes = self._classes(roster_24)
        result = match_teachers([teacher_profile, teacher_survey], classes, roster_24)

        assert result.assigned_teacher_count == 2
        assert result.total_teacher_count == 2
        assert {c.teacher_id for c in result.classes} == {"T1", "T2"}
        for bucket in result.classes:
            assert bucket.teacher_name in ("Ms. Rivera", "Mr. Okafor")
            assert 0 <= bucket.compatibility_score <= 100
        assert result.teacher_assignment_score == round_half_up(
            sum(a.score for a in result.assignments) / 2
        )

    def test_input_classes_are_not_modified(self, roster_24, teacher_profile):
        classes = self._classes(roster_24)
        match_teachers([teacher_profile], classes, roster_24)
        assert all(c.teacher_id is None for c in classes)

    def test_fewer_teachers_than_classes(self, roster_24, teacher_profile):
        result = match_teachers([teacher_profile], self._classes(roster_24), roster_24)
        assert result.assigned_teacher_count == 1
        assert sum(1 for c in result.classes if c.teacher_id is None) == 1

    def test_no_teachers(self, roster_24):
        result = match_teachers([], self._classes(roster_24), roster_24)
        assert result.assigned_teacher_count == 0
        assert result.teacher_assignment_score == 0
        assert "No teacher preferences" in result.message

    def test_custom_matcher(self, roster_24, teacher_profile):
        class Nobody(Matcher):
            def match(self, scores):
                return []

        result = match_teachers([teacher_profile], self._classes(roster_24), roster_24, Nobody())
        assert result.assignments == []
        assert all(c.teacher_id is None for c in result.classes)

    def test_mean_score_rounds_half_up(self, roster_24, teacher_profile, teacher_survey):
        class Fixed(Matcher):
            def match(self, scores):
                return [TeacherAssignment("Class 1", "T1", 80), TeacherAssignment("Class 2", "T2", 81)]

        result = match_teachers(
            [teacher_profile, teacher_survey], self._classes(roster_24), roster_24, Fixed()
        )
        assert result.teacher_assignment_score == 81

    def test_duplicate_class_names_rejected(self, roster_24, teacher_profile):
        classes = self._classes(roster_24)
        classes[1].name = "Class 1"
        with pytest.raises(ValidationError, match="Duplicate class names"):
            match_teachers([teacher_profile], classes, roster_24)

    def test_optimal_matcher(self, roster_24, teacher_profile, teacher_survey):
        result = match_teachers(
            [teacher_profile, teacher_survey], self._classes(roster_24), roster_24, OptimalMatcher()
        )
        assert result.assigned_teacher_count == 2
