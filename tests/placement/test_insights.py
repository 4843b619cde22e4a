"""Tests for placement insights and constraint analysis."""

import pytest

from class_placement.constants import ConstraintType, Gender
from class_placement.models import BalanceScores, ClassBucket, ParentRequest, Severity
from class_placement.placement import (
    analyze_constraints,
    generate_insights,
    parent_request_fulfillment,
    resolve_constraints,
)


def bucket(name, students, overall=0.0, teacher_id=None):
    return ClassBucket(
        name=name,
        student_ids=[s.id for s in students],
        teacher_id=teacher_id,
        balance_scores=BalanceScores(overall=overall),
    )


class TestGenerateInsights:
    """Tests for generate_insights function."""

    def test_gender_imbalance(self, make_student):
        students = [
            make_student("a", Gender.MALE),
            make_student("b", Gender.MALE),
            make_student("c", Gender.MALE),
            make_student("d", Gender.FEMALE),
        ]
        report = generate_insights([bucket("Class 1", students)], students)
        gender = [i for i in report.insights if i.type == "gender"]
        assert len(gender) == 1
        assert gender[0].message == (
            "Class 1 has a gender imbalance with 75% male and 25% female students."
        )
        assert gender[0].severity == Severity.MEDIUM
        assert gender[0].affected_classes == ("Class 1",)

    def test_academic_concentration(self, make_student):
        students = [
            make_student("a", Gender.MALE, academic=5),
            make_student("b", Gender.FEMALE, academic=4),
        ]
        report = generate_insights([bucket("Class 1", students)], students)
        assert [i.message for i in report.insights if i.type == "academic"] == [
            "Class 1 has a high concentration of above-grade-level students."
        ]

    def test_low_academic_concentration(self, make_student):
        students = [
            make_student("a", Gender.MALE, academic=1),
            make_student("b", Gender.FEMALE, academic=2),
        ]
        report = generate_insights([bucket("Class 1", students)], students)
        assert "below-grade-level" in report.insights[0].message

    def test_behavioral_challenges_are_high_severity(self, make_student):
        students = [
            make_student("a", Gender.MALE, behavioral=1),
            make_student("b", Gender.FEMALE, behavioral=2),
            make_student("c", Gender.MALE, behavioral=4),
            make_student("d", Gender.FEMALE, behavioral=4),
        ]
        report = generate_insights([bucket("Class 1", students)], students)
        behavioral = [i for i in report.insights if i.type == "behavioral"]
        assert behavioral[0].severity == Severity.HIGH

    def test_special_needs_concentration(self, make_student):
        students = [
            make_student("a", Gender.MALE, special_needs=True),
            make_student("b", Gender.FEMALE, special_needs=True),
            make_student("c", Gender.MALE),
            make_student("d", Gender.FEMALE),
        ]
        report = generate_insights([bucket("Class 1", students)], students)
        assert [i.message for i in report.insights if i.type == "special_needs"] == [
            "Class 1 has a high concentration of students with special needs (50%)."
        ]

    def test_balanced_classes(self, make_student):
        students = [make_student("a", Gender.MALE), make_student("b", Gender.FEMALE)]
        report = generate_insights([bucket("Class 1", students)], students)
        assert len(report.insights) == 1
        assert report.insights[0].type == "general"
        assert report.insights[0].severity == Severity.INFO

    @pytest.mark.parametrize(
        "fulfillment, severity",
        [(40.0, Severity.MEDIUM), (80.0, Severity.INFO)],
    )
    def test_parent_fulfillment(self, make_student, fulfillment, severity):
        students = [make_student("a", Gender.MALE), make_student("b", Gender.FEMALE)]
        report = generate_insights([bucket("Class 1", students)], students, fulfillment)
        assert report.insights[0].type == "parent_requests"
        assert report.insights[0].severity == severity

    def test_middling_parent_fulfillment_is_not_reported(self, make_student):
        students = [make_student("a", Gender.MALE), make_student("b", Gender.FEMALE)]
        report = generate_insights([bucket("Class 1", students)], students, 65.0)
        assert [i.type for i in report.insights] == ["general"]

    @pytest.mark.parametrize(
        "overall, summary_start",
        [
            (0.9, "Classes are excellently balanced"),
            (0.75, "Classes are generally well-balanced"),
            (0.55, "Classes have moderate balance issues"),
            (0.2, "Classes have significant balance issues"),
        ],
    )
    def test_summary_bands(self, make_student, overall, summary_start):
        students = [make_student("a", Gender.MALE), make_student("b", Gender.FEMALE)]
        report = generate_insights([bucket("Class 1", students, overall)], students)
        assert report.balance_score == round(overall * 100)
        assert report.summary.startswith(summary_start)


class TestParentRequestFulfillment:
    """Tests for parent_request_fulfillment function."""

    def test_percentage(self, make_student):
        classes = [
            ClassBucket(name="A", student_ids=["a", "b"]),
            ClassBucket(name="B", student_ids=["c"]),
        ]
        requests = [
            ParentRequest("a", preferred_classmates=("b",)),
            ParentRequest("c", preferred_classmates=("a",)),
        ]
        assert parent_request_fulfillment(classes, requests) == 50.0

    def test_no_relevant_requests(self):
        classes = [ClassBucket(name="A", student_ids=["a"])]
        assert parent_request_fulfillment(classes, [ParentRequest("a")]) is None
        assert parent_request_fulfillment(classes, {}) is None


class TestAnalyzeConstraints:
    """Tests for analyze_constraints function."""

    def test_grouping_constraints(self):
        classes = [
            ClassBucket(name="A", student_ids=["a", "b"]),
            ClassBucket(name="B", student_ids=["c", "d"]),
        ]
        resolved = resolve_constraints(
            [
                {"type": "must_be_together", "students": ["a", "b"]},
                {"type": "must_be_together", "students": ["b", "c"]},
                {"type": "must_be_separate", "students": ["a", "d"]},
                {"type": "must_be_separate", "students": ["c", "d"]},
            ]
        )
        report = analyze_constraints(classes, resolved)

        assert [o.students for o in report.fulfilled] == [("a", "b"), ("a", "d")]
        assert [o.students for o in report.unfulfilled] == [("b", "c"), ("c", "d")]
        assert report.unfulfilled[0].classes == ("A", "B")
        assert report.fulfillment_rate == 50.0

    def test_teacher_preferences_need_assigned_teacher(self):
        classes = [
            ClassBucket(name="A", student_ids=["a"], teacher_id="T1"),
            ClassBucket(name="B", student_ids=["b"]),
        ]
        resolved = resolve_constraints(
            [
                {"type": "preferred_teacher", "student": "a", "teacher": "T1"},
                {"type": "avoid_teacher", "student": "a", "teacher": "T1"},
                {"type": "preferred_teacher", "student": "b", "teacher": "T2"},
            ]
        )
        report = analyze_constraints(classes, resolved)

        assert [o.type for o in report.fulfilled] == [ConstraintType.PREFERRED_TEACHER]
        assert [o.type for o in report.unfulfilled] == [ConstraintType.AVOID_TEACHER]

    def test_empty(self):
        report = analyze_constraints([], resolve_constraints([]))
        assert report.fulfillment_rate == 100.0
