"""Test fixtures for class placement tests."""

import pytest

from class_placement.constants import Gender
from class_placement.models import ClassBucket, Student, TeacherProfile

ACADEMIC_CYCLE = [5, 4, 3, 2, 1, 3]
BEHAVIORAL_CYCLE = [4, 3, 5, 2, 3, 4]


@pytest.fixture
def make_student():
    """Factory for students with sensible defaults."""

    def _make(
        student_id,
        gender=Gender.MALE,
        academic=3,
        behavioral=3,
        special_needs=False,
        **kwargs,
    ):
        return Student(
            id=student_id,
            grade=kwargs.pop("grade", 3),
            gender=gender,
            academic_level=academic,
            behavioral_level=behavioral,
            special_needs=special_needs,
            **kwargs,
        )

    return _make


@pytest.fixture
def roster_24():
    """24 third graders S1..S24, alternating gender, mixed levels, 4 with special needs."""
    return [
        Student(
            id=f"S{i + 1}",
            grade=3,
            gender=Gender.MALE if i % 2 == 0 else Gender.FEMALE,
            academic_level=ACADEMIC_CYCLE[i % 6],
            behavioral_level=BEHAVIORAL_CYCLE[i % 6],
            special_needs=(i + 1) % 6 == 0,
            has_iep=(i + 1) % 12 == 0,
            first_name=f"Student{i + 1}",
            last_name="Test",
        )
        for i in range(24)
    ]


@pytest.fixture
def scenario_constraints():
    """S1/S2 must share a class, S3/S4 must not."""
    return [
        {"type": "must_be_together", "students": ["S1", "S2"], "priority": "required"},
        {"type": "must_be_separate", "students": ["S3", "S4"], "priority": "high"},
    ]


@pytest.fixture
def teacher_profile():
    """Teacher preferring 20 students (15-25) with no other preferences."""
    return TeacherProfile(
        id="T1",
        name="Ms. Rivera",
        minimum_class_size=15,
        preferred_class_size=20,
        maximum_class_size=25,
    )


@pytest.fixture
def teacher_survey():
    """Teacher survey record in the nested layout."""
    return {
        "_id": "T2",
        "teacherName": "Mr. Okafor",
        "classComposition": {
            "preferredSize": {"min": 18, "ideal": 22, "max": 26},
            "genderBalance": {
                "importance": 5,
                "preferredRatio": {"male": 50, "female": 50},
            },
        },
        "studentPreferences": {
            "academicDistribution": {
                "advanced": {"preferred": 25, "maximum": 40},
                "proficient": {"preferred": 25},
                "developing": 25,
                "needsSupport": {"preferred": 25, "max": 30},
            },
            "behavioralDistribution": {
                "excellent": 30,
                "good": 40,
                "satisfactory": 20,
                "needsImprovement": 10,
            },
        },
        "specialEducationPreferences": {"maxIEPStudents": 2, "max504Students": 3},
        "specialtyAreas": ["math"],
    }


@pytest.fixture
def two_buckets():
    """Two empty classes."""
    return [ClassBucket(name="Class 1"), ClassBucket(name="Class 2")]
