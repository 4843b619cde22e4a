"""Tests for placement data sources."""

import json

import pandas as pd
import pytest

from class_placement.config import PlacementSettings
from class_placement.constants import ConstraintType, Gender, Strategy
from class_placement.exceptions import DataSourceError
from class_placement.models import Student
from class_placement.placement import run_placement
from class_placement.sources import (
    DirectoryDataSource,
    InMemoryDataSource,
    export_result_json,
    load_result_classes,
)

ROSTER_CSV = (
    "id,first_name,gender,academic_level,behavioral_level,special_needs,grade\n"
    "S1,Ana,F,advanced,,yes,3\n"
    "S2,,M,2,good,,3\n"
    "S3,Leo,boy,3,3,no,4\n"
)


@pytest.fixture
def data_dir(tmp_path):
    """Reference directory with every input file."""
    (tmp_path / "students.csv").write_text(ROSTER_CSV, encoding="utf-8")
    (tmp_path / "constraints.json").write_text(
        json.dumps(
            [
                {"type": "must_be_together", "students": ["S1", "S2"]},
                {"type": "equal_class_size"},
            ]
        )
    )
    (tmp_path / "parent-requests.json").write_text(
        json.dumps([{"studentId": "S3", "preferredClassmates": ["S1"]}])
    )
    (tmp_path / "teachers.json").write_text(
        json.dumps({"teachers": [{"id": "T1", "name": "Ms. Rivera"}]})
    )
    (tmp_path / "settings.json").write_text(
        json.dumps({"number_of_classes": 2, "strategy": "academic_focus"})
    )
    return tmp_path


class TestDirectoryDataSource:
    """Tests for DirectoryDataSource class."""

    def test_load_students_from_csv(self, data_dir):
        students = DirectoryDataSource(data_dir).load_students()

        assert [s.id for s in students] == ["S1", "S2", "S3"]
        ana, second, leo = students
        assert ana.first_name == "Ana"
        assert ana.academic_level == 5
        assert ana.behavioral_level == 3
        assert ana.special_needs is True
        assert second.first_name == ""
        assert second.behavioral_level == 4
        assert second.special_needs is False
        assert leo.gender == Gender.MALE
        assert leo.grade == 4

    def test_grade_filter(self, data_dir):
        students = DirectoryDataSource(data_dir).load_students(grade=3)
        assert [s.id for s in students] == ["S1", "S2"]

    def test_load_students_from_excel(self, tmp_path):
        pd.DataFrame(
            {"id": ["7", "8"], "gender": ["female", "male"], "academic_level": [4, 2]}
        ).to_excel(tmp_path / "students.xlsx", index=False)

        students = DirectoryDataSource(tmp_path).load_students()
        assert [s.id for s in students] == ["7", "8"]
        assert students[0].gender == Gender.FEMALE
        assert students[1].academic_level == 2

    def test_load_students_from_json(self, tmp_path):
        (tmp_path / "students.json").write_text(
            json.dumps({"students": [{"_id": "x", "gender": "f", "academicLevel": "proficient"}]})
        )
        students = DirectoryDataSource(tmp_path).load_students()
        assert students == [Student(id="x", gender=Gender.FEMALE, academic_level=4)]

    def test_other_inputs(self, data_dir):
        source = DirectoryDataSource(data_dir)

        constraints = source.load_constraints()
        assert [c.type for c in constraints] == [
            ConstraintType.MUST_BE_TOGETHER,
            ConstraintType.EQUAL_CLASS_SIZE,
        ]
        assert [c.sequence for c in constraints] == [0, 1]

        requests = source.load_parent_requests()
        assert requests[0].student_id == "S3"
        assert requests[0].preferred_classmates == ("S1",)

        teachers = source.load_teachers()
        assert [t.id for t in teachers] == ["T1"]

        settings = source.load_settings()
        assert settings.number_of_classes == 2
        assert settings.strategy == Strategy.ACADEMIC_FOCUS

    def test_optional_files_missing(self, tmp_path):
        (tmp_path / "students.csv").write_text(ROSTER_CSV, encoding="utf-8")
        source = DirectoryDataSource(tmp_path)
        assert source.load_constraints() == []
        assert source.load_parent_requests() == []
        assert source.load_teachers() == []
        assert source.load_settings() == PlacementSettings()

    def test_missing_directory(self, tmp_path):
        with pytest.raises(DataSourceError, match="directory not found"):
            DirectoryDataSource(tmp_path / "nope")

    def test_missing_roster(self, tmp_path):
        with pytest.raises(DataSourceError, match="no roster file"):
            DirectoryDataSource(tmp_path).load_students()

    def test_row_without_id(self, tmp_path):
        (tmp_path / "students.csv").write_text("id,gender\nS1,M\n,F\n", encoding="utf-8")
        with pytest.raises(DataSourceError, match="row 2"):
            DirectoryDataSource(tmp_path).load_students()

    def test_malformed_json(self, data_dir):
        (data_dir / "constraints.json").write_text("[{")
        with pytest.raises(DataSourceError):
            DirectoryDataSource(data_dir).load_constraints()


class TestInMemoryDataSource:
    """Tests for InMemoryDataSource class."""

    def test_copies_inputs(self, roster_24):
        roster = list(roster_24)
        source = InMemoryDataSource(students=roster)
        roster.clear()
        assert len(source.load_students()) == 24

    def test_grade_filter(self, make_student):
        source = InMemoryDataSource(
            students=[make_student("a", grade=2), make_student("b", grade=3)]
        )
        assert [s.id for s in source.load_students(3)] == ["b"]

    def test_defaults(self):
        source = InMemoryDataSource()
        assert source.load_constraints() == []
        assert source.load_teachers() == []
        assert source.load_settings() == PlacementSettings()


class TestResultExport:
    """Tests for JSON export of placement results."""

    def test_export_and_reload(self, tmp_path, roster_24, scenario_constraints):
        result = run_placement(roster_24, 2, constraints=scenario_constraints)
        output = tmp_path / "out" / "result.json"

        export_result_json(result, output)

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["strategy"] == "balanced"
        assert data["stats"]["total_students"] == 24
        classes = load_result_classes(output)
        assert [c.student_ids for c in classes] == [c.student_ids for c in result.classes]
        assert classes[0].balance_scores == result.classes[0].balance_scores
