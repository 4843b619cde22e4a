"""Data access for placement inputs.

The placement core never fetches data itself; callers hand it a
``PlacementDataSource``. Two are provided:

- InMemoryDataSource: wraps already-loaded collections
- DirectoryDataSource: reads a reference directory

Expected files in a reference directory (all optional except the roster):
    - students.csv / students.xlsx / students.json
    - constraints.json
    - parent-requests.json
    - teachers.json
    - settings.json
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from .config import PlacementSettings, load_settings
from .exceptions import DataSourceError, PlacementError
from .models import ClassBucket, Constraint, ParentRequest, PlacementResult, Student, TeacherProfile

logger = logging.getLogger(__name__)

STUDENT_FILES = ["students.csv", "students.xlsx", "students.json"]


class PlacementDataSource(ABC):
    """Abstract source of placement inputs."""

    @abstractmethod
    def load_students(self, grade: int | None = None) -> list[Student]:
        """Load the roster, optionally filtered to one grade."""
        pass

    @abstractmethod
    def load_constraints(self) -> list[Constraint]:
        pass

    @abstractmethod
    def load_parent_requests(self) -> list[ParentRequest]:
        pass

    @abstractmethod
    def load_teachers(self) -> list[TeacherProfile]:
        pass

    def load_settings(self) -> PlacementSettings:
        return PlacementSettings()


class InMemoryDataSource(PlacementDataSource):
    """Data source over collections already in memory.

    Inputs are copied on construction so later changes by the caller do not
    reach a run in progress.
    """

    def __init__(
        self,
        students: Sequence[Student] = (),
        constraints: Sequence[Constraint] = (),
        parent_requests: Sequence[ParentRequest] = (),
        teachers: Sequence[TeacherProfile] = (),
        settings: PlacementSettings | None = None,
    ):
        self._students = list(students)
        self._constraints = list(constraints)
        self._parent_requests = list(parent_requests)
        self._teachers = list(teachers)
        self._settings = settings or PlacementSettings()

    def load_students(self, grade: int | None = None) -> list[Student]:
        if grade is None:
            return list(self._students)
        return [s for s in self._students if s.grade == grade]

    def load_constraints(self) -> list[Constraint]:
        return list(self._constraints)

    def load_parent_requests(self) -> list[ParentRequest]:
        return list(self._parent_requests)

    def load_teachers(self) -> list[TeacherProfile]:
        return list(self._teachers)

    def load_settings(self) -> PlacementSettings:
        return self._settings


class DirectoryDataSource(PlacementDataSource):
    """Loads placement inputs from a reference directory."""

    def __init__(self, data_dir: Path | str):
        """
        Initialize the data source.

        Args:
            data_dir: Directory containing the input files.
        """
        self.data_dir = Path(data_dir)
        if not self.data_dir.is_dir():
            raise DataSourceError("directory not found", path=str(self.data_dir))

    def _get_path(self, filename: str) -> Path | None:
        """Get path to a data file if it exists."""
        path = self.data_dir / filename
        return path if path.exists() else None

    def _read_json(self, filename: str) -> list[dict[str, Any]]:
        path = self._get_path(filename)
        if path is None:
            logger.debug(f"{filename} not found in {self.data_dir}, using empty list")
            return []
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise DataSourceError(str(e), path=str(path)) from e

        if isinstance(data, dict):
            # Accept {"items": [...]} style wrappers
            data = next((v for v in data.values() if isinstance(v, list)), [])
        return data

    def _read_roster(self) -> list[dict[str, Any]]:
        for filename in STUDENT_FILES:
            path = self._get_path(filename)
            if path is None:
                continue
            if path.suffix == ".json":
                return self._read_json(filename)

            try:
                if path.suffix == ".csv":
                    df = pd.read_csv(path, dtype={"id": str})
                else:
                    df = pd.read_excel(path, dtype={"id": str}, engine="openpyxl")
            except (OSError, ValueError, pd.errors.ParserError) as e:
                raise DataSourceError(str(e), path=str(path)) from e

            df = df.rename(columns=lambda c: str(c).strip())
            # Empty cells become None so they fall back to defaults
            df = df.astype(object).where(pd.notna(df), None)
            return df.to_dict(orient="records")

        raise DataSourceError(
            f"no roster file ({', '.join(STUDENT_FILES)})", path=str(self.data_dir)
        )

    def load_students(self, grade: int | None = None) -> list[Student]:
        rows = self._read_roster()
        students = []
        for i, row in enumerate(rows):
            try:
                students.append(Student.from_dict(row))
            except PlacementError as e:
                raise DataSourceError(f"row {i + 1}: {e}", path=str(self.data_dir)) from e

        if grade is not None:
            students = [s for s in students if s.grade == grade]
        logger.info(f"Loaded {len(students)} students from {self.data_dir}")
        return students

    def load_constraints(self) -> list[Constraint]:
        return [
            Constraint.from_dict(data, sequence=i)
            for i, data in enumerate(self._read_json("constraints.json"))
        ]

    def load_parent_requests(self) -> list[ParentRequest]:
        return [ParentRequest.from_dict(data) for data in self._read_json("parent-requests.json")]

    def load_teachers(self) -> list[TeacherProfile]:
        return [TeacherProfile.from_dict(data) for data in self._read_json("teachers.json")]

    def load_settings(self) -> PlacementSettings:
        return load_settings(self._get_path("settings.json"))


def export_result_json(result: PlacementResult, output_path: Path | str) -> None:
    """Export a placement result to a JSON file.

    Args:
        result: PlacementResult to export
        output_path: Path to output JSON file
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with open(output, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)


def load_result_classes(input_path: Path | str) -> list[ClassBucket]:
    """Load the classes of a previously exported placement result.

    Args:
        input_path: Path to exported JSON file

    Returns:
        Classes in exported order
    """
    with open(input_path, encoding="utf-8") as f:
        data = json.load(f)
    return [ClassBucket.from_dict(c) for c in data.get("classes", [])]
