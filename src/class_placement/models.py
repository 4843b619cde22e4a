"""Data models for class placement and teacher matching."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .constants import (
    ACADEMIC_CATEGORIES,
    BEHAVIORAL_CATEGORIES,
    CONSTRAINT_TYPE_ALIASES,
    DEFAULT_BALANCE_WEIGHT,
    DEFAULT_GENDER_IMPORTANCE,
    DEFAULT_LEVEL,
    GROUP_CONSTRAINT_TYPES,
    TEACHER_CONSTRAINT_TYPES,
    BalanceFactor,
    ConstraintType,
    Gender,
    Priority,
    Strategy,
)
from .exceptions import ValidationError
from .normalization import (
    normalize_academic_level,
    normalize_behavioral_level,
    normalize_gender,
    normalize_id,
    normalize_id_list,
    parse_bool,
)


def _first(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present, non-None value among several key spellings."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


@dataclass(frozen=True)
class Student:
    """A student in the cohort being placed."""

    id: str
    grade: int = 0
    gender: Gender = Gender.OTHER
    academic_level: int = DEFAULT_LEVEL
    behavioral_level: int = DEFAULT_LEVEL
    special_needs: bool = False
    has_iep: bool = False
    has_504: bool = False
    preferred_peers: tuple[str, ...] = ()
    separate_from: tuple[str, ...] = ()
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        """Full name when known, otherwise the id."""
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.id

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Student":
        """Create a Student from a roster row or API payload.

        Accepts both snake_case and camelCase keys, nested
        ``specialEducation`` / ``relationships`` blocks, and categorical
        level names.
        """
        special_ed = data.get("specialEducation") or data.get("special_education") or {}
        relationships = data.get("relationships") or {}

        has_iep = parse_bool(_first(data, "has_iep", "hasIEP", default=special_ed.get("hasIEP")))
        has_504 = parse_bool(
            _first(data, "has_504", "has504", "has504Plan", default=special_ed.get("has504"))
        )
        special_needs = parse_bool(_first(data, "special_needs", "specialNeeds")) or has_iep or has_504

        preferred = _first(data, "preferred_peers", "preferredPeers")
        if preferred is None:
            preferred = [p.get("student") for p in relationships.get("preferredPeers", [])]
        separate = _first(data, "separate_from", "separateFrom")
        if separate is None:
            separate = [p.get("student") for p in relationships.get("separateFrom", [])]

        student_id = normalize_id(_first(data, "id", "_id", "student_id"))
        if not student_id:
            raise ValidationError("student record has no id", field="id")

        grade = _first(data, "grade", default=0)
        try:
            grade = int(float(grade))
        except (TypeError, ValueError):
            grade = 0

        return cls(
            id=student_id,
            grade=grade,
            gender=normalize_gender(data.get("gender")),
            academic_level=normalize_academic_level(_first(data, "academic_level", "academicLevel")),
            behavioral_level=normalize_behavioral_level(
                _first(data, "behavioral_level", "behavioralLevel")
            ),
            special_needs=special_needs,
            has_iep=has_iep,
            has_504=has_504,
            preferred_peers=normalize_id_list(preferred),
            separate_from=normalize_id_list(separate),
            first_name=str(_first(data, "first_name", "firstName", default="")).strip(),
            last_name=str(_first(data, "last_name", "lastName", default="")).strip(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert student to dictionary."""
        return {
            "id": self.id,
            "grade": self.grade,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "gender": self.gender.value,
            "academic_level": self.academic_level,
            "behavioral_level": self.behavioral_level,
            "special_needs": self.special_needs,
            "has_iep": self.has_iep,
            "has_504": self.has_504,
            "preferred_peers": list(self.preferred_peers),
            "separate_from": list(self.separate_from),
        }


@dataclass(frozen=True)
class Constraint:
    """A placement constraint.

    Grouping constraints use ``students``; teacher constraints use
    ``student`` and ``teacher``; ``balanced_distribution`` uses ``factor``.
    ``sequence`` is the creation order used to break priority ties.
    """

    type: ConstraintType
    priority: Priority = Priority.MEDIUM
    students: tuple[str, ...] = ()
    student: str | None = None
    teacher: str | None = None
    factor: BalanceFactor | None = None
    reason: str = ""
    sequence: int = 0
    id: str = ""

    @property
    def is_grouping(self) -> bool:
        return self.type in GROUP_CONSTRAINT_TYPES

    @classmethod
    def from_dict(cls, data: dict[str, Any], sequence: int = 0) -> "Constraint":
        """Create a Constraint from a dictionary, validating its shape."""
        raw_type = str(data.get("type", "")).strip().lower()
        if raw_type in CONSTRAINT_TYPE_ALIASES:
            constraint_type = CONSTRAINT_TYPE_ALIASES[raw_type]
        else:
            try:
                constraint_type = ConstraintType(raw_type)
            except ValueError:
                raise ValidationError(f"unknown constraint type '{raw_type}'", field="type") from None

        raw_priority = str(data.get("priority") or Priority.MEDIUM.value).strip().lower()
        try:
            priority = Priority(raw_priority)
        except ValueError:
            raise ValidationError(f"unknown priority '{raw_priority}'", field="priority") from None

        factor = None
        raw_factor = data.get("factor")
        if raw_factor:
            try:
                factor = BalanceFactor(str(raw_factor).strip().lower())
            except ValueError:
                raise ValidationError(f"unknown balance factor '{raw_factor}'", field="factor") from None

        student = normalize_id(data.get("student")) or None
        teacher = normalize_id(data.get("teacher")) or None
        students = normalize_id_list(_first(data, "students", "student_ids", "studentIds"))

        if constraint_type in TEACHER_CONSTRAINT_TYPES:
            if student is None and len(students) == 1:
                student = students[0]
            if student is None or teacher is None:
                raise ValidationError(
                    f"{constraint_type.value} needs a student and a teacher", field="teacher"
                )
        if constraint_type == ConstraintType.BALANCED_DISTRIBUTION and factor is None:
            raise ValidationError("balanced_distribution needs a factor", field="factor")

        return cls(
            type=constraint_type,
            priority=priority,
            students=students,
            student=student,
            teacher=teacher,
            factor=factor,
            reason=str(data.get("reason") or data.get("description") or ""),
            sequence=int(data.get("sequence", sequence)),
            id=normalize_id(_first(data, "id", "_id", default="")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert constraint to dictionary."""
        return {
            "id": self.id,
            "type": self.type.value,
            "priority": self.priority.value,
            "students": list(self.students),
            "student": self.student,
            "teacher": self.teacher,
            "factor": self.factor.value if self.factor else None,
            "reason": self.reason,
            "sequence": self.sequence,
        }


@dataclass(frozen=True)
class ParentRequest:
    """An approved parent placement request for one student."""

    student_id: str
    preferred_classmates: tuple[str, ...] = ()
    avoid_classmates: tuple[str, ...] = ()
    preferred_teacher: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ParentRequest":
        """Create a ParentRequest from a dictionary."""
        student = data.get("student")
        if isinstance(student, dict):
            student = _first(student, "id", "_id")
        return cls(
            student_id=normalize_id(_first(data, "student_id", "studentId", default=student)),
            preferred_classmates=normalize_id_list(
                _first(data, "preferred_classmates", "preferredClassmates")
            ),
            avoid_classmates=normalize_id_list(_first(data, "avoid_classmates", "avoidClassmates")),
            preferred_teacher=normalize_id(_first(data, "preferred_teacher", "preferredTeacher"))
            or None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "student_id": self.student_id,
            "preferred_classmates": list(self.preferred_classmates),
            "avoid_classmates": list(self.avoid_classmates),
            "preferred_teacher": self.preferred_teacher,
        }


@dataclass(frozen=True)
class Capacity:
    """Size bounds for one class bucket."""

    minimum: int = 0
    maximum: int | None = None
    optimal: int | None = None

    def is_full(self, size: int) -> bool:
        return self.maximum is not None and size >= self.maximum

    def to_dict(self) -> dict[str, Any]:
        return {"min": self.minimum, "max": self.maximum, "optimal": self.optimal}


@dataclass(frozen=True)
class BalanceWeights:
    """Relative weights of the four balance dimensions."""

    gender: float = DEFAULT_BALANCE_WEIGHT
    academic: float = DEFAULT_BALANCE_WEIGHT
    behavioral: float = DEFAULT_BALANCE_WEIGHT
    special_needs: float = DEFAULT_BALANCE_WEIGHT

    @property
    def total(self) -> float:
        return self.gender + self.academic + self.behavioral + self.special_needs

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "BalanceWeights":
        """Create weights from a dictionary; missing keys default to 1.

        Understands both ``gender`` and the older ``genderBalance`` /
        ``specialNeedsDistribution`` spellings.
        """
        if not data:
            return cls()

        def weight(*keys: str) -> float:
            value = _first(data, *keys)
            return DEFAULT_BALANCE_WEIGHT if value is None else float(value)

        return cls(
            gender=weight("gender", "genderBalance", "gender_balance"),
            academic=weight("academic", "academicBalance", "academic_balance"),
            behavioral=weight("behavioral", "behavioralBalance", "behavioral_balance"),
            special_needs=weight(
                "special_needs", "specialNeeds", "specialNeedsDistribution", "special_needs_distribution"
            ),
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "gender": self.gender,
            "academic": self.academic,
            "behavioral": self.behavioral,
            "special_needs": self.special_needs,
        }


@dataclass(frozen=True)
class BalanceScores:
    """Per-class balance scores, each in [0, 1]."""

    gender: float = 0.0
    academic: float = 0.0
    behavioral: float = 0.0
    special_needs: float = 0.0
    overall: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "gender": self.gender,
            "academic": self.academic,
            "behavioral": self.behavioral,
            "special_needs": self.special_needs,
            "overall": self.overall,
        }


@dataclass
class ClassBucket:
    """One target class that students are assigned into."""

    name: str
    capacity: Capacity = field(default_factory=Capacity)
    student_ids: list[str] = field(default_factory=list)
    teacher_id: str | None = None
    teacher_name: str | None = None
    compatibility_score: float | None = None
    balance_scores: BalanceScores = field(default_factory=BalanceScores)

    @property
    def size(self) -> int:
        return len(self.student_ids)

    @property
    def is_full(self) -> bool:
        return self.capacity.is_full(self.size)

    def add(self, student_id: str) -> None:
        """Assign a student to this class (no-op when already present)."""
        if student_id not in self.student_ids:
            self.student_ids.append(student_id)

    def __contains__(self, student_id: object) -> bool:
        return student_id in self.student_ids

    def to_dict(self) -> dict[str, Any]:
        """Convert class to dictionary."""
        return {
            "name": self.name,
            "capacity": self.capacity.to_dict(),
            "student_ids": list(self.student_ids),
            "student_count": self.size,
            "teacher_id": self.teacher_id,
            "teacher_name": self.teacher_name,
            "compatibility_score": self.compatibility_score,
            "balance_scores": self.balance_scores.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClassBucket":
        """Rebuild a class from ``to_dict`` output or an API payload."""
        capacity = data.get("capacity") or {}
        scores = data.get("balance_scores") or data.get("balanceScores") or {}
        student_ids = _first(data, "student_ids", "studentIds")
        if student_ids is None:
            student_ids = [
                _first(s, "id", "_id") if isinstance(s, dict) else s
                for s in data.get("students", [])
            ]
        return cls(
            name=str(data.get("name", "")),
            capacity=Capacity(
                minimum=int(capacity.get("min", 0) or 0),
                maximum=capacity.get("max"),
                optimal=capacity.get("optimal"),
            ),
            student_ids=list(normalize_id_list(student_ids)),
            teacher_id=data.get("teacher_id"),
            teacher_name=data.get("teacher_name"),
            compatibility_score=data.get("compatibility_score"),
            balance_scores=BalanceScores(
                gender=scores.get("gender", 0.0),
                academic=scores.get("academic", 0.0),
                behavioral=scores.get("behavioral", 0.0),
                special_needs=_first(scores, "special_needs", "specialNeeds", default=0.0),
                overall=scores.get("overall", 0.0),
            ),
        )


@dataclass(frozen=True)
class LevelTarget:
    """A teacher's preferred and maximum percentage for one level."""

    preferred: float | None = None
    maximum: float | None = None


@dataclass(frozen=True)
class GenderPreference:
    """How much a teacher cares about gender mix, and the ratio they want."""

    importance: int = DEFAULT_GENDER_IMPORTANCE
    preferred_ratio: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class SpecialEducationCapacity:
    """Maximum IEP and 504 students a teacher is prepared to take."""

    max_iep: int | None = None
    max_504: int | None = None


# Alternate spellings of level keys used by teacher surveys
_LEVEL_KEY_ALIASES = {
    "needssupport": "needs_support",
    "satisfactory": "fair",
    "needsimprovement": "needs_improvement",
}


def _parse_targets(raw: dict[str, Any] | None, categories: list[str]) -> dict[str, LevelTarget]:
    targets: dict[str, LevelTarget] = {}
    for key, value in (raw or {}).items():
        level = _LEVEL_KEY_ALIASES.get(key.lower().replace("_", ""), key.lower())
        if level not in categories:
            continue
        if isinstance(value, dict):
            targets[level] = LevelTarget(
                preferred=value.get("preferred"),
                maximum=_first(value, "maximum", "max"),
            )
        else:
            targets[level] = LevelTarget(preferred=float(value))
    return targets


@dataclass(frozen=True)
class TeacherProfile:
    """A teacher together with their declared class preferences."""

    id: str
    name: str = ""
    minimum_class_size: int = 15
    preferred_class_size: int = 20
    maximum_class_size: int = 25
    academic_targets: dict[str, LevelTarget] = field(default_factory=dict)
    behavioral_targets: dict[str, LevelTarget] = field(default_factory=dict)
    gender_preference: GenderPreference | None = None
    special_education: SpecialEducationCapacity | None = None
    specialty_areas: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TeacherProfile":
        """Create a TeacherProfile from a survey record.

        Both the flat layout (``class_size``, ``academic_distribution``, ...)
        and the nested survey layout (``classComposition``,
        ``studentPreferences``, ``specialEducationPreferences``) are accepted.
        """
        composition = _first(data, "class_composition", "classComposition", default={})
        size = _first(data, "class_size", default=composition.get("preferredSize")) or {}
        student_prefs = _first(data, "student_preferences", "studentPreferences", default={})

        def size_value(flat: str, short: str, nested: str, default: int) -> int:
            value = _first(size, flat, short, default=composition.get(nested))
            return default if value is None else int(value)

        academic = _first(
            data, "academic_distribution", default=student_prefs.get("academicDistribution")
        )
        behavioral = _first(
            data, "behavioral_distribution", default=student_prefs.get("behavioralDistribution")
        )

        gender_raw = _first(data, "gender_balance", default=composition.get("genderBalance"))
        gender_preference = None
        if isinstance(gender_raw, dict):
            ratio = _first(gender_raw, "preferred_ratio", "preferredRatio", default={})
            gender_preference = GenderPreference(
                importance=int(gender_raw.get("importance") or DEFAULT_GENDER_IMPORTANCE),
                preferred_ratio={k.lower(): float(v) for k, v in ratio.items() if v is not None},
            )

        special_raw = _first(data, "special_education", "specialEducationPreferences")
        special_education = None
        if isinstance(special_raw, dict):
            special_education = SpecialEducationCapacity(
                max_iep=_first(special_raw, "max_iep", "maxIEPStudents"),
                max_504=_first(special_raw, "max_504", "max504Students"),
            )

        teacher_id = normalize_id(_first(data, "id", "_id", "teacher_id", "teacherId"))
        if not teacher_id:
            raise ValidationError("teacher record has no id", field="id")

        return cls(
            id=teacher_id,
            name=str(_first(data, "name", "teacherName", default="")),
            minimum_class_size=size_value("minimum", "min", "minimumClassSize", 15),
            preferred_class_size=size_value("preferred", "ideal", "preferredClassSize", 20),
            maximum_class_size=size_value("maximum", "max", "maximumClassSize", 25),
            academic_targets=_parse_targets(academic, ACADEMIC_CATEGORIES),
            behavioral_targets=_parse_targets(behavioral, BEHAVIORAL_CATEGORIES),
            gender_preference=gender_preference,
            special_education=special_education,
            specialty_areas=tuple(_first(data, "specialty_areas", "specialtyAreas", default=())),
        )


@dataclass(frozen=True)
class CompatibilityScore:
    """Fit between one teacher and one class, 0-100, with its subscores."""

    teacher_id: str
    class_name: str
    score: float
    class_size: float = 0.0
    academic: float = 0.0
    behavioral: float = 0.0
    special_education: float = 0.0
    gender: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "teacher_id": self.teacher_id,
            "class_name": self.class_name,
            "score": self.score,
            "subscores": {
                "class_size": round(self.class_size, 2),
                "academic": round(self.academic, 2),
                "behavioral": round(self.behavioral, 2),
                "special_education": round(self.special_education, 2),
                "gender": round(self.gender, 2),
            },
        }


@dataclass(frozen=True)
class TeacherAssignment:
    """A teacher accepted for one class by a matcher."""

    class_name: str
    teacher_id: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {"class_name": self.class_name, "teacher_id": self.teacher_id, "score": self.score}


@dataclass
class TeacherMatchResult:
    """Classes with their matched teachers."""

    classes: list[ClassBucket] = field(default_factory=list)
    assignments: list[TeacherAssignment] = field(default_factory=list)
    teacher_assignment_score: float = 0.0
    assigned_teacher_count: int = 0
    total_teacher_count: int = 0
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "classes": [c.to_dict() for c in self.classes],
            "assignments": [a.to_dict() for a in self.assignments],
            "teacher_assignment_score": self.teacher_assignment_score,
            "assigned_teacher_count": self.assigned_teacher_count,
            "total_teacher_count": self.total_teacher_count,
            "message": self.message,
        }


@dataclass(frozen=True)
class SeparationViolation:
    """Two students who must be separated but share a class."""

    student_id: str
    other_id: str
    class_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "other_id": self.other_id,
            "class_name": self.class_name,
        }


@dataclass
class PlacementStatistics:
    """Statistics about a placement run."""

    total_students: int = 0
    number_of_classes: int = 0
    average_class_size: float = 0.0
    balance_score: float = 0.0
    constraints_applied: int = 0
    parent_requests_applied: int = 0
    violations: list[SeparationViolation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_students": self.total_students,
            "number_of_classes": self.number_of_classes,
            "average_class_size": self.average_class_size,
            "balance_score": self.balance_score,
            "constraints_applied": self.constraints_applied,
            "parent_requests_applied": self.parent_requests_applied,
            "violations": [v.to_dict() for v in self.violations],
        }


@dataclass
class PlacementResult:
    """Result of a placement run."""

    classes: list[ClassBucket] = field(default_factory=list)
    statistics: PlacementStatistics = field(default_factory=PlacementStatistics)
    strategy: Strategy = Strategy.BALANCED
    generation_date: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def violations(self) -> list[SeparationViolation]:
        return self.statistics.violations

    def class_of(self, student_id: str) -> ClassBucket | None:
        """Return the class a student was placed in, if any."""
        for bucket in self.classes:
            if student_id in bucket:
                return bucket
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "generation_date": self.generation_date,
            "strategy": self.strategy.value,
            "classes": [c.to_dict() for c in self.classes],
            "stats": self.statistics.to_dict(),
        }


class SuggestionType(str, Enum):
    """Kind of change a suggestion proposes."""

    SWAP = "swap"
    MOVE = "move"


@dataclass(frozen=True)
class SuggestedStudent:
    """A student named by a suggestion, with their current class."""

    id: str
    name: str
    current_class: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "current_class": self.current_class}


@dataclass(frozen=True)
class Suggestion:
    """A proposed swap or move. Never applied automatically."""

    type: SuggestionType
    category: BalanceFactor
    students: tuple[SuggestedStudent, ...]
    target_class: str
    reason: str
    impact: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "category": self.category.value,
            "students": [s.to_dict() for s in self.students],
            "target_class": self.target_class,
            "reason": self.reason,
            "impact": dict(self.impact),
        }


class Severity(str, Enum):
    """Insight severity."""

    INFO = "info"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Insight:
    """One observation about a placement."""

    type: str
    message: str
    severity: Severity
    affected_classes: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message,
            "severity": self.severity.value,
            "affected_classes": list(self.affected_classes),
        }


@dataclass
class InsightReport:
    """Insights about a placement with an overall summary."""

    balance_score: float = 0.0
    insights: list[Insight] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "balance_score": self.balance_score,
            "insights": [i.to_dict() for i in self.insights],
            "summary": self.summary,
        }


@dataclass(frozen=True)
class ConstraintOutcome:
    """Whether one grouping constraint holds in a placement."""

    type: ConstraintType
    students: tuple[str, ...]
    classes: tuple[str, ...]
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "students": list(self.students),
            "classes": list(self.classes),
            "description": self.description,
        }


@dataclass
class ConstraintReport:
    """Fulfilled and unfulfilled grouping constraints of a placement."""

    fulfilled: list[ConstraintOutcome] = field(default_factory=list)
    unfulfilled: list[ConstraintOutcome] = field(default_factory=list)

    @property
    def fulfillment_rate(self) -> float:
        total = len(self.fulfilled) + len(self.unfulfilled)
        return 100.0 * len(self.fulfilled) / total if total else 100.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "fulfilled": [o.to_dict() for o in self.fulfilled],
            "unfulfilled": [o.to_dict() for o in self.unfulfilled],
            "fulfillment_rate": round(self.fulfillment_rate, 1),
        }
