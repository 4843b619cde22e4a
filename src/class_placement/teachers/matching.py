"""Teacher-to-class assignment.

Scores every (teacher, class) pair and hands the scores to a Matcher:

- GreedyMatcher: highest score first, accept while both are free. Fast, not
  guaranteed optimal.
- OptimalMatcher: maximum total score over all one-to-one assignments of
  maximum size, solved with OR-Tools CP-SAT.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from ortools.sat.python import cp_model

from ..exceptions import ValidationError
from ..models import (
    ClassBucket,
    CompatibilityScore,
    Student,
    TeacherAssignment,
    TeacherMatchResult,
    TeacherProfile,
)
from ..normalization import round_half_up
from ..validators import validate_class_names
from .compatibility import compatibility_score

logger = logging.getLogger(__name__)

DEFAULT_TIME_LIMIT = 10


class Matcher(ABC):
    """Abstract base class for teacher/class matchers."""

    @abstractmethod
    def match(self, scores: Sequence[CompatibilityScore]) -> list[TeacherAssignment]:
        """
        Pick one-to-one assignments from scored pairs.

        Args:
            scores: One score per (teacher, class) pair, enumerated teacher
                by teacher in input order.

        Returns:
            Assignments in which every teacher and class appears at most once.
        """
        pass


class GreedyMatcher(Matcher):
    """Accepts pairs in descending score order while both sides are free."""

    def match(self, scores: Sequence[CompatibilityScore]) -> list[TeacherAssignment]:
        # sorted() is stable, so equal scores keep enumeration order
        ordered = sorted(scores, key=lambda s: s.score, reverse=True)

        assigned_teachers: set[str] = set()
        assigned_classes: set[str] = set()
        assignments = []

        for pair in ordered:
            if pair.teacher_id in assigned_teachers or pair.class_name in assigned_classes:
                continue
            assignments.append(TeacherAssignment(pair.class_name, pair.teacher_id, pair.score))
            assigned_teachers.add(pair.teacher_id)
            assigned_classes.add(pair.class_name)

        return assignments


class OptimalMatcher(Matcher):
    """Maximum-weight assignment solved with CP-SAT."""

    def __init__(self, time_limit: int = DEFAULT_TIME_LIMIT):
        self.time_limit = time_limit

    def match(self, scores: Sequence[CompatibilityScore]) -> list[TeacherAssignment]:
        if not scores:
            return []

        teachers = list(dict.fromkeys(s.teacher_id for s in scores))
        classes = list(dict.fromkeys(s.class_name for s in scores))

        model = cp_model.CpModel()
        x: dict[tuple[str, str], Any] = {}
        for pair in scores:
            x[(pair.teacher_id, pair.class_name)] = model.NewBoolVar(
                f"x_{pair.teacher_id}_{pair.class_name}"
            )

        for teacher_id in teachers:
            model.AddAtMostOne([v for (t, _), v in x.items() if t == teacher_id])
        for class_name in classes:
            model.AddAtMostOne([v for (_, c), v in x.items() if c == class_name])

        # Same number of assignments as a maximal greedy matching
        model.Add(sum(x.values()) == min(len(teachers), len(classes)))

        by_key = {(s.teacher_id, s.class_name): s for s in scores}
        model.Maximize(sum(int(round_half_up(by_key[key].score)) * var for key, var in x.items()))

        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = self.time_limit
        solver.parameters.log_search_progress = False
        solver.parameters.num_workers = 1

        status = solver.Solve(model)
        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            logger.warning(
                f"Assignment solver returned {solver.StatusName(status)}; falling back to greedy"
            )
            return GreedyMatcher().match(scores)

        if status == cp_model.FEASIBLE:
            logger.info("Found feasible teacher assignment (may not be optimal)")

        assignments = [
            TeacherAssignment(c, t, by_key[(t, c)].score)
            for (t, c), var in x.items()
            if solver.Value(var) == 1
        ]
        order = {name: i for i, name in enumerate(classes)}
        return sorted(assignments, key=lambda a: order[a.class_name])


def score_pairs(
    teachers: Sequence[TeacherProfile],
    classes: Sequence[ClassBucket],
    students: Sequence[Student],
) -> list[CompatibilityScore]:
    """Compatibility score of every (teacher, class) pair, teacher by teacher."""
    by_id = {s.id: s for s in students}
    rosters = {
        bucket.name: [by_id[sid] for sid in bucket.student_ids if sid in by_id]
        for bucket in classes
    }
    return [
        compatibility_score(teacher, bucket.name, rosters[bucket.name])
        for teacher in teachers
        for bucket in classes
    ]


def match_teachers(
    teachers: Sequence[TeacherProfile | dict[str, Any]],
    classes: Sequence[ClassBucket],
    students: Sequence[Student | dict[str, Any]],
    matcher: Matcher | None = None,
) -> TeacherMatchResult:
    """
    Assign teachers to classes by compatibility.

    Args:
        teachers: Teacher profiles.
        classes: Placed classes. Not modified; copies are returned.
        students: Cohort the classes were built from.
        matcher: Assignment algorithm (greedy by default).

    Returns:
        TeacherMatchResult with updated class copies and the mean score of
        the accepted assignments.

    Raises:
        ValidationError: Two classes share a name.
    """
    profiles = [t if isinstance(t, TeacherProfile) else TeacherProfile.from_dict(t) for t in teachers]
    roster = [s if isinstance(s, Student) else Student.from_dict(s) for s in students]
    result_classes = [replace(bucket, student_ids=list(bucket.student_ids)) for bucket in classes]

    is_valid, error = validate_class_names(result_classes)
    if not is_valid:
        raise ValidationError(error, field="classes")

    if not profiles or not result_classes:
        logger.warning("No teachers or classes to match")
        return TeacherMatchResult(
            classes=result_classes,
            total_teacher_count=len(profiles),
            message="No teacher preferences found for this grade and academic year."
            if not profiles
            else "No classes to assign.",
        )

    matcher = matcher or GreedyMatcher()
    scores = score_pairs(profiles, result_classes, roster)
    assignments = matcher.match(scores)

    names = {t.id: t.name for t in profiles}
    by_class = {a.class_name: a for a in assignments}
    for bucket in result_classes:
        assignment = by_class.get(bucket.name)
        if assignment is not None:
            bucket.teacher_id = assignment.teacher_id
            bucket.teacher_name = names.get(assignment.teacher_id)
            bucket.compatibility_score = assignment.score

    overall = sum(a.score for a in assignments) / len(assignments) if assignments else 0.0

    logger.info(
        f"Assigned {len(assignments)} of {len(profiles)} teachers "
        f"to {len(result_classes)} classes (mean compatibility {overall:.0f})"
    )

    return TeacherMatchResult(
        classes=result_classes,
        assignments=assignments,
        teacher_assignment_score=round_half_up(overall),
        assigned_teacher_count=len(assignments),
        total_teacher_count=len(profiles),
    )
