"""Constraint resolution for class placement.

Turns the flat list of placement constraints into the indexes the placement
engine works from:

- together groups (students who must share a class)
- separate groups (students who must not share a class)
- per-student teacher preferences (preferred / avoided teacher)
- balanced-distribution factors and the equal-class-size flag

Constraints are resolved strongest first (required > high > medium > low),
ties in creation order. Together groups that share a student end up in one
class, so a separate pair linked through such groups is a conflict and fails
the whole run.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any

from ..constants import PRIORITY_RANK, BalanceFactor, ConstraintType, Priority
from ..exceptions import ConflictError
from ..models import Constraint, Student

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StudentGroup:
    """Two or more students bound by one grouping constraint."""

    members: tuple[str, ...]
    priority: Priority
    constraint: Constraint | None = None

    def pairs(self) -> Iterator[frozenset[str]]:
        """Yield every unordered pair of members."""
        for a, b in combinations(self.members, 2):
            yield frozenset((a, b))

    def __contains__(self, student_id: object) -> bool:
        return student_id in self.members


@dataclass(frozen=True)
class TeacherPreference:
    """Preferred and avoided teachers for one student."""

    preferred: str | None = None
    avoided: frozenset[str] = frozenset()


@dataclass
class ResolvedConstraints:
    """Constraint indexes consumed by placement and suggestions."""

    together: list[StudentGroup] = field(default_factory=list)
    separate: list[StudentGroup] = field(default_factory=list)
    teacher_prefs: dict[str, TeacherPreference] = field(default_factory=dict)
    balanced_factors: tuple[BalanceFactor, ...] = ()
    equal_class_size: bool = False
    constraint_count: int = 0
    _separated: dict[str, set[str]] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if not self._separated:
            for group in self.separate:
                for member in group.members:
                    others = self._separated.setdefault(member, set())
                    others.update(m for m in group.members if m != member)

    def separated_from(self, student_id: str) -> set[str]:
        """Students that ``student_id`` must not share a class with."""
        return self._separated.get(student_id, set())

    def separate_pairs(self) -> set[frozenset[str]]:
        """All unordered pairs that must be kept apart."""
        pairs: set[frozenset[str]] = set()
        for group in self.separate:
            pairs.update(group.pairs())
        return pairs

    def constrained_ids(self) -> set[str]:
        """Students named by any together or separate group."""
        ids: set[str] = set()
        for group in self.together + self.separate:
            ids.update(group.members)
        return ids

    def has_conflict(self, student_id: str, class_members: Iterable[str]) -> bool:
        """Whether placing ``student_id`` with ``class_members`` splits a separate pair."""
        separated = self.separated_from(student_id)
        if not separated:
            return False
        return any(member in separated for member in class_members)


def _resolution_key(constraint: Constraint) -> tuple[int, int]:
    return (PRIORITY_RANK[constraint.priority], constraint.sequence)


def linked_pairs(groups: Sequence[StudentGroup]) -> set[frozenset[str]]:
    """Every pair that shares a class once overlapping together groups are merged."""
    components: list[set[str]] = []
    for group in groups:
        merged = set(group.members)
        rest = []
        for component in components:
            if component & merged:
                merged |= component
            else:
                rest.append(component)
        components = rest + [merged]

    return {
        frozenset(pair) for component in components for pair in combinations(sorted(component), 2)
    }


class ConstraintResolver:
    """Validates and indexes placement constraints."""

    def resolve(
        self,
        constraints: Sequence[Constraint | dict[str, Any]],
        students: Sequence[Student] = (),
    ) -> ResolvedConstraints:
        """
        Resolve constraints into groups and preferences.

        Args:
            constraints: Constraint objects or dictionaries. Dictionaries get
                their list position as creation order.
            students: Optional roster. Each student's declared
                ``separate_from`` peers become low-priority separate groups,
                unless the pair is also required together.

        Returns:
            ResolvedConstraints for the run.

        Raises:
            ValidationError: A constraint dictionary is malformed.
            ConflictError: A pair is both must_be_together (directly or through
                a shared student) and must_be_separate.
        """
        parsed = [
            c if isinstance(c, Constraint) else Constraint.from_dict(c, sequence=i)
            for i, c in enumerate(constraints)
        ]
        ordered = sorted(parsed, key=_resolution_key)

        together = self._collect_groups(ordered, ConstraintType.MUST_BE_TOGETHER)
        separate = self._collect_groups(ordered, ConstraintType.MUST_BE_SEPARATE)

        self._check_conflicts(together, separate)

        separate.extend(self._declared_separations(students, together, separate))

        factors: list[BalanceFactor] = []
        for c in ordered:
            if c.type == ConstraintType.BALANCED_DISTRIBUTION and c.factor not in factors:
                factors.append(c.factor)

        resolved = ResolvedConstraints(
            together=together,
            separate=separate,
            teacher_prefs=self._collect_teacher_prefs(ordered),
            balanced_factors=tuple(factors),
            equal_class_size=any(c.type == ConstraintType.EQUAL_CLASS_SIZE for c in ordered),
            constraint_count=len(parsed),
        )

        logger.debug(
            f"Resolved {len(parsed)} constraints: {len(together)} together groups, "
            f"{len(separate)} separate groups, {len(resolved.teacher_prefs)} teacher preferences"
        )
        return resolved

    def _collect_groups(
        self, ordered: list[Constraint], constraint_type: ConstraintType
    ) -> list[StudentGroup]:
        """Build groups of one type, dropping groups with fewer than two students."""
        groups = []
        for constraint in ordered:
            if constraint.type != constraint_type:
                continue
            members = tuple(dict.fromkeys(constraint.students))
            if len(members) < 2:
                logger.warning(
                    f"Ignoring {constraint_type.value} constraint "
                    f"{constraint.id or constraint.sequence}: needs at least 2 students"
                )
                continue
            groups.append(StudentGroup(members, constraint.priority, constraint))
        return groups

    def _check_conflicts(
        self, together: list[StudentGroup], separate: list[StudentGroup]
    ) -> None:
        together_pairs = linked_pairs(together)

        conflicts = set()
        for group in separate:
            for pair in group.pairs():
                if pair in together_pairs:
                    conflicts.add(tuple(sorted(pair)))

        if conflicts:
            raise ConflictError(list(conflicts))

    def _declared_separations(
        self,
        students: Sequence[Student],
        together: list[StudentGroup],
        separate: list[StudentGroup],
    ) -> list[StudentGroup]:
        """Low-priority separate groups from students' own separate_from lists."""
        together_pairs = linked_pairs(together)
        known: set[frozenset[str]] = set()
        for group in separate:
            known.update(group.pairs())

        roster = {s.id for s in students}
        groups = []
        for student in students:
            for other in student.separate_from:
                pair = frozenset((student.id, other))
                if other not in roster or other == student.id or pair in known:
                    continue
                if pair in together_pairs:
                    logger.warning(
                        f"Ignoring declared separation of {student.id} and {other}: "
                        "they are required together"
                    )
                    continue
                known.add(pair)
                groups.append(StudentGroup((student.id, other), Priority.LOW))
        return groups

    def _collect_teacher_prefs(self, ordered: list[Constraint]) -> dict[str, TeacherPreference]:
        """First preferred teacher in resolution order wins; avoided teachers accumulate."""
        preferred: dict[str, str] = {}
        avoided: dict[str, set[str]] = {}

        for constraint in ordered:
            if constraint.type == ConstraintType.PREFERRED_TEACHER:
                preferred.setdefault(constraint.student, constraint.teacher)
            elif constraint.type == ConstraintType.AVOID_TEACHER:
                avoided.setdefault(constraint.student, set()).add(constraint.teacher)

        return {
            student_id: TeacherPreference(
                preferred=preferred.get(student_id),
                avoided=frozenset(avoided.get(student_id, set())),
            )
            for student_id in list(dict.fromkeys([*preferred, *avoided]))
        }


def resolve_constraints(
    constraints: Sequence[Constraint | dict[str, Any]],
    students: Sequence[Student] = (),
) -> ResolvedConstraints:
    """Resolve constraints with a default resolver."""
    return ConstraintResolver().resolve(constraints, students)
