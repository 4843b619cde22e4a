"""Strategies for distributing students left over after together groups.

Each strategy picks a target class per student. Whatever the strategy, a
target that would put a student with someone they must be separated from is
replaced by the least-populated class without such a conflict; only when no
class qualifies is the separation knowingly broken (and warned about).
"""

import logging
import warnings
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Mapping, Sequence

from ..constants import Strategy
from ..exceptions import InfeasibleConstraintWarning
from ..models import ClassBucket, ParentRequest, Student
from .constraints import ResolvedConstraints

logger = logging.getLogger(__name__)


def least_populated(buckets: Sequence[ClassBucket]) -> ClassBucket:
    """Class with the fewest students, lowest index on ties."""
    return min(buckets, key=lambda b: b.size)


def by_population(buckets: Sequence[ClassBucket]) -> list[ClassBucket]:
    """Classes in ascending size order, index order on ties."""
    return sorted(buckets, key=lambda b: b.size)


class PlacementStrategy(ABC):
    """Abstract base class for placement strategies."""

    name: Strategy

    def __init__(
        self,
        resolved: ResolvedConstraints,
        parent_requests: Mapping[str, ParentRequest] | None = None,
    ):
        """
        Initialize strategy.

        Args:
            resolved: Resolved constraints for the run.
            parent_requests: Approved parent requests keyed by student id.
        """
        self.resolved = resolved
        self.parent_requests = dict(parent_requests or {})

    @abstractmethod
    def distribute(self, students: Sequence[Student], buckets: list[ClassBucket]) -> None:
        """
        Assign every student in ``students`` to one of ``buckets``.

        Args:
            students: Students not yet placed.
            buckets: Classes to place into (mutated in place).
        """
        pass

    def _conflicts(self, student: Student, bucket: ClassBucket) -> bool:
        return self.resolved.has_conflict(student.id, bucket.student_ids)

    def _place(self, student: Student, target: ClassBucket, buckets: list[ClassBucket]) -> None:
        """Place a student in ``target`` unless that splits a separation."""
        if not self._conflicts(student, target):
            target.add(student.id)
            return

        for bucket in by_population(buckets):
            if not self._conflicts(student, bucket):
                logger.debug(f"Moved {student.id} from {target.name} to {bucket.name} to keep separation")
                bucket.add(student.id)
                return

        fallback = least_populated(buckets)
        message = (
            f"No class keeps {student.id} apart from "
            f"{', '.join(sorted(self.resolved.separated_from(student.id) & set(fallback.student_ids)))}; "
            f"placing in {fallback.name}"
        )
        logger.warning(message)
        warnings.warn(message, InfeasibleConstraintWarning, stacklevel=2)
        fallback.add(student.id)


class BalancedStrategy(PlacementStrategy):
    """Strongest students first, each into the least-populated class."""

    name = Strategy.BALANCED

    def distribute(self, students: Sequence[Student], buckets: list[ClassBucket]) -> None:
        ordered = sorted(students, key=lambda s: s.academic_level, reverse=True)
        for student in ordered:
            self._place(student, least_populated(buckets), buckets)


class AcademicFocusStrategy(PlacementStrategy):
    """Round-robin within each academic level so every class gets a share."""

    name = Strategy.ACADEMIC_FOCUS

    def distribute(self, students: Sequence[Student], buckets: list[ClassBucket]) -> None:
        by_level: dict[int, list[Student]] = defaultdict(list)
        for student in students:
            by_level[student.academic_level].append(student)

        for level in sorted(by_level):
            for i, student in enumerate(by_level[level]):
                self._place(student, buckets[i % len(buckets)], buckets)


class ParentRequestsStrategy(PlacementStrategy):
    """Students with preferred classmates first, next to one of them if possible."""

    name = Strategy.PARENT_REQUESTS_PRIORITY

    def preferred_classmates(self, student: Student) -> tuple[str, ...]:
        """Parent-requested classmates followed by the student's own preferred peers."""
        request = self.parent_requests.get(student.id)
        requested = request.preferred_classmates if request else ()
        return tuple(dict.fromkeys([*requested, *student.preferred_peers]))

    def distribute(self, students: Sequence[Student], buckets: list[ClassBucket]) -> None:
        ordered = sorted(students, key=lambda s: not self.preferred_classmates(s))

        for student in ordered:
            classmates = self.preferred_classmates(student)
            target = None
            if classmates:
                for bucket in buckets:
                    if bucket.is_full:
                        continue
                    if any(c in bucket for c in classmates):
                        target = bucket
                        break
            self._place(student, target or least_populated(buckets), buckets)


class RoundRobinStrategy(PlacementStrategy):
    """Plain distribution by index, no optimization."""

    name = Strategy.DEFAULT

    def distribute(self, students: Sequence[Student], buckets: list[ClassBucket]) -> None:
        for i, student in enumerate(students):
            self._place(student, buckets[i % len(buckets)], buckets)


STRATEGIES: dict[Strategy, type[PlacementStrategy]] = {
    Strategy.BALANCED: BalancedStrategy,
    Strategy.ACADEMIC_FOCUS: AcademicFocusStrategy,
    Strategy.PARENT_REQUESTS_PRIORITY: ParentRequestsStrategy,
    Strategy.DEFAULT: RoundRobinStrategy,
}


def parse_strategy(value: Strategy | str | None) -> Strategy:
    """Map a strategy name to a Strategy; unknown names fall back to round-robin."""
    if isinstance(value, Strategy):
        return value
    if value is None:
        return Strategy.DEFAULT
    try:
        return Strategy(str(value).strip().lower())
    except ValueError:
        logger.warning(f"Unknown strategy '{value}', using round-robin distribution")
        return Strategy.DEFAULT


def get_strategy(
    strategy: Strategy | str | None,
    resolved: ResolvedConstraints,
    parent_requests: Mapping[str, ParentRequest] | None = None,
) -> PlacementStrategy:
    """Factory for placement strategies.

    Args:
        strategy: Strategy or strategy name.
        resolved: Resolved constraints for the run.
        parent_requests: Approved parent requests keyed by student id.

    Returns:
        Strategy instance.
    """
    return STRATEGIES[parse_strategy(strategy)](resolved, parent_requests)
