"""Placement engine: partitions a cohort into class buckets."""

import logging
import math
import warnings
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

from ..config import PlacementSettings
from ..constants import Strategy
from ..exceptions import InfeasibleConstraintWarning, ValidationError
from ..models import (
    BalanceWeights,
    ClassBucket,
    Constraint,
    ParentRequest,
    PlacementResult,
    PlacementStatistics,
    SeparationViolation,
    Student,
)
from ..validators import validate_number_of_classes, validate_roster, validate_weights
from .balance import BalanceScorer, aggregate_balance
from .constraints import ConstraintResolver, ResolvedConstraints, StudentGroup
from .strategies import by_population, get_strategy, parse_strategy

logger = logging.getLogger(__name__)


def _as_students(students: Sequence[Student | dict[str, Any]]) -> list[Student]:
    return [s if isinstance(s, Student) else Student.from_dict(s) for s in students]


def _as_requests(
    requests: Sequence[ParentRequest | dict[str, Any]] | Mapping[str, ParentRequest] | None,
) -> dict[str, ParentRequest]:
    if not requests:
        return {}
    if isinstance(requests, Mapping):
        return dict(requests)
    parsed = [r if isinstance(r, ParentRequest) else ParentRequest.from_dict(r) for r in requests]
    return {r.student_id: r for r in parsed}


def _as_weights(weights: BalanceWeights | Mapping[str, float] | None) -> BalanceWeights:
    return weights if isinstance(weights, BalanceWeights) else BalanceWeights.from_dict(weights)


def find_violations(
    buckets: Sequence[ClassBucket], resolved: ResolvedConstraints
) -> list[SeparationViolation]:
    """Separate pairs that ended up in the same class."""
    violations = []
    seen: set[frozenset[str]] = set()
    for bucket in buckets:
        members = set(bucket.student_ids)
        for group in resolved.separate:
            for pair in group.pairs():
                if pair in seen or not pair <= members:
                    continue
                seen.add(pair)
                a, b = sorted(pair)
                violations.append(SeparationViolation(a, b, bucket.name))
    return violations


class PlacementEngine:
    """
    Assigns students to classes.

    Order of work:
    1. Create the empty classes
    2. Place each must_be_together group into the least-populated class
    3. Distribute everyone else with the selected strategy
    4. Score every class
    """

    def __init__(
        self,
        settings: PlacementSettings | None = None,
        resolver: ConstraintResolver | None = None,
    ):
        self.settings = settings or PlacementSettings()
        self.resolver = resolver or ConstraintResolver()

    def place(
        self,
        students: Sequence[Student | dict[str, Any]],
        number_of_classes: int,
        strategy: Strategy | str | None = Strategy.BALANCED,
        constraints: Sequence[Constraint | dict[str, Any]] = (),
        weights: BalanceWeights | Mapping[str, float] | None = None,
        parent_requests: Sequence[ParentRequest | dict[str, Any]] | None = None,
    ) -> list[ClassBucket]:
        """
        Partition students into ``number_of_classes`` classes.

        An empty roster yields empty classes rather than an error.

        Raises:
            ValidationError: Bad class count, duplicate ids or negative weights.
            ConflictError: Contradicting together/separate constraints.
        """
        buckets, _, _ = self._run(
            students, number_of_classes, strategy, constraints, weights, parent_requests
        )
        return buckets

    def run(
        self,
        students: Sequence[Student | dict[str, Any]],
        number_of_classes: int,
        strategy: Strategy | str | None = Strategy.BALANCED,
        constraints: Sequence[Constraint | dict[str, Any]] = (),
        weights: BalanceWeights | Mapping[str, float] | None = None,
        parent_requests: Sequence[ParentRequest | dict[str, Any]] | None = None,
    ) -> PlacementResult:
        """
        Place students and compute run statistics.

        Raises:
            ValidationError: Empty roster, bad class count, duplicate ids or
                negative weights.
            ConflictError: Contradicting together/separate constraints.
        """
        if not students:
            raise ValidationError("no students to place", field="students")

        buckets, violations, requests = self._run(
            students, number_of_classes, strategy, constraints, weights, parent_requests
        )

        total = sum(b.size for b in buckets)
        statistics = PlacementStatistics(
            total_students=total,
            number_of_classes=len(buckets),
            average_class_size=round(total / len(buckets), 1),
            balance_score=aggregate_balance(buckets),
            constraints_applied=len(constraints),
            parent_requests_applied=len(requests),
            violations=violations,
        )

        logger.info(
            f"Placed {total} students into {len(buckets)} classes "
            f"(balance {statistics.balance_score:.2f}, {len(violations)} separation violations)"
        )

        return PlacementResult(
            classes=buckets,
            statistics=statistics,
            strategy=parse_strategy(strategy),
        )

    def _run(
        self,
        students: Sequence[Student | dict[str, Any]],
        number_of_classes: int,
        strategy: Strategy | str | None,
        constraints: Sequence[Constraint | dict[str, Any]],
        weights: BalanceWeights | Mapping[str, float] | None,
        parent_requests: Sequence[ParentRequest | dict[str, Any]] | None,
    ) -> tuple[list[ClassBucket], list[SeparationViolation], dict[str, ParentRequest]]:
        is_valid, error = validate_number_of_classes(number_of_classes)
        if not is_valid:
            raise ValidationError(error, field="number_of_classes")
        number_of_classes = int(number_of_classes)

        roster = _as_students(students)
        is_valid, error = validate_roster(roster)
        if not is_valid:
            raise ValidationError(error, field="students")

        balance_weights = _as_weights(weights)
        is_valid, error = validate_weights(balance_weights)
        if not is_valid:
            raise ValidationError(error, field="weights")

        resolved = self.resolver.resolve(constraints, roster)
        roster_ids = {s.id for s in roster}
        requests = {
            sid: r for sid, r in _as_requests(parent_requests).items() if sid in roster_ids
        }

        buckets = self._create_buckets(number_of_classes, len(roster), resolved)

        if not roster:
            logger.warning("No students to place; returning empty classes")
            return buckets, [], requests

        chosen = parse_strategy(strategy)
        logger.info(
            f"Placing {len(roster)} students into {number_of_classes} classes "
            f"using '{chosen.value}' strategy"
        )

        assigned = self._place_together_groups(resolved, roster_ids, buckets)

        remaining = [s for s in roster if s.id not in assigned]
        get_strategy(chosen, resolved, requests).distribute(remaining, buckets)

        BalanceScorer(roster, balance_weights).apply(buckets)

        violations = find_violations(buckets, resolved)
        for v in violations:
            logger.warning(f"Separation not honored: {v.student_id} and {v.other_id} in {v.class_name}")

        return buckets, violations, requests

    def _create_buckets(
        self, number_of_classes: int, roster_size: int, resolved: ResolvedConstraints
    ) -> list[ClassBucket]:
        """Create empty classes sized from settings and roster size."""
        even_size = math.ceil(roster_size / number_of_classes)
        capacity = self.settings.class_capacity
        if capacity.optimal is None:
            capacity = replace(capacity, optimal=even_size)
        if resolved.equal_class_size and capacity.maximum is None:
            capacity = replace(capacity, maximum=even_size)

        return [
            ClassBucket(name=self.settings.class_name(i), capacity=capacity)
            for i in range(number_of_classes)
        ]

    def _place_together_groups(
        self,
        resolved: ResolvedConstraints,
        roster_ids: set[str],
        buckets: list[ClassBucket],
    ) -> set[str]:
        """Place every together group in one class. Returns the placed ids."""
        assigned: set[str] = set()

        for group in resolved.together:
            members = [m for m in group.members if m in roster_ids and m not in assigned]
            if not members:
                continue

            # Groups sharing a member join the class that member is already in
            anchor = next((m for m in group.members if m in assigned), None)
            if anchor is not None:
                target = next(b for b in buckets if anchor in b)
                self._warn_if_split(members, target, resolved)
            else:
                target = self._target_for_group(members, resolved, buckets)
            for member in members:
                target.add(member)
                assigned.add(member)

            skipped = [m for m in group.members if m not in members]
            if skipped:
                logger.debug(
                    f"Together group {self._describe(group)}: skipped already placed or unknown {skipped}"
                )

        return assigned

    def _target_for_group(
        self, members: list[str], resolved: ResolvedConstraints, buckets: list[ClassBucket]
    ) -> ClassBucket:
        ordered = by_population(buckets)
        for bucket in ordered:
            if not any(resolved.has_conflict(m, bucket.student_ids) for m in members):
                return bucket

        fallback = ordered[0]
        self._warn_if_split(members, fallback, resolved)
        return fallback

    def _warn_if_split(
        self, members: list[str], bucket: ClassBucket, resolved: ResolvedConstraints
    ) -> None:
        clashing = set()
        for member in members:
            clashing.update(resolved.separated_from(member) & set(bucket.student_ids))
        if not clashing:
            return

        message = (
            f"No class keeps together group [{', '.join(members)}] apart from "
            f"{', '.join(sorted(clashing))}; placing in {bucket.name}"
        )
        logger.warning(message)
        warnings.warn(message, InfeasibleConstraintWarning, stacklevel=2)

    @staticmethod
    def _describe(group: StudentGroup) -> str:
        return "[" + ", ".join(group.members) + "]"


def run_placement(
    students: Sequence[Student | dict[str, Any]],
    number_of_classes: int,
    strategy: Strategy | str | None = Strategy.BALANCED,
    constraints: Sequence[Constraint | dict[str, Any]] = (),
    weights: BalanceWeights | Mapping[str, float] | None = None,
    parent_requests: Sequence[ParentRequest | dict[str, Any]] | None = None,
    settings: PlacementSettings | None = None,
) -> PlacementResult:
    """
    Run a full placement.

    Args:
        students: Cohort to place.
        number_of_classes: Number of classes to create (at least 1).
        strategy: Distribution strategy for students outside together groups.
        constraints: Placement constraints.
        weights: Balance weights (gender, academic, behavioral, special_needs).
        parent_requests: Approved parent requests.
        settings: Naming and capacity settings.

    Returns:
        PlacementResult with scored classes and run statistics.
    """
    engine = PlacementEngine(settings)
    return engine.run(students, number_of_classes, strategy, constraints, weights, parent_requests)
