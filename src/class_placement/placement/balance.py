"""Balance scoring of class rosters.

Every score is in [0, 1], higher is better, rounded to two decimals:

- gender: min(male, female) / max(male, female, 1)
- academic / behavioral: 1 - stddev(levels) / 4, clamped
- special needs: closeness of the class's special-needs count to the
  count expected from the cohort-wide rate
- overall: weighted mean of the four
"""

import math
from collections.abc import Mapping, Sequence

from ..constants import LEVEL_SPREAD_NORMALIZER, SCORE_PRECISION, Gender
from ..models import BalanceScores, BalanceWeights, ClassBucket, Student
from ..normalization import round_half_up


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _round(value: float) -> float:
    return round_half_up(value, SCORE_PRECISION)


def gender_balance(students: Sequence[Student]) -> float:
    """Ratio of the smaller to the larger of the male and female counts."""
    if not students:
        return 0.0
    if len(students) == 1:
        return 1.0

    males = sum(1 for s in students if s.gender == Gender.MALE)
    females = sum(1 for s in students if s.gender == Gender.FEMALE)
    if males == females:
        return 1.0
    return min(males, females) / max(males, females, 1)


def population_stddev(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def level_balance(levels: Sequence[int]) -> float:
    """Spread score for 1-5 levels."""
    return _clamp(1 - population_stddev(levels) / LEVEL_SPREAD_NORMALIZER)


def special_needs_balance(students: Sequence[Student], all_students: Sequence[Student]) -> float:
    """How close the class's special-needs count is to the cohort rate."""
    total = len(all_students) or 1
    total_special = sum(1 for s in all_students if s.special_needs)
    expected = total_special / total * len(students)
    if expected <= 0:
        return 1.0

    actual = sum(1 for s in students if s.special_needs)
    return 1 - min(abs(actual - expected) / expected, 1.0)


def score_bucket(
    bucket_students: Sequence[Student],
    all_students: Sequence[Student],
    weights: BalanceWeights | Mapping[str, float] | None = None,
) -> BalanceScores:
    """
    Compute balance scores for one class.

    Args:
        bucket_students: Students placed in the class.
        all_students: The whole cohort (for the expected special-needs rate).
        weights: Dimension weights; missing ones default to 1.

    Returns:
        BalanceScores rounded to two decimals.
    """
    if not isinstance(weights, BalanceWeights):
        weights = BalanceWeights.from_dict(weights)

    gender = gender_balance(bucket_students)
    academic = level_balance([s.academic_level for s in bucket_students])
    behavioral = level_balance([s.behavioral_level for s in bucket_students])
    special_needs = special_needs_balance(bucket_students, all_students)

    overall = (
        gender * weights.gender
        + academic * weights.academic
        + behavioral * weights.behavioral
        + special_needs * weights.special_needs
    ) / (weights.total or 1)

    return BalanceScores(
        gender=_round(gender),
        academic=_round(academic),
        behavioral=_round(behavioral),
        special_needs=_round(special_needs),
        overall=_round(_clamp(overall)),
    )


class BalanceScorer:
    """Scores classes against a fixed cohort and weight set."""

    def __init__(
        self,
        all_students: Sequence[Student],
        weights: BalanceWeights | Mapping[str, float] | None = None,
    ):
        self.all_students = list(all_students)
        self.weights = weights if isinstance(weights, BalanceWeights) else BalanceWeights.from_dict(weights)
        self._by_id = {s.id: s for s in self.all_students}

    def members(self, student_ids: Sequence[str]) -> list[Student]:
        """Look up students by id, skipping ids outside the cohort."""
        return [self._by_id[sid] for sid in student_ids if sid in self._by_id]

    def score(self, students: Sequence[Student]) -> BalanceScores:
        return score_bucket(students, self.all_students, self.weights)

    def score_ids(self, student_ids: Sequence[str]) -> BalanceScores:
        return self.score(self.members(student_ids))

    def apply(self, buckets: Sequence[ClassBucket]) -> None:
        """Store fresh balance scores on each bucket."""
        for bucket in buckets:
            bucket.balance_scores = self.score_ids(bucket.student_ids)


def aggregate_balance(buckets: Sequence[ClassBucket]) -> float:
    """Mean overall score across classes (0 when there are none)."""
    if not buckets:
        return 0.0
    return _round(sum(b.balance_scores.overall for b in buckets) / len(buckets))
