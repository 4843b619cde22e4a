"""Suggestions for improving a finished placement.

For every pair of classes of similar size, the generator looks for one swap
or move that would improve a single imbalance. Rules are tried in a fixed
order (gender, academic, behavioral, special needs) and the first one that
finds eligible students wins for that pair. Students named in any
together/separate constraint are never proposed. Nothing is applied.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from ..constants import (
    DEFAULT_MAX_SUGGESTIONS,
    HIGH_LEVEL_MIN,
    LEVEL_MEAN_THRESHOLD,
    LOW_LEVEL_MAX,
    MAX_CLASS_SIZE_DIFFERENCE,
    SPECIAL_NEEDS_COUNT_THRESHOLD,
    BalanceFactor,
    Gender,
)
from ..models import (
    BalanceScores,
    BalanceWeights,
    ClassBucket,
    Constraint,
    Student,
    SuggestedStudent,
    Suggestion,
    SuggestionType,
)
from .balance import BalanceScorer
from .constraints import ConstraintResolver, ResolvedConstraints

logger = logging.getLogger(__name__)

DEFAULT_RULE_ORDER = (
    BalanceFactor.GENDER,
    BalanceFactor.ACADEMIC_LEVEL,
    BalanceFactor.BEHAVIORAL_LEVEL,
    BalanceFactor.SPECIAL_NEEDS,
)

# BalanceScores attribute per factor
_SCORE_FIELDS = {
    BalanceFactor.GENDER: "gender",
    BalanceFactor.ACADEMIC_LEVEL: "academic",
    BalanceFactor.BEHAVIORAL_LEVEL: "behavioral",
    BalanceFactor.SPECIAL_NEEDS: "special_needs",
}


def _mean(values: Sequence[float]) -> float:
    return sum(values) / (len(values) or 1)


class SuggestionGenerator:
    """Proposes single swaps/moves that improve class balance."""

    def __init__(
        self,
        students: Sequence[Student],
        resolved: ResolvedConstraints,
        weights: BalanceWeights | Mapping[str, float] | None = None,
        max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
    ):
        self.scorer = BalanceScorer(students, weights)
        self.resolved = resolved
        self.max_suggestions = max_suggestions
        self._constrained = resolved.constrained_ids()

        # Factors named by balanced_distribution constraints are tried first
        self.rule_order = tuple(
            dict.fromkeys([*resolved.balanced_factors, *DEFAULT_RULE_ORDER])
        )
        self._rules: dict[BalanceFactor, Callable[..., Suggestion | None]] = {
            BalanceFactor.GENDER: self._gender_swap,
            BalanceFactor.ACADEMIC_LEVEL: self._academic_swap,
            BalanceFactor.BEHAVIORAL_LEVEL: self._behavioral_swap,
            BalanceFactor.SPECIAL_NEEDS: self._special_needs_move,
        }

    def suggest(self, classes: Sequence[ClassBucket]) -> list[Suggestion]:
        """Return up to ``max_suggestions`` suggestions for the given classes."""
        suggestions: list[Suggestion] = []
        if len(classes) < 2:
            return suggestions

        for i, class_a in enumerate(classes):
            for class_b in classes[i + 1:]:
                if len(suggestions) >= self.max_suggestions:
                    return suggestions
                if abs(class_a.size - class_b.size) > MAX_CLASS_SIZE_DIFFERENCE:
                    continue

                students_a = self.scorer.members(class_a.student_ids)
                students_b = self.scorer.members(class_b.student_ids)

                for factor in self.rule_order:
                    suggestion = self._rules[factor](class_a, students_a, class_b, students_b)
                    if suggestion is not None:
                        logger.debug(f"{suggestion.type.value} suggested between {class_a.name} and {class_b.name}")
                        suggestions.append(suggestion)
                        break

        return suggestions

    def _free(self, students: Sequence[Student], predicate: Callable[[Student], bool]) -> Student | None:
        """First unconstrained student matching ``predicate``."""
        for student in students:
            if student.id not in self._constrained and predicate(student):
                return student
        return None

    def _gender_swap(
        self,
        class_a: ClassBucket,
        students_a: list[Student],
        class_b: ClassBucket,
        students_b: list[Student],
    ) -> Suggestion | None:
        def counts(students: list[Student]) -> tuple[int, int]:
            return (
                sum(1 for s in students if s.gender == Gender.MALE),
                sum(1 for s in students if s.gender == Gender.FEMALE),
            )

        males_a, females_a = counts(students_a)
        males_b, females_b = counts(students_b)

        if males_a > females_a and females_b > males_b:
            male_class, male_students, female_class, female_students = (
                class_a, students_a, class_b, students_b,
            )
        elif females_a > males_a and males_b > females_b:
            male_class, male_students, female_class, female_students = (
                class_b, students_b, class_a, students_a,
            )
        else:
            return None

        male = self._free(male_students, lambda s: s.gender == Gender.MALE)
        female = self._free(female_students, lambda s: s.gender == Gender.FEMALE)
        if male is None or female is None:
            return None

        return self._swap(
            BalanceFactor.GENDER,
            male, male_class, female, female_class,
            "This swap would improve gender balance in both classes.",
        )

    def _level_swap(
        self,
        factor: BalanceFactor,
        level: Callable[[Student], int],
        class_a: ClassBucket,
        students_a: list[Student],
        class_b: ClassBucket,
        students_b: list[Student],
    ) -> Suggestion | None:
        """Swap a high-level student from the higher-mean class with a low one."""
        mean_a = _mean([level(s) for s in students_a])
        mean_b = _mean([level(s) for s in students_b])
        if abs(mean_a - mean_b) <= LEVEL_MEAN_THRESHOLD:
            return None

        if mean_a > mean_b:
            higher, higher_students, lower, lower_students = class_a, students_a, class_b, students_b
        else:
            higher, higher_students, lower, lower_students = class_b, students_b, class_a, students_a

        high = self._free(higher_students, lambda s: level(s) >= HIGH_LEVEL_MIN)
        low = self._free(lower_students, lambda s: level(s) <= LOW_LEVEL_MAX)
        if high is None or low is None:
            return None

        label = "academic" if factor == BalanceFactor.ACADEMIC_LEVEL else "behavioral"
        return self._swap(
            factor,
            high, higher, low, lower,
            f"This swap would improve {label} balance between the classes.",
        )

    def _academic_swap(self, class_a, students_a, class_b, students_b) -> Suggestion | None:
        return self._level_swap(
            BalanceFactor.ACADEMIC_LEVEL, lambda s: s.academic_level,
            class_a, students_a, class_b, students_b,
        )

    def _behavioral_swap(self, class_a, students_a, class_b, students_b) -> Suggestion | None:
        return self._level_swap(
            BalanceFactor.BEHAVIORAL_LEVEL, lambda s: s.behavioral_level,
            class_a, students_a, class_b, students_b,
        )

    def _special_needs_move(
        self,
        class_a: ClassBucket,
        students_a: list[Student],
        class_b: ClassBucket,
        students_b: list[Student],
    ) -> Suggestion | None:
        count_a = sum(1 for s in students_a if s.special_needs)
        count_b = sum(1 for s in students_b if s.special_needs)
        if abs(count_a - count_b) < SPECIAL_NEEDS_COUNT_THRESHOLD:
            return None

        if count_a > count_b:
            source, source_students, target = class_a, students_a, class_b
        else:
            source, source_students, target = class_b, students_b, class_a

        student = self._free(source_students, lambda s: s.special_needs)
        if student is None:
            return None

        after_source = [sid for sid in source.student_ids if sid != student.id]
        after_target = [*target.student_ids, student.id]

        return Suggestion(
            type=SuggestionType.MOVE,
            category=BalanceFactor.SPECIAL_NEEDS,
            students=(SuggestedStudent(student.id, student.display_name, source.name),),
            target_class=target.name,
            reason="This move would better distribute students with special needs.",
            impact=self._impact(source, target, after_source, after_target),
        )

    def _swap(
        self,
        factor: BalanceFactor,
        student_a: Student,
        class_a: ClassBucket,
        student_b: Student,
        class_b: ClassBucket,
        reason: str,
    ) -> Suggestion:
        after_a = [student_b.id if sid == student_a.id else sid for sid in class_a.student_ids]
        after_b = [student_a.id if sid == student_b.id else sid for sid in class_b.student_ids]

        return Suggestion(
            type=SuggestionType.SWAP,
            category=factor,
            students=(
                SuggestedStudent(student_a.id, student_a.display_name, class_a.name),
                SuggestedStudent(student_b.id, student_b.display_name, class_b.name),
            ),
            target_class=class_b.name,
            reason=reason,
            impact=self._impact(class_a, class_b, after_a, after_b),
        )

    def _impact(
        self,
        class_a: ClassBucket,
        class_b: ClassBucket,
        after_a: list[str],
        after_b: list[str],
    ) -> dict[str, float]:
        """Change of the pair's mean score per dimension, in percentage points."""
        before = (self.scorer.score_ids(class_a.student_ids), self.scorer.score_ids(class_b.student_ids))
        after = (self.scorer.score_ids(after_a), self.scorer.score_ids(after_b))

        def pair_mean(scores: tuple[BalanceScores, BalanceScores], name: str) -> float:
            return (getattr(scores[0], name) + getattr(scores[1], name)) / 2

        impact = {}
        for name in [*_SCORE_FIELDS.values(), "overall"]:
            impact[name] = round(100 * (pair_mean(after, name) - pair_mean(before, name)), 1)
        return impact


def generate_suggestions(
    classes: Sequence[ClassBucket],
    students: Sequence[Student | dict[str, Any]],
    constraints: Sequence[Constraint | dict[str, Any]] = (),
    weights: BalanceWeights | Mapping[str, float] | None = None,
    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
) -> list[Suggestion]:
    """
    Propose swaps/moves that would improve a placement.

    Args:
        classes: Placed classes.
        students: The cohort the classes were built from.
        constraints: Placement constraints; constrained students are never moved.
        weights: Balance weights used for the impact estimate.
        max_suggestions: Upper bound on the number of suggestions.

    Returns:
        Suggestions, at most ``max_suggestions``.
    """
    roster = [s if isinstance(s, Student) else Student.from_dict(s) for s in students]
    resolved = ConstraintResolver().resolve(constraints)
    generator = SuggestionGenerator(roster, resolved, weights, max_suggestions)
    return generator.suggest(classes)


def summarize(suggestions: Sequence[Suggestion]) -> str:
    """One-line summary of a suggestion list."""
    if not suggestions:
        return (
            "No significant improvements can be suggested at this time. "
            "The classes appear to be well-balanced."
        )
    if len(suggestions) == 1:
        return "One suggested change could improve class balance."
    return f"{len(suggestions)} suggested changes could improve overall class balance."
