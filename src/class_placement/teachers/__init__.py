"""Teacher compatibility scoring and teacher-to-class matching."""

from .compatibility import (
    academic_distribution,
    behavioral_distribution,
    class_size_score,
    compatibility_score,
    distribution_score,
    gender_balance_score,
    gender_distribution,
    special_education_score,
)
from .matching import GreedyMatcher, Matcher, OptimalMatcher, match_teachers, score_pairs

__all__ = [
    "Matcher",
    "GreedyMatcher",
    "OptimalMatcher",
    "match_teachers",
    "score_pairs",
    "compatibility_score",
    "class_size_score",
    "distribution_score",
    "special_education_score",
    "gender_balance_score",
    "academic_distribution",
    "behavioral_distribution",
    "gender_distribution",
]
