"""Student placement: constraint resolution, strategies, scoring and suggestions."""

from .balance import BalanceScorer, aggregate_balance, score_bucket
from .constraints import (
    ConstraintResolver,
    ResolvedConstraints,
    StudentGroup,
    TeacherPreference,
    resolve_constraints,
)
from .engine import PlacementEngine, find_violations, run_placement
from .insights import analyze_constraints, generate_insights, parent_request_fulfillment
from .strategies import STRATEGIES, PlacementStrategy, get_strategy
from .suggestions import SuggestionGenerator, generate_suggestions, summarize

__all__ = [
    # Engine
    "PlacementEngine",
    "run_placement",
    "find_violations",
    # Constraints
    "ConstraintResolver",
    "ResolvedConstraints",
    "StudentGroup",
    "TeacherPreference",
    "resolve_constraints",
    # Scoring
    "BalanceScorer",
    "aggregate_balance",
    "score_bucket",
    # Strategies
    "PlacementStrategy",
    "STRATEGIES",
    "get_strategy",
    # Suggestions and insights
    "SuggestionGenerator",
    "generate_suggestions",
    "summarize",
    "generate_insights",
    "analyze_constraints",
    "parent_request_fulfillment",
]
