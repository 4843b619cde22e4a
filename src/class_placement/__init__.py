"""Class Placement - balanced class formation and teacher matching.

This package assigns a cohort of students to a fixed number of classes under
grouping constraints (must / must-not share a class) while balancing gender,
academic level, behavioral level and special-needs concentration. It then
scores teachers against each class and assigns one teacher per class.

Example usage:
    from class_placement import run_placement, generate_suggestions, match_teachers

    result = run_placement(students, number_of_classes=3, strategy="balanced",
                           constraints=constraints)

    for cls in result.classes:
        print(f"{cls.name}: {cls.size} students, balance {cls.balance_scores.overall}")

    suggestions = generate_suggestions(result.classes, students, constraints)
    matched = match_teachers(teachers, result.classes, students)
"""

from .config import PlacementSettings, load_settings
from .constants import BalanceFactor, ConstraintType, Gender, Priority, Strategy
from .exceptions import (
    ConflictError,
    DataSourceError,
    InfeasibleConstraintWarning,
    PlacementError,
    ValidationError,
)
from .models import (
    BalanceScores,
    BalanceWeights,
    Capacity,
    ClassBucket,
    CompatibilityScore,
    Constraint,
    ParentRequest,
    PlacementResult,
    PlacementStatistics,
    SeparationViolation,
    Student,
    Suggestion,
    TeacherMatchResult,
    TeacherProfile,
)
from .placement import (
    ConstraintResolver,
    PlacementEngine,
    generate_insights,
    generate_suggestions,
    run_placement,
    score_bucket,
)
from .sources import DirectoryDataSource, InMemoryDataSource, PlacementDataSource
from .teachers import GreedyMatcher, Matcher, OptimalMatcher, compatibility_score, match_teachers

__version__ = "0.1.0"

__all__ = [
    # Entry points
    "run_placement",
    "generate_suggestions",
    "match_teachers",
    "generate_insights",
    # Components
    "PlacementEngine",
    "ConstraintResolver",
    "score_bucket",
    "compatibility_score",
    "Matcher",
    "GreedyMatcher",
    "OptimalMatcher",
    # Data access and settings
    "PlacementDataSource",
    "InMemoryDataSource",
    "DirectoryDataSource",
    "PlacementSettings",
    "load_settings",
    # Models
    "Student",
    "Constraint",
    "ParentRequest",
    "Capacity",
    "ClassBucket",
    "BalanceScores",
    "BalanceWeights",
    "TeacherProfile",
    "CompatibilityScore",
    "TeacherMatchResult",
    "PlacementResult",
    "PlacementStatistics",
    "SeparationViolation",
    "Suggestion",
    # Enums
    "Strategy",
    "ConstraintType",
    "Priority",
    "Gender",
    "BalanceFactor",
    # Exceptions
    "PlacementError",
    "ValidationError",
    "ConflictError",
    "DataSourceError",
    "InfeasibleConstraintWarning",
]
