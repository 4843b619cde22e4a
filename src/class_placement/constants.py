"""Constants for class placement."""

from enum import Enum


class Gender(str, Enum):
    """Student gender categories."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Strategy(str, Enum):
    """Placement strategies for distributing unconstrained students."""

    BALANCED = "balanced"
    ACADEMIC_FOCUS = "academic_focus"
    PARENT_REQUESTS_PRIORITY = "parent_requests_priority"
    DEFAULT = "default"


class ConstraintType(str, Enum):
    """Kinds of placement constraint."""

    MUST_BE_TOGETHER = "must_be_together"
    MUST_BE_SEPARATE = "must_be_separate"
    PREFERRED_TEACHER = "preferred_teacher"
    AVOID_TEACHER = "avoid_teacher"
    BALANCED_DISTRIBUTION = "balanced_distribution"
    EQUAL_CLASS_SIZE = "equal_class_size"


class Priority(str, Enum):
    """Constraint priority, strongest first."""

    REQUIRED = "required"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class BalanceFactor(str, Enum):
    """Factors a balanced_distribution constraint can name."""

    GENDER = "gender"
    ACADEMIC_LEVEL = "academic_level"
    BEHAVIORAL_LEVEL = "behavioral_level"
    SPECIAL_NEEDS = "special_needs"


# Lower rank resolves first
PRIORITY_RANK = {
    Priority.REQUIRED: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}

# Older constraint type names still found in stored data
CONSTRAINT_TYPE_ALIASES = {
    "keep_together": ConstraintType.MUST_BE_TOGETHER,
    "keep_separate": ConstraintType.MUST_BE_SEPARATE,
    "prefer_teacher": ConstraintType.PREFERRED_TEACHER,
}

GROUP_CONSTRAINT_TYPES = {ConstraintType.MUST_BE_TOGETHER, ConstraintType.MUST_BE_SEPARATE}
TEACHER_CONSTRAINT_TYPES = {ConstraintType.PREFERRED_TEACHER, ConstraintType.AVOID_TEACHER}

# Ordinal level scale
MIN_LEVEL = 1
MAX_LEVEL = 5
DEFAULT_LEVEL = 3

ACADEMIC_LEVEL_NAMES = {
    "advanced": 5,
    "proficient": 4,
    "developing": 3,
    "needs_support": 2,
    "needssupport": 2,
}

BEHAVIORAL_LEVEL_NAMES = {
    "excellent": 5,
    "good": 4,
    "fair": 3,
    "satisfactory": 3,
    "needs_improvement": 2,
    "needsimprovement": 2,
}

# Maximum plausible standard deviation on the 1-5 scale
LEVEL_SPREAD_NORMALIZER = 4.0

# Default balance weights (gender, academic, behavioral, special needs)
DEFAULT_BALANCE_WEIGHT = 1.0

SCORE_PRECISION = 2

# Suggestion generation
MAX_CLASS_SIZE_DIFFERENCE = 3
LEVEL_MEAN_THRESHOLD = 0.5
SPECIAL_NEEDS_COUNT_THRESHOLD = 2
HIGH_LEVEL_MIN = 4
LOW_LEVEL_MAX = 2
DEFAULT_MAX_SUGGESTIONS = 5

# Teacher compatibility weights (sum to 100)
COMPATIBILITY_WEIGHTS = {
    "class_size": 20,
    "academic": 25,
    "behavioral": 25,
    "special_education": 15,
    "gender": 15,
}

OUT_OF_BOUNDS_PENALTY = 0.2
OFF_PREFERRED_PENALTY = 0.1
OVER_MAXIMUM_PENALTY = 0.02
SPECIAL_ED_EXCESS_PENALTY = 0.2
NEUTRAL_SUBSCORE = 0.5
DEFAULT_GENDER_IMPORTANCE = 3
MAX_GENDER_IMPORTANCE = 5

# Level percentage buckets used by teacher distribution targets
ACADEMIC_CATEGORIES = ["advanced", "proficient", "developing", "needs_support"]
BEHAVIORAL_CATEGORIES = ["excellent", "good", "fair", "needs_improvement"]

# Insight thresholds
GENDER_GAP_PERCENT = 20
LEVEL_CONCENTRATION_RATIO = 0.7
BEHAVIORAL_CHALLENGE_RATIO = 0.4
SPECIAL_NEEDS_PERCENT = 30

DEFAULT_CLASS_NAME_PREFIX = "Class"


def level_category(level: int, categories: list[str]) -> str:
    """Map an ordinal level to its distribution category.

    5 and above map to the first category, 4 to the second, 3 to the third
    and everything lower to the last.
    """
    if level >= 5:
        return categories[0]
    if level == 4:
        return categories[1]
    if level == 3:
        return categories[2]
    return categories[3]
