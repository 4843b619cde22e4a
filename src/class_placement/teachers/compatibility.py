"""Teacher-to-class compatibility scoring.

A compatibility score (0-100) is a weighted sum of five subscores in [0, 1]:

- class size (20%)
- academic level distribution (25%)
- behavioral level distribution (25%)
- special education load (15%)
- gender balance (15%)
"""

from collections.abc import Sequence

from ..constants import (
    ACADEMIC_CATEGORIES,
    BEHAVIORAL_CATEGORIES,
    COMPATIBILITY_WEIGHTS,
    DEFAULT_GENDER_IMPORTANCE,
    MAX_GENDER_IMPORTANCE,
    NEUTRAL_SUBSCORE,
    OFF_PREFERRED_PENALTY,
    OUT_OF_BOUNDS_PENALTY,
    OVER_MAXIMUM_PENALTY,
    SPECIAL_ED_EXCESS_PENALTY,
    Gender,
    level_category,
)
from ..models import (
    CompatibilityScore,
    GenderPreference,
    LevelTarget,
    SpecialEducationCapacity,
    Student,
    TeacherProfile,
)
from ..normalization import round_half_up


def _percentages(labels: Sequence[str], categories: Sequence[str]) -> dict[str, float]:
    counts = dict.fromkeys(categories, 0)
    for label in labels:
        counts[label] += 1
    total = len(labels)
    if total == 0:
        return dict.fromkeys(categories, 0.0)
    return {k: 100.0 * v / total for k, v in counts.items()}


def academic_distribution(students: Sequence[Student]) -> dict[str, float]:
    """Percentage of students per academic category."""
    return _percentages(
        [level_category(s.academic_level, ACADEMIC_CATEGORIES) for s in students],
        ACADEMIC_CATEGORIES,
    )


def behavioral_distribution(students: Sequence[Student]) -> dict[str, float]:
    """Percentage of students per behavioral category."""
    return _percentages(
        [level_category(s.behavioral_level, BEHAVIORAL_CATEGORIES) for s in students],
        BEHAVIORAL_CATEGORIES,
    )


def gender_distribution(students: Sequence[Student]) -> dict[str, float]:
    """Percentage of students per gender."""
    return _percentages([s.gender.value for s in students], [g.value for g in Gender])


def class_size_score(size: int, preferred: int, minimum: int, maximum: int) -> float:
    """Score class size against a teacher's bounds and ideal.

    Outside [minimum, maximum] the score drops 0.2 per student beyond the
    nearest bound; inside it drops 0.1 per student away from the ideal.
    """
    if size < minimum or size > maximum:
        distance = min(abs(size - minimum), abs(size - maximum))
        return max(0.0, 1 - distance * OUT_OF_BOUNDS_PENALTY)

    return max(0.0, 1 - abs(size - preferred) * OFF_PREFERRED_PENALTY)


def distribution_score(actual: dict[str, float], targets: dict[str, LevelTarget]) -> float:
    """Score a level distribution against preferred and maximum percentages."""
    deviations = [
        abs(actual[level] - target.preferred)
        for level, target in targets.items()
        if target.preferred is not None and level in actual
    ]

    penalty = 0.0
    for level, target in targets.items():
        if target.maximum is not None and level in actual and actual[level] > target.maximum:
            penalty += (actual[level] - target.maximum) * OVER_MAXIMUM_PENALTY

    avg_deviation = sum(deviations) / len(deviations) if deviations else 0.0
    return max(0.0, 1 - avg_deviation / 100 - penalty)


def special_education_score(
    students: Sequence[Student], capacity: SpecialEducationCapacity | None
) -> float:
    """Score IEP and 504 counts against the teacher's maximums (neutral if none)."""
    if capacity is None:
        return NEUTRAL_SUBSCORE

    def excess_score(count: int, maximum: int | None) -> float:
        if maximum is None or count <= maximum:
            return 1.0
        return max(0.0, 1 - (count - maximum) * SPECIAL_ED_EXCESS_PENALTY)

    iep_score = excess_score(sum(1 for s in students if s.has_iep), capacity.max_iep)
    plan_score = excess_score(sum(1 for s in students if s.has_504), capacity.max_504)
    return (iep_score + plan_score) / 2


def gender_balance_score(actual: dict[str, float], preference: GenderPreference | None) -> float:
    """Score gender mix against a preferred ratio, scaled by importance (1-5).

    A teacher of importance 1 stays close to 0.5 whatever the mix.
    """
    if preference is None or not preference.preferred_ratio:
        return NEUTRAL_SUBSCORE

    deviations = [
        abs(actual[gender] - ratio)
        for gender, ratio in preference.preferred_ratio.items()
        if gender in actual
    ]
    avg_deviation = sum(deviations) / len(deviations) if deviations else 0.0

    importance = preference.importance or DEFAULT_GENDER_IMPORTANCE
    base = max(0.0, 1 - avg_deviation / 100)
    return NEUTRAL_SUBSCORE + (base - NEUTRAL_SUBSCORE) * importance / MAX_GENDER_IMPORTANCE


def compatibility_score(
    teacher: TeacherProfile, class_name: str, students: Sequence[Student]
) -> CompatibilityScore:
    """
    Score how well a class fits a teacher's preferences.

    Args:
        teacher: Teacher profile.
        class_name: Name of the class being scored.
        students: Students in the class.

    Returns:
        CompatibilityScore with the rounded 0-100 score and its subscores.
    """
    subscores = {
        "class_size": class_size_score(
            len(students),
            teacher.preferred_class_size,
            teacher.minimum_class_size,
            teacher.maximum_class_size,
        ),
        "academic": distribution_score(academic_distribution(students), teacher.academic_targets),
        "behavioral": distribution_score(
            behavioral_distribution(students), teacher.behavioral_targets
        ),
        "special_education": special_education_score(students, teacher.special_education),
        "gender": gender_balance_score(gender_distribution(students), teacher.gender_preference),
    }

    total_weight = sum(COMPATIBILITY_WEIGHTS.values())
    weighted = sum(subscores[k] * w for k, w in COMPATIBILITY_WEIGHTS.items())
    score = round_half_up(weighted / total_weight * 100)

    return CompatibilityScore(
        teacher_id=teacher.id,
        class_name=class_name,
        score=max(0, min(100, score)),
        **subscores,
    )
