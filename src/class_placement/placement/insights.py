"""Rule-based insights about a placement and a constraint fulfillment report."""

from collections.abc import Mapping, Sequence

from ..constants import (
    BEHAVIORAL_CHALLENGE_RATIO,
    GENDER_GAP_PERCENT,
    HIGH_LEVEL_MIN,
    LEVEL_CONCENTRATION_RATIO,
    LOW_LEVEL_MAX,
    SPECIAL_NEEDS_PERCENT,
    ConstraintType,
    Gender,
)
from ..models import (
    ClassBucket,
    ConstraintOutcome,
    ConstraintReport,
    Insight,
    InsightReport,
    ParentRequest,
    Severity,
    Student,
)
from ..normalization import round_half_up
from .balance import aggregate_balance
from .constraints import ResolvedConstraints


def _class_insights(name: str, students: Sequence[Student]) -> list[Insight]:
    insights = []
    total = len(students)

    males = sum(1 for s in students if s.gender == Gender.MALE)
    females = sum(1 for s in students if s.gender == Gender.FEMALE)
    male_pct = 100 * males / total
    female_pct = 100 * females / total
    if abs(male_pct - female_pct) > GENDER_GAP_PERCENT:
        insights.append(Insight(
            "gender",
            f"{name} has a gender imbalance with {round_half_up(male_pct)}% male and "
            f"{round_half_up(female_pct)}% female students.",
            Severity.MEDIUM,
            (name,),
        ))

    high = sum(1 for s in students if s.academic_level >= HIGH_LEVEL_MIN) / total
    low = sum(1 for s in students if s.academic_level <= LOW_LEVEL_MAX) / total
    if high > LEVEL_CONCENTRATION_RATIO:
        insights.append(Insight(
            "academic",
            f"{name} has a high concentration of above-grade-level students.",
            Severity.MEDIUM,
            (name,),
        ))
    elif low > LEVEL_CONCENTRATION_RATIO:
        insights.append(Insight(
            "academic",
            f"{name} has a high concentration of below-grade-level students.",
            Severity.MEDIUM,
            (name,),
        ))

    challenging = sum(1 for s in students if s.behavioral_level <= LOW_LEVEL_MAX) / total
    if challenging > BEHAVIORAL_CHALLENGE_RATIO:
        insights.append(Insight(
            "behavioral",
            f"{name} has a high concentration of students with behavioral challenges.",
            Severity.HIGH,
            (name,),
        ))

    special_pct = 100 * sum(1 for s in students if s.special_needs) / total
    if special_pct > SPECIAL_NEEDS_PERCENT:
        insights.append(Insight(
            "special_needs",
            f"{name} has a high concentration of students with special needs "
            f"({round_half_up(special_pct)}%).",
            Severity.MEDIUM,
            (name,),
        ))

    return insights


def _summary(balance_percent: float) -> str:
    if balance_percent >= 85:
        return "Classes are excellently balanced with optimal distribution of students."
    if balance_percent >= 70:
        return "Classes are generally well-balanced, with some minor opportunities for improvement."
    if balance_percent >= 50:
        return "Classes have moderate balance issues that could be addressed to improve overall distribution."
    return "Classes have significant balance issues that require attention."


def generate_insights(
    classes: Sequence[ClassBucket],
    students: Sequence[Student],
    parent_fulfillment: float | None = None,
) -> InsightReport:
    """
    Describe notable imbalances in a placement.

    Args:
        classes: Scored classes.
        students: Cohort the classes were built from.
        parent_fulfillment: Percentage of parent requests fulfilled, if known.

    Returns:
        InsightReport whose ``balance_score`` is the mean overall balance on
        a 0-100 scale.
    """
    by_id = {s.id: s for s in students}
    insights: list[Insight] = []

    for bucket in classes:
        members = [by_id[sid] for sid in bucket.student_ids if sid in by_id]
        if members:
            insights.extend(_class_insights(bucket.name, members))

    if parent_fulfillment is not None:
        if parent_fulfillment < 50:
            insights.append(Insight(
                "parent_requests",
                f"Only {round_half_up(parent_fulfillment)}% of parent requests have been fulfilled.",
                Severity.MEDIUM,
            ))
        elif parent_fulfillment >= 80:
            insights.append(Insight(
                "parent_requests",
                f"{round_half_up(parent_fulfillment)}% of parent requests have been fulfilled.",
                Severity.INFO,
            ))

    if not insights:
        insights.append(Insight(
            "general", "All classes are well-balanced across all metrics.", Severity.INFO
        ))

    balance = round_half_up(100 * aggregate_balance(classes))
    return InsightReport(balance_score=balance, insights=insights, summary=_summary(balance))


def parent_request_fulfillment(
    classes: Sequence[ClassBucket],
    requests: Sequence[ParentRequest] | Mapping[str, ParentRequest],
) -> float | None:
    """Percentage of preferred-classmate requests satisfied by the placement.

    A request counts as fulfilled when the student shares a class with at
    least one requested classmate. Returns None when no request names a
    classmate.
    """
    if isinstance(requests, Mapping):
        requests = list(requests.values())

    class_of = {sid: bucket.name for bucket in classes for sid in bucket.student_ids}
    relevant = [r for r in requests if r.preferred_classmates and r.student_id in class_of]
    if not relevant:
        return None

    fulfilled = sum(
        1 for r in relevant
        if any(class_of.get(c) == class_of[r.student_id] for c in r.preferred_classmates)
    )
    return 100.0 * fulfilled / len(relevant)


def analyze_constraints(
    classes: Sequence[ClassBucket],
    resolved: ResolvedConstraints,
) -> ConstraintReport:
    """
    Check each together/separate group and teacher preference against a placement.

    Teacher preferences are only judged for classes that already have a
    teacher assigned.
    """
    class_of = {sid: bucket for bucket in classes for sid in bucket.student_ids}
    report = ConstraintReport()

    for group in resolved.together:
        placed = [class_of[m].name for m in group.members if m in class_of]
        names = tuple(dict.fromkeys(placed))
        outcome = ConstraintOutcome(
            ConstraintType.MUST_BE_TOGETHER,
            group.members,
            names,
            f"{', '.join(group.members)} placed together"
            if len(names) <= 1
            else f"{', '.join(group.members)} split across {', '.join(names)}",
        )
        (report.fulfilled if len(names) <= 1 else report.unfulfilled).append(outcome)

    for group in resolved.separate:
        placed = [class_of[m].name for m in group.members if m in class_of]
        names = tuple(dict.fromkeys(placed))
        separated = len(names) == len(placed)
        outcome = ConstraintOutcome(
            ConstraintType.MUST_BE_SEPARATE,
            group.members,
            names,
            f"{', '.join(group.members)} kept in separate classes"
            if separated
            else f"{', '.join(group.members)} share a class",
        )
        (report.fulfilled if separated else report.unfulfilled).append(outcome)

    for student_id, pref in resolved.teacher_prefs.items():
        bucket = class_of.get(student_id)
        if bucket is None or bucket.teacher_id is None:
            continue
        if pref.preferred is not None:
            ok = bucket.teacher_id == pref.preferred
            outcome = ConstraintOutcome(
                ConstraintType.PREFERRED_TEACHER,
                (student_id,),
                (bucket.name,),
                f"{student_id} {'has' if ok else 'does not have'} preferred teacher {pref.preferred}",
            )
            (report.fulfilled if ok else report.unfulfilled).append(outcome)
        if pref.avoided:
            ok = bucket.teacher_id not in pref.avoided
            outcome = ConstraintOutcome(
                ConstraintType.AVOID_TEACHER,
                (student_id,),
                (bucket.name,),
                f"{student_id} {'avoids' if ok else 'is placed with'} teacher "
                f"{bucket.teacher_id if not ok else ', '.join(sorted(pref.avoided))}",
            )
            (report.fulfilled if ok else report.unfulfilled).append(outcome)

    return report
