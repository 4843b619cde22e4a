"""Validation of placement inputs."""

from collections import Counter
from collections.abc import Sequence
from typing import Any

from .models import BalanceWeights, ClassBucket, Student


def validate_number_of_classes(value: Any) -> tuple[bool, str | None]:
    """Validate the requested number of classes.

    Args:
        value: Requested class count

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(value, bool):
        return False, f"Number of classes must be an integer, got {value!r}"

    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError):
        return False, f"Number of classes must be an integer, got {value!r}"

    if count != value and not (isinstance(value, str) and value.strip() == str(count)):
        return False, f"Number of classes must be a whole number, got {value!r}"

    if count < 1:
        return False, f"Number of classes must be at least 1, got {count}"

    return True, None


def validate_roster(students: Sequence[Student]) -> tuple[bool, str | None]:
    """Validate that every student id in the roster is unique.

    Args:
        students: Roster to check

    Returns:
        Tuple of (is_valid, error_message)
    """
    counts = Counter(s.id for s in students)
    duplicates = sorted(sid for sid, n in counts.items() if n > 1)
    if duplicates:
        return False, f"Duplicate student ids: {', '.join(duplicates)}"
    return True, None


def validate_class_names(classes: Sequence[ClassBucket]) -> tuple[bool, str | None]:
    """Validate that every class name is unique.

    Args:
        classes: Classes to check

    Returns:
        Tuple of (is_valid, error_message)
    """
    counts = Counter(c.name for c in classes)
    duplicates = sorted(name for name, n in counts.items() if n > 1)
    if duplicates:
        return False, f"Duplicate class names: {', '.join(duplicates)}"
    return True, None


def validate_weights(weights: BalanceWeights) -> tuple[bool, str | None]:
    """Validate balance weights (non-negative).

    Args:
        weights: Weights to check

    Returns:
        Tuple of (is_valid, error_message)
    """
    for name, value in weights.to_dict().items():
        if value < 0:
            return False, f"Weight '{name}' must not be negative, got {value}"
    return True, None
