"""Normalization of raw roster values (levels, genders, flags, id lists) and score rounding."""

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import pandas as pd

from .constants import (
    ACADEMIC_LEVEL_NAMES,
    BEHAVIORAL_LEVEL_NAMES,
    DEFAULT_LEVEL,
    MAX_LEVEL,
    MIN_LEVEL,
    Gender,
)

GENDER_ALIASES = {
    "m": Gender.MALE,
    "male": Gender.MALE,
    "boy": Gender.MALE,
    "f": Gender.FEMALE,
    "female": Gender.FEMALE,
    "girl": Gender.FEMALE,
}

TRUE_VALUES = {"true", "yes", "y", "1", "x"}

ID_SEPARATORS = r"[;,|]"


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, set)):
        return False
    return bool(pd.isna(value))


def normalize_gender(value: Any) -> Gender:
    """Normalize a gender value to male/female/other.

    Anything unrecognized (including "nonBinary" or an empty cell) maps to
    ``Gender.OTHER``.
    """
    if _is_missing(value):
        return Gender.OTHER
    if isinstance(value, Gender):
        return value
    return GENDER_ALIASES.get(str(value).strip().lower(), Gender.OTHER)


def _normalize_level(value: Any, names: dict[str, int]) -> int:
    if _is_missing(value) or value == "":
        return DEFAULT_LEVEL

    if isinstance(value, str):
        key = value.strip().lower().replace(" ", "_").replace("-", "_")
        if key in names:
            return names[key]
        try:
            value = float(key)
        except ValueError:
            return DEFAULT_LEVEL

    try:
        level = int(round(float(value)))
    except (TypeError, ValueError):
        return DEFAULT_LEVEL

    if level == 0:
        return DEFAULT_LEVEL
    return max(MIN_LEVEL, min(MAX_LEVEL, level))


def normalize_academic_level(value: Any) -> int:
    """Map an academic level (1-5 or advanced/proficient/...) to 1-5.

    Examples:
        >>> normalize_academic_level("advanced")
        5
        >>> normalize_academic_level(None)
        3
    """
    return _normalize_level(value, ACADEMIC_LEVEL_NAMES)


def normalize_behavioral_level(value: Any) -> int:
    """Map a behavioral level (1-5 or excellent/good/...) to 1-5."""
    return _normalize_level(value, BEHAVIORAL_LEVEL_NAMES)


def parse_bool(value: Any) -> bool:
    """Interpret spreadsheet-style flags ("yes", "1", True, NaN...)."""
    if _is_missing(value):
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in TRUE_VALUES


def normalize_id(value: Any) -> str:
    """Normalize a student/teacher identifier to a stripped string.

    Integral floats produced by pandas (``12.0``) become ``"12"``.
    """
    if _is_missing(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def normalize_id_list(value: Any) -> tuple[str, ...]:
    """Split a list or a delimited string of ids into a tuple of ids.

    Duplicates are dropped, first occurrence order is kept.
    """
    if _is_missing(value):
        return ()

    if isinstance(value, (list, tuple, set)):
        raw = [normalize_id(v) for v in value]
    else:
        raw = [part.strip() for part in re.split(ID_SEPARATORS, str(value))]

    return tuple(dict.fromkeys(r for r in raw if r))


def round_half_up(value: float, digits: int = 0) -> float | int:
    """Round with halves going up (0.125 -> 0.13, 80.5 -> 81).

    Returns an int when ``digits`` is 0.
    """
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if digits == 0 else float(rounded)
