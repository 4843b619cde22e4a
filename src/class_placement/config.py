"""Run settings for class placement."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .constants import DEFAULT_CLASS_NAME_PREFIX, DEFAULT_MAX_SUGGESTIONS, Strategy
from .exceptions import DataSourceError, ValidationError
from .models import BalanceWeights, Capacity


@dataclass
class PlacementSettings:
    """Settings for one placement run.

    Attributes:
        number_of_classes: How many classes to create.
        strategy: Distribution strategy for unconstrained students.
        weights: Balance dimension weights.
        grade: Grade being placed. Used for class names and roster filtering.
        class_name_prefix: Prefix for generated class names.
        class_capacity: Size bounds applied to every class. When no maximum
            is set, classes are unbounded.
        max_suggestions: Upper bound on generated suggestions.
    """

    number_of_classes: int = 1
    strategy: Strategy = Strategy.BALANCED
    weights: BalanceWeights = field(default_factory=BalanceWeights)
    grade: int | None = None
    class_name_prefix: str = DEFAULT_CLASS_NAME_PREFIX
    class_capacity: Capacity = field(default_factory=Capacity)
    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS

    def class_name(self, index: int) -> str:
        """Name of the class at ``index`` (0-based)."""
        name = f"{self.class_name_prefix} {index + 1}"
        if self.grade is not None:
            return f"Grade {self.grade} - {name}"
        return name

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlacementSettings":
        """Create settings from a dictionary, keeping defaults for missing keys."""
        capacity = data.get("class_capacity") or {}
        strategy = data.get("strategy", Strategy.BALANCED.value)
        try:
            strategy = Strategy(strategy)
        except ValueError:
            raise ValidationError(f"unknown strategy '{strategy}'", field="strategy") from None

        grade = data.get("grade")
        return cls(
            number_of_classes=int(data.get("number_of_classes", data.get("numberOfClasses", 1))),
            strategy=strategy,
            weights=BalanceWeights.from_dict(data.get("weights")),
            grade=int(grade) if grade is not None else None,
            class_name_prefix=data.get("class_name_prefix", DEFAULT_CLASS_NAME_PREFIX),
            class_capacity=Capacity(
                minimum=int(capacity.get("min", 0)),
                maximum=capacity.get("max"),
                optimal=capacity.get("optimal"),
            ),
            max_suggestions=int(data.get("max_suggestions", DEFAULT_MAX_SUGGESTIONS)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "number_of_classes": self.number_of_classes,
            "strategy": self.strategy.value,
            "weights": self.weights.to_dict(),
            "grade": self.grade,
            "class_name_prefix": self.class_name_prefix,
            "class_capacity": self.class_capacity.to_dict(),
            "max_suggestions": self.max_suggestions,
        }


def load_settings(path: Path | None) -> PlacementSettings:
    """Load settings from a JSON file; defaults when the file is absent."""
    if path is None or not path.exists():
        return PlacementSettings()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise DataSourceError(str(e), path=str(path)) from e

    return PlacementSettings.from_dict(data)
