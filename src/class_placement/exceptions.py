"""Custom exceptions for class placement."""


class PlacementError(Exception):
    """Base exception for placement errors."""

    pass


class ValidationError(PlacementError):
    """Input failed validation before any placement work began."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        location = f" ({field})" if field else ""
        super().__init__(f"Invalid input{location}: {message}")


class ConflictError(PlacementError):
    """A student pair is required both together and apart."""

    def __init__(self, pairs: list[tuple[str, str]]):
        self.pairs = sorted(pairs)
        formatted = ", ".join(f"{a} & {b}" for a, b in self.pairs)
        super().__init__(
            f"Conflicting constraints: {len(self.pairs)} pair(s) are both "
            f"must_be_together and must_be_separate: {formatted}"
        )


class DataSourceError(PlacementError):
    """Input data could not be read."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        location = f" in '{path}'" if path else ""
        super().__init__(f"Could not load data{location}: {message}")


class InfeasibleConstraintWarning(UserWarning):
    """A separation constraint could not be honored and was overridden."""

    pass
