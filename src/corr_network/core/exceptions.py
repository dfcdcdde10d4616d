"""
Exceptions raised by corr_network.

    CorrNetworkError
    ├── ConfigError
    │   ├── ConfigNotFoundError
    │   └── ConfigValidationError
    ├── DataLoadError
    │   └── InvalidFormatError
    └── AnalysisError
        ├── InvalidConfigurationError    unsupported method name or option
        ├── DimensionMismatchError       returns/weights/names/partitions disagree
        ├── InsufficientDataError        too few observations or assets
        ├── NetworkConstructionError     a filter returned a malformed graph
        └── ComputationError             an algorithm hit an impossible state

Input problems are raised at pipeline entry, before any estimation runs.
"""

from typing import List, Optional, Sequence


class CorrNetworkError(Exception):
    """Base class; ``details`` is shown on a second line when present."""

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        return f"{self.message}\nDetails: {self.details}"


class ConfigError(CorrNetworkError):
    """Configuration file could not be read or used."""


class ConfigNotFoundError(ConfigError):

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Configuration file not found: {path}",
            "Pass an existing YAML file with -c or omit it to use the defaults.",
        )


class ConfigValidationError(ConfigError):
    """One or more configuration values are out of range."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        bullet = "\n  - "
        super().__init__(
            f"{len(self.errors)} invalid configuration value(s)",
            bullet.lstrip("\n") + bullet.join(self.errors),
        )


class DataLoadError(CorrNetworkError):
    """Return or partition file could not be read."""


class InvalidFormatError(DataLoadError):

    def __init__(self, filepath: str, expected_format: str, actual_issue: str):
        self.filepath = filepath
        self.expected_format = expected_format
        self.actual_issue = actual_issue
        super().__init__(
            f"Cannot use {filepath}: {actual_issue}",
            f"Expected: {expected_format}",
        )


class AnalysisError(CorrNetworkError):
    """Estimation, filtering or clustering failed."""


class InvalidConfigurationError(AnalysisError):
    """Unsupported method name or option value."""

    def __init__(self, option: str, value: object, allowed: Optional[Sequence[str]] = None):
        self.option = option
        self.value = value
        self.allowed = [str(a) for a in allowed] if allowed else None
        super().__init__(
            f"Invalid {option}: {value!r}",
            f"Allowed: {', '.join(self.allowed)}" if self.allowed else None,
        )


class DimensionMismatchError(AnalysisError):
    """Two inputs disagree on the number of observations or assets."""

    def __init__(self, name: str, expected: int, actual: int, axis: str = "length"):
        self.name = name
        self.expected = expected
        self.actual = actual
        self.axis = axis
        super().__init__(f"{name}: {axis} {actual} does not match {expected}")


class InsufficientDataError(AnalysisError):

    def __init__(self, required: int, actual: int, analysis_type: str = "analysis"):
        self.required = required
        self.actual = actual
        self.analysis_type = analysis_type
        super().__init__(
            f"Not enough {analysis_type}: need at least {required}, got {actual}"
        )


class NetworkConstructionError(AnalysisError):

    def __init__(self, reason: str, node_count: Optional[int] = None):
        self.reason = reason
        self.node_count = node_count
        super().__init__(
            f"Network filter failed: {reason}",
            f"{node_count} assets" if node_count else None,
        )


class ComputationError(AnalysisError):

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} failed", reason)


def format_exception_chain(exc: BaseException) -> str:
    """One line per exception in the ``__cause__`` chain."""
    lines = [str(exc)]
    cause = exc.__cause__
    while cause is not None:
        lines.append(f"  Caused by: {cause}")
        cause = cause.__cause__
    return "\n".join(lines)
