"""
Error taxonomy for the upsert planner.

Configuration problems are reported once, before any record is processed.
Input and generation problems are raised per key so a batch driver can isolate
them without affecting other keys.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from upsert_planner.planner_config import ValidationFailure


class UpsertPlannerError(Exception):
    """Base class for all planner errors."""


class ConfigurationError(UpsertPlannerError):
    """
    Raised when planner configuration is invalid.

    Carries every validation failure found, not just the first one.
    """

    def __init__(self, failures: Sequence[ValidationFailure] | str) -> None:
        if isinstance(failures, str):
            self.failures: list[ValidationFailure] = []
            message = failures
        else:
            self.failures = list(failures)
            lines = [f"- {failure}" for failure in self.failures]
            message = f"{len(self.failures)} configuration problem(s):\n" + "\n".join(lines)
        super().__init__(message)


class MalformedInputError(UpsertPlannerError):
    """Raised when a record is missing a field or carries an unusable value."""


class GenerationError(UpsertPlannerError):
    """Raised when a surrogate key value cannot be generated."""


__all__ = [
    "UpsertPlannerError",
    "ConfigurationError",
    "MalformedInputError",
    "GenerationError",
]
