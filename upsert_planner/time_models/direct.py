"""
Direct (pass-through) time model.

The field is already of a directly comparable type (number, datetime), so
values are used as-is. This is the default for both event time and last-updated.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from upsert_planner.domain.records import FieldType
from upsert_planner.errors import MalformedInputError
from upsert_planner.time_models.abstract import AbstractTimeModel


class DirectTimeModel(AbstractTimeModel):
    """
    Identity conversion; `now()` returns a timezone-aware UTC datetime.

    Mixing naive and aware datetimes across records is not comparable and is
    reported as malformed input by the planner.
    """

    name: str = "direct"
    description: str = "Field values are compared as-is; last-updated is a UTC datetime."
    field_type: FieldType = FieldType.TIMESTAMP

    def to_comparable(self, value: Any) -> Any:
        if value is None:
            raise MalformedInputError("null event time cannot be ordered")
        return value

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


__all__ = ["DirectTimeModel"]
