"""
Long-milliseconds time model.

The field holds a signed 64-bit integer of milliseconds since the Unix epoch.
Ordering is integer ordering, and `now()` yields the same raw representation so
generated last-updated values round-trip with input event times.
"""

from __future__ import annotations

import time
from typing import Any

from upsert_planner.domain.records import FieldType
from upsert_planner.errors import MalformedInputError
from upsert_planner.time_models.abstract import AbstractTimeModel

_MIN_LONG = -(2**63)
_MAX_LONG = 2**63 - 1


class LongMillisTimeModel(AbstractTimeModel):
    """
    Epoch-millisecond integers, compared as integers.
    """

    name: str = "longmillis"
    description: str = "Field values are epoch milliseconds (signed 64-bit integers)."
    field_type: FieldType = FieldType.LONG

    def to_comparable(self, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise MalformedInputError(
                f"expected epoch milliseconds as an integer, got {type(value).__name__} ({value!r})"
            )
        if not _MIN_LONG <= value <= _MAX_LONG:
            raise MalformedInputError(f"epoch milliseconds out of 64-bit range: {value}")
        return value

    def now(self) -> int:
        return time.time_ns() // 1_000_000


__all__ = ["LongMillisTimeModel"]
