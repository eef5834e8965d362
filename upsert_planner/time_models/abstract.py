"""
Abstract time model interfaces for the upsert planner.

A time model turns a raw timestamp-bearing field value into something totally
ordered, and produces a "current time" value for the last-updated field in the
same raw representation it reads. Concrete models (direct, longmillis) should
implement the TimeModel protocol, usually by subclassing AbstractTimeModel.
"""

from __future__ import annotations

import abc
from typing import Any, Protocol, Sequence, Tuple, runtime_checkable

from upsert_planner.domain.records import FieldType, Record
from upsert_planner.errors import MalformedInputError


@runtime_checkable
class TimeModel(Protocol):
    """
    Common interface all time models must implement.

    Attributes
    ----------
    name : str
        Registry name used to select the model from configuration.
    description : str
        A human-friendly summary of the representation.
    field_type : FieldType
        Column type of the values returned by `now()`.
    """

    name: str
    description: str
    field_type: FieldType

    def to_comparable(self, value: Any) -> Any:
        """
        Convert a raw field value into an orderable value.

        Raises
        ------
        MalformedInputError
            If the value cannot be interpreted by this model.
        """
        ...

    def now(self) -> Any:
        """Return the current wall-clock time in this model's raw representation."""
        ...


class AbstractTimeModel(abc.ABC):
    """
    Optional ABC helper for class-based implementations.

    Subclasses set `name`, `description` and `field_type` and implement
    `to_comparable` and `now`. Instances must stay stateless and picklable.
    """

    name: str
    description: str
    field_type: FieldType

    @abc.abstractmethod
    def to_comparable(self, value: Any) -> Any:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def now(self) -> Any:  # pragma: no cover - interface only
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def event_time_tuple(record: Record, field_names: Sequence[str], model: TimeModel) -> Tuple[Any, ...]:
    """
    Build the comparable event-time tuple of a record, in configured field order.
    """
    comparable = []
    for name in field_names:
        if not record.has_field(name):
            raise MalformedInputError(f"Record is missing timestamp field '{name}'")
        try:
            comparable.append(model.to_comparable(record.get(name)))
        except MalformedInputError as exc:
            raise MalformedInputError(f"Timestamp field '{name}': {exc}") from exc
    return tuple(comparable)


__all__ = ["TimeModel", "AbstractTimeModel", "event_time_tuple"]
