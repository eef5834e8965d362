"""
Structured record representation for the upsert planner.

A `Schema` is an ordered tuple of named, typed columns. A `Record` binds a tuple
of values to a schema and validates field count, nullability and type
conformance once, at construction. Field access never re-validates.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Tuple

from pydantic import BaseModel, Field, PrivateAttr, model_validator

from upsert_planner.errors import MalformedInputError

_LONG_RANGE = (-(2**63), 2**63 - 1)
_INTEGER_RANGE = (-(2**31), 2**31 - 1)


class FieldType(str, Enum):
    """Logical column types understood by records."""

    STRING = "string"
    LONG = "long"
    INTEGER = "integer"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"


def _in_range(value: int, bounds: Tuple[int, int]) -> bool:
    return bounds[0] <= value <= bounds[1]


def conforms(field_type: FieldType, value: Any) -> bool:
    """Return True if a non-null value is acceptable for the given field type."""
    if field_type is FieldType.STRING:
        return isinstance(value, str)
    if field_type is FieldType.BOOLEAN:
        return isinstance(value, bool)
    if field_type is FieldType.TIMESTAMP:
        return isinstance(value, datetime)
    # bool is an int subclass but never a number here
    if isinstance(value, bool):
        return False
    if field_type is FieldType.LONG:
        return isinstance(value, int) and _in_range(value, _LONG_RANGE)
    if field_type is FieldType.INTEGER:
        return isinstance(value, int) and _in_range(value, _INTEGER_RANGE)
    if field_type is FieldType.DOUBLE:
        return isinstance(value, (int, float))
    return False


class FieldSpec(BaseModel):
    """
    One named, typed column of a schema.
    """

    name: str = Field(..., min_length=1, description="Column name, unique within a schema.")
    data_type: FieldType = Field(..., alias="type", description="Logical column type.")
    nullable: bool = Field(True, description="Whether None is an acceptable value.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }


class Schema(BaseModel):
    """
    Ordered collection of uniquely named columns.
    """

    columns: Tuple[FieldSpec, ...] = Field(default_factory=tuple)

    model_config = {"frozen": True}

    _index: Dict[str, int] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def _unique_names(self) -> "Schema":
        seen: set[str] = set()
        for column in self.columns:
            if column.name in seen:
                raise MalformedInputError(f"Duplicate field name '{column.name}' in schema")
            seen.add(column.name)
        return self

    def model_post_init(self, context: Any) -> None:
        self._index = {column.name: i for i, column in enumerate(self.columns)}

    @classmethod
    def of(cls, *columns: FieldSpec) -> "Schema":
        return cls(columns=columns)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    def __len__(self) -> int:
        return len(self.columns)

    def has_field(self, name: str) -> bool:
        return name in self._index

    def index_of(self, name: str) -> int:
        try:
            return self._index[name]
        except KeyError:
            raise MalformedInputError(
                f"Field '{name}' not found in schema ({', '.join(self.names)})"
            ) from None

    def field(self, name: str) -> FieldSpec:
        return self.columns[self.index_of(name)]

    def select(self, names: Iterable[str]) -> "Schema":
        """Project the schema onto the given field names, in the requested order."""
        return Schema(columns=tuple(self.field(name) for name in names))

    def append(self, column: FieldSpec) -> "Schema":
        if self.has_field(column.name):
            raise MalformedInputError(f"Field '{column.name}' already exists in schema")
        return Schema(columns=self.columns + (column,))


class Record(BaseModel):
    """
    An immutable row bound to a `Schema`.

    Construction raises `MalformedInputError` when the values do not match the
    schema's field count, nullability or types.
    """

    row_schema: Schema
    values: Tuple[Any, ...]

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _conform(self) -> "Record":
        columns = self.row_schema.columns
        if len(self.values) != len(columns):
            raise MalformedInputError(
                f"Record has {len(self.values)} value(s) but schema has {len(columns)} field(s)"
            )
        for column, value in zip(columns, self.values):
            if value is None:
                if not column.nullable:
                    raise MalformedInputError(f"Field '{column.name}' is not nullable")
                continue
            if not conforms(column.data_type, value):
                raise MalformedInputError(
                    f"Field '{column.name}' expects {column.data_type.value}, "
                    f"got {type(value).__name__} ({value!r})"
                )
        return self

    @classmethod
    def of(cls, schema: Schema, *values: Any) -> "Record":
        return cls(row_schema=schema, values=values)

    @classmethod
    def from_mapping(cls, schema: Schema, mapping: Mapping[str, Any]) -> "Record":
        """Build a record from a name -> value mapping; absent names become None."""
        unknown = set(mapping) - set(schema.names)
        if unknown:
            raise MalformedInputError(f"Unknown field(s): {', '.join(sorted(unknown))}")
        return cls(row_schema=schema, values=tuple(mapping.get(name) for name in schema.names))

    @classmethod
    def from_json(cls, schema: Schema, document: Mapping[str, Any]) -> "Record":
        """
        Build a record from a decoded JSON object.

        Timestamp columns accept ISO-8601 strings; double columns accept integers.
        """
        converted: Dict[str, Any] = {}
        for name, raw in document.items():
            if schema.has_field(name) and isinstance(raw, str):
                if schema.field(name).data_type is FieldType.TIMESTAMP:
                    try:
                        raw = datetime.fromisoformat(raw)
                    except ValueError as exc:
                        raise MalformedInputError(
                            f"Field '{name}' is not an ISO-8601 timestamp: {raw!r}"
                        ) from exc
            converted[name] = raw
        return cls.from_mapping(schema, converted)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return self.row_schema.names

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def has_field(self, name: str) -> bool:
        return self.row_schema.has_field(name)

    def get(self, name: str) -> Any:
        return self.values[self.row_schema.index_of(name)]

    def as_dict(self) -> Dict[str, Any]:
        return dict(zip(self.row_schema.names, self.values))

    def as_json(self) -> Dict[str, Any]:
        return {
            name: value.isoformat() if isinstance(value, datetime) else value
            for name, value in self.as_dict().items()
        }

    def select(self, names: Iterable[str]) -> "Record":
        names = tuple(names)
        return Record(
            row_schema=self.row_schema.select(names),
            values=tuple(self.get(name) for name in names),
        )

    def append(self, column: FieldSpec, value: Any) -> "Record":
        return Record(row_schema=self.row_schema.append(column), values=self.values + (value,))


__all__ = ["FieldType", "FieldSpec", "Schema", "Record", "conforms"]
