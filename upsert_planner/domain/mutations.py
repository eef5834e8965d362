"""
Mutation kinds and the reserved marker field that carries them.

The downstream sink reads `MUTATION_TYPE_FIELD_NAME` on every planned record to
choose the physical write operation.
"""

from __future__ import annotations

from enum import Enum

from upsert_planner.domain.records import FieldSpec, FieldType, Record

MUTATION_TYPE_FIELD_NAME = "_mutationtype"


class MutationType(str, Enum):
    """Write operation a planned record asks the sink to perform."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"


MUTATION_TYPE_FIELD = FieldSpec(name=MUTATION_TYPE_FIELD_NAME, type=FieldType.STRING, nullable=False)


def append_mutation_type(record: Record, mutation_type: MutationType) -> Record:
    """Return `record` with the mutation marker field appended."""
    return record.append(MUTATION_TYPE_FIELD, mutation_type.value)


def mutation_type_of(record: Record) -> MutationType:
    """Read the mutation kind back from a planned record."""
    return MutationType(record.get(MUTATION_TYPE_FIELD_NAME))


__all__ = [
    "MUTATION_TYPE_FIELD_NAME",
    "MUTATION_TYPE_FIELD",
    "MutationType",
    "append_mutation_type",
    "mutation_type_of",
]
