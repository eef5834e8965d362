"""
Domain package for the upsert planner.

Exports the record representation and mutation tagging used by the planner,
the batch driver and the CLI. Keep this package focused on data definitions
and validation concerns.
"""

from upsert_planner.domain.mutations import (
    MUTATION_TYPE_FIELD_NAME,
    MutationType,
    append_mutation_type,
    mutation_type_of,
)
from upsert_planner.domain.records import FieldSpec, FieldType, Record, Schema

__all__ = [
    "FieldSpec",
    "FieldType",
    "Record",
    "Schema",
    "MUTATION_TYPE_FIELD_NAME",
    "MutationType",
    "append_mutation_type",
    "mutation_type_of",
]
