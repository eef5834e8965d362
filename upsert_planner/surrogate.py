"""
Surrogate key generation for inserted records.

The generator is injected into the planner so tests can substitute a
deterministic one. Surrogate keys are insert-only provenance: they are never
read from, or carried over from, an existing record.
"""

from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from upsert_planner.domain.records import FieldSpec, FieldType, Record
from upsert_planner.errors import GenerationError


@runtime_checkable
class SurrogateKeyGenerator(Protocol):
    """Produces globally unique, opaque identifier strings."""

    def generate(self) -> str:
        ...


class UuidSurrogateKeyGenerator:
    """Random (version 4) UUIDs rendered as canonical strings."""

    def generate(self) -> str:
        return str(uuid.uuid4())


def append_surrogate_key(
    record: Record,
    field_name: str,
    generator: SurrogateKeyGenerator,
) -> Record:
    """
    Return `record` with a freshly generated surrogate key appended as `field_name`.

    Raises
    ------
    GenerationError
        If the generator fails or returns something other than a non-empty string.
    """
    try:
        value = generator.generate()
    except Exception as exc:  # noqa: BLE001 - any generator failure fails the insert
        raise GenerationError(f"Surrogate key generation failed: {exc}") from exc
    if not isinstance(value, str) or not value:
        raise GenerationError(f"Surrogate key generator returned an unusable value: {value!r}")
    return record.append(FieldSpec(name=field_name, type=FieldType.STRING, nullable=False), value)


__all__ = ["SurrogateKeyGenerator", "UuidSurrogateKeyGenerator", "append_surrogate_key"]
