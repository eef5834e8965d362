"""
Pytest configuration for the upsert planner.

Provides fixtures for:
- The single-key record schema used across planner tests
- A baseline planner configuration
- A deterministic surrogate key generator
"""

from __future__ import annotations

from typing import Any, Callable, Dict

import pytest

from upsert_planner.config import get_settings
from upsert_planner.domain.records import FieldSpec, FieldType, Record, Schema
from upsert_planner.planner import EventTimeUpsertPlanner


class SequenceSurrogateKeyGenerator:
    """Deterministic generator: sk-1, sk-2, ..."""

    def __init__(self) -> None:
        self.calls = 0

    def generate(self) -> str:
        self.calls += 1
        return f"sk-{self.calls}"


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Drop cached settings so monkeypatched env vars are picked up."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def key_schema() -> Schema:
    return Schema.of(FieldSpec(name="key", type=FieldType.STRING, nullable=False))


@pytest.fixture
def record_schema() -> Schema:
    return Schema.of(
        FieldSpec(name="key", type=FieldType.STRING, nullable=False),
        FieldSpec(name="value", type=FieldType.STRING),
        FieldSpec(name="timestamp", type=FieldType.LONG),
    )


@pytest.fixture
def row(record_schema: Schema) -> Callable[..., Record]:
    """Build a record of the standard schema: row("a", "hello", 100)."""

    def _row(key: str, value: Any, timestamp: Any) -> Record:
        return Record.of(record_schema, key, value, timestamp)

    return _row


@pytest.fixture
def key_a(key_schema: Schema) -> Record:
    return Record.of(key_schema, "a")


@pytest.fixture
def config_map() -> Dict[str, Any]:
    return {
        "key_field_names": ["key"],
        "value_field_names": ["value"],
        "timestamp_field_names": ["timestamp"],
    }


@pytest.fixture
def surrogate_generator() -> SequenceSurrogateKeyGenerator:
    return SequenceSurrogateKeyGenerator()


@pytest.fixture
def make_planner(
    surrogate_generator: SequenceSurrogateKeyGenerator,
) -> Callable[[Dict[str, Any]], EventTimeUpsertPlanner]:
    """Configure a planner, failing the test on any validation failure."""

    def _make(config: Dict[str, Any]) -> EventTimeUpsertPlanner:
        planner = EventTimeUpsertPlanner(surrogate_key_generator=surrogate_generator)
        assert planner.validate(config) == []
        assert planner.configure(config) == []
        return planner

    return _make
