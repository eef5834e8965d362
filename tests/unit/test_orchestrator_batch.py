from __future__ import annotations

import pickle

import pytest

from upsert_planner.domain.mutations import mutation_type_of
from upsert_planner.domain.records import FieldSpec, FieldType, Record, Schema
from upsert_planner.errors import ConfigurationError, MalformedInputError
from upsert_planner.orchestrator import FAILED, NOOP, group_by_key, plan_batch
from upsert_planner.planner import EventTimeUpsertPlanner

EXPECTED_KEYS = 4
EXPECTED_PROCESSES = 3


@pytest.fixture
def planner(make_planner, config_map) -> EventTimeUpsertPlanner:
    return make_planner(config_map)


@pytest.fixture
def batch(row):
    arriving = [
        row("new", "hello", 100),
        row("upd", "v1", 10),
        row("same", "kept", 100),
        row("upd", "v2", 30),
        row("stale", "old", 5),
        row("upd", "v0", 20),
    ]
    existing = [
        row("upd", "v0", 1),
        row("same", "kept", 50),
        row("stale", "newer", 10),
        row("orphan", "untouched", 1),
    ]
    return arriving, existing


def test_group_by_key_keeps_first_seen_order(row):
    records = [row("b", "1", 1), row("a", "2", 2), row("b", "3", 3)]

    groups = group_by_key(records, ["key"])

    assert list(groups) == [("b",), ("a",)]
    assert [r.get("value") for r in groups[("b",)]] == ["1", "3"]


def test_group_by_key_rejects_records_without_key(row):
    schema = Schema.of(FieldSpec(name="value", type=FieldType.STRING))

    with pytest.raises(MalformedInputError):
        group_by_key([Record.of(schema, "x")], ["key"])


def test_plan_batch_plans_each_key(planner, batch):
    arriving, existing = batch

    result = plan_batch(planner, arriving, existing)

    assert result.keys == EXPECTED_KEYS
    assert result.ok
    assert result.counts == {"INSERT": 1, "UPDATE": 1, NOOP: 2, FAILED: 0}
    planned = {m.get("key"): (mutation_type_of(m).value, m.get("value")) for m in result.mutations}
    assert planned == {"new": ("INSERT", "hello"), "upd": ("UPDATE", "v2")}
    assert result.profile is not None
    assert result.profile.duration_seconds >= 0


def test_plan_batch_isolates_malformed_keys(planner, batch, record_schema):
    arriving, existing = batch
    arriving = arriving + [Record.of(record_schema, "broken", "x", None)]

    result = plan_batch(planner, arriving, existing)

    assert not result.ok
    assert result.counts[FAILED] == 1
    assert result.counts["INSERT"] == 1
    assert result.counts["UPDATE"] == 1
    assert result.failures[0].key == {"key": "broken"}
    assert result.failures[0].error_type == "MalformedInputError"


def test_plan_batch_isolates_generation_failures(config_map, row):
    class _FlakyGenerator:
        def __init__(self) -> None:
            self.calls = 0

        def generate(self) -> str:
            self.calls += 1
            if self.calls == 1:
                raise RuntimeError("boom")
            return f"sk-{self.calls}"

    config_map["surrogate_key_field_name"] = "sk"
    planner = EventTimeUpsertPlanner(surrogate_key_generator=_FlakyGenerator())
    assert planner.configure(config_map) == []

    result = plan_batch(planner, [row("a", "x", 1), row("b", "y", 1)])

    assert [f.error_type for f in result.failures] == ["GenerationError"]
    assert [m.get("key") for m in result.mutations] == ["b"]
    assert result.mutations[0].get("sk") == "sk-2"


def test_plan_batch_fails_fast_when_unconfigured(row):
    with pytest.raises(ConfigurationError):
        plan_batch(EventTimeUpsertPlanner(), [row("a", "x", 1)])


class _FakePool:
    def __init__(self) -> None:
        self.map_calls = 0

    def map(self, worker, work_items):
        self.map_calls += 1
        return [worker(item) for item in work_items]

    def __enter__(self) -> _FakePool:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        del exc_type, exc, tb
        return False


class _FakeContext:
    def __init__(self) -> None:
        self.pool_processes: list[int | None] = []
        self.pools: list[_FakePool] = []

    def Pool(self, processes: int | None = None) -> _FakePool:  # noqa: N802
        self.pool_processes.append(processes)
        pool = _FakePool()
        self.pools.append(pool)
        return pool


def test_plan_batch_fans_out_on_local_spawn_context(monkeypatch, planner, batch):
    contexts: list[_FakeContext] = []

    def fake_get_context(method: str) -> _FakeContext:
        assert method == "spawn"
        context = _FakeContext()
        contexts.append(context)
        return context

    monkeypatch.setattr("upsert_planner.orchestrator.mp.get_context", fake_get_context)
    arriving, existing = batch

    sequential = plan_batch(planner, arriving, existing)
    fanned_out = plan_batch(planner, arriving, existing, processes=EXPECTED_PROCESSES)

    assert len(contexts) == 1
    assert contexts[0].pool_processes == [EXPECTED_PROCESSES]
    assert contexts[0].pools[0].map_calls == 1
    assert fanned_out.counts == sequential.counts
    assert [m.as_dict() for m in fanned_out.mutations] == [m.as_dict() for m in sequential.mutations]


def test_planner_survives_pickling(config_map, row, key_a):
    planner = EventTimeUpsertPlanner.from_config(config_map)

    clone = pickle.loads(pickle.dumps(planner))

    planned = clone.plan_mutations_for_key(key_a, [row("a", "hello", 100)], [])
    assert mutation_type_of(planned[0]).value == "INSERT"
