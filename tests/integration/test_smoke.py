"""
End-to-end tests for the `upsert-planner` CLI.

These tests generate a synthetic batch with `scripts/generate_data.py`, run the
`plan` command through typer's CliRunner and verify that:
1. Planned records carry the configured output shape
2. Replaying the batch against the converged store plans nothing
3. Configuration and input problems map to the documented exit codes
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest
from typer.testing import CliRunner

from scripts import generate_data
from upsert_planner.domain.mutations import MUTATION_TYPE_FIELD_NAME
from upsert_planner.main import EXIT_BAD_INPUT, EXIT_KEY_FAILURES, app

# Test configuration constants
DEFAULT_KEYS = 40
DEFAULT_MAX_UPDATES = 4
DEFAULT_EXISTING_RATIO = 0.5
DEFAULT_SEED = 123

BUSINESS_FIELDS = ["account_id", "status", "balance", "event_ts"]

runner = CliRunner()


@pytest.fixture(autouse=True)
def _quiet_logs(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.delenv("LOG_JSON", raising=False)
    monkeypatch.delenv("UPSERT_BATCH_PROCESSES", raising=False)
    monkeypatch.delenv("UPSERT_DEFAULT_TIME_MODEL", raising=False)


@pytest.fixture
def batch_paths(tmp_path: Path) -> Dict[str, Path]:
    return generate_data._write_batch(
        tmp_path,
        keys=DEFAULT_KEYS,
        max_updates=DEFAULT_MAX_UPDATES,
        existing_ratio=DEFAULT_EXISTING_RATIO,
        seed=DEFAULT_SEED,
    )


def _plan_args(paths: Dict[str, Path], existing: Path | None = None) -> List[str]:
    return [
        "plan",
        "--config",
        str(paths["config"]),
        "--schema",
        str(paths["schema"]),
        "--arriving",
        str(paths["arriving"]),
        "--existing",
        str(existing or paths["existing"]),
        "--no-summary",
    ]


def _planned(output: str) -> List[Dict[str, Any]]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


def _read_jsonl(path: Path) -> List[Dict[str, Any]]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]


class TestPlanCommand:
    def test_plans_inserts_and_updates(self, batch_paths):
        result = runner.invoke(app, _plan_args(batch_paths))

        assert result.exit_code == 0, result.output
        planned = _planned(result.output)
        assert planned
        stored_keys = {row["account_id"] for row in _read_jsonl(batch_paths["existing"])}

        for record in planned:
            kind = record[MUTATION_TYPE_FIELD_NAME]
            assert isinstance(record["last_updated"], int)
            if kind == "INSERT":
                assert record["account_id"] not in stored_keys
                assert record["account_sk"]
            else:
                assert kind == "UPDATE"
                assert record["account_id"] in stored_keys
                assert "account_sk" not in record

    def test_at_most_one_mutation_per_key(self, batch_paths):
        result = runner.invoke(app, _plan_args(batch_paths))

        keys = [record["account_id"] for record in _planned(result.output)]
        assert len(keys) == len(set(keys))

    def test_replay_against_converged_store_is_noop(self, batch_paths, tmp_path):
        first = runner.invoke(app, _plan_args(batch_paths))
        assert first.exit_code == 0, first.output

        store = {row["account_id"]: row for row in _read_jsonl(batch_paths["existing"])}
        for record in _planned(first.output):
            store[record["account_id"]] = {name: record[name] for name in BUSINESS_FIELDS}
        converged = tmp_path / "converged.jsonl"
        converged.write_text(
            "".join(json.dumps(row) + "\n" for row in store.values()), encoding="utf-8"
        )

        second = runner.invoke(app, _plan_args(batch_paths, existing=converged))

        assert second.exit_code == 0, second.output
        assert _planned(second.output) == []

    def test_invalid_config_reports_every_failure(self, batch_paths, tmp_path):
        bad_config = tmp_path / "bad.json"
        bad_config.write_text(
            json.dumps(
                {
                    "key_field_names": [],
                    "value_field_names": ["status"],
                    "timestamp_field_names": ["event_ts"],
                    "surrogate_key_field_name": "status",
                    "event_time_model": "nanos",
                }
            ),
            encoding="utf-8",
        )
        args = _plan_args(batch_paths)
        args[args.index("--config") + 1] = str(bad_config)

        result = runner.invoke(app, args)

        assert result.exit_code == EXIT_BAD_INPUT
        assert "key_field_names" in result.output
        assert "surrogate_key_field_name" in result.output
        assert "event_time_model" in result.output
        assert _planned(result.output) == []

    def test_malformed_key_fails_only_that_key(self, batch_paths, tmp_path):
        arriving = tmp_path / "arriving-bad.jsonl"
        rows = _read_jsonl(batch_paths["arriving"])
        rows.append({"account_id": "acct-broken", "status": "open", "balance": None, "event_ts": 5})
        arriving.write_text("".join(json.dumps(row) + "\n" for row in rows), encoding="utf-8")
        config_path = tmp_path / "strict.json"
        config = json.loads(batch_paths["config"].read_text(encoding="utf-8"))
        config["timestamp_field_names"] = ["event_ts", "balance"]
        config["event_time_model"] = "direct"
        config_path.write_text(json.dumps(config), encoding="utf-8")
        args = _plan_args(batch_paths)
        args[args.index("--arriving") + 1] = str(arriving)
        args[args.index("--config") + 1] = str(config_path)

        result = runner.invoke(app, args)

        # a null event-time component fails its own key only
        assert result.exit_code == EXIT_KEY_FAILURES
        planned_keys = {record["account_id"] for record in _planned(result.output)}
        assert planned_keys
        assert "acct-broken" not in planned_keys
        assert "acct-broken" in result.output

    def test_unreadable_record_line(self, batch_paths, tmp_path):
        arriving = tmp_path / "arriving-garbage.jsonl"
        arriving.write_text('{"account_id": "a", "event_ts": "soon"}\n', encoding="utf-8")
        args = _plan_args(batch_paths)
        args[args.index("--arriving") + 1] = str(arriving)

        result = runner.invoke(app, args)

        assert result.exit_code == EXIT_BAD_INPUT
        assert "arriving-garbage.jsonl:1" in result.output


def test_time_models_command_lists_builtins():
    result = runner.invoke(app, ["time-models"])

    assert result.exit_code == 0
    assert "direct" in result.output
    assert "longmillis" in result.output


def test_info_command_shows_settings():
    result = runner.invoke(app, ["info"])

    assert result.exit_code == 0
    assert "default_time_model=direct" in result.output
