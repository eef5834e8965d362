"""
Synthetic change-record generator for the upsert planner.

Writes a deterministic (seeded) batch of arriving and existing records as JSON
lines, plus the matching schema and planner configuration, so the `plan`
command can be exercised end to end. Arrivals are shuffled, some are stale
relative to the stored record and some repeat the stored values exactly.
"""

from __future__ import annotations

import json
import random
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

import typer

app = typer.Typer(help="Generate synthetic arriving/existing change records as JSON lines.")

SCHEMA: List[Dict[str, Any]] = [
    {"name": "account_id", "type": "string", "nullable": False},
    {"name": "status", "type": "string", "nullable": True},
    {"name": "balance", "type": "double", "nullable": True},
    {"name": "event_ts", "type": "long", "nullable": False},
]

PLANNER_CONFIG: Dict[str, Any] = {
    "key_field_names": ["account_id"],
    "value_field_names": ["status", "balance"],
    "timestamp_field_names": ["event_ts"],
    "last_updated_field_name": "last_updated",
    "surrogate_key_field_name": "account_sk",
    "event_time_model": "longmillis",
    "last_updated_time_model": "longmillis",
}

_STATUSES = ["open", "frozen", "closed", "pending"]
_BASE_TS = 1_700_000_000_000


def _generate_rows(
    keys: int, max_updates: int, existing_ratio: float, seed: int
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    rng = random.Random(seed)
    arriving: List[Dict[str, Any]] = []
    existing: List[Dict[str, Any]] = []

    for i in range(keys):
        account_id = f"acct-{i:06d}"
        stored = None
        if rng.random() < existing_ratio:
            stored = {
                "account_id": account_id,
                "status": rng.choice(_STATUSES),
                "balance": round(rng.uniform(0, 10_000), 2),
                "event_ts": _BASE_TS + rng.randint(0, 100_000),
            }
            existing.append(stored)

        for _ in range(rng.randint(1, max_updates)):
            if stored is not None and rng.random() < 0.2:
                # Idempotent re-delivery of what is already stored
                arriving.append(dict(stored))
                continue
            arriving.append(
                {
                    "account_id": account_id,
                    "status": rng.choice(_STATUSES),
                    "balance": round(rng.uniform(0, 10_000), 2),
                    "event_ts": _BASE_TS + rng.randint(0, 200_000),
                }
            )

    rng.shuffle(arriving)
    return arriving, existing


def _write_jsonl(path: Path, rows: List[Dict[str, Any]]) -> None:
    with path.open("w", encoding="utf-8") as f:
        for row in rows:
            f.write(json.dumps(row))
            f.write("\n")


def _write_batch(out_dir: Path, keys: int, max_updates: int, existing_ratio: float, seed: int) -> Dict[str, Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    arriving, existing = _generate_rows(keys, max_updates, existing_ratio, seed)
    paths = {
        "schema": out_dir / "schema.json",
        "config": out_dir / "config.json",
        "arriving": out_dir / "arriving.jsonl",
        "existing": out_dir / "existing.jsonl",
    }
    paths["schema"].write_text(json.dumps(SCHEMA, indent=2), encoding="utf-8")
    paths["config"].write_text(json.dumps(PLANNER_CONFIG, indent=2), encoding="utf-8")
    _write_jsonl(paths["arriving"], arriving)
    _write_jsonl(paths["existing"], existing)
    return paths


@app.command()
def main(
    out_dir: Path = typer.Option(Path("data"), "--out", "-o", help="Output directory."),
    keys: int = typer.Option(1_000, "--keys", "-k", min=1, help="Distinct keys to generate."),
    max_updates: int = typer.Option(5, "--max-updates", min=1, help="Max arrivals per key."),
    existing_ratio: float = typer.Option(
        0.5, "--existing-ratio", min=0.0, max=1.0, help="Share of keys already stored."
    ),
    seed: int = typer.Option(42, "--seed", help="Random seed for deterministic output."),
) -> None:
    """
    Generate a batch and print the matching `plan` command.
    """
    paths = _write_batch(out_dir, keys, max_updates, existing_ratio, seed)
    typer.echo(
        "upsert-planner plan "
        f"--config {paths['config']} --schema {paths['schema']} "
        f"--arriving {paths['arriving']} --existing {paths['existing']}"
    )


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
