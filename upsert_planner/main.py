from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, List, Optional

import typer
from pydantic import ValidationError

from upsert_planner.config import get_settings
from upsert_planner.domain.records import FieldSpec, Record, Schema
from upsert_planner.errors import MalformedInputError
from upsert_planner.orchestrator import plan_batch
from upsert_planner.planner import EventTimeUpsertPlanner
from upsert_planner.reporter import print_summary
from upsert_planner.time_models.registry import default_registry
from upsert_planner.utils.logging import configure_logging

app = typer.Typer(help="Event-time upsert planner CLI.")

EXIT_KEY_FAILURES = 1
EXIT_BAD_INPUT = 2


def _fail(message: str) -> None:
    typer.echo(message, err=True)
    raise typer.Exit(code=EXIT_BAD_INPUT)


def _load_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        _fail(f"Cannot read {path}: {exc}")


def _load_schema(path: Path) -> Schema:
    document = _load_json(path)
    if not isinstance(document, list):
        _fail(f"{path}: schema must be a JSON list of field objects")
    try:
        return Schema(columns=tuple(FieldSpec.model_validate(column) for column in document))
    except (ValidationError, MalformedInputError) as exc:
        _fail(f"{path}: invalid schema: {exc}")


def _load_records(path: Path, schema: Schema) -> List[Record]:
    records: List[Record] = []
    try:
        with path.open("r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    document = json.loads(line)
                    if not isinstance(document, dict):
                        raise MalformedInputError("expected a JSON object per line")
                    records.append(Record.from_json(schema, document))
                except (json.JSONDecodeError, MalformedInputError) as exc:
                    _fail(f"{path}:{line_no}: {exc}")
    except OSError as exc:
        _fail(f"Cannot read {path}: {exc}")
    return records


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"env={settings.app_env} | log_level={settings.log_level} json_logs={settings.log_json} | "
        f"default_time_model={settings.default_time_model} "
        f"batch_processes={settings.batch_processes}"
    )


@app.command("time-models")
def time_models() -> None:
    """
    List the time models that configuration may select by name.
    """
    typer.echo("Available time models: " + ", ".join(default_registry().names()))


@app.command()
def plan(
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Planner configuration (JSON object)."
    ),
    schema_path: Path = typer.Option(
        ..., "--schema", "-s", help="Record schema (JSON list of {name, type, nullable})."
    ),
    arriving_path: Path = typer.Option(
        ..., "--arriving", "-a", help="Arriving records, one JSON object per line."
    ),
    existing_path: Optional[Path] = typer.Option(
        None, "--existing", "-e", help="Stored records, one JSON object per line."
    ),
    existing_schema_path: Optional[Path] = typer.Option(
        None,
        "--existing-schema",
        help="Schema of stored records when it differs (e.g. carries a surrogate key).",
    ),
    processes: Optional[int] = typer.Option(
        None, "--processes", "-p", min=1, help="Worker processes (default from settings)."
    ),
    summary: bool = typer.Option(True, "--summary/--no-summary", help="Print a summary table to stderr."),
) -> None:
    """
    Plan INSERT/UPDATE mutations for a batch and write them to stdout as JSON lines.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    planner = EventTimeUpsertPlanner(default_time_model=settings.default_time_model)
    failures = planner.configure(_load_json(config_path))
    if failures:
        typer.echo(f"Invalid planner configuration in {config_path}:", err=True)
        for failure in failures:
            typer.echo(f"  - {failure}", err=True)
        raise typer.Exit(code=EXIT_BAD_INPUT)

    schema = _load_schema(schema_path)
    existing_schema = _load_schema(existing_schema_path) if existing_schema_path else schema
    arriving = _load_records(arriving_path, schema)
    existing = _load_records(existing_path, existing_schema) if existing_path else []

    result = plan_batch(
        planner, arriving, existing, processes=processes or settings.batch_processes
    )
    for mutation in result.mutations:
        typer.echo(json.dumps(mutation.as_json()))

    if summary:
        print_summary(result)
    if not result.ok:
        raise typer.Exit(code=EXIT_KEY_FAILURES)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
