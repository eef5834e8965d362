from __future__ import annotations

from typing import Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from upsert_planner.orchestrator import FAILED, NOOP, BatchResult

_OUTCOME_STYLES = {
    "INSERT": "green",
    "UPDATE": "cyan",
    NOOP: "dim",
    FAILED: "bold red",
}


def _format_bytes(value: Optional[int]) -> str:
    if not value:
        return "N/A"
    return f"{value / (1024 * 1024):.2f} MB"


def print_summary(result: BatchResult, console: Optional[Console] = None) -> None:
    """
    Render a batch planning summary as rich tables.

    Writes to stderr by default so planned records on stdout stay parseable.
    """
    console = console or Console(stderr=True)

    profile = result.profile
    caption = None
    if profile is not None:
        caption = (
            f"{profile.duration_seconds:.3f}s │ peak RSS {_format_bytes(profile.peak_rss_bytes)}"
            f" │ CPU {profile.cpu_percent or 0.0:.1f}%"
        )

    table = Table(
        title=f"Upsert Plan: {result.keys:,} key(s)",
        box=box.ROUNDED,
        caption=caption,
    )
    table.add_column("Outcome", no_wrap=True)
    table.add_column("Keys", justify="right", style="magenta")
    for outcome, count in result.counts.items():
        style = _OUTCOME_STYLES.get(outcome, "")
        table.add_row(f"[{style}]{outcome}[/{style}]" if style else outcome, f"{count:,}")
    console.print(table)

    if not result.failures:
        return

    failures = Table(title="Failed keys", box=box.ROUNDED)
    failures.add_column("Key", style="cyan")
    failures.add_column("Error", style="red", no_wrap=True)
    failures.add_column("Message")
    for failure in result.failures:
        key = ", ".join(f"{name}={value}" for name, value in failure.key.items())
        failures.add_row(escape(key), failure.error_type, escape(failure.message))
    console.print(failures)


__all__ = ["print_summary"]
