"""
Batch driver for the upsert planner.

Groups a batch of arriving and existing records by key, invokes the planner
once per key and collects the planned mutations. The key is the isolation
boundary: malformed input or a surrogate key failure fails only that key's
decision, while the rest of the batch still plans.

Usage:
    from upsert_planner.orchestrator import plan_batch

    result = plan_batch(planner, arriving_records, existing_records)
    for record in result.mutations:
        sink.apply(record)
"""

from __future__ import annotations

import multiprocessing as mp
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from upsert_planner.domain.mutations import mutation_type_of
from upsert_planner.domain.records import Record
from upsert_planner.errors import GenerationError, MalformedInputError
from upsert_planner.planner import EventTimeUpsertPlanner
from upsert_planner.utils.logging import get_logger
from upsert_planner.utils.profiler import ProfileStats, profile_block

log = get_logger(__name__)

NOOP = "NOOP"
FAILED = "FAILED"

KeyValues = Tuple[Any, ...]


@dataclass(frozen=True)
class KeyWork:
    key: Record
    arriving: Tuple[Record, ...]
    existing: Tuple[Record, ...]


@dataclass(frozen=True)
class KeyOutcome:
    key: Record
    mutations: Tuple[Record, ...] = ()
    error: Optional[Exception] = None


@dataclass(frozen=True)
class KeyFailure:
    """A key whose decision failed, with the reason."""

    key: Dict[str, Any]
    error_type: str
    message: str


@dataclass
class BatchResult:
    """
    Outcome of planning one batch.

    `counts` always carries INSERT, UPDATE, NOOP and FAILED entries.
    """

    mutations: List[Record] = field(default_factory=list)
    failures: List[KeyFailure] = field(default_factory=list)
    counts: Dict[str, int] = field(
        default_factory=lambda: {"INSERT": 0, "UPDATE": 0, NOOP: 0, FAILED: 0}
    )
    keys: int = 0
    profile: Optional[ProfileStats] = None

    @property
    def ok(self) -> bool:
        return not self.failures


def group_by_key(
    records: Iterable[Record], key_field_names: Sequence[str]
) -> Dict[KeyValues, List[Record]]:
    """
    Partition records by their key values.

    Keys keep first-seen order and records keep their order within a key.

    Raises
    ------
    MalformedInputError
        If a record lacks a key field and so cannot be assigned to any key.
    """
    groups: Dict[KeyValues, List[Record]] = {}
    for record in records:
        key = tuple(record.get(name) for name in key_field_names)
        groups.setdefault(key, []).append(record)
    return groups


def _plan_key(planner: EventTimeUpsertPlanner, work: KeyWork) -> KeyOutcome:
    """Worker function: plan one key, capturing per-key failures."""
    try:
        planned = planner.plan_mutations_for_key(work.key, work.arriving, work.existing)
    except (MalformedInputError, GenerationError) as exc:
        return KeyOutcome(key=work.key, error=exc)
    return KeyOutcome(key=work.key, mutations=tuple(planned))


def _run(
    planner: EventTimeUpsertPlanner, work: Sequence[KeyWork], processes: Optional[int]
) -> List[KeyOutcome]:
    worker = partial(_plan_key, planner)
    if not processes or processes <= 1 or len(work) <= 1:
        return [worker(item) for item in work]
    # Local spawn context; never touch the global start method.
    context = mp.get_context("spawn")
    with context.Pool(processes=processes) as pool:
        return pool.map(worker, work)


def plan_batch(
    planner: EventTimeUpsertPlanner,
    arriving: Iterable[Record],
    existing: Iterable[Record] = (),
    processes: Optional[int] = None,
) -> BatchResult:
    """
    Plan mutations for every key of a batch.

    Parameters
    ----------
    planner : EventTimeUpsertPlanner
        A configured planner.
    arriving : Iterable[Record]
        Newly arrived records, any number of keys, in delivery order.
    existing : Iterable[Record]
        Currently stored records for (at least) the arriving keys.
    processes : int | None
        Fan keys out over this many worker processes when greater than 1.

    Returns
    -------
    BatchResult
        Planned mutations in first-seen key order, per-key failures and counts.

    Raises
    ------
    ConfigurationError
        If the planner is not configured; no key is planned.
    """
    config = planner.config
    arriving_groups = group_by_key(arriving, config.key_field_names)
    existing_groups = group_by_key(existing, config.key_field_names)

    work = [
        KeyWork(
            key=records[0].select(config.key_field_names),
            arriving=tuple(records),
            existing=tuple(existing_groups.get(key_values, ())),
        )
        for key_values, records in arriving_groups.items()
    ]

    log.info(
        f"[BATCH START] {len(work)} key(s)",
        extra={"keys": len(work), "processes": processes or 1},
    )
    result = BatchResult(keys=len(work))
    with profile_block("plan_batch") as stats:
        outcomes = _run(planner, work, processes)
    result.profile = stats

    for outcome in outcomes:
        if outcome.error is not None:
            result.counts[FAILED] += 1
            failure = KeyFailure(
                key=outcome.key.as_dict(),
                error_type=type(outcome.error).__name__,
                message=str(outcome.error),
            )
            result.failures.append(failure)
            log.warning(
                f"[KEY FAILED] {failure.key} {failure.error_type}: {failure.message}",
                extra={"key": failure.key, "error_type": failure.error_type},
            )
            continue
        if not outcome.mutations:
            result.counts[NOOP] += 1
        for mutation in outcome.mutations:
            result.counts[mutation_type_of(mutation).value] += 1
            result.mutations.append(mutation)

    log.info(
        f"[BATCH COMPLETE] {len(result.mutations)} mutation(s), {len(result.failures)} failure(s)",
        extra={"counts": dict(result.counts), "duration_seconds": round(stats.duration_seconds, 3)},
    )
    return result


__all__ = [
    "NOOP",
    "FAILED",
    "KeyFailure",
    "BatchResult",
    "group_by_key",
    "plan_batch",
]
