"""
Event-time upsert planner.

For one key, the planner reduces the arriving records to the one with the
latest event time, compares it with the stored record and emits at most one
INSERT or UPDATE mutation. Late arrivals never overwrite a later stored record,
and re-delivery of unchanged values produces no write, so replaying a batch in
any order converges to the same stored state.

Usage:
    from upsert_planner.planner import EventTimeUpsertPlanner

    planner = EventTimeUpsertPlanner.from_config({
        "key_field_names": ["key"],
        "value_field_names": ["value"],
        "timestamp_field_names": ["timestamp"],
    })
    planned = planner.plan_mutations_for_key(key, arriving, existing)
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

from upsert_planner.domain.mutations import MutationType, append_mutation_type
from upsert_planner.domain.records import FieldSpec, Record
from upsert_planner.errors import ConfigurationError, MalformedInputError
from upsert_planner.planner_config import (
    PlannerConfig,
    ValidationFailure,
    resolve_planner_config,
    validate_planner_config,
)
from upsert_planner.surrogate import (
    SurrogateKeyGenerator,
    UuidSurrogateKeyGenerator,
    append_surrogate_key,
)
from upsert_planner.time_models.abstract import event_time_tuple
from upsert_planner.time_models.registry import (
    DEFAULT_TIME_MODEL_NAME,
    TimeModelRegistry,
    default_registry,
)
from upsert_planner.utils.logging import get_logger

log = get_logger(__name__)


def _compare(left: Tuple[Any, ...], right: Tuple[Any, ...]) -> int:
    """Three-way lexicographic comparison of event-time tuples."""
    try:
        if left < right:
            return -1
        if left > right:
            return 1
    except TypeError as exc:
        raise MalformedInputError(f"Event times are not comparable: {left!r} vs {right!r}") from exc
    return 0


class EventTimeUpsertPlanner:
    """
    Plans INSERT/UPDATE mutations for one key at a time, ordered by event time.

    The planner is stateless between calls once configured; a single instance
    may be shared across threads or pickled into worker processes.

    Parameters
    ----------
    surrogate_key_generator : SurrogateKeyGenerator | None
        Source of surrogate key values for inserts. Defaults to random UUIDs.
    registry : TimeModelRegistry | None
        Registry used to resolve time model names. Defaults to the built-ins.
    default_time_model : str
        Time model used when the configuration omits a selection.
    """

    def __init__(
        self,
        surrogate_key_generator: Optional[SurrogateKeyGenerator] = None,
        registry: Optional[TimeModelRegistry] = None,
        default_time_model: str = DEFAULT_TIME_MODEL_NAME,
    ) -> None:
        self._generator = surrogate_key_generator or UuidSurrogateKeyGenerator()
        self._registry = registry or default_registry()
        self._default_time_model = default_time_model
        self._config: Optional[PlannerConfig] = None

    @classmethod
    def from_config(cls, config: Any, **kwargs: Any) -> "EventTimeUpsertPlanner":
        """
        Build a configured planner, raising `ConfigurationError` on any failure.
        """
        planner = cls(**kwargs)
        planner._config = resolve_planner_config(
            config, planner._registry, planner._default_time_model
        )
        return planner

    @property
    def config(self) -> PlannerConfig:
        if self._config is None:
            raise ConfigurationError("Planner has not been configured")
        return self._config

    @property
    def is_configured(self) -> bool:
        return self._config is not None

    def validate(self, config: Any) -> List[ValidationFailure]:
        """Return every problem with `config` without changing the planner."""
        return validate_planner_config(config, self._registry, self._default_time_model)

    def configure(self, config: Any) -> List[ValidationFailure]:
        """
        Validate and apply `config`.

        Returns the validation failures; the planner is only (re)configured
        when the list is empty.
        """
        failures = self.validate(config)
        if failures:
            log.warning(
                "Planner configuration has %d problem(s); keeping previous state",
                len(failures),
                extra={"failures": [str(failure) for failure in failures]},
            )
            return failures
        self._config = resolve_planner_config(config, self._registry, self._default_time_model)
        return []

    def _check_key(self, key: Record, record: Record, role: str) -> None:
        for name in self.config.key_field_names:
            if not record.has_field(name):
                raise MalformedInputError(f"{role} record is missing key field '{name}'")
            if key.get(name) != record.get(name):
                raise MalformedInputError(
                    f"{role} record has {name}={record.get(name)!r}, expected {key.get(name)!r}"
                )

    def _latest(self, arriving: Sequence[Record]) -> Tuple[Record, Tuple[Any, ...]]:
        """
        Reduce arriving records to the one with the maximal event time.

        Ties keep the first record seen in iteration order.
        """
        config = self.config
        winner = arriving[0]
        winner_time = event_time_tuple(winner, config.timestamp_field_names, config.event_time_model)
        for candidate in arriving[1:]:
            candidate_time = event_time_tuple(
                candidate, config.timestamp_field_names, config.event_time_model
            )
            if _compare(candidate_time, winner_time) > 0:
                winner, winner_time = candidate, candidate_time
        return winner, winner_time

    def _values_differ(self, arriving: Record, existing: Record) -> bool:
        for name in self.config.value_field_names:
            if not existing.has_field(name):
                raise MalformedInputError(f"Existing record is missing value field '{name}'")
            if arriving.get(name) != existing.get(name):
                return True
        return False

    def _build(self, winner: Record, mutation_type: MutationType) -> Record:
        config = self.config
        plan = config.output
        planned = winner.select(plan.field_names)
        if plan.last_updated_field_name is not None:
            model = config.last_updated_time_model
            planned = planned.append(
                FieldSpec(name=plan.last_updated_field_name, type=model.field_type, nullable=False),
                model.now(),
            )
        if mutation_type is MutationType.INSERT and plan.surrogate_key_field_name is not None:
            planned = append_surrogate_key(planned, plan.surrogate_key_field_name, self._generator)
        return append_mutation_type(planned, mutation_type)

    def plan_mutations_for_key(
        self,
        key: Record,
        arriving: Sequence[Record],
        existing: Sequence[Record],
    ) -> List[Record]:
        """
        Plan the writes needed to converge the stored state for one key.

        Parameters
        ----------
        key : Record
            Projection of the records onto the key fields.
        arriving : Sequence[Record]
            Newly arrived records for the key, in delivery order.
        existing : Sequence[Record]
            Currently stored records for the key (zero or one in practice).

        Returns
        -------
        List[Record]
            Empty for "no write needed", otherwise one tagged mutation record.

        Raises
        ------
        ConfigurationError
            If the planner has not been configured.
        MalformedInputError
            If a record lacks a configured field, carries another key, or has an
            event time the configured time model cannot order.
        GenerationError
            If a surrogate key is needed and cannot be generated.
        """
        config = self.config
        if not arriving:
            return []

        for record in arriving:
            self._check_key(key, record, "Arriving")
        for record in existing:
            self._check_key(key, record, "Existing")

        winner, winner_time = self._latest(arriving)
        key_repr = key.as_dict()

        if not existing:
            log.debug("Planned INSERT", extra={"key": key_repr, "arriving": len(arriving)})
            return [self._build(winner, MutationType.INSERT)]

        current = existing[0]
        current_time = event_time_tuple(
            current, config.timestamp_field_names, config.event_time_model
        )
        if _compare(winner_time, current_time) < 0:
            log.debug("Skipped stale arrival", extra={"key": key_repr})
            return []
        if not self._values_differ(winner, current):
            log.debug("Skipped unchanged values", extra={"key": key_repr})
            return []

        log.debug("Planned UPDATE", extra={"key": key_repr, "arriving": len(arriving)})
        return [self._build(winner, MutationType.UPDATE)]


__all__ = ["EventTimeUpsertPlanner"]
