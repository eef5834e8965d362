"""
Event-time upsert planner for streaming and batch data-merge pipelines.

Given the newly arrived change records and the currently stored records for one
key, the planner decides which write (INSERT, UPDATE, or none) converges the
store, ordering by event time rather than arrival time:

- Late, stale arrivals never overwrite a later stored record
- Multiple arrivals for a key collapse to the latest one
- Unchanged re-deliveries produce no write
- Optional provenance: last-updated stamps and insert-only surrogate keys

Storage I/O, retries and cross-key atomicity belong to the downstream sink.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "Apache-2.0"

# Public API exports
from upsert_planner.config import Settings, get_settings
from upsert_planner.domain import (
    MUTATION_TYPE_FIELD_NAME,
    FieldSpec,
    FieldType,
    MutationType,
    Record,
    Schema,
)
from upsert_planner.errors import (
    ConfigurationError,
    GenerationError,
    MalformedInputError,
    UpsertPlannerError,
)
from upsert_planner.orchestrator import BatchResult, group_by_key, plan_batch
from upsert_planner.planner import EventTimeUpsertPlanner
from upsert_planner.planner_config import (
    PlannerConfig,
    ValidationFailure,
    resolve_planner_config,
    validate_planner_config,
)
from upsert_planner.surrogate import SurrogateKeyGenerator, UuidSurrogateKeyGenerator
from upsert_planner.time_models import (
    AbstractTimeModel,
    DirectTimeModel,
    LongMillisTimeModel,
    TimeModel,
    TimeModelRegistry,
    available_time_models,
    default_registry,
)
from upsert_planner.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Settings
    "Settings",
    "get_settings",
    # Records & mutations
    "FieldSpec",
    "FieldType",
    "Record",
    "Schema",
    "MUTATION_TYPE_FIELD_NAME",
    "MutationType",
    # Errors
    "UpsertPlannerError",
    "ConfigurationError",
    "MalformedInputError",
    "GenerationError",
    # Planning
    "EventTimeUpsertPlanner",
    "PlannerConfig",
    "ValidationFailure",
    "resolve_planner_config",
    "validate_planner_config",
    "BatchResult",
    "group_by_key",
    "plan_batch",
    # Pluggable collaborators
    "SurrogateKeyGenerator",
    "UuidSurrogateKeyGenerator",
    "AbstractTimeModel",
    "DirectTimeModel",
    "LongMillisTimeModel",
    "TimeModel",
    "TimeModelRegistry",
    "available_time_models",
    "default_registry",
    # Logging
    "configure_logging",
    "get_logger",
]
