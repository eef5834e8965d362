"""
Time models package for the upsert planner.

This module re-exports the abstract interfaces, the concrete models and the
registry so downstream code can import from `upsert_planner.time_models` directly.
"""

from upsert_planner.time_models.abstract import (
    AbstractTimeModel,
    TimeModel,
    event_time_tuple,
)
from upsert_planner.time_models.direct import DirectTimeModel
from upsert_planner.time_models.long_millis import LongMillisTimeModel
from upsert_planner.time_models.registry import (
    DEFAULT_TIME_MODEL_NAME,
    TimeModelRegistry,
    available_time_models,
    default_registry,
)

__all__ = [
    # Abstracts
    "AbstractTimeModel",
    "TimeModel",
    "event_time_tuple",
    # Concrete models
    "DirectTimeModel",
    "LongMillisTimeModel",
    # Registry
    "DEFAULT_TIME_MODEL_NAME",
    "TimeModelRegistry",
    "available_time_models",
    "default_registry",
]
