"""
Name-keyed registry of time model factories.

Configuration selects time models by name; the registry is passed explicitly
into configuration resolution so callers (and tests) can add their own models
without touching module globals.
"""

from __future__ import annotations

from typing import Callable, Dict, List

from upsert_planner.errors import ConfigurationError
from upsert_planner.time_models.abstract import TimeModel
from upsert_planner.time_models.direct import DirectTimeModel
from upsert_planner.time_models.long_millis import LongMillisTimeModel

DEFAULT_TIME_MODEL_NAME = DirectTimeModel.name

TimeModelFactory = Callable[[], TimeModel]


def _builtin_factories() -> Dict[str, TimeModelFactory]:
    """Built-in time models."""
    return {
        DirectTimeModel.name: DirectTimeModel,
        LongMillisTimeModel.name: LongMillisTimeModel,
    }


class TimeModelRegistry:
    """
    Mapping of time model names to zero-argument factories.
    """

    def __init__(self, factories: Dict[str, TimeModelFactory] | None = None) -> None:
        self._factories: Dict[str, TimeModelFactory] = {}
        for name, factory in (factories or {}).items():
            self.register(name, factory)

    def register(self, name: str, factory: TimeModelFactory) -> None:
        if not name or not name.strip():
            raise ValueError("Time model name must be a non-empty string")
        if name in self._factories:
            raise ValueError(f"Time model '{name}' is already registered")
        self._factories[name] = factory

    def names(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def create(self, name: str) -> TimeModel:
        if name not in self._factories:
            raise ConfigurationError(
                f"Unknown time model '{name}'. Available: {', '.join(self.names())}"
            )
        return self._factories[name]()


def default_registry() -> TimeModelRegistry:
    """Return a fresh registry holding the built-in time models."""
    return TimeModelRegistry(_builtin_factories())


def available_time_models() -> List[str]:
    """List built-in time model names."""
    return sorted(_builtin_factories().keys())


__all__ = [
    "DEFAULT_TIME_MODEL_NAME",
    "TimeModelFactory",
    "TimeModelRegistry",
    "available_time_models",
    "default_registry",
]
