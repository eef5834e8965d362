"""
Configuration resolution for the event-time upsert planner.

A raw configuration mapping is checked in two passes: a pydantic document model
checks shape (required lists, types, unknown keys), then semantic checks look
for field-name collisions and unresolvable time models. Both passes always run
and every problem is collected, so misconfiguration is reported in full before
any record is processed.

Recognized keys:

    key_field_names           list[str], required, non-empty
    value_field_names         list[str], required, non-empty
    timestamp_field_names     list[str], required, non-empty
    last_updated_field_name   str, optional
    surrogate_key_field_name  str, optional
    event_time_model          str or {"type": str}, optional (default "direct")
    last_updated_time_model   str or {"type": str}, optional (default "direct")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from upsert_planner.domain.mutations import MUTATION_TYPE_FIELD_NAME
from upsert_planner.errors import ConfigurationError
from upsert_planner.time_models.abstract import TimeModel
from upsert_planner.time_models.registry import (
    DEFAULT_TIME_MODEL_NAME,
    TimeModelRegistry,
    default_registry,
)
from upsert_planner.utils.logging import get_logger

log = get_logger(__name__)

KEY_FIELD_NAMES = "key_field_names"
VALUE_FIELD_NAMES = "value_field_names"
TIMESTAMP_FIELD_NAMES = "timestamp_field_names"
LAST_UPDATED_FIELD_NAME = "last_updated_field_name"
SURROGATE_KEY_FIELD_NAME = "surrogate_key_field_name"
EVENT_TIME_MODEL = "event_time_model"
LAST_UPDATED_TIME_MODEL = "last_updated_time_model"

_FIELD_LISTS = (KEY_FIELD_NAMES, VALUE_FIELD_NAMES, TIMESTAMP_FIELD_NAMES)
_TIME_MODELS = (EVENT_TIME_MODEL, LAST_UPDATED_TIME_MODEL)


class ValidationFailure(BaseModel):
    """One configuration problem, located by configuration key."""

    field: str
    message: str

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class TimeModelSelection(BaseModel):
    """Named time model selection; extra options are kept but not interpreted."""

    type: str = Field(..., min_length=1)

    model_config = {"frozen": True, "extra": "allow"}


class PlannerConfigDocument(BaseModel):
    """
    Shape of a planner configuration document.
    """

    key_field_names: List[str] = Field(..., min_length=1)
    value_field_names: List[str] = Field(..., min_length=1)
    timestamp_field_names: List[str] = Field(..., min_length=1)
    last_updated_field_name: Optional[str] = None
    surrogate_key_field_name: Optional[str] = None
    event_time_model: Optional[TimeModelSelection] = None
    last_updated_time_model: Optional[TimeModelSelection] = None

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator(*_FIELD_LISTS)
    @classmethod
    def _names_are_usable(cls, names: List[str]) -> List[str]:
        if any(not name.strip() for name in names):
            raise ValueError("field names must be non-blank strings")
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate field name(s): {', '.join(duplicates)}")
        return names

    @field_validator(LAST_UPDATED_FIELD_NAME, SURROGATE_KEY_FIELD_NAME)
    @classmethod
    def _optional_name_is_usable(cls, name: Optional[str]) -> Optional[str]:
        if name is not None and not name.strip():
            raise ValueError("field name must be a non-blank string when given")
        return name

    @field_validator(*_TIME_MODELS, mode="before")
    @classmethod
    def _accept_bare_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"type": value}
        return value


@dataclass(frozen=True)
class OutputPlan:
    """
    Precomputed shape of every planned record.

    `field_names` is the projection applied to the winning arriving record
    (key, then value, then timestamp fields, without repeats). Optional
    provenance fields follow it, then the mutation marker.
    """

    field_names: Tuple[str, ...]
    last_updated_field_name: Optional[str] = None
    surrogate_key_field_name: Optional[str] = None

    @property
    def has_last_updated(self) -> bool:
        return self.last_updated_field_name is not None

    @property
    def has_surrogate_key(self) -> bool:
        return self.surrogate_key_field_name is not None


@dataclass(frozen=True)
class PlannerConfig:
    """Immutable, validated planner configuration."""

    key_field_names: Tuple[str, ...]
    value_field_names: Tuple[str, ...]
    timestamp_field_names: Tuple[str, ...]
    event_time_model: TimeModel
    last_updated_time_model: TimeModel
    output: OutputPlan


def _string_list(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, str)]
    return []


def _optional_string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value.strip() else None


def _selection_name(value: Any, default: str) -> Optional[str]:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping) and isinstance(value.get("type"), str):
        return value["type"]
    return None


def _shape_failures(config: Mapping[str, Any]) -> List[ValidationFailure]:
    try:
        PlannerConfigDocument.model_validate(dict(config))
    except ValidationError as exc:
        return [
            ValidationFailure(
                field=".".join(str(part) for part in error["loc"]) or "<config>",
                message=error["msg"],
            )
            for error in exc.errors()
        ]
    return []


def _semantic_failures(
    config: Mapping[str, Any],
    registry: TimeModelRegistry,
    default_time_model: str,
) -> List[ValidationFailure]:
    failures: List[ValidationFailure] = []
    owners: Dict[str, str] = {}
    for list_key in _FIELD_LISTS:
        for name in _string_list(config.get(list_key)):
            owners.setdefault(name, list_key)
            if name == MUTATION_TYPE_FIELD_NAME:
                failures.append(
                    ValidationFailure(
                        field=list_key,
                        message=f"'{name}' is reserved for the mutation type marker",
                    )
                )

    last_updated = _optional_string(config.get(LAST_UPDATED_FIELD_NAME))
    surrogate = _optional_string(config.get(SURROGATE_KEY_FIELD_NAME))
    for option, name in ((LAST_UPDATED_FIELD_NAME, last_updated), (SURROGATE_KEY_FIELD_NAME, surrogate)):
        if name is None:
            continue
        if name in owners:
            failures.append(
                ValidationFailure(
                    field=option,
                    message=f"'{name}' collides with a field listed in {owners[name]}",
                )
            )
        if name == MUTATION_TYPE_FIELD_NAME:
            failures.append(
                ValidationFailure(
                    field=option,
                    message=f"'{name}' is reserved for the mutation type marker",
                )
            )
    if last_updated is not None and last_updated == surrogate:
        failures.append(
            ValidationFailure(
                field=SURROGATE_KEY_FIELD_NAME,
                message=f"'{surrogate}' is also the last-updated field name",
            )
        )

    for option in _TIME_MODELS:
        name = _selection_name(config.get(option), default_time_model)
        if name is not None and name not in registry:
            failures.append(
                ValidationFailure(
                    field=option,
                    message=f"unknown time model '{name}' (available: {', '.join(registry.names())})",
                )
            )
    return failures


def validate_planner_config(
    config: Any,
    registry: Optional[TimeModelRegistry] = None,
    default_time_model: str = DEFAULT_TIME_MODEL_NAME,
) -> List[ValidationFailure]:
    """
    Validate a raw planner configuration and return every problem found.

    Parameters
    ----------
    config : Mapping[str, Any]
        Raw configuration document.
    registry : TimeModelRegistry | None
        Registry used to resolve time model names. Defaults to the built-ins.
    default_time_model : str
        Time model used when a selection is omitted.

    Returns
    -------
    List[ValidationFailure]
        Empty when the configuration is usable. Never raises for bad input.
    """
    if not isinstance(config, Mapping):
        return [ValidationFailure(field="<config>", message="configuration must be a mapping")]
    registry = registry or default_registry()
    return _shape_failures(config) + _semantic_failures(config, registry, default_time_model)


def resolve_planner_config(
    config: Any,
    registry: Optional[TimeModelRegistry] = None,
    default_time_model: str = DEFAULT_TIME_MODEL_NAME,
) -> PlannerConfig:
    """
    Validate and resolve a raw configuration into an immutable `PlannerConfig`.

    Raises
    ------
    ConfigurationError
        Carrying every validation failure, if any were found.
    """
    registry = registry or default_registry()
    failures = validate_planner_config(config, registry, default_time_model)
    if failures:
        log.error(
            "Planner configuration rejected",
            extra={"failures": [str(failure) for failure in failures]},
        )
        raise ConfigurationError(failures)

    document = PlannerConfigDocument.model_validate(dict(config))
    event_model_name = (
        document.event_time_model.type if document.event_time_model else default_time_model
    )
    last_updated_model_name = (
        document.last_updated_time_model.type
        if document.last_updated_time_model
        else default_time_model
    )

    projected = tuple(
        dict.fromkeys(
            document.key_field_names + document.value_field_names + document.timestamp_field_names
        )
    )
    resolved = PlannerConfig(
        key_field_names=tuple(document.key_field_names),
        value_field_names=tuple(document.value_field_names),
        timestamp_field_names=tuple(document.timestamp_field_names),
        event_time_model=registry.create(event_model_name),
        last_updated_time_model=registry.create(last_updated_model_name),
        output=OutputPlan(
            field_names=projected,
            last_updated_field_name=document.last_updated_field_name,
            surrogate_key_field_name=document.surrogate_key_field_name,
        ),
    )
    log.debug(
        "Planner configuration resolved",
        extra={
            "key_fields": list(resolved.key_field_names),
            "event_time_model": event_model_name,
            "last_updated_time_model": last_updated_model_name,
        },
    )
    return resolved


__all__ = [
    "KEY_FIELD_NAMES",
    "VALUE_FIELD_NAMES",
    "TIMESTAMP_FIELD_NAMES",
    "LAST_UPDATED_FIELD_NAME",
    "SURROGATE_KEY_FIELD_NAME",
    "EVENT_TIME_MODEL",
    "LAST_UPDATED_TIME_MODEL",
    "ValidationFailure",
    "PlannerConfigDocument",
    "OutputPlan",
    "PlannerConfig",
    "validate_planner_config",
    "resolve_planner_config",
]
