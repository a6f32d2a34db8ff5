"""
Provider configuration loader.

Reads polling targets from the host configuration tree:

    [catalog.providers.knativeEventType.dev]
    baseUrl = "http://eventmesh-backend.knative.svc:8080"

    [catalog.providers.knativeEventType.dev.schedule]
    frequency = { minutes = 5 }
    timeout = { minutes = 1 }
    initialDelay = { seconds = 15 }

Each key under ``catalog.providers.<section>`` becomes one ProviderConfig.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, List, Optional

from apscheduler.triggers.cron import CronTrigger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import ConfigurationError

_DURATION_UNITS = frozenset({"weeks", "days", "hours", "minutes", "seconds", "milliseconds"})

_ISO_DURATION = re.compile(
    r"^P(?:(?P<weeks>\d+)W)?(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$"
)


def _timedelta(**parts: float) -> timedelta:
    try:
        return timedelta(**parts)
    except OverflowError as e:
        raise ValueError(f"Duration out of range: {parts}") from e


def parse_duration(value: Any) -> timedelta:
    """Normalize a configured duration to a timedelta.

    Accepts a timedelta, a number of seconds, an ISO-8601 duration string
    (``PT5M``) or a mapping of units (``{"minutes": 5, "seconds": 30}``).
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return _timedelta(seconds=value)
    if isinstance(value, str):
        match = _ISO_DURATION.match(value.strip())
        if not match or value.strip() in ("P", "PT") or value.strip().endswith("T"):
            raise ValueError(f"Invalid ISO-8601 duration: {value!r}")
        parts = {k: float(v) for k, v in match.groupdict().items() if v is not None}
        return _timedelta(**parts)
    if isinstance(value, Mapping):
        if not value:
            raise ValueError("Duration mapping must not be empty")
        parts = {}
        for unit, amount in value.items():
            if unit not in _DURATION_UNITS:
                raise ValueError(
                    f"Unknown duration unit {unit!r}, expected one of {sorted(_DURATION_UNITS)}"
                )
            if isinstance(amount, bool) or not isinstance(amount, (int, float)):
                raise ValueError(f"Duration unit {unit!r} must be a number, got {amount!r}")
            parts[unit] = amount
        return _timedelta(**parts)
    raise ValueError(f"Invalid duration: {value!r}")


class ScheduleDefinition(BaseModel):
    """Recurrence definition for one provider task.

    ``frequency`` and ``cron`` are mutually exclusive. In configuration a cron
    frequency is written as ``frequency = { cron = "*/5 * * * *" }`` and
    ``interval`` is accepted as another name for ``frequency``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    frequency: Optional[timedelta] = Field(default=None, description="Time between runs")
    cron: Optional[str] = Field(default=None, description="Five-field crontab expression")
    timeout: timedelta = Field(description="Maximum duration of one run")
    initial_delay: Optional[timedelta] = Field(
        default=None, alias="initialDelay", description="Delay before the first run"
    )

    @model_validator(mode="before")
    @classmethod
    def _normalize_frequency(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        if "interval" in data:
            if "frequency" in data:
                raise ValueError("Use either 'frequency' or 'interval', not both")
            data["frequency"] = data.pop("interval")
        frequency = data.get("frequency")
        if isinstance(frequency, Mapping) and "cron" in frequency:
            data["cron"] = frequency["cron"]
            del data["frequency"]
        return data

    @field_validator("frequency", "timeout", "initial_delay", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> Any:
        if value is None:
            return None
        return parse_duration(value)

    @field_validator("cron")
    @classmethod
    def _check_cron(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if len(value.split()) != 5:
            raise ValueError(f"Cron expression must have 5 fields: {value!r}")
        CronTrigger.from_crontab(value, timezone="UTC")
        return value

    @model_validator(mode="after")
    def _check_recurrence(self) -> "ScheduleDefinition":
        if (self.frequency is None) == (self.cron is None):
            raise ValueError("Exactly one of 'frequency' or cron frequency is required")
        if self.frequency is not None and self.frequency <= timedelta(0):
            raise ValueError("Frequency must be positive")
        if self.timeout <= timedelta(0):
            raise ValueError("Timeout must be positive")
        if self.initial_delay is not None and self.initial_delay < timedelta(0):
            raise ValueError("Initial delay must not be negative")
        return self


class ProviderConfig(BaseModel):
    """One configured polling target."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    base_url: str = Field(alias="baseUrl", min_length=1)
    schedule: Optional[ScheduleDefinition] = None


def read_schedule_definition(raw: Any, context: str = "schedule") -> ScheduleDefinition:
    """Validate a raw schedule mapping, raising ConfigurationError on failure."""
    try:
        return ScheduleDefinition.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {context}: {e}") from e


def read_provider_config(provider_id: str, raw: Any) -> ProviderConfig:
    """Read a single provider entry."""
    if not isinstance(raw, Mapping):
        raise ConfigurationError(
            f"Provider config {provider_id} must be a mapping, got {type(raw).__name__}"
        )
    if "baseUrl" not in raw:
        raise ConfigurationError(f"Missing required config value 'baseUrl' for provider {provider_id}")

    schedule = None
    if raw.get("schedule") is not None:
        schedule = read_schedule_definition(raw["schedule"], f"schedule for provider {provider_id}")

    try:
        return ProviderConfig(id=provider_id, baseUrl=raw["baseUrl"], schedule=schedule)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config for provider {provider_id}: {e}") from e


def read_provider_configs(config_root: Mapping[str, Any], config_key: str) -> List[ProviderConfig]:
    """Read all providers configured under ``catalog.providers.<config_key>``.

    Returns an empty list when the section is absent. Order follows the
    configuration's key order.
    """
    section: Any = config_root
    for key in ("catalog", "providers", config_key):
        if not isinstance(section, Mapping) or key not in section:
            return []
        section = section[key]

    if section is None:
        return []
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"catalog.providers.{config_key} must be a mapping")

    return [read_provider_config(str(provider_id), raw) for provider_id, raw in section.items()]


__all__ = [
    "ScheduleDefinition",
    "ProviderConfig",
    "parse_duration",
    "read_schedule_definition",
    "read_provider_config",
    "read_provider_configs",
]
