"""Tracker configuration for pygeotrack."""

from __future__ import annotations

import dataclasses
import math
import os
from typing import Any

from pygeotrack.exceptions import ConfigError


_TRUE_WORDS = frozenset({"1", "true", "yes", "y", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "n", "off", ""})


def _env_flag(env_key: str, raw: str) -> bool:
    word = raw.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ConfigError(f"{env_key} must be a boolean flag, got {raw!r}")
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, raw: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigError(f"{env_key} must be a number, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class TrackerConfig:
    """Tracker configuration.

    Parameters
    ----------
    default_radius_meters : float
        Radius used by nearby queries when the caller passes none.
    subscriber_queue_size : int
        Capacity of each subscriber's event queue.  When full, the oldest
        queued event is dropped to make room for the new one.
    index_cell_degrees : float
        Edge length of a spatial index grid cell, in degrees.
    recent_activity_days : float
        Window used by the status summary's "recently updated" count.
    log_payloads : bool
        Include full asset payloads in DEBUG event logs.
    """

    default_radius_meters: float = 1000.0
    subscriber_queue_size: int = 256
    index_cell_degrees: float = 0.1
    recent_activity_days: float = 7.0
    log_payloads: bool = False

    def __post_init__(self) -> None:
        if not math.isfinite(self.default_radius_meters) or self.default_radius_meters < 0:
            raise ConfigError("default_radius_meters must be a finite, non-negative number")
        if self.subscriber_queue_size < 1:
            raise ConfigError("subscriber_queue_size must be at least 1")
        if not math.isfinite(self.index_cell_degrees) or not 0 < self.index_cell_degrees <= 90:
            raise ConfigError("index_cell_degrees must be in (0, 90]")
        if self.recent_activity_days < 0:
            raise ConfigError("recent_activity_days must be non-negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> TrackerConfig:
        """Create configuration from ``GEOTRACK_*`` environment variables.

        Explicit keyword arguments override environment values.

        Returns
        -------
        TrackerConfig
            Populated configuration.

        Raises
        ------
        ConfigError
            If a numeric variable cannot be parsed or a value is out of range.
        """
        env = os.environ

        _ENV_NUMERIC_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "GEOTRACK_DEFAULT_RADIUS_M": ("default_radius_meters", float),
            "GEOTRACK_SUBSCRIBER_QUEUE_SIZE": ("subscriber_queue_size", int),
            "GEOTRACK_INDEX_CELL_DEGREES": ("index_cell_degrees", float),
            "GEOTRACK_RECENT_ACTIVITY_DAYS": ("recent_activity_days", float),
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, (field_name, cast) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, cast)

        flag = env.get("GEOTRACK_LOG_PAYLOADS")
        if flag is not None and "log_payloads" not in overrides:
            config_kwargs["log_payloads"] = _env_flag("GEOTRACK_LOG_PAYLOADS", flag)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
