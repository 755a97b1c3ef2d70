"""Sensor sample model, channel names, and state-token parsing."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

FUEL_LEVEL = "fuel_sensor_level"  # percent of tank
FUEL_VOLUME = "fuel_sensor_volume"  # litres
FUEL_TEMPERATURE = "fuel_sensor_temp"  # celsius
FUEL_TEMPERATURE_ALIAS = "fuel_sensor_temperature"
GENERATOR_STATE = "generator_state"
GRID_STATE = "zesa_state"

# Channel -> sensor names tried in order; the first one that reports wins.
CHANNEL_SENSORS: dict[str, tuple[str, ...]] = {
    "fuel_level": (FUEL_LEVEL,),
    "fuel_volume": (FUEL_VOLUME,),
    "temperature": (FUEL_TEMPERATURE, FUEL_TEMPERATURE_ALIAS),
    "generator_state": (GENERATOR_STATE,),
    "zesa_state": (GRID_STATE,),
}

ONLINE_TOKENS = frozenset({"1", "on", "true", "1.0"})
UNKNOWN_STATE = "unknown"


@dataclass(frozen=True)
class SensorSample:
    """One raw measurement from the telemetry log."""

    device_id: str
    sensor_name: str
    timestamp: datetime  # aware UTC
    value: float
    unit: str = ""


def state_is_on(value: float) -> bool:
    """Interpret a numeric state-channel value; only an integral 1 means on."""
    try:
        return int(value) == 1
    except (TypeError, ValueError, OverflowError):
        return False


def format_state(value: float | None) -> str:
    """Render a state-channel value as the token stored on snapshots."""
    if value is None:
        return UNKNOWN_STATE
    return f"{value:g}"


def is_online(state: object) -> bool:
    """True when a stored state token means "on" (case-insensitive)."""
    if state is None:
        return False
    return str(state).strip().lower() in ONLINE_TOKENS
