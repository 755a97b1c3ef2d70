"""Health tracking for the sample store and per-device capture."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

SAMPLE_STORE = "sample_store"


def device_component(device_id: str) -> str:
    """Component name used for a device's capture health."""
    return f"capture:{device_id}"


@dataclass
class ComponentHealth:
    """Health state of a single tracked component."""

    name: str
    healthy: bool = True
    last_success: datetime | None = None
    last_failure: datetime | None = None
    consecutive_failures: int = 0
    total_failures: int = 0
    last_error: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "healthy": self.healthy,
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "last_failure": self.last_failure.isoformat() if self.last_failure else None,
            "consecutive_failures": self.consecutive_failures,
            "total_failures": self.total_failures,
            "last_error": self.last_error,
        }


class HealthChecker:
    """Marks a component unhealthy after N consecutive failures."""

    def __init__(self, max_consecutive_failures: int = 3) -> None:
        self._max_failures = max_consecutive_failures
        self._components: dict[str, ComponentHealth] = {}

    def register(self, name: str) -> ComponentHealth:
        if name not in self._components:
            self._components[name] = ComponentHealth(name=name)
        return self._components[name]

    def record_success(self, name: str) -> None:
        c = self.register(name)
        if not c.healthy:
            logger.info("Component '%s' recovered", name)
        c.healthy = True
        c.last_success = datetime.now(timezone.utc)
        c.consecutive_failures = 0

    def record_failure(self, name: str, error: str = "") -> None:
        c = self.register(name)
        c.last_failure = datetime.now(timezone.utc)
        c.consecutive_failures += 1
        c.total_failures += 1
        c.last_error = error

        if c.healthy and c.consecutive_failures >= self._max_failures:
            c.healthy = False
            logger.warning(
                "Component '%s' marked unhealthy (%d consecutive failures): %s",
                name, c.consecutive_failures, error,
            )

    def is_healthy(self, name: str) -> bool:
        c = self._components.get(name)
        return c.healthy if c else True  # Unknown components assumed healthy

    def get_unhealthy(self) -> list[str]:
        return [name for name, c in self._components.items() if not c.healthy]

    def all_healthy(self) -> bool:
        return all(c.healthy for c in self._components.values())

    def get_health(self, name: str) -> ComponentHealth | None:
        return self._components.get(name)

    def to_dict(self) -> dict:
        return {
            "healthy": self.all_healthy(),
            "unhealthy": self.get_unhealthy(),
            "components": {name: c.to_dict() for name, c in sorted(self._components.items())},
        }
