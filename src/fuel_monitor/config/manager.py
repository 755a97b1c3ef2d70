"""Configuration loading, saving, and versioning."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from fuel_monitor.config.schema import AppConfig
from fuel_monitor.timezone_utils import is_known_timezone

logger = logging.getLogger(__name__)


def merge_overrides(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``, returning a new dict."""
    result = dict(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = merge_overrides(result[key], value)
        else:
            result[key] = value
    return result


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: top level is not a mapping", path)
        return {}
    return data


class ConfigManager:
    """Site configuration from ``config.defaults.yaml`` plus local ``config.yaml`` overrides.

    Beyond the schema, every load requires the capture timezone to resolve.
    """

    def __init__(
        self,
        defaults_path: Path | None = None,
        user_path: Path | None = None,
    ) -> None:
        self._defaults_path = defaults_path or Path("config.defaults.yaml")
        self._user_path = user_path or Path("config.yaml")
        self._config: AppConfig | None = None

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            raise RuntimeError("Config not loaded. Call load() first.")
        return self._config

    def load(self) -> AppConfig:
        merged = merge_overrides(_read_yaml(self._defaults_path), _read_yaml(self._user_path))
        self._config = self._validate(merged)
        capture = self._config.capture
        logger.info(
            "Configuration loaded (capture at %s %s, max_concurrency=%d)",
            capture.capture_time, capture.timezone, capture.max_concurrency,
        )
        return self._config

    def to_json(self) -> str:
        return self.config.model_dump_json(indent=2)

    def save_user_config(self, updates: dict[str, Any]) -> AppConfig:
        """Merge updates into the user config file and reload.

        The merged result is validated first; an invalid update raises
        ValueError and leaves the file untouched.
        """
        overrides = merge_overrides(_read_yaml(self._user_path), updates)
        self._validate(merge_overrides(_read_yaml(self._defaults_path), overrides))
        with open(self._user_path, "w") as f:
            yaml.dump(overrides, f, default_flow_style=False, sort_keys=False)
        return self.load()

    async def save_version(
        self,
        db: Any,
        changed_keys: list[str] | None = None,
        source: str = "user",
    ) -> int:
        """Record the active config in ``config_versions`` unless it matches the latest row."""
        config_json = self.to_json()
        async with db.execute(
            "SELECT id, config_json FROM config_versions ORDER BY id DESC LIMIT 1"
        ) as cursor:
            latest = await cursor.fetchone()
        if latest is not None and latest[1] == config_json:
            return latest[0]

        async with db.execute(
            """INSERT INTO config_versions (config_json, changed_keys, created_at, source)
               VALUES (?, ?, ?, ?)""",
            (
                config_json,
                json.dumps(changed_keys) if changed_keys else None,
                datetime.now(timezone.utc).isoformat(),
                source,
            ),
        ) as cursor:
            version_id = cursor.lastrowid
        await db.commit()
        logger.info("Config version %d saved (%s)", version_id, source)
        return version_id  # type: ignore[return-value]

    @staticmethod
    def _validate(data: dict[str, Any]) -> AppConfig:
        config = AppConfig.model_validate(data)
        if not is_known_timezone(config.capture.timezone):
            raise ValueError(
                f"capture.timezone {config.capture.timezone!r} is not a known timezone"
            )
        return config
