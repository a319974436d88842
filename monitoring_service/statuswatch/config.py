"""
Runtime configuration for the monitoring service.

Settings live in a JSON file (``$STATUSWATCH_CONFIG``, default
``config.json``) using the camelCase keys below and are merged over the
defaults. A missing or invalid file is logged and the defaults are used::

    {
      "pingInterval": "*/5 * * * * *",
      "endpoints": [{"url": "https://example.com", "name": "Example"}],
      "logFilePath": "logs/server.log",
      "dataRetentionDays": 3,
      "port": 3000
    }

``ConfigProvider.update`` validates a partial change against the merged
result, swaps it in and writes it back, so the next monitoring cycle picks
it up without a restart.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from statuswatch.schedule import CronSchedule

logger = logging.getLogger("config")

CONFIG_PATH = Path(os.environ.get("STATUSWATCH_CONFIG", "config.json"))

DEFAULT_PING_INTERVAL = "*/5 * * * * *"
DEFAULT_LOG_FILE_PATH = "logs/server.log"
DEFAULT_RETENTION_DAYS = 3


def _default_port() -> int:
    return int(os.environ.get("PORT", "3000"))


def _default_endpoints() -> list["EndpointConfig"]:
    return [
        EndpointConfig(url="https://google.com", name="Google"),
        EndpointConfig(url="https://example.com", name="Example"),
    ]


def _check_cron(value: str) -> str:
    CronSchedule.parse(value)
    return value


class EndpointConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    name: str


class MonitorSettings(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ping_interval: str = Field(default=DEFAULT_PING_INTERVAL, alias="pingInterval")
    endpoints: list[EndpointConfig] = Field(default_factory=_default_endpoints)
    log_file_path: str = Field(default=DEFAULT_LOG_FILE_PATH, alias="logFilePath")
    data_retention_days: int = Field(default=DEFAULT_RETENTION_DAYS, ge=1, le=30, alias="dataRetentionDays")
    port: int = Field(default_factory=_default_port, ge=1024, le=65535)

    @field_validator("ping_interval")
    @classmethod
    def _valid_cron(cls, value: str) -> str:
        return _check_cron(value)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ConfigProvider:
    """Holds the active ``MonitorSettings`` and persists updates.

    Args:
        path: JSON file to load from and write updates to.
    """

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path is not None else CONFIG_PATH
        self._settings = MonitorSettings()
        self._lock = threading.Lock()

    def load(self) -> MonitorSettings:
        """(Re)load settings from ``self.path``, falling back to defaults."""
        settings = MonitorSettings()
        if not self.path.exists():
            logger.warning("Configuration file not found: %s, using default configuration", self.path)
        else:
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
                settings = MonitorSettings.model_validate({**settings.to_document(), **raw})
                logger.info("Configuration loaded from %s", self.path)
            except (OSError, ValueError, TypeError) as exc:
                # pydantic.ValidationError is a ValueError
                logger.error("Error loading configuration from %s: %s", self.path, exc)

        with self._lock:
            self._settings = settings
        return settings

    def get(self) -> MonitorSettings:
        return self._settings

    def update(self, changes: dict[str, Any]) -> MonitorSettings:
        """Validate and apply a partial update keyed by the JSON field names.

        Raises:
            pydantic.ValidationError: when the merged settings are invalid;
                the active settings are left unchanged.
        """
        with self._lock:
            merged = {**self._settings.to_document(), **changes}
            settings = MonitorSettings.model_validate(merged)
            self._write(settings)
            self._settings = settings

        logger.info("Configuration updated", extra={"changed_keys": sorted(changes)})
        return settings

    def _write(self, settings: MonitorSettings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(settings.to_document(), indent=2), encoding="utf-8")


_provider: ConfigProvider | None = None


def get_config_provider() -> ConfigProvider:
    """Lazily create the process-wide provider."""
    global _provider
    if _provider is None:
        _provider = ConfigProvider()
    return _provider


__all__ = [
    "ConfigProvider",
    "EndpointConfig",
    "MonitorSettings",
    "get_config_provider",
]
