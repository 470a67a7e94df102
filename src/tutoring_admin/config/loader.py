from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader.

Responsibilities:
- Load the YAML config (default config/tutoring.yml)
- Validate it against the packaged config_schema.json
- Apply defaults (timezone=UTC, present_minutes=40, operation_log=true)
- Apply environment overrides TUTORING_WORKBOOK / TUTORING_TIMEZONE
"""

__all__ = [
    "ConfigError",
    "AppConfig",
    "DEFAULT_CONFIG_PATH",
    "load_config",
]

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/tutoring.yml")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class AppConfig:
    workbook: Path
    timezone: str = "UTC"
    present_minutes: int = 40
    operation_log: bool = True
    logs_directory: Path = Path("./logs")

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: the schema file is missing or unreadable, or the data
            fails validation (missing keys, wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)

    # environment (already merged with .env by the CLI) wins over the file
    workbook = os.getenv("TUTORING_WORKBOOK") or data["workbook"]
    tz = os.getenv("TUTORING_TIMEZONE") or data.get("timezone", "UTC")
    try:
        ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"unknown timezone: {tz}") from e

    return AppConfig(
        workbook=Path(workbook),
        timezone=tz,
        present_minutes=data.get("present_minutes", 40),
        operation_log=data.get("operation_log", True),
        logs_directory=Path(data.get("logs_directory", "./logs")),
    )
