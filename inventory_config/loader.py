"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Load a YAML file and parse it into the frozen ``inventory_config.schema``
dataclasses.  Runtime callers go through
``inventory_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Unknown section or key names raise ``ValueError``; a typo never silently
  falls back to a default.
* ``compute_checksum`` is a deterministic SHA-256 over canonical JSON.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown strategy tag, ``max_attempts < 1``, non-mapping sections or
  unknown keys  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import (
    AllocationSettings,
    DatabaseSettings,
    InventoryConfig,
    LoggingSettings,
    ReceivingSettings,
)
from inventory_kernel.domain.strategy import AllocationStrategy
from inventory_kernel.exceptions import UnknownStrategyError

_SECTIONS = {
    "database": DatabaseSettings,
    "allocation": AllocationSettings,
    "receiving": ReceivingSettings,
    "logging": LoggingSettings,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form; identical data, identical checksum."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _section(name: str, data: Any) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config section '{name}' must be a mapping, got {type(data).__name__}")
    allowed = {f.name for f in fields(_SECTIONS[name])}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown key(s) in config section '{name}': {', '.join(unknown)}")
    return dict(data)


def parse_allocation(data: Any) -> AllocationSettings:
    values = _section("allocation", data)
    if "default_strategy" in values:
        try:
            values["default_strategy"] = AllocationStrategy.parse(values["default_strategy"])
        except UnknownStrategyError as exc:
            raise ValueError(str(exc)) from exc
    settings = AllocationSettings(**values)
    if isinstance(settings.max_attempts, bool) or not isinstance(settings.max_attempts, int):
        raise ValueError(f"allocation.max_attempts must be an integer, got {settings.max_attempts!r}")
    if settings.max_attempts < 1:
        raise ValueError(f"allocation.max_attempts must be >= 1, got {settings.max_attempts}")
    return settings


def parse_logging(data: Any) -> LoggingSettings:
    values = _section("logging", data)
    level = str(values.get("level", LoggingSettings.level)).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown logging level {level!r}")
    return LoggingSettings(level=level)


def parse_config(data: dict[str, Any], source: str = "<memory>") -> InventoryConfig:
    """Parse a loaded YAML mapping into an InventoryConfig.

    Missing sections and keys take the schema defaults.
    """
    if not isinstance(data, dict):
        raise ValueError("Configuration root must be a mapping")
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown config section(s): {', '.join(unknown)}")

    return InventoryConfig(
        database=DatabaseSettings(**_section("database", data.get("database"))),
        allocation=parse_allocation(data.get("allocation")),
        receiving=ReceivingSettings(**_section("receiving", data.get("receiving"))),
        logging=parse_logging(data.get("logging")),
        source=source,
        checksum=compute_checksum(data),
    )
