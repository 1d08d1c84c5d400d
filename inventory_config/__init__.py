"""
inventory_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` is the only way services and scripts obtain
    configuration.  No other component reads configuration files or
    environment variables.

Architecture position:
    Configuration.  Sits above ``inventory_kernel`` and beside
    ``inventory_services``.  The kernel MUST NEVER import from
    ``inventory_config``; ``bridges`` turns a config into kernel and
    service inputs.

Resolution order:
    1. the ``path`` argument
    2. the ``INVENTORY_CONFIG`` environment variable
    3. the packaged ``defaults.yaml``
    ``INVENTORY_DATABASE_URL``, when set, replaces ``database.url``.

Failure modes:
    - ``FileNotFoundError`` -- the chosen file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ValueError`` -- unknown sections/keys or invalid values.

Every successful call emits an ``INVENTORY_CONFIG_TRACE`` log record with
the source, checksum and default strategy.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from inventory_config.loader import compute_checksum, load_yaml_file, parse_config
from inventory_config.schema import (
    AllocationSettings,
    DatabaseSettings,
    InventoryConfig,
    LoggingSettings,
    ReceivingSettings,
)

_logger = logging.getLogger("inventory_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"
CONFIG_ENV_VAR = "INVENTORY_CONFIG"
DATABASE_URL_ENV_VAR = "INVENTORY_DATABASE_URL"


def get_active_config(path: Path | str | None = None) -> InventoryConfig:
    """The ONLY public configuration entrypoint."""
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    path = Path(path)

    config = parse_config(load_yaml_file(path), source=str(path))

    db_url = os.environ.get(DATABASE_URL_ENV_VAR)
    if db_url:
        config = replace(config, database=replace(config.database, url=db_url))

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "source": config.source,
            "checksum": config.checksum,
            "default_strategy": config.allocation.default_strategy.value,
            "max_attempts": config.allocation.max_attempts,
            "merge_identical_lots": config.receiving.merge_identical_lots,
            "database_url_overridden": bool(db_url),
        },
    )
    return config


__all__ = [
    "AllocationSettings",
    "DatabaseSettings",
    "InventoryConfig",
    "LoggingSettings",
    "ReceivingSettings",
    "compute_checksum",
    "get_active_config",
    "load_yaml_file",
    "parse_config",
]
