"""
Inventory configuration schema.

Frozen dataclasses the loader parses YAML into.  Defaults here are the
defaults of the packaged ``defaults.yaml``; a YAML file only needs the keys
it changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from inventory_kernel.domain.strategy import AllocationStrategy

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Where the batch store lives and how connections are pooled."""

    url: str = "sqlite:///inventory.db"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5
    pool_timeout: int = 30
    pool_recycle: int = 1800
    sqlite_busy_timeout: float = 30.0


@dataclass(frozen=True)
class AllocationSettings:
    default_strategy: AllocationStrategy = AllocationStrategy.FIFO
    # Guarded-decrement attempts before AllocationContentionError
    max_attempts: int = 3


@dataclass(frozen=True)
class ReceivingSettings:
    # False: every receipt creates its own batch
    merge_identical_lots: bool = False
    batch_number_prefix: str = "BATCH"


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InventoryConfig:
    """The runtime configuration artifact returned by get_active_config()."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    allocation: AllocationSettings = field(default_factory=AllocationSettings)
    receiving: ReceivingSettings = field(default_factory=ReceivingSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    source: str = "<defaults>"
    checksum: str = ""
