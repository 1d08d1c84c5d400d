"""
Config -> Kernel / Services bridges.

These live in inventory_config because the kernel must never import it.

Usage:
    from inventory_config import get_active_config
    from inventory_config.bridges import build_services, init_engine_from_config

    config = get_active_config()
    init_engine_from_config(config)
    with session_scope() as session:
        services = build_services(session, config)
        services.fulfillment.fulfill_order(...)
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from inventory_config.schema import InventoryConfig
from inventory_kernel.db.engine import init_engine_from_url
from inventory_kernel.domain.clock import Clock
from inventory_kernel.logging_config import configure_logging
from inventory_services.allocator import BatchAllocator
from inventory_services.fulfillment_orchestrator import FulfillmentOrchestrator
from inventory_services.receiving_service import ReceivingReconciler
from inventory_services.reversal_service import ReversalService


def init_engine_from_config(config: InventoryConfig) -> Engine:
    """Configure logging at the configured level, then the engine."""
    configure_logging(level=config.logging.level)
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
        sqlite_busy_timeout=db.sqlite_busy_timeout,
    )


@dataclass(frozen=True)
class InventoryServices:
    """The service set wired to one session."""

    allocator: BatchAllocator
    fulfillment: FulfillmentOrchestrator
    reversal: ReversalService
    receiving: ReceivingReconciler


def build_services(
    session: Session,
    config: InventoryConfig,
    clock: Clock | None = None,
) -> InventoryServices:
    allocation = config.allocation
    return InventoryServices(
        allocator=BatchAllocator(
            session,
            clock=clock,
            default_strategy=allocation.default_strategy,
            max_attempts=allocation.max_attempts,
        ),
        fulfillment=FulfillmentOrchestrator(
            session,
            clock=clock,
            default_strategy=allocation.default_strategy,
            max_attempts=allocation.max_attempts,
        ),
        reversal=ReversalService(session),
        receiving=ReceivingReconciler(
            session,
            clock=clock,
            merge_identical_lots=config.receiving.merge_identical_lots,
            batch_number_prefix=config.receiving.batch_number_prefix,
        ),
    )
