"""
FulfillmentOrchestrator -- all-or-nothing allocation of a whole order.

Responsibility:
    Allocate every product line of one order in input order, record each
    line's draws in the allocation ledger, and commit once.  If any line
    fails, the transaction is rolled back: no batch decrement and no
    allocation row for the order survives, and the caller gets a
    FulfillmentError naming the failing line.

Architecture:
    inventory_services layer.  Owns its transaction boundary (commit on
    success, rollback on failure).

        fulfillment_orchestrator.py  -->  inventory_services.allocator
        fulfillment_orchestrator.py  -->  inventory_kernel.services (AllocationLedger)

Invariants:
    - Atomic order: one database transaction covers every line.
    - Lines whose product_id is None (fees, services) are skipped.
    - An order that already has allocation rows is rejected, so a retried
      call that had in fact succeeded cannot draw twice.
    - Concurrent calls for the same order_id are serialised on the order key
      before that check.

Failure modes:
    - FulfillmentError wrapping InsufficientStockError, InvalidQuantityError
      or AllocationContentionError for the first failing line.
    - OrderAlreadyAllocatedError if the order already holds allocations.
    - InvalidOrderLinesError when two lines share an order_line_id.
    - UnknownStrategyError before anything is read.
    - PersistenceError if the store fails; the whole call may be retried.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import (
    FulfillmentResult,
    LineAllocation,
    OrderLineRequest,
)
from inventory_kernel.domain.strategy import AllocationStrategy
from inventory_kernel.exceptions import (
    AllocationContentionError,
    FulfillmentError,
    InsufficientStockError,
    InvalidOrderLinesError,
    InvalidQuantityError,
    OrderAlreadyAllocatedError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.allocation_ledger import AllocationLedger
from inventory_services._transactions import unit_of_work
from inventory_services.allocator import BatchAllocator

logger = get_logger("services.fulfillment")

_LINE_FAILURES = (InsufficientStockError, InvalidQuantityError, AllocationContentionError)


class FulfillmentOrchestrator:
    """Allocates all product lines of an order as one unit of work."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        default_strategy: AllocationStrategy | str = AllocationStrategy.FIFO,
        max_attempts: int = 3,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._allocator = BatchAllocator(
            session,
            clock=self._clock,
            default_strategy=default_strategy,
            max_attempts=max_attempts,
        )
        self._ledger = AllocationLedger(session)

    def fulfill_order(
        self,
        order_id: str,
        warehouse_id: str,
        lines: Sequence[OrderLineRequest],
        strategy: AllocationStrategy | str | None = None,
    ) -> FulfillmentResult:
        strategy = self._allocator.resolve_strategy(strategy)
        seen: set[str] = set()
        for line in lines:
            if line.order_line_id in seen:
                raise InvalidOrderLinesError(
                    order_id, line.order_line_id, "duplicate order_line_id"
                )
            seen.add(line.order_line_id)

        t0 = time.monotonic()
        allocated_at = self._clock.now()
        with LogContext.bind(order_id=order_id):
            logger.info(
                "fulfillment_started",
                extra={
                    "warehouse_id": warehouse_id,
                    "line_count": len(lines),
                    "strategy": strategy.value,
                },
            )
            try:
                with unit_of_work(self._session, "fulfillment", order_id=order_id):
                    self._ledger.lock_order(order_id)
                    existing = self._ledger.count_for_order(order_id)
                    if existing:
                        raise OrderAlreadyAllocatedError(order_id, existing)
                    results = tuple(
                        self._fulfill_line(
                            order_id, warehouse_id, line, strategy, allocated_at
                        )
                        for line in lines
                        if line.product_id is not None
                    )
            except FulfillmentError as exc:
                logger.warning(
                    "fulfillment_failed",
                    extra={
                        "order_line_id": exc.order_line_id,
                        "error_code": getattr(exc.cause, "code", None),
                        "shortfall": exc.shortfall,
                    },
                )
                raise

            result = FulfillmentResult(
                order_id=order_id,
                warehouse_id=warehouse_id,
                strategy=strategy,
                lines=results,
                allocated_at=allocated_at,
            )
            logger.info(
                "fulfillment_completed",
                extra={
                    "line_count": len(results),
                    "total_allocated": result.total_allocated,
                    "batch_count": result.batch_count,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return result

    def _fulfill_line(
        self,
        order_id: str,
        warehouse_id: str,
        line: OrderLineRequest,
        strategy: AllocationStrategy,
        allocated_at: datetime,
    ) -> LineAllocation:
        try:
            draws = self._allocator.allocate(
                line.product_id, warehouse_id, line.quantity, strategy
            )
        except _LINE_FAILURES as exc:
            raise FulfillmentError(order_id, line.order_line_id, exc) from exc

        self._ledger.record(
            order_id=order_id,
            order_line_id=line.order_line_id,
            product_id=line.product_id,
            warehouse_id=warehouse_id,
            draws=draws,
            strategy=strategy,
            allocated_at=allocated_at,
        )
        return LineAllocation(
            order_line_id=line.order_line_id,
            product_id=line.product_id,
            requested=line.quantity,
            draws=tuple(draws),
        )
