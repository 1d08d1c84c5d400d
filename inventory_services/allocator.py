"""
BatchAllocator -- draws one product's quantity from its batches.

Responsibility:
    Lock the candidate batches for (product, warehouse), plan the draws
    with the pure engine, and only then apply them through BatchStore's
    guarded decrement.  Runs inside the caller's transaction: the
    fulfillment orchestrator owns commit and rollback.

Architecture:
    inventory_services layer.

        allocator.py  -->  inventory_engines.allocation (plan_allocation)
        allocator.py  -->  inventory_kernel.services    (BatchStore)

Invariants:
    - Scan and decide before writing.  An unsatisfiable request raises
      InsufficientStockError before any batch row is touched.
    - No oversell.  Every decrement is guarded by ``quantity >= :q``; if one
      loses a race, the draws applied so far are rolled back to a savepoint,
      candidates are re-read, and the plan is rebuilt (up to
      ``max_attempts`` times).

Failure modes:
    - InvalidQuantityError on a bad requested quantity.
    - UnknownStrategyError on an unknown strategy tag.
    - InsufficientStockError when supply is short, on the first attempt or
      after re-reading a contended batch set.
    - AllocationContentionError when every attempt lost a race.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from inventory_engines.allocation import AllocationPlan, plan_allocation, plan_draws
from inventory_engines.batch_ordering import BatchCandidate
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import AllocationDraw, validate_quantity
from inventory_kernel.domain.strategy import AllocationStrategy
from inventory_kernel.exceptions import AllocationContentionError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.batch import Batch
from inventory_kernel.services.batch_store import BatchStore

logger = get_logger("services.allocator")


def _to_candidate(batch: Batch) -> BatchCandidate:
    return BatchCandidate(
        batch_id=batch.id,
        quantity=batch.quantity,
        received_date=batch.received_date,
        expiration_date=batch.expiration_date,
    )


class BatchAllocator:
    """
    Allocator for one (product, warehouse, quantity) request.

    Contract:
        ``allocate`` mutates batches within the caller's transaction and
        returns the draws; recording them in the allocation ledger is the
        caller's job.  ``preview`` never writes.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        default_strategy: AllocationStrategy | str = AllocationStrategy.FIFO,
        max_attempts: int = 3,
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._session = session
        self._store = BatchStore(session, clock=clock)
        self._default_strategy = AllocationStrategy.parse(default_strategy)
        self._max_attempts = max_attempts

    def resolve_strategy(
        self, strategy: AllocationStrategy | str | None
    ) -> AllocationStrategy:
        if strategy is None:
            return self._default_strategy
        return AllocationStrategy.parse(strategy)

    def preview(
        self,
        product_id: str,
        warehouse_id: str,
        quantity: int,
        strategy: AllocationStrategy | str | None = None,
    ) -> AllocationPlan:
        """Side-effect-free plan; partial with a shortfall when stock is short."""
        rows = self._store.candidates(product_id, warehouse_id)
        return plan_draws(
            candidates=[_to_candidate(b) for b in rows],
            quantity=quantity,
            strategy=self.resolve_strategy(strategy),
            product_id=product_id,
            warehouse_id=warehouse_id,
        )

    def allocate(
        self,
        product_id: str,
        warehouse_id: str,
        quantity: int,
        strategy: AllocationStrategy | str | None = None,
    ) -> list[AllocationDraw]:
        """Draw ``quantity`` units and return the applied draws.

        Raises:
            InsufficientStockError: Total eligible stock < quantity.
            AllocationContentionError: Every attempt lost a decrement race.
        """
        validate_quantity(quantity, "requested quantity")
        strategy = self.resolve_strategy(strategy)
        log_fields = {
            "product_id": product_id,
            "warehouse_id": warehouse_id,
            "quantity": quantity,
            "strategy": strategy.value,
        }
        logger.debug("allocation_started", extra=log_fields)

        rows = self._store.lock_candidates(product_id, warehouse_id)
        contended = None
        for attempt in range(1, self._max_attempts + 1):
            plan = plan_allocation(
                candidates=[_to_candidate(b) for b in rows],
                quantity=quantity,
                strategy=strategy,
                product_id=product_id,
                warehouse_id=warehouse_id,
            )

            savepoint = self._session.begin_nested()
            contended = next(
                (
                    draw
                    for draw in plan.draws
                    if not self._store.decrement(draw.batch_id, draw.quantity)
                ),
                None,
            )
            if contended is None:
                savepoint.commit()
                logger.info(
                    "allocation_completed",
                    extra={
                        **log_fields,
                        "batch_count": len(plan.draws),
                        "attempt": attempt,
                    },
                )
                return list(plan.draws)

            savepoint.rollback()
            logger.warning(
                "allocation_retry",
                extra={
                    **log_fields,
                    "attempt": attempt,
                    "batch_id": str(contended.batch_id),
                },
            )
            rows = self._store.refresh_candidates(product_id, warehouse_id)

        raise AllocationContentionError(str(contended.batch_id), self._max_attempts)
