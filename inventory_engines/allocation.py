"""
Allocation planning -- the scan-and-decide half of the allocator.

Responsibility:
    Walk the strategy-ordered candidates and draw
    ``min(still_needed, batch.quantity)`` from each until the request is
    covered.  The result is a plan; nothing is written here.  The allocator
    service applies a plan only once it is known to be satisfiable, which is
    what lets an order abort before any batch has moved.

Architecture position:
    Engines -- pure calculation, zero I/O.

Invariants enforced:
    - Every draw is > 0 and no draw exceeds its batch's quantity.
    - A satisfiable plan's draws sum exactly to the requested quantity.
    - Requests of 0, negative, bool or non-int quantities are rejected,
      never treated as a no-op.

Failure modes:
    - InvalidQuantityError for a bad requested quantity.
    - InsufficientStockError from ``plan_allocation`` when the candidates
      hold less than requested (carries requested, available, shortfall).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from inventory_engines.batch_ordering import BatchCandidate, order_batches
from inventory_engines.tracer import traced_engine
from inventory_kernel.domain.dtos import AllocationDraw, validate_quantity
from inventory_kernel.domain.strategy import AllocationStrategy
from inventory_kernel.exceptions import InsufficientStockError
from inventory_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")


@dataclass(frozen=True)
class AllocationPlan:
    """Draws for one (product, warehouse, quantity) request."""

    product_id: str
    warehouse_id: str
    strategy: AllocationStrategy
    requested: int
    available: int
    draws: tuple[AllocationDraw, ...]

    @property
    def planned(self) -> int:
        return sum(d.quantity for d in self.draws)

    @property
    def shortfall(self) -> int:
        return max(self.requested - self.available, 0)

    @property
    def is_satisfiable(self) -> bool:
        return self.shortfall == 0


@traced_engine(
    "allocation_plan",
    "1.0",
    fingerprint_fields=("product_id", "warehouse_id", "quantity", "strategy", "candidates"),
)
def plan_draws(
    *,
    candidates: Iterable[BatchCandidate],
    quantity: int,
    strategy: AllocationStrategy | str,
    product_id: str = "",
    warehouse_id: str = "",
) -> AllocationPlan:
    """Greedy draw plan.  Partial when supply is short; never raises for it."""
    validate_quantity(quantity, "requested quantity")
    strategy = AllocationStrategy.parse(strategy)
    ordered = order_batches(candidates, strategy)

    available = sum(c.quantity for c in ordered)
    remaining = quantity
    draws: list[AllocationDraw] = []
    for candidate in ordered:
        if remaining == 0:
            break
        take = min(remaining, candidate.quantity)
        draws.append(AllocationDraw(candidate.batch_id, take))
        remaining -= take

    return AllocationPlan(
        product_id=product_id,
        warehouse_id=warehouse_id,
        strategy=strategy,
        requested=quantity,
        available=available,
        draws=tuple(draws),
    )


def plan_allocation(
    *,
    candidates: Iterable[BatchCandidate],
    quantity: int,
    strategy: AllocationStrategy | str,
    product_id: str = "",
    warehouse_id: str = "",
) -> AllocationPlan:
    """Draw plan that fully covers ``quantity``.

    Raises:
        InsufficientStockError: If the candidates cannot cover the request.
    """
    plan = plan_draws(
        candidates=candidates,
        quantity=quantity,
        strategy=strategy,
        product_id=product_id,
        warehouse_id=warehouse_id,
    )
    if not plan.is_satisfiable:
        logger.warning(
            "allocation_plan_insufficient",
            extra={
                "product_id": product_id,
                "warehouse_id": warehouse_id,
                "requested": plan.requested,
                "available": plan.available,
            },
        )
        raise InsufficientStockError(
            product_id=product_id,
            requested=plan.requested,
            available=plan.available,
            warehouse_id=warehouse_id or None,
        )
    return plan
