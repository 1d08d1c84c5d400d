"""
Module: inventory_kernel.selectors.allocation_selector
Responsibility: Read-only views over the allocation ledger -- per-order
    listings, the per-product summary shown on an order ("which batches and
    locations to pick from"), and per-batch totals used for conservation
    checks.
Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from inventory_kernel.models.allocation import Allocation
from inventory_kernel.models.batch import Batch
from inventory_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AllocationView:
    """One allocation row with its batch's identifying details."""

    allocation_id: UUID
    order_id: str
    order_line_id: str
    product_id: str
    warehouse_id: str
    batch_id: UUID
    batch_number: str
    location_id: str | None
    quantity: int
    strategy: str
    allocated_at: datetime


@dataclass(frozen=True)
class BatchDraw:
    batch_id: UUID
    batch_number: str
    location_id: str | None
    quantity: int


@dataclass(frozen=True)
class ProductAllocationSummary:
    """Everything drawn for one product of an order."""

    product_id: str
    total_allocated: int
    strategy: str
    batches: tuple[BatchDraw, ...]


class AllocationSelector(BaseSelector[Allocation]):
    """Allocation ledger read queries."""

    def allocations_for_order(self, order_id: str) -> list[AllocationView]:
        rows = self.session.execute(
            select(Allocation, Batch.batch_number, Batch.location_id)
            .join(Batch, Batch.id == Allocation.batch_id)
            .where(Allocation.order_id == order_id)
            .order_by(Allocation.order_line_id, Batch.batch_number)
        ).all()
        return [
            AllocationView(
                allocation_id=alloc.id,
                order_id=alloc.order_id,
                order_line_id=alloc.order_line_id,
                product_id=alloc.product_id,
                warehouse_id=alloc.warehouse_id,
                batch_id=alloc.batch_id,
                batch_number=batch_number,
                location_id=location_id,
                quantity=alloc.quantity,
                strategy=alloc.strategy,
                allocated_at=alloc.allocated_at,
            )
            for alloc, batch_number, location_id in rows
        ]

    def allocation_summary(self, order_id: str) -> list[ProductAllocationSummary]:
        """Allocations grouped by product, in first-seen order.

        Two lines of the same product drawing from the same batch are
        reported as one batch entry with the combined quantity.
        """
        grouped: dict[str, dict[UUID, list]] = {}
        strategies: dict[str, str] = {}
        for view in self.allocations_for_order(order_id):
            batches = grouped.setdefault(view.product_id, {})
            strategies.setdefault(view.product_id, view.strategy)
            entry = batches.setdefault(
                view.batch_id, [view.batch_number, view.location_id, 0]
            )
            entry[2] += view.quantity

        summaries = []
        for product_id, batches in grouped.items():
            draws = tuple(
                BatchDraw(batch_id, number, location, qty)
                for batch_id, (number, location, qty) in batches.items()
            )
            summaries.append(
                ProductAllocationSummary(
                    product_id=product_id,
                    total_allocated=sum(d.quantity for d in draws),
                    strategy=strategies[product_id],
                    batches=draws,
                )
            )
        return summaries

    def allocated_from_batch(self, batch_id: UUID) -> int:
        total = self.session.execute(
            select(func.coalesce(func.sum(Allocation.quantity), 0)).where(
                Allocation.batch_id == batch_id
            )
        ).scalar_one()
        return int(total)

    def has_allocations(self, order_id: str) -> bool:
        return (
            self.session.execute(
                select(Allocation.id).where(Allocation.order_id == order_id).limit(1)
            ).first()
            is not None
        )
