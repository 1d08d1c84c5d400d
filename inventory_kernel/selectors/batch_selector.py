"""
Module: inventory_kernel.selectors.batch_selector
Responsibility: Read-only batch queries -- available stock per product and
    warehouse, batch listings for stock screens.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - available_quantity counts only batches with quantity > 0, the same set
      the allocator draws from.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from inventory_kernel.exceptions import BatchNotFoundError
from inventory_kernel.models.batch import Batch
from inventory_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class BatchView:
    """Read model of one batch."""

    batch_id: UUID
    batch_number: str
    product_id: str
    warehouse_id: str
    quantity: int
    original_quantity: int
    unit_cost: Decimal
    received_date: date
    expiration_date: date | None
    location_id: str | None
    supplier_reference: str | None
    version: int

    @property
    def is_depleted(self) -> bool:
        return self.quantity == 0

    def is_expired(self, as_of: date) -> bool:
        return self.expiration_date is not None and self.expiration_date < as_of


def _to_view(batch: Batch) -> BatchView:
    return BatchView(
        batch_id=batch.id,
        batch_number=batch.batch_number,
        product_id=batch.product_id,
        warehouse_id=batch.warehouse_id,
        quantity=batch.quantity,
        original_quantity=batch.original_quantity,
        unit_cost=batch.unit_cost,
        received_date=batch.received_date,
        expiration_date=batch.expiration_date,
        location_id=batch.location_id,
        supplier_reference=batch.supplier_reference,
        version=batch.version,
    )


class BatchSelector(BaseSelector[Batch]):
    """Batch read queries."""

    def available_quantity(self, product_id: str, warehouse_id: str) -> int:
        total = self.session.execute(
            select(func.coalesce(func.sum(Batch.quantity), 0)).where(
                Batch.product_id == product_id,
                Batch.warehouse_id == warehouse_id,
                Batch.quantity > 0,
            )
        ).scalar_one()
        return int(total)

    def batches_for_product(
        self,
        product_id: str,
        warehouse_id: str,
        include_depleted: bool = True,
    ) -> list[BatchView]:
        """All batches of a product, oldest receipt first."""
        stmt = select(Batch).where(
            Batch.product_id == product_id,
            Batch.warehouse_id == warehouse_id,
        )
        if not include_depleted:
            stmt = stmt.where(Batch.quantity > 0)
        stmt = stmt.order_by(Batch.received_date, Batch.id).execution_options(
            populate_existing=True
        )
        return [_to_view(b) for b in self.session.execute(stmt).scalars()]

    def get(self, batch_id: UUID) -> BatchView:
        batch = self.session.execute(
            select(Batch)
            .where(Batch.id == batch_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if batch is None:
            raise BatchNotFoundError(str(batch_id))
        return _to_view(batch)

    def total_original_quantity(self, batch_id: UUID) -> int:
        return self.get(batch_id).original_quantity
