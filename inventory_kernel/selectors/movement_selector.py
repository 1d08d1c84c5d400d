"""
Module: inventory_kernel.selectors.movement_selector
Responsibility: Read-only views over the stock movement ledger.
Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.models.inventory_movement import InventoryMovement
from inventory_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class MovementView:
    movement_id: UUID
    movement_type: str
    product_id: str
    warehouse_id: str
    quantity: int
    remaining_stock: int
    batch_id: UUID | None
    purchase_order_id: UUID | None
    purchase_order_line_id: UUID | None
    reference: str | None
    notes: str | None
    occurred_at: datetime


def _to_view(m: InventoryMovement) -> MovementView:
    return MovementView(
        movement_id=m.id,
        movement_type=m.movement_type,
        product_id=m.product_id,
        warehouse_id=m.warehouse_id,
        quantity=m.quantity,
        remaining_stock=m.remaining_stock,
        batch_id=m.batch_id,
        purchase_order_id=m.purchase_order_id,
        purchase_order_line_id=m.purchase_order_line_id,
        reference=m.reference,
        notes=m.notes,
        occurred_at=m.occurred_at,
    )


class MovementSelector(BaseSelector[InventoryMovement]):
    """Movement ledger read queries, oldest first."""

    def movements_for_purchase_order(self, po_id: UUID) -> list[MovementView]:
        stmt = (
            select(InventoryMovement)
            .where(InventoryMovement.purchase_order_id == po_id)
            .order_by(InventoryMovement.occurred_at, InventoryMovement.id)
        )
        return [_to_view(m) for m in self.session.execute(stmt).scalars()]

    def movements_for_product(
        self, product_id: str, warehouse_id: str
    ) -> list[MovementView]:
        stmt = (
            select(InventoryMovement)
            .where(
                InventoryMovement.product_id == product_id,
                InventoryMovement.warehouse_id == warehouse_id,
            )
            .order_by(InventoryMovement.occurred_at, InventoryMovement.id)
        )
        return [_to_view(m) for m in self.session.execute(stmt).scalars()]
