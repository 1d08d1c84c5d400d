"""
Module: inventory_kernel.models.inventory_movement
Responsibility: ORM persistence for the stock movement ledger written by
    receiving, opening-stock import and damage write-downs.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: no UPDATE, no DELETE (ORM listeners in db/immutability.py).
    - quantity is signed: positive for stock in, negative for write-downs.
      Zero is rejected (CHECK constraint).
    - remaining_stock is the product/warehouse on-hand total immediately after
      the movement, captured in the same transaction.

Failure modes:
    - ImmutabilityViolationError on any ORM UPDATE or DELETE.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UUIDString


class MovementType(str, Enum):
    """Why stock moved."""

    OPENING = "opening"
    INCOMING = "incoming"
    DAMAGED = "damaged"


class InventoryMovement(Base):
    """One immutable stock movement."""

    __tablename__ = "inventory_movements"

    __table_args__ = (
        CheckConstraint("quantity <> 0", name="ck_movement_quantity_nonzero"),
        Index("idx_movement_product_warehouse", "product_id", "warehouse_id"),
        Index("idx_movement_purchase_order", "purchase_order_id"),
        Index("idx_movement_batch", "batch_id"),
    )

    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)

    product_id: Mapped[str] = mapped_column(String(100), nullable=False)

    warehouse_id: Mapped[str] = mapped_column(String(100), nullable=False)

    quantity: Mapped[int] = mapped_column(nullable=False)

    remaining_stock: Mapped[int] = mapped_column(nullable=False)

    batch_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("product_batches.id"),
        nullable=True,
    )

    purchase_order_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("purchase_orders.id"),
        nullable=True,
    )

    purchase_order_line_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("purchase_order_lines.id"),
        nullable=True,
    )

    # Human-readable document reference (PO number, import file, ...)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryMovement {self.movement_type} product={self.product_id} "
            f"qty={self.quantity:+d}>"
        )
