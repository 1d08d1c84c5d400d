"""
Module: inventory_kernel.models.allocation
Responsibility: ORM persistence for the allocation ledger -- one row per
    (order, order line, batch) draw.  The ledger is the only record of what
    was drawn from where, and the only path by which a reversal restores
    batch quantities precisely.
Architecture position: Kernel > Models.  May import from db/base.py and
    sibling models.  MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    - quantity > 0 (CHECK constraint).
    - One row per (order_id, order_line_id, batch_id) (UNIQUE constraint).
    - Never updated in place (ORM listener in db/immutability.py).  Rows
      are inserted by fulfillment and deleted by reversal, each inside the
      same transaction that moves the batch quantity.

Failure modes:
    - IntegrityError on duplicate draw rows or a non-positive quantity.
    - ImmutabilityViolationError on any ORM UPDATE.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import Base, UUIDString
from inventory_kernel.models.batch import Batch


class Allocation(Base):
    """
    A persisted draw of ``quantity`` units from one batch for one order line.

    Guarantees:
        - strategy records which draw order produced the row (FIFO/LIFO/FEFO).
        - allocated_at comes from the service's injected clock.
    """

    __tablename__ = "batch_allocations"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_allocation_quantity_positive"),
        UniqueConstraint(
            "order_id", "order_line_id", "batch_id", name="uq_allocation_draw"
        ),
        # Query: reversal / summary by order
        Index("idx_allocation_order", "order_id"),
        # Query: conservation checks per batch
        Index("idx_allocation_batch", "batch_id"),
    )

    order_id: Mapped[str] = mapped_column(String(100), nullable=False)

    order_line_id: Mapped[str] = mapped_column(String(100), nullable=False)

    product_id: Mapped[str] = mapped_column(String(100), nullable=False)

    warehouse_id: Mapped[str] = mapped_column(String(100), nullable=False)

    batch_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("product_batches.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(nullable=False)

    strategy: Mapped[str] = mapped_column(String(10), nullable=False)

    allocated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    batch: Mapped[Batch] = relationship(Batch)

    def __repr__(self) -> str:
        return (
            f"<Allocation order={self.order_id} line={self.order_line_id} "
            f"batch={self.batch_id} qty={self.quantity}>"
        )
