"""
Module: inventory_kernel.models.batch
Responsibility: ORM persistence for product batches -- discrete, dated lots of
    on-hand stock for one product in one warehouse, each with its own unit cost
    and optional expiration date.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - quantity >= 0 at all times (CHECK constraint; BatchStore decrements
      with a floor guard so the constraint is a backstop, not the mechanism).
    - quantity <= original_quantity (CHECK constraint).  Reversal can never
      hand back more than was received.
    - Batches are never deleted.  A depleted batch stays as audit trail and
      is simply never selected for allocation.

Failure modes:
    - IntegrityError if a write would violate either CHECK constraint.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TimestampedBase, UUIDString


class Batch(TimestampedBase):
    """
    One inventory lot.

    Contract:
        ``quantity`` is on-hand stock; ``original_quantity`` is everything
        ever received into the lot (grows only when a receipt merges into it).
        Quantity changes go through BatchStore's guarded UPDATE statements,
        which also bump ``version``.

    Non-goals:
        - Does NOT know about allocations; those reference the batch.
        - Does NOT reference the catalog.  product_id and warehouse_id are
          opaque strings owned by external collaborators.
    """

    __tablename__ = "product_batches"

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_batch_quantity_non_negative"),
        CheckConstraint(
            "original_quantity >= quantity", name="ck_batch_quantity_le_original"
        ),
        # Query: allocation candidates for a product in a warehouse
        Index("idx_batch_product_warehouse", "product_id", "warehouse_id"),
        # Query: FIFO/LIFO ordering
        Index("idx_batch_received_date", "product_id", "received_date"),
        # Query: FEFO ordering
        Index("idx_batch_expiration_date", "product_id", "expiration_date"),
        Index("idx_batch_source_po_line", "source_po_line_id"),
    )

    batch_number: Mapped[str] = mapped_column(String(100), nullable=False)

    product_id: Mapped[str] = mapped_column(String(100), nullable=False)

    warehouse_id: Mapped[str] = mapped_column(String(100), nullable=False)

    quantity: Mapped[int] = mapped_column(nullable=False)

    original_quantity: Mapped[int] = mapped_column(nullable=False)

    unit_cost: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    received_date: Mapped[date] = mapped_column(Date, nullable=False)

    expiration_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    location_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    supplier_reference: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Receipt provenance; NULL for opening stock
    source_po_line_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    # Bumped by every guarded quantity UPDATE
    version: Mapped[int] = mapped_column(nullable=False, default=0)

    @property
    def is_depleted(self) -> bool:
        return self.quantity == 0

    def __repr__(self) -> str:
        return (
            f"<Batch {self.batch_number} product={self.product_id} "
            f"qty={self.quantity}/{self.original_quantity}>"
        )
