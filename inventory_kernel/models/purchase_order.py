"""
Module: inventory_kernel.models.purchase_order
Responsibility: ORM persistence for purchase orders and their lines, the
    counterparty of the receiving flow.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - 0 <= received_quantity <= ordered_quantity per line (CHECK constraint).
      The receiving service rejects over-receipt before the write; the
      constraint is the backstop.
    - ordered_quantity > 0 (CHECK constraint).
    - PurchaseOrder.status for receivable orders is derived from the lines by
      ``derive_receipt_status``; it is never set from outside the receiving
      service.

Failure modes:
    - IntegrityError if a write would push received_quantity outside its
      bounds, or on a duplicate po_number.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Iterable
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TimestampedBase, UUIDString


class PurchaseOrderStatus(str, Enum):
    """Lifecycle status of a purchase order.

    DRAFT and APPROVED are set by the purchasing collaborator.  From
    CONFIRMED on, the status follows the receipts.
    """

    DRAFT = "draft"
    APPROVED = "approved"
    CONFIRMED = "confirmed"
    PARTIALLY_RECEIVED = "partially_received"
    RECEIVED = "received"
    CLOSED = "closed"


RECEIVABLE_STATUSES = frozenset(
    {
        PurchaseOrderStatus.APPROVED,
        PurchaseOrderStatus.CONFIRMED,
        PurchaseOrderStatus.PARTIALLY_RECEIVED,
    }
)


def derive_receipt_status(
    current: str, lines: Iterable[tuple[int, int]]
) -> PurchaseOrderStatus:
    """Aggregate status from (received_quantity, ordered_quantity) pairs.

    ``received`` iff every line is complete; ``partially_received`` iff any
    line has stock in and at least one is incomplete; otherwise the current
    status is left unchanged.
    """
    pairs = list(lines)
    if pairs and all(received == ordered for received, ordered in pairs):
        return PurchaseOrderStatus.RECEIVED
    if any(received > 0 for received, _ in pairs):
        return PurchaseOrderStatus.PARTIALLY_RECEIVED
    return PurchaseOrderStatus(current)


class PurchaseOrder(TimestampedBase):
    """A purchase order header."""

    __tablename__ = "purchase_orders"

    __table_args__ = (
        Index("idx_purchase_order_status", "status"),
        Index("idx_purchase_order_warehouse", "warehouse_id"),
    )

    po_number: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    warehouse_id: Mapped[str] = mapped_column(String(100), nullable=False)

    supplier_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=PurchaseOrderStatus.CONFIRMED.value,
        nullable=False,
    )

    lines: Mapped[list["PurchaseOrderLine"]] = relationship(
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PurchaseOrderLine.line_number",
    )

    @property
    def is_receivable(self) -> bool:
        return PurchaseOrderStatus(self.status) in RECEIVABLE_STATUSES

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.po_number} status={self.status}>"


class PurchaseOrderLine(TimestampedBase):
    """
    One product line of a purchase order.

    Guarantees:
        - received_quantity only ever grows (receiving service).
        - received_quantity never exceeds ordered_quantity.
    """

    __tablename__ = "purchase_order_lines"

    __table_args__ = (
        CheckConstraint(
            "ordered_quantity > 0", name="ck_po_line_ordered_positive"
        ),
        CheckConstraint(
            "received_quantity >= 0 AND received_quantity <= ordered_quantity",
            name="ck_po_line_received_bounds",
        ),
        Index("idx_po_line_purchase_order", "purchase_order_id"),
    )

    purchase_order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("purchase_orders.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(nullable=False)

    product_id: Mapped[str] = mapped_column(String(100), nullable=False)

    ordered_quantity: Mapped[int] = mapped_column(nullable=False)

    received_quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    purchase_order: Mapped[PurchaseOrder] = relationship(back_populates="lines")

    @property
    def outstanding_quantity(self) -> int:
        return self.ordered_quantity - self.received_quantity

    def __repr__(self) -> str:
        return (
            f"<PurchaseOrderLine {self.line_number} product={self.product_id} "
            f"{self.received_quantity}/{self.ordered_quantity}>"
        )
