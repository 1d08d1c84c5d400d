"""
Domain DTOs -- frozen request/result types crossing the service boundary.

Responsibility:
    Define the shapes callers hand to the allocation and receiving services
    and the results they get back.  No database identity, no I/O.

Architecture position:
    Kernel > Domain.  Imported by engines, services and selectors alike.

Invariants enforced:
    - Quantities are whole units (int), never float or Decimal.
    - AllocationDraw.quantity > 0 (a draw of nothing is not a draw).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from inventory_kernel.domain.strategy import AllocationStrategy
from inventory_kernel.exceptions import InvalidQuantityError


def validate_quantity(quantity: object, what: str = "quantity") -> int:
    """Return ``quantity`` if it is a positive int, else raise.

    bool is rejected even though it subclasses int.

    Raises:
        InvalidQuantityError: On non-int, bool, zero or negative values.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError(quantity, f"{what} must be a whole number of units")
    if quantity <= 0:
        raise InvalidQuantityError(quantity, f"{what} must be greater than zero")
    return quantity


@dataclass(frozen=True)
class AllocationDraw:
    """Quantity drawn from one batch."""

    batch_id: UUID
    quantity: int

    def __post_init__(self) -> None:
        validate_quantity(self.quantity, "draw quantity")


@dataclass(frozen=True)
class OrderLineRequest:
    """One order line handed to the fulfillment orchestrator.

    ``product_id`` may be None for non-product lines (services, fees);
    those lines are not allocated.
    """

    order_line_id: str
    product_id: str | None
    quantity: int


@dataclass(frozen=True)
class LineAllocation:
    """Draws made for one order line."""

    order_line_id: str
    product_id: str
    requested: int
    draws: tuple[AllocationDraw, ...]

    @property
    def allocated(self) -> int:
        return sum(d.quantity for d in self.draws)


@dataclass(frozen=True)
class FulfillmentResult:
    """Outcome of a successful fulfill_order call."""

    order_id: str
    warehouse_id: str
    strategy: AllocationStrategy
    lines: tuple[LineAllocation, ...]
    allocated_at: datetime

    @property
    def total_allocated(self) -> int:
        return sum(line.allocated for line in self.lines)

    @property
    def batch_count(self) -> int:
        return len({d.batch_id for line in self.lines for d in line.draws})


@dataclass(frozen=True)
class RestoredQuantity:
    """Quantity handed back to one batch by a reversal."""

    batch_id: UUID
    quantity: int


@dataclass(frozen=True)
class ReversalResult:
    """Outcome of reverse_allocations."""

    order_id: str
    restored: tuple[RestoredQuantity, ...]
    allocations_removed: int

    @property
    def was_noop(self) -> bool:
        return self.allocations_removed == 0

    @property
    def total_restored(self) -> int:
        return sum(r.quantity for r in self.restored)


@dataclass(frozen=True)
class PurchaseOrderLineSpec:
    """One line of a purchase order being registered."""

    product_id: str
    ordered_quantity: int
    unit_price: Decimal


@dataclass(frozen=True)
class ReceivingResult:
    """Outcome of a single receipt against a PO line."""

    po_id: UUID
    po_line_id: UUID
    product_id: str
    quantity_received: int
    received_quantity: int
    ordered_quantity: int
    batch_id: UUID
    batch_created: bool
    movement_id: UUID
    po_status: str
    remaining_stock: int

    @property
    def outstanding(self) -> int:
        return self.ordered_quantity - self.received_quantity

    @property
    def line_complete(self) -> bool:
        return self.received_quantity == self.ordered_quantity


@dataclass(frozen=True)
class AdjustmentResult:
    """Outcome of a recorded damage / write-down against a batch."""

    batch_id: UUID
    quantity_removed: int
    batch_quantity: int
    movement_id: UUID
    remaining_stock: int
