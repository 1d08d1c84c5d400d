"""
ReceivingReconciler -- purchase-order receipts into stock.

Responsibility:
    Register purchase orders, accept partial and repeated receipts against
    their lines, and turn each receipt into stock: a batch (new, or merged
    when configured and identical), an ``incoming`` movement row, and a
    recomputed purchase-order status.  Damage write-downs against a batch
    also live here, since they are the other writer of the movement ledger.

Architecture:
    inventory_services layer.  Each public method owns its transaction:
    the line update, batch write, movement insert and status update of a
    receipt commit together or not at all.

Invariants:
    - 0 <= received_quantity <= ordered_quantity; over-receipt is always
      rejected, never clamped.
    - received_quantity only grows.
    - Status is derived from the lines: ``received`` when every line is
      complete, ``partially_received`` when some stock is in, otherwise
      unchanged.
    - New batch per receipt unless ``merge_identical_lots`` is on and an
      existing batch matches cost, dates, location and originating line.

Failure modes:
    - InvalidQuantityError on a non-positive quantity.
    - OverReceiptError when the receipt would exceed the ordered quantity.
    - PurchaseOrderLineNotFoundError / PurchaseOrderNotFoundError.
    - PurchaseOrderNotReceivableError for draft, received or closed orders.
    - NegativeBatchQuantityError when a write-down exceeds the batch.
    - PersistenceError if the store fails.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import (
    AdjustmentResult,
    PurchaseOrderLineSpec,
    ReceivingResult,
    validate_quantity,
)
from inventory_kernel.exceptions import (
    NegativeBatchQuantityError,
    OverReceiptError,
    PurchaseOrderLineNotFoundError,
    PurchaseOrderNotFoundError,
    PurchaseOrderNotReceivableError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.inventory_movement import MovementType
from inventory_kernel.models.purchase_order import (
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderStatus,
    derive_receipt_status,
)
from inventory_kernel.services.batch_store import BatchStore
from inventory_services._transactions import unit_of_work

logger = get_logger("services.receiving")


class ReceivingReconciler:
    """Purchase-order receiving and stock write-downs."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        merge_identical_lots: bool = False,
        batch_number_prefix: str = "BATCH",
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._merge_identical_lots = merge_identical_lots
        self._store = BatchStore(
            session, clock=self._clock, batch_number_prefix=batch_number_prefix
        )

    # =========================================================================
    # Purchase orders
    # =========================================================================

    def register_purchase_order(
        self,
        po_number: str,
        warehouse_id: str,
        lines: Sequence[PurchaseOrderLineSpec],
        supplier_id: str | None = None,
        status: PurchaseOrderStatus | str = PurchaseOrderStatus.CONFIRMED,
    ) -> UUID:
        """Persist a purchase order with nothing received yet.

        Returns:
            The new purchase order id.
        """
        status = PurchaseOrderStatus(status)
        if status in (PurchaseOrderStatus.PARTIALLY_RECEIVED, PurchaseOrderStatus.RECEIVED):
            raise ValueError(f"Status {status.value!r} is derived from receipts")
        if not lines:
            raise ValueError("A purchase order needs at least one line")
        for spec in lines:
            validate_quantity(spec.ordered_quantity, "ordered quantity")
            if spec.unit_price < 0:
                raise ValueError(f"unit_price must be >= 0, got {spec.unit_price}")

        with unit_of_work(self._session, "purchase_order_registration", po_number=po_number):
            po = PurchaseOrder(
                po_number=po_number,
                warehouse_id=warehouse_id,
                supplier_id=supplier_id,
                status=status.value,
            )
            po.lines = [
                PurchaseOrderLine(
                    line_number=i,
                    product_id=spec.product_id,
                    ordered_quantity=spec.ordered_quantity,
                    received_quantity=0,
                    unit_price=spec.unit_price,
                )
                for i, spec in enumerate(lines, start=1)
            ]
            self._session.add(po)
            self._session.flush()

        logger.info(
            "purchase_order_registered",
            extra={
                "po_id": str(po.id),
                "po_number": po_number,
                "line_count": len(lines),
                "status": status.value,
            },
        )
        return po.id

    # =========================================================================
    # Receiving
    # =========================================================================

    def receive(
        self,
        po_line_id: UUID,
        quantity_to_receive: int,
        *,
        unit_cost: Decimal | None = None,
        received_date: date | None = None,
        expiration_date: date | None = None,
        location_id: str | None = None,
        supplier_reference: str | None = None,
        notes: str | None = None,
    ) -> ReceivingResult:
        """Receive ``quantity_to_receive`` units against one PO line."""
        validate_quantity(quantity_to_receive, "quantity to receive")
        t0 = time.monotonic()

        with unit_of_work(self._session, "receipt", po_line_id=str(po_line_id)):
            # Lock order is always PO header, then line (same as receive_many)
            po_id = self._session.execute(
                select(PurchaseOrderLine.purchase_order_id).where(
                    PurchaseOrderLine.id == po_line_id
                )
            ).scalar_one_or_none()
            if po_id is None:
                raise PurchaseOrderLineNotFoundError(str(po_line_id))
            po = self._lock_receivable_po(po_id)
            line = self._lock_line(po_line_id)
            with LogContext.bind(po_id=str(po.id)):
                result = self._receive_line(
                    po,
                    line,
                    quantity_to_receive,
                    unit_cost=unit_cost,
                    received_date=received_date,
                    expiration_date=expiration_date,
                    location_id=location_id,
                    supplier_reference=supplier_reference,
                    notes=notes,
                )
                status = self._refresh_status(po)

        result = _with_status(result, status)
        logger.info(
            "receipt_completed",
            extra={
                "po_id": str(result.po_id),
                "po_line_id": str(po_line_id),
                "quantity": quantity_to_receive,
                "received_quantity": result.received_quantity,
                "ordered_quantity": result.ordered_quantity,
                "po_status": status,
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            },
        )
        return result

    def receive_many(
        self,
        po_id: UUID,
        receipts: Sequence[tuple[UUID, int]],
        *,
        received_date: date | None = None,
        location_id: str | None = None,
        notes: str | None = None,
    ) -> list[ReceivingResult]:
        """Receive several lines of one PO as a single atomic action.

        Any failing line rejects the whole call.  The status is recomputed
        once, after every line has been applied.
        """
        if not receipts:
            raise ValueError("receive_many() needs at least one receipt")
        for _, quantity in receipts:
            validate_quantity(quantity, "quantity to receive")

        with LogContext.bind(po_id=str(po_id)):
            with unit_of_work(self._session, "multi_line_receipt", po_id=str(po_id)):
                po = self._lock_receivable_po(po_id)
                results = []
                for po_line_id, quantity in receipts:
                    line = self._lock_line(po_line_id)
                    if line.purchase_order_id != po.id:
                        raise PurchaseOrderLineNotFoundError(str(po_line_id))
                    results.append(
                        self._receive_line(
                            po,
                            line,
                            quantity,
                            received_date=received_date,
                            location_id=location_id,
                            notes=notes,
                        )
                    )
                status = self._refresh_status(po)

            logger.info(
                "multi_line_receipt_completed",
                extra={
                    "line_count": len(results),
                    "total_quantity": sum(q for _, q in receipts),
                    "po_status": status,
                },
            )
        return [_with_status(r, status) for r in results]

    # =========================================================================
    # Write-downs
    # =========================================================================

    def record_damage(
        self, batch_id: UUID, quantity: int, notes: str | None = None
    ) -> AdjustmentResult:
        """Remove damaged units from a batch and log a negative movement."""
        validate_quantity(quantity, "damaged quantity")
        with unit_of_work(self._session, "damage_write_down", batch_id=str(batch_id)):
            batch = self._store.get(batch_id, for_update=True)
            on_hand = batch.quantity
            if not self._store.decrement(batch_id, quantity):
                raise NegativeBatchQuantityError(str(batch_id), on_hand, quantity)
            movement = self._store.append_movement(
                movement_type=MovementType.DAMAGED,
                product_id=batch.product_id,
                warehouse_id=batch.warehouse_id,
                quantity=-quantity,
                batch_id=batch_id,
                reference=batch.batch_number,
                notes=notes,
            )
            result = AdjustmentResult(
                batch_id=batch_id,
                quantity_removed=quantity,
                batch_quantity=on_hand - quantity,
                movement_id=movement.id,
                remaining_stock=movement.remaining_stock,
            )

        logger.info(
            "damage_recorded",
            extra={
                "batch_id": str(batch_id),
                "quantity": quantity,
                "batch_quantity": result.batch_quantity,
            },
        )
        return result

    # =========================================================================
    # Internals (flush-only, inside the caller's unit of work)
    # =========================================================================

    def _lock_line(self, po_line_id: UUID) -> PurchaseOrderLine:
        line = self._session.execute(
            select(PurchaseOrderLine)
            .where(PurchaseOrderLine.id == po_line_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if line is None:
            raise PurchaseOrderLineNotFoundError(str(po_line_id))
        return line

    def _lock_receivable_po(self, po_id: UUID) -> PurchaseOrder:
        po = self._session.execute(
            select(PurchaseOrder)
            .where(PurchaseOrder.id == po_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if po is None:
            raise PurchaseOrderNotFoundError(str(po_id))
        if not po.is_receivable:
            raise PurchaseOrderNotReceivableError(str(po_id), po.status)
        return po

    def _receive_line(
        self,
        po: PurchaseOrder,
        line: PurchaseOrderLine,
        quantity: int,
        *,
        unit_cost: Decimal | None = None,
        received_date: date | None = None,
        expiration_date: date | None = None,
        location_id: str | None = None,
        supplier_reference: str | None = None,
        notes: str | None = None,
    ) -> ReceivingResult:
        already = line.received_quantity
        if already + quantity > line.ordered_quantity:
            logger.warning(
                "over_receipt_rejected",
                extra={
                    "po_line_id": str(line.id),
                    "already_received": already,
                    "ordered": line.ordered_quantity,
                    "attempted": quantity,
                },
            )
            raise OverReceiptError(
                str(line.id), already, line.ordered_quantity, quantity
            )

        line.received_quantity = already + quantity
        self._session.flush()

        unit_cost = line.unit_price if unit_cost is None else unit_cost
        received_date = received_date or self._clock.today()

        batch = None
        if self._merge_identical_lots:
            batch = self._store.find_mergeable(
                product_id=line.product_id,
                warehouse_id=po.warehouse_id,
                source_po_line_id=line.id,
                unit_cost=unit_cost,
                received_date=received_date,
                expiration_date=expiration_date,
                location_id=location_id,
            )
        if batch is not None:
            batch_id = batch.id
            self._store.increment(batch_id, quantity, received=True)
            created = False
        else:
            batch_id = self._store.create_batch(
                product_id=line.product_id,
                warehouse_id=po.warehouse_id,
                quantity=quantity,
                unit_cost=unit_cost,
                received_date=received_date,
                expiration_date=expiration_date,
                location_id=location_id,
                supplier_reference=supplier_reference or po.po_number,
                notes=notes,
                source_po_line_id=line.id,
            ).id
            created = True

        movement = self._store.append_movement(
            movement_type=MovementType.INCOMING,
            product_id=line.product_id,
            warehouse_id=po.warehouse_id,
            quantity=quantity,
            batch_id=batch_id,
            purchase_order_id=po.id,
            purchase_order_line_id=line.id,
            reference=po.po_number,
            notes=notes,
        )
        return ReceivingResult(
            po_id=po.id,
            po_line_id=line.id,
            product_id=line.product_id,
            quantity_received=quantity,
            received_quantity=line.received_quantity,
            ordered_quantity=line.ordered_quantity,
            batch_id=batch_id,
            batch_created=created,
            movement_id=movement.id,
            po_status=po.status,
            remaining_stock=movement.remaining_stock,
        )

    def _refresh_status(self, po: PurchaseOrder) -> str:
        status = derive_receipt_status(
            po.status,
            ((l.received_quantity, l.ordered_quantity) for l in po.lines),
        )
        if status.value != po.status:
            logger.info(
                "purchase_order_status_changed",
                extra={"po_id": str(po.id), "from": po.status, "to": status.value},
            )
            po.status = status.value
            self._session.flush()
        return po.status


def _with_status(result: ReceivingResult, status: str) -> ReceivingResult:
    return replace(result, po_status=status)
