"""
BatchStore -- the only writer of batch quantities.

Responsibility:
    Reads allocation candidates under lock, applies guarded quantity
    changes, creates batches (receipts, opening stock) and appends the stock
    movement rows that go with them.

Architecture position:
    Kernel > Services -- flush-only; the caller owns the transaction.

Invariants enforced:
    - No oversell: ``decrement`` is a single guarded statement,
      ``UPDATE ... SET quantity = quantity - :q WHERE id = :id AND
      quantity >= :q``.  A concurrent writer that got there first makes the
      statement match zero rows instead of driving the batch negative.
    - Every guarded change bumps ``version``.
    - Candidates are locked (``SELECT ... FOR UPDATE``) in id order, so two
      transactions locking overlapping batch sets cannot deadlock.  On
      SQLite the transaction already holds the database write lock.

Failure modes:
    - BatchNotFoundError when a batch id does not resolve.
    - InvalidQuantityError on a non-positive or non-int quantity.
    - IntegrityError (from the CHECK constraints) if an increment would
      exceed the batch's original quantity.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import validate_quantity
from inventory_kernel.exceptions import BatchNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.batch import Batch
from inventory_kernel.models.inventory_movement import InventoryMovement, MovementType
from inventory_kernel.services.base import BaseService

logger = get_logger("services.batch_store")


def _eq_or_null(column, value):
    return column.is_(None) if value is None else column == value


class BatchStore(BaseService[Batch]):
    """Batch quantity writes and batch creation."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        batch_number_prefix: str = "BATCH",
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._batch_number_prefix = batch_number_prefix

    # -- reads -------------------------------------------------------------

    def _candidate_query(self, product_id: str, warehouse_id: str):
        return (
            select(Batch)
            .where(
                Batch.product_id == product_id,
                Batch.warehouse_id == warehouse_id,
                Batch.quantity > 0,
            )
            .order_by(Batch.id)
            .execution_options(populate_existing=True)
        )

    def candidates(self, product_id: str, warehouse_id: str) -> list[Batch]:
        """Unlocked read of the allocation candidates."""
        return list(
            self.session.execute(
                self._candidate_query(product_id, warehouse_id)
            ).scalars()
        )

    def lock_candidates(self, product_id: str, warehouse_id: str) -> list[Batch]:
        """Batches with stock for (product, warehouse), row-locked.

        Depleted batches are excluded; they stay in the table for audit but
        are never drawn from.
        """
        return list(
            self.session.execute(
                self._candidate_query(product_id, warehouse_id).with_for_update()
            ).scalars()
        )

    def refresh_candidates(self, product_id: str, warehouse_id: str) -> list[Batch]:
        """Re-read candidates after a lost guarded decrement."""
        self.session.expire_all()
        return self.lock_candidates(product_id, warehouse_id)

    def get(self, batch_id: UUID, *, for_update: bool = False) -> Batch:
        stmt = (
            select(Batch)
            .where(Batch.id == batch_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        batch = self.session.execute(stmt).scalar_one_or_none()
        if batch is None:
            raise BatchNotFoundError(str(batch_id))
        return batch

    def on_hand(self, product_id: str, warehouse_id: str) -> int:
        """Total on-hand quantity across all batches of a product."""
        total = self.session.execute(
            select(func.coalesce(func.sum(Batch.quantity), 0)).where(
                Batch.product_id == product_id,
                Batch.warehouse_id == warehouse_id,
            )
        ).scalar_one()
        return int(total)

    def find_mergeable(
        self,
        *,
        product_id: str,
        warehouse_id: str,
        source_po_line_id: UUID,
        unit_cost: Decimal,
        received_date: date,
        expiration_date: date | None,
        location_id: str | None,
    ) -> Batch | None:
        """An existing batch a receipt may merge into, locked, or None.

        Only an exact match on product, warehouse, originating PO line,
        unit cost, received date, expiration date and location qualifies.
        """
        stmt = (
            select(Batch)
            .where(
                Batch.product_id == product_id,
                Batch.warehouse_id == warehouse_id,
                Batch.source_po_line_id == source_po_line_id,
                Batch.unit_cost == unit_cost,
                Batch.received_date == received_date,
                _eq_or_null(Batch.expiration_date, expiration_date),
                _eq_or_null(Batch.location_id, location_id),
            )
            .order_by(Batch.id)
            .limit(1)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    # -- guarded writes ----------------------------------------------------

    def _expire_cached(self, batch_id: UUID) -> None:
        cached = self.session.identity_map.get(Session.identity_key(Batch, batch_id))
        if cached is not None:
            self.session.expire(cached)

    def decrement(self, batch_id: UUID, quantity: int) -> bool:
        """Take ``quantity`` off a batch unless that would go below zero.

        Returns:
            True if the row was updated; False if the batch no longer holds
            ``quantity`` (lost a race) or does not exist.
        """
        validate_quantity(quantity)
        result = self.session.execute(
            update(Batch)
            .where(Batch.id == batch_id, Batch.quantity >= quantity)
            .values(quantity=Batch.quantity - quantity, version=Batch.version + 1)
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(batch_id)
        applied = result.rowcount == 1
        if not applied:
            logger.warning(
                "batch_decrement_conflict",
                extra={"batch_id": str(batch_id), "quantity": quantity},
            )
        return applied

    def increment(self, batch_id: UUID, quantity: int, *, received: bool = False) -> None:
        """Add ``quantity`` back to a batch.

        ``received=True`` is a new receipt merged into the batch and grows
        ``original_quantity`` too.  Otherwise it is a reversal and the
        ``original_quantity >= quantity`` constraint bounds it.
        """
        validate_quantity(quantity)
        values = {
            "quantity": Batch.quantity + quantity,
            "version": Batch.version + 1,
        }
        if received:
            values["original_quantity"] = Batch.original_quantity + quantity
        result = self.session.execute(
            update(Batch)
            .where(Batch.id == batch_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(batch_id)
        if result.rowcount != 1:
            raise BatchNotFoundError(str(batch_id))

    # -- creation ----------------------------------------------------------

    def next_batch_number(self, received_date: date) -> str:
        return (
            f"{self._batch_number_prefix}-{received_date:%Y%m%d}-"
            f"{uuid4().hex[:8].upper()}"
        )

    def create_batch(
        self,
        *,
        product_id: str,
        warehouse_id: str,
        quantity: int,
        unit_cost: Decimal = Decimal("0"),
        received_date: date | None = None,
        expiration_date: date | None = None,
        location_id: str | None = None,
        supplier_reference: str | None = None,
        notes: str | None = None,
        source_po_line_id: UUID | None = None,
        batch_number: str | None = None,
    ) -> Batch:
        validate_quantity(quantity)
        if unit_cost < 0:
            raise ValueError(f"unit_cost must be >= 0, got {unit_cost}")
        received_date = received_date or self._clock.today()
        batch = Batch(
            batch_number=batch_number or self.next_batch_number(received_date),
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            original_quantity=quantity,
            unit_cost=unit_cost,
            received_date=received_date,
            expiration_date=expiration_date,
            location_id=location_id,
            supplier_reference=supplier_reference,
            notes=notes,
            source_po_line_id=source_po_line_id,
            version=0,
        )
        self.session.add(batch)
        self.session.flush()
        logger.info(
            "batch_created",
            extra={
                "batch_id": str(batch.id),
                "batch_number": batch.batch_number,
                "product_id": product_id,
                "warehouse_id": warehouse_id,
                "quantity": quantity,
            },
        )
        return batch

    def append_movement(
        self,
        *,
        movement_type: MovementType,
        product_id: str,
        warehouse_id: str,
        quantity: int,
        batch_id: UUID | None = None,
        purchase_order_id: UUID | None = None,
        purchase_order_line_id: UUID | None = None,
        reference: str | None = None,
        notes: str | None = None,
        occurred_at: datetime | None = None,
    ) -> InventoryMovement:
        """Append one movement row, snapshotting on-hand stock after it.

        Call after the batch change has been applied in this transaction.
        """
        movement = InventoryMovement(
            movement_type=movement_type.value,
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            remaining_stock=self.on_hand(product_id, warehouse_id),
            batch_id=batch_id,
            purchase_order_id=purchase_order_id,
            purchase_order_line_id=purchase_order_line_id,
            reference=reference,
            notes=notes,
            occurred_at=occurred_at or self._clock.now(),
        )
        self.session.add(movement)
        self.session.flush()
        return movement

    def register_opening_stock(
        self,
        *,
        product_id: str,
        warehouse_id: str,
        quantity: int,
        unit_cost: Decimal = Decimal("0"),
        received_date: date | None = None,
        expiration_date: date | None = None,
        location_id: str | None = None,
        batch_number: str | None = None,
        reference: str | None = None,
        notes: str | None = None,
    ) -> Batch:
        """Initial stock import: a batch plus its ``opening`` movement."""
        batch = self.create_batch(
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            unit_cost=unit_cost,
            received_date=received_date,
            expiration_date=expiration_date,
            location_id=location_id,
            notes=notes,
            batch_number=batch_number,
        )
        self.append_movement(
            movement_type=MovementType.OPENING,
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            batch_id=batch.id,
            reference=reference,
            notes=notes,
        )
        return batch
