"""
AllocationLedger -- writes and removes allocation rows.

Responsibility:
    Persist one Allocation row per (order line, batch) draw, and hand the
    reversal path the exact rows to restore and delete.

Architecture position:
    Kernel > Services -- flush-only; the caller owns the transaction.

Invariants enforced:
    - Rows are inserted or deleted, never updated (see db/immutability.py).
    - Draws for the same (order line, batch) pair are merged into one row
      before insert, matching the table's unique constraint.
    - Two transactions allocating the same order are serialised on the order
      key (``lock_order``) before either checks for existing rows.
"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select, text

from inventory_kernel.domain.dtos import AllocationDraw
from inventory_kernel.domain.strategy import AllocationStrategy
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.allocation import Allocation
from inventory_kernel.services.base import BaseService

logger = get_logger("services.allocation_ledger")


class AllocationLedger(BaseService[Allocation]):
    """Allocation row persistence."""

    def record(
        self,
        *,
        order_id: str,
        order_line_id: str,
        product_id: str,
        warehouse_id: str,
        draws: Sequence[AllocationDraw],
        strategy: AllocationStrategy,
        allocated_at: datetime,
    ) -> list[Allocation]:
        merged: dict[UUID, int] = {}
        for draw in draws:
            merged[draw.batch_id] = merged.get(draw.batch_id, 0) + draw.quantity

        rows = [
            Allocation(
                order_id=order_id,
                order_line_id=order_line_id,
                product_id=product_id,
                warehouse_id=warehouse_id,
                batch_id=batch_id,
                quantity=quantity,
                strategy=strategy.value,
                allocated_at=allocated_at,
            )
            for batch_id, quantity in merged.items()
        ]
        self.session.add_all(rows)
        self.session.flush()
        logger.debug(
            "allocation_rows_recorded",
            extra={
                "order_id": order_id,
                "order_line_id": order_line_id,
                "row_count": len(rows),
            },
        )
        return rows

    def _for_order(self, order_id: str):
        return (
            select(Allocation)
            .where(Allocation.order_id == order_id)
            .order_by(Allocation.order_line_id, Allocation.batch_id)
        )

    def entries_for_order(self, order_id: str) -> list[Allocation]:
        return list(self.session.execute(self._for_order(order_id)).scalars())

    def entries_for_order_for_update(self, order_id: str) -> list[Allocation]:
        """Rows for an order, locked so two reversals cannot both restore."""
        return list(
            self.session.execute(
                self._for_order(order_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalars()
        )

    def delete_entries(self, entries: Sequence[Allocation]) -> int:
        for entry in entries:
            self.session.delete(entry)
        self.session.flush()
        return len(entries)

    def count_for_order(self, order_id: str) -> int:
        return int(
            self.session.execute(
                select(func.count())
                .select_from(Allocation)
                .where(Allocation.order_id == order_id)
            ).scalar_one()
        )

    def lock_order(self, order_id: str) -> None:
        """Hold a transaction-scoped lock on ``order_id``.

        PostgreSQL takes ``pg_advisory_xact_lock`` on a hash of the order id;
        the lock is released at commit or rollback.  SQLite transactions
        already hold the database write lock (BEGIN IMMEDIATE).
        """
        if self.session.get_bind().dialect.name != "postgresql":
            return
        self.session.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:order_id))"),
            {"order_id": order_id},
        )
