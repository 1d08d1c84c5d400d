"""
ReversalService -- hands an order's allocations back to their batches.

Responsibility:
    On order deletion, read every allocation row of the order, add each
    row's quantity back to its batch, and delete the rows, all in one
    transaction.

Architecture:
    inventory_services layer.  Owns its transaction boundary.

Invariants:
    - Idempotent: an order with no allocation rows (never allocated, only
      non-product lines, or already reversed) is a successful no-op.
    - Exact inverse: batches get back exactly what the ledger says was
      drawn, so allocate-then-reverse leaves every batch as it was.
    - Allocation rows are locked before restoring, so two concurrent
      reversals of one order cannot both restore.

Failure modes:
    - PersistenceError if the store fails; nothing is partially restored.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from inventory_kernel.domain.dtos import RestoredQuantity, ReversalResult
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.allocation_ledger import AllocationLedger
from inventory_kernel.services.batch_store import BatchStore
from inventory_services._transactions import unit_of_work

logger = get_logger("services.reversal")


class ReversalService:
    """Reverses the allocations of one order."""

    def __init__(self, session: Session):
        self._session = session
        self._ledger = AllocationLedger(session)
        self._store = BatchStore(session)

    def reverse_allocations(self, order_id: str) -> ReversalResult:
        with LogContext.bind(order_id=order_id):
            logger.info("reversal_started")
            with unit_of_work(self._session, "reversal", order_id=order_id):
                entries = self._ledger.entries_for_order_for_update(order_id)
                if not entries:
                    logger.info("reversal_noop")
                    return ReversalResult(order_id, (), 0)

                per_batch: dict = {}
                for entry in entries:
                    per_batch[entry.batch_id] = (
                        per_batch.get(entry.batch_id, 0) + entry.quantity
                    )
                # Restore in batch-id order, the same order candidates are locked in
                restored = tuple(
                    RestoredQuantity(batch_id, quantity)
                    for batch_id, quantity in sorted(
                        per_batch.items(), key=lambda kv: str(kv[0])
                    )
                )
                for item in restored:
                    self._store.increment(item.batch_id, item.quantity)
                removed = self._ledger.delete_entries(entries)

            result = ReversalResult(order_id, restored, removed)
            logger.info(
                "reversal_completed",
                extra={
                    "allocations_removed": removed,
                    "batch_count": len(restored),
                    "total_restored": result.total_restored,
                },
            )
            return result
