"""
ORM-level append-only enforcement.

===============================================================================
WHAT IS PROTECTED
===============================================================================

  InventoryMovement -- receiving / adjustment ledger.  Never updated, never
                       deleted.  Corrections are new rows with signed
                       quantities.

  Allocation        -- order allocation ledger.  Never updated in place.
                       Deletion IS allowed: the reversal path removes an
                       order's rows in the same unit of work that restores
                       the batch quantities.

Batch quantity changes go through guarded SQL UPDATE statements in
BatchStore; Core-level UPDATEs do not fire these mapper listeners, and
batches are intentionally not covered here.

To temporarily disable (TESTS ONLY - never in production):

    from inventory_kernel.db.immutability import unregister_immutability_listeners
    unregister_immutability_listeners()
    # ... do forbidden operation ...
    register_immutability_listeners()

===============================================================================
"""

from sqlalchemy import event

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(entity_type: str, target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_movement_update(mapper, connection, target):
    """Inventory movements are immutable once written."""
    _block(
        "InventoryMovement", target, "UPDATE",
        "Inventory movements are append-only and cannot be modified",
    )


def _check_movement_delete(mapper, connection, target):
    """Inventory movements are never deleted."""
    _block(
        "InventoryMovement", target, "DELETE",
        "Inventory movements are append-only and cannot be deleted",
    )


def _check_allocation_update(mapper, connection, target):
    """Allocation rows are created and deleted, never updated in place."""
    _block(
        "Allocation", target, "UPDATE",
        "Allocations cannot be modified; reverse the order instead",
    )


def register_immutability_listeners():
    """
    Register all append-only enforcement event listeners (idempotent).

    Call this after all models are imported but before any database
    operations begin.  init_engine_from_url() does this for you.
    """
    from inventory_kernel.models.allocation import Allocation
    from inventory_kernel.models.inventory_movement import InventoryMovement

    listeners = (
        (InventoryMovement, "before_update", _check_movement_update),
        (InventoryMovement, "before_delete", _check_movement_delete),
        (Allocation, "before_update", _check_allocation_update),
    )
    for target, event_name, fn in listeners:
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove append-only enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    from inventory_kernel.models.allocation import Allocation
    from inventory_kernel.models.inventory_movement import InventoryMovement

    _safe_remove_listener(InventoryMovement, "before_update", _check_movement_update)
    _safe_remove_listener(InventoryMovement, "before_delete", _check_movement_delete)
    _safe_remove_listener(Allocation, "before_update", _check_allocation_update)
