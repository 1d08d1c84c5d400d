"""ORM models for the inventory kernel."""

from inventory_kernel.models.allocation import Allocation
from inventory_kernel.models.batch import Batch
from inventory_kernel.models.inventory_movement import InventoryMovement, MovementType
from inventory_kernel.models.purchase_order import (
    RECEIVABLE_STATUSES,
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderStatus,
    derive_receipt_status,
)

__all__ = [
    "Allocation",
    "Batch",
    "InventoryMovement",
    "MovementType",
    "PurchaseOrder",
    "PurchaseOrderLine",
    "PurchaseOrderStatus",
    "RECEIVABLE_STATUSES",
    "derive_receipt_status",
]
