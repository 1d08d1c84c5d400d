"""Read-only selectors returning frozen DTOs."""

from inventory_kernel.selectors.allocation_selector import (
    AllocationSelector,
    AllocationView,
    BatchDraw,
    ProductAllocationSummary,
)
from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.selectors.batch_selector import BatchSelector, BatchView
from inventory_kernel.selectors.movement_selector import MovementSelector, MovementView

__all__ = [
    "AllocationSelector",
    "AllocationView",
    "BaseSelector",
    "BatchDraw",
    "BatchSelector",
    "BatchView",
    "MovementSelector",
    "MovementView",
    "ProductAllocationSummary",
]
