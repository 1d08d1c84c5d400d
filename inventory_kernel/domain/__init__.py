"""
Pure domain layer.

Value types and rules with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (SystemClock excepted)

DTOs are immutable; OrderStatusPipeline is the one mutable value holder.
"""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.dtos import (
    AdjustmentResult,
    AllocationDraw,
    FulfillmentResult,
    LineAllocation,
    OrderLineRequest,
    PurchaseOrderLineSpec,
    ReceivingResult,
    RestoredQuantity,
    ReversalResult,
    validate_quantity,
)
from inventory_kernel.domain.order_pipeline import (
    OrderStatusPipeline,
    PipelineStage,
    ReservedStage,
)
from inventory_kernel.domain.strategy import AllocationStrategy

__all__ = [
    "AdjustmentResult",
    "AllocationDraw",
    "AllocationStrategy",
    "Clock",
    "DeterministicClock",
    "FulfillmentResult",
    "LineAllocation",
    "OrderLineRequest",
    "OrderStatusPipeline",
    "PipelineStage",
    "PurchaseOrderLineSpec",
    "ReceivingResult",
    "ReservedStage",
    "RestoredQuantity",
    "ReversalResult",
    "SystemClock",
    "validate_quantity",
]
