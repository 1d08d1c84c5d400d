"""
Inventory services -- stateful orchestration over the kernel.

Each public call of FulfillmentOrchestrator, ReversalService and
ReceivingReconciler is one atomic unit of work and owns its commit.
BatchAllocator runs inside its caller's transaction.
"""

from inventory_services.allocator import BatchAllocator
from inventory_services.fulfillment_orchestrator import FulfillmentOrchestrator
from inventory_services.receiving_service import ReceivingReconciler
from inventory_services.reversal_service import ReversalService

__all__ = [
    "BatchAllocator",
    "FulfillmentOrchestrator",
    "ReceivingReconciler",
    "ReversalService",
]
