"""
Inventory engines -- pure calculation, zero I/O.

    batch_ordering  strategy selector (FIFO / LIFO / FEFO draw priority)
    allocation      greedy draw planner
    tracer          INVENTORY_ENGINE_TRACE decorator
"""

from inventory_engines.allocation import AllocationPlan, plan_allocation, plan_draws
from inventory_engines.batch_ordering import BatchCandidate, order_batches
from inventory_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "AllocationPlan",
    "BatchCandidate",
    "compute_input_fingerprint",
    "order_batches",
    "plan_allocation",
    "plan_draws",
    "traced_engine",
]
