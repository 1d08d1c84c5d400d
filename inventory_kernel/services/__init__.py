"""Flush-only kernel services.  Callers own the transaction."""

from inventory_kernel.services.allocation_ledger import AllocationLedger
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.batch_store import BatchStore

__all__ = ["AllocationLedger", "BaseService", "BatchStore"]
