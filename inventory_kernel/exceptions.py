"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the allocation and receiving engines have to tell the user
*why* an order or a receipt was refused ("3 units short of SKU-1") and
decide whether to retry.  Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        orchestrator.fulfill_order(order_id, lines)
    except Exception as e:
        if "Insufficient" in str(e):  # FRAGILE - message might change
            show_shortage()

Example - RIGHT way (what this module enables):
    try:
        orchestrator.fulfill_order(order_id, lines)
    except FulfillmentError as e:
        api_response(code=e.code, line=e.order_line_id, short_by=e.shortfall)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from InventoryKernelError:

    InventoryKernelError (base)
    |
    +-- InvalidQuantityError
    +-- UnknownStrategyError
    |
    +-- AllocationError
    |   +-- InsufficientStockError
    |   +-- OrderAlreadyAllocatedError
    |   +-- InvalidOrderLinesError
    |
    +-- FulfillmentError
    |
    +-- ReceivingError
    |   +-- OverReceiptError
    |   +-- PurchaseOrderNotFoundError
    |   +-- PurchaseOrderLineNotFoundError
    |   +-- PurchaseOrderNotReceivableError
    |
    +-- BatchError
    |   +-- BatchNotFoundError
    |   +-- NegativeBatchQuantityError
    |
    +-- ConcurrencyError
    |   +-- AllocationContentionError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- PipelineError
    |   +-- ReservedStageError
    |   +-- StageNotFoundError
    |   +-- DuplicateStageError
    |
    +-- PersistenceError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                          | When Raised
-------------|-------------------------------|-----------------------------------
Input        | INVALID_QUANTITY              | Quantity <= 0 or not an integer
             | UNKNOWN_STRATEGY              | Strategy tag not FIFO/LIFO/FEFO
-------------|-------------------------------|-----------------------------------
Allocation   | INSUFFICIENT_STOCK            | Eligible batches cannot cover request
             | ORDER_ALREADY_ALLOCATED       | Order already has allocation rows
-------------|-------------------------------|-----------------------------------
Fulfillment  | FULFILLMENT_FAILED            | A line failed; order rolled back
-------------|-------------------------------|-----------------------------------
Receiving    | OVER_RECEIPT                  | Received-to-date would exceed ordered
             | PURCHASE_ORDER_NOT_FOUND      | PO id doesn't exist
             | PURCHASE_ORDER_LINE_NOT_FOUND | PO line id doesn't exist
             | PURCHASE_ORDER_NOT_RECEIVABLE | PO status does not accept receipts
-------------|-------------------------------|-----------------------------------
Batch        | BATCH_NOT_FOUND               | Batch id doesn't exist
             | NEGATIVE_BATCH_QUANTITY       | Decrement would go below zero
-------------|-------------------------------|-----------------------------------
Concurrency  | ALLOCATION_CONTENTION         | Batch kept changing under us
-------------|-------------------------------|-----------------------------------
Immutability | IMMUTABILITY_VIOLATION        | Modifying an append-only row
-------------|-------------------------------|-----------------------------------
Pipeline     | RESERVED_STAGE                | Touching the Ready to Ship stage
             | STAGE_NOT_FOUND               | Unknown stage name
             | DUPLICATE_STAGE               | Stage name already present
-------------|-------------------------------|-----------------------------------
Persistence  | PERSISTENCE_ERROR             | Connection loss, constraint failure

===============================================================================
HANDLING PATTERNS
===============================================================================

1. SHORTAGES ARE RECOVERABLE:

    except InsufficientStockError as e:
        offer_backorder(e.product_id, e.shortfall)

2. PERSISTENCE ERRORS ARE RETRYABLE (every top-level call is atomic):

    except (PersistenceError, AllocationContentionError):
        retry_whole_call()

3. OVER-RECEIPT IS NEVER CLAMPED:

    except OverReceiptError as e:
        reject(f"only {e.ordered - e.already_received} units outstanding")

===============================================================================
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Input validation


class InvalidQuantityError(InventoryKernelError):
    """A quantity argument violated the caller contract (must be a positive int)."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, reason: str):
        self.quantity = quantity
        self.reason = reason
        super().__init__(f"Invalid quantity {quantity!r}: {reason}")


class UnknownStrategyError(InventoryKernelError):
    """Allocation strategy tag is not one of FIFO, LIFO, FEFO."""

    code: str = "UNKNOWN_STRATEGY"

    def __init__(self, strategy: object):
        self.strategy = strategy
        super().__init__(f"Unknown allocation strategy: {strategy!r}")


# Allocation


class AllocationError(InventoryKernelError):
    """Base exception for allocation errors."""

    code: str = "ALLOCATION_ERROR"


class InsufficientStockError(AllocationError):
    """Eligible batch quantity cannot satisfy the requested quantity."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        product_id: str,
        requested: int,
        available: int,
        warehouse_id: str | None = None,
    ):
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}"
        )

    @property
    def shortfall(self) -> int:
        return self.requested - self.available


class OrderAlreadyAllocatedError(AllocationError):
    """Order already has allocation rows; allocating again would double-draw."""

    code: str = "ORDER_ALREADY_ALLOCATED"

    def __init__(self, order_id: str, allocation_count: int):
        self.order_id = order_id
        self.allocation_count = allocation_count
        super().__init__(
            f"Order {order_id} already has {allocation_count} allocation(s)"
        )


class InvalidOrderLinesError(AllocationError):
    """The order's line list cannot be allocated as given."""

    code: str = "INVALID_ORDER_LINES"

    def __init__(self, order_id: str, order_line_id: str, reason: str):
        self.order_id = order_id
        self.order_line_id = order_line_id
        self.reason = reason
        super().__init__(f"Order {order_id} line {order_line_id}: {reason}")


# Fulfillment


class FulfillmentError(InventoryKernelError):
    """
    An order line could not be allocated.

    Raised after every allocation made for the order in the same unit of
    work has been rolled back.  ``cause`` is the line-level error.
    """

    code: str = "FULFILLMENT_FAILED"

    def __init__(self, order_id: str, order_line_id: str, cause: Exception):
        self.order_id = order_id
        self.order_line_id = order_line_id
        self.cause = cause
        super().__init__(
            f"Order {order_id} not fulfilled: line {order_line_id} failed "
            f"({getattr(cause, 'code', type(cause).__name__)}: {cause})"
        )

    @property
    def shortfall(self) -> int | None:
        if isinstance(self.cause, InsufficientStockError):
            return self.cause.shortfall
        return None


# Receiving


class ReceivingError(InventoryKernelError):
    """Base exception for purchase-order receiving errors."""

    code: str = "RECEIVING_ERROR"


class OverReceiptError(ReceivingError):
    """Receipt would push received-to-date above the ordered quantity."""

    code: str = "OVER_RECEIPT"

    def __init__(
        self,
        po_line_id: str,
        already_received: int,
        ordered: int,
        attempted: int,
    ):
        self.po_line_id = po_line_id
        self.already_received = already_received
        self.ordered = ordered
        self.attempted = attempted
        super().__init__(
            f"Over-receipt on PO line {po_line_id}: "
            f"{already_received} received + {attempted} attempted "
            f"exceeds {ordered} ordered"
        )

    @property
    def attempted_total(self) -> int:
        return self.already_received + self.attempted


class PurchaseOrderNotFoundError(ReceivingError):
    """Purchase order with given ID was not found."""

    code: str = "PURCHASE_ORDER_NOT_FOUND"

    def __init__(self, po_id: str):
        self.po_id = po_id
        super().__init__(f"Purchase order not found: {po_id}")


class PurchaseOrderLineNotFoundError(ReceivingError):
    """Purchase order line with given ID was not found."""

    code: str = "PURCHASE_ORDER_LINE_NOT_FOUND"

    def __init__(self, po_line_id: str):
        self.po_line_id = po_line_id
        super().__init__(f"Purchase order line not found: {po_line_id}")


class PurchaseOrderNotReceivableError(ReceivingError):
    """Purchase order status does not accept receipts."""

    code: str = "PURCHASE_ORDER_NOT_RECEIVABLE"

    def __init__(self, po_id: str, status: str):
        self.po_id = po_id
        self.status = status
        super().__init__(
            f"Purchase order {po_id} cannot receive goods in status '{status}'"
        )


# Batches


class BatchError(InventoryKernelError):
    """Base exception for batch store errors."""

    code: str = "BATCH_ERROR"


class BatchNotFoundError(BatchError):
    """Batch with given ID was not found."""

    code: str = "BATCH_NOT_FOUND"

    def __init__(self, batch_id: str):
        self.batch_id = batch_id
        super().__init__(f"Batch not found: {batch_id}")


class NegativeBatchQuantityError(BatchError):
    """Decrement would drive a batch below zero."""

    code: str = "NEGATIVE_BATCH_QUANTITY"

    def __init__(self, batch_id: str, on_hand: int, attempted: int):
        self.batch_id = batch_id
        self.on_hand = on_hand
        self.attempted = attempted
        super().__init__(
            f"Batch {batch_id} has {on_hand} on hand; cannot remove {attempted}"
        )


# Concurrency


class ConcurrencyError(InventoryKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class AllocationContentionError(ConcurrencyError):
    """
    A batch kept changing between snapshot and guarded decrement.

    Transient: the whole top-level call may be retried.
    """

    code: str = "ALLOCATION_CONTENTION"

    def __init__(self, batch_id: str, attempts: int):
        self.batch_id = batch_id
        self.attempts = attempts
        super().__init__(
            f"Batch {batch_id} was modified concurrently; "
            f"gave up after {attempts} attempt(s)"
        )


# Immutability


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Order status pipeline


class PipelineError(InventoryKernelError):
    """Base exception for order status pipeline errors."""

    code: str = "PIPELINE_ERROR"


class ReservedStageError(PipelineError):
    """The reserved terminal stage cannot be removed, renamed or moved."""

    code: str = "RESERVED_STAGE"

    def __init__(self, stage: str, action: str):
        self.stage = stage
        self.action = action
        super().__init__(f"Stage '{stage}' is reserved and cannot be {action}")


class StageNotFoundError(PipelineError):
    """Stage name is not part of the pipeline."""

    code: str = "STAGE_NOT_FOUND"

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"Stage not found: {stage}")


class DuplicateStageError(PipelineError):
    """Stage name already exists in the pipeline."""

    code: str = "DUPLICATE_STAGE"

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"Stage already exists: {stage}")


# Persistence


class PersistenceError(InventoryKernelError):
    """
    The durable store failed (connection loss, constraint violation).

    No partial state survives: the unit of work was rolled back and the
    whole top-level call may be retried.
    """

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed in the durable store: {cause}")
