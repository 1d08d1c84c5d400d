"""
Inventory Kernel - batch allocation and receiving core

A transactional inventory core with:
- Batch-level stock with FIFO / LIFO / FEFO draw order
- All-or-nothing order allocation with exact reversal
- Partial, repeated purchase-order receiving
- Append-only movement ledger
"""

__version__ = "0.1.0"
