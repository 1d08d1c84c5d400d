"""
AllocationStrategy -- the closed set of batch draw orders.

Responsibility:
    Names the three supported strategies and normalises caller-supplied
    tags ("fifo", "FEFO", AllocationStrategy.LIFO) into the enum.

Architecture position:
    Kernel > Domain -- pure value type, zero I/O.
"""

from __future__ import annotations

from enum import Enum

from inventory_kernel.exceptions import UnknownStrategyError


class AllocationStrategy(str, Enum):
    """Batch draw-order strategies."""

    FIFO = "FIFO"  # First in, first out: oldest received date first
    LIFO = "LIFO"  # Last in, first out: newest received date first
    FEFO = "FEFO"  # First expire, first out: soonest expiration first

    @classmethod
    def parse(cls, value: AllocationStrategy | str) -> AllocationStrategy:
        """Accept an enum member or a case-insensitive tag.

        Raises:
            UnknownStrategyError: If the tag is not FIFO, LIFO or FEFO.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise UnknownStrategyError(value)
