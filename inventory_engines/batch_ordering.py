"""
Batch ordering -- the allocation strategy selector.

Maps a strategy and a candidate batch set to the draw priority order.

    FIFO  received_date ascending
    LIFO  received_date descending
    FEFO  expiration_date ascending, undated batches after every dated one,
          then received_date ascending

Every strategy breaks remaining ties by batch id, so the order is total and
independent of the input order.  Batches with quantity 0 are dropped.

Pure: no I/O, no clock, inputs are never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable
from uuid import UUID

from inventory_kernel.domain.strategy import AllocationStrategy


@dataclass(frozen=True)
class BatchCandidate:
    """The fields of a batch that ordering and planning look at."""

    batch_id: UUID
    quantity: int
    received_date: date
    expiration_date: date | None = None

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError(
                f"Batch {self.batch_id} has negative quantity {self.quantity}"
            )


def _fifo_key(c: BatchCandidate):
    return (c.received_date, str(c.batch_id))


def _lifo_key(c: BatchCandidate):
    return (-c.received_date.toordinal(), str(c.batch_id))


def _fefo_key(c: BatchCandidate):
    # (False, date) sorts before (True, None); undated batches go last.
    undated = c.expiration_date is None
    return (
        undated,
        c.expiration_date or date.max,
        c.received_date,
        str(c.batch_id),
    )


_SORT_KEYS = {
    AllocationStrategy.FIFO: _fifo_key,
    AllocationStrategy.LIFO: _lifo_key,
    AllocationStrategy.FEFO: _fefo_key,
}


def order_batches(
    candidates: Iterable[BatchCandidate],
    strategy: AllocationStrategy | str,
) -> list[BatchCandidate]:
    """Draw-priority order over the candidates that still hold stock.

    Raises:
        UnknownStrategyError: If ``strategy`` is not FIFO, LIFO or FEFO.
    """
    key = _SORT_KEYS[AllocationStrategy.parse(strategy)]
    return sorted((c for c in candidates if c.quantity > 0), key=key)
