"""
Tests for the batch ordering engine (strategy selector).

Covers:
- FIFO / LIFO / FEFO priority order
- Undated batches under FEFO
- Tie-breaking by batch id
- Depleted batches dropped
- Strategy tag parsing
"""

from datetime import date
from uuid import UUID, uuid4

import pytest

from inventory_engines.batch_ordering import BatchCandidate, order_batches
from inventory_kernel.domain.strategy import AllocationStrategy
from inventory_kernel.exceptions import UnknownStrategyError


def _candidate(received, quantity=5, expiration=None, batch_id=None):
    return BatchCandidate(
        batch_id=batch_id or uuid4(),
        quantity=quantity,
        received_date=received,
        expiration_date=expiration,
    )


class TestFifoLifo:
    def setup_method(self):
        self.jan = _candidate(date(2024, 1, 1))
        self.feb = _candidate(date(2024, 2, 1))
        self.mar = _candidate(date(2024, 3, 1))
        self.shuffled = [self.feb, self.mar, self.jan]

    def test_fifo_oldest_first(self):
        ordered = order_batches(self.shuffled, AllocationStrategy.FIFO)
        assert ordered == [self.jan, self.feb, self.mar]

    def test_lifo_newest_first(self):
        ordered = order_batches(self.shuffled, AllocationStrategy.LIFO)
        assert ordered == [self.mar, self.feb, self.jan]

    def test_input_not_mutated(self):
        before = list(self.shuffled)
        order_batches(self.shuffled, "FIFO")
        assert self.shuffled == before


class TestFefo:
    def test_soonest_expiration_first(self):
        late = _candidate(date(2024, 1, 1), expiration=date(2024, 12, 1))
        soon = _candidate(date(2024, 2, 1), expiration=date(2024, 6, 1))
        assert order_batches([late, soon], "FEFO") == [soon, late]

    def test_undated_batches_after_dated(self):
        undated_old = _candidate(date(2023, 1, 1))
        dated = _candidate(date(2024, 5, 1), expiration=date(2030, 1, 1))
        undated_new = _candidate(date(2024, 1, 1))

        ordered = order_batches([undated_new, undated_old, dated], "FEFO")

        assert ordered[0] == dated
        # undated ones fall back to received date
        assert ordered[1:] == [undated_old, undated_new]

    def test_same_expiration_uses_received_date(self):
        exp = date(2024, 9, 1)
        older = _candidate(date(2024, 1, 1), expiration=exp)
        newer = _candidate(date(2024, 2, 1), expiration=exp)
        assert order_batches([newer, older], "FEFO") == [older, newer]


class TestTieBreaking:
    @pytest.mark.parametrize("strategy", list(AllocationStrategy))
    def test_same_dates_ordered_by_batch_id(self, strategy):
        low = _candidate(
            date(2024, 1, 1), batch_id=UUID("00000000-0000-0000-0000-000000000001")
        )
        high = _candidate(
            date(2024, 1, 1), batch_id=UUID("ffffffff-0000-0000-0000-000000000000")
        )
        assert order_batches([high, low], strategy) == [low, high]
        assert order_batches([low, high], strategy) == [low, high]


class TestFiltering:
    def test_depleted_batches_dropped(self):
        empty = _candidate(date(2024, 1, 1), quantity=0)
        full = _candidate(date(2024, 2, 1), quantity=3)
        assert order_batches([empty, full], "FIFO") == [full]

    def test_empty_input(self):
        assert order_batches([], "LIFO") == []

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValueError):
            _candidate(date(2024, 1, 1), quantity=-1)


class TestStrategyTag:
    @pytest.mark.parametrize("tag", ["fifo", " FIFO ", "Fifo"])
    def test_case_insensitive(self, tag):
        a = _candidate(date(2024, 1, 1))
        b = _candidate(date(2024, 2, 1))
        assert order_batches([b, a], tag) == [a, b]

    def test_unknown_strategy(self):
        with pytest.raises(UnknownStrategyError) as exc_info:
            order_batches([_candidate(date(2024, 1, 1))], "RANDOM")
        assert exc_info.value.strategy == "RANDOM"
