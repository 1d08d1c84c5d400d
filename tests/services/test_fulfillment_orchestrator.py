"""
Tests for FulfillmentOrchestrator.

Covers:
- Multi-line orders committed as one unit
- All-or-nothing rollback when a later line fails
- Store failures surfaced as PersistenceError with nothing written
- Non-product lines skipped
- Double allocation of one order rejected
- Structured log events carrying the order id
"""

from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from inventory_kernel.domain.dtos import OrderLineRequest
from inventory_kernel.domain.strategy import AllocationStrategy
from inventory_kernel.exceptions import (
    FulfillmentError,
    InsufficientStockError,
    InvalidOrderLinesError,
    InvalidQuantityError,
    OrderAlreadyAllocatedError,
    PersistenceError,
    UnknownStrategyError,
)
from inventory_kernel.selectors.allocation_selector import AllocationSelector
from inventory_kernel.services.allocation_ledger import AllocationLedger

WAREHOUSE = "WH-1"


def _line(line_id, product_id, quantity):
    return OrderLineRequest(order_line_id=line_id, product_id=product_id, quantity=quantity)


class TestSuccessfulOrder:
    def test_two_lines_allocated_and_recorded(self, session, fulfillment, make_batch, qty):
        a = make_batch("A", 10, date(2024, 1, 1))
        b = make_batch("B", 4, date(2024, 1, 1))

        result = fulfillment.fulfill_order(
            "SO-1", WAREHOUSE, [_line("L1", "A", 6), _line("L2", "B", 4)]
        )

        assert result.total_allocated == 10
        assert [line.allocated for line in result.lines] == [6, 4]
        assert result.strategy is AllocationStrategy.FIFO
        assert qty(a) == 4
        assert qty(b) == 0
        views = AllocationSelector(session).allocations_for_order("SO-1")
        assert {(v.order_line_id, v.batch_id, v.quantity) for v in views} == {
            ("L1", a, 6),
            ("L2", b, 4),
        }
        assert all(v.strategy == "FIFO" for v in views)
        session.commit()

    def test_line_spanning_batches_gets_one_row_per_batch(
        self, session, fulfillment, make_batch
    ):
        b1 = make_batch("P", 5, date(2024, 1, 1))
        b2 = make_batch("P", 5, date(2024, 2, 1))

        fulfillment.fulfill_order("SO-1", WAREHOUSE, [_line("L1", "P", 7)])

        views = AllocationSelector(session).allocations_for_order("SO-1")
        assert sorted((v.batch_id == b1, v.quantity) for v in views) == [
            (False, 2),
            (True, 5),
        ]
        assert all(v.batch_id in (b1, b2) for v in views)
        session.commit()

    def test_allocated_at_from_clock(self, fulfillment, make_batch, clock):
        make_batch("P", 5, date(2024, 1, 1))
        result = fulfillment.fulfill_order("SO-1", WAREHOUSE, [_line("L1", "P", 1)])
        assert result.allocated_at == clock.now()

    def test_non_product_lines_skipped(self, session, fulfillment, make_batch):
        make_batch("P", 5, date(2024, 1, 1))

        result = fulfillment.fulfill_order(
            "SO-1",
            WAREHOUSE,
            [_line("FEE", None, 1), _line("L1", "P", 2), _line("SVC", None, 0)],
        )

        assert [line.order_line_id for line in result.lines] == ["L1"]
        assert AllocationSelector(session).allocated_from_batch(
            result.lines[0].draws[0].batch_id
        ) == 2
        session.commit()

    def test_order_with_only_service_lines(self, session, fulfillment):
        result = fulfillment.fulfill_order("SO-1", WAREHOUSE, [_line("FEE", None, 1)])
        assert result.lines == ()
        assert not AllocationSelector(session).has_allocations("SO-1")
        session.commit()

    def test_strategy_override(self, fulfillment, make_batch):
        make_batch("P", 5, date(2024, 1, 1))
        newest = make_batch("P", 5, date(2024, 2, 1))

        result = fulfillment.fulfill_order(
            "SO-1", WAREHOUSE, [_line("L1", "P", 2)], strategy="lifo"
        )
        assert result.lines[0].draws[0].batch_id == newest


class TestAllOrNothing:
    def test_failing_second_line_rolls_back_first(
        self, session, fulfillment, make_batch, qty
    ):
        make_batch("P", 5, date(2024, 1, 1))
        b2 = make_batch("P", 5, date(2024, 2, 1))
        # leave b2 holding 3, as after an earlier FIFO draw of 7
        fulfillment.fulfill_order("SO-0", WAREHOUSE, [_line("L0", "P", 7)])
        assert qty(b2) == 3
        session.commit()

        with pytest.raises(FulfillmentError) as exc_info:
            fulfillment.fulfill_order(
                "SO-1", WAREHOUSE, [_line("L1", "P", 3), _line("L2", "P", 1)]
            )

        err = exc_info.value
        assert err.order_line_id == "L2"
        assert isinstance(err.cause, InsufficientStockError)
        assert err.shortfall == 1
        assert qty(b2) == 3
        assert not AllocationSelector(session).has_allocations("SO-1")
        session.commit()

    def test_first_line_failure(self, session, fulfillment, make_batch, qty):
        b = make_batch("P", 2, date(2024, 1, 1))
        with pytest.raises(FulfillmentError) as exc_info:
            fulfillment.fulfill_order("SO-1", WAREHOUSE, [_line("L1", "P", 3)])
        assert exc_info.value.cause.requested == 3
        assert qty(b) == 2
        session.commit()

    def test_invalid_line_quantity_wrapped(self, session, fulfillment, make_batch, qty):
        b = make_batch("P", 5, date(2024, 1, 1))
        with pytest.raises(FulfillmentError) as exc_info:
            fulfillment.fulfill_order(
                "SO-1", WAREHOUSE, [_line("L1", "P", 2), _line("L2", "P", 0)]
            )
        assert isinstance(exc_info.value.cause, InvalidQuantityError)
        assert qty(b) == 5
        session.commit()

    def test_failed_order_can_be_retried(self, session, fulfillment, make_batch):
        make_batch("P", 2, date(2024, 1, 1))
        with pytest.raises(FulfillmentError):
            fulfillment.fulfill_order("SO-1", WAREHOUSE, [_line("L1", "P", 3)])
        make_batch("P", 2, date(2024, 2, 1))

        result = fulfillment.fulfill_order("SO-1", WAREHOUSE, [_line("L1", "P", 3)])
        assert result.total_allocated == 3

    def test_store_failure_on_second_line_rolls_back_order(
        self, session, fulfillment, make_batch, qty, monkeypatch
    ):
        a = make_batch("A", 5, date(2024, 1, 1))
        b = make_batch("B", 5, date(2024, 1, 1))
        real_record = AllocationLedger.record
        calls = []

        def record_then_fail(self, **kwargs):
            calls.append(kwargs["order_line_id"])
            if len(calls) == 2:
                raise OperationalError("INSERT INTO allocations", {}, Exception("disk I/O error"))
            return real_record(self, **kwargs)

        monkeypatch.setattr(AllocationLedger, "record", record_then_fail)

        with pytest.raises(PersistenceError) as exc_info:
            fulfillment.fulfill_order(
                "SO-1", WAREHOUSE, [_line("L1", "A", 2), _line("L2", "B", 3)]
            )

        assert exc_info.value.operation == "fulfillment"
        assert isinstance(exc_info.value.__cause__, OperationalError)
        assert calls == ["L1", "L2"]
        assert qty(a) == 5
        assert qty(b) == 5
        assert not AllocationSelector(session).has_allocations("SO-1")
        session.commit()


class TestGuards:
    def test_already_allocated_order_rejected(self, session, fulfillment, make_batch, qty):
        b = make_batch("P", 5, date(2024, 1, 1))
        fulfillment.fulfill_order("SO-1", WAREHOUSE, [_line("L1", "P", 2)])

        with pytest.raises(OrderAlreadyAllocatedError) as exc_info:
            fulfillment.fulfill_order("SO-1", WAREHOUSE, [_line("L1", "P", 2)])

        assert exc_info.value.allocation_count == 1
        assert qty(b) == 3
        session.commit()

    def test_duplicate_line_ids_rejected(self, fulfillment, make_batch):
        make_batch("P", 5, date(2024, 1, 1))
        with pytest.raises(InvalidOrderLinesError) as exc_info:
            fulfillment.fulfill_order(
                "SO-1", WAREHOUSE, [_line("L1", "P", 1), _line("L1", "P", 1)]
            )
        assert exc_info.value.order_line_id == "L1"
        assert exc_info.value.code == "INVALID_ORDER_LINES"

    def test_unknown_strategy(self, fulfillment):
        with pytest.raises(UnknownStrategyError):
            fulfillment.fulfill_order("SO-1", WAREHOUSE, [], strategy="RANDOM")


class TestLogging:
    def test_completed_event(self, fulfillment, make_batch, captured_logs):
        make_batch("P", 5, date(2024, 1, 1))
        fulfillment.fulfill_order("SO-7", WAREHOUSE, [_line("L1", "P", 2)])

        records = captured_logs()
        completed = [r for r in records if r["message"] == "fulfillment_completed"]
        assert len(completed) == 1
        assert completed[0]["order_id"] == "SO-7"
        assert completed[0]["total_allocated"] == 2
        assert any(r["message"] == "fulfillment_started" for r in records)

    def test_failed_event(self, fulfillment, make_batch, captured_logs):
        make_batch("P", 1, date(2024, 1, 1))
        with pytest.raises(FulfillmentError):
            fulfillment.fulfill_order("SO-8", WAREHOUSE, [_line("L1", "P", 4)])

        failed = [r for r in captured_logs() if r["message"] == "fulfillment_failed"]
        assert len(failed) == 1
        assert failed[0]["order_id"] == "SO-8"
        assert failed[0]["error_code"] == "INSUFFICIENT_STOCK"
        assert failed[0]["shortfall"] == 3
