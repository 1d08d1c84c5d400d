"""Tests for the read-only batch, allocation and movement selectors."""

from datetime import date
from uuid import uuid4

import pytest

from inventory_kernel.domain.dtos import OrderLineRequest
from inventory_kernel.exceptions import BatchNotFoundError
from inventory_kernel.selectors.allocation_selector import AllocationSelector
from inventory_kernel.selectors.batch_selector import BatchSelector
from inventory_kernel.selectors.movement_selector import MovementSelector

WAREHOUSE = "WH-1"


class TestBatchSelector:
    def test_available_quantity_per_warehouse(self, session, make_batch):
        make_batch("P", 5, date(2024, 1, 1))
        make_batch("P", 3, date(2024, 2, 1))
        make_batch("P", 7, date(2024, 2, 1), warehouse_id="WH-2")

        selector = BatchSelector(session)
        assert selector.available_quantity("P", WAREHOUSE) == 8
        assert selector.available_quantity("P", "WH-2") == 7
        assert selector.available_quantity("Q", WAREHOUSE) == 0

    def test_batches_for_product_oldest_first(self, session, make_batch, allocator):
        newer = make_batch("P", 5, date(2024, 2, 1))
        older = make_batch("P", 2, date(2024, 1, 1))
        allocator.allocate("P", WAREHOUSE, 2)
        session.commit()

        selector = BatchSelector(session)
        views = selector.batches_for_product("P", WAREHOUSE)
        assert [v.batch_id for v in views] == [older, newer]
        assert views[0].is_depleted

        in_stock = selector.batches_for_product("P", WAREHOUSE, include_depleted=False)
        assert [v.batch_id for v in in_stock] == [newer]

    def test_get_view(self, session, make_batch):
        batch_id = make_batch(
            "P", 4, date(2024, 1, 1), expiration=date(2024, 3, 1), location_id="A-1"
        )
        view = BatchSelector(session).get(batch_id)
        assert view.original_quantity == 4
        assert view.location_id == "A-1"
        assert view.is_expired(date(2024, 3, 2))
        assert not view.is_expired(date(2024, 3, 1))
        assert BatchSelector(session).total_original_quantity(batch_id) == 4

    def test_get_unknown(self, session):
        with pytest.raises(BatchNotFoundError):
            BatchSelector(session).get(uuid4())


class TestAllocationSelector:
    def test_summary_groups_by_product(self, session, make_batch, fulfillment):
        b1 = make_batch("P", 5, date(2024, 1, 1), location_id="A-1")
        b2 = make_batch("P", 5, date(2024, 2, 1), location_id="A-2")
        q = make_batch("Q", 5, date(2024, 1, 1))
        fulfillment.fulfill_order(
            "SO-1",
            WAREHOUSE,
            [
                OrderLineRequest("L1", "P", 3),
                OrderLineRequest("L2", "P", 4),
                OrderLineRequest("L3", "Q", 1),
            ],
        )

        summary = {s.product_id: s for s in AllocationSelector(session).allocation_summary("SO-1")}

        assert summary["P"].total_allocated == 7
        assert {d.batch_id: d.quantity for d in summary["P"].batches} == {b1: 5, b2: 2}
        assert {d.location_id for d in summary["P"].batches} == {"A-1", "A-2"}
        assert summary["P"].strategy == "FIFO"
        assert summary["Q"].batches[0].batch_id == q
        session.commit()

    def test_allocated_from_batch(self, session, make_batch, fulfillment):
        b = make_batch("P", 10, date(2024, 1, 1))
        fulfillment.fulfill_order("SO-1", WAREHOUSE, [OrderLineRequest("L1", "P", 3)])
        fulfillment.fulfill_order("SO-2", WAREHOUSE, [OrderLineRequest("L1", "P", 4)])

        selector = AllocationSelector(session)
        assert selector.allocated_from_batch(b) == 7
        assert selector.allocated_from_batch(uuid4()) == 0
        session.commit()

    def test_empty_order(self, session):
        selector = AllocationSelector(session)
        assert selector.allocations_for_order("NONE") == []
        assert selector.allocation_summary("NONE") == []
        assert not selector.has_allocations("NONE")


class TestMovementSelector:
    def test_opening_movements_for_product(self, session, make_batch, clock):
        first = make_batch("P", 5, date(2024, 1, 1))
        clock.advance(seconds=1)
        second = make_batch("P", 2, date(2024, 1, 2))

        movements = MovementSelector(session).movements_for_product("P", WAREHOUSE)

        assert [(m.batch_id, m.movement_type, m.quantity) for m in movements] == [
            (first, "opening", 5),
            (second, "opening", 2),
        ]
        assert [m.remaining_stock for m in movements] == [5, 7]
        assert movements[0].occurred_at < movements[1].occurred_at
