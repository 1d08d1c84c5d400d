"""
Append-only enforcement on the movement and allocation ledgers.

Movement rows can never be updated or deleted through the ORM.
Allocation rows can be deleted (reversal) but never updated in place.
"""

from datetime import date

import pytest
from sqlalchemy import select

from inventory_kernel.domain.dtos import OrderLineRequest
from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.models.allocation import Allocation
from inventory_kernel.models.inventory_movement import InventoryMovement
from inventory_kernel.services.allocation_ledger import AllocationLedger

WAREHOUSE = "WH-1"


@pytest.fixture
def movement(session, make_batch):
    make_batch("P-1", 5, date(2024, 1, 1))
    return session.execute(select(InventoryMovement)).scalar_one()


@pytest.fixture
def allocation(session, make_batch, fulfillment):
    make_batch("P-1", 5, date(2024, 1, 1))
    fulfillment.fulfill_order("SO-1", WAREHOUSE, [OrderLineRequest("L1", "P-1", 2)])
    return session.execute(select(Allocation)).scalar_one()


class TestMovementImmutability:
    def test_update_blocked(self, session, movement):
        movement.notes = "edited"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "InventoryMovement"
        session.rollback()

    def test_delete_blocked(self, session, movement):
        session.delete(movement)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_row_unchanged_after_blocked_update(self, session, movement):
        movement_id = movement.id
        movement.quantity = 999
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()
        reloaded = session.get(InventoryMovement, movement_id, populate_existing=True)
        assert reloaded.quantity == 5


class TestAllocationImmutability:
    def test_update_blocked(self, session, allocation):
        allocation.quantity = 1
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "Allocation"
        session.rollback()

    def test_delete_allowed(self, session, allocation):
        ledger = AllocationLedger(session)
        assert ledger.delete_entries([allocation]) == 1
        session.commit()
        assert ledger.count_for_order("SO-1") == 0
        session.commit()
