"""Tests for the INVENTORY_ENGINE_TRACE decorator."""

from datetime import date
from uuid import UUID

import pytest

from inventory_engines.allocation import plan_allocation
from inventory_engines.batch_ordering import BatchCandidate
from inventory_engines.tracer import compute_input_fingerprint, traced_engine
from inventory_kernel.domain.strategy import AllocationStrategy
from inventory_kernel.exceptions import InsufficientStockError

BATCH = UUID("11111111-1111-1111-1111-111111111111")


def _traces(captured_logs):
    return [r for r in captured_logs() if r.get("trace_type") == "INVENTORY_ENGINE_TRACE"]


class TestFingerprint:
    def test_deterministic(self):
        kwargs = {"quantity": 5, "strategy": AllocationStrategy.FIFO}
        a = compute_input_fingerprint(("quantity", "strategy"), kwargs)
        b = compute_input_fingerprint(("quantity", "strategy"), dict(kwargs))
        assert a == b
        assert len(a) == 16

    def test_enum_and_tag_fingerprint_alike(self):
        a = compute_input_fingerprint(("strategy",), {"strategy": AllocationStrategy.LIFO})
        b = compute_input_fingerprint(("strategy",), {"strategy": "LIFO"})
        assert a == b

    def test_dict_key_order_irrelevant(self):
        a = compute_input_fingerprint(("x",), {"x": {"a": 1, "b": 2}})
        b = compute_input_fingerprint(("x",), {"x": {"b": 2, "a": 1}})
        assert a == b

    def test_input_changes_fingerprint(self):
        candidate = BatchCandidate(BATCH, 5, date(2024, 1, 1))
        a = compute_input_fingerprint(("candidates",), {"candidates": [candidate]})
        b = compute_input_fingerprint(
            ("candidates",),
            {"candidates": [BatchCandidate(BATCH, 4, date(2024, 1, 1))]},
        )
        assert a != b

    def test_missing_field_is_null(self):
        a = compute_input_fingerprint(("quantity",), {})
        b = compute_input_fingerprint(("quantity",), {"quantity": None})
        assert a == b


class TestTracedEngine:
    def test_trace_emitted_for_plan(self, captured_logs):
        plan_allocation(
            candidates=[BatchCandidate(BATCH, 5, date(2024, 1, 1))],
            quantity=2,
            strategy="FIFO",
            product_id="P-1",
        )
        traces = _traces(captured_logs)
        assert len(traces) == 1
        trace = traces[0]
        assert trace["engine_name"] == "allocation_plan"
        assert trace["outcome"] == "ok"
        assert trace["error_type"] is None
        assert trace["logger"] == "inventory_kernel.engines.tracer"

    def test_failure_traced_and_propagated(self, captured_logs):
        @traced_engine("boom", "0.1")
        def explode():
            raise InsufficientStockError("P-1", 2, 0)

        with pytest.raises(InsufficientStockError):
            explode()

        trace = _traces(captured_logs)[0]
        assert trace["outcome"] == "error"
        assert trace["error_type"] == "InsufficientStockError"

    def test_wraps_preserves_name(self):
        @traced_engine("noop", "1.0")
        def my_engine():
            return 1

        assert my_engine.__name__ == "my_engine"
        assert my_engine() == 1
