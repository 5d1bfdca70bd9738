"""Tests for kernel value types: validation results, workflow, status, clock, errors."""

from datetime import datetime, timedelta, timezone

import pytest

from linen_kernel.domain.clock import DeterministicClock, SystemClock
from linen_kernel.domain.status import BatchStatus
from linen_kernel.domain.validation import ValidationError, ValidationResult
from linen_kernel.domain.workflow import Transition, Workflow
from linen_kernel.exceptions import (
    BatchValidationError,
    InvalidItemsError,
    LinenKernelError,
    OptimisticLockError,
)


class TestValidationResult:
    def test_success_is_truthy(self):
        result = ValidationResult.success()
        assert result
        assert result.errors == ()

    def test_failure_collects_codes_and_messages(self):
        result = ValidationResult.failure(
            ValidationError("INVALID_QUANTITY", "too many", "items[0].quantity_sent"),
            ValidationError("INVALID_PRICE", "too dear", "items[1].price_per_item"),
        )
        assert not result
        assert result.codes == ("INVALID_QUANTITY", "INVALID_PRICE")
        assert result.messages == ("too many", "too dear")

    def test_from_errors(self):
        assert ValidationResult.from_errors([]).is_valid
        assert not ValidationResult.from_errors([ValidationError("X", "x")]).is_valid

    def test_failure_needs_an_error(self):
        with pytest.raises(ValueError):
            ValidationResult.failure()


class TestWorkflow:
    def test_rejects_undeclared_state(self):
        with pytest.raises(ValueError, match="undeclared state"):
            Workflow(
                name="w",
                description="",
                initial_state="a",
                states=("a", "b"),
                transitions=(Transition("a", "c", action="go"),),
            )

    def test_rejects_terminal_with_outgoing_edge(self):
        with pytest.raises(ValueError, match="terminal state"):
            Workflow(
                name="w",
                description="",
                initial_state="a",
                states=("a", "b"),
                transitions=(Transition("b", "a", action="back"),),
                terminal_states=("b",),
            )

    def test_find_transition(self):
        wf = Workflow(
            name="w",
            description="",
            initial_state="a",
            states=("a", "b"),
            transitions=(Transition("a", "b", action="go"),),
            terminal_states=("b",),
        )
        assert wf.find_transition("a", "b").action == "go"
        assert wf.find_transition("b", "a") is None
        assert wf.is_terminal("b")


class TestBatchStatus:
    def test_parse_wire_values(self):
        assert BatchStatus.parse("washing") is BatchStatus.WASHING
        assert BatchStatus.parse(" Delivered ") is BatchStatus.DELIVERED
        assert BatchStatus.parse(BatchStatus.PICKUP) is BatchStatus.PICKUP

    @pytest.mark.parametrize("value", ["processing", "cancelled", "", None, 3])
    def test_parse_unknown_is_none(self, value):
        assert BatchStatus.parse(value) is None


class TestClock:
    def test_system_clock_is_utc_aware(self):
        assert SystemClock().now().tzinfo is not None

    def test_deterministic_clock_advances(self):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        clock = DeterministicClock(start)
        clock.advance(300)
        assert clock.now() == start + timedelta(minutes=5)

    def test_deterministic_clock_requires_aware_time(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            DeterministicClock(datetime(2024, 1, 1))

    def test_today_follows_set_time(self):
        clock = DeterministicClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
        clock.set_time(datetime(2024, 2, 29, 23, 59, tzinfo=timezone.utc))
        assert clock.today().isoformat() == "2024-02-29"


class TestExceptions:
    def test_every_error_is_a_kernel_error_with_code(self):
        err = InvalidItemsError("must be an object", index=2)
        assert isinstance(err, LinenKernelError)
        assert err.code == "INVALID_ITEMS"
        assert str(err) == "Item 3: must be an object"

    def test_batch_validation_error_joins_messages(self):
        err = BatchValidationError(
            [ValidationError("A", "first"), ValidationError("B", "second")]
        )
        assert str(err) == "Validation failed: first, second"
        assert len(err.errors) == 2

    def test_optimistic_lock_error(self):
        err = OptimisticLockError("Batch", "123")
        assert err.code == "OPTIMISTIC_LOCK_CONFLICT"
        assert err.entity_id == "123"
