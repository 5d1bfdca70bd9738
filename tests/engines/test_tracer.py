"""Tests for the engine invocation tracer."""

from decimal import Decimal

import pytest

from linen_engines.tracer import TRACE_RECORD, compute_input_fingerprint, traced_engine


@traced_engine("sample", "2.1", fingerprint_fields=("amount", "rate"))
def _scaled(amount, rate, label=None):
    return amount * rate


class TestFingerprint:
    def test_deterministic(self):
        args = {"amount": Decimal("1.50"), "rate": Decimal("0.15")}
        assert compute_input_fingerprint(("amount", "rate"), args) == compute_input_fingerprint(
            ("amount", "rate"), dict(args)
        )

    def test_decimal_normalised(self):
        a = compute_input_fingerprint(("x",), {"x": Decimal("1.50")})
        b = compute_input_fingerprint(("x",), {"x": Decimal("1.5")})
        assert a == b

    def test_sensitive_to_values(self):
        a = compute_input_fingerprint(("x",), {"x": [1, 2]})
        b = compute_input_fingerprint(("x",), {"x": [2, 1]})
        assert a != b
        assert len(a) == 16


class TestTracedEngine:
    def test_result_passed_through(self):
        assert _scaled(Decimal("2"), Decimal("3")) == Decimal("6")

    def test_trace_record(self, captured_logs):
        _scaled(Decimal("2"), Decimal("3"))
        traces = [r for r in captured_logs() if r["message"] == TRACE_RECORD]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["engine_name"] == "sample"
        assert trace["engine_version"] == "2.1"
        assert trace["function"] == "_scaled"
        assert trace["outcome"] == "ok"

    def test_positional_and_keyword_calls_share_fingerprint(self, captured_logs):
        _scaled(Decimal("2"), Decimal("3"))
        _scaled(amount=Decimal("2"), rate=Decimal("3"), label="x")
        first, second = [
            r["input_fingerprint"] for r in captured_logs() if r["message"] == TRACE_RECORD
        ]
        assert first == second != ""

    def test_error_outcome_traced_and_propagated(self, captured_logs):
        @traced_engine("failing", "1.0")
        def boom():
            raise ValueError("bad input")

        with pytest.raises(ValueError, match="bad input"):
            boom()
        (trace,) = [r for r in captured_logs() if r["message"] == TRACE_RECORD]
        assert trace["outcome"] == "error"
        assert trace["input_fingerprint"] == ""
