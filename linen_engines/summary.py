"""
linen_engines.summary -- The authoritative batch totals.

Responsibility:
    Orchestrate FinancialCalculator and DiscrepancyDetector into the single
    ``BatchSummary`` every consumer reproduces: batch creation, amendment,
    dashboard totals, invoice, PDF and spreadsheet exports.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by linen_services (persisted ``total_amount``), the invoice
    builder and the CLI.

Invariants enforced:
    - Rounding order, each step through ``round2``:

          adjusted_subtotal = round2(subtotal_received
                                     + discrepancy_adjustment
                                     + surcharge_total)
          vat_amount        = round2(adjusted_subtotal * vat_rate)
          grand_total       = round2(adjusted_subtotal + vat_amount)

    - ``discrepancy_adjustment`` is the signed sum of per-line value
      impacts (sent - received, valued at the line snapshot).
    - ``has_discrepancy`` iff some line has sent != received.
    - An empty batch yields zeros everywhere, with no division by zero.

Failure modes:
    - Errors from ``coerce_lines`` for malformed input.

Usage:
    summary = BatchSummaryCalculator().summarize(lines, config)
    batch.total_amount = summary.grand_total
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from linen_config.schema import EngineConfig
from linen_engines.discrepancy import (
    DiscrepancyDetector,
    DiscrepancyResult,
    DiscrepancySeverity,
)
from linen_engines.financial import FinancialCalculator, FinancialTotals
from linen_engines.lines import coerce_lines
from linen_engines.tracer import traced_engine
from linen_kernel.domain.rounding import round2
from linen_kernel.logging_config import get_logger

logger = get_logger("engines.summary")


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class BatchSummary:
    """Batch-level totals.  Every monetary field has two decimal places."""

    subtotal_received: Decimal
    discrepancy_adjustment: Decimal
    surcharge_total: Decimal
    adjusted_subtotal: Decimal
    vat_amount: Decimal
    grand_total: Decimal
    total_items_sent: int
    total_items_received: int
    items_with_discrepancy: int
    discrepancy_percentage: Decimal
    has_discrepancy: bool
    total_sent_value: Decimal
    average_item_price: Decimal
    severity: DiscrepancySeverity

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping; Decimals as strings."""
        return {k: _plain(v) for k, v in asdict(self).items()}


@dataclass(frozen=True)
class BatchStatistics:
    """Report-style figures for a batch."""

    total_items_sent: int
    total_sent_value: Decimal
    average_item_price: Decimal
    discrepancy_count: int
    discrepancy_percentage: Decimal
    top_category: str | None

    def to_dict(self) -> dict[str, Any]:
        return {k: _plain(v) for k, v in asdict(self).items()}


class BatchSummaryCalculator:
    """
    Combines the financial and discrepancy engines.

    Contract:
        No I/O, fully deterministic.  The calculators may be injected for
        tests; defaults are stateless instances.
    """

    def __init__(
        self,
        financial: FinancialCalculator | None = None,
        detector: DiscrepancyDetector | None = None,
    ):
        self._financial = financial or FinancialCalculator()
        self._detector = detector or DiscrepancyDetector()

    def breakdown(
        self,
        lines: Any,
        config: EngineConfig | None = None,
        category_prices: Mapping[str, Any] | None = None,
    ) -> tuple[FinancialTotals, DiscrepancyResult]:
        """The two component results the summary is built from."""
        config = config or EngineConfig.with_defaults()
        batch_lines = coerce_lines(lines, config, category_prices)
        return (
            self._financial.calculate(batch_lines, config),
            self._detector.detect(batch_lines, config),
        )

    @traced_engine("batch_summary", "1.0", fingerprint_fields=("lines",))
    def summarize(
        self,
        lines: Any,
        config: EngineConfig | None = None,
        category_prices: Mapping[str, Any] | None = None,
    ) -> BatchSummary:
        config = config or EngineConfig.with_defaults()
        financial, discrepancy = self.breakdown(lines, config, category_prices)
        return compose_summary(financial, discrepancy, config)

    @traced_engine("batch_summary", "1.0", fingerprint_fields=("lines",))
    def statistics(
        self,
        lines: Any,
        config: EngineConfig | None = None,
        category_names: Mapping[str, str] | None = None,
    ) -> BatchStatistics:
        """
        Totals plus the top category by quantity sent.

        Lines are grouped by category name (``category_names`` first, then
        the line's own ``category_name``, else "Unknown").  Ties go to the
        category seen first.
        """
        config = config or EngineConfig.with_defaults()
        batch_lines = coerce_lines(lines, config)
        financial, discrepancy = self.breakdown(batch_lines, config)

        sent_by_category: dict[str, int] = {}
        for line in batch_lines:
            name = (
                (category_names or {}).get(line.linen_category_id)
                or line.category_name
                or "Unknown"
            )
            sent_by_category[name] = sent_by_category.get(name, 0) + line.quantity_sent

        top_category = None
        best = -1
        for name, sent in sent_by_category.items():
            if sent > best:
                top_category, best = name, sent

        return BatchStatistics(
            total_items_sent=financial.total_items_sent,
            total_sent_value=financial.total_sent_value,
            average_item_price=financial.average_item_price,
            discrepancy_count=discrepancy.items_with_discrepancy,
            discrepancy_percentage=discrepancy.discrepancy_percentage,
            top_category=top_category,
        )


def compose_summary(
    financial: FinancialTotals,
    discrepancy: DiscrepancyResult,
    config: EngineConfig,
) -> BatchSummary:
    """Apply the adjustment, surcharge and VAT steps in their fixed order."""
    subtotal_received = financial.total_received_value
    discrepancy_adjustment = discrepancy.signed_value_impact
    surcharge_total = financial.surcharge_total

    adjusted_subtotal = round2(subtotal_received + discrepancy_adjustment + surcharge_total)
    vat_amount = round2(adjusted_subtotal * config.vat_rate)
    grand_total = round2(adjusted_subtotal + vat_amount)

    summary = BatchSummary(
        subtotal_received=subtotal_received,
        discrepancy_adjustment=discrepancy_adjustment,
        surcharge_total=surcharge_total,
        adjusted_subtotal=adjusted_subtotal,
        vat_amount=vat_amount,
        grand_total=grand_total,
        total_items_sent=financial.total_items_sent,
        total_items_received=financial.total_items_received,
        items_with_discrepancy=discrepancy.items_with_discrepancy,
        discrepancy_percentage=discrepancy.discrepancy_percentage,
        has_discrepancy=discrepancy.has_discrepancy,
        total_sent_value=financial.total_sent_value,
        average_item_price=financial.average_item_price,
        severity=discrepancy.severity,
    )
    logger.info(
        "batch_summary_calculated",
        extra={
            "line_count": len(financial.lines),
            "adjusted_subtotal": str(adjusted_subtotal),
            "vat_amount": str(vat_amount),
            "grand_total": str(grand_total),
            "has_discrepancy": summary.has_discrepancy,
        },
    )
    return summary
