"""
linen_engines.discrepancy -- Quantity discrepancy detection and valuation.

Responsibility:
    For every batch line, compare quantity sent with quantity received,
    value the difference at the line's price snapshot, and aggregate the
    batch-level discrepancy figures.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by BatchSummaryCalculator and the invoice builder.

Invariants enforced:
    - Sign convention: ``discrepancy = quantity_sent - quantity_received``.
      Positive means fewer items came back than were sent.
    - ``value_impact`` per line is ``round2(discrepancy * price_per_item)``
      and keeps the sign; the batch ``value_impact`` is the sum of absolute
      per-line impacts, ``signed_value_impact`` the plain sum.
    - Percentages are 0 when the denominator is 0.

Failure modes:
    - InvalidItemsError (and the quantity/price errors of
      ``coerce_lines``) for malformed input.

Usage:
    result = DiscrepancyDetector().detect(lines, config)
    result.has_discrepancy, result.severity
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from linen_config.schema import EngineConfig
from linen_engines.lines import BatchLine, coerce_lines
from linen_engines.tracer import traced_engine
from linen_kernel.domain.rounding import ZERO, calculate_percentage, round2
from linen_kernel.logging_config import get_logger

logger = get_logger("engines.discrepancy")


class DiscrepancySeverity(str, Enum):
    """Batch-level classification of the discrepancy percentage."""

    PERFECT_MATCH = "perfect_match"
    MINOR = "minor"
    SIGNIFICANT = "significant"


@dataclass(frozen=True)
class ItemDiscrepancy:
    """Discrepancy figures for one line."""

    linen_category_id: str
    quantity_sent: int
    quantity_received: int
    discrepancy: int
    discrepancy_percentage: Decimal
    value_impact: Decimal
    details: str | None = None

    @property
    def has_discrepancy(self) -> bool:
        return self.discrepancy != 0


@dataclass(frozen=True)
class DiscrepancyResult:
    """Aggregated discrepancy figures for a batch."""

    items: tuple[ItemDiscrepancy, ...]
    items_with_discrepancy: int
    total_discrepancy: int
    discrepancy_percentage: Decimal
    value_impact: Decimal
    signed_value_impact: Decimal
    severity: DiscrepancySeverity

    @property
    def has_discrepancy(self) -> bool:
        return self.items_with_discrepancy > 0

    @property
    def discrepant_items(self) -> tuple[ItemDiscrepancy, ...]:
        return tuple(item for item in self.items if item.has_discrepancy)


def classify_severity(
    discrepancy_percentage: Decimal,
    config: EngineConfig | None = None,
) -> DiscrepancySeverity:
    config = config or EngineConfig.with_defaults()
    if discrepancy_percentage == ZERO:
        return DiscrepancySeverity.PERFECT_MATCH
    if discrepancy_percentage <= config.minor_discrepancy_threshold_percent:
        return DiscrepancySeverity.MINOR
    return DiscrepancySeverity.SIGNIFICANT


def item_discrepancy(line: BatchLine) -> ItemDiscrepancy:
    """Discrepancy figures for a single line."""
    discrepancy = line.discrepancy
    return ItemDiscrepancy(
        linen_category_id=line.linen_category_id,
        quantity_sent=line.quantity_sent,
        quantity_received=line.quantity_received,
        discrepancy=discrepancy,
        discrepancy_percentage=calculate_percentage(abs(discrepancy), line.quantity_sent),
        value_impact=round2(discrepancy * line.price_per_item),
        details=line.discrepancy_details,
    )


class DiscrepancyDetector:
    """
    Pure calculator for sent/received mismatches.

    Contract:
        No I/O, fully deterministic, independent of line order except for
        the order of ``items`` in the result.
    """

    @traced_engine("discrepancy", "1.0", fingerprint_fields=("lines",))
    def detect(
        self,
        lines: Any,
        config: EngineConfig | None = None,
        category_prices: Mapping[str, Any] | None = None,
    ) -> DiscrepancyResult:
        config = config or EngineConfig.with_defaults()
        batch_lines = coerce_lines(lines, config, category_prices)

        items = tuple(item_discrepancy(line) for line in batch_lines)
        discrepant = [item for item in items if item.has_discrepancy]

        batch_percentage = calculate_percentage(len(discrepant), len(items))
        result = DiscrepancyResult(
            items=items,
            items_with_discrepancy=len(discrepant),
            total_discrepancy=sum(abs(item.discrepancy) for item in items),
            discrepancy_percentage=batch_percentage,
            value_impact=round2(sum((abs(item.value_impact) for item in items), ZERO)),
            signed_value_impact=round2(sum((item.value_impact for item in items), ZERO)),
            severity=classify_severity(batch_percentage, config),
        )

        if result.has_discrepancy:
            logger.info(
                "discrepancies_detected",
                extra={
                    "item_count": len(items),
                    "items_with_discrepancy": result.items_with_discrepancy,
                    "total_discrepancy": result.total_discrepancy,
                    "value_impact": str(result.value_impact),
                    "severity": result.severity.value,
                },
            )
        return result
