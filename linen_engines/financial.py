"""
linen_engines.financial -- Per-line totals and batch value aggregates.

Responsibility:
    Compute each line's received value and express surcharge, and the
    batch's sent/received value totals, discrepancy value and average
    item price.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``line_total = round2(quantity_received * price_per_item)``.
    - ``surcharge = round2(express_surcharge_rate * line_total)`` for
      express lines, otherwise 0.
    - ``sent_value = round2(quantity_sent * price_per_item)``.
    - ``average_item_price = round2(total_sent_value / total_items_sent)``,
      0 when nothing was sent.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from linen_config.schema import EngineConfig
from linen_engines.lines import BatchLine, coerce_lines, total_quantities
from linen_engines.tracer import traced_engine
from linen_kernel.domain.rounding import ZERO, round2
from linen_kernel.logging_config import get_logger

logger = get_logger("engines.financial")


@dataclass(frozen=True)
class LineTotal:
    """Money figures for one line."""

    linen_category_id: str
    sent_value: Decimal
    line_total: Decimal
    surcharge: Decimal

    @property
    def discrepancy_value(self) -> Decimal:
        return abs(self.sent_value - self.line_total)


@dataclass(frozen=True)
class FinancialTotals:
    lines: tuple[LineTotal, ...]
    total_sent_value: Decimal
    total_received_value: Decimal
    total_discrepancy_value: Decimal
    surcharge_total: Decimal
    total_items_sent: int
    total_items_received: int
    average_item_price: Decimal


def line_total(line: BatchLine, config: EngineConfig) -> LineTotal:
    received_value = round2(line.quantity_received * line.price_per_item)
    surcharge = (
        round2(config.express_surcharge_rate * received_value)
        if line.express_delivery
        else round2(ZERO)
    )
    return LineTotal(
        linen_category_id=line.linen_category_id,
        sent_value=round2(line.quantity_sent * line.price_per_item),
        line_total=received_value,
        surcharge=surcharge,
    )


class FinancialCalculator:
    """
    Pure calculator for batch values.

    Contract:
        No I/O, fully deterministic.  Rates come from the EngineConfig
        passed in, never from module globals.
    """

    @traced_engine("financial", "1.0", fingerprint_fields=("lines",))
    def calculate(
        self,
        lines: Any,
        config: EngineConfig | None = None,
        category_prices: Mapping[str, Any] | None = None,
    ) -> FinancialTotals:
        config = config or EngineConfig.with_defaults()
        batch_lines = coerce_lines(lines, config, category_prices)

        totals = tuple(line_total(line, config) for line in batch_lines)
        sent_items, received_items = total_quantities(batch_lines)
        total_sent_value = round2(sum((t.sent_value for t in totals), ZERO))

        average = (
            round2(total_sent_value / sent_items) if sent_items > 0 else round2(ZERO)
        )

        result = FinancialTotals(
            lines=totals,
            total_sent_value=total_sent_value,
            total_received_value=round2(sum((t.line_total for t in totals), ZERO)),
            total_discrepancy_value=round2(
                sum((t.discrepancy_value for t in totals), ZERO)
            ),
            surcharge_total=round2(sum((t.surcharge for t in totals), ZERO)),
            total_items_sent=sent_items,
            total_items_received=received_items,
            average_item_price=average,
        )
        logger.debug(
            "financial_totals_calculated",
            extra={
                "line_count": len(totals),
                "total_sent_value": str(result.total_sent_value),
                "total_received_value": str(result.total_received_value),
                "surcharge_total": str(result.surcharge_total),
            },
        )
        return result
