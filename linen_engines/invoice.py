"""
linen_engines.invoice -- Invoice document built from final numbers.

Responsibility:
    Assemble the per-line records and batch totals that invoice, PDF and
    spreadsheet renderers print.  Renderers read these values as already
    final; they never recompute or re-round.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Built on
    BatchSummaryCalculator so the invoice total is always the persisted
    ``total_amount``.

Invariants enforced:
    - Line discrepancy uses the same sign as the summary
      (sent - received), and ``discrepancy_value`` is the per-line
      ``value_impact``.  Lines therefore sum to ``discrepancy_adjustment``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from linen_config.schema import EngineConfig
from linen_engines.lines import coerce_lines
from linen_engines.summary import BatchSummary, BatchSummaryCalculator, compose_summary
from linen_engines.tracer import traced_engine
from linen_kernel.logging_config import get_logger

logger = get_logger("engines.invoice")


@dataclass(frozen=True)
class InvoiceLine:
    category_name: str
    quantity_sent: int
    quantity_received: int
    unit_price: Decimal
    line_total: Decimal
    discrepancy: int
    discrepancy_value: Decimal
    surcharge: Decimal
    express_delivery: bool
    discrepancy_details: str | None = None


@dataclass(frozen=True)
class InvoiceDocument:
    lines: tuple[InvoiceLine, ...]
    summary: BatchSummary
    vat_rate: Decimal
    paper_batch_id: str | None = None
    client_name: str | None = None
    pickup_date: date | None = None

    @property
    def total(self) -> Decimal:
        return self.summary.grand_total

    def to_dict(self) -> dict[str, Any]:
        return {
            "paper_batch_id": self.paper_batch_id,
            "client_name": self.client_name,
            "pickup_date": self.pickup_date.isoformat() if self.pickup_date else None,
            "vat_rate": str(self.vat_rate),
            "lines": [
                {
                    "category_name": line.category_name,
                    "quantity_sent": line.quantity_sent,
                    "quantity_received": line.quantity_received,
                    "unit_price": str(line.unit_price),
                    "line_total": str(line.line_total),
                    "discrepancy": line.discrepancy,
                    "discrepancy_value": str(line.discrepancy_value),
                    "surcharge": str(line.surcharge),
                    "express_delivery": line.express_delivery,
                    "discrepancy_details": line.discrepancy_details,
                }
                for line in self.lines
            ],
            "summary": self.summary.to_dict(),
        }


@traced_engine("invoice", "1.0", fingerprint_fields=("lines",))
def build_invoice(
    lines: Any,
    config: EngineConfig | None = None,
    category_names: Mapping[str, str] | None = None,
    *,
    paper_batch_id: str | None = None,
    client_name: str | None = None,
    pickup_date: date | None = None,
    calculator: BatchSummaryCalculator | None = None,
) -> InvoiceDocument:
    """
    Build the invoice for a batch.

    Category names come from ``category_names`` (keyed by category id),
    then the line's own ``category_name``, else the category id.
    """
    config = config or EngineConfig.with_defaults()
    calculator = calculator or BatchSummaryCalculator()
    batch_lines = coerce_lines(lines, config)
    financial, discrepancy = calculator.breakdown(batch_lines, config)
    names = category_names or {}

    invoice_lines = tuple(
        InvoiceLine(
            category_name=(
                names.get(line.linen_category_id)
                or line.category_name
                or line.linen_category_id
            ),
            quantity_sent=line.quantity_sent,
            quantity_received=line.quantity_received,
            unit_price=line.price_per_item,
            line_total=money.line_total,
            discrepancy=item.discrepancy,
            discrepancy_value=item.value_impact,
            surcharge=money.surcharge,
            express_delivery=line.express_delivery,
            discrepancy_details=line.discrepancy_details,
        )
        for line, money, item in zip(batch_lines, financial.lines, discrepancy.items)
    )
    document = InvoiceDocument(
        lines=invoice_lines,
        summary=compose_summary(financial, discrepancy, config),
        vat_rate=config.vat_rate,
        paper_batch_id=paper_batch_id,
        client_name=client_name,
        pickup_date=pickup_date,
    )
    logger.info(
        "invoice_built",
        extra={
            "paper_batch_id": paper_batch_id,
            "line_count": len(invoice_lines),
            "grand_total": str(document.total),
        },
    )
    return document
