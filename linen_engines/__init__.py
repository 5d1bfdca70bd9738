"""
Module: linen_engines
Responsibility:
    Package entrypoint re-exporting the pure reconciliation engines.  This
    is the import surface for linen_services and scripts.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import linen_kernel.domain, linen_kernel.exceptions and
    linen_config.  MUST NOT import linen_services or linen_kernel.db.

Invariants enforced:
    - Engines never read the clock; timestamps are passed in.
    - Decimal-only money, rounded through ``round2``.
    - Identical inputs give identical outputs.

Usage:
    from linen_engines import BatchSummaryCalculator, validate_transition

    summary = BatchSummaryCalculator().summarize(items, config)
    validate_transition("washing", "completed").is_valid   # True
"""

from linen_engines.discrepancy import (
    DiscrepancyDetector,
    DiscrepancyResult,
    DiscrepancySeverity,
    ItemDiscrepancy,
    classify_severity,
)
from linen_engines.financial import FinancialCalculator, FinancialTotals, LineTotal
from linen_engines.identifiers import (
    PaperBatchId,
    generate_paper_batch_id,
    generate_system_batch_id,
    next_paper_batch_id,
    parse_paper_batch_id,
    validate_paper_batch_id,
)
from linen_engines.invoice import InvoiceDocument, InvoiceLine, build_invoice
from linen_engines.lines import (
    BatchLine,
    ItemValidation,
    coerce_lines,
    validate_batch_lines,
    validate_item_quantities,
)
from linen_engines.status import (
    BATCH_STATUS_WORKFLOW,
    TransitionResult,
    allowed_transitions,
    next_status,
    require_transition,
    validate_transition,
)
from linen_engines.summary import BatchStatistics, BatchSummary, BatchSummaryCalculator
from linen_engines.tracer import traced_engine

__all__ = [
    "BATCH_STATUS_WORKFLOW",
    "BatchLine",
    "BatchStatistics",
    "BatchSummary",
    "BatchSummaryCalculator",
    "DiscrepancyDetector",
    "DiscrepancyResult",
    "DiscrepancySeverity",
    "FinancialCalculator",
    "FinancialTotals",
    "InvoiceDocument",
    "InvoiceLine",
    "ItemDiscrepancy",
    "ItemValidation",
    "LineTotal",
    "PaperBatchId",
    "TransitionResult",
    "allowed_transitions",
    "build_invoice",
    "classify_severity",
    "coerce_lines",
    "generate_paper_batch_id",
    "generate_system_batch_id",
    "next_paper_batch_id",
    "next_status",
    "parse_paper_batch_id",
    "require_transition",
    "traced_engine",
    "validate_batch_lines",
    "validate_item_quantities",
    "validate_paper_batch_id",
    "validate_transition",
]
