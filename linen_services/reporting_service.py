"""
ReportingService -- dashboard totals across batches.

Every figure is recomputed through BatchSummaryCalculator from the
persisted items, so the dashboard shows exactly what the invoice for each
batch shows.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from linen_config.schema import EngineConfig
from linen_engines.summary import BatchSummaryCalculator
from linen_kernel.domain.rounding import round2
from linen_kernel.domain.status import BatchStatus
from linen_kernel.logging_config import get_logger
from linen_kernel.models.batch import Batch, BatchItem
from linen_services.base import BaseService
from linen_services.batch_service import batch_lines
from linen_services.dtos import DashboardTotals

logger = get_logger("services.reporting")


class ReportingService(BaseService):
    """Read-only aggregates; never flushes."""

    def __init__(
        self,
        session: Session,
        config: EngineConfig | None = None,
        calculator: BatchSummaryCalculator | None = None,
    ):
        super().__init__(session, config)
        self._calculator = calculator or BatchSummaryCalculator()

    def dashboard_totals(
        self,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> DashboardTotals:
        """
        Totals over batches whose pickup date falls in [date_from, date_to].

        Either bound may be omitted.

        Raises:
            ValueError: date_from is after date_to.
        """
        if date_from and date_to and date_from > date_to:
            raise ValueError(f"date_from ({date_from}) cannot be after date_to ({date_to})")

        stmt = select(Batch).options(
            selectinload(Batch.items).selectinload(BatchItem.linen_category)
        )
        if date_from is not None:
            stmt = stmt.where(Batch.pickup_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(Batch.pickup_date <= date_to)
        batches = self.session.execute(stmt.order_by(Batch.pickup_date)).scalars().all()

        status_counts = {status.value: 0 for status in BatchStatus}
        discrepancy_batches = 0
        items_sent = items_received = 0
        total_amount = total_vat = total_adjustment = Decimal("0")

        for batch in batches:
            summary = self._calculator.summarize(batch_lines(batch), self.config)
            status_counts[batch.status] = status_counts.get(batch.status, 0) + 1
            if summary.has_discrepancy:
                discrepancy_batches += 1
            items_sent += summary.total_items_sent
            items_received += summary.total_items_received
            total_amount += summary.grand_total
            total_vat += summary.vat_amount
            total_adjustment += summary.discrepancy_adjustment

        totals = DashboardTotals(
            batch_count=len(batches),
            status_counts=status_counts,
            discrepancy_batch_count=discrepancy_batches,
            total_items_sent=items_sent,
            total_items_received=items_received,
            total_amount=round2(total_amount),
            total_vat=round2(total_vat),
            total_discrepancy_adjustment=round2(total_adjustment),
            date_from=date_from,
            date_to=date_to,
        )
        logger.info(
            "dashboard_totals_calculated",
            extra={
                "batch_count": totals.batch_count,
                "discrepancy_batch_count": discrepancy_batches,
                "total_amount": str(totals.total_amount),
            },
        )
        return totals
