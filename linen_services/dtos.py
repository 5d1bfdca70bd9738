"""
Service DTOs -- frozen request and result records.

Services accept these (or equivalent mappings) and return them instead of
ORM entities, so callers never hold live rows outside a session.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from linen_kernel.domain.status import BatchStatus


@dataclass(frozen=True)
class BatchItemRequest:
    """
    One item as submitted by an operator.

    ``quantity_received`` defaults to ``quantity_sent``; ``price_per_item``
    defaults to the existing snapshot (on amendment) or the category's
    current price.
    """

    linen_category_id: UUID | str
    quantity_sent: int
    quantity_received: int | None = None
    price_per_item: Decimal | str | None = None
    express_delivery: bool = False
    discrepancy_details: str | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "linen_category_id": str(self.linen_category_id),
            "quantity_sent": self.quantity_sent,
            "quantity_received": self.quantity_received,
            "price_per_item": self.price_per_item,
            "express_delivery": self.express_delivery,
            "discrepancy_details": self.discrepancy_details,
        }


@dataclass(frozen=True)
class CreateBatchRequest:
    """A new batch with its items.  A blank paper id is assigned."""

    client_id: UUID
    pickup_date: date
    items: Sequence[BatchItemRequest | dict[str, Any]]
    paper_batch_id: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class BatchItemInfo:
    id: UUID
    linen_category_id: UUID
    category_name: str | None
    line_number: int
    quantity_sent: int
    quantity_received: int
    price_per_item: Decimal
    express_delivery: bool
    discrepancy_details: str | None
    subtotal: Decimal


@dataclass(frozen=True)
class BatchInfo:
    id: UUID
    paper_batch_id: str
    system_batch_id: str
    client_id: UUID
    pickup_date: date
    status: BatchStatus
    total_amount: Decimal
    has_discrepancy: bool
    notes: str | None
    version: int
    items: tuple[BatchItemInfo, ...] = ()
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class DashboardTotals:
    """Aggregate figures over the batches in a pickup date range."""

    batch_count: int
    status_counts: dict[str, int] = field(default_factory=dict)
    discrepancy_batch_count: int = 0
    total_items_sent: int = 0
    total_items_received: int = 0
    total_amount: Decimal = Decimal("0.00")
    total_vat: Decimal = Decimal("0.00")
    total_discrepancy_adjustment: Decimal = Decimal("0.00")
    date_from: date | None = None
    date_to: date | None = None
