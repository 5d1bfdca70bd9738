"""
Module: linen_kernel.models.batch
Responsibility: ORM persistence for batches and their items.
Architecture position: Kernel > Models.  May import from db/base.py and the
    pure status enum only.

Invariants enforced:
    - ``total_amount`` and ``has_discrepancy`` are cached derived values.
      They are written only by BatchService after a BatchSummary recompute,
      never authored independently.
    - ``BatchItem.price_per_item`` is the price snapshot taken when the item
      was created.
    - One item per linen category per batch (uq_batch_items_category).
    - ``version`` increments on every committed change to the batch or its
      items; amendment callers may pass the version they read to detect a
      concurrent writer.

Failure modes:
    - IntegrityError on duplicate paper_batch_id / system_batch_id.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from linen_kernel.db.base import TrackedBase
from linen_kernel.domain.status import BatchStatus
from linen_kernel.models.client import Client
from linen_kernel.models.linen_category import LinenCategory


class Batch(TrackedBase):
    """
    One pickup/processing cycle of linen items for a client.

    Guarantees:
        - paper_batch_id and system_batch_id are unique.
        - status holds a BatchStatus wire value.
    """

    __tablename__ = "batches"

    __table_args__ = (
        UniqueConstraint("paper_batch_id", name="uq_batches_paper_batch_id"),
        UniqueConstraint("system_batch_id", name="uq_batches_system_batch_id"),
        Index("idx_batches_client_id", "client_id"),
        Index("idx_batches_status", "status"),
        Index("idx_batches_pickup_date", "pickup_date"),
    )

    paper_batch_id: Mapped[str] = mapped_column(String(50), nullable=False)
    system_batch_id: Mapped[str] = mapped_column(String(64), nullable=False)
    client_id: Mapped[UUID] = mapped_column(ForeignKey("clients.id"), nullable=False)
    pickup_date: Mapped[date] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BatchStatus.PICKUP.value
    )
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0.00"))
    has_discrepancy: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(nullable=False, default=1)

    client: Mapped[Client] = relationship()
    items: Mapped[list["BatchItem"]] = relationship(
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="BatchItem.line_number",
    )

    def __repr__(self) -> str:
        return f"<Batch {self.paper_batch_id} [{self.status}] {self.total_amount}>"


class BatchItem(TrackedBase):
    """One linen category's quantities and price snapshot within a batch."""

    __tablename__ = "batch_items"

    __table_args__ = (
        UniqueConstraint("batch_id", "linen_category_id", name="uq_batch_items_category"),
        CheckConstraint("quantity_sent >= 0", name="ck_batch_items_quantity_sent"),
        CheckConstraint("quantity_received >= 0", name="ck_batch_items_quantity_received"),
        CheckConstraint("price_per_item >= 0", name="ck_batch_items_price"),
        Index("idx_batch_items_batch_id", "batch_id"),
    )

    batch_id: Mapped[UUID] = mapped_column(ForeignKey("batches.id"), nullable=False)
    linen_category_id: Mapped[UUID] = mapped_column(
        ForeignKey("linen_categories.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(nullable=False)
    quantity_sent: Mapped[int] = mapped_column(nullable=False, default=0)
    quantity_received: Mapped[int] = mapped_column(nullable=False, default=0)
    price_per_item: Mapped[Decimal] = mapped_column(nullable=False)
    express_delivery: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    discrepancy_details: Mapped[str | None] = mapped_column(String(500), nullable=True)
    # Cached line total: round2(quantity_received * price_per_item)
    subtotal: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0.00"))

    batch: Mapped[Batch] = relationship(back_populates="items")
    linen_category: Mapped[LinenCategory] = relationship()

    def __repr__(self) -> str:
        return (
            f"<BatchItem {self.linen_category_id} "
            f"{self.quantity_sent}->{self.quantity_received} @ {self.price_per_item}>"
        )
