"""
Module: linen_kernel.models.linen_category
Responsibility: ORM persistence for linen categories and their current
    reference price.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    The category price is a reference only.  A batch item copies it into
    its own ``price_per_item`` when the item is created; later category
    price changes never flow back into existing batch items.
"""

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from linen_kernel.db.base import TrackedBase


class LinenCategory(TrackedBase):
    """A kind of linen item (e.g. bath towel) with its current price."""

    __tablename__ = "linen_categories"

    __table_args__ = (
        UniqueConstraint("name", name="uq_linen_categories_name"),
        CheckConstraint("price_per_item >= 0", name="ck_linen_categories_price"),
        Index("idx_linen_categories_is_active", "is_active"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price_per_item: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0.00"))
    section: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<LinenCategory {self.name} @ {self.price_per_item}>"
