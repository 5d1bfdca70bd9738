"""
Module: linen_kernel.models.client
Responsibility: ORM persistence for laundry clients, the counterparty of
    every batch.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from linen_kernel.db.base import TrackedBase


class Client(TrackedBase):
    """
    A client whose linen is picked up, washed and delivered.

    Guarantees:
        - is_active gates new batches (checked by BatchService).
    """

    __tablename__ = "clients"

    __table_args__ = (
        Index("idx_clients_name", "name"),
        Index("idx_clients_is_active", "is_active"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_terms_days: Mapped[int] = mapped_column(default=30)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Client {self.name}>"
