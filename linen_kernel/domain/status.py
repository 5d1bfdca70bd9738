"""Batch status wire values."""

from enum import Enum


class BatchStatus(str, Enum):
    """Batch lifecycle status.

    Contract: statuses advance strictly forward,
    PICKUP -> WASHING -> COMPLETED -> DELIVERED.  DELIVERED is terminal.
    """

    PICKUP = "pickup"
    WASHING = "washing"
    COMPLETED = "completed"
    DELIVERED = "delivered"

    @classmethod
    def parse(cls, value: "BatchStatus | str") -> "BatchStatus | None":
        """Return the matching status, or None for an unknown wire value."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return None
        return None
