"""ORM models. Importing this package registers every table on Base.metadata."""

from linen_kernel.models.batch import Batch, BatchItem
from linen_kernel.models.client import Client
from linen_kernel.models.linen_category import LinenCategory

__all__ = [
    "Batch",
    "BatchItem",
    "Client",
    "LinenCategory",
]
