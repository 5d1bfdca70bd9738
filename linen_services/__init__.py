"""
Transaction-owning services between storage and the pure engines.

Services flush within the caller's session; wrap calls in
``linen_kernel.db.session_scope()`` to commit.
"""

from linen_services.batch_service import MAX_INSERT_ATTEMPTS, BatchService
from linen_services.dtos import (
    BatchInfo,
    BatchItemInfo,
    BatchItemRequest,
    CreateBatchRequest,
    DashboardTotals,
)
from linen_services.reporting_service import ReportingService

__all__ = [
    "MAX_INSERT_ATTEMPTS",
    "BatchInfo",
    "BatchItemInfo",
    "BatchItemRequest",
    "BatchService",
    "CreateBatchRequest",
    "DashboardTotals",
    "ReportingService",
]
