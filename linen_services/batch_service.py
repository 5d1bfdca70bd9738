"""
BatchService -- batch creation, item amendment and status changes.

Responsibility:
    The transaction-owning shell around the pure engines.  Loads reference
    data (client, linen categories), validates the request, asks the
    engines for totals and identifiers, and writes the batch with its
    cached ``total_amount`` and ``has_discrepancy``.

Architecture position:
    Services -- imperative shell.  Imports linen_engines, linen_kernel.models
    and linen_kernel.domain.  Flush-only: the caller owns commit/rollback.

Invariants enforced:
    - ``total_amount`` is always the BatchSummary ``grand_total`` of the
      items as written; ``has_discrepancy`` its ``has_discrepancy``.
    - Price snapshots are never replaced by the category's current price.
      An amendment that omits a price keeps the existing snapshot.
    - Amendments and status changes read the batch under a row lock
      (``SELECT ... FOR UPDATE``) and increment ``version``.  A caller that
      passes ``expected_version`` gets OptimisticLockError when another
      writer got there first.
    - Status changes are validated against the persisted status.

Failure modes:
    - BatchValidationError: request or item records failed validation.
    - ClientNotFoundError / ClientInactiveError,
      CategoryNotFoundError / CategoryInactiveError.
    - DuplicatePaperBatchIdError: explicit paper id in use, or no free id
      after three attempts.
    - BatchNotFoundError, OptimisticLockError, InvalidTransitionError.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from linen_config.schema import EngineConfig
from linen_engines.financial import line_total
from linen_engines.identifiers import generate_system_batch_id, next_paper_batch_id
from linen_engines.invoice import InvoiceDocument, build_invoice
from linen_engines.lines import BatchLine, coerce_lines, validate_batch_lines
from linen_engines.status import require_transition
from linen_engines.summary import BatchStatistics, BatchSummary, BatchSummaryCalculator
from linen_kernel.domain.clock import Clock, SystemClock
from linen_kernel.domain.status import BatchStatus
from linen_kernel.domain.validation import ValidationError
from linen_kernel.exceptions import (
    BatchNotFoundError,
    BatchValidationError,
    CategoryInactiveError,
    CategoryNotFoundError,
    ClientInactiveError,
    ClientNotFoundError,
    DuplicatePaperBatchIdError,
    OptimisticLockError,
)
from linen_kernel.logging_config import LogContext, get_logger
from linen_kernel.models.batch import Batch, BatchItem
from linen_kernel.models.client import Client
from linen_kernel.models.linen_category import LinenCategory
from linen_services.base import BaseService
from linen_services.dtos import (
    BatchInfo,
    BatchItemInfo,
    BatchItemRequest,
    CreateBatchRequest,
)

logger = get_logger("services.batch")

MAX_INSERT_ATTEMPTS = 3


def _normalize_category_id(raw: Any) -> Any:
    try:
        return str(UUID(str(raw).strip()))
    except ValueError:
        return raw


def _records(items: Any) -> Any:
    """Item requests as wire records; non-lists pass through for validation."""
    if not isinstance(items, Sequence) or isinstance(items, (str, bytes)):
        return items
    records: list[Any] = []
    for item in items:
        if isinstance(item, BatchItemRequest):
            record: Any = item.to_record()
        elif isinstance(item, Mapping):
            record = dict(item)
        else:
            records.append(item)
            continue
        if record.get("linen_category_id") is not None:
            record["linen_category_id"] = _normalize_category_id(record["linen_category_id"])
        records.append(record)
    return records


def batch_lines(batch: Batch) -> tuple[BatchLine, ...]:
    """Engine lines for a persisted batch, using each item's own snapshot."""
    return tuple(
        BatchLine(
            linen_category_id=str(item.linen_category_id),
            quantity_sent=item.quantity_sent,
            quantity_received=item.quantity_received,
            price_per_item=item.price_per_item,
            express_delivery=item.express_delivery,
            discrepancy_details=item.discrepancy_details,
            category_name=item.linen_category.name if item.linen_category else None,
        )
        for item in batch.items
    )


def to_batch_info(batch: Batch) -> BatchInfo:
    return BatchInfo(
        id=batch.id,
        paper_batch_id=batch.paper_batch_id,
        system_batch_id=batch.system_batch_id,
        client_id=batch.client_id,
        pickup_date=batch.pickup_date,
        status=BatchStatus(batch.status),
        total_amount=batch.total_amount,
        has_discrepancy=batch.has_discrepancy,
        notes=batch.notes,
        version=batch.version,
        items=tuple(
            BatchItemInfo(
                id=item.id,
                linen_category_id=item.linen_category_id,
                category_name=item.linen_category.name if item.linen_category else None,
                line_number=item.line_number,
                quantity_sent=item.quantity_sent,
                quantity_received=item.quantity_received,
                price_per_item=item.price_per_item,
                express_delivery=item.express_delivery,
                discrepancy_details=item.discrepancy_details,
                subtotal=item.subtotal,
            )
            for item in batch.items
        ),
        created_at=batch.created_at,
        updated_at=batch.updated_at,
    )


class BatchService(BaseService):
    """
    Write-side operations on batches.

    Contract:
        Every public method returns a frozen ``BatchInfo`` (or engine
        result), never an ORM entity, and only flushes.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
        calculator: BatchSummaryCalculator | None = None,
    ):
        super().__init__(session, config)
        self._clock = clock or SystemClock()
        self._calculator = calculator or BatchSummaryCalculator()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_batch(self, request: CreateBatchRequest, actor_id: UUID) -> BatchInfo:
        """
        Create a batch and its items in one flush.

        Raises:
            BatchValidationError, ClientNotFoundError, ClientInactiveError,
            CategoryNotFoundError, CategoryInactiveError,
            DuplicatePaperBatchIdError.
        """
        with LogContext.bind(actor_id=str(actor_id)):
            explicit_id = (request.paper_batch_id or "").strip() or None
            records = _records(request.items)

            errors = self._request_errors(explicit_id, request.notes, request.pickup_date)
            self._load_client(request.client_id)
            categories = self._load_categories(records)
            prices = {cid: c.price_per_item for cid, c in categories.items()}
            errors.extend(validate_batch_lines(records, self.config, prices).errors)
            if errors:
                raise BatchValidationError(errors)

            lines = self._named(coerce_lines(records, self.config, prices), categories)
            summary = self._calculator.summarize(lines, self.config)

            if explicit_id is not None and self._paper_id_exists(explicit_id):
                raise DuplicatePaperBatchIdError(explicit_id)

            batch = self._insert(request, explicit_id, lines, summary, actor_id)

            logger.info(
                "batch_created",
                extra={
                    "batch_id": str(batch.id),
                    "paper_batch_id": batch.paper_batch_id,
                    "system_batch_id": batch.system_batch_id,
                    "item_count": len(lines),
                    "total_amount": str(batch.total_amount),
                    "has_discrepancy": batch.has_discrepancy,
                },
            )
            return to_batch_info(batch)

    def amend_items(
        self,
        batch_id: UUID,
        items: Sequence[BatchItemRequest | dict[str, Any]],
        actor_id: UUID,
        expected_version: int | None = None,
        notes: str | None = None,
        pickup_date: date | None = None,
    ) -> BatchInfo:
        """
        Replace a batch's items wholesale and recompute its cached totals.

        Items are matched to existing rows by category: matched rows are
        updated in place, new categories inserted, missing ones deleted.
        ``notes`` and ``pickup_date`` change only when given; pass ``""``
        to clear the notes.

        Raises:
            BatchNotFoundError, OptimisticLockError, BatchValidationError,
            CategoryNotFoundError, CategoryInactiveError.
        """
        with LogContext.bind(actor_id=str(actor_id), batch_id=str(batch_id)):
            batch = self._lock_batch(batch_id)
            self._check_version(batch, expected_version)

            records = _records(items)
            existing = {str(item.linen_category_id): item for item in batch.items}
            categories = self._load_categories(records, allow_inactive=set(existing))
            prices = {cid: c.price_per_item for cid, c in categories.items()}
            prices.update({cid: item.price_per_item for cid, item in existing.items()})

            errors = self._request_errors(None, notes, pickup_date or batch.pickup_date)
            errors.extend(validate_batch_lines(records, self.config, prices).errors)
            if errors:
                raise BatchValidationError(errors)

            lines = self._named(coerce_lines(records, self.config, prices), categories)
            kept: set[str] = set()
            for number, line in enumerate(lines, start=1):
                row = existing.get(line.linen_category_id)
                if row is None:
                    row = BatchItem(
                        linen_category_id=UUID(line.linen_category_id),
                        created_by_id=actor_id,
                    )
                    batch.items.append(row)
                else:
                    row.updated_by_id = actor_id
                self._apply_line(row, line, number)
                kept.add(line.linen_category_id)

            removed = [row for cid, row in existing.items() if cid not in kept]
            for row in removed:
                batch.items.remove(row)

            summary = self._calculator.summarize(lines, self.config)
            self._apply_summary(batch, summary, actor_id)
            if notes is not None:
                batch.notes = notes.strip() or None
            if pickup_date is not None:
                batch.pickup_date = pickup_date
            self.session.flush()

            logger.info(
                "batch_items_amended",
                extra={
                    "paper_batch_id": batch.paper_batch_id,
                    "item_count": len(lines),
                    "removed_count": len(removed),
                    "total_amount": str(batch.total_amount),
                    "has_discrepancy": batch.has_discrepancy,
                    "version": batch.version,
                },
            )
            return to_batch_info(batch)

    def change_status(
        self,
        batch_id: UUID,
        to_status: BatchStatus | str,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> BatchInfo:
        """
        Advance a batch one step through its lifecycle.

        Raises:
            BatchNotFoundError, OptimisticLockError, InvalidTransitionError.
        """
        with LogContext.bind(actor_id=str(actor_id), batch_id=str(batch_id)):
            batch = self._lock_batch(batch_id)
            self._check_version(batch, expected_version)

            result = require_transition(batch.status, to_status)
            batch.status = result.to_status
            batch.version += 1
            batch.updated_by_id = actor_id
            self.session.flush()

            logger.info(
                "batch_status_changed",
                extra={
                    "paper_batch_id": batch.paper_batch_id,
                    "from_status": result.from_status,
                    "to_status": result.to_status,
                    "version": batch.version,
                },
            )
            return to_batch_info(batch)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_batch(self, batch_id: UUID) -> BatchInfo:
        return to_batch_info(self._get_batch(batch_id))

    def get_summary(self, batch_id: UUID) -> BatchSummary:
        """Totals recomputed from the persisted items."""
        batch = self._get_batch(batch_id)
        return self._calculator.summarize(batch_lines(batch), self.config)

    def get_statistics(self, batch_id: UUID) -> BatchStatistics:
        batch = self._get_batch(batch_id)
        return self._calculator.statistics(batch_lines(batch), self.config)

    def get_invoice(self, batch_id: UUID) -> InvoiceDocument:
        batch = self._get_batch(batch_id)
        return build_invoice(
            batch_lines(batch),
            self.config,
            paper_batch_id=batch.paper_batch_id,
            client_name=batch.client.name if batch.client else None,
            pickup_date=batch.pickup_date,
            calculator=self._calculator,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _request_errors(
        self,
        paper_batch_id: str | None,
        notes: str | None,
        pickup_date: Any,
    ) -> list[ValidationError]:
        errors: list[ValidationError] = []
        if not isinstance(pickup_date, date):
            errors.append(
                ValidationError("VALIDATION_ERROR", "pickup_date is required", "pickup_date")
            )
        if paper_batch_id and len(paper_batch_id) > self.config.max_paper_batch_id_length:
            errors.append(
                ValidationError(
                    "VALIDATION_ERROR",
                    "Paper batch ID cannot exceed "
                    f"{self.config.max_paper_batch_id_length} characters",
                    "paper_batch_id",
                )
            )
        if notes and len(notes) > self.config.max_notes_length:
            errors.append(
                ValidationError(
                    "VALIDATION_ERROR",
                    f"Notes cannot exceed {self.config.max_notes_length} characters",
                    "notes",
                )
            )
        return errors

    def _load_client(self, client_id: UUID) -> Client:
        client = self.session.get(Client, client_id)
        if client is None:
            raise ClientNotFoundError(str(client_id))
        if not client.is_active:
            raise ClientInactiveError(str(client_id))
        return client

    def _load_categories(
        self,
        records: Any,
        allow_inactive: set[str] | None = None,
    ) -> dict[str, LinenCategory]:
        """Categories referenced by well-formed records, keyed by id string."""
        if not isinstance(records, list):
            return {}
        wanted: dict[str, UUID] = {}
        for record in records:
            if not isinstance(record, Mapping) or record.get("linen_category_id") is None:
                continue
            raw = record["linen_category_id"]
            try:
                wanted[str(raw)] = UUID(str(raw))
            except ValueError:
                raise CategoryNotFoundError(str(raw)) from None
        if not wanted:
            return {}

        rows = self.session.execute(
            select(LinenCategory).where(LinenCategory.id.in_(list(wanted.values())))
        ).scalars().all()
        found = {str(row.id): row for row in rows}

        for cid in wanted:
            category = found.get(cid)
            if category is None:
                raise CategoryNotFoundError(cid)
            if not category.is_active and cid not in (allow_inactive or set()):
                raise CategoryInactiveError(cid)
        return found

    @staticmethod
    def _named(
        lines: tuple[BatchLine, ...],
        categories: dict[str, LinenCategory],
    ) -> tuple[BatchLine, ...]:
        return tuple(
            replace(line, category_name=categories[line.linen_category_id].name)
            if line.linen_category_id in categories
            else line
            for line in lines
        )

    def _paper_id_exists(self, paper_batch_id: str) -> bool:
        return (
            self.session.execute(
                select(Batch.id).where(Batch.paper_batch_id == paper_batch_id)
            ).first()
            is not None
        )

    def _system_id_exists(self, system_batch_id: str) -> bool:
        return (
            self.session.execute(
                select(Batch.id).where(Batch.system_batch_id == system_batch_id)
            ).first()
            is not None
        )

    def _suggest_paper_id(self, pickup_date: date) -> str:
        prefix = f"PB-{pickup_date.year:04d}-{pickup_date.month:02d}-"
        existing = self.session.execute(
            select(Batch.paper_batch_id).where(Batch.paper_batch_id.like(f"{prefix}%"))
        ).scalars().all()
        return next_paper_batch_id(
            existing, pickup_date.year, pickup_date.month, self.config
        )

    def _insert(
        self,
        request: CreateBatchRequest,
        explicit_id: str | None,
        lines: tuple[BatchLine, ...],
        summary: BatchSummary,
        actor_id: UUID,
    ) -> Batch:
        """
        Insert under a savepoint, retrying generated ids on collision.

        A clash on the paper id is a duplicate when the caller chose the id
        and a reason to pick the next number otherwise.  A clash on the
        system id draws a fresh one.  Any other integrity error propagates
        unchanged.
        """
        for attempt in range(1, MAX_INSERT_ATTEMPTS + 1):
            paper_id = explicit_id or self._suggest_paper_id(request.pickup_date)
            system_id = generate_system_batch_id(self._clock.now())
            batch = Batch(
                paper_batch_id=paper_id,
                system_batch_id=system_id,
                client_id=request.client_id,
                pickup_date=request.pickup_date,
                status=BatchStatus.PICKUP.value,
                notes=(request.notes or "").strip() or None,
                version=1,
                created_by_id=actor_id,
            )
            for number, line in enumerate(lines, start=1):
                row = BatchItem(
                    linen_category_id=UUID(line.linen_category_id),
                    created_by_id=actor_id,
                )
                self._apply_line(row, line, number)
                batch.items.append(row)
            batch.total_amount = summary.grand_total
            batch.has_discrepancy = summary.has_discrepancy

            savepoint = self.session.begin_nested()
            try:
                self.session.add(batch)
                self.session.flush()
                savepoint.commit()
                return batch
            except IntegrityError as e:
                savepoint.rollback()
                if self._paper_id_exists(paper_id):
                    conflict = "paper_batch_id"
                elif self._system_id_exists(system_id):
                    conflict = "system_batch_id"
                else:
                    raise
                logger.warning(
                    "batch_insert_conflict",
                    extra={
                        "paper_batch_id": paper_id,
                        "conflict": conflict,
                        "attempt": attempt,
                    },
                )
                if conflict == "paper_batch_id" and (
                    explicit_id is not None or attempt == MAX_INSERT_ATTEMPTS
                ):
                    raise DuplicatePaperBatchIdError(paper_id) from e
                if attempt == MAX_INSERT_ATTEMPTS:
                    raise
        raise DuplicatePaperBatchIdError(explicit_id or "")

    def _apply_line(self, row: BatchItem, line: BatchLine, number: int) -> None:
        row.line_number = number
        row.quantity_sent = line.quantity_sent
        row.quantity_received = line.quantity_received
        row.price_per_item = line.price_per_item
        row.express_delivery = line.express_delivery
        row.discrepancy_details = line.discrepancy_details
        row.subtotal = line_total(line, self.config).line_total

    @staticmethod
    def _apply_summary(batch: Batch, summary: BatchSummary, actor_id: UUID) -> None:
        batch.total_amount = summary.grand_total
        batch.has_discrepancy = summary.has_discrepancy
        batch.version += 1
        batch.updated_by_id = actor_id

    def _get_batch(self, batch_id: UUID) -> Batch:
        batch = self.session.get(Batch, batch_id)
        if batch is None:
            raise BatchNotFoundError(str(batch_id))
        return batch

    def _lock_batch(self, batch_id: UUID) -> Batch:
        batch = self.session.execute(
            select(Batch)
            .where(Batch.id == batch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if batch is None:
            raise BatchNotFoundError(str(batch_id))
        return batch

    @staticmethod
    def _check_version(batch: Batch, expected_version: int | None) -> None:
        if expected_version is not None and batch.version != expected_version:
            logger.warning(
                "batch_version_conflict",
                extra={"expected_version": expected_version, "actual_version": batch.version},
            )
            raise OptimisticLockError("Batch", str(batch.id))
