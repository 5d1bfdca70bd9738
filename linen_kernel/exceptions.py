"""
Typed exception hierarchy for the linen kernel.

Every error carries a ``code`` class attribute (machine-readable, safe to
hand to an HTTP layer) and stores its context as attributes rather than
burying it in the message.  Callers catch by type, never by message text.

    LinenKernelError (base)
    |
    +-- CalculationError
    |   +-- InvalidAmountError          INVALID_AMOUNT
    |   +-- InvalidItemsError           INVALID_ITEMS
    |   +-- InvalidQuantityError        INVALID_QUANTITY
    |   +-- InvalidPriceError           INVALID_PRICE
    |
    +-- IdentifierError
    |   +-- InvalidYearError            INVALID_YEAR
    |   +-- InvalidMonthError           INVALID_MONTH
    |   +-- InvalidSequenceError        INVALID_SEQUENCE
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError      INVALID_TRANSITION
    |
    +-- BatchError
    |   +-- BatchNotFoundError          BATCH_NOT_FOUND
    |   +-- DuplicatePaperBatchIdError  DUPLICATE_BATCH_ID
    |   +-- BatchValidationError        VALIDATION_ERROR
    |
    +-- ReferenceDataError
    |   +-- ClientNotFoundError         CLIENT_NOT_FOUND
    |   +-- ClientInactiveError         CLIENT_INACTIVE
    |   +-- CategoryNotFoundError       CATEGORY_NOT_FOUND
    |   +-- CategoryInactiveError       CATEGORY_INACTIVE
    |
    +-- ConcurrencyError
        +-- OptimisticLockError         OPTIMISTIC_LOCK_CONFLICT

The HTTP layer maps categories to status codes (CalculationError,
IdentifierError, BatchValidationError -> 400; *NotFoundError -> 404;
DuplicatePaperBatchIdError and ConcurrencyError -> 409).  The kernel itself
knows nothing about transport.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from linen_kernel.domain.validation import ValidationError


class LinenKernelError(Exception):
    """
    Base exception for all linen kernel errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "LINEN_KERNEL_ERROR"


# Calculation errors


class CalculationError(LinenKernelError):
    """Base exception for malformed engine input."""

    code: str = "CALCULATION_ERROR"


class InvalidAmountError(CalculationError):
    """A monetary amount is not a finite number."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: Any, reason: str = "Amount must be a valid number"):
        self.amount = repr(amount)
        self.reason = reason
        super().__init__(f"{reason}: {amount!r}")


class InvalidItemsError(CalculationError):
    """The item collection handed to an engine is not a well-formed list."""

    code: str = "INVALID_ITEMS"

    def __init__(self, reason: str, index: int | None = None):
        self.reason = reason
        self.index = index
        prefix = f"Item {index + 1}: " if index is not None else ""
        super().__init__(f"{prefix}{reason}")


class InvalidQuantityError(CalculationError):
    """A quantity is negative, fractional, or above the ceiling."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = repr(value)
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


class InvalidPriceError(CalculationError):
    """A unit price is negative, missing, or above the ceiling."""

    code: str = "INVALID_PRICE"

    def __init__(self, value: Any, reason: str):
        self.value = repr(value)
        self.reason = reason
        super().__init__(f"Invalid price {value!r}: {reason}")


# Identifier errors


class IdentifierError(LinenKernelError):
    """Base exception for batch identifier generation."""

    code: str = "IDENTIFIER_ERROR"


class InvalidYearError(IdentifierError):
    """Year is outside the supported paper batch id range."""

    code: str = "INVALID_YEAR"

    def __init__(self, year: Any, min_year: int, max_year: int):
        self.year = year
        self.min_year = min_year
        self.max_year = max_year
        super().__init__(f"Year must be between {min_year} and {max_year}, got {year!r}")


class InvalidMonthError(IdentifierError):
    """Month is not in 1..12."""

    code: str = "INVALID_MONTH"

    def __init__(self, month: Any):
        self.month = month
        super().__init__(f"Month must be between 1 and 12, got {month!r}")


class InvalidSequenceError(IdentifierError):
    """Sequence is below 1 or above the three-digit ceiling."""

    code: str = "INVALID_SEQUENCE"

    def __init__(self, sequence: Any, max_sequence: int):
        self.sequence = sequence
        self.max_sequence = max_sequence
        super().__init__(
            f"Sequence must be between 1 and {max_sequence}, got {sequence!r}"
        )


# Workflow errors


class WorkflowError(LinenKernelError):
    """Base exception for batch status workflow errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """Requested status change is not a sanctioned forward edge."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        super().__init__(reason)


# Batch errors


class BatchError(LinenKernelError):
    """Base exception for batch persistence errors."""

    code: str = "BATCH_ERROR"


class BatchNotFoundError(BatchError):
    """Batch with given ID was not found."""

    code: str = "BATCH_NOT_FOUND"

    def __init__(self, batch_id: str):
        self.batch_id = batch_id
        super().__init__(f"Batch not found: {batch_id}")


class DuplicatePaperBatchIdError(BatchError):
    """Paper batch ID is already used by another batch."""

    code: str = "DUPLICATE_BATCH_ID"

    def __init__(self, paper_batch_id: str):
        self.paper_batch_id = paper_batch_id
        super().__init__(f"Paper batch ID already exists: {paper_batch_id}")


class BatchValidationError(BatchError):
    """
    Batch request failed boundary validation.

    Wraps the ``ValidationError`` records of a failed ``ValidationResult``
    so a service can abort its transaction with every problem reported.
    """

    code: str = "VALIDATION_ERROR"

    def __init__(self, errors: tuple[ValidationError, ...] | list[ValidationError]):
        self.errors = tuple(errors)
        super().__init__(
            "Validation failed: " + ", ".join(e.message for e in self.errors)
        )


# Reference data errors


class ReferenceDataError(LinenKernelError):
    """Base exception for client and linen category lookups."""

    code: str = "REFERENCE_DATA_ERROR"


class ClientNotFoundError(ReferenceDataError):
    """Client with given ID was not found."""

    code: str = "CLIENT_NOT_FOUND"

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"Client not found: {client_id}")


class ClientInactiveError(ReferenceDataError):
    """Client is deactivated and cannot receive new batches."""

    code: str = "CLIENT_INACTIVE"

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"Client is inactive: {client_id}")


class CategoryNotFoundError(ReferenceDataError):
    """Linen category with given ID was not found."""

    code: str = "CATEGORY_NOT_FOUND"

    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__(f"Linen category not found: {category_id}")


class CategoryInactiveError(ReferenceDataError):
    """Linen category is deactivated."""

    code: str = "CATEGORY_INACTIVE"

    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__(f"Linen category is inactive: {category_id}")


# Concurrency errors


class ConcurrencyError(LinenKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )
