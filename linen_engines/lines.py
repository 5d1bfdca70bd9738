"""
linen_engines.lines -- Batch item records as immutable engine input.

Responsibility:
    Turn the wire item record ``{linen_category_id, quantity_sent,
    quantity_received, price_per_item, express_delivery,
    discrepancy_details}`` into a validated ``BatchLine`` and report
    boundary problems either as typed errors (``coerce_lines``) or as an
    explicit ``ValidationResult`` (``validate_batch_lines``).

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Every other engine in
    this package consumes ``BatchLine`` tuples produced here.

Invariants enforced:
    - Quantities are integers in [0, max_quantity]; booleans and fractions
      are rejected, never truncated.
    - The effective unit price is the item's own snapshot.  A category
      price is consulted only when the snapshot is absent.
    - Prices are finite Decimals in [0, ceiling] with at most two decimal
      places; an operator-entered snapshot is capped at ``max_unit_price``,
      a category-sourced price at ``max_category_price``.

Failure modes:
    - InvalidItemsError: input is not a list, an element is not a record,
      the category id is missing, or discrepancy_details is too long.
    - InvalidQuantityError / InvalidPriceError: out-of-range values.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from linen_config.schema import EngineConfig
from linen_kernel.domain.rounding import CENT, ZERO, calculate_percentage, to_decimal
from linen_kernel.domain.validation import ValidationError, ValidationResult
from linen_kernel.exceptions import (
    CalculationError,
    InvalidAmountError,
    InvalidItemsError,
    InvalidPriceError,
    InvalidQuantityError,
)
from linen_kernel.logging_config import get_logger

logger = get_logger("engines.lines")


@dataclass(frozen=True)
class BatchLine:
    """
    One linen category's quantities and price snapshot within a batch.

    Construct directly for trusted data (persisted rows) or through
    ``BatchLine.from_record`` for wire records.
    """

    linen_category_id: str
    quantity_sent: int
    quantity_received: int
    price_per_item: Decimal
    express_delivery: bool = False
    discrepancy_details: str | None = None
    category_name: str | None = None

    def __post_init__(self) -> None:
        if not self.linen_category_id:
            raise InvalidItemsError("linen_category_id is required")
        _check_quantity("quantity_sent", self.quantity_sent)
        _check_quantity("quantity_received", self.quantity_received)
        if not isinstance(self.price_per_item, Decimal) or not self.price_per_item.is_finite():
            raise InvalidPriceError(self.price_per_item, "Price must be a finite Decimal")
        if self.price_per_item < ZERO:
            raise InvalidPriceError(self.price_per_item, "Price cannot be negative")
        if _has_fractional_cents(self.price_per_item):
            raise InvalidPriceError(self.price_per_item, _CENTS_MESSAGE)

    @property
    def discrepancy(self) -> int:
        """Signed: positive means fewer received than sent."""
        return self.quantity_sent - self.quantity_received

    @property
    def has_discrepancy(self) -> bool:
        return self.quantity_sent != self.quantity_received

    @classmethod
    def from_record(
        cls,
        record: Any,
        config: EngineConfig | None = None,
        category_prices: Mapping[str, Any] | None = None,
        index: int | None = None,
    ) -> BatchLine:
        """
        Build a line from a wire item record.

        ``quantity_received`` defaults to ``quantity_sent`` when the key is
        absent.  ``category_prices`` maps category id to the category's
        current price and is used only when the record has no price.

        Raises:
            InvalidItemsError, InvalidQuantityError, InvalidPriceError
        """
        config = config or EngineConfig.with_defaults()
        if not isinstance(record, Mapping):
            raise InvalidItemsError("must be an object", index=index)

        category_id = record.get("linen_category_id")
        if category_id is None or not str(category_id).strip():
            raise InvalidItemsError("linen_category_id is required", index=index)
        category_id = str(category_id).strip()

        sent = _entry_quantity("quantity_sent", record.get("quantity_sent"), config)
        received_raw = record.get("quantity_received")
        received = (
            sent
            if received_raw is None
            else _entry_quantity("quantity_received", received_raw, config)
        )

        price_raw = record.get("price_per_item")
        if price_raw is not None:
            price = _entry_price(price_raw, config.max_unit_price)
        elif category_prices is not None and category_prices.get(category_id) is not None:
            price = _entry_price(category_prices[category_id], config.max_category_price)
        else:
            raise InvalidPriceError(
                None, f"No price snapshot or category price for {category_id}"
            )

        express = record.get("express_delivery", False)
        if express is None:
            express = False
        if not isinstance(express, bool):
            raise InvalidItemsError("express_delivery must be a boolean", index=index)

        details = record.get("discrepancy_details")
        if details is not None:
            if not isinstance(details, str):
                raise InvalidItemsError("discrepancy_details must be text", index=index)
            details = details.strip() or None
            if details and len(details) > config.max_discrepancy_details_length:
                raise InvalidItemsError(
                    "discrepancy_details cannot exceed "
                    f"{config.max_discrepancy_details_length} characters",
                    index=index,
                )

        return cls(
            linen_category_id=category_id,
            quantity_sent=sent,
            quantity_received=received,
            price_per_item=price,
            express_delivery=express,
            discrepancy_details=details,
            category_name=record.get("category_name"),
        )


@dataclass(frozen=True)
class ItemValidation:
    """Outcome of a single item's quantity check; warnings never fail it."""

    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_quantity(field: str, value: Any) -> None:
    if not _is_int(value):
        raise InvalidQuantityError(field, value, "must be a whole number")
    if value < 0:
        raise InvalidQuantityError(field, value, "cannot be negative")


def _entry_quantity(field: str, value: Any, config: EngineConfig) -> int:
    if value is None:
        raise InvalidQuantityError(field, value, "is required")
    _check_quantity(field, value)
    if value > config.max_quantity:
        raise InvalidQuantityError(
            field, value, f"cannot exceed {config.max_quantity:,}"
        )
    return value


_CENTS_MESSAGE = "Price per item must have at most 2 decimal places"


def _has_fractional_cents(price: Decimal) -> bool:
    try:
        return price != price.quantize(CENT)
    except InvalidOperation:
        # Too many digits to quantize; only whole numbers get that large
        return False


def _entry_price(value: Any, ceiling: Decimal) -> Decimal:
    try:
        price = to_decimal(value)
    except InvalidAmountError as e:
        raise InvalidPriceError(value, "Price must be a valid number") from e
    if price < ZERO:
        raise InvalidPriceError(value, "Price cannot be negative")
    if price > ceiling:
        raise InvalidPriceError(value, f"Price per item cannot exceed R{ceiling:,}")
    if _has_fractional_cents(price):
        raise InvalidPriceError(value, _CENTS_MESSAGE)
    return price


def coerce_lines(
    items: Any,
    config: EngineConfig | None = None,
    category_prices: Mapping[str, Any] | None = None,
) -> tuple[BatchLine, ...]:
    """
    Normalise an item list into BatchLines.

    Accepts a list or tuple whose elements are ``BatchLine`` instances or
    wire records.  Anything else is malformed.

    Raises:
        InvalidItemsError: ``items`` is not a list or holds a non-record.
        InvalidQuantityError, InvalidPriceError: from ``from_record``.
    """
    if not isinstance(items, Sequence) or isinstance(items, (str, bytes)):
        raise InvalidItemsError("Items must be a valid array")
    lines: list[BatchLine] = []
    for i, item in enumerate(items):
        if isinstance(item, BatchLine):
            lines.append(item)
        else:
            lines.append(BatchLine.from_record(item, config, category_prices, index=i))
    return tuple(lines)


def validate_item_quantities(
    quantity_sent: Any,
    quantity_received: Any,
    config: EngineConfig | None = None,
) -> ItemValidation:
    """
    Check one item's quantities, separating errors from warnings.

    Warnings: nothing sent, and a discrepancy above
    ``large_discrepancy_warning_percent`` of the quantity sent.
    """
    config = config or EngineConfig.with_defaults()
    errors: list[str] = []
    warnings: list[str] = []

    sent_ok = received_ok = False
    if not _is_int(quantity_sent):
        errors.append("Quantity sent must be a valid number")
    elif quantity_sent < 0:
        errors.append("Quantity sent cannot be negative")
    elif quantity_sent > config.max_quantity:
        errors.append(f"Quantity sent cannot exceed {config.max_quantity:,}")
    else:
        sent_ok = True
        if quantity_sent == 0:
            warnings.append("Quantity sent is zero")

    if not _is_int(quantity_received):
        errors.append("Quantity received must be a valid number")
    elif quantity_received < 0:
        errors.append("Quantity received cannot be negative")
    elif quantity_received > config.max_quantity:
        errors.append(f"Quantity received cannot exceed {config.max_quantity:,}")
    else:
        received_ok = True

    if sent_ok and received_ok and quantity_sent > 0:
        percent = calculate_percentage(abs(quantity_sent - quantity_received), quantity_sent)
        if percent > config.large_discrepancy_warning_percent:
            warnings.append(
                f"Large discrepancy detected: {percent:.1f}% difference"
            )

    return ItemValidation(
        is_valid=not errors, errors=tuple(errors), warnings=tuple(warnings)
    )


def _field_for(error: CalculationError) -> str | None:
    if isinstance(error, InvalidQuantityError):
        return error.field
    if isinstance(error, InvalidPriceError):
        return "price_per_item"
    return None


def validate_batch_lines(
    items: Any,
    config: EngineConfig | None = None,
    category_prices: Mapping[str, Any] | None = None,
    require_items: bool = True,
) -> ValidationResult:
    """
    Validate a batch's item records, collecting every problem.

    Never raises for bad input.  Checks each record (ranges, price
    resolution, details length), duplicate categories, and, when
    ``require_items`` is set, that at least one item is present.
    """
    config = config or EngineConfig.with_defaults()
    if not isinstance(items, Sequence) or isinstance(items, (str, bytes)):
        return ValidationResult.failure(
            ValidationError("INVALID_ITEMS", "Items must be a valid array", "items")
        )
    if require_items and not items:
        return ValidationResult.failure(
            ValidationError("INVALID_ITEMS", "At least one item is required", "items")
        )

    errors: list[ValidationError] = []
    seen: set[str] = set()
    for i, item in enumerate(items):
        try:
            line = (
                item
                if isinstance(item, BatchLine)
                else BatchLine.from_record(item, config, category_prices, index=i)
            )
        except CalculationError as e:
            field = _field_for(e)
            message = str(e)
            if not isinstance(e, InvalidItemsError):
                message = f"Item {i + 1}: {message}"
            errors.append(
                ValidationError(
                    code=e.code,
                    message=message,
                    field=f"items[{i}].{field}" if field else f"items[{i}]",
                )
            )
            continue
        if line.linen_category_id in seen:
            errors.append(
                ValidationError(
                    code="INVALID_ITEMS",
                    message="Duplicate linen categories are not allowed in the same batch",
                    field=f"items[{i}].linen_category_id",
                )
            )
        seen.add(line.linen_category_id)

    if errors:
        logger.info(
            "batch_lines_validation_failed",
            extra={"error_count": len(errors), "item_count": len(items)},
        )
    return ValidationResult.from_errors(errors)


def total_quantities(lines: Iterable[BatchLine]) -> tuple[int, int]:
    """(total sent, total received) across lines."""
    sent = received = 0
    for line in lines:
        sent += line.quantity_sent
        received += line.quantity_received
    return sent, received
