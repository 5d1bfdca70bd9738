"""
Rounding -- canonical currency rounding for every monetary value.

Responsibility:
    Single source of truth for turning numbers into 2-decimal currency
    amounts.  Every engine, service and renderer rounds through ``round2``
    so that the creation form, dashboard, invoice and exports can never
    drift apart by a cent.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Decimal-only arithmetic.  Floats are accepted at the boundary only by
      converting through ``str()`` so ``0.1`` becomes ``Decimal("0.1")``
      rather than its binary expansion.
    - Round-half-away-from-zero (``ROUND_HALF_UP`` on Decimal) to 2 places.
    - Idempotence: ``round2(round2(x)) == round2(x)``.

Failure modes:
    - InvalidAmountError for booleans, non-numeric strings, NaN/Infinity,
      and values too large to quantize.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from linen_kernel.exceptions import InvalidAmountError

CURRENCY_PLACES = 2
CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """
    Convert a numeric value to a finite Decimal without rounding.

    Raises:
        InvalidAmountError: value is not a finite number.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(value, "Amount must be a number, not a boolean")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise InvalidAmountError(value) from e
    else:
        raise InvalidAmountError(value)

    if not result.is_finite():
        raise InvalidAmountError(value, "Amount must be finite")
    return result


def _quantize(value: Decimal, places: int) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    try:
        return value.quantize(exponent, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise InvalidAmountError(value, "Amount is too large to round") from e


def round2(amount: Any) -> Decimal:
    """
    Round an amount to 2 decimal places, half away from zero.

    Equivalent to ``round(amount * 100) / 100`` with Decimal precision:
    ``round2("2.345") == Decimal("2.35")`` and
    ``round2("-2.345") == Decimal("-2.35")``.
    """
    return _quantize(to_decimal(amount), CURRENCY_PLACES)


def calculate_percentage(value: Any, total: Any, places: int = 2) -> Decimal:
    """
    ``value / total * 100`` rounded half-up to ``places``; 0 when total is 0.
    """
    numerator = to_decimal(value)
    denominator = to_decimal(total)
    if denominator == ZERO:
        return _quantize(ZERO, places)
    return _quantize(numerator / denominator * HUNDRED, places)
