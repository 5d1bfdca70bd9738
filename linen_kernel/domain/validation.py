"""
Validation results: failures returned as values.

Boundary checks (item records, batch requests) report every problem they
find, each as a ``ValidationError`` whose ``code`` names the error kind
(``INVALID_QUANTITY``, ``INVALID_PRICE``, ...) and whose ``field`` is a
path like ``items[2].quantity_sent``.  Nothing here raises; a service
turns a failed result into ``BatchValidationError`` when it has to abort.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class ValidationError:
    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class ValidationResult:
    """Valid exactly when there are no errors; truthiness follows validity."""

    errors: tuple[ValidationError, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @classmethod
    def success(cls) -> ValidationResult:
        return cls()

    @classmethod
    def failure(cls, *errors: ValidationError) -> ValidationResult:
        if not errors:
            raise ValueError("A failed ValidationResult needs at least one error")
        return cls(errors=errors)

    @classmethod
    def from_errors(cls, errors: Iterable[ValidationError]) -> ValidationResult:
        return cls(errors=tuple(errors))

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(e.code for e in self.errors)

    @property
    def messages(self) -> tuple[str, ...]:
        return tuple(e.message for e in self.errors)

    def __bool__(self) -> bool:
        return self.is_valid
