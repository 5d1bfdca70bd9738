"""Pure domain primitives: rounding, validation results, clock, workflows."""

from linen_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from linen_kernel.domain.rounding import (
    CENT,
    ZERO,
    calculate_percentage,
    round2,
    to_decimal,
)
from linen_kernel.domain.status import BatchStatus
from linen_kernel.domain.validation import ValidationError, ValidationResult
from linen_kernel.domain.workflow import Transition, Workflow

__all__ = [
    "BatchStatus",
    "CENT",
    "ZERO",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Transition",
    "ValidationError",
    "ValidationResult",
    "Workflow",
    "calculate_percentage",
    "round2",
    "to_decimal",
]
