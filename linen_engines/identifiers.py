"""
linen_engines.identifiers -- Paper and system batch identifiers.

Responsibility:
    Generate, validate and parse the human-facing paper batch id
    (``PB-YYYY-MM-NNN``) and generate the opaque system batch id.

Architecture position:
    Engines -- pure calculation layer.  The only non-determinism is the
    random segments of the system id; the timestamp is passed in by the
    caller, so engines never read the clock.

Invariants enforced:
    - Every id produced by ``generate_paper_batch_id`` satisfies
      ``validate_paper_batch_id`` and parses back to its inputs.
    - ``validate_paper_batch_id`` and ``parse_paper_batch_id`` never raise.

Failure modes:
    - InvalidYearError, InvalidMonthError, InvalidSequenceError from
      ``generate_paper_batch_id`` and ``next_paper_batch_id``.

Usage:
    generate_paper_batch_id(2024, 1, 6)        # "PB-2024-01-006"
    parse_paper_batch_id("PB-2024-01-006")     # PaperBatchId(2024, 1, 6)
    generate_system_batch_id(clock.now())      # "18d0c8a3b40-3fa2c1-9be004"
"""

from __future__ import annotations

import re
import secrets
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from linen_config.schema import EngineConfig
from linen_engines.tracer import traced_engine
from linen_kernel.exceptions import (
    InvalidMonthError,
    InvalidSequenceError,
    InvalidYearError,
)
from linen_kernel.logging_config import get_logger

logger = get_logger("engines.identifiers")

PAPER_BATCH_ID_PATTERN = re.compile(r"PB-(\d{4})-(\d{2})-(\d{3})", re.ASCII)


@dataclass(frozen=True)
class PaperBatchId:
    """Components of a paper batch id."""

    year: int
    month: int
    sequence: int

    def __str__(self) -> str:
        return f"PB-{self.year:04d}-{self.month:02d}-{self.sequence:03d}"


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def generate_paper_batch_id(
    year: int,
    month: int,
    sequence: int,
    config: EngineConfig | None = None,
) -> str:
    """
    Format ``PB-YYYY-MM-NNN``.

    Raises:
        InvalidYearError: year outside the configured range.
        InvalidMonthError: month outside 1..12.
        InvalidSequenceError: sequence outside 1..max_paper_sequence.
    """
    config = config or EngineConfig.with_defaults()
    if not _is_int(year) or not config.paper_id_min_year <= year <= config.paper_id_max_year:
        raise InvalidYearError(year, config.paper_id_min_year, config.paper_id_max_year)
    if not _is_int(month) or not 1 <= month <= 12:
        raise InvalidMonthError(month)
    if not _is_int(sequence) or not 1 <= sequence <= config.max_paper_sequence:
        raise InvalidSequenceError(sequence, config.max_paper_sequence)
    return str(PaperBatchId(year, month, sequence))


def parse_paper_batch_id(
    paper_batch_id: object,
    config: EngineConfig | None = None,
) -> PaperBatchId | None:
    """Inverse of generation; None for anything malformed or out of range."""
    if not isinstance(paper_batch_id, str):
        return None
    match = PAPER_BATCH_ID_PATTERN.fullmatch(paper_batch_id)
    if match is None:
        return None
    config = config or EngineConfig.with_defaults()
    year, month, sequence = (int(g) for g in match.groups())
    if not config.paper_id_min_year <= year <= config.paper_id_max_year:
        return None
    if not 1 <= month <= 12:
        return None
    if not 1 <= sequence <= config.max_paper_sequence:
        return None
    return PaperBatchId(year, month, sequence)


def validate_paper_batch_id(
    paper_batch_id: object,
    config: EngineConfig | None = None,
) -> bool:
    return parse_paper_batch_id(paper_batch_id, config) is not None


def generate_system_batch_id(
    now: datetime,
    token_source: Callable[[int], str] = secrets.token_hex,
) -> str:
    """
    ``<ms timestamp hex>-<6 hex>-<6 hex>``.

    Not guaranteed collision-free; the storage layer's unique constraint
    is the final guard.
    """
    millis = int(now.timestamp() * 1000)
    return f"{millis:x}-{token_source(3)}-{token_source(3)}"


@traced_engine("identifiers", "1.0", fingerprint_fields=("year", "month"))
def next_paper_batch_id(
    existing_ids: Iterable[str],
    year: int,
    month: int,
    config: EngineConfig | None = None,
) -> str:
    """
    Suggest the id after the highest sequence already used in the month.

    Ids that do not parse, or belong to another month, are ignored.

    Raises:
        InvalidSequenceError: the month's sequence space is exhausted.
    """
    config = config or EngineConfig.with_defaults()
    highest = 0
    for existing in existing_ids:
        parsed = parse_paper_batch_id(existing, config)
        if parsed is not None and parsed.year == year and parsed.month == month:
            highest = max(highest, parsed.sequence)
    candidate = generate_paper_batch_id(year, month, highest + 1, config)
    logger.debug(
        "paper_batch_id_suggested",
        extra={"paper_batch_id": candidate, "previous_sequence": highest},
    )
    return candidate
