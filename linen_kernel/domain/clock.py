"""
Injectable time source.

Engines never read the wall clock.  Services take a ``Clock`` and hand
timestamps to the engines, so system batch ids and audit times are
reproducible under test.
"""

from datetime import UTC, date, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Timezone-aware current time."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock:
    """Frozen clock for tests; moves only when told to."""

    def __init__(self, fixed_time: datetime):
        if fixed_time.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware datetime")
        self._current = fixed_time

    def now(self) -> datetime:
        return self._current

    def today(self) -> date:
        return self._current.date()

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def set_time(self, moment: datetime) -> None:
        self._current = moment
