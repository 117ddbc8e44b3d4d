"""
Module: verein_kernel.domain.clock
Responsibility:
    Injectable time source.  The billing service reads "today" (invoice
    date, dunning as-of date, batch date) and the XML creation timestamp
    from a Clock and passes them down; engines never read the system clock.

Architecture position:
    Kernel > Domain.  ``SystemClock`` is the only place that touches real
    time.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from typing import Sequence

DEFAULT_TEST_TIME = datetime(2025, 1, 1, 9, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware "now"."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def now_utc(self) -> datetime:
        return self.now().astimezone(timezone.utc)

    def today(self) -> date:
        """Calendar date of ``now()`` in the clock's own timezone."""
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests.

    ``now()`` only moves when the test moves it: ``advance()`` by seconds,
    ``advance_days()`` for daily dunning sweeps, ``tick()`` for one second.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def advance_days(self, days: int = 1) -> None:
        self._current += timedelta(days=days)

    def tick(self) -> datetime:
        self.advance(1)
        return self._current


class SequentialClock(Clock):
    """
    Returns ``times`` one per ``now()`` call, then keeps returning the last.

    Raises:
        ValueError: If ``times`` is empty.
    """

    def __init__(self, times: Sequence[datetime]):
        if not times:
            raise ValueError("SequentialClock requires at least one time")
        self._times = tuple(times)
        self._position = 0

    def now(self) -> datetime:
        current = self._times[min(self._position, len(self._times) - 1)]
        self._position += 1
        return current
