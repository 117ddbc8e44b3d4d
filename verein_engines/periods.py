"""
Module: verein_engines.periods
Responsibility:
    Calendar arithmetic for contribution billing: the next due date for a
    recurrence interval and the inclusive billing period that starts on a
    given date.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import verein_kernel.

Invariants enforced:
    - Month arithmetic clamps to the last day of shorter months
      (Jan 31 + 1 month = Feb 28, or Feb 29 in leap years).
    - Consecutive periods tile: the day after ``period_end`` is the next
      period's ``period_start``.
    - ``one_time`` contributions have a single-day period.

Failure modes:
    - InvalidIntervalError for any interval outside RecurrenceInterval.

Usage:
    from datetime import date
    from verein_engines.periods import calculate_invoice_period

    period = calculate_invoice_period(date(2025, 1, 1), "annual")
    period.period_end  # date(2025, 12, 31)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from verein_kernel.domain.membership import RecurrenceInterval
from verein_kernel.exceptions import InvalidIntervalError
from verein_kernel.logging_config import get_logger

logger = get_logger("engines.periods")

_INTERVAL_STEPS: dict[RecurrenceInterval, relativedelta] = {
    RecurrenceInterval.MONTHLY: relativedelta(months=1),
    RecurrenceInterval.QUARTERLY: relativedelta(months=3),
    RecurrenceInterval.SEMI_ANNUAL: relativedelta(months=6),
    RecurrenceInterval.ANNUAL: relativedelta(years=1),
    RecurrenceInterval.ONE_TIME: relativedelta(),
}


@dataclass(frozen=True)
class BillingPeriod:
    """Inclusive date range covered by one invoice."""

    period_start: date
    period_end: date
    interval: RecurrenceInterval

    @property
    def days(self) -> int:
        """Number of calendar days in the period (inclusive)."""
        return (self.period_end - self.period_start).days + 1


def coerce_interval(interval: RecurrenceInterval | str) -> RecurrenceInterval:
    """Resolve a raw interval value, raising InvalidIntervalError if unknown."""
    if isinstance(interval, RecurrenceInterval):
        return interval
    try:
        return RecurrenceInterval(interval)
    except ValueError:
        raise InvalidIntervalError(interval) from None


def calculate_next_due_date(
    start_date: date,
    interval: RecurrenceInterval | str,
) -> date:
    """
    Date one recurrence step after ``start_date``.

    ``one_time`` returns ``start_date`` unchanged.

    Raises:
        InvalidIntervalError: If ``interval`` is not a supported value.
    """
    resolved = coerce_interval(interval)
    return start_date + _INTERVAL_STEPS[resolved]


def calculate_invoice_period(
    start_date: date,
    interval: RecurrenceInterval | str,
) -> BillingPeriod:
    """
    Billing period starting at ``start_date``.

    ``period_end`` is the day before the next due date, so periods tile
    without gaps or overlaps.  A ``one_time`` period covers just
    ``start_date``.
    """
    resolved = coerce_interval(interval)
    if resolved == RecurrenceInterval.ONE_TIME:
        period_end = start_date
    else:
        period_end = calculate_next_due_date(start_date, resolved) - timedelta(days=1)

    logger.debug("invoice_period_calculated", extra={
        "period_start": start_date.isoformat(),
        "period_end": period_end.isoformat(),
        "interval": resolved.value,
    })

    return BillingPeriod(
        period_start=start_date,
        period_end=period_end,
        interval=resolved,
    )


def next_period_start(period: BillingPeriod) -> date:
    """First day of the period that follows ``period``."""
    return period.period_end + timedelta(days=1)
