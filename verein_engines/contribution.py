"""
Module: verein_engines.contribution
Responsibility:
    Compute the amount owed for one contribution period (base + flat-rate
    tax) and resolve the effective amount and interval of a member's
    contribution against its definition.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import verein_kernel and sibling engine modules.

Invariants enforced:
    - Decimal-only arithmetic; tax rounded half-up to the currency's
      decimal places.
    - ``total == base + tax`` exactly.
    - Overrides on a MemberContribution win whenever they are not None
      (a custom amount of 0 is honoured).

Failure modes:
    - InvalidAmountError for a negative base amount or tax rate.
    - InvalidIntervalError propagated from the period calculator.

Usage:
    from datetime import date
    from decimal import Decimal
    from verein_engines.contribution import calculate_contribution_amount

    calc = calculate_contribution_amount(
        Decimal("100.00"), Decimal("19"), "annual", as_of_date=date(2025, 1, 1),
    )
    calc.total.amount  # Decimal("119.00")
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from verein_engines.periods import calculate_invoice_period
from verein_engines.tracer import traced_engine
from verein_kernel.domain.membership import (
    ContributionDefinition,
    MemberContribution,
    RecurrenceInterval,
)
from verein_kernel.domain.values import Money
from verein_kernel.exceptions import InvalidAmountError
from verein_kernel.logging_config import get_logger

logger = get_logger("engines.contribution")

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ContributionCalculation:
    """
    Result of a single contribution calculation.

    Guarantees:
        - base, tax and total share one currency.
        - total == base + tax.
    """

    base: Money
    tax: Money
    total: Money
    tax_rate: Decimal
    period_start: date
    period_end: date
    interval: RecurrenceInterval


@traced_engine(
    "contribution", "1.0",
    fingerprint_fields=("base_amount", "tax_rate", "interval", "as_of_date", "currency"),
)
def calculate_contribution_amount(
    base_amount: Decimal,
    tax_rate: Decimal = Decimal("0"),
    interval: RecurrenceInterval | str = RecurrenceInterval.ANNUAL,
    *,
    as_of_date: date,
    currency: str = "EUR",
) -> ContributionCalculation:
    """
    Calculate base, tax and total for the period starting at ``as_of_date``.

    Args:
        base_amount: Net contribution amount (>= 0).
        tax_rate: Flat tax rate in percent (e.g. 19 for 19%).
        interval: Recurrence interval defining the period length.
        as_of_date: Start of the period (the caller's "today").
        currency: ISO 4217 code; controls tax rounding.

    Raises:
        InvalidAmountError: If base_amount or tax_rate is negative.
    """
    if base_amount < 0:
        raise InvalidAmountError("base_amount", base_amount, "cannot be negative")
    if tax_rate < 0:
        raise InvalidAmountError("tax_rate", tax_rate, "cannot be negative")

    base = Money.of(base_amount, currency)
    tax = (base * tax_rate / HUNDRED).round(ROUND_HALF_UP)
    total = base + tax
    period = calculate_invoice_period(as_of_date, interval)

    logger.info("contribution_calculated", extra={
        "base_amount": str(base.amount),
        "tax_rate": str(tax_rate),
        "tax_amount": str(tax.amount),
        "total_amount": str(total.amount),
        "currency": base.currency.code,
        "interval": period.interval.value,
    })

    return ContributionCalculation(
        base=base,
        tax=tax,
        total=total,
        tax_rate=tax_rate,
        period_start=period.period_start,
        period_end=period.period_end,
        interval=period.interval,
    )


def effective_amount(
    contribution: MemberContribution,
    definition: ContributionDefinition,
) -> Decimal:
    """The member's custom amount if set, else the definition's amount."""
    if contribution.custom_amount is not None:
        return contribution.custom_amount
    return definition.amount


def effective_interval(
    contribution: MemberContribution,
    definition: ContributionDefinition,
) -> RecurrenceInterval:
    """Custom interval, then the definition's interval, then annual."""
    if contribution.custom_interval is not None:
        return contribution.custom_interval
    if definition.recurrence_interval is not None:
        return definition.recurrence_interval
    return RecurrenceInterval.ANNUAL


def is_contribution_active(contribution: MemberContribution, on_date: date) -> bool:
    """True if the contribution is flagged active and ``on_date`` is within its term."""
    if not contribution.is_active:
        return False
    if on_date < contribution.start_date:
        return False
    if contribution.end_date is not None and on_date > contribution.end_date:
        return False
    return True
