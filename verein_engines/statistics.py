"""
Revenue statistics over contribution invoices.

Paid invoices count with their full total; open invoices count with their
outstanding balance, split into overdue and pending by the dunning
engine's overdue rule on ``as_of_date``.

Usage:
    from verein_engines.statistics import calculate_membership_statistics

    stats = calculate_membership_statistics(invoices, as_of_date=date(2025, 3, 1))
    stats.overdue_revenue  # Money
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence

from verein_engines.dunning import is_invoice_overdue
from verein_kernel.domain.membership import ContributionInvoice, PaymentStatus
from verein_kernel.domain.values import Money
from verein_kernel.logging_config import get_logger

logger = get_logger("engines.statistics")


@dataclass(frozen=True)
class MembershipStatistics:
    total_revenue: Money
    paid_revenue: Money
    pending_revenue: Money
    overdue_revenue: Money
    invoice_count: int
    paid_count: int
    overdue_count: int


def calculate_membership_statistics(
    invoices: Sequence[ContributionInvoice],
    as_of_date: date,
    currency: str = "EUR",
) -> MembershipStatistics:
    """
    Aggregate revenue figures for ``invoices``.

    All invoices must share ``currency``; Money arithmetic raises
    ValueError otherwise.  An empty sequence yields zeros.
    """
    total = paid = pending = overdue = Money.zero(currency)
    paid_count = overdue_count = 0

    for invoice in invoices:
        invoice_total = Money.of(invoice.total_amount, invoice.currency)
        outstanding = Money.of(invoice.outstanding_amount, invoice.currency)
        total = total + invoice_total

        if invoice.payment_status == PaymentStatus.PAID:
            paid = paid + invoice_total
            paid_count += 1
        elif is_invoice_overdue(invoice, as_of_date):
            overdue = overdue + outstanding
            overdue_count += 1
        else:
            pending = pending + outstanding

    stats = MembershipStatistics(
        total_revenue=total,
        paid_revenue=paid,
        pending_revenue=pending,
        overdue_revenue=overdue,
        invoice_count=len(invoices),
        paid_count=paid_count,
        overdue_count=overdue_count,
    )

    logger.debug("membership_statistics_calculated", extra={
        "as_of_date": as_of_date.isoformat(),
        "invoice_count": stats.invoice_count,
        "paid_count": paid_count,
        "overdue_count": overdue_count,
    })

    return stats
