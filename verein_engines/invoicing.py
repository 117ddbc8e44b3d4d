"""
Module: verein_engines.invoicing
Responsibility:
    Turn a member, their contribution and its definition into a draft
    ContributionInvoice: billing period, due date, tax, payment method
    inference, German description and a single line item.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends on verein_engines.periods and verein_engines.contribution.

Invariants enforced:
    - Drafts never carry an ``invoice_number``; the persistence
      collaborator assigns it from its authoritative sequence.
    - ``due_date == invoice_date + PAYMENT_TERMS_DAYS``.
    - ``payment_method`` is SEPA debit iff the member's mandate is active.
    - The invoice date is always supplied by the caller.

Failure modes:
    - InvalidAmountError for a negative effective amount or tax rate.
    - InvalidIntervalError for an unknown effective interval.

Usage:
    from datetime import date
    from verein_engines.invoicing import generate_invoice_from_contribution

    invoice = generate_invoice_from_contribution(
        member, contribution, definition, invoice_date=date(2025, 1, 1),
    )
    invoice.due_date  # date(2025, 1, 15)
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from verein_engines.contribution import (
    calculate_contribution_amount,
    effective_amount,
    effective_interval,
)
from verein_engines.tracer import traced_engine
from verein_kernel.domain.membership import (
    ContributionDefinition,
    ContributionInvoice,
    InvoiceLineItem,
    Member,
    MemberContribution,
    PaymentMethod,
    PaymentStatus,
    SepaMandateStatus,
)
from verein_kernel.logging_config import get_logger

logger = get_logger("engines.invoicing")

PAYMENT_TERMS_DAYS = 14

_GERMAN_DATE_FORMAT = "%d.%m.%Y"


def format_invoice_description(name: str, period_start: date, period_end: date) -> str:
    """``"{name} für Zeitraum dd.mm.yyyy - dd.mm.yyyy"``."""
    return (
        f"{name} für Zeitraum "
        f"{period_start.strftime(_GERMAN_DATE_FORMAT)} - "
        f"{period_end.strftime(_GERMAN_DATE_FORMAT)}"
    )


def infer_payment_method(member: Member) -> PaymentMethod:
    """SEPA debit for members with an active mandate, bank transfer otherwise."""
    if member.sepa_mandate_status == SepaMandateStatus.ACTIVE:
        return PaymentMethod.SEPA_DEBIT
    return PaymentMethod.BANK_TRANSFER


@traced_engine(
    "invoicing", "1.0",
    fingerprint_fields=("contribution", "definition", "invoice_date", "tax_rate"),
)
def generate_invoice_from_contribution(
    member: Member,
    contribution: MemberContribution,
    definition: ContributionDefinition,
    invoice_date: date,
    tax_rate: Decimal = Decimal("0"),
    payment_terms_days: int = PAYMENT_TERMS_DAYS,
) -> ContributionInvoice:
    """
    Build a draft invoice for the period starting at ``invoice_date``.

    Args:
        member: Billed member; only the mandate status and id are read.
        contribution: The member's contribution (may override amount/interval).
        definition: The contribution plan.
        invoice_date: Invoice date and period start.
        tax_rate: Flat tax rate in percent.
        payment_terms_days: Days between invoice date and due date.

    Returns:
        Draft ContributionInvoice with ``invoice_number=None``.
    """
    interval = effective_interval(contribution, definition)
    amount = effective_amount(contribution, definition)

    calculation = calculate_contribution_amount(
        amount,
        tax_rate,
        interval,
        as_of_date=invoice_date,
        currency=definition.currency,
    )
    due_date = invoice_date + timedelta(days=payment_terms_days)
    payment_method = infer_payment_method(member)

    line_item = InvoiceLineItem(
        description=definition.name,
        quantity=Decimal("1"),
        unit_price=calculation.base.amount,
        total=calculation.base.amount,
        tax_rate=calculation.tax_rate,
    )

    invoice = ContributionInvoice(
        member_id=member.id,
        member_contribution_id=contribution.id,
        invoice_date=invoice_date,
        due_date=due_date,
        period_start=calculation.period_start,
        period_end=calculation.period_end,
        amount=calculation.base.amount,
        tax_rate=calculation.tax_rate,
        tax_amount=calculation.tax.amount,
        total_amount=calculation.total.amount,
        currency=definition.currency,
        payment_method=payment_method,
        payment_status=PaymentStatus.PENDING,
        paid_amount=Decimal("0"),
        reminder_level=0,
        description=format_invoice_description(
            definition.name, calculation.period_start, calculation.period_end,
        ),
        line_items=(line_item,),
    )

    logger.info("invoice_drafted", extra={
        "member_id": str(member.id),
        "member_contribution_id": str(contribution.id),
        "invoice_date": invoice_date.isoformat(),
        "due_date": due_date.isoformat(),
        "total_amount": str(invoice.total_amount),
        "currency": invoice.currency,
        "payment_method": payment_method.value,
    })

    return invoice
