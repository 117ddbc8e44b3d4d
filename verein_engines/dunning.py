"""
Module: verein_engines.dunning
Responsibility:
    Overdue detection and the reminder ladder for contribution invoices:
    days overdue, escalation level, reminder fee, the send decision and
    the reminder record itself.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends on invoice state only; never reads the clock.

Dunning lifecycle of an invoice:

    current --> overdue-L0 --> reminded-L1 --> reminded-L2 --> reminded-L3

    The engine holds no state.  A scheduled caller re-evaluates each open
    invoice with ``should_send_reminder``; when it fires, the caller stores
    the reminder from ``generate_reminder`` together with the invoice
    returned by ``apply_reminder`` in one transaction.

Invariants enforced:
    - Reminder levels only increase (``apply_reminder`` refuses to lower
      or repeat a level).
    - ``should_send_reminder`` is idempotent for unchanged invoice state.
    - Fees are exact Decimals from the policy's fee table.
    - ``generate_reminder`` never mutates the invoice.

Failure modes:
    - ValueError for an unknown reminder level in ``calculate_reminder_fee``.
    - ReminderLevelRegressionError from ``apply_reminder``.

Usage:
    from datetime import date
    from verein_engines.dunning import should_send_reminder, generate_reminder

    decision = should_send_reminder(invoice, as_of_date=date(2025, 1, 25))
    if decision.send:
        reminder = generate_reminder(invoice, member, decision.level, date(2025, 1, 25))
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from verein_engines.tracer import traced_engine
from verein_kernel.domain.membership import (
    ContributionInvoice,
    ContributionReminder,
    Member,
    PaymentStatus,
    ReminderChannel,
    ReminderLevel,
    ReminderStatus,
)
from verein_kernel.exceptions import ReminderLevelRegressionError
from verein_kernel.logging_config import get_logger

logger = get_logger("engines.dunning")

# Payment states that end the dunning lifecycle.
SETTLED_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.CANCELLED})

REMINDER_TEXTS: Mapping[ReminderLevel, str] = MappingProxyType({
    ReminderLevel.FIRST: "Erste Zahlungserinnerung",
    ReminderLevel.SECOND: "Zweite Mahnung",
    ReminderLevel.FINAL: "Letzte Mahnung vor rechtlichen Schritten",
})


@dataclass(frozen=True)
class DunningPolicy:
    """
    Escalation thresholds, fee table and payment deadline.

    Contract:
        ``first_level_days < second_level_days < final_level_days``;
        days overdue below ``first_level_days`` trigger no reminder.
    """

    first_level_days: int = 7
    second_level_days: int = 21
    final_level_days: int = 35
    fees: Mapping[ReminderLevel, Decimal] = field(
        default_factory=lambda: MappingProxyType({
            ReminderLevel.FIRST: Decimal("5.00"),
            ReminderLevel.SECOND: Decimal("10.00"),
            ReminderLevel.FINAL: Decimal("15.00"),
        })
    )
    fee_currency: str = "EUR"
    payment_deadline_days: int = 7

    def __post_init__(self) -> None:
        if not 0 <= self.first_level_days < self.second_level_days < self.final_level_days:
            raise ValueError(
                "Dunning thresholds must be strictly increasing and non-negative: "
                f"{self.first_level_days}/{self.second_level_days}/{self.final_level_days}"
            )
        missing = [level for level in ReminderLevel if level not in self.fees]
        if missing:
            raise ValueError(f"Dunning fee table missing levels: {[int(m) for m in missing]}")
        if self.payment_deadline_days < 0:
            raise ValueError("payment_deadline_days cannot be negative")
        object.__setattr__(self, "fees", MappingProxyType(dict(self.fees)))


STANDARD_DUNNING_POLICY = DunningPolicy()


@dataclass(frozen=True)
class ReminderDecision:
    """Outcome of ``should_send_reminder``; ``level`` is None when not sending."""

    send: bool
    level: ReminderLevel | None = None


def is_invoice_overdue(invoice: ContributionInvoice, as_of_date: date) -> bool:
    """True if the invoice is unsettled and ``as_of_date`` is past its due date."""
    if invoice.payment_status in SETTLED_STATUSES:
        return False
    return as_of_date > invoice.due_date


def get_days_overdue(invoice: ContributionInvoice, as_of_date: date) -> int:
    """Whole days past the due date, 0 if the invoice is not overdue."""
    if not is_invoice_overdue(invoice, as_of_date):
        return 0
    return (as_of_date - invoice.due_date).days


def determine_reminder_level(
    days_overdue: int,
    policy: DunningPolicy = STANDARD_DUNNING_POLICY,
) -> ReminderLevel | None:
    """Escalation level for ``days_overdue``; None below the first threshold."""
    if days_overdue < policy.first_level_days:
        return None
    if days_overdue < policy.second_level_days:
        return ReminderLevel.FIRST
    if days_overdue < policy.final_level_days:
        return ReminderLevel.SECOND
    return ReminderLevel.FINAL


def calculate_reminder_fee(
    level: ReminderLevel | int,
    policy: DunningPolicy = STANDARD_DUNNING_POLICY,
) -> Decimal:
    """Flat fee for ``level`` from the policy's fee table."""
    try:
        resolved = ReminderLevel(level)
    except ValueError:
        raise ValueError(f"Unknown reminder level: {level}") from None
    return policy.fees[resolved]


@traced_engine("dunning", "1.0", fingerprint_fields=("invoice", "as_of_date"))
def should_send_reminder(
    invoice: ContributionInvoice,
    as_of_date: date,
    policy: DunningPolicy = STANDARD_DUNNING_POLICY,
) -> ReminderDecision:
    """
    Decide whether a new reminder is due for ``invoice`` on ``as_of_date``.

    A reminder fires only when the level earned by the days overdue is
    strictly above the level already recorded on the invoice, so repeated
    calls for the same state return the same decision.
    """
    if not is_invoice_overdue(invoice, as_of_date):
        return ReminderDecision(send=False)

    days_overdue = get_days_overdue(invoice, as_of_date)
    level = determine_reminder_level(days_overdue, policy)

    if level is None or level <= invoice.reminder_level:
        logger.debug("reminder_not_due", extra={
            "invoice_number": invoice.invoice_number,
            "days_overdue": days_overdue,
            "earned_level": int(level) if level is not None else None,
            "current_level": invoice.reminder_level,
        })
        return ReminderDecision(send=False)

    logger.info("reminder_due", extra={
        "invoice_number": invoice.invoice_number,
        "days_overdue": days_overdue,
        "reminder_level": int(level),
        "current_level": invoice.reminder_level,
    })
    return ReminderDecision(send=True, level=level)


def format_reminder_description(level: ReminderLevel, invoice_number: str | None) -> str:
    return f"{REMINDER_TEXTS[level]} für Rechnung {invoice_number}"


@traced_engine(
    "dunning", "1.0",
    fingerprint_fields=("invoice", "level", "reminder_date"),
)
def generate_reminder(
    invoice: ContributionInvoice,
    member: Member,
    level: ReminderLevel | int,
    reminder_date: date,
    policy: DunningPolicy = STANDARD_DUNNING_POLICY,
) -> ContributionReminder:
    """
    Draft the reminder record for ``invoice`` at ``level``.

    The total is the outstanding balance plus the level's fee; the member
    gets ``policy.payment_deadline_days`` to pay.  Members with an email
    address are reminded by email, everyone else by post.
    """
    resolved = ReminderLevel(level)
    fee = calculate_reminder_fee(resolved, policy)
    outstanding = invoice.outstanding_amount

    if invoice.currency != policy.fee_currency:
        logger.warning("reminder_fee_currency_mismatch", extra={
            "invoice_number": invoice.invoice_number,
            "invoice_currency": invoice.currency,
            "fee_currency": policy.fee_currency,
        })

    reminder = ContributionReminder(
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        member_id=member.id,
        reminder_level=resolved,
        reminder_date=reminder_date,
        original_amount=outstanding,
        reminder_fee=fee,
        total_amount=outstanding + fee,
        payment_deadline=reminder_date + timedelta(days=policy.payment_deadline_days),
        currency=invoice.currency,
        status=ReminderStatus.DRAFT,
        sent_via=ReminderChannel.EMAIL if member.email else ReminderChannel.POST,
        description=format_reminder_description(resolved, invoice.invoice_number),
    )

    logger.info("reminder_drafted", extra={
        "invoice_number": invoice.invoice_number,
        "reminder_level": int(resolved),
        "reminder_fee": str(fee),
        "total_amount": str(reminder.total_amount),
        "sent_via": reminder.sent_via.value,
    })

    return reminder


def apply_reminder(
    invoice: ContributionInvoice,
    reminder: ContributionReminder,
) -> ContributionInvoice:
    """
    Return a copy of ``invoice`` advanced to the reminder's level.

    Raises:
        ReminderLevelRegressionError: If the reminder's level is not above
            the invoice's current level.
    """
    if reminder.reminder_level <= invoice.reminder_level:
        raise ReminderLevelRegressionError(
            invoice.invoice_number,
            invoice.reminder_level,
            int(reminder.reminder_level),
        )
    return replace(
        invoice,
        reminder_level=int(reminder.reminder_level),
        last_reminder_date=reminder.reminder_date,
    )
