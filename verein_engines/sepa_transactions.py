"""
Module: verein_engines.sepa_transactions
Responsibility:
    Build SEPA direct-debit transactions from invoices, validate them
    against the pain.008 field constraints, compute collection dates and
    aggregate transactions into batches.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends on verein_engines.mandates.

Invariants enforced:
    - ``validate_sepa_transaction`` never raises; it reports every violated
      rule so a batch can exclude bad transactions and keep the rest.
    - Field limits follow ISO 20022 pain.008: mandate reference and
      end-to-end id max 35, debtor name max 70, remittance max 140,
      amount in (0, 999999.99].
    - Collection dates never fall on a weekend.

Failure modes:
    - MissingMandateError when a member lacks IBAN, mandate reference or
      mandate signature date.

Usage:
    from verein_engines.sepa_transactions import (
        create_sepa_transaction_from_invoice, validate_sepa_transaction,
    )

    tx = create_sepa_transaction_from_invoice(member, invoice)
    result = validate_sepa_transaction(tx)
    if not result:
        print(result.messages)
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Sequence

from verein_engines.mandates import BIC_PATTERN, IBAN_PATTERN
from verein_engines.tracer import traced_engine
from verein_kernel.domain.dtos import ValidationError, ValidationResult
from verein_kernel.domain.membership import (
    ContributionInvoice,
    Member,
    SepaBatch,
    SepaBatchStatus,
    SepaDirectDebitTransaction,
)
from verein_kernel.domain.values import Money
from verein_kernel.exceptions import MissingMandateError
from verein_kernel.logging_config import get_logger

logger = get_logger("engines.sepa_transactions")

MAX_AMOUNT = Decimal("999999.99")
MAX_MANDATE_REFERENCE_LENGTH = 35
MAX_DEBTOR_NAME_LENGTH = 70
MAX_END_TO_END_ID_LENGTH = 35
MAX_REMITTANCE_INFO_LENGTH = 140
SEPA_CURRENCY = "EUR"
AMOUNT_QUANTUM = Decimal("0.01")

FIRST_DEBIT_LEAD_DAYS = 5
RECURRING_DEBIT_LEAD_DAYS = 2

_SATURDAY = 5


@traced_engine(
    "sepa_transactions", "1.0",
    fingerprint_fields=("member", "invoice"),
)
def create_sepa_transaction_from_invoice(
    member: Member,
    invoice: ContributionInvoice,
) -> SepaDirectDebitTransaction:
    """
    Direct debit for the outstanding balance of ``invoice``.

    Raises:
        MissingMandateError: If the member has no IBAN, mandate reference
            or mandate signature date.
    """
    missing = tuple(
        name for name, value in (
            ("iban", member.iban),
            ("sepa_mandate_reference", member.sepa_mandate_reference),
            ("sepa_mandate_date", member.sepa_mandate_date),
        )
        if not value
    )
    if missing:
        raise MissingMandateError(member.id, missing)

    return SepaDirectDebitTransaction(
        mandate_reference=member.sepa_mandate_reference,
        mandate_date=member.sepa_mandate_date,
        debtor_name=member.account_holder or member.full_name,
        debtor_iban=member.iban,
        debtor_bic=member.bic or None,
        amount=invoice.outstanding_amount,
        currency=invoice.currency,
        end_to_end_id=invoice.invoice_number,
        remittance_info=invoice.description or _default_remittance(invoice.invoice_number),
        invoice_id=invoice.id,
        member_id=member.id,
    )


def _default_remittance(invoice_number: str | None) -> str | None:
    return f"Rechnung {invoice_number}" if invoice_number else None


def _strip(value: str) -> str:
    return "".join(value.split())


def validate_sepa_transaction(tx: SepaDirectDebitTransaction) -> ValidationResult:
    """
    Check ``tx`` against every pain.008 field rule.

    Returns a ValidationResult listing all violations in rule order.
    IBAN and BIC are checked for format only, after removing whitespace
    and uppercasing.
    """
    errors: list[ValidationError] = []

    if not IBAN_PATTERN.match(_strip(tx.debtor_iban or "").upper()):
        errors.append(ValidationError(
            code="INVALID_IBAN",
            message="Invalid IBAN format",
            field="debtor_iban",
        ))

    if tx.debtor_bic and not BIC_PATTERN.match(_strip(tx.debtor_bic).upper()):
        errors.append(ValidationError(
            code="INVALID_BIC",
            message="Invalid BIC format",
            field="debtor_bic",
        ))

    if tx.amount <= 0:
        errors.append(ValidationError(
            code="AMOUNT_NOT_POSITIVE",
            message="Amount must be greater than zero",
            field="amount",
            details={"amount": str(tx.amount)},
        ))

    if tx.amount > MAX_AMOUNT:
        errors.append(ValidationError(
            code="AMOUNT_TOO_LARGE",
            message="Amount exceeds maximum allowed",
            field="amount",
            details={"amount": str(tx.amount), "max_amount": str(MAX_AMOUNT)},
        ))

    if abs(tx.amount) <= MAX_AMOUNT and tx.amount != tx.amount.quantize(AMOUNT_QUANTUM):
        errors.append(ValidationError(
            code="INVALID_AMOUNT_PRECISION",
            message="Amount must not have more than two decimal places",
            field="amount",
            details={"amount": str(tx.amount)},
        ))

    if tx.currency != SEPA_CURRENCY:
        errors.append(ValidationError(
            code="INVALID_CURRENCY",
            message="SEPA direct debits must be in EUR",
            field="currency",
            details={"currency": tx.currency},
        ))

    if not tx.mandate_reference or len(tx.mandate_reference) > MAX_MANDATE_REFERENCE_LENGTH:
        errors.append(ValidationError(
            code="INVALID_MANDATE_REFERENCE",
            message="Invalid mandate reference",
            field="mandate_reference",
        ))

    if not tx.debtor_name or len(tx.debtor_name) > MAX_DEBTOR_NAME_LENGTH:
        errors.append(ValidationError(
            code="INVALID_DEBTOR_NAME",
            message="Invalid debtor name",
            field="debtor_name",
        ))

    if not tx.end_to_end_id or len(tx.end_to_end_id) > MAX_END_TO_END_ID_LENGTH:
        errors.append(ValidationError(
            code="INVALID_END_TO_END_ID",
            message="Invalid end-to-end ID",
            field="end_to_end_id",
        ))

    if tx.remittance_info and len(tx.remittance_info) > MAX_REMITTANCE_INFO_LENGTH:
        errors.append(ValidationError(
            code="REMITTANCE_INFO_TOO_LONG",
            message="Remittance info too long",
            field="remittance_info",
            details={"length": len(tx.remittance_info)},
        ))

    if errors:
        logger.warning("sepa_transaction_invalid", extra={
            "end_to_end_id": tx.end_to_end_id,
            "error_codes": [e.code for e in errors],
        })

    return ValidationResult.from_errors(errors)


def calculate_sepa_execution_date(due_date: date, is_first_debit: bool = False) -> date:
    """
    Requested collection date for a debit falling due on ``due_date``.

    Subtracts the lead time (5 days for a first debit, 2 for recurring) in
    calendar days, then steps back to Friday if that lands on a weekend.
    """
    lead_days = FIRST_DEBIT_LEAD_DAYS if is_first_debit else RECURRING_DEBIT_LEAD_DAYS
    execution_date = due_date - timedelta(days=lead_days)
    while execution_date.weekday() >= _SATURDAY:
        execution_date -= timedelta(days=1)
    return execution_date


@dataclass(frozen=True)
class ScheduledDebit:
    """A transaction paired with the collection date it is scheduled for."""

    execution_date: date
    transaction: SepaDirectDebitTransaction


def group_transactions_by_execution_date(
    scheduled: Iterable[ScheduledDebit],
) -> dict[date, tuple[SepaDirectDebitTransaction, ...]]:
    """Group debits by collection date; keys ascend, input order kept per date."""
    groups: dict[date, list[SepaDirectDebitTransaction]] = defaultdict(list)
    for item in scheduled:
        groups[item.execution_date].append(item.transaction)
    return {day: tuple(groups[day]) for day in sorted(groups)}


@dataclass(frozen=True)
class BatchStatistics:
    """Aggregate figures for one set of transactions."""

    total_transactions: int
    total_amount: Money
    average_amount: Money
    min_amount: Money
    max_amount: Money

    @property
    def currency(self) -> str:
        return self.total_amount.currency.code


def calculate_batch_statistics(
    transactions: Sequence[SepaDirectDebitTransaction],
    currency: str = "EUR",
) -> BatchStatistics:
    """
    Count, total, average, minimum and maximum of transaction amounts.

    An empty sequence yields zeros in ``currency``.  Otherwise the first
    transaction's currency is used and mixing currencies raises ValueError.
    """
    if not transactions:
        zero = Money.zero(currency)
        return BatchStatistics(
            total_transactions=0,
            total_amount=zero,
            average_amount=zero,
            min_amount=zero,
            max_amount=zero,
        )

    amounts = [Money.of(tx.amount, tx.currency) for tx in transactions]
    total = Money.total(amounts, amounts[0].currency)

    return BatchStatistics(
        total_transactions=len(amounts),
        total_amount=total,
        average_amount=(total / len(amounts)).round(),
        min_amount=min(amounts, key=lambda m: m.amount),
        max_amount=max(amounts, key=lambda m: m.amount),
    )


@traced_engine(
    "sepa_transactions", "1.0",
    fingerprint_fields=("batch_number", "batch_date", "execution_date", "transactions"),
)
def build_sepa_batch(
    batch_number: str,
    batch_date: date,
    execution_date: date,
    transactions: Sequence[SepaDirectDebitTransaction],
    currency: str = "EUR",
) -> SepaBatch:
    """Draft batch carrying the count and total of ``transactions``."""
    stats = calculate_batch_statistics(transactions, currency)

    logger.info("sepa_batch_built", extra={
        "batch_number": batch_number,
        "execution_date": execution_date.isoformat(),
        "total_transactions": stats.total_transactions,
        "total_amount": str(stats.total_amount.amount),
    })

    return SepaBatch(
        batch_number=batch_number,
        batch_date=batch_date,
        execution_date=execution_date,
        total_transactions=stats.total_transactions,
        total_amount=stats.total_amount.amount,
        currency=stats.currency,
        status=SepaBatchStatus.DRAFT,
    )
