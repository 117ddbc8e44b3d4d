"""
Contribution Billing Service - Orchestrates billing runs via the pure engines.

Thin glue layer that:
1. Reads "today" and "now" from the injected Clock
2. Calls the invoicing engine for draft invoices
3. Calls the dunning engine for reminder decisions and reminder drafts
4. Calls the SEPA engines for transactions, validation, batch and XML

All computation lives in engines.  Persistence is the caller's job: every
method returns frozen records (and, for SEPA, the XML document) ready to
be stored.  Reminders and the invoices returned alongside them must be
written in one transaction.

Usage:
    service = ContributionBillingService(get_active_config(), clock)
    run = service.run_dunning([(invoice, member), ...])
    prep = service.prepare_sepa_batch("B-2025-01", date(2025, 1, 10), debits)
    if prep.rejected:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from verein_config.schema import BillingConfig
from verein_engines.dunning import apply_reminder, generate_reminder, should_send_reminder
from verein_engines.invoicing import generate_invoice_from_contribution
from verein_engines.mandates import generate_mandate_reference
from verein_engines.sepa_transactions import (
    build_sepa_batch,
    create_sepa_transaction_from_invoice,
    validate_sepa_transaction,
)
from verein_engines.sepa_xml import SepaXmlGenerator
from verein_engines.statistics import MembershipStatistics, calculate_membership_statistics
from verein_kernel.domain.clock import Clock, SystemClock
from verein_kernel.domain.dtos import ValidationResult
from verein_kernel.domain.membership import (
    ContributionDefinition,
    ContributionInvoice,
    ContributionReminder,
    Member,
    MemberContribution,
    SepaBatch,
    SepaDirectDebitTransaction,
    SepaMandateStatus,
)
from verein_kernel.exceptions import MandateNotActiveError, MissingMandateError, SepaError
from verein_kernel.logging_config import LogContext, get_logger

logger = get_logger("modules.billing.service")


@dataclass(frozen=True)
class DunningRunResult:
    """
    Outcome of one dunning sweep.

    ``reminders[i]`` belongs to ``updated_invoices[i]``; each pair must be
    persisted atomically.
    """

    as_of_date: date
    reminders: tuple[ContributionReminder, ...] = ()
    updated_invoices: tuple[ContributionInvoice, ...] = ()
    checked_count: int = 0

    @property
    def reminder_count(self) -> int:
        return len(self.reminders)


@dataclass(frozen=True)
class RejectedDebit:
    """A (member, invoice) pair left out of a SEPA batch, with the reason."""

    member: Member
    invoice: ContributionInvoice
    error: SepaError | None = None
    validation: ValidationResult | None = None
    transaction: SepaDirectDebitTransaction | None = None

    @property
    def code(self) -> str:
        if self.error is not None:
            return self.error.code
        return ValidationResult.FAILURE_CODE

    @property
    def messages(self) -> tuple[str, ...]:
        if self.error is not None:
            return (str(self.error),)
        if self.validation is not None:
            return self.validation.messages
        return ()


@dataclass(frozen=True)
class SepaBatchPreparation:
    """Accepted transactions, rejected items, the batch record and its XML."""

    batch: SepaBatch
    transactions: tuple[SepaDirectDebitTransaction, ...]
    rejected: tuple[RejectedDebit, ...] = field(default_factory=tuple)
    xml: str = ""

    @property
    def has_rejections(self) -> bool:
        return bool(self.rejected)


class ContributionBillingService:
    """
    Runs invoice generation, dunning sweeps and SEPA batch preparation.

    Engine composition:
    - invoicing: draft invoices from member contributions
    - dunning: reminder decisions, reminder drafts, reminder level bump
    - sepa_transactions / sepa_xml: debits, validation, batch, XML

    Holds no mutable state besides the clock; safe to share.
    """

    def __init__(self, config: BillingConfig, clock: Clock | None = None):
        self._config = config
        self._clock = clock or SystemClock()
        self._xml_generator = SepaXmlGenerator(config.creditor)

    @property
    def config(self) -> BillingConfig:
        return self._config

    # =========================================================================
    # Invoices
    # =========================================================================

    def generate_invoice(
        self,
        member: Member,
        contribution: MemberContribution,
        definition: ContributionDefinition,
        invoice_date: date | None = None,
        tax_rate: Decimal = Decimal("0"),
    ) -> ContributionInvoice:
        """Draft invoice dated ``invoice_date`` (default: the clock's today)."""
        effective_date = invoice_date or self._clock.today()
        with LogContext.bind(member_id=str(member.id)):
            return generate_invoice_from_contribution(
                member,
                contribution,
                definition,
                effective_date,
                tax_rate=tax_rate,
                payment_terms_days=self._config.payment_terms_days,
            )

    def issue_mandate_reference(self, member: Member) -> str:
        """New mandate reference for ``member`` stamped with the clock's time."""
        return generate_mandate_reference(member.member_number, self._clock.now_utc())

    # =========================================================================
    # Dunning
    # =========================================================================

    def run_dunning(
        self,
        items: Iterable[tuple[ContributionInvoice, Member]],
    ) -> DunningRunResult:
        """
        Evaluate each ``(invoice, member)`` pair and draft due reminders.

        Invoices that need no reminder are left out of the result.
        """
        today = self._clock.today()
        policy = self._config.dunning
        reminders: list[ContributionReminder] = []
        updated: list[ContributionInvoice] = []
        checked = 0

        logger.info("dunning_run_started", extra={"as_of_date": today.isoformat()})

        for invoice, member in items:
            checked += 1
            with LogContext.bind(
                member_id=str(member.id),
                invoice_number=invoice.invoice_number,
            ):
                decision = should_send_reminder(invoice, today, policy)
                if not decision.send:
                    continue
                reminder = generate_reminder(invoice, member, decision.level, today, policy)
                reminders.append(reminder)
                updated.append(apply_reminder(invoice, reminder))

        logger.info("dunning_run_completed", extra={
            "as_of_date": today.isoformat(),
            "checked_count": checked,
            "reminder_count": len(reminders),
        })

        return DunningRunResult(
            as_of_date=today,
            reminders=tuple(reminders),
            updated_invoices=tuple(updated),
            checked_count=checked,
        )

    # =========================================================================
    # SEPA
    # =========================================================================

    def prepare_sepa_batch(
        self,
        batch_number: str,
        execution_date: date,
        debits: Iterable[tuple[Member, ContributionInvoice]],
    ) -> SepaBatchPreparation:
        """
        Build, validate and serialize one SEPA batch.

        Members without an active, complete mandate and transactions that
        fail validation are reported in ``rejected``; only accepted
        transactions are counted in the batch and written to the XML.
        """
        accepted: list[SepaDirectDebitTransaction] = []
        rejected: list[RejectedDebit] = []

        with LogContext.bind(batch_number=batch_number):
            for member, invoice in debits:
                outcome = self._build_debit(member, invoice)
                if isinstance(outcome, RejectedDebit):
                    rejected.append(outcome)
                else:
                    accepted.append(outcome)

            batch = build_sepa_batch(
                batch_number,
                self._clock.today(),
                execution_date,
                accepted,
                currency=self._config.default_currency,
            )
            xml = self._xml_generator.generate_xml(batch, accepted, self._clock.now_utc())

            logger.info("sepa_batch_prepared", extra={
                "batch_number": batch_number,
                "accepted_count": len(accepted),
                "rejected_count": len(rejected),
                "total_amount": str(batch.total_amount),
            })

        return SepaBatchPreparation(
            batch=batch,
            transactions=tuple(accepted),
            rejected=tuple(rejected),
            xml=xml,
        )

    def _build_debit(
        self,
        member: Member,
        invoice: ContributionInvoice,
    ) -> SepaDirectDebitTransaction | RejectedDebit:
        if member.sepa_mandate_status != SepaMandateStatus.ACTIVE:
            status = member.sepa_mandate_status
            error = MandateNotActiveError(member.id, status.value if status is not None else None)
            logger.warning("sepa_debit_rejected", extra={
                "member_id": str(member.id),
                "invoice_number": invoice.invoice_number,
                "reason": error.code,
            })
            return RejectedDebit(member=member, invoice=invoice, error=error)

        try:
            tx = create_sepa_transaction_from_invoice(member, invoice)
        except MissingMandateError as error:
            logger.warning("sepa_debit_rejected", extra={
                "member_id": str(member.id),
                "invoice_number": invoice.invoice_number,
                "reason": error.code,
                "missing_fields": list(error.missing_fields),
            })
            return RejectedDebit(member=member, invoice=invoice, error=error)

        validation = validate_sepa_transaction(tx)
        if not validation.is_valid:
            logger.warning("sepa_debit_rejected", extra={
                "member_id": str(member.id),
                "invoice_number": invoice.invoice_number,
                "reason": validation.code,
                "error_codes": list(validation.error_codes),
            })
            return RejectedDebit(
                member=member,
                invoice=invoice,
                validation=validation,
                transaction=tx,
            )

        return tx

    # =========================================================================
    # Reporting
    # =========================================================================

    def membership_statistics(
        self,
        invoices: Sequence[ContributionInvoice],
    ) -> MembershipStatistics:
        """Revenue statistics as of the clock's today."""
        return calculate_membership_statistics(
            invoices,
            self._clock.today(),
            currency=self._config.default_currency,
        )
