"""Record factories shared by the billing test suite."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from verein_kernel.domain.membership import (
    ContributionDefinition,
    ContributionInvoice,
    Member,
    MemberContribution,
    PaymentMethod,
    RecurrenceInterval,
    SepaDirectDebitTransaction,
    SepaMandateStatus,
)

VALID_IBAN = "DE89370400440532013000"
VALID_BIC = "COBADEFFXXX"


def make_member(**overrides) -> Member:
    """Member with a complete, active SEPA mandate unless overridden."""
    fields = dict(
        id=uuid4(),
        member_number="M-0042",
        first_name="Erika",
        last_name="Mustermann",
        email="erika@example.org",
        street="Hauptstraße",
        house_number="1",
        postal_code="12345",
        city="Musterstadt",
        iban=VALID_IBAN,
        bic=VALID_BIC,
        account_holder="Erika Mustermann",
        sepa_mandate_reference="MAND-M-0042-1",
        sepa_mandate_date=date(2024, 3, 1),
        sepa_mandate_status=SepaMandateStatus.ACTIVE,
    )
    fields.update(overrides)
    return Member(**fields)


def make_definition(**overrides) -> ContributionDefinition:
    fields = dict(
        id=uuid4(),
        name="Jahresbeitrag",
        amount=Decimal("120.00"),
        currency="EUR",
        recurrence_interval=RecurrenceInterval.ANNUAL,
    )
    fields.update(overrides)
    return ContributionDefinition(**fields)


def make_contribution(member: Member, definition: ContributionDefinition, **overrides) -> MemberContribution:
    fields = dict(
        id=uuid4(),
        member_id=member.id,
        contribution_definition_id=definition.id,
        start_date=date(2024, 1, 1),
    )
    fields.update(overrides)
    return MemberContribution(**fields)


def make_invoice(**overrides) -> ContributionInvoice:
    """Numbered pending invoice for 120.00 EUR due 2025-01-01."""
    fields = dict(
        id=uuid4(),
        invoice_number="R-2025-0001",
        member_id=uuid4(),
        invoice_date=date(2024, 12, 18),
        due_date=date(2025, 1, 1),
        period_start=date(2024, 12, 18),
        period_end=date(2025, 12, 17),
        amount=Decimal("120.00"),
        tax_amount=Decimal("0.00"),
        total_amount=Decimal("120.00"),
        currency="EUR",
        payment_method=PaymentMethod.SEPA_DEBIT,
        description="Jahresbeitrag für Zeitraum 18.12.2024 - 17.12.2025",
    )
    fields.update(overrides)
    return ContributionInvoice(**fields)


def make_transaction(**overrides) -> SepaDirectDebitTransaction:
    fields = dict(
        mandate_reference="MAND-M-0042-1",
        mandate_date=date(2024, 3, 1),
        debtor_name="Erika Mustermann",
        debtor_iban=VALID_IBAN,
        debtor_bic=VALID_BIC,
        amount=Decimal("120.00"),
        currency="EUR",
        end_to_end_id="R-2025-0001",
        remittance_info="Jahresbeitrag 2025",
    )
    fields.update(overrides)
    return SepaDirectDebitTransaction(**fields)
