"""
Membership & Contribution Records (``verein_kernel.domain.membership``).

Responsibility
--------------
Frozen dataclass value objects representing the nouns of association
billing: members, contribution definitions, member contributions,
invoices, reminders, SEPA direct-debit transactions and batches.

Architecture position
---------------------
**Kernel > Domain** -- pure data definitions with ZERO I/O.  Consumed by
every engine and returned to callers.  Persistence collaborators map them
to storage (see ``verein_modules.billing.orm``).

Invariants enforced
-------------------
* All records are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``ContributionInvoice``: ``total_amount == amount + tax_amount``,
  ``0 <= paid_amount <= total_amount``, ``0 <= reminder_level <= 3``.
* Externally generated identifiers (``invoice_number``,
  ``reminder_number``, ``batch_number``) are opaque strings; drafts
  produced by the engines leave them ``None``.

Failure modes
-------------
* ``InvalidAmountError`` on inconsistent invoice totals.
* ``ValueError`` on unknown enum values or out-of-range reminder levels.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum, IntEnum
from uuid import UUID

from verein_kernel.exceptions import InvalidAmountError


class MemberStatus(str, Enum):
    """Membership lifecycle states."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class SepaMandateStatus(str, Enum):
    """SEPA mandate lifecycle states."""
    PENDING = "pending"
    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


class ContributionType(str, Enum):
    """Kinds of contribution an association charges."""
    MEMBERSHIP_FEE = "membership_fee"
    ENTRANCE_FEE = "entrance_fee"
    SPECIAL_FEE = "special_fee"
    DONATION = "donation"
    OTHER = "other"


class RecurrenceInterval(str, Enum):
    """Billing recurrence of a contribution."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUAL = "semi_annual"
    ANNUAL = "annual"
    ONE_TIME = "one_time"


class PaymentStatus(str, Enum):
    """Invoice payment states (mutated by the payment collaborator)."""
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    SEPA_DEBIT = "sepa_debit"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    CARD = "card"
    OTHER = "other"


class ReminderLevel(IntEnum):
    """Dunning escalation level; 0 on an invoice means "never reminded"."""
    FIRST = 1
    SECOND = 2
    FINAL = 3


class ReminderStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    ESCALATED = "escalated"
    CANCELLED = "cancelled"


class ReminderChannel(str, Enum):
    """How a reminder reaches the member."""
    EMAIL = "email"
    POST = "post"
    BOTH = "both"


class SepaBatchStatus(str, Enum):
    DRAFT = "draft"
    PREPARED = "prepared"
    SUBMITTED = "submitted"
    EXECUTED = "executed"
    FAILED = "failed"
    CANCELLED = "cancelled"


MAX_REMINDER_LEVEL = int(ReminderLevel.FINAL)


def _coerce_enum(record: object, attr: str, enum_cls: type[Enum]) -> None:
    """Accept raw strings from storage for enum-typed fields."""
    value = getattr(record, attr)
    if value is not None and not isinstance(value, enum_cls):
        object.__setattr__(record, attr, enum_cls(value))


@dataclass(frozen=True)
class Member:
    """A billable member of the association."""
    id: UUID
    member_number: str
    first_name: str
    last_name: str
    email: str | None = None
    street: str | None = None
    house_number: str | None = None
    postal_code: str | None = None
    city: str | None = None
    country: str = "DE"
    status: MemberStatus = MemberStatus.ACTIVE
    iban: str | None = None
    bic: str | None = None
    account_holder: str | None = None
    sepa_mandate_reference: str | None = None
    sepa_mandate_date: date | None = None
    sepa_mandate_status: SepaMandateStatus | None = None

    def __post_init__(self):
        _coerce_enum(self, "status", MemberStatus)
        _coerce_enum(self, "sepa_mandate_status", SepaMandateStatus)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def has_active_mandate(self) -> bool:
        return self.sepa_mandate_status == SepaMandateStatus.ACTIVE


@dataclass(frozen=True)
class ContributionDefinition:
    """
    A billing plan template (e.g. "Jahresbeitrag Erwachsene").

    Immutable once referenced by invoices; enforcement is up to storage.
    """
    id: UUID
    name: str
    amount: Decimal
    currency: str = "EUR"
    recurrence_interval: RecurrenceInterval | None = RecurrenceInterval.ANNUAL
    contribution_type: ContributionType = ContributionType.MEMBERSHIP_FEE
    description: str | None = None
    is_active: bool = True

    def __post_init__(self):
        _coerce_enum(self, "recurrence_interval", RecurrenceInterval)
        _coerce_enum(self, "contribution_type", ContributionType)


@dataclass(frozen=True)
class MemberContribution:
    """Binds a member to a definition, optionally overriding amount/interval."""
    id: UUID
    member_id: UUID
    contribution_definition_id: UUID
    start_date: date
    custom_amount: Decimal | None = None
    custom_interval: RecurrenceInterval | None = None
    end_date: date | None = None
    is_active: bool = True
    auto_generate_invoices: bool = True

    def __post_init__(self):
        _coerce_enum(self, "custom_interval", RecurrenceInterval)


@dataclass(frozen=True)
class InvoiceLineItem:
    """A single position on a contribution invoice."""
    description: str
    unit_price: Decimal
    total: Decimal
    quantity: Decimal = Decimal("1")
    tax_rate: Decimal = Decimal("0")


@dataclass(frozen=True)
class ContributionInvoice:
    """
    The central billing record.

    ``payment_status``/``paid_amount`` are owned by the payment collaborator;
    ``reminder_level``/``last_reminder_date`` only change through the
    dunning engine's ``apply_reminder``.
    """
    member_id: UUID
    invoice_date: date
    due_date: date
    amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    currency: str = "EUR"
    id: UUID | None = None
    invoice_number: str | None = None
    member_contribution_id: UUID | None = None
    period_start: date | None = None
    period_end: date | None = None
    tax_rate: Decimal = Decimal("0")
    payment_method: PaymentMethod | None = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    paid_amount: Decimal = Decimal("0")
    paid_date: date | None = None
    reminder_level: int = 0
    last_reminder_date: date | None = None
    description: str | None = None
    line_items: tuple[InvoiceLineItem, ...] = field(default_factory=tuple)

    def __post_init__(self):
        _coerce_enum(self, "payment_status", PaymentStatus)
        _coerce_enum(self, "payment_method", PaymentMethod)

        if self.amount + self.tax_amount != self.total_amount:
            raise InvalidAmountError(
                "total_amount",
                self.total_amount,
                f"must equal amount ({self.amount}) + tax_amount ({self.tax_amount})",
            )
        if self.paid_amount < 0:
            raise InvalidAmountError("paid_amount", self.paid_amount, "cannot be negative")
        if self.paid_amount > self.total_amount:
            raise InvalidAmountError(
                "paid_amount",
                self.paid_amount,
                f"cannot exceed total_amount ({self.total_amount})",
            )
        if not 0 <= self.reminder_level <= MAX_REMINDER_LEVEL:
            raise ValueError(
                f"reminder_level must be between 0 and {MAX_REMINDER_LEVEL}, "
                f"got {self.reminder_level}"
            )

    @property
    def outstanding_amount(self) -> Decimal:
        """Amount still owed on the invoice."""
        return self.total_amount - self.paid_amount


@dataclass(frozen=True)
class ContributionReminder:
    """One dunning notice for one invoice at one level. Append-only."""
    invoice_id: UUID | None
    member_id: UUID
    reminder_level: ReminderLevel
    reminder_date: date
    original_amount: Decimal
    reminder_fee: Decimal
    total_amount: Decimal
    payment_deadline: date
    currency: str = "EUR"
    id: UUID | None = None
    reminder_number: str | None = None
    invoice_number: str | None = None
    status: ReminderStatus = ReminderStatus.DRAFT
    sent_via: ReminderChannel | None = None
    description: str | None = None

    def __post_init__(self):
        _coerce_enum(self, "reminder_level", ReminderLevel)
        _coerce_enum(self, "status", ReminderStatus)
        _coerce_enum(self, "sent_via", ReminderChannel)


@dataclass(frozen=True)
class SepaDirectDebitTransaction:
    """One instructed direct debit. Immutable once created."""
    mandate_reference: str
    mandate_date: date
    debtor_name: str
    debtor_iban: str
    amount: Decimal
    currency: str
    end_to_end_id: str | None
    remittance_info: str | None
    debtor_bic: str | None = None
    invoice_id: UUID | None = None
    member_id: UUID | None = None


@dataclass(frozen=True)
class SepaBatch:
    """A dated collection of debits for one requested collection date."""
    batch_number: str
    batch_date: date
    execution_date: date
    total_transactions: int = 0
    total_amount: Decimal = Decimal("0")
    currency: str = "EUR"
    status: SepaBatchStatus = SepaBatchStatus.DRAFT
    id: UUID | None = None

    def __post_init__(self):
        _coerce_enum(self, "status", SepaBatchStatus)
