"""
Billing ORM Models (``verein_modules.billing.orm``).

Responsibility
--------------
SQLAlchemy persistence models for invoices, reminders and SEPA batches.
Maps the frozen records from ``verein_kernel.domain.membership`` to
database tables for the persistence collaborator.  The engines never use
these classes.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``verein_kernel.db.base``
and the domain records.  MUST NOT be imported by ``verein_kernel`` or
``verein_engines``.

Invariants enforced
-------------------
* Stored invoices, reminders and batches always carry their externally
  assigned number; ``from_dto`` refuses drafts without one.
* invoice_number, reminder_number and batch_number are unique.
* Enum values are stored as their string (or int level) values.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Date,
    ForeignKey,
    Index,
    Numeric,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from verein_kernel.db.base import TrackedBase
from verein_kernel.domain.membership import (
    ContributionInvoice,
    ContributionReminder,
    InvoiceLineItem,
    PaymentMethod,
    PaymentStatus,
    ReminderChannel,
    ReminderLevel,
    ReminderStatus,
    SepaBatch,
    SepaBatchStatus,
    SepaDirectDebitTransaction,
)


def _require_number(kind: str, number: str | None) -> str:
    if not number:
        raise ValueError(f"{kind} must be assigned before it is stored")
    return number


# ---------------------------------------------------------------------------
# 1. ContributionInvoiceModel
# ---------------------------------------------------------------------------


class ContributionInvoiceModel(TrackedBase):
    """
    ORM model for contribution invoices.

    Maps to the ``ContributionInvoice`` frozen dataclass.  Line items live
    in ``verein_invoice_lines`` via the ``lines`` relationship.

    Guarantees:
        - invoice_number is unique (uq_verein_invoices_invoice_number).
        - reminder_level is stored as 0..3.
    """

    __tablename__ = "verein_contribution_invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_verein_invoices_invoice_number"),
        Index("idx_verein_invoices_member_id", "member_id"),
        Index("idx_verein_invoices_payment_status", "payment_status"),
        Index("idx_verein_invoices_due_date", "due_date"),
    )

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    member_id: Mapped[UUID] = mapped_column(nullable=False)
    member_contribution_id: Mapped[UUID | None] = mapped_column(nullable=True)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    period_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"))
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    payment_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    payment_status: Mapped[str] = mapped_column(String(20), default="pending")
    paid_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    reminder_level: Mapped[int] = mapped_column(SmallInteger, default=0)
    last_reminder_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["ContributionInvoiceLineModel"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ContributionInvoiceLineModel.line_number",
    )
    reminders: Mapped[list["ContributionReminderModel"]] = relationship(
        back_populates="invoice",
        lazy="selectin",
        order_by="ContributionReminderModel.reminder_level",
    )

    def to_dto(self) -> ContributionInvoice:
        """Convert ORM model to frozen dataclass."""
        return ContributionInvoice(
            id=self.id,
            invoice_number=self.invoice_number,
            member_id=self.member_id,
            member_contribution_id=self.member_contribution_id,
            invoice_date=self.invoice_date,
            due_date=self.due_date,
            period_start=self.period_start,
            period_end=self.period_end,
            amount=self.amount,
            tax_rate=self.tax_rate,
            tax_amount=self.tax_amount,
            total_amount=self.total_amount,
            currency=self.currency,
            payment_method=PaymentMethod(self.payment_method) if self.payment_method else None,
            payment_status=PaymentStatus(self.payment_status),
            paid_amount=self.paid_amount,
            paid_date=self.paid_date,
            reminder_level=self.reminder_level,
            last_reminder_date=self.last_reminder_date,
            description=self.description,
            line_items=tuple(line.to_dto() for line in self.lines),
        )

    @classmethod
    def from_dto(
        cls,
        dto: ContributionInvoice,
        invoice_number: str | None = None,
    ) -> "ContributionInvoiceModel":
        """
        Create ORM model from frozen dataclass.

        ``invoice_number`` supplies the number for a draft; a number already
        on the record takes precedence.
        """
        number = _require_number("invoice_number", dto.invoice_number or invoice_number)
        model = cls(
            invoice_number=number,
            member_id=dto.member_id,
            member_contribution_id=dto.member_contribution_id,
            invoice_date=dto.invoice_date,
            due_date=dto.due_date,
            period_start=dto.period_start,
            period_end=dto.period_end,
            amount=dto.amount,
            tax_rate=dto.tax_rate,
            tax_amount=dto.tax_amount,
            total_amount=dto.total_amount,
            currency=dto.currency,
            payment_method=dto.payment_method.value if dto.payment_method else None,
            payment_status=dto.payment_status.value,
            paid_amount=dto.paid_amount,
            paid_date=dto.paid_date,
            reminder_level=dto.reminder_level,
            last_reminder_date=dto.last_reminder_date,
            description=dto.description,
            lines=[
                ContributionInvoiceLineModel.from_dto(item, line_number=i + 1)
                for i, item in enumerate(dto.line_items)
            ],
        )
        if dto.id is not None:
            model.id = dto.id
        return model

    def apply_dunning(self, updated: ContributionInvoice) -> None:
        """Copy the dunning fields from an invoice returned by ``apply_reminder``."""
        self.reminder_level = updated.reminder_level
        self.last_reminder_date = updated.last_reminder_date

    def __repr__(self) -> str:
        return f"<ContributionInvoiceModel {self.invoice_number}: {self.total_amount} {self.currency}>"


class ContributionInvoiceLineModel(TrackedBase):
    """ORM model for invoice line items."""

    __tablename__ = "verein_invoice_lines"

    __table_args__ = (
        UniqueConstraint("invoice_id", "line_number", name="uq_verein_invoice_lines_number"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        ForeignKey("verein_contribution_invoices.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("1"))
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    total: Mapped[Decimal] = mapped_column(nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"))

    invoice: Mapped[ContributionInvoiceModel] = relationship(back_populates="lines")

    def to_dto(self) -> InvoiceLineItem:
        return InvoiceLineItem(
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
            total=self.total,
            tax_rate=self.tax_rate,
        )

    @classmethod
    def from_dto(cls, dto: InvoiceLineItem, line_number: int) -> "ContributionInvoiceLineModel":
        return cls(
            line_number=line_number,
            description=dto.description,
            quantity=dto.quantity,
            unit_price=dto.unit_price,
            total=dto.total,
            tax_rate=dto.tax_rate,
        )


# ---------------------------------------------------------------------------
# 2. ContributionReminderModel
# ---------------------------------------------------------------------------


class ContributionReminderModel(TrackedBase):
    """
    ORM model for dunning reminders.  Append-only.

    Guarantees:
        - reminder_number is unique.
        - (invoice_id, reminder_level) is unique: one reminder per level.
    """

    __tablename__ = "verein_contribution_reminders"

    __table_args__ = (
        UniqueConstraint("reminder_number", name="uq_verein_reminders_reminder_number"),
        UniqueConstraint("invoice_id", "reminder_level", name="uq_verein_reminders_invoice_level"),
        Index("idx_verein_reminders_member_id", "member_id"),
    )

    reminder_number: Mapped[str] = mapped_column(String(50), nullable=False)
    invoice_id: Mapped[UUID] = mapped_column(
        ForeignKey("verein_contribution_invoices.id"), nullable=False
    )
    member_id: Mapped[UUID] = mapped_column(nullable=False)
    reminder_level: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    reminder_date: Mapped[date] = mapped_column(Date, nullable=False)
    original_amount: Mapped[Decimal] = mapped_column(nullable=False)
    reminder_fee: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    payment_deadline: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="draft")
    sent_via: Mapped[str | None] = mapped_column(String(10), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    invoice: Mapped[ContributionInvoiceModel] = relationship(back_populates="reminders")

    def to_dto(self) -> ContributionReminder:
        return ContributionReminder(
            id=self.id,
            reminder_number=self.reminder_number,
            invoice_id=self.invoice_id,
            invoice_number=self.invoice.invoice_number if self.invoice else None,
            member_id=self.member_id,
            reminder_level=ReminderLevel(self.reminder_level),
            reminder_date=self.reminder_date,
            original_amount=self.original_amount,
            reminder_fee=self.reminder_fee,
            total_amount=self.total_amount,
            currency=self.currency,
            payment_deadline=self.payment_deadline,
            status=ReminderStatus(self.status),
            sent_via=ReminderChannel(self.sent_via) if self.sent_via else None,
            description=self.description,
        )

    @classmethod
    def from_dto(
        cls,
        dto: ContributionReminder,
        reminder_number: str | None = None,
    ) -> "ContributionReminderModel":
        number = _require_number("reminder_number", dto.reminder_number or reminder_number)
        if dto.invoice_id is None:
            raise ValueError("reminder must reference a stored invoice")
        model = cls(
            reminder_number=number,
            invoice_id=dto.invoice_id,
            member_id=dto.member_id,
            reminder_level=int(dto.reminder_level),
            reminder_date=dto.reminder_date,
            original_amount=dto.original_amount,
            reminder_fee=dto.reminder_fee,
            total_amount=dto.total_amount,
            currency=dto.currency,
            payment_deadline=dto.payment_deadline,
            status=dto.status.value,
            sent_via=dto.sent_via.value if dto.sent_via else None,
            description=dto.description,
        )
        if dto.id is not None:
            model.id = dto.id
        return model


# ---------------------------------------------------------------------------
# 3. SepaBatchModel / SepaTransactionModel
# ---------------------------------------------------------------------------


class SepaBatchModel(TrackedBase):
    """
    ORM model for SEPA direct-debit batches.

    ``xml_document`` keeps the exact pain.008 document that was generated.
    """

    __tablename__ = "verein_sepa_batches"

    __table_args__ = (
        UniqueConstraint("batch_number", name="uq_verein_sepa_batches_batch_number"),
        Index("idx_verein_sepa_batches_execution_date", "execution_date"),
    )

    batch_number: Mapped[str] = mapped_column(String(35), nullable=False)
    batch_date: Mapped[date] = mapped_column(Date, nullable=False)
    execution_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_transactions: Mapped[int] = mapped_column(default=0)
    total_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="draft")
    xml_document: Mapped[str | None] = mapped_column(Text, nullable=True)

    transactions: Mapped[list["SepaTransactionModel"]] = relationship(
        back_populates="batch",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SepaTransactionModel.position",
    )

    def to_dto(self) -> SepaBatch:
        return SepaBatch(
            id=self.id,
            batch_number=self.batch_number,
            batch_date=self.batch_date,
            execution_date=self.execution_date,
            total_transactions=self.total_transactions,
            total_amount=self.total_amount,
            currency=self.currency,
            status=SepaBatchStatus(self.status),
        )

    def transaction_dtos(self) -> tuple[SepaDirectDebitTransaction, ...]:
        return tuple(tx.to_dto() for tx in self.transactions)

    @classmethod
    def from_dto(
        cls,
        dto: SepaBatch,
        transactions: tuple[SepaDirectDebitTransaction, ...] = (),
        xml_document: str | None = None,
    ) -> "SepaBatchModel":
        """Create the batch row together with its transaction rows."""
        model = cls(
            batch_number=_require_number("batch_number", dto.batch_number),
            batch_date=dto.batch_date,
            execution_date=dto.execution_date,
            total_transactions=dto.total_transactions,
            total_amount=dto.total_amount,
            currency=dto.currency,
            status=dto.status.value,
            xml_document=xml_document,
            transactions=[
                SepaTransactionModel.from_dto(tx, position=i + 1)
                for i, tx in enumerate(transactions)
            ],
        )
        if dto.id is not None:
            model.id = dto.id
        return model

    def __repr__(self) -> str:
        return f"<SepaBatchModel {self.batch_number}: {self.total_transactions} txs>"


class SepaTransactionModel(TrackedBase):
    """ORM model for one direct debit inside a batch."""

    __tablename__ = "verein_sepa_transactions"

    __table_args__ = (
        UniqueConstraint("batch_id", "end_to_end_id", name="uq_verein_sepa_tx_end_to_end"),
        Index("idx_verein_sepa_tx_invoice_id", "invoice_id"),
    )

    batch_id: Mapped[UUID] = mapped_column(
        ForeignKey("verein_sepa_batches.id"), nullable=False
    )
    position: Mapped[int] = mapped_column(nullable=False)
    invoice_id: Mapped[UUID | None] = mapped_column(nullable=True)
    member_id: Mapped[UUID | None] = mapped_column(nullable=True)
    mandate_reference: Mapped[str] = mapped_column(String(35), nullable=False)
    mandate_date: Mapped[date] = mapped_column(Date, nullable=False)
    debtor_name: Mapped[str] = mapped_column(String(70), nullable=False)
    debtor_iban: Mapped[str] = mapped_column(String(34), nullable=False)
    debtor_bic: Mapped[str | None] = mapped_column(String(11), nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    end_to_end_id: Mapped[str] = mapped_column(String(35), nullable=False)
    remittance_info: Mapped[str | None] = mapped_column(String(140), nullable=True)

    batch: Mapped[SepaBatchModel] = relationship(back_populates="transactions")

    def to_dto(self) -> SepaDirectDebitTransaction:
        return SepaDirectDebitTransaction(
            mandate_reference=self.mandate_reference,
            mandate_date=self.mandate_date,
            debtor_name=self.debtor_name,
            debtor_iban=self.debtor_iban,
            debtor_bic=self.debtor_bic,
            amount=self.amount,
            currency=self.currency,
            end_to_end_id=self.end_to_end_id,
            remittance_info=self.remittance_info,
            invoice_id=self.invoice_id,
            member_id=self.member_id,
        )

    @classmethod
    def from_dto(cls, dto: SepaDirectDebitTransaction, position: int) -> "SepaTransactionModel":
        return cls(
            position=position,
            invoice_id=dto.invoice_id,
            member_id=dto.member_id,
            mandate_reference=dto.mandate_reference,
            mandate_date=dto.mandate_date,
            debtor_name=dto.debtor_name,
            debtor_iban=dto.debtor_iban,
            debtor_bic=dto.debtor_bic,
            amount=dto.amount,
            currency=dto.currency,
            end_to_end_id=dto.end_to_end_id,
            remittance_info=dto.remittance_info,
        )
