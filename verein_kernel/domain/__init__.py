"""
Pure domain layer.

This module contains immutable records and value objects with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (only the injectable Clock abstraction lives here)
- I/O
"""

from verein_kernel.domain.clock import Clock, DeterministicClock, SequentialClock, SystemClock
from verein_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from verein_kernel.domain.dtos import ValidationError, ValidationResult
from verein_kernel.domain.membership import (
    ContributionDefinition,
    ContributionInvoice,
    ContributionReminder,
    ContributionType,
    InvoiceLineItem,
    Member,
    MemberContribution,
    MemberStatus,
    PaymentMethod,
    PaymentStatus,
    RecurrenceInterval,
    ReminderChannel,
    ReminderLevel,
    ReminderStatus,
    SepaBatch,
    SepaBatchStatus,
    SepaDirectDebitTransaction,
    SepaMandateStatus,
)
from verein_kernel.domain.values import Currency, Money

__all__ = [
    "Clock",
    "DeterministicClock",
    "SequentialClock",
    "SystemClock",
    "CurrencyInfo",
    "CurrencyRegistry",
    "ValidationError",
    "ValidationResult",
    "ContributionDefinition",
    "ContributionInvoice",
    "ContributionReminder",
    "ContributionType",
    "InvoiceLineItem",
    "Member",
    "MemberContribution",
    "MemberStatus",
    "PaymentMethod",
    "PaymentStatus",
    "RecurrenceInterval",
    "ReminderChannel",
    "ReminderLevel",
    "ReminderStatus",
    "SepaBatch",
    "SepaBatchStatus",
    "SepaDirectDebitTransaction",
    "SepaMandateStatus",
    "Currency",
    "Money",
]
