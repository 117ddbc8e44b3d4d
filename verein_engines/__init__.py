"""
Module: verein_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    billing engines.  This is the canonical import surface for
    verein_modules.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import verein_kernel (and sibling engine modules).
    MUST NOT import verein_config or verein_modules.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Dates and timestamps are explicit parameters supplied by services.
    - Decimal-only arithmetic for all monetary amounts.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine entry points are wrapped by ``@traced_engine`` (see
    ``verein_engines.tracer``) and emit VEREIN_ENGINE_TRACE records with
    engine name, version, input fingerprint and duration.

Usage:
    from verein_engines import (
        generate_invoice_from_contribution,
        should_send_reminder,
        create_sepa_transaction_from_invoice,
        SepaXmlGenerator,
    )
"""

from verein_engines.contribution import (
    ContributionCalculation,
    calculate_contribution_amount,
    effective_amount,
    effective_interval,
    is_contribution_active,
)
from verein_engines.dunning import (
    REMINDER_TEXTS,
    STANDARD_DUNNING_POLICY,
    DunningPolicy,
    ReminderDecision,
    apply_reminder,
    calculate_reminder_fee,
    determine_reminder_level,
    generate_reminder,
    get_days_overdue,
    is_invoice_overdue,
    should_send_reminder,
)
from verein_engines.invoicing import (
    PAYMENT_TERMS_DAYS,
    generate_invoice_from_contribution,
)
from verein_engines.mandates import (
    format_iban,
    generate_mandate_reference,
    is_sepa_mandate_valid,
    normalize_iban,
    validate_bic,
    validate_iban,
)
from verein_engines.periods import (
    BillingPeriod,
    calculate_invoice_period,
    calculate_next_due_date,
    next_period_start,
)
from verein_engines.sepa_transactions import (
    BatchStatistics,
    ScheduledDebit,
    build_sepa_batch,
    calculate_batch_statistics,
    calculate_sepa_execution_date,
    create_sepa_transaction_from_invoice,
    group_transactions_by_execution_date,
    validate_sepa_transaction,
)
from verein_engines.sepa_xml import (
    SepaCreditorConfig,
    SepaXmlGenerator,
    escape_xml,
)
from verein_engines.statistics import (
    MembershipStatistics,
    calculate_membership_statistics,
)
from verein_engines.tracer import traced_engine

__all__ = [
    # Periods
    "BillingPeriod",
    "calculate_invoice_period",
    "calculate_next_due_date",
    "next_period_start",
    # Contribution
    "ContributionCalculation",
    "calculate_contribution_amount",
    "effective_amount",
    "effective_interval",
    "is_contribution_active",
    # Invoicing
    "PAYMENT_TERMS_DAYS",
    "generate_invoice_from_contribution",
    # Dunning
    "REMINDER_TEXTS",
    "STANDARD_DUNNING_POLICY",
    "DunningPolicy",
    "ReminderDecision",
    "apply_reminder",
    "calculate_reminder_fee",
    "determine_reminder_level",
    "generate_reminder",
    "get_days_overdue",
    "is_invoice_overdue",
    "should_send_reminder",
    # Mandates
    "format_iban",
    "generate_mandate_reference",
    "is_sepa_mandate_valid",
    "normalize_iban",
    "validate_bic",
    "validate_iban",
    # SEPA transactions
    "BatchStatistics",
    "ScheduledDebit",
    "build_sepa_batch",
    "calculate_batch_statistics",
    "calculate_sepa_execution_date",
    "create_sepa_transaction_from_invoice",
    "group_transactions_by_execution_date",
    "validate_sepa_transaction",
    # SEPA XML
    "SepaCreditorConfig",
    "SepaXmlGenerator",
    "escape_xml",
    # Statistics
    "MembershipStatistics",
    "calculate_membership_statistics",
    # Tracing
    "traced_engine",
]
