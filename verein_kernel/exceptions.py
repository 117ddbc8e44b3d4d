"""
Typed Exception Hierarchy for the Verein billing core.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Billing runs are driven by schedulers and operators, not by people reading
stack traces.  Callers must be able to tell a data problem (an unknown
recurrence interval, a negative contribution) from a mandate problem (a
member without a signed SEPA mandate) without parsing message strings.

Every exception therefore carries:
  1. A TYPED class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    try:
        tx = create_sepa_transaction_from_invoice(member, invoice)
    except MissingMandateError as e:
        report.append({"member": e.member_id, "code": e.code, "fields": e.missing_fields})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    VereinBillingError (base)
    |
    +-- BillingError
    |   +-- InvalidIntervalError
    |   +-- InvalidAmountError
    |
    +-- DunningError
    |   +-- ReminderLevelRegressionError
    |
    +-- SepaError
    |   +-- MissingMandateError
    |   +-- MandateNotActiveError
    |
    +-- ConfigurationError
        +-- ConfigValidationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Billing         | INVALID_INTERVAL            | Recurrence interval not recognized
                | INVALID_AMOUNT              | Negative amount/rate, broken totals
----------------|-----------------------------|-----------------------------------------
Dunning         | REMINDER_LEVEL_REGRESSION   | Reminder would lower the invoice level
----------------|-----------------------------|-----------------------------------------
SEPA            | MISSING_MANDATE             | Debit without iban/mandate ref/date
                | MANDATE_NOT_ACTIVE          | Batch entry for a member whose mandate
                |                             | is pending, revoked or expired
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIG_VALIDATION_FAILED    | Creditor or dunning config is invalid

SEPA transaction validation does NOT raise.  Field-level violations are
collected into a ``ValidationResult`` (see ``verein_kernel.domain.dtos``)
carrying the ``VALIDATION_FAILED`` code so a batch can report every bad
transaction instead of aborting on the first one.
"""


class VereinBillingError(Exception):
    """
    Base exception for all billing core errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "VEREIN_BILLING_ERROR"


# Billing-related exceptions


class BillingError(VereinBillingError):
    """Base exception for period, amount and invoice calculation errors."""

    code: str = "BILLING_ERROR"


class InvalidIntervalError(BillingError):
    """Recurrence interval is not one of the supported values."""

    code: str = "INVALID_INTERVAL"

    def __init__(self, interval: object):
        self.interval = str(interval)
        super().__init__(f"Invalid recurrence interval: {interval}")


class InvalidAmountError(BillingError):
    """Amount is negative, zero where positive is required, or inconsistent."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, amount: object, reason: str):
        self.field = field
        self.amount = str(amount)
        self.reason = reason
        super().__init__(f"Invalid {field} {amount}: {reason}")


# Dunning-related exceptions


class DunningError(VereinBillingError):
    """Base exception for dunning errors."""

    code: str = "DUNNING_ERROR"


class ReminderLevelRegressionError(DunningError):
    """
    A reminder would move the invoice to a lower or equal reminder level.

    Reminder levels only ever increase.
    """

    code: str = "REMINDER_LEVEL_REGRESSION"

    def __init__(self, invoice_number: str | None, current_level: int, requested_level: int):
        self.invoice_number = invoice_number
        self.current_level = current_level
        self.requested_level = requested_level
        super().__init__(
            f"Invoice {invoice_number} is already at reminder level {current_level}; "
            f"cannot apply level {requested_level}"
        )


# SEPA-related exceptions


class SepaError(VereinBillingError):
    """Base exception for SEPA direct-debit errors."""

    code: str = "SEPA_ERROR"


class MissingMandateError(SepaError):
    """Member does not carry the mandate data needed for a direct debit."""

    code: str = "MISSING_MANDATE"

    def __init__(self, member_id: object, missing_fields: tuple[str, ...]):
        self.member_id = str(member_id)
        self.missing_fields = missing_fields
        super().__init__(
            f"Member {member_id} does not have valid SEPA mandate "
            f"(missing: {', '.join(missing_fields)})"
        )


class MandateNotActiveError(SepaError):
    """Member has mandate data but the mandate is not active."""

    code: str = "MANDATE_NOT_ACTIVE"

    def __init__(self, member_id: object, status: str | None):
        self.member_id = str(member_id)
        self.status = status
        super().__init__(
            f"Member {member_id} SEPA mandate is not active (status: {status})"
        )


# Configuration-related exceptions


class ConfigurationError(VereinBillingError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class ConfigValidationError(ConfigurationError):
    """Billing configuration failed validation."""

    code: str = "CONFIG_VALIDATION_FAILED"

    def __init__(self, errors: list[str]):
        self.errors = tuple(errors)
        super().__init__(
            f"Billing configuration invalid: {'; '.join(errors)}"
        )
