"""
Configuration Validator (``verein_config.validator``).

Responsibility
--------------
Checks a parsed ``BillingConfig`` before it is handed to services: the
creditor must be able to appear in a pain.008 document and the currencies
must be known.

Invariants enforced
-------------------
* Creditor IBAN passes the MOD-97 checksum; creditor BIC is well formed.
* Creditor name fits the 70 character pain.008 limit.
* Message id prefix is non-empty and leaves room for the batch number in
  the 35 character MsgId.
* Default and fee currencies are ISO 4217 codes known to the registry.
* Payment terms are not negative.

Failure modes
-------------
* Errors -> configuration MUST NOT be used.
* Warnings (e.g. fee currency differs from default currency) -> usable
  but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from verein_config.schema import BillingConfig
from verein_engines.mandates import validate_bic, validate_iban
from verein_kernel.domain.currency import CurrencyRegistry

MAX_CREDITOR_NAME_LENGTH = 70
MAX_MESSAGE_ID_PREFIX_LENGTH = 20
MAX_CREDITOR_ID_LENGTH = 35


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` is True only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: BillingConfig) -> ConfigValidationResult:
    """Validate a billing configuration; never raises."""
    result = ConfigValidationResult()

    _validate_creditor(config, result)
    _validate_currencies(config, result)
    _validate_terms(config, result)

    return result


def _validate_creditor(config: BillingConfig, result: ConfigValidationResult) -> None:
    creditor = config.creditor

    if not creditor.creditor_name.strip():
        result.add_error("creditor.creditor_name is empty")
    elif len(creditor.creditor_name) > MAX_CREDITOR_NAME_LENGTH:
        result.add_error(
            f"creditor.creditor_name exceeds {MAX_CREDITOR_NAME_LENGTH} characters"
        )

    if not validate_iban(creditor.creditor_iban):
        result.add_error(f"creditor.creditor_iban is not a valid IBAN: {creditor.creditor_iban!r}")

    if not validate_bic(creditor.creditor_bic):
        result.add_error(f"creditor.creditor_bic is not a valid BIC: {creditor.creditor_bic!r}")

    if not creditor.creditor_id.strip():
        result.add_error("creditor.creditor_id is empty")
    elif len(creditor.creditor_id) > MAX_CREDITOR_ID_LENGTH:
        result.add_error(f"creditor.creditor_id exceeds {MAX_CREDITOR_ID_LENGTH} characters")

    prefix = creditor.message_id_prefix
    if not prefix.strip():
        result.add_error("creditor.message_id_prefix is empty")
    elif len(prefix) > MAX_MESSAGE_ID_PREFIX_LENGTH:
        result.add_error(
            f"creditor.message_id_prefix exceeds {MAX_MESSAGE_ID_PREFIX_LENGTH} characters"
        )


def _validate_currencies(config: BillingConfig, result: ConfigValidationResult) -> None:
    if not CurrencyRegistry.is_valid(config.default_currency):
        result.add_error(f"default_currency is not a known currency: {config.default_currency!r}")

    fee_currency = config.dunning.fee_currency
    if not CurrencyRegistry.is_valid(fee_currency):
        result.add_error(f"dunning.fee_currency is not a known currency: {fee_currency!r}")
    elif fee_currency != config.default_currency:
        result.add_warning(
            f"dunning.fee_currency {fee_currency} differs from default_currency "
            f"{config.default_currency}"
        )


def _validate_terms(config: BillingConfig, result: ConfigValidationResult) -> None:
    if config.payment_terms_days < 0:
        result.add_error(f"payment_terms_days cannot be negative: {config.payment_terms_days}")
