"""
Configuration Schema (``verein_config.schema``).

Responsibility
--------------
Frozen dataclass describing one billing configuration: the association,
its default currency and payment terms, the SEPA creditor identity and
the dunning policy.

Architecture position
---------------------
**Config layer** -- pure data definitions.  Reuses the engine value types
(``SepaCreditorConfig``, ``DunningPolicy``) so a loaded configuration can
be handed to the engines without translation.

Invariants enforced
-------------------
* All definitions are ``frozen=True``.
* ``checksum`` is the SHA-256 of the source document, computed by the
  loader.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from verein_engines.dunning import STANDARD_DUNNING_POLICY, DunningPolicy
from verein_engines.invoicing import PAYMENT_TERMS_DAYS
from verein_engines.sepa_xml import SepaCreditorConfig


@dataclass(frozen=True)
class BillingConfig:
    """Root configuration object for the billing core."""

    association_name: str
    creditor: SepaCreditorConfig
    default_currency: str = "EUR"
    payment_terms_days: int = PAYMENT_TERMS_DAYS
    dunning: DunningPolicy = field(default_factory=lambda: STANDARD_DUNNING_POLICY)
    config_id: str = "default"
    version: int = 1
    checksum: str = ""
