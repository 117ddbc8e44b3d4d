"""
Contribution Billing Module.

Runs invoice generation, dunning sweeps and SEPA batch preparation for
the association, and maps the resulting records to database tables.

Period, amount, dunning and SEPA logic come from the shared engines.
"""

from verein_modules.billing.service import (
    ContributionBillingService,
    DunningRunResult,
    RejectedDebit,
    SepaBatchPreparation,
)

__all__ = [
    "ContributionBillingService",
    "DunningRunResult",
    "RejectedDebit",
    "SepaBatchPreparation",
]
