"""
Verein Modules.

Thin orchestration layers over the billing kernel and engines.

Modules:
- Billing: contribution invoices, dunning runs, SEPA direct-debit batches

Actual processing logic lives in the engines.
"""

from verein_modules import billing

__all__ = [
    "billing",
]
