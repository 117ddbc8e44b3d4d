"""
Configuration Loader (``verein_config.loader``).

Responsibility
--------------
Loads a billing configuration YAML file and parses it into the typed
``verein_config.schema`` dataclasses.  Runtime callers go through
``verein_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Required keys have no silent defaults: a missing key raises ``KeyError``.
* Monetary values must be strings or integers; YAML floats are rejected.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid values  -> ``ValueError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from verein_config.schema import BillingConfig
from verein_engines.dunning import DunningPolicy
from verein_engines.sepa_xml import SepaCreditorConfig
from verein_kernel.domain.membership import ReminderLevel


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a money value; floats are rejected to avoid binary rounding."""
    if isinstance(value, float):
        raise ValueError(
            f"{field_name} must be quoted in YAML (got float {value!r})"
        )
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{field_name} is not a decimal: {value!r}") from None


def parse_creditor(data: dict[str, Any]) -> SepaCreditorConfig:
    """Parse the ``creditor`` section."""
    return SepaCreditorConfig(
        creditor_name=str(data["creditor_name"]),
        creditor_iban=str(data["creditor_iban"]),
        creditor_bic=str(data["creditor_bic"]),
        creditor_id=str(data["creditor_id"]),
        message_id_prefix=str(data["message_id_prefix"]),
    )


def parse_dunning(data: dict[str, Any] | None) -> DunningPolicy:
    """
    Parse the optional ``dunning`` section.

    Keys left out fall back to the standard policy values.

    Raises:
        ValueError: for unknown fee levels or inconsistent thresholds.
    """
    if not data:
        return DunningPolicy()

    kwargs: dict[str, Any] = {}
    for key in (
        "first_level_days",
        "second_level_days",
        "final_level_days",
        "payment_deadline_days",
    ):
        if key in data:
            kwargs[key] = int(data[key])
    if "fee_currency" in data:
        kwargs["fee_currency"] = str(data["fee_currency"]).upper()
    if "fees" in data:
        fees: dict[ReminderLevel, Decimal] = {}
        for level, amount in data["fees"].items():
            try:
                resolved = ReminderLevel(int(level))
            except ValueError:
                raise ValueError(f"Unknown reminder level in dunning.fees: {level!r}") from None
            fees[resolved] = parse_decimal(amount, f"dunning.fees.{level}")
        kwargs["fees"] = fees

    return DunningPolicy(**kwargs)


def parse_billing_config(data: dict[str, Any], checksum: str = "") -> BillingConfig:
    """Parse a complete ``BillingConfig`` from a dict."""
    return BillingConfig(
        config_id=str(data.get("config_id", "default")),
        version=int(data.get("version", 1)),
        association_name=str(data["association_name"]),
        default_currency=str(data.get("default_currency", "EUR")).upper(),
        payment_terms_days=int(data.get("payment_terms_days", 14)),
        creditor=parse_creditor(data["creditor"]),
        dunning=parse_dunning(data.get("dunning")),
        checksum=checksum,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_billing_config(path: Path) -> BillingConfig:
    """Load and parse ``path`` into a ``BillingConfig`` carrying its checksum."""
    data = load_yaml_file(path)
    return parse_billing_config(data, checksum=compute_checksum(data))
