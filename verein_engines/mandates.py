"""
Module: verein_engines.mandates
Responsibility:
    SEPA mandate checks: IBAN format and ISO 7064 MOD-97 checksum, BIC
    format, mandate completeness, plus IBAN normalisation/display helpers
    and mandate reference generation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Whitespace is removed and letters uppercased before any check.
    - An IBAN is valid only if its MOD-97 remainder is exactly 1.
    - German IBANs are exactly 22 characters.

Usage:
    from verein_engines.mandates import validate_iban, format_iban

    validate_iban("DE89 3704 0044 0532 0130 00")  # True
    format_iban("de89370400440532013000")       # "DE89 3704 0044 0532 0130 00"
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

from verein_kernel.domain.membership import Member, SepaMandateStatus

IBAN_PATTERN = re.compile(r"^[A-Z]{2}[0-9]{2}[A-Z0-9]{1,30}$", re.ASCII)
BIC_PATTERN = re.compile(r"^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$", re.ASCII)

# Fixed national IBAN lengths checked on top of the checksum.
IBAN_LENGTHS: dict[str, int] = {"DE": 22}

_WHITESPACE = re.compile(r"\s+")
_CHUNK_SIZE = 7
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_BASE36_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def normalize_iban(iban: str) -> str:
    """IBAN without whitespace, uppercased."""
    return _WHITESPACE.sub("", iban).upper()


def format_iban(iban: str) -> str:
    """Display form: normalised IBAN in groups of four."""
    clean = normalize_iban(iban)
    return " ".join(clean[i:i + 4] for i in range(0, len(clean), 4))


def _normalize_bic(bic: str) -> str:
    return _WHITESPACE.sub("", bic).upper()


def iban_checksum_remainder(iban: str) -> int:
    """
    ISO 7064 MOD 97-10 remainder of a normalised IBAN.

    The first four characters move to the end, letters become 10..35 and
    the resulting digit string is reduced mod 97 in 7-digit chunks.
    """
    rearranged = iban[4:] + iban[:4]
    digits = "".join(str(int(ch, 36)) for ch in rearranged)

    remainder = 0
    for start in range(0, len(digits), _CHUNK_SIZE):
        chunk = digits[start:start + _CHUNK_SIZE]
        remainder = int(f"{remainder}{chunk}") % 97
    return remainder


def validate_iban(iban: str | None) -> bool:
    """Format and MOD-97 checksum validation."""
    if not iban:
        return False
    clean = normalize_iban(iban)
    if not IBAN_PATTERN.match(clean):
        return False
    expected_length = IBAN_LENGTHS.get(clean[:2])
    if expected_length is not None and len(clean) != expected_length:
        return False
    return iban_checksum_remainder(clean) == 1


def validate_bic(bic: str | None) -> bool:
    """8 or 11 character BIC format check."""
    if not bic:
        return False
    return BIC_PATTERN.match(_normalize_bic(bic)) is not None


def missing_mandate_fields(member: Member) -> tuple[str, ...]:
    """Names of mandate fields required for a debit that are empty on ``member``."""
    required = {
        "iban": member.iban,
        "account_holder": member.account_holder,
        "sepa_mandate_reference": member.sepa_mandate_reference,
    }
    return tuple(name for name, value in required.items() if not value)


def is_sepa_mandate_valid(member: Member) -> bool:
    """Active mandate, complete mandate data and a checksum-valid IBAN."""
    if member.sepa_mandate_status != SepaMandateStatus.ACTIVE:
        return False
    if missing_mandate_fields(member):
        return False
    return validate_iban(member.iban)


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(_BASE36_DIGITS[rem])
    return "".join(reversed(out))


def generate_mandate_reference(member_number: str, issued_at: datetime) -> str:
    """
    ``MAND-{member_number}-{base36 epoch milliseconds}``.

    ``issued_at`` must be timezone-aware; the caller passes its clock's
    current time.
    """
    if issued_at.tzinfo is None:
        raise ValueError("issued_at must be timezone-aware")
    millis = (issued_at - _EPOCH) // timedelta(milliseconds=1)
    return f"MAND-{member_number}-{_to_base36(millis)}"
