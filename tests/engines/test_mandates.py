"""
Tests for verein_engines.mandates.

IBAN MOD-97 validation, BIC format, mandate completeness and mandate
reference generation.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tests.factories import VALID_IBAN, make_member
from verein_engines.mandates import (
    format_iban,
    generate_mandate_reference,
    iban_checksum_remainder,
    is_sepa_mandate_valid,
    missing_mandate_fields,
    normalize_iban,
    validate_bic,
    validate_iban,
)
from verein_kernel.domain.membership import SepaMandateStatus


class TestValidateIban:
    """Format plus ISO 7064 MOD 97-10 checksum."""

    def test_reference_iban_valid(self):
        assert validate_iban(VALID_IBAN)

    def test_spaced_lowercase_accepted(self):
        assert validate_iban("de89 3704 0044 0532 0130 00")

    def test_remainder_is_one(self):
        assert iban_checksum_remainder(VALID_IBAN) == 1

    @pytest.mark.parametrize("position", range(2, len(VALID_IBAN)))
    def test_single_digit_mutation_invalid(self, position):
        original = VALID_IBAN[position]
        replacement = "0" if original != "0" else "1"
        mutated = VALID_IBAN[:position] + replacement + VALID_IBAN[position + 1:]
        assert not validate_iban(mutated)

    def test_other_country_valid(self):
        assert validate_iban("GB82WEST12345698765432")
        assert validate_iban("AT611904300234573201")

    def test_german_length_enforced(self):
        # Correct checksum would still need 22 characters.
        assert not validate_iban(VALID_IBAN + "0")
        assert not validate_iban(VALID_IBAN[:-1])

    @pytest.mark.parametrize("value", [None, "", "   ", "DE", "1289370400440532013000", "DE8X370400440532013000"])
    def test_malformed_rejected(self, value):
        assert not validate_iban(value)

    def test_non_ascii_digits_rejected(self):
        # Arabic-Indic 8 and 9 in place of the check digits "89".
        assert not validate_iban("DE\u0668\u0669370400440532013000")
        assert not validate_iban("DE89\uff13\uff17\uff10400440532013000")


class TestIbanHelpers:
    def test_normalize(self):
        assert normalize_iban(" de89 3704\t0044 0532 0130 00 ") == VALID_IBAN

    def test_format_groups_of_four(self):
        assert format_iban("de89370400440532013000") == "DE89 3704 0044 0532 0130 00"


class TestValidateBic:
    @pytest.mark.parametrize("bic", ["COBADEFF", "COBADEFFXXX", "cobadeffxxx", "DEUT DE FF"])
    def test_valid(self, bic):
        assert validate_bic(bic)

    @pytest.mark.parametrize("bic", [None, "", "COBADEF", "COBADEFFXX", "12BADEFFXXX", "COBADEFFXXXX", "COBADEFF\u0661\u0662\u0663"])
    def test_invalid(self, bic):
        assert not validate_bic(bic)


class TestMandateCompleteness:
    def test_complete_active_mandate(self):
        member = make_member()
        assert missing_mandate_fields(member) == ()
        assert is_sepa_mandate_valid(member)

    def test_missing_fields_listed(self):
        member = make_member(iban=None, account_holder="", sepa_mandate_reference=None)
        assert missing_mandate_fields(member) == (
            "iban", "account_holder", "sepa_mandate_reference",
        )
        assert not is_sepa_mandate_valid(member)

    @pytest.mark.parametrize("status", [
        None,
        SepaMandateStatus.PENDING,
        SepaMandateStatus.REVOKED,
        SepaMandateStatus.EXPIRED,
    ])
    def test_inactive_mandate(self, status):
        assert not is_sepa_mandate_valid(make_member(sepa_mandate_status=status))

    def test_bad_checksum(self):
        assert not is_sepa_mandate_valid(make_member(iban="DE88370400440532013000"))


class TestGenerateMandateReference:
    def test_format(self):
        issued_at = datetime(2025, 1, 1, tzinfo=timezone.utc)
        # 1735689600000 ms since epoch
        assert generate_mandate_reference("M-0042", issued_at) == "MAND-M-0042-M5D4RUO0"

    def test_epoch_is_zero(self):
        epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert generate_mandate_reference("7", epoch) == "MAND-7-0"

    def test_timezone_normalized(self):
        utc = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        berlin = utc.astimezone(timezone(timedelta(hours=1)))
        assert generate_mandate_reference("1", utc) == generate_mandate_reference("1", berlin)

    def test_changes_with_time(self):
        t0 = datetime(2025, 1, 1, tzinfo=timezone.utc)
        t1 = t0 + timedelta(milliseconds=1)
        assert generate_mandate_reference("1", t0) != generate_mandate_reference("1", t1)

    def test_naive_rejected(self):
        with pytest.raises(ValueError):
            generate_mandate_reference("1", datetime(2025, 1, 1))
