"""
Tests for the billing configuration entrypoint.

Loads YAML through get_active_config() and checks parsing, validation,
checksum stability and the VEREIN_CONFIG_TRACE audit record.
"""

from decimal import Decimal

import pytest
import yaml

from verein_config import get_active_config
from verein_config.loader import (
    compute_checksum,
    parse_billing_config,
    parse_decimal,
    parse_dunning,
)
from verein_config.validator import validate_configuration
from verein_kernel.domain.membership import ReminderLevel
from verein_kernel.exceptions import ConfigValidationError


def _base_document() -> dict:
    return {
        "config_id": "test",
        "version": 3,
        "association_name": "Turnverein Musterstadt e.V.",
        "default_currency": "EUR",
        "payment_terms_days": 10,
        "creditor": {
            "creditor_name": "Turnverein Musterstadt e.V.",
            "creditor_iban": "DE89370400440532013000",
            "creditor_bic": "COBADEFFXXX",
            "creditor_id": "DE98ZZZ09999999999",
            "message_id_prefix": "TVM",
        },
        "dunning": {
            "first_level_days": 5,
            "second_level_days": 15,
            "final_level_days": 30,
            "fees": {1: "2.50", 2: "5.00", 3: "7.50"},
        },
    }


@pytest.fixture
def write_config(tmp_path):
    def _write(document) -> str:
        path = tmp_path / "billing.yaml"
        path.write_text(yaml.safe_dump(document, allow_unicode=True), encoding="utf-8")
        return str(path)

    return _write


class TestDefaultConfiguration:
    """The shipped verein_config/sets/default.yaml."""

    def test_loads(self):
        config = get_active_config()
        assert config.config_id == "default"
        assert config.association_name == "Musterverein e.V."
        assert config.default_currency == "EUR"
        assert config.payment_terms_days == 14

    def test_creditor(self):
        creditor = get_active_config().creditor
        assert creditor.creditor_iban == "DE89 3704 0044 0532 0130 00"
        assert creditor.creditor_bic == "COBADEFFXXX"
        assert creditor.creditor_id == "DE98ZZZ09999999999"
        assert creditor.message_id_prefix == "MV"

    def test_standard_dunning_policy(self):
        policy = get_active_config().dunning
        assert policy.first_level_days == 7
        assert policy.second_level_days == 21
        assert policy.final_level_days == 35
        assert policy.fees[ReminderLevel.FIRST] == Decimal("5.00")
        assert policy.fees[ReminderLevel.FINAL] == Decimal("15.00")

    def test_checksum_stable(self):
        first = get_active_config()
        second = get_active_config()
        assert len(first.checksum) == 64
        assert first.checksum == second.checksum

    def test_emits_config_trace(self, captured_logs):
        config = get_active_config()
        traces = [r for r in captured_logs() if r["message"] == "VEREIN_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["logger"] == "verein.config"
        assert traces[0]["config_id"] == "default"
        assert traces[0]["checksum"] == config.checksum


class TestCustomConfiguration:
    def test_custom_file(self, write_config):
        config = get_active_config(write_config(_base_document()))
        assert config.config_id == "test"
        assert config.version == 3
        assert config.payment_terms_days == 10
        assert config.creditor.message_id_prefix == "TVM"
        assert config.dunning.first_level_days == 5
        assert config.dunning.fees[ReminderLevel.SECOND] == Decimal("5.00")

    def test_checksum_tracks_content(self, write_config):
        first = get_active_config(write_config(_base_document()))
        changed = _base_document()
        changed["payment_terms_days"] = 21
        second = get_active_config(write_config(changed))
        assert first.checksum != second.checksum

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "missing.yaml")

    def test_missing_required_key(self, write_config):
        document = _base_document()
        del document["creditor"]["creditor_bic"]
        with pytest.raises(ConfigValidationError) as exc_info:
            get_active_config(write_config(document))
        assert exc_info.value.errors == ("missing required key: creditor_bic",)
        assert exc_info.value.code == "CONFIG_VALIDATION_FAILED"

    def test_invalid_iban(self, write_config):
        document = _base_document()
        document["creditor"]["creditor_iban"] = "DE88370400440532013000"
        with pytest.raises(ConfigValidationError) as exc_info:
            get_active_config(write_config(document))
        assert any("creditor_iban" in e for e in exc_info.value.errors)

    def test_float_fee_rejected(self, write_config):
        document = _base_document()
        document["dunning"]["fees"][1] = 2.5
        with pytest.raises(ConfigValidationError) as exc_info:
            get_active_config(write_config(document))
        assert "must be quoted" in exc_info.value.errors[0]

    def test_thresholds_out_of_order(self, write_config):
        document = _base_document()
        document["dunning"]["second_level_days"] = 40
        with pytest.raises(ConfigValidationError):
            get_active_config(write_config(document))

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("creditor: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError):
            get_active_config(path)

    def test_fee_currency_warning_logged(self, write_config, captured_logs):
        document = _base_document()
        document["dunning"]["fee_currency"] = "CHF"
        config = get_active_config(write_config(document))
        assert config.dunning.fee_currency == "CHF"
        warnings = [r for r in captured_logs() if r["message"] == "config_validation_warning"]
        assert "differs from default_currency" in warnings[0]["warning"]


class TestLoaderHelpers:
    def test_parse_decimal(self):
        assert parse_decimal("5.00", "fee") == Decimal("5.00")
        assert parse_decimal(5, "fee") == Decimal("5")

    def test_parse_decimal_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_decimal("five", "fee")

    def test_partial_dunning_section(self):
        policy = parse_dunning({"payment_deadline_days": 14})
        assert policy.payment_deadline_days == 14
        assert policy.first_level_days == 7

    def test_empty_dunning_section(self):
        assert parse_dunning(None).final_level_days == 35

    def test_unknown_fee_level(self):
        with pytest.raises(ValueError):
            parse_dunning({"fees": {4: "20.00"}})

    def test_checksum_independent_of_key_order(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})


class TestValidateConfiguration:
    def test_valid(self):
        result = validate_configuration(parse_billing_config(_base_document()))
        assert result.is_valid
        assert result.warnings == []

    def test_collects_all_errors(self):
        document = _base_document()
        document["creditor"].update(
            creditor_name="",
            creditor_bic="XX",
            creditor_id="",
            message_id_prefix="P" * 21,
        )
        document["payment_terms_days"] = -1
        result = validate_configuration(parse_billing_config(document))
        assert not result.is_valid
        assert len(result.errors) == 5

    def test_unknown_default_currency(self):
        document = _base_document()
        document["default_currency"] = "XYZ"
        result = validate_configuration(parse_billing_config(document))
        assert any("default_currency" in e for e in result.errors)
