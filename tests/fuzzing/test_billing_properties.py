"""
Hypothesis-based property tests for the billing engines.

Properties checked over generated inputs:
- Billing periods tile: each period ends the day before the next one starts
- Contribution totals are base + tax, with tax rounded to cents
- Dunning levels never decrease as days overdue grow
- Any IBAN with correct check digits validates; any digit substitution fails
- Mandate references encode the issue time in base36 milliseconds
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from verein_engines.contribution import calculate_contribution_amount
from verein_engines.dunning import determine_reminder_level
from verein_engines.mandates import (
    generate_mandate_reference,
    iban_checksum_remainder,
    validate_iban,
)
from verein_engines.periods import (
    calculate_invoice_period,
    calculate_next_due_date,
    next_period_start,
)
from verein_kernel.domain.membership import RecurrenceInterval

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

RECURRING = [
    RecurrenceInterval.MONTHLY,
    RecurrenceInterval.QUARTERLY,
    RecurrenceInterval.SEMI_ANNUAL,
    RecurrenceInterval.ANNUAL,
]

billing_dates = st.dates(min_value=date(2000, 1, 1), max_value=date(2099, 12, 31))

amounts = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

tax_rates = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


@composite
def german_ibans(draw):
    """DE IBANs with an 18-digit BBAN and computed check digits."""
    bban = draw(st.text(alphabet="0123456789", min_size=18, max_size=18))
    check = 98 - iban_checksum_remainder(f"DE00{bban}")
    return f"DE{check:02d}{bban}"


class TestPeriodProperties:
    @given(start=billing_dates, interval=st.sampled_from(RECURRING))
    @settings(max_examples=200, deadline=None)
    def test_periods_tile(self, start, interval):
        period = calculate_invoice_period(start, interval)
        assert period.period_start == start
        assert period.period_end >= start
        assert next_period_start(period) == calculate_next_due_date(start, interval)

    @given(start=billing_dates)
    @settings(deadline=None)
    def test_one_time_is_single_day(self, start):
        period = calculate_invoice_period(start, RecurrenceInterval.ONE_TIME)
        assert period.days == 1


class TestContributionProperties:
    @given(base=amounts, rate=tax_rates, as_of=billing_dates)
    @settings(max_examples=200, deadline=None)
    def test_total_is_base_plus_rounded_tax(self, base, rate, as_of):
        calc = calculate_contribution_amount(base, rate, as_of_date=as_of)
        assert calc.total.amount == calc.base.amount + calc.tax.amount
        assert calc.tax.amount >= 0
        assert calc.tax.amount == calc.tax.amount.quantize(Decimal("0.01"))

    @given(base=amounts, as_of=billing_dates)
    @settings(deadline=None)
    def test_zero_rate_has_no_tax(self, base, as_of):
        calc = calculate_contribution_amount(base, Decimal("0"), as_of_date=as_of)
        assert calc.tax.is_zero
        assert calc.total.amount == base


class TestDunningProperties:
    @given(days=st.integers(min_value=0, max_value=400), extra=st.integers(min_value=0, max_value=400))
    def test_level_monotonic(self, days, extra):
        earlier = determine_reminder_level(days)
        later = determine_reminder_level(days + extra)
        if earlier is not None:
            assert later is not None
            assert later >= earlier


class TestIbanProperties:
    @given(iban=german_ibans())
    @settings(max_examples=200)
    def test_generated_iban_valid(self, iban):
        assert validate_iban(iban)

    @given(iban=german_ibans(), data=st.data())
    @settings(max_examples=200)
    def test_digit_substitution_detected(self, iban, data):
        position = data.draw(st.integers(min_value=4, max_value=len(iban) - 1))
        replacement = data.draw(
            st.sampled_from([d for d in "0123456789" if d != iban[position]])
        )
        mutated = iban[:position] + replacement + iban[position + 1:]
        assert not validate_iban(mutated)


class TestMandateReferenceProperties:
    @given(
        issued_at=st.datetimes(
            min_value=datetime(2000, 1, 1),
            max_value=datetime(2100, 1, 1),
            timezones=st.just(timezone.utc),
        )
    )
    @settings(deadline=None)
    def test_suffix_encodes_epoch_millis(self, issued_at):
        reference = generate_mandate_reference("M-0042", issued_at)
        prefix, suffix = reference.rsplit("-", 1)
        assert prefix == "MAND-M-0042"
        assert int(suffix, 36) == (issued_at - EPOCH) // timedelta(milliseconds=1)
