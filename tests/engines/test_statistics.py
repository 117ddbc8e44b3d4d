"""Tests for verein_engines.statistics."""

from datetime import date
from decimal import Decimal

import pytest

from tests.factories import make_invoice
from verein_engines.statistics import calculate_membership_statistics
from verein_kernel.domain.membership import PaymentStatus
from verein_kernel.domain.values import Money


class TestCalculateMembershipStatistics:
    """Revenue split into paid, pending and overdue."""

    def test_mixed_invoices(self):
        invoices = [
            make_invoice(payment_status=PaymentStatus.PAID, paid_amount=Decimal("120.00")),
            # overdue, partially paid
            make_invoice(
                payment_status=PaymentStatus.PARTIAL,
                paid_amount=Decimal("20.00"),
                due_date=date(2025, 1, 1),
            ),
            # not yet due
            make_invoice(due_date=date(2025, 3, 1)),
        ]
        stats = calculate_membership_statistics(invoices, date(2025, 2, 1))

        assert stats.total_revenue == Money.of("360.00", "EUR")
        assert stats.paid_revenue == Money.of("120.00", "EUR")
        assert stats.overdue_revenue == Money.of("100.00", "EUR")
        assert stats.pending_revenue == Money.of("120.00", "EUR")
        assert stats.invoice_count == 3
        assert stats.paid_count == 1
        assert stats.overdue_count == 1

    def test_empty_yields_zeros(self):
        stats = calculate_membership_statistics([], date(2025, 1, 1))
        assert stats.total_revenue.is_zero
        assert stats.paid_revenue.is_zero
        assert stats.pending_revenue.is_zero
        assert stats.overdue_revenue.is_zero
        assert (stats.invoice_count, stats.paid_count, stats.overdue_count) == (0, 0, 0)

    def test_due_today_is_pending(self):
        stats = calculate_membership_statistics([make_invoice()], date(2025, 1, 1))
        assert stats.overdue_count == 0
        assert stats.pending_revenue == Money.of("120.00", "EUR")

    def test_currency_mismatch_raises(self):
        with pytest.raises(ValueError):
            calculate_membership_statistics([make_invoice(currency="CHF")], date(2025, 1, 1))
