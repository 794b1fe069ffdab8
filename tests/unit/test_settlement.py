"""Unit tests for the final pro-rata settlement"""

from datetime import date
from decimal import Decimal
from lodger_ledger.domain.ledger import PaymentLedger
from lodger_ledger.domain.money import Money
from lodger_ledger.domain.settlement import calculate_final_settlement


def test_ending_inside_paid_period_refunds_uncovered_days_and_advance(make_signed):
    """Test ending 25 days before the next due date refunds 25/28 of a period plus the advance"""
    lifecycle = make_signed()
    lifecycle.ledger.truncate_after(date(2024, 2, 29))

    settlement = calculate_final_settlement(
        lifecycle.tenancy, lifecycle.ledger, date(2024, 2, 29), Money.of("800.00")
    )

    assert settlement.last_covered_date == date(2024, 3, 25)
    assert settlement.days == -25
    assert settlement.pro_rata.amount == Decimal("-714.29")
    assert settlement.amount.amount == Decimal("-1514.29")
    assert settlement.is_refund


def test_ending_after_schedule_charges_extra_days(make_signed):
    """Test 8 days past the last covered date at £800 / 28 days, with no advance left"""
    lifecycle = make_signed(initial_term_months=1)
    assert len(lifecycle.ledger) == 2

    settlement = calculate_final_settlement(
        lifecycle.tenancy, lifecycle.ledger, date(2024, 3, 5), Money.zero()
    )

    assert settlement.last_covered_date == date(2024, 2, 26)
    assert settlement.days == 8
    assert settlement.pro_rata.amount == Decimal("228.57")
    assert settlement.amount.amount == Decimal("228.57")
    assert not settlement.is_refund


def test_first_period_uses_regular_rent_not_advance_double(make_signed):
    """Test a tenancy ending in its first period prices days at one period's rent"""
    lifecycle = make_signed(payment_frequency="weekly")
    lifecycle.ledger.truncate_after(date(2024, 1, 4))
    assert len(lifecycle.ledger) == 1

    settlement = calculate_final_settlement(
        lifecycle.tenancy, lifecycle.ledger, date(2024, 1, 4), Money.of("800.00")
    )

    # 4 of 7 days unused at £183.97 a week
    assert settlement.days == -4
    assert settlement.pro_rata.amount == Decimal("-105.13")
    assert settlement.amount.amount == Decimal("-905.13")


def test_no_schedule_no_settlement(make_signed):
    lifecycle = make_signed()
    assert calculate_final_settlement(lifecycle.tenancy, PaymentLedger(), date(2024, 2, 1), Money.zero()) is None
