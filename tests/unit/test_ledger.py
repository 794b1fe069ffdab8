"""Unit tests for the payment ledger"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from lodger_ledger.domain.exceptions import AlreadyConfirmedError, InvalidStateError, NotFoundError, ValidationError
from lodger_ledger.domain.ledger import PaymentLedger
from lodger_ledger.domain.models import PaymentStatus, ScheduledPayment
from lodger_ledger.domain.money import Money

NOW = datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def ledger() -> PaymentLedger:
    return PaymentLedger.from_schedule(
        [
            ScheduledPayment(1, date(2024, 1, 1), Money.of("1600.00")),
            ScheduledPayment(2, date(2024, 1, 29), Money.of("800.00")),
            ScheduledPayment(3, date(2024, 2, 26), Money.of("800.00")),
        ]
    )


def test_submit_does_not_move_balance(ledger: PaymentLedger):
    """Test lodger submission only records the claim"""
    record = ledger.submit(1, Money.of("1600.00"), "bank_transfer", "REF1", None, NOW)

    assert record.status == PaymentStatus.SUBMITTED
    assert record.rent_paid.is_zero()
    assert record.submitted_amount.amount == Decimal("1600.00")


def test_confirm_credits_rent_paid(ledger: PaymentLedger):
    """Test landlord confirmation is what moves rent_paid"""
    ledger.submit(1, Money.of("1600.00"), None, None, None, NOW)
    record = ledger.confirm(1, Money.of("1600.00"), "bank_transfer", "REF1", None, NOW)

    assert record.status == PaymentStatus.CONFIRMED
    assert record.rent_paid.amount == Decimal("1600.00")
    assert record.balance.is_zero()
    assert record.submitted_amount.amount == Decimal("1600.00")  # kept for audit


@pytest.mark.parametrize("second_amount", ["800.00", "1.00"])
def test_confirm_twice_fails_and_leaves_balance(ledger: PaymentLedger, second_amount: str):
    """Test a payment can only be confirmed once, whatever the amount"""
    ledger.confirm(2, Money.of("800.00"), None, None, None, NOW)

    with pytest.raises(AlreadyConfirmedError):
        ledger.confirm(2, Money.of(second_amount), None, None, None, NOW)

    assert ledger.get(2).rent_paid.amount == Decimal("800.00")


def test_submit_after_confirm_rejected(ledger: PaymentLedger):
    ledger.confirm(2, Money.of("800.00"), None, None, None, NOW)
    with pytest.raises(InvalidStateError):
        ledger.submit(2, Money.of("800.00"), None, None, None, NOW)


def test_zero_amount_rejected(ledger: PaymentLedger):
    with pytest.raises(ValidationError):
        ledger.submit(1, Money.zero(), None, None, None, NOW)
    with pytest.raises(ValidationError):
        ledger.confirm(1, Money.zero(), None, None, None, NOW)


def test_unknown_payment(ledger: PaymentLedger):
    with pytest.raises(NotFoundError):
        ledger.get(99)


def test_overdue_is_derived_not_stored(ledger: PaymentLedger):
    """Test pending payments past their due date read as overdue"""
    today = date(2024, 2, 1)

    assert ledger.get(2).effective_status(today) == PaymentStatus.OVERDUE
    assert ledger.get(2).status == PaymentStatus.PENDING
    assert ledger.get(3).effective_status(today) == PaymentStatus.PENDING
    assert [r.payment_number for r in ledger.overdue(today)] == [1, 2]


def test_compute_summary(ledger: PaymentLedger):
    ledger.confirm(1, Money.of("1600.00"), None, None, None, NOW)
    ledger.submit(2, Money.of("800.00"), None, None, None, NOW)

    summary = ledger.compute_summary(date(2024, 3, 1))

    assert summary.total_due.amount == Decimal("3200.00")
    assert summary.total_paid.amount == Decimal("1600.00")
    assert summary.outstanding.amount == Decimal("1600.00")
    assert summary.payment_count == 3
    assert summary.confirmed_count == 1
    assert summary.submitted_count == 1
    assert summary.overdue_count == 1


def test_truncate_after_drops_pending_tail_only(ledger: PaymentLedger):
    """Test truncation stops at a submitted payment so numbering stays gap-free"""
    ledger.submit(3, Money.of("800.00"), None, None, None, NOW)
    assert ledger.truncate_after(date(2024, 1, 2)) == []

    fresh = PaymentLedger(ledger.records[:2])
    dropped = fresh.truncate_after(date(2024, 1, 2))
    assert [r.payment_number for r in dropped] == [2]
    assert len(fresh) == 1


def test_append_requires_continuity(ledger: PaymentLedger):
    with pytest.raises(ValidationError):
        ledger.append([ScheduledPayment(5, date(2024, 4, 1), Money.of("800.00"))])
    with pytest.raises(ValidationError):
        ledger.append([ScheduledPayment(4, date(2024, 2, 1), Money.of("800.00"))])

    added = ledger.append([ScheduledPayment(4, date(2024, 3, 25), Money.of("800.00"))], notes="extension")
    assert added[0].notes == "extension"
    assert ledger.last().payment_number == 4


def test_rent_a_room_summary_counts_confirmations_in_tax_year(ledger: PaymentLedger):
    """Test only rent confirmed between 6 April and 5 April counts"""
    ledger.confirm(1, Money.of("1600.00"), None, None, None, datetime(2024, 4, 5, tzinfo=timezone.utc))
    ledger.confirm(2, Money.of("800.00"), None, None, None, datetime(2024, 4, 6, tzinfo=timezone.utc))
    ledger.confirm(3, Money.of("800.00"), None, None, None, datetime(2025, 4, 5, tzinfo=timezone.utc))

    summary = ledger.rent_a_room_summary(2024)

    assert summary.tax_year == "2024-2025"
    assert summary.total_income == Decimal("1600.00")
    assert summary.taxable_income == Decimal("0.00")
    assert summary.remaining_allowance == Decimal("5900.00")
