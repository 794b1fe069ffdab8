"""Unit tests for deposit and advance-rent deductions"""

import pytest
from decimal import Decimal
from lodger_ledger.domain.exceptions import (
    AllocationMismatchError,
    InsufficientFundsError,
    IntegrityViolation,
    ValidationError,
)
from lodger_ledger.domain.funds import FundsAllocator
from lodger_ledger.domain.models import FundsPool
from lodger_ledger.domain.money import Money


def allocator(deposit: str = "800.00", advance: str = "0.00") -> FundsAllocator:
    return FundsAllocator("t1", FundsPool.opening(Money.of(deposit), Money.of(advance)))


def test_deduction_then_overdraw_rejected():
    """Test £150 from an £800 deposit succeeds, then £700 more fails"""
    funds = allocator()

    funds.record_deduction("damage", "Broken chair", Money.of("150.00"), Money.of("150.00"), Money.zero())
    assert funds.pool.available_deposit.amount == Decimal("650.00")

    with pytest.raises(InsufficientFundsError) as exc_info:
        funds.record_deduction("damage", "Carpet", Money.of("700.00"), Money.of("700.00"), Money.zero())

    assert exc_info.value.pool == "deposit"
    assert exc_info.value.available == Decimal("650.00")
    assert exc_info.value.requested == Decimal("700.00")
    assert funds.pool.available_deposit.amount == Decimal("650.00")
    assert len(funds.deductions) == 1


def test_split_across_pools():
    funds = allocator(deposit="500.00", advance="800.00")

    funds.record_deduction("unpaid_rent", "Arrears", Money.of("900.00"), Money.of("500.00"), Money.of("400.00"))

    assert funds.pool.available_deposit.is_zero()
    assert funds.pool.available_advance.amount == Decimal("400.00")
    assert funds.total_available().amount == Decimal("400.00")


def test_each_pool_checked_separately():
    """Test combined total is not enough; each part must fit its own pool"""
    funds = allocator(deposit="100.00", advance="800.00")

    with pytest.raises(InsufficientFundsError) as exc_info:
        funds.record_deduction("damage", "Window", Money.of("200.00"), Money.of("200.00"), Money.zero())
    assert exc_info.value.pool == "deposit"


def test_split_must_match_total_within_a_penny():
    funds = allocator()

    funds.record_deduction("cleaning", "Deep clean", Money.of("100.00"), Money.of("99.99"), Money.zero())
    with pytest.raises(AllocationMismatchError):
        funds.record_deduction("cleaning", "Oven", Money.of("100.00"), Money.of("99.98"), Money.zero())


@pytest.mark.parametrize(
    "deduction_type, total, deposit, advance",
    [
        ("theft", "10.00", "10.00", "0.00"),
        ("damage", "0.00", "0.00", "0.00"),
        ("damage", "10.00", "20.00", "-10.00"),
    ],
)
def test_invalid_deductions(deduction_type, total, deposit, advance):
    with pytest.raises(ValidationError):
        allocator().record_deduction(
            deduction_type, "x", Money.of(total), Money.of(deposit), Money.of(advance)
        )


def test_conservation_holds_across_deductions():
    """Test available + deducted == original after every deduction"""
    funds = allocator(deposit="800.00", advance="800.00")
    splits = [("100.00", "0.00"), ("0.00", "250.50"), ("199.99", "0.01"), ("500.01", "549.49")]

    for deposit, advance in splits:
        total = Money.of(deposit) + Money.of(advance)
        funds.record_deduction("other", "x", total, Money.of(deposit), Money.of(advance))
        funds.check_integrity()
        deducted_deposit = sum((d.from_deposit for d in funds.deductions), Money.zero())
        assert funds.pool.available_deposit + deducted_deposit == funds.pool.original_deposit

    assert funds.total_available().is_zero()


def test_integrity_violation_on_corrupted_pool():
    """Test a negative pool is reported as an integrity violation"""
    funds = allocator()
    funds.pool.available_deposit = Money.of("-1.00")

    with pytest.raises(IntegrityViolation) as exc_info:
        funds.check_integrity()
    assert exc_info.value.tenancy_id == "t1"
