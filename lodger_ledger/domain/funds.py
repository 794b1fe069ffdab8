"""Deposit and advance-rent pool with validated deductions"""

import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from lodger_ledger.domain import constants
from lodger_ledger.domain.exceptions import (
    AllocationMismatchError,
    InsufficientFundsError,
    IntegrityViolation,
    NotFoundError,
    ValidationError,
)
from lodger_ledger.domain.models import Deduction, FundsPool
from lodger_ledger.domain.money import Money, total


class FundsAllocator:
    """
    Tracks what is left of a tenancy's deposit and advance rent.

    Every deduction is validated against the pool's own available amounts at
    the moment it is recorded; callers' idea of "total available" is never
    trusted.
    """

    def __init__(self, tenancy_id: str, pool: FundsPool, deductions: Iterable[Deduction] = ()):
        self.tenancy_id = tenancy_id
        self.pool = pool
        self.deductions: List[Deduction] = list(deductions)

    def total_available(self) -> Money:
        return self.pool.available_deposit + self.pool.available_advance

    def record_deduction(
        self,
        deduction_type: str,
        description: str,
        total_amount: Money,
        from_deposit: Money,
        from_advance: Money,
        notes: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> Deduction:
        if deduction_type not in constants.DEDUCTION_TYPES:
            raise ValidationError(
                "Invalid deduction type. Must be one of: " + ", ".join(constants.DEDUCTION_TYPES)
            )
        if not total_amount.is_positive():
            raise ValidationError("Deduction amount must be greater than zero")
        if from_deposit.is_negative() or from_advance.is_negative():
            raise ValidationError("Deduction split amounts cannot be negative")

        allocated = from_deposit + from_advance
        if not allocated.within(total_amount, constants.ALLOCATION_TOLERANCE_PENCE):
            raise AllocationMismatchError(
                f"Deduction amounts don't match total. Total: {total_amount}, Allocated: {allocated}"
            )
        if from_deposit > self.pool.available_deposit:
            raise InsufficientFundsError("deposit", self.pool.available_deposit.amount, from_deposit.amount)
        if from_advance > self.pool.available_advance:
            raise InsufficientFundsError("advance", self.pool.available_advance.amount, from_advance.amount)

        deduction = Deduction(
            id=str(uuid.uuid4()),
            tenancy_id=self.tenancy_id,
            deduction_type=deduction_type,
            description=description,
            total_amount=total_amount,
            from_deposit=from_deposit,
            from_advance=from_advance,
            notes=notes,
            created_at=at,
        )
        self.pool.available_deposit = self.pool.available_deposit - from_deposit
        self.pool.available_advance = self.pool.available_advance - from_advance
        self.deductions.append(deduction)
        return deduction

    def get(self, deduction_id: str) -> Deduction:
        for d in self.deductions:
            if d.id == deduction_id:
                return d
        raise NotFoundError(f"Deduction {deduction_id} not found")

    def check_integrity(self) -> None:
        """Conservation: available + deducted == original for both pools, never negative"""
        pool = self.pool
        problems = []
        if pool.available_deposit.is_negative() or pool.available_advance.is_negative():
            problems.append("available funds below zero")
        if pool.available_deposit > pool.original_deposit:
            problems.append("available deposit exceeds original deposit")
        if pool.available_advance > pool.original_advance:
            problems.append("available advance exceeds original advance")
        if pool.available_deposit + total(d.from_deposit for d in self.deductions) != pool.original_deposit:
            problems.append("deposit deductions do not reconcile")
        if pool.available_advance + total(d.from_advance for d in self.deductions) != pool.original_advance:
            problems.append("advance deductions do not reconcile")
        if problems:
            raise IntegrityViolation(self.tenancy_id, "; ".join(problems))
