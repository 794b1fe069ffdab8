"""Per-tenancy payment ledger: submissions, confirmations and balances"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from lodger_ledger.domain import constants
from lodger_ledger.domain.exceptions import (
    AlreadyConfirmedError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from lodger_ledger.domain.models import PaymentRecord, PaymentStatus, ScheduledPayment
from lodger_ledger.domain.money import Money, total
from lodger_ledger.utils.date_utils import tax_year_bounds


@dataclass
class PaymentSummary:
    total_due: Money
    total_paid: Money
    outstanding: Money  # negative = lodger in credit
    payment_count: int
    confirmed_count: int
    submitted_count: int
    overdue_count: int


@dataclass
class RentARoomSummary:
    tax_year: str
    total_income: Decimal
    allowance: Decimal
    taxable_income: Decimal
    remaining_allowance: Decimal


class PaymentLedger:
    """Ordered collection of payment records keyed by payment number"""

    def __init__(self, records: Iterable[PaymentRecord] = ()):
        self._records: Dict[int, PaymentRecord] = {}
        for record in sorted(records, key=lambda r: r.payment_number):
            self._records[record.payment_number] = record

    @classmethod
    def from_schedule(cls, schedule: Iterable[ScheduledPayment]) -> "PaymentLedger":
        return cls(
            PaymentRecord(payment_number=p.payment_number, due_date=p.due_date, rent_due=p.rent_due)
            for p in schedule
        )

    @property
    def records(self) -> List[PaymentRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def get(self, payment_number: int) -> PaymentRecord:
        try:
            return self._records[payment_number]
        except KeyError:
            raise NotFoundError(f"Payment {payment_number} not found") from None

    def last(self) -> Optional[PaymentRecord]:
        if not self._records:
            return None
        return self._records[max(self._records)]

    def submit(
        self,
        payment_number: int,
        amount: Money,
        method: Optional[str],
        reference: Optional[str],
        notes: Optional[str],
        at: datetime,
    ) -> PaymentRecord:
        """Lodger reports a payment. Does not touch rent_paid or balance."""
        record = self.get(payment_number)
        if record.status != PaymentStatus.PENDING:
            raise InvalidStateError(
                f"Payment {payment_number} is already {record.status.value}"
            )
        if not amount.is_positive():
            raise ValidationError("Submitted amount must be greater than zero")

        record.submitted_amount = amount
        record.submitted_method = method
        record.submitted_reference = reference
        record.submitted_notes = notes
        record.submitted_at = at
        record.status = PaymentStatus.SUBMITTED
        return record

    def confirm(
        self,
        payment_number: int,
        amount: Money,
        method: Optional[str],
        reference: Optional[str],
        notes: Optional[str],
        at: datetime,
    ) -> PaymentRecord:
        """
        Landlord confirms money received. The only transition that moves rent_paid.

        Confirming twice is rejected rather than summed; submission fields are
        kept for audit.
        """
        record = self.get(payment_number)
        if record.status == PaymentStatus.CONFIRMED:
            raise AlreadyConfirmedError(f"Payment {payment_number} is already confirmed")
        if not amount.is_positive():
            raise ValidationError("Confirmed amount must be greater than zero")

        record.rent_paid = record.rent_paid + amount
        record.confirmed_amount = amount
        record.confirmed_method = method
        record.confirmed_reference = reference
        record.confirmed_notes = notes
        record.confirmed_at = at
        record.status = PaymentStatus.CONFIRMED
        return record

    def append(self, scheduled: Iterable[ScheduledPayment], notes: Optional[str] = None) -> List[PaymentRecord]:
        """Add further periods to the end of the schedule; numbering and dates must continue"""
        added = []
        for p in scheduled:
            last = self.last()
            if last is not None:
                if p.payment_number != last.payment_number + 1:
                    raise ValidationError(f"Payment {p.payment_number} does not follow {last.payment_number}")
                if p.due_date <= last.due_date:
                    raise ValidationError(f"Payment {p.payment_number} is not due after payment {last.payment_number}")
            record = PaymentRecord(payment_number=p.payment_number, due_date=p.due_date, rent_due=p.rent_due, notes=notes)
            self._records[record.payment_number] = record
            added.append(record)
        return added

    def truncate_after(self, cutoff: date) -> List[PaymentRecord]:
        """
        Drop trailing PENDING payments due after cutoff.

        Works from the tail only so payment numbers stay gap-free; stops at
        the first record that is past cutoff but already submitted/confirmed.
        """
        dropped = []
        while self._records:
            record = self.last()
            if record.due_date <= cutoff or record.status != PaymentStatus.PENDING:
                break
            del self._records[record.payment_number]
            dropped.append(record)
        return dropped

    def compute_summary(self, today: Optional[date] = None) -> PaymentSummary:
        today = today or date.today()
        records = self.records
        total_due = total(r.rent_due for r in records)
        total_paid = total(r.rent_paid for r in records)
        return PaymentSummary(
            total_due=total_due,
            total_paid=total_paid,
            outstanding=total_due - total_paid,
            payment_count=len(records),
            confirmed_count=sum(1 for r in records if r.status == PaymentStatus.CONFIRMED),
            submitted_count=sum(1 for r in records if r.status == PaymentStatus.SUBMITTED),
            overdue_count=sum(1 for r in records if r.effective_status(today) == PaymentStatus.OVERDUE),
        )

    def overdue(self, today: date) -> List[PaymentRecord]:
        return [r for r in self.records if r.effective_status(today) == PaymentStatus.OVERDUE]

    def rent_a_room_summary(self, tax_year_start: int) -> RentARoomSummary:
        """Confirmed rent received in a UK tax year against the Rent-a-Room allowance"""
        first, last = tax_year_bounds(tax_year_start, constants.TAX_YEAR_START)
        income = total(
            r.rent_paid
            for r in self.records
            if r.status == PaymentStatus.CONFIRMED
            and r.confirmed_at is not None
            and first <= r.confirmed_at.date() <= last
        ).amount
        allowance = constants.RENT_A_ROOM_ALLOWANCE
        return RentARoomSummary(
            tax_year=f"{first.year}-{last.year}",
            total_income=income,
            allowance=allowance,
            taxable_income=max(Decimal("0.00"), income - allowance),
            remaining_allowance=max(Decimal("0.00"), allowance - income),
        )
