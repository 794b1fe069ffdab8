"""Final pro-rata settlement when a tenancy ends between due dates"""

from datetime import date

from lodger_ledger.domain.ledger import PaymentLedger
from lodger_ledger.domain.models import FinalSettlement, Tenancy
from lodger_ledger.domain.money import Money
from lodger_ledger.domain.schedule import due_date_for, period_rent as regular_period_rent
from lodger_ledger.utils.date_utils import days_between


def calculate_final_settlement(
    tenancy: Tenancy,
    ledger: PaymentLedger,
    termination_date: date,
    advance_credit: Money,
) -> FinalSettlement | None:
    """
    Settle the gap between the last scheduled period and the termination date.

    The last kept payment covers one period. Days beyond it are charged at
    period rent / period days; days it over-covers are refunded. The advance
    still held is credited back to the lodger either way.

    Returns None when there is no schedule to settle against.
    """
    last = ledger.last()
    if last is None:
        return None

    period_start = last.due_date
    last_covered = due_date_for(tenancy, last.payment_number + 1)
    period_days = days_between(period_start, last_covered)
    # Payment 1 carries the advance; its own period is one regular period
    period_rent = regular_period_rent(tenancy) if last.payment_number == 1 else last.rent_due

    # Negative days: the tenancy ends inside an already-paid period
    days = days_between(last_covered, termination_date)
    pro_rata = period_rent.scaled(days, period_days)
    amount = pro_rata - advance_credit

    return FinalSettlement(
        last_covered_date=last_covered,
        termination_date=termination_date,
        days=days,
        pro_rata=pro_rata,
        advance_credit=advance_credit,
        amount=amount,
    )
