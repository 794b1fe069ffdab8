"""Rent schedule generation for cycle and calendar payment tenancies"""

import math
from datetime import date
from decimal import Decimal
from typing import List, Optional

from lodger_ledger.domain import constants
from lodger_ledger.domain.exceptions import ValidationError
from lodger_ledger.domain.models import PaymentType, ScheduledPayment, Tenancy
from lodger_ledger.domain.money import Money
from lodger_ledger.utils.date_utils import add_days, add_months


def validate_cycle_config(tenancy: Tenancy) -> None:
    """Reject configurations that would produce a degenerate schedule"""
    if not tenancy.monthly_rent.is_positive():
        raise ValidationError("Monthly rent must be greater than zero")
    if tenancy.initial_term_months is None or tenancy.initial_term_months < 1:
        raise ValidationError("Initial term must be at least one month")

    if tenancy.payment_type == PaymentType.CYCLE:
        if tenancy.payment_frequency not in constants.FREQUENCY_DAYS:
            raise ValidationError(
                "Invalid payment frequency. Must be one of: " + ", ".join(constants.FREQUENCY_DAYS)
            )
    elif tenancy.payment_type == PaymentType.CALENDAR:
        day = tenancy.payment_day_of_month
        if day is None or not 1 <= day <= 31:
            raise ValidationError("Payment day of month must be between 1 and 31 for calendar payments")
    else:
        raise ValidationError(f"Invalid payment type: {tenancy.payment_type}")


def period_rent(tenancy: Tenancy, monthly_rent: Optional[Money] = None) -> Money:
    """
    Rent charged for one regular period.

    Weekly and bi-weekly cycles pay round(monthly_rent x days / 30.44, 2).
    Monthly, 4-weekly and calendar tenancies pay the flat monthly rent.
    """
    rent = monthly_rent or tenancy.monthly_rent
    if tenancy.payment_type == PaymentType.CYCLE and tenancy.payment_frequency in constants.PRORATED_FREQUENCIES:
        days = constants.FREQUENCY_DAYS[tenancy.payment_frequency]
        return rent.scaled(days, constants.DAYS_PER_MONTH)
    return rent


def due_date_for(tenancy: Tenancy, payment_number: int) -> date:
    """Due date of the n-th payment (1-based); payment 1 is due on the start date"""
    start = tenancy.start_date
    if payment_number == 1:
        return start
    offset = payment_number - 1

    if tenancy.payment_type == PaymentType.CALENDAR:
        return add_months(start, offset, day=tenancy.payment_day_of_month)

    if tenancy.payment_frequency == "monthly":
        # Anchored to the start day, so a short month never drifts later dates
        return add_months(start, offset)
    return add_days(start, offset * constants.FREQUENCY_DAYS[tenancy.payment_frequency])


def schedule_length(tenancy: Tenancy) -> int:
    """Number of periods needed to cover the initial term, partial final period included"""
    months = tenancy.initial_term_months
    if tenancy.payment_type == PaymentType.CALENDAR or tenancy.payment_frequency == "monthly":
        return months
    days = constants.FREQUENCY_DAYS[tenancy.payment_frequency]
    return math.ceil(Decimal(months) * constants.DAYS_PER_MONTH / days)


def generate_schedule(tenancy: Tenancy) -> List[ScheduledPayment]:
    """
    Generate the rent schedule for a tenancy.

    Pure function of the tenancy fields, so it can be re-run at any time.
    Payment 1 is current + advance (flat monthly rent x 2 for every
    frequency); later payments are one regular period each.

    Example:
        4-weekly, £800.00, start 2024-01-01 ->
        #1 2024-01-01 £1600.00, #2 2024-01-29 £800.00, #3 2024-02-26 £800.00 ...
    """
    validate_cycle_config(tenancy)

    regular = period_rent(tenancy)
    schedule = []
    for n in range(1, schedule_length(tenancy) + 1):
        rent_due = tenancy.monthly_rent * constants.ADVANCE_MULTIPLIER if n == 1 else regular
        schedule.append(ScheduledPayment(payment_number=n, due_date=due_date_for(tenancy, n), rent_due=rent_due))

    return schedule


def extend_schedule(
    tenancy: Tenancy,
    last_payment_number: int,
    until: date,
    monthly_rent: Money,
) -> List[ScheduledPayment]:
    """Further periods after last_payment_number, due strictly before `until`, at the given rent"""
    rent_due = period_rent(tenancy, monthly_rent)
    extra = []
    n = last_payment_number + 1
    due = due_date_for(tenancy, n)
    while due < until:
        extra.append(ScheduledPayment(payment_number=n, due_date=due, rent_due=rent_due))
        n += 1
        due = due_date_for(tenancy, n)
    return extra
