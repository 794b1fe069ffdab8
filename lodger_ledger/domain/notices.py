"""
Notice state machines: standard termination, breach and extension offer.

Each kind moves independently; they share the tenancy they belong to.

    BREACH:           ACTIVE -> REMEDIED
                      ACTIVE -> ESCALATED (after remedy deadline; spawns a
                                7-day STANDARD_TERMINATION)
    EXTENSION_OFFER:  PENDING -> ACCEPTED | REJECTED   (lodger, before deadline)
                      PENDING -> AUTO_ACCEPTED          (sweep, after deadline)
    STANDARD_TERMINATION has no further states; it fixes the effective date.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from lodger_ledger.domain import constants
from lodger_ledger.domain.exceptions import (
    InvalidStateError,
    NotFoundError,
    RentCapExceededError,
    ValidationError,
)
from lodger_ledger.domain.models import (
    BreachStatus,
    ExtensionStatus,
    Notice,
    NoticeKind,
    Tenancy,
)
from lodger_ledger.domain.money import Money, floor_money
from lodger_ledger.utils.date_utils import add_days, add_months


def maximum_extension_rent(current_rent: Money, extension_months: int) -> Decimal:
    """Exact cap: current_rent x (1 + 0.05 x extension_months / 12)"""
    factor = 1 + constants.ANNUAL_RENT_CAP_RATE * Decimal(extension_months) / 12
    return current_rent.amount * factor


def current_end_date(tenancy: Tenancy) -> date:
    """Agreed end date, or start + initial term when none has been set yet"""
    return tenancy.end_date or add_months(tenancy.start_date, tenancy.initial_term_months)


class NoticeStateMachine:
    """All notices of one tenancy"""

    def __init__(self, tenancy_id: str, notices: Iterable[Notice] = ()):
        self.tenancy_id = tenancy_id
        self.notices: List[Notice] = list(notices)

    def get(self, notice_id: str, kind: Optional[NoticeKind] = None) -> Notice:
        for n in self.notices:
            if n.id == notice_id:
                if kind is not None and n.kind != kind:
                    raise InvalidStateError(f"Notice {notice_id} is not a {kind.value} notice")
                return n
        raise NotFoundError(f"Notice {notice_id} not found")

    def pending_offer(self) -> Optional[Notice]:
        for n in self.notices:
            if n.kind == NoticeKind.EXTENSION_OFFER and n.extension_status == ExtensionStatus.PENDING:
                return n
        return None

    def latest_termination(self) -> Optional[Notice]:
        terminations = [n for n in self.notices if n.kind == NoticeKind.STANDARD_TERMINATION]
        if not terminations:
            return None
        return max(terminations, key=lambda n: (n.issue_date, n.effective_date))

    def _new(self, tenancy: Tenancy, kind: NoticeKind, issued_by: str, today: date, **fields) -> Notice:
        notice = Notice(
            id=str(uuid.uuid4()),
            tenancy_id=self.tenancy_id,
            kind=kind,
            issue_date=today,
            issued_by=issued_by,
            issued_to=tenancy.lodger_id,
            **fields,
        )
        self.notices.append(notice)
        return notice

    # Standard termination

    def issue_termination(
        self,
        tenancy: Tenancy,
        issued_by: str,
        reason: str,
        sub_reason: Optional[str],
        notice_period_days: int,
        today: date,
        notes: Optional[str] = None,
        source_breach_id: Optional[str] = None,
    ) -> Notice:
        if notice_period_days not in constants.NOTICE_PERIOD_DAYS:
            raise ValidationError(
                "Notice period must be one of: " + ", ".join(str(d) for d in constants.NOTICE_PERIOD_DAYS) + " days"
            )
        if reason not in constants.NOTICE_REASONS:
            raise ValidationError("Invalid notice reason. Must be one of: " + ", ".join(constants.NOTICE_REASONS))

        return self._new(
            tenancy,
            NoticeKind.STANDARD_TERMINATION,
            issued_by,
            today,
            reason=reason,
            sub_reason=sub_reason,
            notice_period_days=notice_period_days,
            effective_date=add_days(today, notice_period_days),
            immediate=notice_period_days == 0,
            source_breach_id=source_breach_id,
            notes=notes,
        )

    # Breach

    def issue_breach(
        self,
        tenancy: Tenancy,
        issued_by: str,
        breach_type: str,
        description: str,
        today: date,
        notes: Optional[str] = None,
    ) -> Notice:
        if breach_type not in constants.BREACH_TYPES:
            raise ValidationError("Invalid breach type. Must be one of: " + ", ".join(constants.BREACH_TYPES))

        return self._new(
            tenancy,
            NoticeKind.BREACH,
            issued_by,
            today,
            breach_type=breach_type,
            description=description,
            remedy_deadline=add_days(today, constants.BREACH_REMEDY_DAYS),
            breach_status=BreachStatus.ACTIVE,
            notes=notes,
        )

    def mark_remedied(self, notice_id: str, today: date, notes: Optional[str] = None) -> Notice:
        breach = self.get(notice_id, NoticeKind.BREACH)
        if breach.breach_status != BreachStatus.ACTIVE:
            raise InvalidStateError(f"Breach notice is already {breach.breach_status.value}")
        breach.breach_status = BreachStatus.REMEDIED
        breach.resolved_on = today
        if notes:
            breach.notes = f"{breach.notes}\n{notes}" if breach.notes else notes
        return breach

    def escalate_breach(self, tenancy: Tenancy, notice_id: str, issued_by: str, today: date) -> Notice:
        """Turn an unremedied breach into a 7-day termination notice"""
        breach = self.get(notice_id, NoticeKind.BREACH)
        if breach.breach_status != BreachStatus.ACTIVE:
            raise InvalidStateError(f"Cannot escalate a breach that is {breach.breach_status.value}")
        if not today > breach.remedy_deadline:
            raise InvalidStateError(
                f"Cannot escalate before the remedy deadline of {breach.remedy_deadline.isoformat()}"
            )

        termination = self.issue_termination(
            tenancy,
            issued_by=issued_by,
            reason="breach",
            sub_reason=breach.breach_type,
            notice_period_days=constants.ESCALATION_NOTICE_DAYS,
            today=today,
            notes="Breach was not remedied within the remedy period.",
            source_breach_id=breach.id,
        )
        breach.breach_status = BreachStatus.ESCALATED
        breach.escalated_notice_id = termination.id
        breach.resolved_on = today
        return termination

    # Extension offer

    def offer_extension(
        self,
        tenancy: Tenancy,
        issued_by: str,
        extension_months: int,
        new_monthly_rent: Optional[Money],
        today: date,
        notes: Optional[str] = None,
    ) -> Notice:
        if extension_months is None or extension_months < 1:
            raise ValidationError("Extension must be at least one month")
        if self.pending_offer() is not None:
            raise InvalidStateError("There is already a pending extension offer for this tenancy")

        current_rent = tenancy.monthly_rent
        proposed = new_monthly_rent or current_rent
        if not proposed.is_positive():
            raise ValidationError("New monthly rent must be greater than zero")
        cap = maximum_extension_rent(current_rent, extension_months)
        if proposed.amount > cap:
            raise RentCapExceededError(proposed.amount, floor_money(cap).amount)

        return self._new(
            tenancy,
            NoticeKind.EXTENSION_OFFER,
            issued_by,
            today,
            extension_months=extension_months,
            current_rent=current_rent,
            new_monthly_rent=proposed,
            new_end_date=add_months(current_end_date(tenancy), extension_months),
            response_deadline=add_days(today, constants.EXTENSION_RESPONSE_DAYS),
            extension_status=ExtensionStatus.PENDING,
            notes=notes,
        )

    def respond_to_offer(self, notice_id: str, accept: bool, today: date) -> Notice:
        offer = self.get(notice_id, NoticeKind.EXTENSION_OFFER)
        if offer.extension_status != ExtensionStatus.PENDING:
            raise InvalidStateError(f"Extension offer is already {offer.extension_status.value}")
        if today > offer.response_deadline:
            raise InvalidStateError("The response window for this extension offer has closed")
        offer.extension_status = ExtensionStatus.ACCEPTED if accept else ExtensionStatus.REJECTED
        offer.responded_on = today
        return offer

    def expired_offers(self, today: date) -> List[Notice]:
        return [
            n
            for n in self.notices
            if n.kind == NoticeKind.EXTENSION_OFFER
            and n.extension_status == ExtensionStatus.PENDING
            and today > n.response_deadline
        ]

    def auto_accept(self, notice_id: str, today: date) -> Notice:
        offer = self.get(notice_id, NoticeKind.EXTENSION_OFFER)
        if offer.extension_status != ExtensionStatus.PENDING or not today > offer.response_deadline:
            raise InvalidStateError("Only pending offers past their response deadline can be auto-accepted")
        offer.extension_status = ExtensionStatus.AUTO_ACCEPTED
        offer.responded_on = today
        return offer
