"""
Tenancy aggregate: owns status and coordinates ledger, funds and notices.

Commands validate everything they need before the first mutation, so a
failed command leaves the aggregate untouched. Each returns a CommandResult
carrying the touched entity and the side-effect intents to run after commit.
"""

import uuid
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from lodger_ledger.domain import constants
from lodger_ledger.domain.exceptions import (
    CapacityExceededError,
    IntegrityViolation,
    InvalidStateError,
    ValidationError,
)
from lodger_ledger.domain.funds import FundsAllocator
from lodger_ledger.domain.intents import (
    CommandResult,
    GenerateAgreementPDF,
    GenerateBreachLetter,
    GenerateDeductionStatement,
    GenerateExtensionOffer,
    Notify,
)
from lodger_ledger.domain.ledger import PaymentLedger, PaymentSummary
from lodger_ledger.domain.models import (
    LIVE_STATUSES,
    TERMINAL_STATUSES,
    FundsPool,
    Notice,
    PaymentStatus,
    PaymentType,
    PropertyAddress,
    ScheduledPayment,
    Signature,
    Tenancy,
    TenancyStatus,
)
from lodger_ledger.domain.money import Money
from lodger_ledger.domain.notices import NoticeStateMachine
from lodger_ledger.domain.schedule import extend_schedule, generate_schedule, validate_cycle_config
from lodger_ledger.domain.settlement import calculate_final_settlement
from lodger_ledger.utils.date_utils import add_months

# Signed tenancies that have not ended: payments and deductions are accepted
RUNNING_STATUSES = frozenset({TenancyStatus.ACTIVE, TenancyStatus.EXTENDED, TenancyStatus.NOTICE_GIVEN})


class TenancyLifecycle:
    """Aggregate root for one tenancy"""

    def __init__(
        self,
        tenancy: Tenancy,
        ledger: Optional[PaymentLedger] = None,
        funds: Optional[FundsAllocator] = None,
        notices: Optional[NoticeStateMachine] = None,
    ):
        self.tenancy = tenancy
        self.ledger = ledger or PaymentLedger()
        self.funds = funds
        self.notices = notices or NoticeStateMachine(tenancy.id)

    @property
    def id(self) -> str:
        return self.tenancy.id

    # Creation, activation, cancellation

    @classmethod
    def create(
        cls,
        *,
        landlord_id: str,
        lodger_id: str,
        property_address: PropertyAddress,
        room_description: str,
        start_date: date,
        initial_term_months: int,
        monthly_rent: Money,
        deposit_amount: Money,
        deposit_applicable: bool,
        payment_type: PaymentType,
        payment_frequency: Optional[str] = None,
        payment_day_of_month: Optional[int] = None,
        shared_areas: Iterable[str] = (),
        open_tenancies: int,
        now: datetime,
    ) -> "tuple[TenancyLifecycle, CommandResult]":
        """Create a DRAFT tenancy offer; refuses a landlord's third open tenancy"""
        if open_tenancies >= constants.MAX_OPEN_TENANCIES:
            raise CapacityExceededError(
                f"Maximum lodger limit reached. A landlord can have at most "
                f"{constants.MAX_OPEN_TENANCIES} open tenancies."
            )
        if deposit_amount.is_negative():
            raise ValidationError("Deposit amount cannot be negative")
        areas = frozenset(shared_areas)
        unknown = areas - set(constants.SHARED_AREAS)
        if unknown:
            raise ValidationError(f"Unknown shared areas: {', '.join(sorted(unknown))}")

        tenancy = Tenancy(
            id=str(uuid.uuid4()),
            landlord_id=landlord_id,
            lodger_id=lodger_id,
            property_address=property_address,
            room_description=room_description,
            start_date=start_date,
            end_date=add_months(start_date, initial_term_months),
            initial_term_months=initial_term_months,
            monthly_rent=monthly_rent,
            deposit_amount=deposit_amount if deposit_applicable else Money.zero(),
            deposit_applicable=deposit_applicable,
            payment_type=payment_type,
            payment_frequency=payment_frequency if payment_type == PaymentType.CYCLE else None,
            payment_day_of_month=payment_day_of_month if payment_type == PaymentType.CALENDAR else None,
            shared_areas=areas,
            created_at=now,
        )
        validate_cycle_config(tenancy)

        lifecycle = cls(tenancy)
        notify = Notify(
            user_id=lodger_id,
            type="tenancy_offer",
            title="New Tenancy Offer",
            message=f"You have been offered a room at {property_address.one_line()}. Please review and sign.",
            tenancy_id=tenancy.id,
        )
        return lifecycle, CommandResult(subject=tenancy, intents=[notify])

    def sign(self, signature: Signature, now: datetime) -> CommandResult:
        """Lodger accepts: DRAFT -> ACTIVE, rent schedule and fund pool are created"""
        t = self.tenancy
        if t.status != TenancyStatus.DRAFT or t.signature is not None:
            raise InvalidStateError(f"Only unsigned draft tenancies can be signed (status: {t.status.value})")
        if not signature.signature_text.strip():
            raise ValidationError("Signature text is required")

        schedule = generate_schedule(t)
        advance = t.monthly_rent * (constants.ADVANCE_MULTIPLIER - 1)

        t.signature = signature
        t.status = TenancyStatus.ACTIVE
        self.ledger = PaymentLedger.from_schedule(schedule)
        self.funds = FundsAllocator(t.id, FundsPool.opening(t.deposit_amount, advance))

        return CommandResult(
            subject=t,
            intents=[
                GenerateAgreementPDF(tenancy_id=t.id),
                Notify(
                    user_id=t.landlord_id,
                    type="tenancy_signed",
                    title="Tenancy Agreement Signed",
                    message=f"The lodger has signed the agreement for {t.room_description}.",
                    tenancy_id=t.id,
                ),
            ],
        )

    def cancel(self, now: datetime) -> CommandResult:
        """Withdraw an offer the lodger has not signed yet"""
        t = self.tenancy
        if t.signature is not None or t.status != TenancyStatus.DRAFT:
            raise InvalidStateError("Cannot cancel a signed tenancy. Use notice procedures instead.")

        t.status = TenancyStatus.CANCELLED
        return CommandResult(
            subject=t,
            intents=[
                Notify(
                    user_id=t.lodger_id,
                    type="general",
                    title="Tenancy Offer Cancelled",
                    message=f"Your tenancy offer for {t.property_address.one_line()} has been cancelled by the landlord.",
                    tenancy_id=t.id,
                )
            ],
        )

    # Payments

    def _require_status(self, allowed, action: str) -> None:
        if self.tenancy.status not in allowed:
            raise InvalidStateError(f"Cannot {action} while tenancy is {self.tenancy.status.value}")

    def submit_payment(
        self,
        payment_number: int,
        amount: Money,
        method: Optional[str],
        reference: Optional[str],
        notes: Optional[str],
        now: datetime,
    ) -> CommandResult:
        self._require_status(RUNNING_STATUSES | {TenancyStatus.TERMINATED}, "submit a payment")
        record = self.ledger.submit(payment_number, amount, method, reference, notes, now)
        return CommandResult(
            subject=record,
            intents=[
                Notify(
                    user_id=self.tenancy.landlord_id,
                    type="payment_submitted",
                    title="Payment Submitted",
                    message=f"The lodger reported paying {amount} for payment #{payment_number}. Please confirm receipt.",
                    tenancy_id=self.id,
                )
            ],
        )

    def confirm_payment(
        self,
        payment_number: int,
        amount: Money,
        method: Optional[str],
        reference: Optional[str],
        notes: Optional[str],
        now: datetime,
    ) -> CommandResult:
        self._require_status(RUNNING_STATUSES | {TenancyStatus.TERMINATED}, "confirm a payment")
        record = self.ledger.confirm(payment_number, amount, method, reference, notes, now)
        return CommandResult(
            subject=record,
            intents=[
                Notify(
                    user_id=self.tenancy.lodger_id,
                    type="payment_confirmed",
                    title="Payment Confirmed",
                    message=f"Your landlord confirmed receipt of {amount} for payment #{payment_number}.",
                    tenancy_id=self.id,
                )
            ],
        )

    def remind_payment(self, payment_number: int, now: datetime) -> CommandResult:
        self._require_status(RUNNING_STATUSES, "send a payment reminder")
        record = self.ledger.get(payment_number)
        if record.status == PaymentStatus.CONFIRMED:
            raise InvalidStateError(f"Payment {payment_number} is already confirmed")
        state = record.effective_status(now.date())
        return CommandResult(
            subject=record,
            intents=[
                Notify(
                    user_id=self.tenancy.lodger_id,
                    type="payment_reminder",
                    title="Rent Payment Reminder",
                    message=(
                        f"Payment #{payment_number} of {record.rent_due} was due on "
                        f"{record.due_date.strftime('%d/%m/%Y')} ({state.value})."
                    ),
                    tenancy_id=self.id,
                )
            ],
        )

    def payment_summary(self, today: date) -> PaymentSummary:
        return self.ledger.compute_summary(today)

    # Deductions

    def _require_funds(self) -> FundsAllocator:
        if self.funds is None:
            raise InvalidStateError("Tenancy has no fund pool until it is signed")
        return self.funds

    def record_deduction(
        self,
        deduction_type: str,
        description: str,
        total_amount: Money,
        from_deposit: Money,
        from_advance: Money,
        notes: Optional[str],
        now: datetime,
    ) -> CommandResult:
        self._require_status(LIVE_STATUSES, "record a deduction")
        funds = self._require_funds()
        deduction = funds.record_deduction(
            deduction_type, description, total_amount, from_deposit, from_advance, notes=notes, at=now
        )
        return CommandResult(
            subject=deduction,
            intents=[
                Notify(
                    user_id=self.tenancy.lodger_id,
                    type="deduction_made",
                    title="Deduction from Deposit/Advance Rent",
                    message=f"A deduction of {total_amount} has been made for: {description}. A detailed statement will be provided.",
                    tenancy_id=self.id,
                )
            ],
        )

    def request_deduction_statement(self, deduction_id: str) -> CommandResult:
        deduction = self._require_funds().get(deduction_id)
        deduction.statement_generated = True
        return CommandResult(
            subject=deduction,
            intents=[GenerateDeductionStatement(tenancy_id=self.id, deduction_id=deduction.id)],
        )

    # Notices

    def give_notice(
        self,
        issued_by: str,
        reason: str,
        sub_reason: Optional[str],
        notice_period_days: int,
        now: datetime,
        notes: Optional[str] = None,
    ) -> CommandResult:
        self._require_status(LIVE_STATUSES, "give notice")
        notice = self.notices.issue_termination(
            self.tenancy, issued_by, reason, sub_reason, notice_period_days, now.date(), notes=notes
        )
        return CommandResult(subject=notice, intents=self._apply_termination(notice, now.date()))

    def _apply_termination(self, notice: Notice, today: date) -> List:
        """Fix the end date, settle the final period and move the tenancy on"""
        t = self.tenancy
        effective = notice.effective_date
        intents = []

        self.ledger.truncate_after(effective)
        advance_credit = self.funds.pool.available_advance if self.funds else Money.zero()
        settlement = calculate_final_settlement(t, self.ledger, effective, advance_credit)
        if settlement is not None:
            notice.settlement_amount = settlement.amount
            last = self.ledger.last()
            if settlement.amount.is_positive() and effective > last.due_date:
                self.ledger.append(
                    [ScheduledPayment(last.payment_number + 1, effective, settlement.amount)],
                    notes=f"Final pro-rata payment for {settlement.days} days after advance credit applied.",
                )
            elif settlement.is_refund:
                intents.append(
                    Notify(
                        user_id=t.landlord_id,
                        type="refund_due",
                        title="Refund Due to Lodger",
                        message=f"Final settlement: {abs(settlement.amount)} is due back to the lodger.",
                        tenancy_id=t.id,
                    )
                )

        t.end_date = effective
        if notice.immediate:
            t.status = TenancyStatus.TERMINATED
            t.termination_date = today
            title = "Tenancy Terminated With Immediate Effect"
            message = "Your tenancy has been terminated with immediate effect."
        else:
            t.status = TenancyStatus.NOTICE_GIVEN
            title = "Notice to Terminate Tenancy"
            message = f"You must vacate the property by {effective.strftime('%d/%m/%Y')}."

        intents.append(
            Notify(user_id=t.lodger_id, type="termination_notice", title=title, message=message, tenancy_id=t.id)
        )
        return intents

    def issue_breach(
        self,
        issued_by: str,
        breach_type: str,
        description: str,
        now: datetime,
        notes: Optional[str] = None,
    ) -> CommandResult:
        self._require_status(LIVE_STATUSES, "issue a breach notice")
        notice = self.notices.issue_breach(self.tenancy, issued_by, breach_type, description, now.date(), notes)
        label = constants.BREACH_TYPES[breach_type]
        return CommandResult(
            subject=notice,
            intents=[
                GenerateBreachLetter(
                    tenancy_id=self.id,
                    notice_id=notice.id,
                    breach_type=breach_type,
                    description=description,
                    remedy_deadline=notice.remedy_deadline,
                ),
                Notify(
                    user_id=self.tenancy.lodger_id,
                    type="breach_notice",
                    title="Breach Notice Issued",
                    message=f"A breach notice has been issued for: {label}. You have {constants.BREACH_REMEDY_DAYS} days to remedy this breach.",
                    tenancy_id=self.id,
                ),
            ],
        )

    def mark_breach_remedied(self, notice_id: str, now: datetime, notes: Optional[str] = None) -> CommandResult:
        self._require_status(RUNNING_STATUSES, "mark a breach remedied")
        notice = self.notices.mark_remedied(notice_id, now.date(), notes)
        return CommandResult(
            subject=notice,
            intents=[
                Notify(
                    user_id=self.tenancy.lodger_id,
                    type="breach_remedied",
                    title="Breach Marked as Remedied",
                    message="Your landlord has confirmed that the breach has been remedied. No further action is required.",
                    tenancy_id=self.id,
                )
            ],
        )

    def escalate_breach(self, notice_id: str, issued_by: str, now: datetime) -> CommandResult:
        self._require_status(LIVE_STATUSES, "escalate a breach")
        termination = self.notices.escalate_breach(self.tenancy, notice_id, issued_by, now.date())
        return CommandResult(subject=termination, intents=self._apply_termination(termination, now.date()))

    # Extensions

    def offer_extension(
        self,
        issued_by: str,
        extension_months: int,
        new_monthly_rent: Optional[Money],
        now: datetime,
        notes: Optional[str] = None,
    ) -> CommandResult:
        self._require_status(LIVE_STATUSES, "offer an extension")
        offer = self.notices.offer_extension(
            self.tenancy, issued_by, extension_months, new_monthly_rent, now.date(), notes
        )
        return CommandResult(
            subject=offer,
            intents=[
                GenerateExtensionOffer(tenancy_id=self.id, notice_id=offer.id),
                Notify(
                    user_id=self.tenancy.lodger_id,
                    type="extension_offer",
                    title="Tenancy Extension Offer",
                    message=f"Your landlord has offered to extend your tenancy by {extension_months} months. Please review and respond.",
                    tenancy_id=self.id,
                ),
            ],
        )

    def respond_to_extension(self, notice_id: str, accept: bool, now: datetime) -> CommandResult:
        if accept:
            self._require_status(LIVE_STATUSES, "accept an extension")
        offer = self.notices.respond_to_offer(notice_id, accept, now.date())
        if accept:
            self._apply_extension(offer)
        outcome = "accepted" if accept else "rejected"
        return CommandResult(
            subject=offer,
            intents=[
                Notify(
                    user_id=offer.issued_by,
                    type=f"extension_{outcome}",
                    title=f"Extension {outcome.capitalize()}",
                    message=f"Your lodger has {outcome} the tenancy extension offer.",
                    tenancy_id=self.id,
                )
            ],
        )

    def auto_accept_expired(self, now: datetime) -> CommandResult:
        """Accept every pending offer whose response deadline has passed"""
        today = now.date()
        accepted = []
        intents = []
        if self.tenancy.status not in LIVE_STATUSES:
            return CommandResult(subject=accepted, intents=intents)

        for offer in self.notices.expired_offers(today):
            self.notices.auto_accept(offer.id, today)
            self._apply_extension(offer)
            accepted.append(offer)
            for user_id in (self.tenancy.landlord_id, self.tenancy.lodger_id):
                intents.append(
                    Notify(
                        user_id=user_id,
                        type="extension_auto_accepted",
                        title="Extension Accepted Automatically",
                        message=(
                            f"No response was received within {constants.EXTENSION_RESPONSE_DAYS} days; "
                            f"the tenancy now runs to {offer.new_end_date.strftime('%d/%m/%Y')} at {offer.new_monthly_rent} per month."
                        ),
                        tenancy_id=self.id,
                    )
                )
        return CommandResult(subject=accepted, intents=intents)

    def _apply_extension(self, offer: Notice) -> None:
        t = self.tenancy
        t.monthly_rent = offer.new_monthly_rent
        t.end_date = offer.new_end_date
        t.status = TenancyStatus.EXTENDED
        last = self.ledger.last()
        if last is not None:
            self.ledger.append(extend_schedule(t, last.payment_number, offer.new_end_date, offer.new_monthly_rent))

    # Sweeps and derived state

    def derive_status(self, today: date) -> TenancyStatus:
        """Status as of today, taking a lapsed notice period into account"""
        t = self.tenancy
        if t.status == TenancyStatus.NOTICE_GIVEN:
            notice = self.notices.latest_termination()
            if notice is not None and notice.effective_date <= today:
                return TenancyStatus.TERMINATED
        return t.status

    def complete_termination(self, now: datetime) -> CommandResult:
        """NOTICE_GIVEN -> TERMINATED once the notice's effective date is reached"""
        today = now.date()
        t = self.tenancy
        if self.derive_status(today) != TenancyStatus.TERMINATED or t.status == TenancyStatus.TERMINATED:
            return CommandResult(subject=t)

        t.status = TenancyStatus.TERMINATED
        t.termination_date = self.notices.latest_termination().effective_date
        return CommandResult(
            subject=t,
            intents=[
                Notify(
                    user_id=user_id,
                    type="tenancy_ended",
                    title="Tenancy Ended",
                    message=f"The tenancy ended on {t.termination_date.strftime('%d/%m/%Y')}.",
                    tenancy_id=t.id,
                )
                for user_id in (t.landlord_id, t.lodger_id)
            ],
        )

    def expiry_reminder(self, now: datetime, window_days: int) -> CommandResult:
        """Remind both parties once when the end date comes within the window"""
        t = self.tenancy
        today = now.date()
        if (
            t.status not in LIVE_STATUSES
            or t.end_date is None
            or not today <= t.end_date <= today + timedelta(days=window_days)
            or t.expiry_reminder_for == t.end_date
        ):
            return CommandResult(subject=t)

        t.expiry_reminder_for = t.end_date
        days_left = (t.end_date - today).days
        ends = t.end_date.strftime("%d/%m/%Y")
        return CommandResult(
            subject=t,
            intents=[
                Notify(
                    user_id=t.landlord_id,
                    type="tenancy_expiring",
                    title="Tenancy Expiring Soon - Action Required",
                    message=f"The tenancy expires in {days_left} days on {ends}. Please consider offering an extension if you wish to continue the tenancy.",
                    tenancy_id=t.id,
                ),
                Notify(
                    user_id=t.lodger_id,
                    type="tenancy_expiring",
                    title="Your Tenancy is Expiring Soon",
                    message=f"Your tenancy at {t.property_address.one_line()} expires in {days_left} days on {ends}.",
                    tenancy_id=t.id,
                ),
            ],
        )

    # Documents and integrity

    def attach_document(self, intent, reference: str) -> None:
        """Store the file reference returned by the document service"""
        if isinstance(intent, GenerateAgreementPDF):
            self.tenancy.agreement_path = reference
        elif isinstance(intent, (GenerateBreachLetter, GenerateExtensionOffer)):
            self.notices.get(intent.notice_id).letter_path = reference
        elif isinstance(intent, GenerateDeductionStatement):
            self._require_funds().get(intent.deduction_id).statement_path = reference
        else:
            raise ValidationError(f"Not a document intent: {type(intent).__name__}")

    def assert_writable(self) -> None:
        if self.tenancy.integrity_hold:
            raise IntegrityViolation(self.id, "tenancy is on integrity hold pending operator review")

    def check_invariants(self) -> None:
        """Detect ledger corruption; a failure here is a bug, not user error"""
        records = self.ledger.records
        for expected, record in enumerate(records, start=1):
            if record.payment_number != expected:
                raise IntegrityViolation(self.id, f"payment numbering gap at #{expected}")
        for prev, record in zip(records, records[1:]):
            if record.due_date <= prev.due_date:
                raise IntegrityViolation(self.id, f"payment #{record.payment_number} is not due after #{prev.payment_number}")
        if self.funds is not None:
            self.funds.check_integrity()
