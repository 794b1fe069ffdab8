"""
Unit-of-work command service.

Every mutating command runs the same path: take the tenancy's keyed lock,
open a session, load the aggregate with a row lock, apply the command, check
invariants, save, commit, release. Intents come back to the caller and are
dispatched only after the commit, so no external I/O happens under the lock.
"""

import logging
import time
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Iterator, List, Optional

from sqlalchemy.orm import sessionmaker

from lodger_ledger.domain.exceptions import DomainException, IntegrityViolation, NotFoundError
from lodger_ledger.domain.funds import FundsAllocator
from lodger_ledger.domain.intents import CommandResult
from lodger_ledger.domain.ledger import PaymentSummary, RentARoomSummary
from lodger_ledger.domain.lifecycle import TenancyLifecycle
from lodger_ledger.domain.models import PaymentType, PropertyAddress, Signature
from lodger_ledger.domain.money import Money
from lodger_ledger.infrastructure.database.repositories import TenancyRepository
from lodger_ledger.infrastructure.database.session import SessionLocal
from lodger_ledger.infrastructure.locking import KeyedLock, tenancy_locks
from lodger_ledger.infrastructure.observability.logging import (
    log_command,
    log_immediate_termination,
    log_integrity_violation,
)
from lodger_ledger.infrastructure.observability.metrics import (
    command_latency_histogram,
    deduction_counter,
    extension_auto_accepted_counter,
    immediate_termination_counter,
    integrity_violation_counter,
    notice_counter,
    record_command,
    record_confirmed_payment,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TenancyService:
    """Serialised command entry point for tenancy aggregates"""

    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        locks: KeyedLock = tenancy_locks,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session_factory = session_factory
        self.locks = locks
        self.clock = clock

    # Plumbing

    @contextmanager
    def reading(self) -> Iterator[TenancyRepository]:
        """Lock-free repository over the latest committed state"""
        db = self.session_factory()
        try:
            yield TenancyRepository(db)
        finally:
            db.close()

    def _execute(
        self,
        tenancy_id: str,
        command: str,
        apply: Callable[[TenancyLifecycle, datetime], CommandResult],
        request_id: str = "internal",
    ) -> CommandResult:
        start_time = time.time()
        with self.locks.hold(tenancy_id), command_latency_histogram.labels(command=command).time():
            db = self.session_factory()
            lifecycle = None
            try:
                repo = TenancyRepository(db)
                lifecycle = repo.get(tenancy_id, for_update=True)
                if lifecycle is None:
                    raise NotFoundError(f"Tenancy {tenancy_id} not found")
                lifecycle.assert_writable()

                result = apply(lifecycle, self.clock())
                lifecycle.check_invariants()
                repo.save(lifecycle)
                db.commit()

            except IntegrityViolation as e:
                db.rollback()
                already_held = lifecycle is not None and lifecycle.tenancy.integrity_hold
                if not already_held:
                    self._place_hold(tenancy_id, e)
                self._finish(request_id, tenancy_id, command, e.code, start_time)
                raise
            except DomainException as e:
                db.rollback()
                self._finish(request_id, tenancy_id, command, e.code, start_time)
                raise
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

        self._finish(request_id, tenancy_id, command, "ok", start_time)
        return result

    def _finish(self, request_id: str, tenancy_id: str, command: str, outcome: str, start_time: float) -> None:
        duration_ms = (time.time() - start_time) * 1000
        record_command(command, outcome)
        log_command(request_id, tenancy_id, command, outcome, duration_ms)

    def _place_hold(self, tenancy_id: str, violation: IntegrityViolation) -> None:
        """Persist the hold in its own transaction; the failed one was rolled back"""
        db = self.session_factory()
        try:
            TenancyRepository(db).set_integrity_hold(tenancy_id, True)
            db.commit()
        finally:
            db.close()
        integrity_violation_counter.inc()
        log_integrity_violation(tenancy_id, violation.detail)

    # Reads

    def get(self, tenancy_id: str) -> TenancyLifecycle:
        with self.reading() as repo:
            lifecycle = repo.get(tenancy_id)
        if lifecycle is None:
            raise NotFoundError(f"Tenancy {tenancy_id} not found")
        return lifecycle

    def list_tenancies(self, user_id: str, role: str = "landlord") -> List[TenancyLifecycle]:
        with self.reading() as repo:
            return repo.list_for_user(user_id, role)

    def payment_summary(self, tenancy_id: str, today: Optional[date] = None) -> PaymentSummary:
        return self.get(tenancy_id).payment_summary(today or self.clock().date())

    def rent_a_room_summary(self, tenancy_id: str, tax_year_start: int) -> RentARoomSummary:
        return self.get(tenancy_id).ledger.rent_a_room_summary(tax_year_start)

    def available_funds(self, tenancy_id: str) -> FundsAllocator:
        lifecycle = self.get(tenancy_id)
        if lifecycle.funds is None:
            raise NotFoundError(f"Tenancy {tenancy_id} has no fund pool until it is signed")
        return lifecycle.funds

    # Creation

    def create_tenancy(
        self,
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
        request_id: str = "internal",
    ) -> CommandResult:
        """Create a DRAFT tenancy; serialised per landlord so the capacity check holds"""
        start_time = time.time()
        with self.locks.hold(f"landlord:{landlord_id}"):
            db = self.session_factory()
            try:
                repo = TenancyRepository(db)
                lifecycle, result = TenancyLifecycle.create(
                    landlord_id=landlord_id,
                    lodger_id=lodger_id,
                    property_address=property_address,
                    room_description=room_description,
                    start_date=start_date,
                    initial_term_months=initial_term_months,
                    monthly_rent=monthly_rent,
                    deposit_amount=deposit_amount,
                    deposit_applicable=deposit_applicable,
                    payment_type=payment_type,
                    payment_frequency=payment_frequency,
                    payment_day_of_month=payment_day_of_month,
                    shared_areas=shared_areas,
                    open_tenancies=repo.count_open_for_landlord(landlord_id),
                    now=self.clock(),
                )
                repo.add(lifecycle)
                db.commit()
            except DomainException as e:
                db.rollback()
                self._finish(request_id, "-", "create_tenancy", e.code, start_time)
                raise
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

        self._finish(request_id, lifecycle.id, "create_tenancy", "ok", start_time)
        return result

    # Lifecycle commands

    def sign(
        self,
        tenancy_id: str,
        signature_text: str,
        photo_id_path: Optional[str] = None,
        date_of_birth: Optional[date] = None,
        id_expiry: Optional[date] = None,
        request_id: str = "internal",
    ) -> CommandResult:
        def apply(lc: TenancyLifecycle, now: datetime) -> CommandResult:
            signature = Signature(
                signature_text=signature_text,
                signed_at=now,
                photo_id_path=photo_id_path,
                date_of_birth=date_of_birth,
                id_expiry=id_expiry,
            )
            return lc.sign(signature, now)

        return self._execute(tenancy_id, "sign", apply, request_id)

    def cancel(self, tenancy_id: str, request_id: str = "internal") -> CommandResult:
        return self._execute(tenancy_id, "cancel", lambda lc, now: lc.cancel(now), request_id)

    def submit_payment(
        self,
        tenancy_id: str,
        payment_number: int,
        amount: Money,
        method: Optional[str] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        request_id: str = "internal",
    ) -> CommandResult:
        return self._execute(
            tenancy_id,
            "submit_payment",
            lambda lc, now: lc.submit_payment(payment_number, amount, method, reference, notes, now),
            request_id,
        )

    def confirm_payment(
        self,
        tenancy_id: str,
        payment_number: int,
        amount: Money,
        method: Optional[str] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        request_id: str = "internal",
    ) -> CommandResult:
        result = self._execute(
            tenancy_id,
            "confirm_payment",
            lambda lc, now: lc.confirm_payment(payment_number, amount, method, reference, notes, now),
            request_id,
        )
        record_confirmed_payment(amount.amount)
        return result

    def remind_payment(self, tenancy_id: str, payment_number: int, request_id: str = "internal") -> CommandResult:
        return self._execute(
            tenancy_id, "remind_payment", lambda lc, now: lc.remind_payment(payment_number, now), request_id
        )

    def record_deduction(
        self,
        tenancy_id: str,
        deduction_type: str,
        description: str,
        total_amount: Money,
        from_deposit: Money,
        from_advance: Money,
        notes: Optional[str] = None,
        request_id: str = "internal",
    ) -> CommandResult:
        result = self._execute(
            tenancy_id,
            "record_deduction",
            lambda lc, now: lc.record_deduction(
                deduction_type, description, total_amount, from_deposit, from_advance, notes, now
            ),
            request_id,
        )
        deduction_counter.labels(deduction_type=deduction_type).inc()
        return result

    def request_deduction_statement(
        self, tenancy_id: str, deduction_id: str, request_id: str = "internal"
    ) -> CommandResult:
        return self._execute(
            tenancy_id,
            "request_deduction_statement",
            lambda lc, now: lc.request_deduction_statement(deduction_id),
            request_id,
        )

    # Notices

    def give_notice(
        self,
        tenancy_id: str,
        issued_by: str,
        reason: str,
        notice_period_days: int,
        sub_reason: Optional[str] = None,
        notes: Optional[str] = None,
        request_id: str = "internal",
    ) -> CommandResult:
        result = self._execute(
            tenancy_id,
            "give_notice",
            lambda lc, now: lc.give_notice(issued_by, reason, sub_reason, notice_period_days, now, notes),
            request_id,
        )
        notice = result.subject
        notice_counter.labels(kind=notice.kind.value).inc()
        if notice.immediate:
            immediate_termination_counter.inc()
            log_immediate_termination(tenancy_id, notice.id, issued_by)
        return result

    def issue_breach(
        self,
        tenancy_id: str,
        issued_by: str,
        breach_type: str,
        description: str,
        notes: Optional[str] = None,
        request_id: str = "internal",
    ) -> CommandResult:
        result = self._execute(
            tenancy_id,
            "issue_breach",
            lambda lc, now: lc.issue_breach(issued_by, breach_type, description, now, notes),
            request_id,
        )
        notice_counter.labels(kind=result.subject.kind.value).inc()
        return result

    def remedy_breach(
        self, tenancy_id: str, notice_id: str, notes: Optional[str] = None, request_id: str = "internal"
    ) -> CommandResult:
        return self._execute(
            tenancy_id,
            "remedy_breach",
            lambda lc, now: lc.mark_breach_remedied(notice_id, now, notes),
            request_id,
        )

    def escalate_breach(
        self, tenancy_id: str, notice_id: str, issued_by: str, request_id: str = "internal"
    ) -> CommandResult:
        result = self._execute(
            tenancy_id,
            "escalate_breach",
            lambda lc, now: lc.escalate_breach(notice_id, issued_by, now),
            request_id,
        )
        notice_counter.labels(kind=result.subject.kind.value).inc()
        return result

    def offer_extension(
        self,
        tenancy_id: str,
        issued_by: str,
        extension_months: int,
        new_monthly_rent: Optional[Money] = None,
        notes: Optional[str] = None,
        request_id: str = "internal",
    ) -> CommandResult:
        result = self._execute(
            tenancy_id,
            "offer_extension",
            lambda lc, now: lc.offer_extension(issued_by, extension_months, new_monthly_rent, now, notes),
            request_id,
        )
        notice_counter.labels(kind=result.subject.kind.value).inc()
        return result

    def respond_to_extension(
        self, tenancy_id: str, notice_id: str, accept: bool, request_id: str = "internal"
    ) -> CommandResult:
        return self._execute(
            tenancy_id,
            "respond_to_extension",
            lambda lc, now: lc.respond_to_extension(notice_id, accept, now),
            request_id,
        )

    # Sweep transitions, taken through the same locked path as user commands

    def auto_accept_expired(self, tenancy_id: str) -> CommandResult:
        result = self._execute(tenancy_id, "auto_accept_extension", lambda lc, now: lc.auto_accept_expired(now))
        if result.subject:
            extension_auto_accepted_counter.inc(len(result.subject))
        else:
            logger.info("No extension offer auto-accepted", extra={"tenancy_id": tenancy_id})
        return result

    def complete_termination(self, tenancy_id: str) -> CommandResult:
        return self._execute(tenancy_id, "complete_termination", lambda lc, now: lc.complete_termination(now))

    def expiry_reminder(self, tenancy_id: str, window_days: int) -> CommandResult:
        return self._execute(
            tenancy_id, "expiry_reminder", lambda lc, now: lc.expiry_reminder(now, window_days)
        )

    # Documents and operator actions

    def attach_document(self, tenancy_id: str, intent, reference: str) -> CommandResult:
        def apply(lc: TenancyLifecycle, now: datetime) -> CommandResult:
            lc.attach_document(intent, reference)
            return CommandResult(subject=reference)

        return self._execute(tenancy_id, "attach_document", apply)

    def clear_integrity_hold(self, tenancy_id: str, request_id: str = "internal") -> None:
        """Operator release after the ledger has been repaired"""
        with self.locks.hold(tenancy_id):
            db = self.session_factory()
            try:
                if not TenancyRepository(db).set_integrity_hold(tenancy_id, False):
                    raise NotFoundError(f"Tenancy {tenancy_id} not found")
                db.commit()
            finally:
                db.close()
        logger.warning(
            "Integrity hold cleared",
            extra={"audit_event": "integrity_hold_cleared", "tenancy_id": tenancy_id, "request_id": request_id},
        )
