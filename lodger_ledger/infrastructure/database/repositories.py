"""Data access layer: maps tenancy rows to the domain aggregate and back"""

from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from lodger_ledger.domain.funds import FundsAllocator
from lodger_ledger.domain.ledger import PaymentLedger
from lodger_ledger.domain.lifecycle import TenancyLifecycle
from lodger_ledger.domain.models import (
    LIVE_STATUSES,
    OPEN_STATUSES,
    BreachStatus,
    Deduction,
    ExtensionStatus,
    FundsPool,
    Notice,
    NoticeKind,
    PaymentRecord,
    PaymentStatus,
    PaymentType,
    PropertyAddress,
    Signature,
    Tenancy,
    TenancyStatus,
)
from lodger_ledger.domain.money import Money
from lodger_ledger.domain.notices import NoticeStateMachine
from lodger_ledger.infrastructure.database.models import (
    DeductionRow,
    FundsPoolRow,
    NoticeRow,
    PaymentRecordRow,
    TenancyRow,
)


def _money(pence: Optional[int]) -> Optional[Money]:
    return None if pence is None else Money(pence)


def _pence(value: Optional[Money]) -> Optional[int]:
    return None if value is None else value.pence


def _enum(enum_cls, value):
    return None if value is None else enum_cls(value)


def _value(member):
    return None if member is None else member.value


class TenancyRepository:
    """Repository for tenancy aggregates"""

    def __init__(self, db: Session):
        self.db = db

    # Reads

    def _row(self, tenancy_id: str, for_update: bool = False) -> Optional[TenancyRow]:
        query = self.db.query(TenancyRow).filter(TenancyRow.id == tenancy_id)
        if for_update:
            # Ignored by SQLite; row lock on PostgreSQL
            query = query.with_for_update()
        return query.first()

    def get(self, tenancy_id: str, for_update: bool = False) -> Optional[TenancyLifecycle]:
        """Load the whole aggregate, or None if the tenancy does not exist"""
        row = self._row(tenancy_id, for_update)
        if row is None:
            return None
        return self._to_domain(row)

    def count_open_for_landlord(self, landlord_id: str) -> int:
        return (
            self.db.query(TenancyRow)
            .filter(TenancyRow.landlord_id == landlord_id)
            .filter(TenancyRow.status.in_([s.value for s in OPEN_STATUSES]))
            .count()
        )

    def list_for_user(self, user_id: str, role: str = "landlord", limit: int = 50) -> List[TenancyLifecycle]:
        column = TenancyRow.landlord_id if role == "landlord" else TenancyRow.lodger_id
        rows = (
            self.db.query(TenancyRow)
            .filter(column == user_id)
            .order_by(TenancyRow.created_at.desc())
            .limit(limit)
            .all()
        )
        return [self._to_domain(row) for row in rows]

    def ids_with_expired_offers(self, today: date) -> List[str]:
        """Live tenancies holding a pending extension offer past its response deadline"""
        rows = (
            self.db.query(NoticeRow.tenancy_id)
            .join(TenancyRow, TenancyRow.id == NoticeRow.tenancy_id)
            .filter(TenancyRow.status.in_([s.value for s in LIVE_STATUSES]))
            .filter(NoticeRow.kind == NoticeKind.EXTENSION_OFFER.value)
            .filter(NoticeRow.extension_status == ExtensionStatus.PENDING.value)
            .filter(NoticeRow.response_deadline < today)
            .distinct()
            .all()
        )
        return [r.tenancy_id for r in rows]

    def ids_with_lapsed_notice(self, today: date) -> List[str]:
        """NOTICE_GIVEN tenancies whose end date has been reached"""
        rows = (
            self.db.query(TenancyRow.id)
            .filter(TenancyRow.status == TenancyStatus.NOTICE_GIVEN.value)
            .filter(TenancyRow.end_date <= today)
            .all()
        )
        return [r.id for r in rows]

    def ids_expiring_between(self, first: date, last: date) -> List[str]:
        rows = (
            self.db.query(TenancyRow.id)
            .filter(TenancyRow.status.in_([s.value for s in LIVE_STATUSES]))
            .filter(TenancyRow.end_date >= first)
            .filter(TenancyRow.end_date <= last)
            .all()
        )
        return [r.id for r in rows]

    # Writes

    def add(self, lifecycle: TenancyLifecycle) -> TenancyRow:
        """Persist a newly created aggregate"""
        row = TenancyRow(id=lifecycle.id)
        self._write_tenancy(row, lifecycle.tenancy)
        self.db.add(row)
        self.save(lifecycle, row)
        return row

    def save(self, lifecycle: TenancyLifecycle, row: Optional[TenancyRow] = None) -> None:
        """Write the aggregate back; child rows are matched by their natural keys"""
        row = row or self._row(lifecycle.id)
        self._write_tenancy(row, lifecycle.tenancy)
        self._sync_payments(row, lifecycle.ledger)
        self._sync_notices(row, lifecycle.notices)
        if lifecycle.funds is not None:
            self._sync_funds(row, lifecycle.funds)
        self.db.flush()

    def set_integrity_hold(self, tenancy_id: str, held: bool) -> bool:
        """Flip the hold flag without loading the aggregate; False if the tenancy is unknown"""
        row = self._row(tenancy_id, for_update=True)
        if row is None:
            return False
        row.integrity_hold = held
        self.db.flush()
        return True

    # Row -> domain

    def _to_domain(self, row: TenancyRow) -> TenancyLifecycle:
        signature = None
        if row.signature_text is not None:
            signature = Signature(
                signature_text=row.signature_text,
                signed_at=row.signed_at,
                photo_id_path=row.photo_id_path,
                date_of_birth=row.date_of_birth,
                id_expiry=row.id_expiry,
            )

        tenancy = Tenancy(
            id=row.id,
            landlord_id=row.landlord_id,
            lodger_id=row.lodger_id,
            property_address=PropertyAddress(
                house_number=row.house_number,
                street=row.street,
                city=row.city,
                county=row.county,
                postcode=row.postcode,
            ),
            room_description=row.room_description,
            start_date=row.start_date,
            initial_term_months=row.initial_term_months,
            monthly_rent=Money(row.monthly_rent_pence),
            deposit_amount=Money(row.deposit_pence),
            deposit_applicable=row.deposit_applicable,
            payment_type=PaymentType(row.payment_type),
            payment_frequency=row.payment_frequency,
            payment_day_of_month=row.payment_day_of_month,
            shared_areas=frozenset(row.shared_areas or ()),
            end_date=row.end_date,
            status=TenancyStatus(row.status),
            signature=signature,
            agreement_path=row.agreement_path,
            termination_date=row.termination_date,
            expiry_reminder_for=row.expiry_reminder_for,
            integrity_hold=row.integrity_hold,
            created_at=row.created_at,
        )

        ledger = PaymentLedger(self._payment_to_domain(p) for p in row.payments)
        notices = NoticeStateMachine(row.id, (self._notice_to_domain(n) for n in row.notices))

        funds = None
        if row.funds_pool is not None:
            pool = row.funds_pool
            funds = FundsAllocator(
                row.id,
                FundsPool(
                    original_deposit=Money(pool.original_deposit_pence),
                    original_advance=Money(pool.original_advance_pence),
                    available_deposit=Money(pool.available_deposit_pence),
                    available_advance=Money(pool.available_advance_pence),
                ),
                (self._deduction_to_domain(d) for d in row.deductions),
            )

        return TenancyLifecycle(tenancy, ledger, funds, notices)

    @staticmethod
    def _payment_to_domain(row: PaymentRecordRow) -> PaymentRecord:
        return PaymentRecord(
            payment_number=row.payment_number,
            due_date=row.due_date,
            rent_due=Money(row.rent_due_pence),
            rent_paid=Money(row.rent_paid_pence),
            status=PaymentStatus(row.status),
            notes=row.notes,
            submitted_amount=_money(row.submitted_amount_pence),
            submitted_method=row.submitted_method,
            submitted_reference=row.submitted_reference,
            submitted_notes=row.submitted_notes,
            submitted_at=row.submitted_at,
            confirmed_amount=_money(row.confirmed_amount_pence),
            confirmed_method=row.confirmed_method,
            confirmed_reference=row.confirmed_reference,
            confirmed_notes=row.confirmed_notes,
            confirmed_at=row.confirmed_at,
        )

    @staticmethod
    def _notice_to_domain(row: NoticeRow) -> Notice:
        return Notice(
            id=row.id,
            tenancy_id=row.tenancy_id,
            kind=NoticeKind(row.kind),
            issue_date=row.issue_date,
            issued_by=row.issued_by,
            issued_to=row.issued_to,
            notes=row.notes,
            letter_path=row.letter_path,
            reason=row.reason,
            sub_reason=row.sub_reason,
            notice_period_days=row.notice_period_days,
            effective_date=row.effective_date,
            immediate=row.immediate,
            source_breach_id=row.source_breach_id,
            settlement_amount=_money(row.settlement_pence),
            breach_type=row.breach_type,
            description=row.description,
            remedy_deadline=row.remedy_deadline,
            breach_status=_enum(BreachStatus, row.breach_status),
            escalated_notice_id=row.escalated_notice_id,
            resolved_on=row.resolved_on,
            extension_months=row.extension_months,
            current_rent=_money(row.current_rent_pence),
            new_monthly_rent=_money(row.new_monthly_rent_pence),
            new_end_date=row.new_end_date,
            response_deadline=row.response_deadline,
            extension_status=_enum(ExtensionStatus, row.extension_status),
            responded_on=row.responded_on,
        )

    @staticmethod
    def _deduction_to_domain(row: DeductionRow) -> Deduction:
        return Deduction(
            id=row.id,
            tenancy_id=row.tenancy_id,
            deduction_type=row.deduction_type,
            description=row.description,
            total_amount=Money(row.total_pence),
            from_deposit=Money(row.from_deposit_pence),
            from_advance=Money(row.from_advance_pence),
            notes=row.notes,
            statement_generated=row.statement_generated,
            statement_path=row.statement_path,
            created_at=row.created_at,
        )

    # Domain -> row

    @staticmethod
    def _write_tenancy(row: TenancyRow, t: Tenancy) -> None:
        address = t.property_address
        row.landlord_id = t.landlord_id
        row.lodger_id = t.lodger_id
        row.house_number = address.house_number
        row.street = address.street
        row.city = address.city
        row.county = address.county
        row.postcode = address.postcode
        row.room_description = t.room_description
        row.start_date = t.start_date
        row.initial_term_months = t.initial_term_months
        row.monthly_rent_pence = t.monthly_rent.pence
        row.deposit_pence = t.deposit_amount.pence
        row.deposit_applicable = t.deposit_applicable
        row.payment_type = t.payment_type.value
        row.payment_frequency = t.payment_frequency
        row.payment_day_of_month = t.payment_day_of_month
        row.shared_areas = sorted(t.shared_areas)
        row.end_date = t.end_date
        row.status = t.status.value
        row.termination_date = t.termination_date
        row.expiry_reminder_for = t.expiry_reminder_for
        row.integrity_hold = t.integrity_hold
        row.agreement_path = t.agreement_path
        if t.created_at is not None:
            row.created_at = t.created_at

        sig = t.signature
        row.signature_text = sig.signature_text if sig else None
        row.signed_at = sig.signed_at if sig else None
        row.photo_id_path = sig.photo_id_path if sig else None
        row.date_of_birth = sig.date_of_birth if sig else None
        row.id_expiry = sig.id_expiry if sig else None

    def _sync_payments(self, row: TenancyRow, ledger: PaymentLedger) -> None:
        existing = {p.payment_number: p for p in row.payments}
        wanted = {r.payment_number for r in ledger.records}

        for number, payment_row in existing.items():
            if number not in wanted:
                row.payments.remove(payment_row)
        # Removals must reach the database before re-used numbers are inserted
        self.db.flush()

        for record in ledger.records:
            payment_row = existing.get(record.payment_number)
            if payment_row is None:
                payment_row = PaymentRecordRow(payment_number=record.payment_number)
                row.payments.append(payment_row)
            payment_row.due_date = record.due_date
            payment_row.rent_due_pence = record.rent_due.pence
            payment_row.rent_paid_pence = record.rent_paid.pence
            payment_row.status = record.status.value
            payment_row.notes = record.notes
            payment_row.submitted_amount_pence = _pence(record.submitted_amount)
            payment_row.submitted_method = record.submitted_method
            payment_row.submitted_reference = record.submitted_reference
            payment_row.submitted_notes = record.submitted_notes
            payment_row.submitted_at = record.submitted_at
            payment_row.confirmed_amount_pence = _pence(record.confirmed_amount)
            payment_row.confirmed_method = record.confirmed_method
            payment_row.confirmed_reference = record.confirmed_reference
            payment_row.confirmed_notes = record.confirmed_notes
            payment_row.confirmed_at = record.confirmed_at

    @staticmethod
    def _sync_notices(row: TenancyRow, notices: NoticeStateMachine) -> None:
        existing = {n.id: n for n in row.notices}
        for notice in notices.notices:
            notice_row = existing.get(notice.id)
            if notice_row is None:
                notice_row = NoticeRow(id=notice.id)
                row.notices.append(notice_row)
            notice_row.kind = notice.kind.value
            notice_row.issue_date = notice.issue_date
            notice_row.issued_by = notice.issued_by
            notice_row.issued_to = notice.issued_to
            notice_row.notes = notice.notes
            notice_row.letter_path = notice.letter_path
            notice_row.reason = notice.reason
            notice_row.sub_reason = notice.sub_reason
            notice_row.notice_period_days = notice.notice_period_days
            notice_row.effective_date = notice.effective_date
            notice_row.immediate = notice.immediate
            notice_row.source_breach_id = notice.source_breach_id
            notice_row.settlement_pence = _pence(notice.settlement_amount)
            notice_row.breach_type = notice.breach_type
            notice_row.description = notice.description
            notice_row.remedy_deadline = notice.remedy_deadline
            notice_row.breach_status = _value(notice.breach_status)
            notice_row.escalated_notice_id = notice.escalated_notice_id
            notice_row.resolved_on = notice.resolved_on
            notice_row.extension_months = notice.extension_months
            notice_row.current_rent_pence = _pence(notice.current_rent)
            notice_row.new_monthly_rent_pence = _pence(notice.new_monthly_rent)
            notice_row.new_end_date = notice.new_end_date
            notice_row.response_deadline = notice.response_deadline
            notice_row.extension_status = _value(notice.extension_status)
            notice_row.responded_on = notice.responded_on

    @staticmethod
    def _sync_funds(row: TenancyRow, funds: FundsAllocator) -> None:
        pool = funds.pool
        if row.funds_pool is None:
            row.funds_pool = FundsPoolRow(tenancy_id=row.id)
        row.funds_pool.original_deposit_pence = pool.original_deposit.pence
        row.funds_pool.original_advance_pence = pool.original_advance.pence
        row.funds_pool.available_deposit_pence = pool.available_deposit.pence
        row.funds_pool.available_advance_pence = pool.available_advance.pence

        existing = {d.id: d for d in row.deductions}
        for deduction in funds.deductions:
            deduction_row = existing.get(deduction.id)
            if deduction_row is None:
                # Amounts are immutable once recorded
                deduction_row = DeductionRow(
                    id=deduction.id,
                    deduction_type=deduction.deduction_type,
                    description=deduction.description,
                    total_pence=deduction.total_amount.pence,
                    from_deposit_pence=deduction.from_deposit.pence,
                    from_advance_pence=deduction.from_advance.pence,
                    created_at=deduction.created_at,
                )
                row.deductions.append(deduction_row)
            deduction_row.notes = deduction.notes
            deduction_row.statement_generated = deduction.statement_generated
            deduction_row.statement_path = deduction.statement_path
