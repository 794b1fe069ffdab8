"""Integration tests for the locked command path against the test database"""

import logging
import threading
import pytest
from datetime import date
from decimal import Decimal
from lodger_ledger.domain.exceptions import (
    AlreadyConfirmedError,
    CapacityExceededError,
    IntegrityViolation,
    InsufficientFundsError,
    NotFoundError,
)
from lodger_ledger.domain.intents import GenerateAgreementPDF
from lodger_ledger.domain.models import ExtensionStatus, PaymentStatus, TenancyStatus
from lodger_ledger.domain.money import Money
from lodger_ledger.infrastructure.database.models import FundsPoolRow, TenancyRow
from lodger_ledger.infrastructure.locking import KeyedLock
from lodger_ledger.jobs import sweeps


def test_signed_tenancy_round_trips(service, active_tenancy_id):
    """Test the persisted aggregate reloads with schedule and fund pool"""
    lifecycle = service.get(active_tenancy_id)

    assert lifecycle.tenancy.status == TenancyStatus.ACTIVE
    assert lifecycle.tenancy.signature.signature_text == "Jane Lodger"
    assert lifecycle.tenancy.shared_areas == frozenset({"kitchen", "bathroom"})
    assert lifecycle.tenancy.end_date == date(2024, 7, 1)
    assert [r.payment_number for r in lifecycle.ledger.records] == [1, 2, 3, 4, 5, 6, 7]
    assert lifecycle.ledger.get(1).rent_due.amount == Decimal("1600.00")
    assert lifecycle.funds.total_available().amount == Decimal("1600.00")


def test_capacity_counts_open_tenancies(service, make_fields):
    first = service.create_tenancy(**make_fields()).subject
    service.create_tenancy(**make_fields(lodger_id="lodger_2"))

    with pytest.raises(CapacityExceededError):
        service.create_tenancy(**make_fields(lodger_id="lodger_3"))

    service.cancel(first.id)
    assert service.create_tenancy(**make_fields(lodger_id="lodger_3")).subject.lodger_id == "lodger_3"


def test_unknown_tenancy(service):
    with pytest.raises(NotFoundError):
        service.confirm_payment("missing", 1, Money.of("1.00"))


def test_failed_command_leaves_state_untouched(service, active_tenancy_id):
    service.record_deduction(
        active_tenancy_id, "damage", "Chair", Money.of("150.00"), Money.of("150.00"), Money.zero()
    )
    with pytest.raises(InsufficientFundsError):
        service.record_deduction(
            active_tenancy_id, "damage", "Carpet", Money.of("700.00"), Money.of("700.00"), Money.zero()
        )

    funds = service.available_funds(active_tenancy_id)
    assert funds.pool.available_deposit.amount == Decimal("650.00")
    assert len(funds.deductions) == 1


def test_concurrent_confirmations_credit_once(service, active_tenancy_id):
    """Test two racing confirmations: one wins, the other sees AlreadyConfirmed"""
    outcomes = []
    barrier = threading.Barrier(2)

    def confirm():
        barrier.wait()
        try:
            service.confirm_payment(active_tenancy_id, 2, Money.of("800.00"))
            outcomes.append("ok")
        except AlreadyConfirmedError:
            outcomes.append("already_confirmed")

    threads = [threading.Thread(target=confirm) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["already_confirmed", "ok"]
    record = service.get(active_tenancy_id).ledger.get(2)
    assert record.status == PaymentStatus.CONFIRMED
    assert record.rent_paid.amount == Decimal("800.00")


def test_notice_persists_truncated_schedule_and_settlement(service, clock, active_tenancy_id):
    clock.set(date(2024, 2, 1))
    result = service.give_notice(active_tenancy_id, "landlord_1", "landlord_needs", 28)

    lifecycle = service.get(active_tenancy_id)
    assert lifecycle.tenancy.status == TenancyStatus.NOTICE_GIVEN
    assert len(lifecycle.ledger) == 3
    notice = lifecycle.notices.get(result.subject.id)
    assert notice.settlement_amount.amount == Decimal("-1514.29")


def immediate_termination_records(caplog) -> list:
    return [r for r in caplog.records if getattr(r, "audit_event", None) == "immediate_termination"]


def test_immediate_termination_is_audited(service, active_tenancy_id, caplog):
    """Test a 0-day notice writes one warning-level audit entry"""
    caplog.set_level(logging.WARNING)

    result = service.give_notice(active_tenancy_id, "landlord_1", "breach", 0, sub_reason="nuisance")

    records = immediate_termination_records(caplog)
    assert len(records) == 1
    assert records[0].levelno == logging.WARNING
    assert records[0].tenancy_id == active_tenancy_id
    assert records[0].notice_id == result.subject.id
    assert records[0].issued_by == "landlord_1"


def test_notice_with_period_is_not_audited_as_immediate(service, active_tenancy_id, caplog):
    caplog.set_level(logging.WARNING)

    service.give_notice(active_tenancy_id, "landlord_1", "landlord_needs", 28)

    assert immediate_termination_records(caplog) == []


def test_integrity_violation_places_hold(service, active_tenancy_id):
    """Test a corrupted pool blocks the tenancy until an operator clears the hold"""
    db = service.session_factory()
    try:
        pool = db.query(FundsPoolRow).filter(FundsPoolRow.tenancy_id == active_tenancy_id).one()
        pool.available_advance_pence = 90000
        db.commit()
    finally:
        db.close()

    with pytest.raises(IntegrityViolation):
        service.confirm_payment(active_tenancy_id, 1, Money.of("1600.00"))

    lifecycle = service.get(active_tenancy_id)
    assert lifecycle.tenancy.integrity_hold is True
    assert lifecycle.ledger.get(1).status == PaymentStatus.PENDING

    with pytest.raises(IntegrityViolation):
        service.submit_payment(active_tenancy_id, 2, Money.of("800.00"))

    db = service.session_factory()
    try:
        db.query(FundsPoolRow).filter(FundsPoolRow.tenancy_id == active_tenancy_id).one().available_advance_pence = 80000
        db.commit()
    finally:
        db.close()
    service.clear_integrity_hold(active_tenancy_id)

    result = service.confirm_payment(active_tenancy_id, 1, Money.of("1600.00"))
    assert result.subject.status == PaymentStatus.CONFIRMED


def test_attach_document_writes_reference(service, active_tenancy_id):
    service.attach_document(active_tenancy_id, GenerateAgreementPDF(tenancy_id=active_tenancy_id), "docs/a.pdf")

    db = service.session_factory()
    try:
        row = db.query(TenancyRow).filter(TenancyRow.id == active_tenancy_id).one()
        assert row.agreement_path == "docs/a.pdf"
    finally:
        db.close()


def test_auto_accept_sweep(service, clock, active_tenancy_id):
    offer = service.offer_extension(active_tenancy_id, "landlord_1", 6).subject
    assert offer.response_deadline == date(2024, 1, 15)

    clock.set(date(2024, 1, 15))
    assert sweeps.auto_accept_extensions(service).checked == 0

    clock.set(date(2024, 1, 16))
    report = sweeps.auto_accept_extensions(service)

    assert report.changed == [active_tenancy_id]
    lifecycle = service.get(active_tenancy_id)
    assert lifecycle.tenancy.status == TenancyStatus.EXTENDED
    assert lifecycle.notices.get(offer.id).extension_status == ExtensionStatus.AUTO_ACCEPTED
    assert lifecycle.ledger.last().due_date == date(2024, 12, 30)


def test_auto_accept_sweep_ignores_tenancy_under_notice(service, clock, active_tenancy_id):
    offer = service.offer_extension(active_tenancy_id, "landlord_1", 6).subject
    service.give_notice(active_tenancy_id, "landlord_1", "landlord_needs", 28)

    clock.set(date(2024, 1, 16))
    report = sweeps.auto_accept_extensions(service)

    assert report.checked == 0
    assert report.changed == []
    lifecycle = service.get(active_tenancy_id)
    assert lifecycle.tenancy.status == TenancyStatus.NOTICE_GIVEN
    assert lifecycle.notices.get(offer.id).extension_status == ExtensionStatus.PENDING


def test_termination_sweep(service, clock, active_tenancy_id):
    service.give_notice(active_tenancy_id, "landlord_1", "end_term", 7)

    clock.set(date(2024, 1, 7))
    assert sweeps.complete_terminations(service).changed == []

    clock.set(date(2024, 1, 8))
    report = sweeps.complete_terminations(service)

    assert report.changed == [active_tenancy_id]
    assert len(report.intents) == 2
    lifecycle = service.get(active_tenancy_id)
    assert lifecycle.tenancy.status == TenancyStatus.TERMINATED
    assert lifecycle.tenancy.termination_date == date(2024, 1, 8)


def test_expiry_reminder_sweep_sends_once(service, clock, active_tenancy_id):
    clock.set(date(2024, 6, 10))

    first = sweeps.send_expiry_reminders(service, window_days=30)
    second = sweeps.send_expiry_reminders(service, window_days=30)

    assert first.changed == [active_tenancy_id]
    assert len(first.intents) == 2
    assert second.checked == 1
    assert second.changed == []


def test_keyed_lock_releases_keys():
    locks = KeyedLock()
    with locks.hold("a"):
        with locks.hold("b"):
            assert len(locks) == 2
    assert len(locks) == 0


def test_run_daily_runs_every_sweep(service, clock, active_tenancy_id):
    clock.set(date(2024, 6, 10))

    reports = sweeps.run_daily(service)

    assert [r.sweep for r in reports] == ["auto_accept_extensions", "complete_terminations", "expiry_reminders"]
    assert reports[2].changed == [active_tenancy_id]
