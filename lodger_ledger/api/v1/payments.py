"""Rent schedule, payment submission/confirmation and summaries"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from lodger_ledger.api.dependencies import get_dispatcher, get_request_id, get_tenancy_service, schedule_intents
from lodger_ledger.api.v1.schemas import (
    PaymentActionRequest,
    PaymentListResponse,
    PaymentSchema,
    PaymentSummaryResponse,
    RentARoomResponse,
)
from lodger_ledger.domain.money import Money
from lodger_ledger.services.dispatcher import IntentDispatcher
from lodger_ledger.services.tenancy_service import TenancyService

router = APIRouter()


@router.get("/tenancies/{tenancy_id}/payments", response_model=PaymentListResponse)
def list_payments(tenancy_id: str, service: TenancyService = Depends(get_tenancy_service)):
    """Full schedule; overdue status is derived from today's date"""
    today = service.clock().date()
    lifecycle = service.get(tenancy_id)
    return PaymentListResponse(
        tenancy_id=tenancy_id,
        payments=[PaymentSchema.from_domain(r, today) for r in lifecycle.ledger.records],
    )


@router.get("/tenancies/{tenancy_id}/payments/summary", response_model=PaymentSummaryResponse)
def payment_summary(tenancy_id: str, service: TenancyService = Depends(get_tenancy_service)):
    summary = service.payment_summary(tenancy_id)
    return PaymentSummaryResponse(
        tenancy_id=tenancy_id,
        total_due=summary.total_due.amount,
        total_paid=summary.total_paid.amount,
        outstanding=summary.outstanding.amount,
        payment_count=summary.payment_count,
        confirmed_count=summary.confirmed_count,
        submitted_count=summary.submitted_count,
        overdue_count=summary.overdue_count,
    )


@router.get("/tenancies/{tenancy_id}/rent-a-room", response_model=RentARoomResponse)
def rent_a_room_summary(
    tenancy_id: str,
    tax_year_start: int = Query(..., ge=2000, le=2100, description="Calendar year the tax year starts in"),
    service: TenancyService = Depends(get_tenancy_service),
):
    """Confirmed rent in a UK tax year against the Rent-a-Room allowance"""
    summary = service.rent_a_room_summary(tenancy_id, tax_year_start)
    return RentARoomResponse(
        tenancy_id=tenancy_id,
        tax_year=summary.tax_year,
        total_income=summary.total_income,
        allowance=summary.allowance,
        taxable_income=summary.taxable_income,
        remaining_allowance=summary.remaining_allowance,
    )


@router.post("/tenancies/{tenancy_id}/payments/{payment_number}/submit", response_model=PaymentSchema)
def submit_payment(
    tenancy_id: str,
    payment_number: int,
    body: PaymentActionRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    """Lodger reports having paid; the balance only moves on confirmation"""
    request_id = get_request_id(request)
    result = service.submit_payment(
        tenancy_id,
        payment_number,
        Money.of(body.amount),
        method=body.method,
        reference=body.reference,
        notes=body.notes,
        request_id=request_id,
    )
    schedule_intents(background_tasks, dispatcher, result, request_id)
    return PaymentSchema.from_domain(result.subject, service.clock().date())


@router.post("/tenancies/{tenancy_id}/payments/{payment_number}/confirm", response_model=PaymentSchema)
def confirm_payment(
    tenancy_id: str,
    payment_number: int,
    body: PaymentActionRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    """Landlord confirms receipt; succeeds once per payment"""
    request_id = get_request_id(request)
    result = service.confirm_payment(
        tenancy_id,
        payment_number,
        Money.of(body.amount),
        method=body.method,
        reference=body.reference,
        notes=body.notes,
        request_id=request_id,
    )
    schedule_intents(background_tasks, dispatcher, result, request_id)
    return PaymentSchema.from_domain(result.subject, service.clock().date())


@router.post("/tenancies/{tenancy_id}/payments/{payment_number}/remind", status_code=202)
def remind_payment(
    tenancy_id: str,
    payment_number: int,
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    request_id = get_request_id(request)
    result = service.remind_payment(tenancy_id, payment_number, request_id=request_id)
    schedule_intents(background_tasks, dispatcher, result, request_id)
    return {"status": "queued", "payment_number": payment_number}
