"""Termination notices, breach notices and extension offers"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from lodger_ledger.api.dependencies import get_dispatcher, get_request_id, get_tenancy_service, schedule_intents
from lodger_ledger.api.v1.schemas import (
    BreachNoticeRequest,
    EscalateRequest,
    ExtensionOfferRequest,
    ExtensionResponseRequest,
    NoticeListResponse,
    NoticeSchema,
    RemedyRequest,
    TerminationNoticeRequest,
)
from lodger_ledger.domain.intents import CommandResult
from lodger_ledger.domain.money import Money
from lodger_ledger.services.dispatcher import IntentDispatcher
from lodger_ledger.services.tenancy_service import TenancyService

router = APIRouter()


def _respond(result: CommandResult, background_tasks: BackgroundTasks, dispatcher: IntentDispatcher, request_id: str):
    schedule_intents(background_tasks, dispatcher, result, request_id)
    return NoticeSchema.from_domain(result.subject)


@router.get("/tenancies/{tenancy_id}/notices", response_model=NoticeListResponse)
def list_notices(tenancy_id: str, service: TenancyService = Depends(get_tenancy_service)):
    lifecycle = service.get(tenancy_id)
    notices = sorted(lifecycle.notices.notices, key=lambda n: n.issue_date)
    return NoticeListResponse(tenancy_id=tenancy_id, notices=[NoticeSchema.from_domain(n) for n in notices])


@router.post("/tenancies/{tenancy_id}/notices/termination", response_model=NoticeSchema, status_code=201)
def give_notice(
    tenancy_id: str,
    body: TerminationNoticeRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    """
    Standard notice to end the tenancy.

    notice_period_days is one of 0, 3, 7, 14, 28. A 0-day notice ends the
    tenancy immediately. Unpaid periods after the end date are dropped and
    a final pro-rata settlement is computed.
    """
    request_id = get_request_id(request)
    result = service.give_notice(
        tenancy_id,
        body.issued_by,
        body.reason,
        body.notice_period_days,
        sub_reason=body.sub_reason,
        notes=body.notes,
        request_id=request_id,
    )
    return _respond(result, background_tasks, dispatcher, request_id)


@router.post("/tenancies/{tenancy_id}/notices/breach", response_model=NoticeSchema, status_code=201)
def issue_breach(
    tenancy_id: str,
    body: BreachNoticeRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    """Breach notice with a 7-day remedy window"""
    request_id = get_request_id(request)
    result = service.issue_breach(
        tenancy_id, body.issued_by, body.breach_type, body.description, notes=body.notes, request_id=request_id
    )
    return _respond(result, background_tasks, dispatcher, request_id)


@router.post("/tenancies/{tenancy_id}/notices/{notice_id}/remedy", response_model=NoticeSchema)
def remedy_breach(
    tenancy_id: str,
    notice_id: str,
    body: RemedyRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    request_id = get_request_id(request)
    result = service.remedy_breach(tenancy_id, notice_id, notes=body.notes, request_id=request_id)
    return _respond(result, background_tasks, dispatcher, request_id)


@router.post("/tenancies/{tenancy_id}/notices/{notice_id}/escalate", response_model=NoticeSchema, status_code=201)
def escalate_breach(
    tenancy_id: str,
    notice_id: str,
    body: EscalateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    """Unremedied breach past its deadline becomes a 7-day termination notice (returned)"""
    request_id = get_request_id(request)
    result = service.escalate_breach(tenancy_id, notice_id, body.issued_by, request_id=request_id)
    return _respond(result, background_tasks, dispatcher, request_id)


@router.post("/tenancies/{tenancy_id}/notices/extension", response_model=NoticeSchema, status_code=201)
def offer_extension(
    tenancy_id: str,
    body: ExtensionOfferRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    """Offer to extend; the new rent may rise by at most 5% a year, pro-rated"""
    request_id = get_request_id(request)
    new_rent = Money.of(body.new_monthly_rent) if body.new_monthly_rent is not None else None
    result = service.offer_extension(
        tenancy_id,
        body.issued_by,
        body.extension_months,
        new_monthly_rent=new_rent,
        notes=body.notes,
        request_id=request_id,
    )
    return _respond(result, background_tasks, dispatcher, request_id)


@router.post("/tenancies/{tenancy_id}/notices/{notice_id}/respond", response_model=NoticeSchema)
def respond_to_extension(
    tenancy_id: str,
    notice_id: str,
    body: ExtensionResponseRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    """Lodger accepts or rejects a pending extension offer before its deadline"""
    request_id = get_request_id(request)
    result = service.respond_to_extension(tenancy_id, notice_id, body.accept, request_id=request_id)
    return _respond(result, background_tasks, dispatcher, request_id)
