"""Tenancy creation, signing, cancellation and lookup"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from lodger_ledger.api.dependencies import get_dispatcher, get_request_id, get_tenancy_service, schedule_intents
from lodger_ledger.api.v1.schemas import SignRequest, TenancyCreateRequest, TenancyListResponse, TenancyResponse
from lodger_ledger.domain import constants
from lodger_ledger.domain.models import PaymentType, PropertyAddress
from lodger_ledger.domain.money import Money
from lodger_ledger.services.dispatcher import IntentDispatcher
from lodger_ledger.services.tenancy_service import TenancyService

router = APIRouter()


@router.post("/tenancies", response_model=TenancyResponse, status_code=201)
def create_tenancy(
    body: TenancyCreateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    """
    Landlord offers a room to a lodger.

    The tenancy starts as a draft; the rent schedule and fund pool are only
    created when the lodger signs. A landlord may hold at most two open
    tenancies.
    """
    payment_type = PaymentType(body.payment_type)
    frequency = body.payment_frequency
    if payment_type == PaymentType.CYCLE and frequency is None:
        frequency = constants.DEFAULT_FREQUENCY

    result = service.create_tenancy(
        landlord_id=body.landlord_id,
        lodger_id=body.lodger_id,
        property_address=PropertyAddress(**body.property_address.model_dump()),
        room_description=body.room_description,
        start_date=body.start_date,
        initial_term_months=body.initial_term_months,
        monthly_rent=Money.of(body.monthly_rent),
        deposit_amount=Money.of(body.deposit_amount),
        deposit_applicable=body.deposit_applicable,
        payment_type=payment_type,
        payment_frequency=frequency,
        payment_day_of_month=body.payment_day_of_month,
        shared_areas=body.shared_areas,
        request_id=get_request_id(request),
    )
    schedule_intents(background_tasks, dispatcher, result, get_request_id(request))
    lifecycle = service.get(result.subject.id)
    return TenancyResponse.from_domain(lifecycle, service.clock().date())


@router.get("/tenancies", response_model=TenancyListResponse)
def list_tenancies(
    user_id: str = Query(..., description="Landlord or lodger identifier"),
    role: str = Query("landlord", pattern="^(landlord|lodger)$"),
    service: TenancyService = Depends(get_tenancy_service),
):
    today = service.clock().date()
    tenancies = service.list_tenancies(user_id, role)
    return TenancyListResponse(
        user_id=user_id,
        tenancies=[TenancyResponse.from_domain(lc, today) for lc in tenancies],
    )


@router.get("/tenancies/{tenancy_id}", response_model=TenancyResponse)
def get_tenancy(tenancy_id: str, service: TenancyService = Depends(get_tenancy_service)):
    return TenancyResponse.from_domain(service.get(tenancy_id), service.clock().date())


@router.post("/tenancies/{tenancy_id}/sign", response_model=TenancyResponse)
def sign_tenancy(
    tenancy_id: str,
    body: SignRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    """Lodger signs: the tenancy becomes active and its rent schedule is generated"""
    request_id = get_request_id(request)
    result = service.sign(
        tenancy_id,
        body.signature_text,
        photo_id_path=body.photo_id_path,
        date_of_birth=body.date_of_birth,
        id_expiry=body.id_expiry,
        request_id=request_id,
    )
    schedule_intents(background_tasks, dispatcher, result, request_id)
    return TenancyResponse.from_domain(service.get(tenancy_id), service.clock().date())


@router.post("/tenancies/{tenancy_id}/cancel", response_model=TenancyResponse)
def cancel_tenancy(
    tenancy_id: str,
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    """Withdraw an unsigned offer"""
    request_id = get_request_id(request)
    result = service.cancel(tenancy_id, request_id=request_id)
    schedule_intents(background_tasks, dispatcher, result, request_id)
    return TenancyResponse.from_domain(service.get(tenancy_id), service.clock().date())


@router.delete("/tenancies/{tenancy_id}/integrity-hold", status_code=204)
def clear_integrity_hold(
    tenancy_id: str,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
):
    """Operator release of a tenancy held after an integrity violation"""
    service.clear_integrity_hold(tenancy_id, request_id=get_request_id(request))
