"""Fund pool and deductions against deposit and advance rent"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from lodger_ledger.api.dependencies import get_dispatcher, get_request_id, get_tenancy_service, schedule_intents
from lodger_ledger.api.v1.schemas import DeductionRequest, DeductionSchema, FundsResponse
from lodger_ledger.domain.money import Money
from lodger_ledger.services.dispatcher import IntentDispatcher
from lodger_ledger.services.tenancy_service import TenancyService

router = APIRouter()


@router.get("/tenancies/{tenancy_id}/funds", response_model=FundsResponse)
def get_funds(tenancy_id: str, service: TenancyService = Depends(get_tenancy_service)):
    funds = service.available_funds(tenancy_id)
    pool = funds.pool
    return FundsResponse(
        tenancy_id=tenancy_id,
        original_deposit=pool.original_deposit.amount,
        available_deposit=pool.available_deposit.amount,
        original_advance=pool.original_advance.amount,
        available_advance=pool.available_advance.amount,
        total_available=funds.total_available().amount,
        deductions=[DeductionSchema.from_domain(d) for d in funds.deductions],
    )


@router.post("/tenancies/{tenancy_id}/deductions", response_model=DeductionSchema, status_code=201)
def record_deduction(
    tenancy_id: str,
    body: DeductionRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    """
    Deduct from deposit and/or advance rent.

    The split must add up to the total (within 1p) and each part must be
    covered by what is left in its pool.
    """
    request_id = get_request_id(request)
    result = service.record_deduction(
        tenancy_id,
        body.deduction_type,
        body.description,
        Money.of(body.total_amount),
        Money.of(body.from_deposit),
        Money.of(body.from_advance),
        notes=body.notes,
        request_id=request_id,
    )
    schedule_intents(background_tasks, dispatcher, result, request_id)
    return DeductionSchema.from_domain(result.subject)


@router.post("/tenancies/{tenancy_id}/deductions/{deduction_id}/statement", response_model=DeductionSchema, status_code=202)
def request_statement(
    tenancy_id: str,
    deduction_id: str,
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    """Queue generation of the deduction statement sent to the lodger"""
    request_id = get_request_id(request)
    result = service.request_deduction_statement(tenancy_id, deduction_id, request_id=request_id)
    schedule_intents(background_tasks, dispatcher, result, request_id)
    return DeductionSchema.from_domain(result.subject)
