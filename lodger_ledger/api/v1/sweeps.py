"""POST /v1/sweeps/* - daily transitions triggered by the scheduler"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from lodger_ledger.api.dependencies import get_dispatcher, get_request_id, get_tenancy_service
from lodger_ledger.api.v1.schemas import SweepResponse
from lodger_ledger.jobs import sweeps
from lodger_ledger.jobs.sweeps import SweepReport
from lodger_ledger.services.dispatcher import IntentDispatcher
from lodger_ledger.services.tenancy_service import TenancyService

router = APIRouter()


def _respond(report: SweepReport, background_tasks: BackgroundTasks, dispatcher: IntentDispatcher, request_id: str):
    if report.intents:
        background_tasks.add_task(dispatcher.dispatch, report.intents, request_id)
    return SweepResponse(sweep=report.sweep, checked=report.checked, changed=report.changed, failed=report.failed)


@router.post("/sweeps/extensions", response_model=SweepResponse)
def auto_accept_extensions(
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    report = sweeps.auto_accept_extensions(service)
    return _respond(report, background_tasks, dispatcher, get_request_id(request))


@router.post("/sweeps/terminations", response_model=SweepResponse)
def complete_terminations(
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    report = sweeps.complete_terminations(service)
    return _respond(report, background_tasks, dispatcher, get_request_id(request))


@router.post("/sweeps/expiry-reminders", response_model=SweepResponse)
def expiry_reminders(
    background_tasks: BackgroundTasks,
    request: Request,
    service: TenancyService = Depends(get_tenancy_service),
    dispatcher: IntentDispatcher = Depends(get_dispatcher),
):
    report = sweeps.send_expiry_reminders(service)
    return _respond(report, background_tasks, dispatcher, get_request_id(request))
