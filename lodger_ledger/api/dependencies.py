"""Dependency injection for FastAPI endpoints"""

from fastapi import BackgroundTasks, Depends, Request

from lodger_ledger.domain.intents import CommandResult
from lodger_ledger.services.dispatcher import IntentDispatcher
from lodger_ledger.services.tenancy_service import TenancyService

_service = TenancyService()


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_tenancy_service() -> TenancyService:
    """Provide the process-wide command service (it owns the keyed locks)"""
    return _service


def get_dispatcher(service: TenancyService = Depends(get_tenancy_service)) -> IntentDispatcher:
    """Provide an intent dispatcher bound to the command service"""
    return IntentDispatcher(service)


def schedule_intents(
    background_tasks: BackgroundTasks,
    dispatcher: IntentDispatcher,
    result: CommandResult,
    request_id: str,
) -> None:
    """Run the command's intents after the response is sent"""
    if result.intents:
        background_tasks.add_task(dispatcher.dispatch, list(result.intents), request_id)
