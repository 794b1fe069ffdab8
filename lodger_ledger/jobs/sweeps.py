"""
Daily sweeps, invoked by an external scheduler.

Each sweep selects candidate tenancies with a lock-free query and then runs
the transition for every candidate through the locked service path, exactly
as a user command would. A failure on one tenancy is logged and reported
without stopping the rest.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, List

from lodger_ledger.config import settings
from lodger_ledger.domain.exceptions import DomainException
from lodger_ledger.domain.intents import CommandResult

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    sweep: str
    checked: int = 0
    changed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    intents: list = field(default_factory=list)


def _run(sweep: str, tenancy_ids: List[str], transition: Callable[[str], CommandResult]) -> SweepReport:
    report = SweepReport(sweep=sweep, checked=len(tenancy_ids))
    for tenancy_id in tenancy_ids:
        try:
            result = transition(tenancy_id)
        except DomainException as e:
            report.failed.append(tenancy_id)
            logger.error(f"Sweep {sweep} failed for tenancy: {e}", extra={"tenancy_id": tenancy_id, "code": e.code})
            continue
        if result.intents:
            report.changed.append(tenancy_id)
            report.intents.extend(result.intents)

    logger.info(
        f"Sweep {sweep} finished",
        extra={"sweep": sweep, "checked": report.checked, "changed": len(report.changed), "failed": len(report.failed)},
    )
    return report


def auto_accept_extensions(service) -> SweepReport:
    """Accept pending extension offers whose 14-day response window has closed"""
    today = service.clock().date()
    with service.reading() as repo:
        candidates = repo.ids_with_expired_offers(today)
    return _run("auto_accept_extensions", candidates, service.auto_accept_expired)


def complete_terminations(service) -> SweepReport:
    """NOTICE_GIVEN -> TERMINATED once the notice's effective date is reached"""
    today = service.clock().date()
    with service.reading() as repo:
        candidates = repo.ids_with_lapsed_notice(today)
    return _run("complete_terminations", candidates, service.complete_termination)


def send_expiry_reminders(service, window_days: int | None = None) -> SweepReport:
    window = settings.expiry_reminder_days if window_days is None else window_days
    today = service.clock().date()
    with service.reading() as repo:
        candidates = repo.ids_expiring_between(today, today + timedelta(days=window))
    return _run("expiry_reminders", candidates, lambda tenancy_id: service.expiry_reminder(tenancy_id, window))


def run_daily(service) -> List[SweepReport]:
    return [
        auto_accept_extensions(service),
        complete_terminations(service),
        send_expiry_reminders(service),
    ]
