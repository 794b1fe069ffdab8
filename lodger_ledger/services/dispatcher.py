"""Post-commit execution of side-effect intents"""

import asyncio
import logging
from typing import Iterable

import httpx

from lodger_ledger.domain.exceptions import DomainException
from lodger_ledger.domain.intents import DOCUMENT_INTENTS, Notify
from lodger_ledger.infrastructure.clients.documents import DocumentClient
from lodger_ledger.infrastructure.clients.notifier import NotifierClient
from lodger_ledger.infrastructure.observability.metrics import intent_failure_counter

logger = logging.getLogger(__name__)


class IntentDispatcher:
    """
    Runs intents one by one after the command that produced them committed.

    Notifications go to the notifier; document intents go to the document
    generator and the returned reference is written back through the locked
    service. A failed intent is logged and counted; it never undoes the
    command and never stops the remaining intents.
    """

    def __init__(self, service, notifier: NotifierClient | None = None, documents: DocumentClient | None = None):
        self.service = service
        self.notifier = notifier or NotifierClient()
        self.documents = documents or DocumentClient()

    async def dispatch(self, intents: Iterable, request_id: str = "internal") -> int:
        """Returns the number of intents that failed"""
        failures = 0
        for intent in intents:
            try:
                await self._run(intent)
            except (httpx.HTTPError, DomainException) as e:
                failures += 1
                intent_failure_counter.labels(intent=type(intent).__name__).inc()
                logger.error(
                    f"Intent dispatch failed: {e}",
                    extra={"request_id": request_id, "intent": type(intent).__name__},
                )
        return failures

    async def _run(self, intent) -> None:
        if isinstance(intent, Notify):
            await self.notifier.send(intent)
        elif isinstance(intent, DOCUMENT_INTENTS):
            reference = await self.documents.generate(intent)
            # Blocking DB work off the event loop
            await asyncio.to_thread(self.service.attach_document, intent.tenancy_id, intent, reference)
        else:
            raise TypeError(f"Unknown intent: {type(intent).__name__}")
