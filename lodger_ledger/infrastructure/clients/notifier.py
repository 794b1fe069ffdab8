"""Notifier client with exponential backoff retry logic"""

import httpx
import asyncio
from lodger_ledger.config import settings
from lodger_ledger.domain.intents import Notify
from lodger_ledger.infrastructure.observability.metrics import notify_latency_histogram


class NotifierClient:
    """Client for delivering user notifications"""

    def __init__(
        self,
        notifier_url: str | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.notifier_url = notifier_url or settings.notifier_url
        self.max_retries = max_retries or settings.notify_max_retries
        self.backoff_base = settings.notify_backoff_base if backoff_base is None else backoff_base
        self.timeout = settings.http_timeout_seconds
        self.transport = transport

    async def send(self, intent: Notify) -> None:
        """
        Deliver one notification with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^attempt)
        - Retries on HTTP errors and network failures
        - Re-raises the last error once retries are exhausted
        """
        payload = {
            "user_id": intent.user_id,
            "type": intent.type,
            "title": intent.title,
            "message": intent.message,
            "tenancy_id": intent.tenancy_id,
        }
        attempt = 0
        async with httpx.AsyncClient(transport=self.transport) as client:
            while attempt < self.max_retries:
                try:
                    with notify_latency_histogram.time():
                        response = await client.post(
                            self.notifier_url,
                            json=payload,
                            timeout=self.timeout,
                        )
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError):
                    attempt += 1

                    if attempt >= self.max_retries:
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
