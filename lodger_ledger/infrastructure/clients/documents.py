"""Document generator HTTP client for agreements, letters and statements"""

import httpx
from dataclasses import asdict
from datetime import date
from lodger_ledger.config import settings
from lodger_ledger.domain.exceptions import DocumentServiceError
from lodger_ledger.domain.intents import document_kind
from lodger_ledger.infrastructure.observability.metrics import document_latency_histogram


class DocumentClient:
    """Client for the external document generator"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.document_service_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def generate(self, intent) -> str:
        """
        Render the document for a Generate* intent.

        Returns:
            Opaque reference to the stored file; the document bytes never
            pass through this service.

        Raises:
            DocumentServiceError: On timeout, HTTP errors, or invalid response
        """
        kind = document_kind(intent)
        payload = {
            key: value.isoformat() if isinstance(value, date) else value
            for key, value in asdict(intent).items()
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with document_latency_histogram.labels(kind=kind).time():
                    response = await client.post(f"{self.base_url}/documents/{kind}", json=payload)
                response.raise_for_status()
                reference = response.json()["path"]
                if not isinstance(reference, str) or not reference:
                    raise ValueError("empty document reference")
                return reference

            except httpx.TimeoutException as e:
                raise DocumentServiceError(f"Document service timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise DocumentServiceError(f"Document service error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise DocumentServiceError(f"Document service unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise DocumentServiceError(f"Invalid response from document service: {e}") from e
