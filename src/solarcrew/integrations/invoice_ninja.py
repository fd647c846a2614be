"""Invoice Ninja client used when a project reaches a billed status.

The status engine awaits ``create_invoice`` while it holds the project
lock; every failure is raised as ``InvoiceServiceFailure`` so the engine
can roll the status write back.

Example usage:
    >>> from solarcrew.config import InvoiceNinjaConfig
    >>> client = InvoiceNinjaClient(InvoiceNinjaConfig(enabled=True, api_token="..."))
    >>> result = await client.create_invoice(project)
    >>> result.number, result.url
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import httpx
import structlog

from solarcrew.config import InvoiceNinjaConfig
from solarcrew.database.models.project import Project
from solarcrew.errors import InvoiceServiceFailure

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class InvoiceResult:
    """Invoice created for a project.

    Attributes:
        number: Invoice number assigned by the invoicing system.
        url: Link to the invoice in the invoicing system.
    """

    number: str
    url: str | None = None


class InvoiceService(Protocol):
    """Creates invoices for finished projects."""

    async def create_invoice(self, project: Project) -> InvoiceResult: ...

    async def close(self) -> None: ...


class DisabledInvoiceService:
    """Invoice service used when no invoicing backend is configured."""

    async def create_invoice(self, project: Project) -> InvoiceResult:
        raise InvoiceServiceFailure("invoicing is not configured")

    async def close(self) -> None:
        return None


class InvoiceNinjaClient:
    """Async client for the Invoice Ninja v5 API.

    Attributes:
        config: Invoice Ninja configuration containing URL, token and timeout
    """

    def __init__(self, config: InvoiceNinjaConfig) -> None:
        self.config = config
        self.base_url = config.url.rstrip("/")
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.config.timeout_seconds,
                headers={
                    "X-Api-Token": self.config.api_token or "",
                    "X-Requested-With": "XMLHttpRequest",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def create_invoice(self, project: Project) -> InvoiceResult:
        """Create an invoice for the project's billing client.

        Args:
            project: Project being billed. ``billing_client_id`` must be set.

        Returns:
            InvoiceResult with the assigned number and a link to the invoice.

        Raises:
            InvoiceServiceFailure: On missing billing client, transport errors,
                non-2xx responses, or malformed response bodies.
        """
        if not project.billing_client_id:
            raise InvoiceServiceFailure(f"project {project.id} has no billing client")

        payload: dict[str, Any] = {
            "client_id": project.billing_client_id,
            "po_number": str(project.id),
            "public_notes": project.name,
        }

        try:
            client = await self._get_client()
            response = await client.post("/api/v1/invoices", json=payload)
        except httpx.TimeoutException as e:
            logger.error("invoice_timeout", project_id=str(project.id), error=str(e))
            raise InvoiceServiceFailure("request timed out") from e
        except httpx.RequestError as e:
            logger.error("invoice_connection_error", project_id=str(project.id), error=str(e))
            raise InvoiceServiceFailure(f"cannot connect to {self.base_url}") from e

        if not response.is_success:
            logger.error(
                "invoice_api_error",
                project_id=str(project.id),
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            raise InvoiceServiceFailure(f"API returned {response.status_code}")

        try:
            data = response.json()["data"]
            invoice_id = data["id"]
            number = data["number"]
        except (ValueError, KeyError, TypeError) as e:
            raise InvoiceServiceFailure("unexpected response format") from e

        if not number:
            raise InvoiceServiceFailure("invoice number missing in response")

        logger.info(
            "invoice_created",
            project_id=str(project.id),
            invoice_number=number,
        )
        return InvoiceResult(number=str(number), url=f"{self.base_url}/invoices/{invoice_id}")


def build_invoice_service(config: InvoiceNinjaConfig) -> InvoiceService:
    """Return the configured invoice service."""
    if config.enabled:
        return InvoiceNinjaClient(config)
    return DisabledInvoiceService()
