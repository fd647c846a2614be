"""Integration tests for the Invoice Ninja client."""

from __future__ import annotations

import json
from uuid import uuid4

import httpx
import pytest
import respx

from solarcrew.config import InvoiceNinjaConfig
from solarcrew.database.models.project import Project, ProjectStatus, StatusSchema
from solarcrew.errors import InvoiceServiceFailure
from solarcrew.integrations.invoice_ninja import (
    DisabledInvoiceService,
    InvoiceNinjaClient,
    InvoiceResult,
    build_invoice_service,
)

BASE_URL = "https://invoicing.example.com"
INVOICES_URL = f"{BASE_URL}/api/v1/invoices"


def billed_project(billing_client_id: str | None = "client-42") -> Project:
    return Project(
        id=uuid4(),
        firm_id=uuid4(),
        name="Roof array, 14 panels",
        status_schema=StatusSchema.extended,
        status=ProjectStatus.work_completed,
        billing_client_id=billing_client_id,
    )


@pytest.fixture
def config() -> InvoiceNinjaConfig:
    return InvoiceNinjaConfig(enabled=True, url=f"{BASE_URL}/", api_token="secret-token")


@respx.mock
@pytest.mark.asyncio
async def test_create_invoice_success(config: InvoiceNinjaConfig) -> None:
    """Mock a created invoice and check the request sent."""
    route = respx.post(INVOICES_URL).mock(
        return_value=httpx.Response(200, json={"data": {"id": "Wpmbk5ezJn", "number": "0042"}})
    )
    project = billed_project()
    client = InvoiceNinjaClient(config)

    result = await client.create_invoice(project)
    await client.close()

    assert result == InvoiceResult(number="0042", url=f"{BASE_URL}/invoices/Wpmbk5ezJn")

    request = route.calls.last.request
    assert request.headers["X-Api-Token"] == "secret-token"
    assert request.headers["X-Requested-With"] == "XMLHttpRequest"
    assert json.loads(request.content) == {
        "client_id": "client-42",
        "po_number": str(project.id),
        "public_notes": "Roof array, 14 panels",
    }


@respx.mock
@pytest.mark.asyncio
async def test_create_invoice_server_error(config: InvoiceNinjaConfig) -> None:
    respx.post(INVOICES_URL).mock(return_value=httpx.Response(500, text="Internal Error"))
    client = InvoiceNinjaClient(config)

    with pytest.raises(InvoiceServiceFailure, match="API returned 500"):
        await client.create_invoice(billed_project())

    await client.close()


@respx.mock
@pytest.mark.asyncio
async def test_create_invoice_timeout(config: InvoiceNinjaConfig) -> None:
    respx.post(INVOICES_URL).mock(side_effect=httpx.ReadTimeout("timed out"))
    client = InvoiceNinjaClient(config)

    with pytest.raises(InvoiceServiceFailure, match="request timed out"):
        await client.create_invoice(billed_project())

    await client.close()


@respx.mock
@pytest.mark.asyncio
async def test_create_invoice_connection_error(config: InvoiceNinjaConfig) -> None:
    respx.post(INVOICES_URL).mock(side_effect=httpx.ConnectError("Connection failed"))
    client = InvoiceNinjaClient(config)

    with pytest.raises(InvoiceServiceFailure, match="cannot connect"):
        await client.create_invoice(billed_project())

    await client.close()


@respx.mock
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"invoice": {}},
        {"data": {"id": "x"}},
        {"data": None},
    ],
)
async def test_create_invoice_malformed_response(config: InvoiceNinjaConfig, body) -> None:
    respx.post(INVOICES_URL).mock(return_value=httpx.Response(200, json=body))
    client = InvoiceNinjaClient(config)

    with pytest.raises(InvoiceServiceFailure, match="unexpected response format"):
        await client.create_invoice(billed_project())

    await client.close()


@respx.mock
@pytest.mark.asyncio
async def test_create_invoice_empty_number(config: InvoiceNinjaConfig) -> None:
    respx.post(INVOICES_URL).mock(
        return_value=httpx.Response(200, json={"data": {"id": "abc", "number": ""}})
    )
    client = InvoiceNinjaClient(config)

    with pytest.raises(InvoiceServiceFailure, match="invoice number missing"):
        await client.create_invoice(billed_project())

    await client.close()


@respx.mock
@pytest.mark.asyncio
async def test_create_invoice_without_billing_client(config: InvoiceNinjaConfig) -> None:
    """No request is made when the project has no billing client."""
    route = respx.post(INVOICES_URL).mock(return_value=httpx.Response(200))
    client = InvoiceNinjaClient(config)

    with pytest.raises(InvoiceServiceFailure, match="no billing client"):
        await client.create_invoice(billed_project(billing_client_id=None))

    assert not route.called


@pytest.mark.asyncio
async def test_disabled_service_refuses() -> None:
    service = build_invoice_service(InvoiceNinjaConfig(enabled=False))

    assert isinstance(service, DisabledInvoiceService)
    with pytest.raises(InvoiceServiceFailure, match="not configured"):
        await service.create_invoice(billed_project())


def test_build_enabled_service(config: InvoiceNinjaConfig) -> None:
    service = build_invoice_service(config)
    assert isinstance(service, InvoiceNinjaClient)
    assert service.base_url == BASE_URL
