"""Tests for the IntaSend STK push adapter."""

import json

import httpx
import pytest

from doorstep.core.exceptions import ConfigurationError, GatewayError
from doorstep.services.payment_gateway import InstasendGateway

BASE_URL = "https://sandbox.intasend.test"


def make_gateway(handler, secret_key: str | None = "ISSecretKey_test") -> InstasendGateway:
    return InstasendGateway(
        secret_key=secret_key,
        base_url=BASE_URL,
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


async def initiate(gateway: InstasendGateway):
    return await gateway.initiate_payment(
        amount=2000,
        phone_number="254712345678",
        email="patient@example.com",
        narrative="Payment for medical appointment",
        api_ref="3f1c2b9e-ref",
    )


@pytest.mark.asyncio
async def test_initiate_payment_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"id": "chk_123", "invoice": {"invoice_id": "INV9XK2", "state": "PENDING"}},
        )

    result = await initiate(make_gateway(handler))

    assert result.tracking_id == "INV9XK2"
    assert result.checkout_id == "chk_123"
    assert result.state == "PENDING"

    assert len(seen) == 1
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == f"{BASE_URL}/api/v1/payment/mpesa-stk-push/"
    assert request.headers["Authorization"] == "Bearer ISSecretKey_test"
    assert json.loads(request.content) == {
        "amount": 2000,
        "phone_number": "254712345678",
        "email": "patient@example.com",
        "narrative": "Payment for medical appointment",
        "currency": "KES",
        "api_ref": "3f1c2b9e-ref",
    }


@pytest.mark.asyncio
async def test_top_level_tracking_id_preferred() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            201,
            json={"id": 7, "tracking_id": "TRK1", "invoice": {"invoice_id": "INV1"}},
        )

    result = await initiate(make_gateway(handler))
    assert result.tracking_id == "TRK1"
    assert result.checkout_id == "7"


@pytest.mark.asyncio
async def test_provider_error_message_surfaced() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"message": "Invalid phone number"})

    with pytest.raises(GatewayError) as exc_info:
        await initiate(make_gateway(handler))
    assert exc_info.value.message == "Instasend API error: Invalid phone number"
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_non_json_error_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="Service Unavailable")

    with pytest.raises(GatewayError) as exc_info:
        await initiate(make_gateway(handler))
    assert "Service Unavailable" in exc_info.value.message


@pytest.mark.asyncio
async def test_missing_tracking_id() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "chk_1"})

    with pytest.raises(GatewayError):
        await initiate(make_gateway(handler))


@pytest.mark.asyncio
async def test_network_failure_not_retried() -> None:
    attempts = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GatewayError):
        await initiate(make_gateway(handler))
    assert attempts == 1


@pytest.mark.asyncio
async def test_missing_secret_key() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(ConfigurationError):
        await initiate(make_gateway(handler, secret_key=None))
