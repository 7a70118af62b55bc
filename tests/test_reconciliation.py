"""Tests for provider payment callbacks."""

import json
from uuid import UUID

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from doorstep.config import settings
from doorstep.core.exceptions import ValidationError
from doorstep.core.webhook_security import SIGNATURE_HEADER, compute_signature, verify_callback
from doorstep.models import appointments
from doorstep.schemas.appointments import PaymentStatus
from doorstep.services.reconciliation_service import map_provider_state


async def fetch_row(db_session, appointment_id: str):
    result = await db_session.execute(
        select(appointments).where(appointments.c.id == UUID(appointment_id))
    )
    return result.mappings().one()


@pytest.mark.asyncio
async def test_success_callback_confirms_appointment(
    client: AsyncClient,
    db_session,
    booked: dict,
    send_callback,
) -> None:
    response = await send_callback(booked["tracking_id"], "COMPLETE")

    assert response.status_code == 200
    data = response.json()
    assert data["received"] is True
    assert data["applied"] is True
    assert data["target"] == "appointment"
    assert data["payment_status"] == "completed"

    row = await fetch_row(db_session, booked["appointment"]["id"])
    assert row["payment_status"] == "completed"
    assert row["status"] == "confirmed"
    assert row["paid_at"] is not None


@pytest.mark.asyncio
async def test_duplicate_success_callback_is_noop(
    client: AsyncClient,
    db_session,
    booked: dict,
    send_callback,
) -> None:
    """Redelivery of a processed callback succeeds without changing anything."""
    first = await send_callback(booked["tracking_id"], "COMPLETE")
    paid_at = (await fetch_row(db_session, booked["appointment"]["id"]))["paid_at"]

    second = await send_callback(booked["tracking_id"], "COMPLETE")

    assert first.json()["applied"] is True
    assert second.status_code == 200
    assert second.json()["applied"] is False
    assert second.json()["payment_status"] == "completed"

    row = await fetch_row(db_session, booked["appointment"]["id"])
    assert row["payment_status"] == "completed"
    assert row["paid_at"] == paid_at


@pytest.mark.asyncio
async def test_failed_callback_keeps_appointment_pending(
    client: AsyncClient,
    db_session,
    booked: dict,
    send_callback,
) -> None:
    response = await send_callback(
        booked["tracking_id"], "FAILED", failed_reason="Request cancelled by user"
    )

    assert response.status_code == 200
    assert response.json()["payment_status"] == "failed"

    row = await fetch_row(db_session, booked["appointment"]["id"])
    assert row["payment_status"] == "failed"
    assert row["status"] == "pending"


@pytest.mark.asyncio
async def test_success_after_failure_is_ignored(
    client: AsyncClient,
    db_session,
    booked: dict,
    send_callback,
) -> None:
    await send_callback(booked["tracking_id"], "FAILED")
    response = await send_callback(booked["tracking_id"], "COMPLETE")

    assert response.json()["applied"] is False
    row = await fetch_row(db_session, booked["appointment"]["id"])
    assert row["payment_status"] == "failed"


@pytest.mark.asyncio
async def test_interim_callback_changes_nothing(
    client: AsyncClient,
    db_session,
    booked: dict,
    send_callback,
) -> None:
    response = await send_callback(booked["tracking_id"], "PROCESSING")

    assert response.status_code == 200
    assert response.json()["applied"] is False
    row = await fetch_row(db_session, booked["appointment"]["id"])
    assert row["payment_status"] == "pending"


@pytest.mark.asyncio
async def test_unknown_tracking_id(
    client: AsyncClient,
    db_session,
    booked: dict,
    send_callback,
) -> None:
    """Unknown ids are answered 404 and touch no row."""
    response = await send_callback("UNKNOWN123", "COMPLETE")

    assert response.status_code == 404
    assert response.json()["error"] == "NotFoundError"

    row = await fetch_row(db_session, booked["appointment"]["id"])
    assert row["payment_status"] == "pending"
    assert row["status"] == "pending"


@pytest.mark.asyncio
async def test_payment_for_cancelled_appointment_not_applied(
    client: AsyncClient,
    db_session,
    booked: dict,
    doctor_headers: dict,
    send_callback,
) -> None:
    cancel = await client.patch(
        f"/api/v1/appointments/{booked['appointment']['id']}/status",
        json={"status": "cancelled"},
        headers=doctor_headers,
    )
    assert cancel.status_code == 200

    response = await send_callback(booked["tracking_id"], "COMPLETE")

    assert response.status_code == 200
    assert response.json()["applied"] is False
    row = await fetch_row(db_session, booked["appointment"]["id"])
    assert row["status"] == "cancelled"
    assert row["payment_status"] == "pending"


@pytest.mark.asyncio
async def test_bad_signature_rejected(
    client: AsyncClient,
    db_session,
    booked: dict,
) -> None:
    body = json.dumps({"invoice_id": booked["tracking_id"], "state": "COMPLETE"}).encode()

    response = await client.post(
        "/api/v1/payments/callback",
        content=body,
        headers={SIGNATURE_HEADER: "deadbeef", "Content-Type": "application/json"},
    )

    assert response.status_code == 401
    row = await fetch_row(db_session, booked["appointment"]["id"])
    assert row["payment_status"] == "pending"


@pytest.mark.asyncio
async def test_challenge_authenticates_callback(
    client: AsyncClient,
    booked: dict,
) -> None:
    body = json.dumps(
        {
            "invoice_id": booked["tracking_id"],
            "state": "COMPLETE",
            "challenge": settings.instasend_webhook_secret,
        }
    ).encode()

    response = await client.post(
        "/api/v1/payments/callback",
        content=body,
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 200
    assert response.json()["applied"] is True


@pytest.mark.asyncio
async def test_callback_without_webhook_secret(
    client: AsyncClient,
    booked: dict,
    send_callback,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(settings, "instasend_webhook_secret", None)

    response = await send_callback(booked["tracking_id"], "COMPLETE")

    assert response.status_code == 500
    assert response.json()["error"] == "ConfigurationError"


@pytest.mark.asyncio
async def test_callback_not_json(client: AsyncClient) -> None:
    body = b"state=COMPLETE"
    signature = compute_signature(settings.instasend_webhook_secret or "", body)

    response = await client.post(
        "/api/v1/payments/callback",
        content=body,
        headers={SIGNATURE_HEADER: signature},
    )
    assert response.status_code == 400


@pytest.mark.parametrize(
    "state,expected",
    [
        ("COMPLETE", PaymentStatus.COMPLETED),
        ("complete", PaymentStatus.COMPLETED),
        ("FAILED", PaymentStatus.FAILED),
        ("CANCELLED", PaymentStatus.FAILED),
        ("PENDING", None),
        ("PROCESSING", None),
    ],
)
def test_map_provider_state(state: str, expected: PaymentStatus | None) -> None:
    assert map_provider_state(state) == expected


def test_map_provider_state_unknown() -> None:
    with pytest.raises(ValidationError):
        map_provider_state("EXPLODED")
    with pytest.raises(ValidationError):
        map_provider_state(None)


def test_verify_callback() -> None:
    body = b'{"invoice_id": "ABC"}'
    signature = compute_signature("s3cret", body)

    assert verify_callback("s3cret", body, signature)
    assert verify_callback("s3cret", body, signature.upper())
    assert not verify_callback("s3cret", body + b" ", signature)
    assert not verify_callback("s3cret", body, None)
    assert verify_callback("s3cret", body, None, challenge="s3cret")
    assert not verify_callback("s3cret", body, None, challenge="")
