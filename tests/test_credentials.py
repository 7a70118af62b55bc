"""Tests for doctor credentials and the public directory."""

from uuid import uuid4

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_credentials_created_on_first_view(
    client: AsyncClient,
    doctor: dict,
    doctor_headers: dict,
) -> None:
    response = await client.get("/api/v1/doctors/me/credentials", headers=doctor_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["doctor_id"] == str(doctor["id"])
    assert data["verified"] is False
    assert data["specialties"] == []
    assert data["license_number"] == ""


@pytest.mark.asyncio
async def test_update_credentials(
    client: AsyncClient,
    doctor_headers: dict,
    cache_manager,
) -> None:
    response = await client.put(
        "/api/v1/doctors/me/credentials",
        json={
            "license_number": "KMPDC-12345",
            "license_state": "Nairobi",
            "years_experience": 9,
            "specialties": [" Cardiology ", "", "Cardiology", "Internal Medicine"],
            "verified": True,
        },
        headers=doctor_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["license_number"] == "KMPDC-12345"
    assert data["specialties"] == ["Cardiology", "Internal Medicine"]
    assert data["years_experience"] == 9
    # Only admins verify
    assert data["verified"] is False
    cache_manager.delete_pattern.assert_called_with("doctors:directory:*")


@pytest.mark.asyncio
async def test_patient_cannot_edit_credentials(
    client: AsyncClient,
    patient_headers: dict,
) -> None:
    response = await client.put(
        "/api/v1/doctors/me/credentials",
        json={"license_number": "FAKE"},
        headers=patient_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_verification_and_directory(
    client: AsyncClient,
    doctor: dict,
    doctor_headers: dict,
    admin: dict,
    admin_headers: dict,
) -> None:
    await client.put(
        "/api/v1/doctors/me/credentials",
        json={"specialties": ["Pediatrics"], "bio": "Home visits across Westlands"},
        headers=doctor_headers,
    )

    listed = await client.get("/api/v1/doctors")
    assert listed.json()["total"] == 0

    verify = await client.patch(
        f"/api/v1/doctors/{doctor['id']}/credentials/verification",
        json={"verified": True},
        headers=admin_headers,
    )
    assert verify.status_code == 200
    assert verify.json()["verified"] is True
    assert verify.json()["verified_at"] is not None

    listed = await client.get("/api/v1/doctors")
    assert listed.json()["total"] == 1
    assert listed.json()["items"][0]["doctor_id"] == str(doctor["id"])

    by_specialty = await client.get("/api/v1/doctors", params={"specialty": "pediatrics"})
    other_specialty = await client.get("/api/v1/doctors", params={"specialty": "Dermatology"})
    assert by_specialty.json()["total"] == 1
    assert other_specialty.json()["total"] == 0


@pytest.mark.asyncio
async def test_verification_requires_admin(
    client: AsyncClient,
    doctor: dict,
    doctor_headers: dict,
) -> None:
    response = await client.patch(
        f"/api/v1/doctors/{doctor['id']}/credentials/verification",
        json={"verified": True},
        headers=doctor_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_verify_unknown_doctor(client: AsyncClient, admin_headers: dict) -> None:
    response = await client.patch(
        f"/api/v1/doctors/{uuid4()}/credentials/verification",
        json={"verified": True},
        headers=admin_headers,
    )
    assert response.status_code == 404
