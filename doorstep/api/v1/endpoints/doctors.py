"""Doctor credential and dashboard endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from doorstep.dependencies import (
    CacheManagerDep,
    CurrentAdmin,
    CurrentDoctor,
    DatabaseSession,
)
from doorstep.schemas.appointments import DoctorStatsResponse
from doorstep.schemas.credentials import (
    CredentialsResponse,
    CredentialsUpdate,
    DoctorDirectoryResponse,
    VerificationRequest,
)
from doorstep.services.appointment_service import AppointmentService
from doorstep.services.credential_service import CredentialService

router = APIRouter(prefix="/doctors", tags=["Doctors"])


def get_credential_service(
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> CredentialService:
    """Get credential service instance."""
    return CredentialService(db, cache_manager=cache_manager)


@router.get("", response_model=DoctorDirectoryResponse)
async def list_doctors(
    specialty: str | None = Query(None, description="Filter by specialty"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    service: CredentialService = Depends(get_credential_service),
) -> DoctorDirectoryResponse:
    """
    Public directory of verified doctors.

    - **specialty**: case-insensitive exact specialty match
    - **page** / **page_size**: pagination
    """
    return await service.list_verified(specialty=specialty, page=page, page_size=page_size)


@router.get("/me/credentials", response_model=CredentialsResponse)
async def get_my_credentials(
    current_doctor: CurrentDoctor,
    service: CredentialService = Depends(get_credential_service),
) -> CredentialsResponse:
    """The doctor's own credentials, created empty on first view."""
    return await service.get_or_create(current_doctor.id)


@router.put("/me/credentials", response_model=CredentialsResponse)
async def update_my_credentials(
    data: CredentialsUpdate,
    current_doctor: CurrentDoctor,
    service: CredentialService = Depends(get_credential_service),
) -> CredentialsResponse:
    """Update the doctor's own credentials. Verification is admin-only."""
    return await service.update(current_doctor.id, data)


@router.get("/me/stats", response_model=DoctorStatsResponse)
async def get_my_stats(
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
) -> DoctorStatsResponse:
    """Appointment counts and earnings from completed payments."""
    return await AppointmentService(db).doctor_stats(current_doctor.id)


@router.patch("/{doctor_id}/credentials/verification", response_model=CredentialsResponse)
async def verify_doctor_credentials(
    doctor_id: UUID,
    data: VerificationRequest,
    admin_user: CurrentAdmin,
    service: CredentialService = Depends(get_credential_service),
) -> CredentialsResponse:
    """Mark a doctor's credentials verified or unverified (admin only)."""
    return await service.set_verified(doctor_id, data.verified, reviewer_id=admin_user.id)
