"""Patient medical history endpoints."""

from fastapi import APIRouter

from doorstep.dependencies import CurrentUser, DatabaseSession
from doorstep.schemas.medical_history import MedicalHistoryResponse, MedicalHistoryUpdate
from doorstep.services.medical_history_service import MedicalHistoryService

router = APIRouter(prefix="/patients", tags=["Patients"])


@router.get("/me/medical-history", response_model=MedicalHistoryResponse)
async def get_my_medical_history(
    current_user: CurrentUser,
    db: DatabaseSession,
) -> MedicalHistoryResponse:
    """The caller's medical history, created empty on first view."""
    return await MedicalHistoryService(db).get_or_create(current_user.id)


@router.put("/me/medical-history", response_model=MedicalHistoryResponse)
async def update_my_medical_history(
    data: MedicalHistoryUpdate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> MedicalHistoryResponse:
    """Update the caller's medical history."""
    return await MedicalHistoryService(db).update(current_user.id, data)
