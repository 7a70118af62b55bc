"""Patient medical history schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class MedicalHistoryUpdate(BaseModel):
    """Fields a patient may edit on their own history."""

    allergies: list[str] | None = None
    medications: list[str] | None = None
    medical_conditions: list[str] | None = None
    blood_type: str | None = Field(None, max_length=10)
    emergency_contact_name: str | None = Field(None, max_length=200)
    emergency_contact_phone: str | None = Field(None, max_length=20)
    insurance_provider: str | None = Field(None, max_length=200)
    insurance_policy_number: str | None = Field(None, max_length=100)
    notes: str | None = Field(None, max_length=2000)


class MedicalHistoryResponse(BaseModel):
    """Patient medical history response schema."""

    id: UUID
    patient_id: UUID
    allergies: list[str] = []
    medications: list[str] = []
    medical_conditions: list[str] = []
    blood_type: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    insurance_provider: str | None = None
    insurance_policy_number: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
