"""Doctor credential schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class CredentialsUpdate(BaseModel):
    """Fields a doctor may edit on their own credentials."""

    license_number: str | None = Field(None, max_length=100)
    license_state: str | None = Field(None, max_length=100)
    medical_school: str | None = Field(None, max_length=200)
    graduation_year: int | None = Field(None, ge=1900, le=2100)
    years_experience: int | None = Field(None, ge=0, le=80)
    specialties: list[str] | None = None
    board_certifications: list[str] | None = None
    bio: str | None = Field(None, max_length=2000)


class CredentialsResponse(BaseModel):
    """Doctor credentials response schema."""

    id: UUID
    doctor_id: UUID
    license_number: str
    license_state: str
    medical_school: str | None = None
    graduation_year: int | None = None
    years_experience: int | None = None
    specialties: list[str] = []
    board_certifications: list[str] = []
    bio: str | None = None
    verified: bool
    verified_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class VerificationRequest(BaseModel):
    """Admin decision on a doctor's credentials."""

    verified: bool


class DoctorDirectoryEntry(BaseModel):
    """Public view of a verified doctor."""

    doctor_id: UUID
    specialties: list[str] = []
    years_experience: int | None = None
    medical_school: str | None = None
    bio: str | None = None

    model_config = {"from_attributes": True}


class DoctorDirectoryResponse(BaseModel):
    """Paginated list of verified doctors."""

    total: int
    page: int
    page_size: int
    items: list[DoctorDirectoryEntry]
