"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Payment status enumeration."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ConsultationType(str, Enum):
    """How the doctor sees the patient."""

    HOME_VISIT = "home_visit"
    CLINIC = "clinic"
    TELECONSULTATION = "teleconsultation"


class AppointmentCreate(BaseModel):
    """Booking request sent by a patient.

    Business rules (minimum fee, future date, phone format) are enforced by
    the booking service so they surface as ``ValidationError``.
    """

    doctor_id: UUID
    appointment_date: datetime
    consultation_type: ConsultationType = ConsultationType.HOME_VISIT
    address: str = Field(..., max_length=500)
    phone_number: str = Field(..., max_length=20)
    amount: int
    notes: str | None = Field(None, max_length=1000)
    email: EmailStr | None = None


class AppointmentStatusUpdate(BaseModel):
    """Schema for a doctor updating appointment status."""

    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    doctor_id: UUID
    patient_id: UUID
    appointment_date: datetime
    consultation_type: ConsultationType
    address: str | None = None
    notes: str | None = None
    amount: int
    status: AppointmentStatus
    payment_status: PaymentStatus
    tracking_id: str | None = None
    paid_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    """Created appointment plus the payment prompt that was sent."""

    success: bool = True
    appointment: AppointmentResponse
    tracking_id: str
    checkout_id: str | None = None
    message: str = "Appointment booked. Check your phone for the M-Pesa prompt."


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    payment_status: PaymentStatus | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class DoctorStatsResponse(BaseModel):
    """Doctor dashboard counters."""

    total_appointments: int
    pending_appointments: int
    completed_appointments: int
    total_earnings: int
