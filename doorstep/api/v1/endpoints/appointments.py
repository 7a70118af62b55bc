"""Appointment endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Query, status

from doorstep.dependencies import (
    CurrentUser,
    DatabaseSession,
    PaymentGateway,
    PaymentRateLimit,
)
from doorstep.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    BookingResponse,
    PaymentStatus,
)
from doorstep.services.appointment_service import AppointmentService
from doorstep.services.booking_service import BookingService

router = APIRouter()


@router.post(
    "/",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[PaymentRateLimit],
    summary="Book an appointment and send the payment prompt",
)
async def book_appointment(
    data: AppointmentCreate,
    current_user: CurrentUser,
    db: DatabaseSession,
    gateway: PaymentGateway,
) -> BookingResponse:
    """
    Book an appointment for the authenticated patient.

    The appointment is created in ``pending/pending`` and an M-Pesa prompt is
    sent to ``phone_number``. If the prompt cannot be sent the appointment is
    kept and the error is returned; retry with ``POST /payments/appointments``.
    """
    service = BookingService(db, gateway)
    return await service.book_appointment(current_user, data)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    current_user: CurrentUser,
    db: DatabaseSession,
    as_doctor: bool = Query(False, description="List appointments booked with me"),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    payment_status: PaymentStatus | None = Query(None),
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List the caller's appointments, newest first.

    Patients see the appointments they booked. Doctors pass ``as_doctor=true``
    to see the appointments booked with them.
    """
    filters = AppointmentFilters(
        status=status_filter,
        payment_status=payment_status,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )

    service = AppointmentService(db)
    if as_doctor and current_user.is_doctor:
        return await service.list_by_doctor(current_user.id, filters)
    return await service.list_by_patient(current_user.id, filters)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Get an appointment the caller takes part in."""
    service = AppointmentService(db)
    return await service.get(appointment_id, current_user)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Complete or cancel an appointment",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Mark an appointment ``completed`` or ``cancelled``.

    Only the appointment's doctor may do this. Completed and cancelled
    appointments cannot change again; payment status is not settable here.
    """
    service = AppointmentService(db)
    return await service.set_status(appointment_id, data.status, actor=current_user)
