"""Booking orchestrator: create the appointment, then send the payment prompt."""

from datetime import UTC, datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncSession

from doorstep.config import settings
from doorstep.core.exceptions import (
    ConfigurationError,
    ConflictError,
    GatewayError,
    NotFoundError,
    ValidationError,
)
from doorstep.schemas.appointments import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatus,
    BookingResponse,
    PaymentStatus,
)
from doorstep.schemas.auth import AuthenticatedUser
from doorstep.schemas.payments import AppointmentPaymentRequest, PaymentResponse
from doorstep.schemas.validators import normalize_msisdn
from doorstep.services.appointment_service import AppointmentService
from doorstep.services.payment_gateway import InstasendGateway, PaymentInitiation
from doorstep.services.user_role_service import UserRoleService

logger = structlog.get_logger(__name__)

# Tolerated client clock skew for "now" bookings
SCHEDULE_GRACE = timedelta(seconds=60)


def validate_schedule(appointment_date: datetime, now: datetime | None = None) -> datetime:
    """Reject past timestamps. Naive timestamps are read as UTC."""
    if appointment_date.tzinfo is None:
        appointment_date = appointment_date.replace(tzinfo=UTC)
    now = now or datetime.now(UTC)
    if appointment_date < now - SCHEDULE_GRACE:
        raise ValidationError("Appointment date must be in the future")
    return appointment_date


def validate_phone(phone_number: str | None) -> str:
    """Require a phone number and normalize it for M-Pesa."""
    if not phone_number or not phone_number.strip():
        raise ValidationError("Phone number is required")
    try:
        return normalize_msisdn(phone_number)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def validate_amount(amount: int) -> int:
    """Enforce the minimum consultation fee."""
    minimum = settings.minimum_consultation_fee
    if amount < minimum:
        raise ValidationError(f"Amount must be at least {minimum} {settings.payment_currency}")
    return amount


def validate_currency(currency: str) -> str:
    """Only the configured settlement currency is accepted."""
    currency = currency.upper()
    if currency != settings.payment_currency:
        raise ValidationError(f"Unsupported currency '{currency}'")
    return currency


class BookingService:
    """Coordinates appointment creation and payment initiation.

    The two steps fail independently: if the provider call fails, the
    appointment stays in ``pending/pending`` and the patient can retry the
    payment with ``pay_existing``. The appointment is claimed before the
    provider is called, so concurrent requests send at most one prompt.
    """

    def __init__(self, db: AsyncSession, gateway: InstasendGateway):
        """Initialize service with database session and payment gateway."""
        self.db = db
        self.gateway = gateway
        self.appointments = AppointmentService(db)
        self.roles = UserRoleService(db)

    async def book_appointment(
        self,
        patient: AuthenticatedUser,
        data: AppointmentCreate,
    ) -> BookingResponse:
        """
        Book an appointment and send the M-Pesa prompt.

        Args:
            patient: Authenticated caller
            data: Booking request

        Returns:
            Created appointment with the provider tracking id

        Raises:
            ValidationError: On malformed input, before any row is written
            NotFoundError: If ``doctor_id`` is not a doctor
            GatewayError: If the provider call fails (the row is kept)
        """
        appointment_date = validate_schedule(data.appointment_date)
        address = (data.address or "").strip()
        if not address:
            raise ValidationError("Address is required")
        phone_number = validate_phone(data.phone_number)
        amount = validate_amount(data.amount)

        if data.doctor_id == patient.id:
            raise ValidationError("You cannot book an appointment with yourself")
        if not await self.roles.is_doctor(data.doctor_id):
            raise NotFoundError("Doctor not found")

        row = await self.appointments.create(
            patient_id=patient.id,
            doctor_id=data.doctor_id,
            appointment_date=appointment_date,
            consultation_type=data.consultation_type,
            address=address,
            amount=amount,
            notes=data.notes,
        )

        initiation, updated = await self._initiate(
            row,
            amount=amount,
            phone_number=phone_number,
            email=data.email or patient.email,
            currency=settings.payment_currency,
        )

        return BookingResponse(
            appointment=AppointmentResponse.model_validate(dict(updated)),
            tracking_id=initiation.tracking_id,
            checkout_id=initiation.checkout_id,
        )

    async def pay_existing(
        self,
        patient: AuthenticatedUser,
        request: AppointmentPaymentRequest,
    ) -> PaymentResponse:
        """
        Send the payment prompt for an appointment that has none yet.

        Raises:
            NotFoundError: If the appointment does not belong to the caller
            ConflictError: If a prompt was already sent, is being sent by a
                concurrent request, or payment is settled
        """
        row = await self.appointments.get_row(request.appointment_id)
        if row["patient_id"] != patient.id:
            raise NotFoundError("Appointment not found or access denied")

        if row["status"] == AppointmentStatus.CANCELLED.value:
            raise ConflictError("Appointment has been cancelled")
        if row["payment_status"] != PaymentStatus.PENDING.value:
            raise ConflictError(f"Appointment payment is already {row['payment_status']}")
        if row["tracking_id"]:
            raise ConflictError(
                "A payment prompt has already been sent for this appointment; "
                "wait for it to complete"
            )

        amount = validate_amount(request.amount if request.amount is not None else row["amount"])
        phone_number = validate_phone(request.phone_number)
        currency = validate_currency(request.currency)

        initiation, _ = await self._initiate(
            row,
            amount=amount,
            phone_number=phone_number,
            email=request.email or patient.email,
            currency=currency,
        )
        return PaymentResponse(
            tracking_id=initiation.tracking_id,
            checkout_id=initiation.checkout_id,
        )

    async def _initiate(
        self,
        row: RowMapping,
        amount: int,
        phone_number: str,
        email: str | None,
        currency: str,
    ) -> tuple[PaymentInitiation, RowMapping]:
        appointment_id: UUID = row["id"]
        await self.appointments.claim_payment_initiation(appointment_id)
        try:
            initiation = await self.gateway.initiate_payment(
                amount=amount,
                phone_number=phone_number,
                email=email,
                narrative=f"Payment for medical appointment {appointment_id}",
                currency=currency,
                api_ref=str(row["payment_reference"]),
                purpose="appointment",
            )
        except (GatewayError, ConfigurationError):
            await self.appointments.release_payment_claim(appointment_id)
            logger.warning(
                "appointment_payment_not_initiated",
                appointment_id=str(appointment_id),
                note="appointment kept in pending/pending",
            )
            raise

        updated = await self.appointments.record_payment_initiation(
            appointment_id,
            tracking_id=initiation.tracking_id,
            checkout_id=initiation.checkout_id,
            amount=amount,
        )
        return initiation, updated
