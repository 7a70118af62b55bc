"""Payment endpoints: STK push initiation and provider callbacks."""

from fastapi import APIRouter, Header, Request, status

from doorstep.core.webhook_security import SIGNATURE_HEADER
from doorstep.dependencies import (
    CurrentUser,
    DatabaseSession,
    PaymentGateway,
    PaymentRateLimit,
)
from doorstep.schemas.payments import (
    AppointmentPaymentRequest,
    CallbackResult,
    PaymentResponse,
    SubscriptionPaymentRequest,
    SubscriptionPaymentResponse,
)
from doorstep.services.booking_service import BookingService
from doorstep.services.reconciliation_service import ReconciliationService
from doorstep.services.subscription_service import SubscriptionService

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post(
    "/appointments",
    response_model=PaymentResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[PaymentRateLimit],
    summary="Send the payment prompt for an existing appointment",
)
async def create_appointment_payment(
    data: AppointmentPaymentRequest,
    current_user: CurrentUser,
    db: DatabaseSession,
    gateway: PaymentGateway,
) -> PaymentResponse:
    """
    Initiate payment for an appointment the caller booked.

    Only one prompt is sent per appointment; a second request while the first
    is outstanding is rejected with 409.
    """
    service = BookingService(db, gateway)
    return await service.pay_existing(current_user, data)


@router.post(
    "/subscriptions",
    response_model=SubscriptionPaymentResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[PaymentRateLimit],
    summary="Subscribe to a doctor plan",
)
async def create_subscription_payment(
    data: SubscriptionPaymentRequest,
    current_user: CurrentUser,
    db: DatabaseSession,
    gateway: PaymentGateway,
) -> SubscriptionPaymentResponse:
    """
    Start a monthly plan subscription for the authenticated doctor.

    The subscription becomes active only when the provider confirms payment.
    """
    service = SubscriptionService(db, gateway)
    return await service.subscribe(
        current_user,
        plan_type=data.plan_type,
        phone_number=data.phone_number,
        email=data.email,
    )


@router.post(
    "/callback",
    response_model=CallbackResult,
    status_code=status.HTTP_200_OK,
    summary="Payment provider callback",
)
async def payment_callback(
    request: Request,
    db: DatabaseSession,
    signature: str | None = Header(None, alias=SIGNATURE_HEADER),
) -> CallbackResult:
    """
    Receive a payment outcome from IntaSend.

    Responds 404 for tracking ids that are not known yet so the provider
    redelivers; repeated deliveries of a processed callback return 200 with
    ``applied=false``.
    """
    raw_body = await request.body()
    service = ReconciliationService(db)
    return await service.handle_provider_callback(raw_body, signature)
