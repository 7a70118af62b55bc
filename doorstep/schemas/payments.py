"""Payment request/response schemas."""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from doorstep.schemas.subscriptions import PlanType


class AppointmentPaymentRequest(BaseModel):
    """Initiate (or retry) payment for an existing appointment."""

    appointment_id: UUID
    amount: int | None = Field(None, description="Defaults to the booked amount")
    phone_number: str = Field(..., max_length=20)
    email: EmailStr | None = None
    currency: str = Field(default="KES", min_length=3, max_length=3)


class SubscriptionPaymentRequest(BaseModel):
    """Doctor subscription request."""

    plan_type: PlanType
    phone_number: str = Field(..., max_length=20)
    email: EmailStr | None = None


class PaymentResponse(BaseModel):
    """Result of sending an STK push prompt."""

    success: bool = True
    tracking_id: str
    checkout_id: str | None = None
    message: str = "Payment initiated successfully"


class SubscriptionPaymentResponse(PaymentResponse):
    """STK push result for a subscription."""

    subscription_id: UUID
    plan: str
    amount: int
    message: str = "Subscription payment initiated successfully"


class CallbackResult(BaseModel):
    """Acknowledgement returned to the payment provider."""

    received: bool = True
    tracking_id: str
    target: str
    applied: bool
    payment_status: str | None = None
